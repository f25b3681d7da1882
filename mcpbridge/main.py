# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/main.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

MCP Bridge - Main FastAPI Application.

This module defines the FastAPI application for the MCP Bridge gateway.
It serves:
- ``POST /mcp/{bridge_id}``: the JSON-RPC gateway endpoint of a bridge
- ``OPTIONS /mcp/{bridge_id}``: CORS preflight for the gateway endpoint
- ``/mcp/{bridge_id}/{path}``: REST passthrough to the bridge's upstream API
- ``/bridges``: the admin API for bridges, their logs and access tokens
- ``/health``: database connectivity check

The gateway and passthrough endpoints always answer with
``Access-Control-Allow-Origin: *`` and handle their own preflight.
Configured CORS applies to the admin API only.

Examples:
    >>> from mcpbridge.main import app
    >>> app.title
    'MCP_Bridge'
"""

# Standard
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

# Third-Party
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

# First-Party
from mcpbridge import __version__
from mcpbridge.config import settings
from mcpbridge.db import get_db, init_db
from mcpbridge.routers.bridges import router as bridges_router
from mcpbridge.routers.tokens import router as tokens_router
from mcpbridge.services.dispatcher import Dispatcher
from mcpbridge.services.logging_service import LoggingService
from mcpbridge.utils.error_formatter import ErrorFormatter

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger("mcpbridge")

GATEWAY_PATH_PREFIX = "/mcp/"

GATEWAY_CORS_HEADERS: Dict[str, str] = {"Access-Control-Allow-Origin": "*"}

GATEWAY_PREFLIGHT_HEADERS: Dict[str, str] = {
    **GATEWAY_CORS_HEADERS,
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-API-Key",
}

PASSTHROUGH_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

PASSTHROUGH_CORS_HEADERS: Dict[str, str] = {
    **GATEWAY_CORS_HEADERS,
    "Access-Control-Allow-Methods": ", ".join(PASSTHROUGH_METHODS + ("OPTIONS",)),
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-API-Key",
}

dispatcher = Dispatcher()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """
    Manage the application's startup and shutdown lifecycle.

    Args:
        _app (FastAPI): FastAPI app

    Yields:
        None
    """
    await logging_service.initialize()
    logger.info("Starting MCP Bridge services")
    init_db()
    logger.info("Database ready")
    try:
        yield
    finally:
        logger.info("Shutting down MCP Bridge services")
        try:
            await dispatcher.executor.close()
        except Exception as e:
            logger.error(f"Error closing upstream HTTP client: {str(e)}")
        await logging_service.shutdown()
        logger.info("Shutdown complete")


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="A FastAPI-based MCP gateway exposing REST APIs as MCP tools",
    root_path=settings.app_root_path,
    lifespan=lifespan,
)


@app.exception_handler(ValidationError)
async def validation_exception_handler(_request: Request, exc: ValidationError):
    """Handle Pydantic validation errors raised outside request parsing.

    Args:
        _request: The request that triggered the error (unused)
        exc: The validation error

    Returns:
        JSONResponse: 422 with formatted error details

    Examples:
        >>> from pydantic import BaseModel
        >>> import asyncio
        >>> class Sample(BaseModel):
        ...     count: int
        >>> try:
        ...     Sample(count="many")
        ... except ValidationError as e:
        ...     asyncio.run(validation_exception_handler(None, e)).status_code
        422
    """
    return JSONResponse(status_code=422, content=ErrorFormatter.format_validation_error(exc))


@app.exception_handler(IntegrityError)
async def database_exception_handler(_request: Request, exc: IntegrityError):
    """Handle database constraint violations, such as a duplicate bridge slug.

    Args:
        _request: The request that triggered the error (unused)
        exc: The integrity error

    Returns:
        JSONResponse: 409 with a user-facing message

    Examples:
        >>> import asyncio
        >>> err = IntegrityError("statement", {}, Exception("UNIQUE constraint failed: bridges.slug"))
        >>> asyncio.run(database_exception_handler(None, err)).status_code
        409
    """
    return JSONResponse(status_code=409, content=ErrorFormatter.format_database_error(exc))


class AdminCORSMiddleware(CORSMiddleware):
    """CORS middleware that leaves the gateway endpoint alone.

    The gateway answers every origin with a wildcard and owns its preflight,
    so requests under ``/mcp/`` pass straight through.
    """

    async def __call__(self, scope, receive, send) -> None:
        """Apply CORS to everything except the gateway endpoint.

        Args:
            scope: ASGI scope
            receive: ASGI receive callable
            send: ASGI send callable
        """
        if scope["type"] == "http":
            path = scope.get("path", "")
            root_path = scope.get("root_path", "")
            if root_path and path.startswith(root_path):
                path = path[len(root_path) :]
            if path.startswith(GATEWAY_PATH_PREFIX):
                await self.app(scope, receive, send)
                return
        await super().__call__(scope, receive, send)


if settings.cors_enabled:
    app.add_middleware(AdminCORSMiddleware, **settings.cors_settings)


@app.post("/mcp/{bridge_id}")
async def handle_gateway_call(bridge_id: str, request: Request, db: Session = Depends(get_db)) -> JSONResponse:
    """Dispatch one JSON-RPC call to a bridge.

    Args:
        bridge_id: Bridge id or slug
        request: Incoming request; the body is parsed by the dispatcher
        db: Database session

    Returns:
        JSONResponse: JSON-RPC result or error with the call's HTTP status
    """
    body = await request.body()
    result = await dispatcher.dispatch(db, bridge_id, body, request.headers)
    return JSONResponse(content=result.payload, status_code=result.status_code, headers={**GATEWAY_CORS_HEADERS, **result.headers})


@app.options("/mcp/{bridge_id}")
async def handle_gateway_preflight(bridge_id: str) -> Response:  # pylint: disable=unused-argument
    """Answer a CORS preflight for the gateway endpoint.

    Args:
        bridge_id: Bridge id or slug (unused)

    Returns:
        Response: Empty 200 with the gateway's CORS headers
    """
    return Response(status_code=200, headers=GATEWAY_PREFLIGHT_HEADERS)


@app.api_route("/mcp/{bridge_id}/{path:path}", methods=list(PASSTHROUGH_METHODS))
async def handle_passthrough(bridge_id: str, path: str, request: Request, db: Session = Depends(get_db)) -> Response:
    """Relay a REST call to the bridge's upstream API.

    Args:
        bridge_id: Bridge id or slug
        path: Upstream path, matched against the bridge's endpoints
        request: Incoming request; query string and body are forwarded
        db: Database session

    Returns:
        Response: Upstream status and JSON body with the passthrough CORS headers
    """
    body = await request.body()
    result = await dispatcher.passthrough.relay(db, bridge_id, request.method, path, request.url.query, body, request.headers)
    headers = {**PASSTHROUGH_CORS_HEADERS, **result.headers}
    if result.status_code in (204, 304):
        return Response(status_code=result.status_code, headers=headers)
    return JSONResponse(content=result.body, status_code=result.status_code, headers=headers)


@app.options("/mcp/{bridge_id}/{path:path}")
async def handle_passthrough_preflight(bridge_id: str, path: str) -> Response:  # pylint: disable=unused-argument
    """Answer a CORS preflight for the REST passthrough.

    Args:
        bridge_id: Bridge id or slug (unused)
        path: Upstream path (unused)

    Returns:
        Response: Empty 200 with the passthrough's CORS headers
    """
    return Response(status_code=200, headers=PASSTHROUGH_CORS_HEADERS)


@app.get("/health")
async def healthcheck(db: Session = Depends(get_db)):
    """
    Perform a basic health check to verify database connectivity.

    Args:
        db: SQLAlchemy session dependency.

    Returns:
        A dictionary with the health status and optional error message.
    """
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        error_message = f"Database connection error: {str(e)}"
        logger.error(error_message)
        return {"status": "unhealthy", "error": error_message}
    return {"status": "healthy"}


app.include_router(bridges_router)
app.include_router(tokens_router)
