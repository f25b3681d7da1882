# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/dispatcher.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

MCP Request Dispatcher.
This module handles one JSON-RPC call posted to a bridge. A call moves
through explicit states:

    RESOLVE_BRIDGE -> AUTHENTICATE -> PARSE_ENVELOPE -> ROUTE -> RESPONDED

Each stage either advances or raises a :class:`JSONRPCError` carrying the
error envelope, HTTP status and headers. Authentication runs before the body
is parsed, so errors from the first two stages always carry ``id: null``.
Anything unexpected is caught once, at the outermost boundary, and returned
as an internal error.

Examples:
    >>> from mcpbridge.services.dispatcher import DispatchState
    >>> [state.value for state in DispatchState]
    ['resolve_bridge', 'authenticate', 'parse_envelope', 'route', 'responded']
"""

# Standard
from dataclasses import dataclass, field
from enum import Enum
import json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Type, Union

# Third-Party
from pydantic import ValidationError
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.config import settings
from mcpbridge.db import utc_now
from mcpbridge.models import Implementation, InitializeResult, LogLevel, ServerCapabilities, TextContent, ToolResult
from mcpbridge.schemas import BridgeConfig, EmptyParams, Endpoint, PromptGetParams, ResourceReadParams, RPCParams, ToolCallParams
from mcpbridge.services.access_control import AccessControlGuard
from mcpbridge.services.bridge_service import BridgeService
from mcpbridge.services.logging_service import BridgeEventLogger, LoggingService
from mcpbridge.services.passthrough_service import PassthroughService
from mcpbridge.services.prompt_service import PromptNotFoundError, PromptService
from mcpbridge.services.request_compiler import ApiCallError, RequestExecutor
from mcpbridge.services.resource_service import ResourceNotFoundError, ResourceService
from mcpbridge.services.schema_builder import build_endpoint_tools
from mcpbridge.utils.error_formatter import format_error_message
from mcpbridge.utils.tool_names import generate_tool_name, normalize_tool_name
from mcpbridge.validation.jsonrpc import INTERNAL_ERROR, INVALID_PARAMS, JSONRPCError, METHOD_NOT_FOUND, PARSE_ERROR, validate_request

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)


class DispatchState(str, Enum):
    """Stages of a gateway call."""

    RESOLVE_BRIDGE = "resolve_bridge"
    AUTHENTICATE = "authenticate"
    PARSE_ENVELOPE = "parse_envelope"
    ROUTE = "route"
    RESPONDED = "responded"


@dataclass
class DispatchResult:
    """A JSON-RPC payload with the HTTP status and headers to send it with.

    Attributes:
        payload: JSON-RPC response object
        status_code: HTTP status
        headers: Extra HTTP headers
    """

    payload: Dict[str, Any]
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class DispatchContext:
    """Mutable state of one call as it moves through the stages."""

    db: Session
    bridge_identifier: str
    body: bytes
    headers: Mapping[str, str]
    state: DispatchState = DispatchState.RESOLVE_BRIDGE
    bridge: Optional[BridgeConfig] = None
    method: Optional[str] = None
    request_id: Optional[Union[str, int]] = None
    raw_params: Any = None


def resolve_tool_endpoint(bridge: BridgeConfig, name: str) -> Optional[Endpoint]:
    """Find the endpoint a ``tools/call`` name refers to.

    Explicit tools are consulted first: one carrying ``endpointId`` maps to
    that endpoint, otherwise to an endpoint whose generated or raw name equals
    the tool name. Without an explicit match, endpoints are matched by
    generated name, then by normalized endpoint name or ``METHOD path``.

    Args:
        bridge: Bridge being called
        name: Requested tool name

    Returns:
        Optional[Endpoint]: The endpoint, or None

    Examples:
        >>> bridge = BridgeConfig.model_validate({
        ...     "id": "b1", "name": "Users", "baseUrl": "https://api.example.com",
        ...     "endpoints": [{"id": "e1", "name": "List Users", "method": "GET", "path": "/users"}],
        ... })
        >>> resolve_tool_endpoint(bridge, "get_users_list").id
        'e1'
        >>> resolve_tool_endpoint(bridge, "list-users").id
        'e1'
        >>> resolve_tool_endpoint(bridge, "GET /users").id
        'e1'
        >>> resolve_tool_endpoint(bridge, "delete_users_delete") is None
        True
    """
    endpoints = bridge.endpoints
    explicit = next((tool for tool in bridge.mcp_tools or [] if tool.get("name") == name), None)
    if explicit is not None:
        endpoint_id = explicit.get("endpointId") or explicit.get("endpoint_id")
        if endpoint_id:
            return next((ep for ep in endpoints if ep.id == endpoint_id), None)
        return next((ep for ep in endpoints if generate_tool_name(ep.method, ep.path) == name or ep.name == name), None)

    match = next((ep for ep in endpoints if generate_tool_name(ep.method, ep.path) == name), None)
    if match is not None:
        return match

    wanted = normalize_tool_name(name)
    return next((ep for ep in endpoints if wanted in (normalize_tool_name(ep.name), normalize_tool_name(f"{ep.method} {ep.path}"))), None)


def render_tool_text(data: Any) -> str:
    """Render upstream data as tool result text.

    Args:
        data: Parsed upstream response

    Returns:
        str: Strings as-is, anything else as indented JSON

    Examples:
        >>> render_tool_text("plain")
        'plain'
        >>> print(render_tool_text({"id": 1}))
        {
          "id": 1
        }
    """
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2)


class Dispatcher:
    """Dispatches JSON-RPC calls posted to bridges.

    Collaborators are injectable; defaults are built from settings. The REST
    passthrough shares them through :attr:`passthrough`. The verified-bridge
    cache lives on the event logger and can be cleared with :meth:`reset_cache`.
    """

    def __init__(
        self,
        bridge_service: Optional[BridgeService] = None,
        executor: Optional[RequestExecutor] = None,
        event_logger: Optional[BridgeEventLogger] = None,
        guard: Optional[AccessControlGuard] = None,
        resource_service: Optional[ResourceService] = None,
        prompt_service: Optional[PromptService] = None,
    ):
        """Initialize the dispatcher.

        Args:
            bridge_service: Bridge repository
            executor: Outbound request executor
            event_logger: Per-bridge event sink
            guard: Access control guard
            resource_service: Resource reader
            prompt_service: Prompt renderer
        """
        self.bridge_service = bridge_service or BridgeService()
        self.executor = executor or RequestExecutor()
        self.event_logger = event_logger or BridgeEventLogger()
        self.guard = guard or AccessControlGuard(self.bridge_service, self.event_logger)
        self.resource_service = resource_service or ResourceService()
        self.prompt_service = prompt_service or PromptService()
        self.passthrough = PassthroughService(self.bridge_service, self.executor, self.event_logger, self.guard)

        self._routes: Dict[str, Tuple[Type[RPCParams], Callable[[DispatchContext, Any], Awaitable[Any]]]] = {
            "initialize": (EmptyParams, self._handle_initialize),
            "tools/list": (EmptyParams, self._handle_tools_list),
            "tools/call": (ToolCallParams, self._handle_tools_call),
            "resources/list": (EmptyParams, self._handle_resources_list),
            "resources/read": (ResourceReadParams, self._handle_resources_read),
            "prompts/list": (EmptyParams, self._handle_prompts_list),
            "prompts/get": (PromptGetParams, self._handle_prompts_get),
        }

    def reset_cache(self) -> None:
        """Forget every verified bridge id."""
        self.event_logger.cache.reset()

    async def dispatch(self, db: Session, bridge_identifier: str, body: bytes, headers: Mapping[str, str]) -> DispatchResult:
        """Handle one gateway call.

        Args:
            db: Database session
            bridge_identifier: Bridge id or slug from the URL
            body: Raw request body
            headers: Request headers

        Returns:
            DispatchResult: Always a JSON-RPC shaped payload
        """
        ctx = DispatchContext(db=db, bridge_identifier=bridge_identifier, body=body, headers=headers)
        try:
            await self._resolve_bridge(ctx)
            await self._authenticate(ctx)
            self._parse_envelope(ctx)
            result = await self._route(ctx)
            ctx.state = DispatchState.RESPONDED
            return DispatchResult(payload={"jsonrpc": "2.0", "result": result, "id": ctx.request_id})
        except JSONRPCError as e:
            logger.debug(f"Call to bridge {bridge_identifier} failed in state {ctx.state.value}: {e.message}")
            ctx.state = DispatchState.RESPONDED
            return DispatchResult(payload=e.to_dict(), status_code=e.http_status, headers=dict(e.headers))
        except Exception as e:
            failed_state = ctx.state
            ctx.state = DispatchState.RESPONDED
            return await self._internal_error(ctx, e, failed_state)

    async def _resolve_bridge(self, ctx: DispatchContext) -> None:
        """Look up the bridge named in the URL.

        Args:
            ctx: Call context

        Raises:
            JSONRPCError: If no enabled bridge matches
        """
        bridge = await self.bridge_service.get_bridge(ctx.db, ctx.bridge_identifier)
        if bridge is None:
            raise JSONRPCError(INVALID_PARAMS, f"Bridge not found: {ctx.bridge_identifier}", http_status=404)
        ctx.bridge = bridge
        ctx.state = DispatchState.AUTHENTICATE

    async def _authenticate(self, ctx: DispatchContext) -> None:
        """Apply the bridge's access policy.

        Args:
            ctx: Call context
        """
        await self.guard.authenticate(ctx.db, ctx.bridge, ctx.headers)
        ctx.state = DispatchState.PARSE_ENVELOPE

    def _parse_envelope(self, ctx: DispatchContext) -> None:
        """Decode and check the JSON-RPC envelope.

        Args:
            ctx: Call context

        Raises:
            JSONRPCError: On invalid JSON or an invalid envelope
        """
        try:
            request = json.loads(ctx.body)
        except ValueError as e:
            raise JSONRPCError(PARSE_ERROR, "Parse error", data=str(e), http_status=400)

        validate_request(request)
        ctx.method = request["method"]
        ctx.request_id = request.get("id")
        ctx.raw_params = request.get("params")
        ctx.state = DispatchState.ROUTE

    async def _route(self, ctx: DispatchContext) -> Any:
        """Validate typed params and run the method handler.

        Args:
            ctx: Call context

        Returns:
            Any: Method result

        Raises:
            JSONRPCError: For unknown methods or invalid params
        """
        await self.event_logger.log(ctx.bridge.id, LogLevel.INFO, f"MCP request: {ctx.method}", {"method": ctx.method, "id": ctx.request_id})

        route = self._routes.get(ctx.method)
        if route is None:
            raise JSONRPCError(METHOD_NOT_FOUND, f"Method not found: {ctx.method}", request_id=ctx.request_id)

        params_model, handler = route
        raw_params = ctx.raw_params if ctx.raw_params is not None else {}
        if not isinstance(raw_params, dict):
            raise JSONRPCError(INVALID_PARAMS, f"Invalid params for {ctx.method}: expected an object", request_id=ctx.request_id)
        try:
            params = params_model.model_validate(raw_params)
        except ValidationError as e:
            errors = [{"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]} for err in e.errors()]
            summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
            raise JSONRPCError(INVALID_PARAMS, f"Invalid params for {ctx.method}: {summary}", data={"errors": errors}, request_id=ctx.request_id)

        return await handler(ctx, params)

    async def _handle_initialize(self, ctx: DispatchContext, params: EmptyParams) -> Dict[str, Any]:
        """Answer ``initialize``.

        Args:
            ctx: Call context
            params: Unused

        Returns:
            Dict[str, Any]: Protocol version, capabilities and server info
        """
        resources = await self.bridge_service.list_resources(ctx.db, ctx.bridge.id)
        prompts = await self.bridge_service.list_prompts(ctx.db, ctx.bridge.id)
        result = InitializeResult(
            protocol_version=settings.protocol_version,
            capabilities=ServerCapabilities(tools={}, resources={} if resources else None, prompts={} if prompts else None),
            server_info=Implementation(name=ctx.bridge.name, version=settings.server_version),
        )
        return result.model_dump(by_alias=True, exclude_none=True)

    async def _handle_tools_list(self, ctx: DispatchContext, params: EmptyParams) -> Dict[str, Any]:
        """Answer ``tools/list`` with explicit tools, or else endpoint-derived ones.

        Args:
            ctx: Call context
            params: Unused

        Returns:
            Dict[str, Any]: ``{"tools": [...]}``
        """
        if ctx.bridge.mcp_tools:
            return {"tools": list(ctx.bridge.mcp_tools)}
        tools: List[Dict[str, Any]] = [tool.model_dump(by_alias=True, exclude_none=True) for tool in build_endpoint_tools(ctx.bridge.endpoints)]
        return {"tools": tools}

    async def _handle_tools_call(self, ctx: DispatchContext, params: ToolCallParams) -> Dict[str, Any]:
        """Answer ``tools/call`` by calling the backing REST endpoint.

        Args:
            ctx: Call context
            params: Tool name and arguments

        Returns:
            Dict[str, Any]: Tool result with one text content item

        Raises:
            JSONRPCError: If the tool is unknown, its endpoint is malformed, or the upstream call fails
        """
        bridge = ctx.bridge
        endpoint = resolve_tool_endpoint(bridge, params.name)
        if endpoint is None:
            raise JSONRPCError(INVALID_PARAMS, f"Tool '{params.name}' not found in bridge '{bridge.name}'", request_id=ctx.request_id)
        if not endpoint.method or not endpoint.path:
            raise JSONRPCError(INVALID_PARAMS, f"Invalid endpoint configuration for tool '{params.name}': method and path are required", request_id=ctx.request_id)

        await self.event_logger.log(bridge.id, LogLevel.INFO, f"Tool call: {params.name}", {"tool": params.name, "endpointId": endpoint.id, "method": endpoint.method, "path": endpoint.path})
        try:
            outcome = await self.executor.invoke(bridge, endpoint, params.arguments)
        except ApiCallError as e:
            await self.event_logger.log(bridge.id, LogLevel.ERROR, f"API call failed for tool {params.name}", {"tool": params.name, "error": str(e), "code": e.code})
            raise JSONRPCError(INTERNAL_ERROR, f"API call failed: {e}", data={"code": e.code}, request_id=ctx.request_id)

        await self.event_logger.log(
            bridge.id,
            LogLevel.INFO,
            f"Tool call succeeded: {params.name}",
            {"tool": params.name, "status": outcome.status_code, "elapsedMs": round(outcome.elapsed_ms, 1)},
        )
        return ToolResult(content=[TextContent(type="text", text=render_tool_text(outcome.data))]).model_dump(by_alias=True)

    async def _handle_resources_list(self, ctx: DispatchContext, params: EmptyParams) -> Dict[str, Any]:
        """Answer ``resources/list`` from a fresh repository read.

        Args:
            ctx: Call context
            params: Unused

        Returns:
            Dict[str, Any]: ``{"resources": [...]}``
        """
        resources = await self.bridge_service.list_resources(ctx.db, ctx.bridge.id)
        return {"resources": [resource.model_dump(by_alias=True, exclude_none=True) for resource in resources]}

    async def _handle_resources_read(self, ctx: DispatchContext, params: ResourceReadParams) -> Dict[str, Any]:
        """Answer ``resources/read``.

        Args:
            ctx: Call context
            params: Resource URI

        Returns:
            Dict[str, Any]: ``{"contents": [{uri, mimeType, text}]}``

        Raises:
            JSONRPCError: If the resource is not declared
        """
        resources = await self.bridge_service.list_resources(ctx.db, ctx.bridge.id)
        try:
            contents = await self.resource_service.read_resource(ctx.bridge, resources, params.uri)
        except ResourceNotFoundError as e:
            raise JSONRPCError(INVALID_PARAMS, str(e), request_id=ctx.request_id)
        return {"contents": [contents.model_dump(by_alias=True)]}

    async def _handle_prompts_list(self, ctx: DispatchContext, params: EmptyParams) -> Dict[str, Any]:
        """Answer ``prompts/list`` from a fresh repository read.

        Args:
            ctx: Call context
            params: Unused

        Returns:
            Dict[str, Any]: ``{"prompts": [...]}``
        """
        prompts = await self.bridge_service.list_prompts(ctx.db, ctx.bridge.id)
        return {"prompts": [prompt.model_dump(by_alias=True, exclude_none=True) for prompt in prompts]}

    async def _handle_prompts_get(self, ctx: DispatchContext, params: PromptGetParams) -> Dict[str, Any]:
        """Answer ``prompts/get``.

        Args:
            ctx: Call context
            params: Prompt name and arguments

        Returns:
            Dict[str, Any]: Description and one user message

        Raises:
            JSONRPCError: If the prompt is not declared
        """
        prompts = await self.bridge_service.list_prompts(ctx.db, ctx.bridge.id)
        try:
            result = await self.prompt_service.get_prompt(prompts, params.name, params.arguments)
        except PromptNotFoundError as e:
            raise JSONRPCError(INVALID_PARAMS, str(e), request_id=ctx.request_id)
        return result.model_dump(by_alias=True, exclude_none=True)

    async def _internal_error(self, ctx: DispatchContext, error: Exception, failed_state: DispatchState) -> DispatchResult:
        """Package an unexpected failure as an internal error.

        Args:
            ctx: Call context
            error: The exception
            failed_state: Stage the call was in

        Returns:
            DispatchResult: INTERNAL_ERROR with HTTP 500
        """
        logger.exception(f"Unhandled error dispatching {ctx.method or 'request'} to bridge {ctx.bridge_identifier} in state {failed_state.value}")
        details = {
            "message": format_error_message(error),
            "bridgeId": ctx.bridge.id if ctx.bridge else ctx.bridge_identifier,
            "timestamp": utc_now().isoformat(),
        }
        if ctx.bridge is not None:
            await self.event_logger.log(
                ctx.bridge.id,
                LogLevel.ERROR,
                "Internal error",
                {**details, "method": ctx.method, "state": failed_state.value, "traceback": format_error_message(error, with_traceback=True)},
            )
        error_response = JSONRPCError(INTERNAL_ERROR, "Internal error", data=details, request_id=ctx.request_id, http_status=500)
        return DispatchResult(payload=error_response.to_dict(), status_code=500)
