# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/resource_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Resource Service Implementation.
This module answers ``resources/read`` for a bridge. Declared resources are
looked up by exact URI; a few well-known URIs get synthesized content:

- ``openapi://spec/full``: an OpenAPI 3.0 document built from the endpoints
- ``openapi://endpoints/summary``: a Markdown overview of the endpoints
- ``openapi://schema/<name>``: a Markdown placeholder for a named schema

Any other resource reads back its stored description.
"""

# Standard
import json
import re
from typing import Any, Dict, List

# First-Party
from mcpbridge.models import Resource, ResourceContents
from mcpbridge.schemas import BridgeConfig, Endpoint
from mcpbridge.services.logging_service import LoggingService
from mcpbridge.services.request_compiler import resolve_location
from mcpbridge.services.schema_builder import map_type
from mcpbridge.utils.tool_names import generate_tool_name

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

FULL_SPEC_URI = "openapi://spec/full"
SUMMARY_URI = "openapi://endpoints/summary"
SCHEMA_URI_PREFIX = "openapi://schema/"


class ResourceError(Exception):
    """Base class for resource-related errors."""


class ResourceNotFoundError(ResourceError):
    """Raised when a requested resource is not declared on the bridge."""


def to_openapi_path(path: str) -> str:
    """Rewrite ``:name`` placeholders into OpenAPI ``{name}`` templating.

    Args:
        path: Endpoint path template

    Returns:
        str: OpenAPI path

    Examples:
        >>> to_openapi_path("/users/:id/posts/{postId}")
        '/users/{id}/posts/{postId}'
    """
    return re.sub(r":([A-Za-z_][A-Za-z0-9_]*)", r"{\1}", path)


def _operation(endpoint: Endpoint) -> Dict[str, Any]:
    """Describe one endpoint as an OpenAPI operation.

    Args:
        endpoint: Endpoint with a method and path

    Returns:
        Dict[str, Any]: Operation object
    """
    operation: Dict[str, Any] = {"summary": endpoint.name, "operationId": generate_tool_name(endpoint.method, endpoint.path)}
    if endpoint.description:
        operation["description"] = endpoint.description

    parameters = []
    for param in endpoint.parameters:
        location = resolve_location(param, endpoint.path)
        if location == "body":
            continue
        entry: Dict[str, Any] = {"name": param.name, "in": location, "required": location == "path" or param.required, "schema": {"type": map_type(param.type)}}
        if param.description:
            entry["description"] = param.description
        if param.default_value is not None:
            entry["schema"]["default"] = param.default_value
        parameters.append(entry)
    if parameters:
        operation["parameters"] = parameters

    request_body = endpoint.request_body
    if endpoint.accepts_body and request_body is not None:
        schema: Dict[str, Any] = {"type": "object"}
        if request_body.properties:
            schema["properties"] = {name: field.model_dump(exclude_none=True, exclude={"required"}) for name, field in request_body.properties.items()}
            required = [name for name, field in request_body.properties.items() if field.required]
            if required:
                schema["required"] = required
        operation["requestBody"] = {"required": request_body.required, "content": {request_body.content_type: {"schema": schema}}}
        if request_body.description:
            operation["requestBody"]["description"] = request_body.description

    response: Dict[str, Any] = {"description": "Successful response"}
    if endpoint.config.response_schema:
        response["content"] = {"application/json": {"schema": endpoint.config.response_schema}}
    operation["responses"] = {"200": response}
    return operation


def build_openapi_document(bridge: BridgeConfig) -> Dict[str, Any]:
    """Generate an OpenAPI 3.0 document for a bridge.

    Endpoints without a method or path are skipped.

    Args:
        bridge: Bridge to describe

    Returns:
        Dict[str, Any]: OpenAPI document

    Examples:
        >>> bridge = BridgeConfig.model_validate({
        ...     "id": "b1", "name": "Pets", "baseUrl": "https://pets.example.com",
        ...     "endpoints": [{"name": "List pets", "method": "GET", "path": "/pets"}],
        ... })
        >>> doc = build_openapi_document(bridge)
        >>> doc["info"]["title"], doc["servers"][0]["url"], doc["paths"]["/pets"]["get"]["operationId"]
        ('Pets', 'https://pets.example.com', 'get_pets_list')
    """
    paths: Dict[str, Dict[str, Any]] = {}
    for endpoint in bridge.endpoints:
        if not endpoint.method or not endpoint.path:
            continue
        paths.setdefault(to_openapi_path(endpoint.path), {})[endpoint.method.lower()] = _operation(endpoint)

    return {
        "openapi": "3.0.0",
        "info": {"title": bridge.name, "description": bridge.description or "", "version": "1.0.0"},
        "servers": [{"url": bridge.base_url}],
        "paths": paths,
    }


def build_endpoint_summary(bridge: BridgeConfig) -> str:
    """Render a Markdown overview of a bridge's endpoints.

    Args:
        bridge: Bridge to describe

    Returns:
        str: Markdown text

    Examples:
        >>> bridge = BridgeConfig.model_validate({
        ...     "id": "b1", "name": "Pets", "baseUrl": "https://pets.example.com",
        ...     "endpoints": [{"name": "Get pet", "method": "GET", "path": "/pets/{id}",
        ...                    "config": {"parameters": [{"name": "id", "required": True}]}}],
        ... })
        >>> print(build_endpoint_summary(bridge))
        # Pets API Endpoints
        <BLANKLINE>
        Base URL: `https://pets.example.com`
        <BLANKLINE>
        ## GET /pets/{id}
        <BLANKLINE>
        Get pet (tool `get_pets_read`)
        <BLANKLINE>
        Parameters:
        - `id` (string, required)
        <BLANKLINE>
    """
    lines = [f"# {bridge.name} API Endpoints", ""]
    if bridge.description:
        lines += [bridge.description, ""]
    lines += [f"Base URL: `{bridge.base_url}`", ""]

    if not bridge.endpoints:
        lines += ["No endpoints are configured.", ""]

    for endpoint in bridge.endpoints:
        lines += [f"## {endpoint.method} {endpoint.path}", ""]
        lines += [f"{endpoint.name} (tool `{generate_tool_name(endpoint.method, endpoint.path)}`)", ""]
        if endpoint.description:
            lines += [endpoint.description, ""]
        if endpoint.parameters:
            lines.append("Parameters:")
            for param in endpoint.parameters:
                entry = f"- `{param.name}` ({param.type}{', required' if param.required else ''})"
                if param.description:
                    entry += f": {param.description}"
                lines.append(entry)
            lines.append("")
        if endpoint.accepts_body and endpoint.request_body is not None:
            fields = endpoint.request_body.properties or {}
            lines.append(f"Request body fields: {', '.join(fields)}" if fields else "Accepts a JSON request body")
            lines.append("")

    return "\n".join(lines)


def build_schema_stub(name: str) -> str:
    """Render the placeholder for a named schema resource.

    Args:
        name: Schema name

    Returns:
        str: Markdown text

    Examples:
        >>> build_schema_stub("Pet").splitlines()[0]
        '# Schema: Pet'
    """
    return f"# Schema: {name}\n\nNo detailed definition is stored for schema `{name}`.\n"


class ResourceService:
    """Reads bridge resources, synthesizing well-known ones."""

    async def read_resource(self, bridge: BridgeConfig, resources: List[Resource], uri: str) -> ResourceContents:
        """Read one declared resource.

        Args:
            bridge: Bridge owning the resources
            resources: The bridge's declared resources
            uri: Requested URI, matched exactly

        Returns:
            ResourceContents: The content with its MIME type

        Raises:
            ResourceNotFoundError: If no declared resource has this URI

        Examples:
            >>> import asyncio
            >>> bridge = BridgeConfig.model_validate({"id": "b1", "name": "Pets", "baseUrl": "https://pets.example.com"})
            >>> notes = Resource(uri="notes://readme", name="Readme", description="Read me first")
            >>> asyncio.run(ResourceService().read_resource(bridge, [notes], "notes://readme")).text
            'Read me first'
            >>> asyncio.run(ResourceService().read_resource(bridge, [notes], "notes://other"))
            Traceback (most recent call last):
                ...
            mcpbridge.services.resource_service.ResourceNotFoundError: Resource not found: notes://other
        """
        resource = next((r for r in resources if r.uri == uri), None)
        if resource is None:
            raise ResourceNotFoundError(f"Resource not found: {uri}")

        if uri == FULL_SPEC_URI:
            return ResourceContents(uri=uri, mime_type="application/json", text=json.dumps(build_openapi_document(bridge), indent=2))
        if uri == SUMMARY_URI:
            return ResourceContents(uri=uri, mime_type="text/markdown", text=build_endpoint_summary(bridge))
        if uri.startswith(SCHEMA_URI_PREFIX):
            return ResourceContents(uri=uri, mime_type="text/markdown", text=build_schema_stub(uri[len(SCHEMA_URI_PREFIX) :]))

        logger.debug(f"Serving stored description for resource {uri} of bridge {bridge.id}")
        return ResourceContents(uri=uri, mime_type=resource.mime_type or "text/plain", text=resource.description or "")
