# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/schema_builder.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Tool Schema Builder.
This module derives MCP tool definitions from declared endpoints:
- ``inputSchema`` objects from parameters and request body fields
- Human readable descriptions listing required and optional inputs
- One tool per endpoint, named by :func:`generate_tool_name`

Examples:
    >>> from mcpbridge.schemas import Endpoint
    >>> ep = Endpoint.model_validate({
    ...     "id": "e1", "name": "Get user", "method": "GET", "path": "/users/{id}",
    ...     "config": {"parameters": [{"name": "id", "type": "integer", "required": True, "location": "path"}]},
    ... })
    >>> build_input_schema(ep)
    {'type': 'object', 'properties': {'id': {'type': 'number', 'description': 'id parameter'}}, 'required': ['id']}
"""

# Standard
from typing import Any, Dict, List

# First-Party
from mcpbridge.models import Tool
from mcpbridge.schemas import Endpoint, EndpointParameter, ParameterLocation, RequestBodyProperty
from mcpbridge.services.logging_service import LoggingService
from mcpbridge.utils.tool_names import generate_tool_name

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

NUMBER_TYPES = {"integer", "int32", "int64", "float", "double"}
STRING_TYPES = {"byte", "binary", "date", "date-time"}
BODY_FIELD_KEYWORDS = ("enum", "format", "minimum", "maximum", "pattern", "items")


def map_type(type_name: str) -> str:
    """Collapse OpenAPI-ish types onto JSON-Schema primitives.

    Args:
        type_name: Declared type

    Returns:
        str: JSON-Schema type

    Examples:
        >>> [map_type(t) for t in ("integer", "int64", "double", "date-time", "binary", "boolean", "array")]
        ['number', 'number', 'number', 'string', 'string', 'boolean', 'array']
        >>> map_type(None)
        'string'
    """
    if not type_name:
        return "string"
    if type_name in NUMBER_TYPES:
        return "number"
    if type_name in STRING_TYPES:
        return "string"
    return type_name


def _is_body_parameter(param: EndpointParameter) -> bool:
    """Check whether a parameter is placed in the request body.

    Args:
        param: Declared parameter

    Returns:
        bool: True for body parameters
    """
    return param.location == ParameterLocation.BODY


def _parameter_property(param: EndpointParameter) -> Dict[str, Any]:
    """Build the schema property of one parameter.

    Args:
        param: Declared parameter

    Returns:
        Dict[str, Any]: JSON-Schema property
    """
    prop: Dict[str, Any] = {"type": map_type(param.type), "description": param.description or f"{param.name} parameter"}
    if param.default_value is not None:
        prop["default"] = param.default_value
    return prop


def _body_field_property(name: str, field: RequestBodyProperty) -> Dict[str, Any]:
    """Build the schema property of one request body field.

    Args:
        name: Field name
        field: Declared field

    Returns:
        Dict[str, Any]: JSON-Schema property carrying validation keywords
    """
    prop: Dict[str, Any] = {"type": map_type(field.type), "description": field.description or f"{name} field"}
    for keyword in BODY_FIELD_KEYWORDS:
        value = getattr(field, keyword)
        if value is not None:
            prop[keyword] = value
    return prop


def build_input_schema(endpoint: Endpoint) -> Dict[str, Any]:
    """Derive the ``inputSchema`` of an endpoint-backed tool.

    Path and query parameters always become properties. For POST, PUT and
    PATCH, body parameters and declared request body fields are added too; a
    body declared without fields falls back to one generic ``requestBody``
    object property.

    Args:
        endpoint: Endpoint declaration

    Returns:
        Dict[str, Any]: ``{"type": "object", "properties": ..., "required": [...]}``

    Examples:
        >>> from mcpbridge.schemas import Endpoint
        >>> ep = Endpoint.model_validate({
        ...     "name": "Create user", "method": "POST", "path": "/users",
        ...     "config": {"requestBody": {"required": True, "properties": {
        ...         "email": {"type": "string", "format": "email", "required": True},
        ...         "age": {"type": "integer", "minimum": 0},
        ...     }}},
        ... })
        >>> schema = build_input_schema(ep)
        >>> schema["properties"]["email"]
        {'type': 'string', 'description': 'email field', 'format': 'email'}
        >>> schema["properties"]["age"]["minimum"], schema["required"]
        (0, ['email'])

        >>> ep = Endpoint.model_validate({"name": "Upload", "method": "PUT", "path": "/blob", "config": {"requestBody": {"required": True}}})
        >>> build_input_schema(ep)["properties"]["requestBody"]["type"], build_input_schema(ep)["required"]
        ('object', ['requestBody'])

        >>> ep = Endpoint.model_validate({"name": "Search", "method": "GET", "path": "/search", "config": {"requestBody": {"required": True}}})
        >>> build_input_schema(ep)["properties"]
        {}
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []

    def _add(name: str, prop: Dict[str, Any], is_required: bool) -> None:
        properties[name] = prop
        if is_required and name not in required:
            required.append(name)

    for param in endpoint.parameters:
        if not _is_body_parameter(param):
            _add(param.name, _parameter_property(param), param.required)

    if endpoint.accepts_body:
        body_params = [param for param in endpoint.parameters if _is_body_parameter(param)]
        for param in body_params:
            _add(param.name, _parameter_property(param), param.required)

        request_body = endpoint.request_body
        if request_body is not None:
            if request_body.properties:
                for name, field in request_body.properties.items():
                    if name not in properties:
                        _add(name, _body_field_property(name, field), field.required)
            elif not body_params:
                _add("requestBody", {"type": "object", "description": request_body.description or "Request body data"}, request_body.required)

    return {"type": "object", "properties": properties, "required": required}


def build_tool_description(endpoint: Endpoint) -> str:
    """Describe an endpoint-backed tool for MCP clients.

    Args:
        endpoint: Endpoint declaration

    Returns:
        str: Description followed by parameter and body field summaries

    Examples:
        >>> from mcpbridge.schemas import Endpoint
        >>> ep = Endpoint.model_validate({
        ...     "name": "List users", "method": "GET", "path": "/users",
        ...     "config": {"parameters": [{"name": "limit", "type": "integer"}, {"name": "org", "required": True}]},
        ... })
        >>> print(build_tool_description(ep))
        GET /users
        <BLANKLINE>
        Required parameters: org (string)
        <BLANKLINE>
        Optional parameters: limit (integer)
        >>> ep = Endpoint.model_validate({"name": "Upload", "description": "Upload a blob", "method": "POST", "path": "/blob", "config": {"requestBody": {}}})
        >>> build_tool_description(ep)
        'Upload a blob\\n\\nAccepts JSON request body'
    """
    description = endpoint.description or f"{endpoint.method} {endpoint.path}"

    required_params = [f"{p.name} ({p.type})" for p in endpoint.parameters if p.required]
    optional_params = [f"{p.name} ({p.type})" for p in endpoint.parameters if not p.required]
    if required_params:
        description += f"\n\nRequired parameters: {', '.join(required_params)}"
    if optional_params:
        description += f"\n\nOptional parameters: {', '.join(optional_params)}"

    request_body = endpoint.request_body
    if endpoint.accepts_body and request_body is not None:
        if request_body.properties:
            fields = request_body.properties.items()
            required_fields = [f"{name} ({field.type})" for name, field in fields if field.required]
            optional_fields = [f"{name} ({field.type})" for name, field in fields if not field.required]
            if required_fields:
                description += f"\n\nRequired body fields: {', '.join(required_fields)}"
            if optional_fields:
                description += f"\n\nOptional body fields: {', '.join(optional_fields)}"
        else:
            description += "\n\nAccepts JSON request body"

    return description


def build_endpoint_tools(endpoints: List[Endpoint]) -> List[Tool]:
    """Derive one tool per endpoint.

    Args:
        endpoints: Endpoint declarations in order

    Returns:
        List[Tool]: Tools carrying ``endpointId`` back-references

    Examples:
        >>> from mcpbridge.schemas import Endpoint
        >>> tools = build_endpoint_tools([Endpoint(id="e1", name="List users", method="GET", path="/users")])
        >>> tools[0].name, tools[0].endpoint_id
        ('get_users_list', 'e1')
    """
    tools = []
    seen = set()
    for endpoint in endpoints:
        name = generate_tool_name(endpoint.method, endpoint.path)
        if name in seen:
            logger.warning(f"Endpoint {endpoint.id} ({endpoint.method} {endpoint.path}) derives duplicate tool name {name}")
        seen.add(name)
        tools.append(
            Tool(
                name=name,
                description=build_tool_description(endpoint),
                input_schema=build_input_schema(endpoint),
                endpoint_id=endpoint.id,
            )
        )
    return tools
