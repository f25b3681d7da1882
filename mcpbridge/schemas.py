# -*- coding: utf-8 -*-
"""MCP Bridge Schema Definitions.

Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

This module provides Pydantic models for request/response validation in the MCP Bridge.
It implements schemas for:
- Bridge configuration (upstream auth, static headers, access policy)
- Endpoint declarations (parameters, request body, timeout)
- Admin API payloads for bridges, access tokens and logs
- Typed per-method JSON-RPC parameters

Wire and stored configuration use camelCase keys (``baseUrl``, ``authConfig``,
``keyLocation``...). Every model accepts both camelCase and snake_case input.
"""

# Standard
from datetime import datetime
from enum import Enum
import logging
import re
from typing import Any, Dict, List, Optional, Union

# Third-Party
from pydantic import BaseModel, ConfigDict, Field, field_validator

# First-Party
from mcpbridge.utils.services_auth import decrypt_secrets, mask_secrets
from mcpbridge.utils.tool_names import is_valid_tool_name

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_METHODS = ("POST", "PUT", "PATCH")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def to_camel_case(s: str) -> str:
    """
    Convert a string from snake_case to camelCase.

    Args:
        s (str): The string to be converted, which is assumed to be in snake_case.

    Returns:
        str: The string converted to camelCase.

    Examples:
        >>> to_camel_case("base_url")
        'baseUrl'
        >>> to_camel_case("key_location")
        'keyLocation'
        >>> to_camel_case("single")
        'single'
    """
    return "".join(word.capitalize() if i else word for i, word in enumerate(s.split("_")))


# --- Base Model ---
class BaseModelWithConfigDict(BaseModel):
    """Base model with common configuration.

    Provides:
    - ORM mode for SQLAlchemy integration
    - Automatic conversion from snake_case to camelCase for output
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel_case,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )


# --- Bridge Configuration ---


class AuthType(str, Enum):
    """Upstream authentication schemes."""

    NONE = "none"
    BEARER = "bearer"
    APIKEY = "apikey"
    BASIC = "basic"


class KeyLocation(str, Enum):
    """Where an upstream API key is sent."""

    HEADER = "header"
    QUERY = "query"


class ParameterLocation(str, Enum):
    """Where an endpoint parameter is placed in the outbound request."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"


class ParameterStyle(str, Enum):
    """Path placeholder style: ``:name`` (parameter) or ``{name}`` (replacement)."""

    PARAMETER = "parameter"
    REPLACEMENT = "replacement"


class AuthConfig(BaseModelWithConfigDict):
    """Authentication the gateway applies to outbound calls.

    Attributes:
        type: Scheme, one of none, bearer, apikey, basic
        token: Bearer token
        api_key: API key
        username: Basic auth user
        password: Basic auth password
        header_name: Header carrying the API key (default ``X-API-Key``)
        key_location: ``header`` or ``query`` for API keys
        param_name: Query parameter carrying the API key

    Examples:
        >>> cfg = AuthConfig.model_validate({"type": "apikey", "apiKey": "k", "keyLocation": "query", "paramName": "api_key"})
        >>> cfg.key_location
        'query'
        >>> AuthConfig().type
        'none'
    """

    type: AuthType = Field(AuthType.NONE, validate_default=True)
    token: Optional[str] = None
    api_key: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    header_name: Optional[str] = None
    key_location: Optional[KeyLocation] = None
    param_name: Optional[str] = None


class AccessConfig(BaseModelWithConfigDict):
    """Access policy callers must satisfy to use a bridge.

    Attributes:
        auth_required: Whether callers must present an access token
        api_key: Legacy single shared key accepted in addition to stored tokens
    """

    auth_required: bool = False
    api_key: Optional[str] = None


class EndpointParameter(BaseModelWithConfigDict):
    """A declared endpoint parameter.

    ``location`` and ``style`` may be omitted; the request compiler then
    infers them from the path template.
    """

    name: str
    type: str = "string"
    required: bool = False
    description: Optional[str] = None
    default_value: Optional[Any] = None
    location: Optional[ParameterLocation] = None
    style: Optional[ParameterStyle] = None


class RequestBodyProperty(BaseModelWithConfigDict):
    """One top-level field of a JSON request body."""

    type: Optional[str] = None
    description: Optional[str] = None
    required: bool = False
    enum: Optional[List[Any]] = None
    format: Optional[str] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    pattern: Optional[str] = None
    items: Optional[Dict[str, Any]] = None


class RequestBodySchema(BaseModelWithConfigDict):
    """Declared request body of an endpoint."""

    required: bool = False
    description: Optional[str] = None
    content_type: str = "application/json"
    properties: Optional[Dict[str, RequestBodyProperty]] = None


class EndpointConfig(BaseModelWithConfigDict):
    """The ``config`` blob of an endpoint.

    Attributes:
        parameters: Declared parameters in order
        request_body: Declared request body, if any
        response_schema: Informational response schema
        timeout: Upstream timeout in milliseconds

    Examples:
        >>> cfg = EndpointConfig.model_validate({"parameters": [{"name": "id", "required": True}], "timeout": 5000})
        >>> cfg.parameters[0].name, cfg.timeout
        ('id', 5000)
    """

    parameters: List[EndpointParameter] = Field(default_factory=list)
    request_body: Optional[RequestBodySchema] = None
    response_schema: Optional[Dict[str, Any]] = None
    timeout: Optional[int] = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        """Treat a null parameter list as empty.

        Args:
            v: Raw value

        Returns:
            Parameter list
        """
        return [] if v is None else v


class Endpoint(BaseModelWithConfigDict):
    """A REST operation declared on a bridge.

    ``method`` and ``path`` may be missing on malformed stored configs; the
    dispatcher reports those as invalid endpoint configuration.

    Examples:
        >>> ep = Endpoint.model_validate({"id": "e1", "name": "List users", "method": "get", "path": "/users"})
        >>> ep.method
        'GET'
        >>> ep.parameters
        []
    """

    id: Optional[str] = None
    name: str = ""
    method: Optional[str] = None
    path: Optional[str] = None
    description: Optional[str] = None
    config: EndpointConfig = Field(default_factory=EndpointConfig)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v):
        """Normalize the HTTP method to upper case.

        Args:
            v: Raw method

        Returns:
            Upper-cased method or None
        """
        return v.upper() if isinstance(v, str) and v else None

    @field_validator("config", mode="before")
    @classmethod
    def _none_to_config(cls, v):
        """Treat a null config as empty.

        Args:
            v: Raw config

        Returns:
            Config mapping
        """
        return {} if v is None else v

    @property
    def parameters(self) -> List[EndpointParameter]:
        """Declared parameters.

        Returns:
            List[EndpointParameter]: Parameters from the config blob
        """
        return self.config.parameters

    @property
    def request_body(self) -> Optional[RequestBodySchema]:
        """Declared request body.

        Returns:
            Optional[RequestBodySchema]: Request body from the config blob
        """
        return self.config.request_body

    @property
    def accepts_body(self) -> bool:
        """Whether the method carries a request body.

        Returns:
            bool: True for POST, PUT and PATCH
        """
        return self.method in BODY_METHODS


class BridgeConfig(BaseModelWithConfigDict):
    """Dispatchable view of a bridge, loaded from the ``bridges`` table.

    Resources and prompts are not part of this view; they are fetched on
    demand by the repository.

    Examples:
        >>> bridge = BridgeConfig.model_validate({"id": "b1", "name": "Pets", "baseUrl": "https://api.example.com"})
        >>> bridge.auth.type, bridge.access.auth_required
        ('none', False)
    """

    id: str
    slug: Optional[str] = None
    name: str
    description: Optional[str] = None
    base_url: str
    enabled: bool = True
    auth_config: Optional[AuthConfig] = None
    headers: Optional[Dict[str, Any]] = None
    endpoints: List[Endpoint] = Field(default_factory=list)
    mcp_tools: Optional[List[Dict[str, Any]]] = None
    access_config: Optional[AccessConfig] = None

    @field_validator("auth_config", "access_config", mode="before")
    @classmethod
    def decrypt_stored_secrets(cls, v: Any) -> Any:
        """Decrypt secrets of stored configs.

        Args:
            v: Stored config dict or an already built model

        Returns:
            The config with plaintext secrets
        """
        return decrypt_secrets(v) if isinstance(v, dict) else v

    @property
    def auth(self) -> AuthConfig:
        """Upstream auth config, defaulting to no auth.

        Returns:
            AuthConfig: Effective config
        """
        return self.auth_config or AuthConfig()

    @property
    def access(self) -> AccessConfig:
        """Access policy, defaulting to open access.

        Returns:
            AccessConfig: Effective policy
        """
        return self.access_config or AccessConfig()


# --- Admin API ---


class EndpointCreate(BaseModelWithConfigDict):
    """Endpoint declaration submitted with a bridge."""

    name: str = Field(..., min_length=1)
    method: str
    path: str = Field(..., min_length=1)
    description: Optional[str] = None
    config: EndpointConfig = Field(default_factory=EndpointConfig)

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Restrict methods to the supported set.

        Args:
            v: Raw method

        Returns:
            str: Upper-cased method

        Raises:
            ValueError: For unsupported methods

        Examples:
            >>> EndpointCreate.validate_method("patch")
            'PATCH'
        """
        v = v.upper()
        if v not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {v}")
        return v


class EndpointRead(BaseModelWithConfigDict):
    """Endpoint as returned by the admin API."""

    id: str
    name: str
    method: Optional[str] = None
    path: Optional[str] = None
    description: Optional[str] = None
    config: Optional[Dict[str, Any]] = None


def _validate_tool_list(tools: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    """Check explicit tool definitions have valid, unique names.

    Args:
        tools: Raw tool definitions

    Returns:
        The same definitions

    Raises:
        ValueError: On invalid or duplicate names
    """
    if tools is None:
        return tools
    seen = set()
    for tool in tools:
        name = tool.get("name")
        if not isinstance(name, str) or not is_valid_tool_name(name):
            raise ValueError(f"Tool name must match ^[a-z][a-z0-9_]{{2,}}$: {name!r}")
        if name in seen:
            raise ValueError(f"Duplicate tool name: {name}")
        seen.add(name)
    return tools


def _validate_base_url(v: Optional[str]) -> Optional[str]:
    """Require an absolute HTTP URL.

    Args:
        v: Raw URL

    Returns:
        The URL

    Raises:
        ValueError: For non HTTP URLs
    """
    if v is not None and not v.startswith(("http://", "https://")):
        raise ValueError("Base URL must start with http:// or https://")
    return v


def _validate_slug(v: Optional[str]) -> Optional[str]:
    """Require a URL-safe slug.

    Args:
        v: Raw slug

    Returns:
        The slug or None

    Raises:
        ValueError: For slugs with other characters
    """
    if v is None or v == "":
        return None
    if not SLUG_PATTERN.match(v):
        raise ValueError("Slug must contain only lower-case letters, digits and hyphens")
    return v


class BridgeFieldValidators(BaseModelWithConfigDict):
    """Field checks shared by bridge create and update payloads."""

    @field_validator("base_url", check_fields=False)
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Require an absolute HTTP URL.

        Args:
            v: Raw URL

        Returns:
            The URL

        Examples:
            >>> BridgeFieldValidators.validate_base_url("https://api.example.com/v1")
            'https://api.example.com/v1'
        """
        return _validate_base_url(v)

    @field_validator("slug", check_fields=False)
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        """Require a URL-safe slug; empty strings mean no slug.

        Args:
            v: Raw slug

        Returns:
            The slug or None

        Examples:
            >>> BridgeFieldValidators.validate_slug("") is None
            True
        """
        return _validate_slug(v)

    @field_validator("mcp_tools", check_fields=False)
    @classmethod
    def validate_tools(cls, v: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
        """Require valid, unique explicit tool names.

        Args:
            v: Raw tool definitions

        Returns:
            The definitions
        """
        return _validate_tool_list(v)


class BridgeCreate(BridgeFieldValidators):
    """Payload creating a bridge.

    Examples:
        >>> b = BridgeCreate.model_validate({"name": "Pets", "baseUrl": "https://pets.example.com", "slug": "pets"})
        >>> b.base_url
        'https://pets.example.com'
        >>> from pydantic import ValidationError
        >>> try:
        ...     BridgeCreate.model_validate({"name": "Pets", "baseUrl": "ftp://x"})
        ... except ValidationError as e:
        ...     print(e.errors()[0]["loc"])
        ('base_url',)
    """

    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    base_url: str
    enabled: bool = True
    auth_config: AuthConfig = Field(default_factory=AuthConfig)
    headers: Dict[str, Any] = Field(default_factory=dict)
    endpoints: List[EndpointCreate] = Field(default_factory=list)
    mcp_tools: Optional[List[Dict[str, Any]]] = None
    mcp_resources: Optional[List[Dict[str, Any]]] = None
    mcp_prompts: Optional[List[Dict[str, Any]]] = None
    access_config: AccessConfig = Field(default_factory=AccessConfig)


class BridgeUpdate(BridgeFieldValidators):
    """Payload updating a bridge; omitted fields are left unchanged.

    Supplying ``endpoints`` replaces the whole endpoint list.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None
    base_url: Optional[str] = None
    enabled: Optional[bool] = None
    auth_config: Optional[AuthConfig] = None
    headers: Optional[Dict[str, Any]] = None
    endpoints: Optional[List[EndpointCreate]] = None
    mcp_tools: Optional[List[Dict[str, Any]]] = None
    mcp_resources: Optional[List[Dict[str, Any]]] = None
    mcp_prompts: Optional[List[Dict[str, Any]]] = None
    access_config: Optional[AccessConfig] = None


class BridgeRead(BaseModelWithConfigDict):
    """Bridge as returned by the admin API."""

    id: str
    slug: Optional[str] = None
    name: str
    description: Optional[str] = None
    base_url: str
    enabled: bool
    auth_config: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, Any]] = None
    endpoints: List[EndpointRead] = Field(default_factory=list)
    mcp_tools: Optional[List[Dict[str, Any]]] = None
    mcp_resources: Optional[List[Dict[str, Any]]] = None
    mcp_prompts: Optional[List[Dict[str, Any]]] = None
    access_config: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("auth_config", "access_config", mode="before")
    @classmethod
    def hide_secrets(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Replace stored secrets with a mask.

        Args:
            v: Stored config

        Returns:
            The config without secret values

        Examples:
            >>> BridgeRead.hide_secrets({"type": "bearer", "token": "enc:abc"})
            {'type': 'bearer', 'token': '********'}
        """
        return mask_secrets(v)


class TokenCreate(BaseModelWithConfigDict):
    """Payload creating an access token."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    expires_in_days: Optional[int] = Field(None, ge=1, le=3650)


class TokenUpdate(BaseModelWithConfigDict):
    """Payload updating an access token."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class TokenRead(BaseModelWithConfigDict):
    """Access token metadata; the secret itself is never listed."""

    id: str
    bridge_id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime


class TokenCreateResponse(BaseModelWithConfigDict):
    """Response to token creation, carrying the secret once."""

    token: TokenRead
    access_token: str


class BridgeLogRead(BaseModelWithConfigDict):
    """A gateway event recorded against a bridge."""

    id: int
    bridge_id: str
    level: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime


# --- RPC Schemas ---


class RPCParams(BaseModel):
    """Base for typed per-method parameters; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


class EmptyParams(RPCParams):
    """Parameters of methods that take none the gateway uses (initialize, */list)."""


class ToolCallParams(RPCParams):
    """Parameters of ``tools/call``.

    Examples:
        >>> ToolCallParams.model_validate({"name": "get_users_list", "arguments": None}).arguments
        {}
    """

    name: str = Field(..., min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _none_to_dict(cls, v):
        """Treat null arguments as none given.

        Args:
            v: Raw arguments

        Returns:
            Argument mapping
        """
        return {} if v is None else v


class ResourceReadParams(RPCParams):
    """Parameters of ``resources/read``."""

    uri: str = Field(..., min_length=1)


class PromptGetParams(ToolCallParams):
    """Parameters of ``prompts/get``."""
