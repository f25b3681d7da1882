# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/request_compiler.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Request Compiler and Executor.
This module turns an endpoint declaration plus tool arguments into a concrete
outbound HTTP request, then executes it against the bridge's upstream API.

Compilation handles:
- Path placeholder substitution (``{name}`` and ``:name`` styles)
- Query string accumulation
- Upstream authentication (bearer, API key in header or query, basic)
- Base URL resolution and static header merging
- JSON request bodies for POST, PUT and PATCH

Examples:
    >>> from mcpbridge.schemas import BridgeConfig, Endpoint
    >>> bridge = BridgeConfig.model_validate({"id": "b1", "name": "Users", "baseUrl": "https://api.example.com/v1"})
    >>> endpoint = Endpoint.model_validate({
    ...     "name": "Get user", "method": "GET", "path": "/users/{id}",
    ...     "config": {"parameters": [{"name": "id", "required": True, "location": "path", "style": "replacement"}]},
    ... })
    >>> compile_request(bridge, endpoint, {"id": 42}).url
    'https://api.example.com/v1/users/42'
"""

# Standard
import base64
from dataclasses import dataclass, field
import json
import re
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode, urljoin

# Third-Party
import httpx

# First-Party
from mcpbridge.config import settings
from mcpbridge.schemas import AuthConfig, AuthType, BridgeConfig, Endpoint, EndpointParameter, KeyLocation, ParameterLocation, ParameterStyle
from mcpbridge.services.logging_service import LoggingService

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)


class ApiCallError(Exception):
    """Base class for outbound API call failures.

    Attributes:
        code: Machine readable failure class

    Examples:
        >>> err = ApiCallError("boom")
        >>> str(err), err.code
        ('boom', 'API_ERROR')
    """

    code = "API_ERROR"


class RequestCompilationError(ApiCallError):
    """Raised when an endpoint and its arguments cannot form a request.

    Examples:
        >>> RequestCompilationError("Required parameter 'id' is missing").code
        'COMPILATION_ERROR'
    """

    code = "COMPILATION_ERROR"


class UpstreamAuthError(ApiCallError):
    """Raised when the bridge's upstream credentials are incomplete.

    The underlying cause is chained as ``__cause__``.

    Examples:
        >>> UpstreamAuthError("Authentication configuration error").code
        'AUTH_ERROR'
    """

    code = "AUTH_ERROR"


class UpstreamHTTPError(ApiCallError):
    """Raised when the upstream API answers with a non-2xx status.

    Examples:
        >>> err = UpstreamHTTPError(503, "Service Unavailable", "try later")
        >>> str(err)
        'HTTP 503 Service Unavailable: try later'
        >>> err.status_code, err.code
        (503, 'HTTP_ERROR')
    """

    code = "HTTP_ERROR"

    def __init__(self, status_code: int, reason: str, body: str):
        """Initialize the error.

        Args:
            status_code: Upstream HTTP status
            reason: Upstream reason phrase
            body: Upstream response body text
        """
        self.status_code = status_code
        self.reason = reason
        self.body = body
        message = f"HTTP {status_code} {reason}".rstrip()
        if body:
            message += f": {body}"
        super().__init__(message)


class UpstreamConnectionError(ApiCallError):
    """Raised when the upstream API cannot be reached or times out."""

    code = "CONNECTION_ERROR"


class ResponseParseError(ApiCallError):
    """Raised when a successful upstream response cannot be read or decoded."""

    code = "PARSE_ERROR"


@dataclass
class CompiledRequest:
    """A concrete outbound request.

    Attributes:
        url: Absolute URL including the query string
        method: HTTP method
        headers: Outbound headers
        body: JSON-serialized body, or None
        timeout: Per-request timeout in seconds, or None for the client default
    """

    url: str
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    timeout: Optional[float] = None


@dataclass
class ApiCallResult:
    """Outcome of a successful upstream call.

    Attributes:
        data: Parsed JSON, or the raw text for non-JSON responses
        status_code: Upstream HTTP status
        elapsed_ms: Wall time of the call in milliseconds
    """

    data: Any
    status_code: int
    elapsed_ms: float


def _is_present(args: Dict[str, Any], name: str) -> bool:
    """Check whether an argument was supplied.

    Args:
        args: Tool arguments
        name: Argument name

    Returns:
        bool: True when the key exists with a non-null value

    Examples:
        >>> _is_present({"a": 0, "b": None}, "a"), _is_present({"a": 0, "b": None}, "b"), _is_present({}, "c")
        (True, False, False)
    """
    return args.get(name) is not None


def _stringify(value: Any) -> str:
    """Render an argument for placement in a URL.

    Args:
        value: Argument value

    Returns:
        str: Text form

    Examples:
        >>> _stringify(True), _stringify(3), _stringify([1, 2]), _stringify({"a": 1})
        ('true', '3', '[1, 2]', '{"a": 1}')
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _colon_placeholder(name: str) -> "re.Pattern[str]":
    """Match a ``:name`` placeholder without matching longer names.

    Args:
        name: Parameter name

    Returns:
        Compiled pattern
    """
    return re.compile(rf":{re.escape(name)}(?![A-Za-z0-9_])")


def resolve_location(param: EndpointParameter, path: str) -> str:
    """Effective location of a parameter.

    Args:
        param: Declared parameter
        path: Endpoint path template

    Returns:
        str: ``path``, ``query`` or ``body``

    Examples:
        >>> from mcpbridge.schemas import EndpointParameter
        >>> resolve_location(EndpointParameter(name="id"), "/users/{id}")
        'path'
        >>> resolve_location(EndpointParameter(name="id"), "/users/:id")
        'path'
        >>> resolve_location(EndpointParameter(name="limit"), "/users")
        'query'
        >>> resolve_location(EndpointParameter(name="email", location="body"), "/users")
        'body'
    """
    if param.location:
        return ParameterLocation(param.location).value
    if f"{{{param.name}}}" in path or _colon_placeholder(param.name).search(path):
        return ParameterLocation.PATH.value
    return ParameterLocation.QUERY.value


def resolve_style(param: EndpointParameter, path: str) -> str:
    """Effective placeholder style of a path parameter.

    Args:
        param: Declared parameter
        path: Endpoint path template

    Returns:
        str: ``replacement`` or ``parameter``

    Examples:
        >>> from mcpbridge.schemas import EndpointParameter
        >>> resolve_style(EndpointParameter(name="id"), "/users/{id}"), resolve_style(EndpointParameter(name="id"), "/users/:id")
        ('replacement', 'parameter')
    """
    if param.style:
        return ParameterStyle(param.style).value
    if f"{{{param.name}}}" in path:
        return ParameterStyle.REPLACEMENT.value
    return ParameterStyle.PARAMETER.value


def _set_header(headers: Dict[str, str], name: str, value: str) -> None:
    """Set a header, replacing any existing key that differs only in case.

    Args:
        headers: Header mapping to update
        name: Header name
        value: Header value

    Examples:
        >>> h = {"Content-Type": "application/json"}
        >>> _set_header(h, "content-type", "text/plain")
        >>> h
        {'content-type': 'text/plain'}
    """
    for existing in [key for key in headers if key.lower() == name.lower()]:
        del headers[existing]
    headers[name] = value


def apply_auth(auth: AuthConfig, headers: Dict[str, str], query: List[Tuple[str, str]]) -> None:
    """Apply upstream credentials to the outbound request.

    Args:
        auth: Bridge upstream auth config
        headers: Outbound headers, updated in place
        query: Query string accumulator, updated in place

    Raises:
        ValueError: If a credential required by the scheme is missing

    Examples:
        >>> from mcpbridge.schemas import AuthConfig
        >>> headers, query = {}, []
        >>> apply_auth(AuthConfig(type="bearer", token=" abc "), headers, query)
        >>> headers
        {'Authorization': 'Bearer abc'}
        >>> headers, query = {}, []
        >>> apply_auth(AuthConfig(type="apikey", api_key="k", key_location="query", param_name="api_key"), headers, query)
        >>> headers, query
        ({}, [('api_key', 'k')])
        >>> headers = {}
        >>> apply_auth(AuthConfig(type="basic", username="u", password="p"), headers, [])
        >>> headers
        {'Authorization': 'Basic dTpw'}
        >>> apply_auth(AuthConfig(type="bearer"), {}, [])
        Traceback (most recent call last):
            ...
        ValueError: Bearer token is required
    """
    auth_type = AuthType(auth.type or AuthType.NONE)

    if auth_type == AuthType.BEARER:
        if not auth.token:
            raise ValueError("Bearer token is required")
        _set_header(headers, "Authorization", f"Bearer {auth.token.strip()}")
    elif auth_type == AuthType.APIKEY:
        if not auth.api_key:
            raise ValueError("API key is required")
        if auth.key_location == KeyLocation.QUERY:
            query.append((auth.param_name or auth.header_name or "api_key", auth.api_key.strip()))
        else:
            _set_header(headers, auth.header_name or "X-API-Key", auth.api_key.strip())
    elif auth_type == AuthType.BASIC:
        if not auth.username or not auth.password:
            raise ValueError("Username and password are required for basic authentication")
        credentials = base64.b64encode(f"{auth.username}:{auth.password}".encode("utf-8")).decode("ascii")
        _set_header(headers, "Authorization", f"Basic {credentials}")


def apply_static_headers(headers: Dict[str, str], static_headers: Optional[Dict[str, Any]]) -> None:
    """Merge a bridge's static headers, overriding earlier headers of the same name.

    Args:
        headers: Outbound headers, updated in place
        static_headers: Bridge headers; non-string values are skipped

    Examples:
        >>> h = {"Authorization": "Bearer abc"}
        >>> apply_static_headers(h, {"authorization": "Token xyz", "X-Retries": 3})
        >>> h
        {'authorization': 'Token xyz'}
    """
    for name, value in (static_headers or {}).items():
        if isinstance(value, str):
            _set_header(headers, name, value)


def join_base_url(base_url: str, path: str) -> str:
    """Resolve a path against the bridge base URL with exactly one slash between.

    Args:
        base_url: Bridge base URL
        path: Endpoint path, possibly with a query string

    Returns:
        str: Absolute URL

    Examples:
        >>> join_base_url("https://api.example.com/v1", "/users")
        'https://api.example.com/v1/users'
        >>> join_base_url("https://api.example.com/v1/", "users?limit=1")
        'https://api.example.com/v1/users?limit=1'
    """
    if not base_url.endswith("/"):
        base_url += "/"
    if path.startswith("/"):
        path = path[1:]
    return urljoin(base_url, path)


def _build_body(endpoint: Endpoint, args: Dict[str, Any], body_params: List[EndpointParameter]) -> Optional[Any]:
    """Collect the JSON body of a POST, PUT or PATCH call.

    Args:
        endpoint: Endpoint declaration
        args: Tool arguments
        body_params: Parameters located in the body

    Returns:
        The body value, or None when nothing was collected
    """
    body: Dict[str, Any] = {}
    for param in body_params:
        if _is_present(args, param.name):
            body[param.name] = args[param.name]

    request_body = endpoint.request_body
    if request_body is not None:
        if request_body.properties:
            for name in request_body.properties:
                if name not in body and _is_present(args, name):
                    body[name] = args[name]
        elif _is_present(args, "requestBody"):
            return args["requestBody"]

    return body or None


def compile_request(bridge: BridgeConfig, endpoint: Optional[Endpoint], args: Dict[str, Any]) -> CompiledRequest:
    """Compile an endpoint call into a concrete HTTP request.

    Args:
        bridge: Bridge owning the endpoint
        endpoint: Endpoint to call
        args: Tool arguments

    Returns:
        CompiledRequest: The outbound request

    Raises:
        RequestCompilationError: If the endpoint or its path is missing, or a required parameter is absent
        UpstreamAuthError: If the bridge's upstream credentials are incomplete

    Examples:
        >>> from mcpbridge.schemas import BridgeConfig, Endpoint
        >>> bridge = BridgeConfig.model_validate({
        ...     "id": "b1", "name": "Users", "baseUrl": "https://api.example.com",
        ...     "authConfig": {"type": "apikey", "apiKey": "k", "keyLocation": "query", "paramName": "api_key"},
        ... })
        >>> ep = Endpoint.model_validate({"name": "List", "method": "GET", "path": "/users", "config": {"parameters": [{"name": "limit", "type": "number"}]}})
        >>> req = compile_request(bridge, ep, {"limit": 10})
        >>> req.url, req.body
        ('https://api.example.com/users?limit=10&api_key=k', None)
        >>> "X-API-Key" in req.headers
        False
        >>> ep = Endpoint.model_validate({"name": "Get", "method": "GET", "path": "/users/{id}", "config": {"parameters": [{"name": "id", "required": True}]}})
        >>> compile_request(bridge, ep, {})
        Traceback (most recent call last):
            ...
        mcpbridge.services.request_compiler.RequestCompilationError: Required parameter 'id' is missing
    """
    if endpoint is None:
        raise RequestCompilationError("Endpoint is missing")
    if not endpoint.path:
        raise RequestCompilationError(f"Endpoint '{endpoint.name}' has no path")

    template = endpoint.path
    url = template
    query: List[Tuple[str, str]] = []
    body_params: List[EndpointParameter] = []

    for param in endpoint.parameters:
        if not _is_present(args, param.name):
            if param.required:
                raise RequestCompilationError(f"Required parameter '{param.name}' is missing")
            continue

        location = resolve_location(param, template)
        value = args[param.name]
        if location == ParameterLocation.PATH:
            encoded = quote(_stringify(value), safe="")
            if resolve_style(param, template) == ParameterStyle.REPLACEMENT:
                url = url.replace(f"{{{param.name}}}", encoded)
            else:
                url = _colon_placeholder(param.name).sub(lambda _: encoded, url)
        elif location == ParameterLocation.QUERY:
            query.append((param.name, _stringify(value)))
        else:
            body_params.append(param)

    headers: Dict[str, str] = {"Content-Type": "application/json"}
    try:
        apply_auth(bridge.auth, headers, query)
    except ValueError as e:
        raise UpstreamAuthError(f"Authentication configuration error: {e}") from e

    if query:
        url += ("&" if "?" in url else "?") + urlencode(query)

    url = join_base_url(bridge.base_url, url)

    apply_static_headers(headers, bridge.headers)

    body = None
    if endpoint.accepts_body:
        payload = _build_body(endpoint, args, body_params)
        if payload is not None:
            body = json.dumps(payload)

    timeout = endpoint.config.timeout / 1000.0 if endpoint.config.timeout else None
    return CompiledRequest(url=url, method=endpoint.method or "GET", headers=headers, body=body, timeout=timeout)


class RequestExecutor:
    """Executes compiled requests with a shared ``httpx.AsyncClient``.

    No retries are attempted: a failed call surfaces as a single
    :class:`ApiCallError`.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """Initialize the executor.

        Args:
            client: Shared HTTP client; one is created from settings when omitted
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.upstream_timeout, verify=not settings.skip_ssl_verify)

    async def close(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()

    async def send(self, compiled: CompiledRequest) -> Tuple[httpx.Response, float]:
        """Issue a compiled request without interpreting the response.

        Args:
            compiled: Request to send

        Returns:
            Tuple[httpx.Response, float]: The upstream response and the wall time in milliseconds

        Raises:
            UpstreamConnectionError: On network failure or timeout
        """
        kwargs: Dict[str, Any] = {}
        if compiled.timeout is not None:
            kwargs["timeout"] = compiled.timeout

        start_time = time.monotonic()
        try:
            response = await self._client.request(compiled.method, compiled.url, headers=compiled.headers, content=compiled.body, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamConnectionError(f"Request to {compiled.url} timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamConnectionError(f"Request to {compiled.url} failed: {e}") from e
        return response, (time.monotonic() - start_time) * 1000

    async def execute(self, compiled: CompiledRequest) -> ApiCallResult:
        """Issue a compiled request.

        Args:
            compiled: Request to send

        Returns:
            ApiCallResult: Parsed response data with timing

        Raises:
            UpstreamConnectionError: On network failure or timeout
            UpstreamHTTPError: On a non-2xx status
            ResponseParseError: If the response body cannot be read or decoded
        """
        response, elapsed_ms = await self.send(compiled)

        if not response.is_success:
            logger.warning(f"{compiled.method} {compiled.url} returned HTTP {response.status_code} in {elapsed_ms:.0f}ms")
            raise UpstreamHTTPError(response.status_code, response.reason_phrase, response.text)

        content_type = response.headers.get("content-type", "")
        try:
            if "application/json" in content_type and response.content:
                data = response.json()
            else:
                data = response.text
        except ValueError as e:
            raise ResponseParseError(f"Failed to parse response from {compiled.url}: {e}") from e

        logger.debug(f"{compiled.method} {compiled.url} returned HTTP {response.status_code} in {elapsed_ms:.0f}ms")
        return ApiCallResult(data=data, status_code=response.status_code, elapsed_ms=elapsed_ms)

    async def invoke(self, bridge: BridgeConfig, endpoint: Optional[Endpoint], args: Dict[str, Any]) -> ApiCallResult:
        """Compile and execute an endpoint call.

        Args:
            bridge: Bridge owning the endpoint
            endpoint: Endpoint to call
            args: Tool arguments

        Returns:
            ApiCallResult: Parsed response data with timing
        """
        return await self.execute(compile_request(bridge, endpoint, args))
