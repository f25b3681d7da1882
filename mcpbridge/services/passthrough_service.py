# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/passthrough_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

REST Passthrough Service.
This module relays plain HTTP calls made to ``/mcp/{bridge}/{path}`` to the
bridge's upstream API. The method and path select a declared endpoint, whose
``{name}`` and ``:name`` placeholders match single path segments. The
inbound query string and body are forwarded as they are, with the bridge's
upstream auth and static headers applied. The upstream status and body are
returned to the caller.

Examples:
    >>> from mcpbridge.services.passthrough_service import resolve_path
    >>> resolve_path("/users/{id}/posts/:post", "/users/7/posts/9")
    '/users/7/posts/9'
"""

# Standard
from dataclasses import dataclass, field
import re
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import parse_qsl, quote, urlencode

# Third-Party
import httpx
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.models import LogLevel
from mcpbridge.schemas import BODY_METHODS, BridgeConfig, Endpoint
from mcpbridge.services.access_control import AccessControlGuard
from mcpbridge.services.bridge_service import BridgeService
from mcpbridge.services.logging_service import BridgeEventLogger, LoggingService
from mcpbridge.services.request_compiler import ApiCallError, apply_auth, apply_static_headers, CompiledRequest, join_base_url, RequestExecutor, UpstreamAuthError
from mcpbridge.utils.error_formatter import format_error_message
from mcpbridge.validation.jsonrpc import JSONRPCError

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

# {name} anywhere in a segment, or :name at the start of one
PLACEHOLDER_PATTERN = re.compile(r"\{[^/{}]+\}|(?<=/):[A-Za-z_][A-Za-z0-9_]*")


@dataclass
class PassthroughResult:
    """Body, HTTP status and extra headers of a relayed call.

    Attributes:
        body: JSON-serializable response body
        status_code: HTTP status
        headers: Extra HTTP headers
    """

    body: Any
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


def _template_regex(template: str) -> "re.Pattern[str]":
    """Compile an endpoint path template, capturing each placeholder.

    Args:
        template: Endpoint path such as ``/users/{id}``

    Returns:
        Pattern with one group per placeholder

    Examples:
        >>> _template_regex("/users/{id}").fullmatch("/users/7").groups()
        ('7',)
    """
    pattern, position = [], 0
    for match in PLACEHOLDER_PATTERN.finditer(template):
        pattern.append(re.escape(template[position : match.start()]))
        pattern.append("([^/]+)")
        position = match.end()
    pattern.append(re.escape(template[position:]))
    return re.compile("".join(pattern))


def path_matches(template: str, path: str) -> bool:
    """Match a request path against an endpoint path template.

    Args:
        template: Endpoint path such as ``/users/{id}``
        path: Request path relative to the bridge

    Returns:
        bool: True when the path fits the template

    Examples:
        >>> path_matches("/users/{id}", "/users/7")
        True
        >>> path_matches("/users/:id", "/users/7")
        True
        >>> path_matches("/users/{id}", "/users/7/posts")
        False
        >>> path_matches("/v1/items:batch", "/v1/items:batch")
        True
    """
    return template == path or _template_regex(template).fullmatch(path) is not None


def resolve_path(template: str, path: str) -> str:
    """Fill a template's placeholders from the request path.

    Args:
        template: Endpoint path
        path: Request path with concrete values

    Returns:
        str: Template with placeholders replaced; the template itself when the path does not fit

    Examples:
        >>> resolve_path("/users/{id}", "/users/a b")
        '/users/a%20b'
        >>> resolve_path("/files/{name}.json", "/files/report.json")
        '/files/report.json'
        >>> resolve_path("/users/{id}", "/users")
        '/users/{id}'
    """
    match = _template_regex(template).fullmatch(path)
    if match is None:
        return template
    values = iter(match.groups())
    return PLACEHOLDER_PATTERN.sub(lambda _: quote(next(values), safe=""), template)


def match_endpoint(endpoints: List[Endpoint], method: str, path: str) -> Optional[Endpoint]:
    """Find the first endpoint declared for a method and path.

    Args:
        endpoints: Bridge endpoints in declaration order
        method: HTTP method
        path: Request path relative to the bridge

    Returns:
        Optional[Endpoint]: The endpoint, or None

    Examples:
        >>> eps = [Endpoint(name="List", method="GET", path="/users"), Endpoint(name="Get", method="GET", path="/users/{id}")]
        >>> match_endpoint(eps, "get", "/users/3").name
        'Get'
        >>> match_endpoint(eps, "DELETE", "/users/3") is None
        True
    """
    method = method.upper()
    return next((ep for ep in endpoints if ep.method == method and ep.path and path_matches(ep.path, path)), None)


def compile_passthrough(bridge: BridgeConfig, endpoint: Endpoint, path: str, query_string: str, body: bytes) -> CompiledRequest:
    """Build the upstream request for a relayed call.

    Args:
        bridge: Bridge being called
        endpoint: Matched endpoint
        path: Request path relative to the bridge
        query_string: Raw inbound query string
        body: Raw inbound body

    Returns:
        CompiledRequest: The outbound request

    Raises:
        UpstreamAuthError: If the bridge's upstream credentials are incomplete

    Examples:
        >>> bridge = BridgeConfig.model_validate({
        ...     "id": "b1", "name": "Users", "baseUrl": "https://api.example.com/v1",
        ...     "authConfig": {"type": "apikey", "apiKey": "k", "keyLocation": "query"},
        ...     "headers": {"X-Client": "bridge"},
        ... })
        >>> ep = Endpoint(name="Get", method="GET", path="/users/{id}")
        >>> req = compile_passthrough(bridge, ep, "/users/7", "expand=posts", b"")
        >>> req.url, req.body, req.headers["X-Client"]
        ('https://api.example.com/v1/users/7?expand=posts&api_key=k', None, 'bridge')
    """
    query = parse_qsl(query_string, keep_blank_values=True)
    headers: Dict[str, str] = {"Content-Type": "application/json"}
    try:
        apply_auth(bridge.auth, headers, query)
    except ValueError as e:
        raise UpstreamAuthError(f"Authentication configuration error: {e}") from e
    apply_static_headers(headers, bridge.headers)

    url = join_base_url(bridge.base_url, resolve_path(endpoint.path, path))
    if query:
        url += "?" + urlencode(query)

    content = body.decode("utf-8") if endpoint.method in BODY_METHODS and body else None
    timeout = endpoint.config.timeout / 1000.0 if endpoint.config.timeout else None
    return CompiledRequest(url=url, method=endpoint.method, headers=headers, body=content, timeout=timeout)


def _response_body(response: httpx.Response) -> Any:
    """Decode an upstream body as JSON, falling back to text.

    Args:
        response: Upstream response

    Returns:
        Any: Parsed JSON or the raw text
    """
    try:
        return response.json()
    except ValueError:
        return response.text


class PassthroughService:
    """Relays REST calls to a bridge's upstream API.

    Shares its collaborators with the JSON-RPC dispatcher, so both apply the
    same access policy and reuse one HTTP client.
    """

    def __init__(self, bridge_service: BridgeService, executor: RequestExecutor, event_logger: BridgeEventLogger, guard: AccessControlGuard):
        """Initialize the service.

        Args:
            bridge_service: Bridge repository
            executor: Outbound request executor
            event_logger: Per-bridge event sink
            guard: Access control guard
        """
        self.bridge_service = bridge_service
        self.executor = executor
        self.event_logger = event_logger
        self.guard = guard

    async def relay(self, db: Session, bridge_identifier: str, method: str, path: str, query_string: str, body: bytes, headers: Mapping[str, str]) -> PassthroughResult:
        """Relay one REST call.

        Args:
            db: Database session
            bridge_identifier: Bridge id or slug from the URL
            method: Inbound HTTP method
            path: Path after the bridge identifier
            query_string: Raw inbound query string
            body: Raw inbound body
            headers: Inbound headers

        Returns:
            PassthroughResult: Upstream status and body, or an ``{"error": ...}`` body
        """
        api_path = "/" + path.lstrip("/")
        bridge: Optional[BridgeConfig] = None
        try:
            bridge = await self.bridge_service.get_bridge(db, bridge_identifier)
            if bridge is None:
                return PassthroughResult({"error": "Bridge not found"}, 404)

            try:
                await self.guard.authenticate(db, bridge, headers)
            except JSONRPCError as e:
                return PassthroughResult({"error": e.message}, e.http_status, dict(e.headers))

            endpoint = match_endpoint(bridge.endpoints, method, api_path)
            if endpoint is None:
                available = [f"{ep.method} {ep.path}" for ep in bridge.endpoints]
                return PassthroughResult({"error": f"No endpoint found for {method} {api_path}", "availableEndpoints": available}, 404)

            compiled = compile_passthrough(bridge, endpoint, api_path, query_string, body)
            response, elapsed_ms = await self.executor.send(compiled)
            await self.event_logger.log(
                bridge.id,
                LogLevel.INFO if response.is_success else LogLevel.WARNING,
                f"REST request: {method} {api_path}",
                {"endpointId": endpoint.id, "statusCode": response.status_code, "responseTime": round(elapsed_ms)},
            )
            return PassthroughResult(_response_body(response), response.status_code)
        except ApiCallError as e:
            logger.warning(f"REST request {method} {api_path} to bridge {bridge_identifier} failed: {e}")
            await self._log_failure(bridge, method, api_path, e)
            return PassthroughResult({"error": str(e)}, 502)
        except Exception as e:
            logger.exception(f"Unhandled error relaying {method} {api_path} to bridge {bridge_identifier}")
            await self._log_failure(bridge, method, api_path, e)
            return PassthroughResult({"error": "Internal server error"}, 500)

    async def _log_failure(self, bridge: Optional[BridgeConfig], method: str, path: str, error: Exception) -> None:
        """Record a failed relay in the bridge event log.

        Args:
            bridge: Bridge, when it was resolved
            method: Inbound HTTP method
            path: Request path relative to the bridge
            error: The failure
        """
        if bridge is None:
            return
        details = {"method": method, "path": path, "error": format_error_message(error, with_traceback=True)}
        await self.event_logger.log(bridge.id, LogLevel.ERROR, f"REST request failed: {error}", details)
