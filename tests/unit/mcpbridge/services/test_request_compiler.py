# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/services/test_request_compiler.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Tests for outbound request compilation and execution.
"""

# Standard
import json

# Third-Party
import httpx
import pytest

# First-Party
from mcpbridge.schemas import BridgeConfig, Endpoint
from mcpbridge.services.request_compiler import (
    compile_request,
    RequestCompilationError,
    RequestExecutor,
    ResponseParseError,
    UpstreamAuthError,
    UpstreamConnectionError,
    UpstreamHTTPError,
)


def _bridge(**data) -> BridgeConfig:
    return BridgeConfig.model_validate({"id": "b1", "name": "Users API", "baseUrl": "https://api.example.com/v1", **data})


def _endpoint(method: str, path: str, parameters=None, **config) -> Endpoint:
    return Endpoint.model_validate({"id": "e1", "name": "Endpoint", "method": method, "path": path, "config": {"parameters": parameters or [], **config}})


class TestCompileRequest:
    """Tests for compile_request."""

    def test_replacement_and_parameter_styles(self):
        ep = _endpoint("GET", "/orgs/{org}/users/:userId", [{"name": "org", "required": True}, {"name": "userId", "required": True}])
        compiled = compile_request(_bridge(), ep, {"org": "a b/c", "userId": 7})
        assert compiled.url == "https://api.example.com/v1/orgs/a%20b%2Fc/users/7"
        assert compiled.method == "GET"
        assert compiled.body is None

    def test_colon_placeholder_does_not_match_longer_names(self):
        ep = _endpoint("GET", "/items/:id/:idx", [{"name": "id", "location": "path", "style": "parameter"}, {"name": "idx", "location": "path", "style": "parameter"}])
        assert compile_request(_bridge(), ep, {"id": 1, "idx": 2}).url.endswith("/items/1/2")

    def test_query_parameters(self):
        ep = _endpoint("GET", "/users", [{"name": "active", "type": "boolean"}, {"name": "q"}, {"name": "page"}])
        compiled = compile_request(_bridge(), ep, {"active": True, "q": "ann lee", "page": None})
        assert compiled.url == "https://api.example.com/v1/users?active=true&q=ann+lee"

    def test_query_appended_to_existing_query_string(self):
        ep = _endpoint("GET", "/users?sort=name", [{"name": "limit"}])
        assert compile_request(_bridge(), ep, {"limit": 5}).url == "https://api.example.com/v1/users?sort=name&limit=5"

    def test_missing_required_parameter(self):
        ep = _endpoint("GET", "/users/{id}", [{"name": "id", "required": True}])
        with pytest.raises(RequestCompilationError, match="Required parameter 'id' is missing"):
            compile_request(_bridge(), ep, {"id": None})

    def test_missing_endpoint_and_path(self):
        with pytest.raises(RequestCompilationError, match="Endpoint is missing"):
            compile_request(_bridge(), None, {})
        with pytest.raises(RequestCompilationError, match="has no path"):
            compile_request(_bridge(), Endpoint(name="Broken", method="GET"), {})

    def test_body_from_declared_fields_and_body_parameters(self):
        ep = _endpoint(
            "POST",
            "/users",
            [{"name": "email", "location": "body", "required": True}],
            requestBody={"properties": {"name": {"type": "string"}, "age": {"type": "integer"}}},
        )
        compiled = compile_request(_bridge(), ep, {"email": "a@example.com", "name": "Ann", "unused": 1})
        assert json.loads(compiled.body) == {"email": "a@example.com", "name": "Ann"}
        assert compiled.headers["Content-Type"] == "application/json"

    def test_raw_request_body(self):
        ep = _endpoint("PUT", "/blob", requestBody={"required": True})
        compiled = compile_request(_bridge(), ep, {"requestBody": {"anything": [1, 2]}})
        assert json.loads(compiled.body) == {"anything": [1, 2]}

    def test_get_never_has_body(self):
        ep = _endpoint("GET", "/users", [{"name": "filter", "location": "body"}])
        assert compile_request(_bridge(), ep, {"filter": "x"}).body is None

    def test_post_without_body_values(self):
        ep = _endpoint("POST", "/jobs/run", requestBody={"properties": {"force": {"type": "boolean"}}})
        assert compile_request(_bridge(), ep, {}).body is None

    def test_bearer_auth_and_static_headers(self):
        bridge = _bridge(authConfig={"type": "bearer", "token": "secret"}, headers={"authorization": "Custom override", "X-Tenant": "acme", "X-Ignored": 5})
        compiled = compile_request(bridge, _endpoint("GET", "/users"), {})
        assert compiled.headers == {"Content-Type": "application/json", "authorization": "Custom override", "X-Tenant": "acme"}

    def test_api_key_header(self):
        bridge = _bridge(authConfig={"type": "apikey", "apiKey": "k1", "headerName": "X-Key"})
        compiled = compile_request(bridge, _endpoint("GET", "/users"), {})
        assert compiled.headers["X-Key"] == "k1"

    def test_api_key_query(self):
        bridge = _bridge(authConfig={"type": "apikey", "apiKey": "k1", "keyLocation": "query"})
        compiled = compile_request(bridge, _endpoint("GET", "/users"), {})
        assert compiled.url == "https://api.example.com/v1/users?api_key=k1"

    def test_basic_auth(self):
        bridge = _bridge(authConfig={"type": "basic", "username": "u", "password": "p"})
        assert compile_request(bridge, _endpoint("GET", "/users"), {}).headers["Authorization"] == "Basic dTpw"

    @pytest.mark.parametrize(
        "auth,message",
        [
            ({"type": "bearer"}, "Bearer token is required"),
            ({"type": "apikey"}, "API key is required"),
            ({"type": "basic", "username": "u"}, "Username and password are required"),
        ],
    )
    def test_incomplete_auth(self, auth, message):
        with pytest.raises(UpstreamAuthError) as exc:
            compile_request(_bridge(authConfig=auth), _endpoint("GET", "/users"), {})
        assert str(exc.value).startswith("Authentication configuration error: ")
        assert message in str(exc.value)
        assert isinstance(exc.value.__cause__, ValueError)

    def test_timeout_in_seconds(self):
        assert compile_request(_bridge(), _endpoint("GET", "/users", timeout=2500), {}).timeout == 2.5
        assert compile_request(_bridge(), _endpoint("GET", "/users"), {}).timeout is None


class TestRequestExecutor:
    """Tests for RequestExecutor with a mock transport."""

    @staticmethod
    def _executor(handler) -> RequestExecutor:
        return RequestExecutor(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    @pytest.mark.asyncio
    async def test_json_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": 9})

        executor = self._executor(handler)
        ep = _endpoint("POST", "/users", requestBody={"properties": {"email": {"type": "string"}}})
        result = await executor.invoke(_bridge(), ep, {"email": "a@example.com"})

        assert result.data == {"id": 9}
        assert result.status_code == 201
        assert result.elapsed_ms >= 0
        assert seen == {"method": "POST", "url": "https://api.example.com/v1/users", "body": {"email": "a@example.com"}}

    @pytest.mark.asyncio
    async def test_text_and_empty_responses(self):
        executor = self._executor(lambda request: httpx.Response(200, text="pong"))
        assert (await executor.invoke(_bridge(), _endpoint("GET", "/ping"), {})).data == "pong"

        executor = self._executor(lambda request: httpx.Response(204))
        assert (await executor.invoke(_bridge(), _endpoint("DELETE", "/users/1"), {})).data == ""

        executor = self._executor(lambda request: httpx.Response(200, headers={"content-type": "application/json"}))
        assert (await executor.invoke(_bridge(), _endpoint("GET", "/users"), {})).data == ""

    @pytest.mark.asyncio
    async def test_http_error(self):
        executor = self._executor(lambda request: httpx.Response(404, text="no such user"))
        with pytest.raises(UpstreamHTTPError) as exc:
            await executor.invoke(_bridge(), _endpoint("GET", "/users/1"), {})
        assert exc.value.status_code == 404
        assert str(exc.value) == "HTTP 404 Not Found: no such user"
        assert exc.value.code == "HTTP_ERROR"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        executor = self._executor(lambda request: httpx.Response(200, content=b"{oops", headers={"content-type": "application/json"}))
        with pytest.raises(ResponseParseError):
            await executor.invoke(_bridge(), _endpoint("GET", "/users"), {})

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamConnectionError) as exc:
            await self._executor(handler).invoke(_bridge(), _endpoint("GET", "/users"), {})
        assert exc.value.code == "CONNECTION_ERROR"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamConnectionError, match="timed out"):
            await self._executor(handler).invoke(_bridge(), _endpoint("GET", "/users", timeout=10), {})

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        await RequestExecutor(client=client).close()
        assert not client.is_closed
        await client.aclose()
