# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/validation/test_jsonrpc.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Third-Party
import pytest

# First-Party
from mcpbridge.validation.jsonrpc import (
    INVALID_REQUEST,
    JSONRPCError,
    validate_request,
)


class TestJSONRPCValidation:
    """Tests for JSON-RPC validation functions."""

    def test_validate_valid_request(self):
        """Test validation of valid JSON-RPC requests."""
        validate_request({"jsonrpc": "2.0", "method": "tools/list", "id": 1})
        validate_request({"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "x"}, "id": "abc"})
        validate_request({"jsonrpc": "2.0", "method": "tools/list", "params": [1, 2]})
        validate_request({"jsonrpc": "2.0", "method": "tools/list", "id": None})

    def test_validate_invalid_request_version(self):
        """Wrong or missing version is an invalid request answered with HTTP 400."""
        for request in ({"method": "tools/list", "id": 1}, {"jsonrpc": "1.0", "method": "tools/list", "id": 1}):
            with pytest.raises(JSONRPCError) as exc:
                validate_request(request)
            assert exc.value.code == INVALID_REQUEST
            assert exc.value.http_status == 400
            assert exc.value.request_id == 1

    def test_validate_invalid_request_method(self):
        """Test validation fails with invalid method."""
        for request in ({"jsonrpc": "2.0", "id": 1}, {"jsonrpc": "2.0", "method": "", "id": 1}, {"jsonrpc": "2.0", "method": 7, "id": 1}):
            with pytest.raises(JSONRPCError) as exc:
                validate_request(request)
            assert exc.value.code == INVALID_REQUEST
            assert "Invalid or missing method" in exc.value.message

    def test_validate_non_object(self):
        with pytest.raises(JSONRPCError) as exc:
            validate_request([{"jsonrpc": "2.0", "method": "tools/list"}])
        assert exc.value.code == INVALID_REQUEST
        assert exc.value.request_id is None

    def test_validate_invalid_id(self):
        for bad_id in (True, 1.5, {"a": 1}):
            with pytest.raises(JSONRPCError) as exc:
                validate_request({"jsonrpc": "2.0", "method": "tools/list", "id": bad_id})
            assert exc.value.message == "Invalid request ID type"
            assert exc.value.request_id is None

    def test_validate_invalid_params(self):
        with pytest.raises(JSONRPCError) as exc:
            validate_request({"jsonrpc": "2.0", "method": "tools/list", "params": "x", "id": 3})
        assert exc.value.message == "Invalid params type"
        assert exc.value.request_id == 3


class TestJSONRPCError:
    """Tests for the error envelope."""

    def test_to_dict_omits_missing_data(self):
        assert JSONRPCError(-32601, "Method not found: x", request_id=5).to_dict() == {
            "jsonrpc": "2.0",
            "error": {"code": -32601, "message": "Method not found: x"},
            "id": 5,
        }

    def test_defaults(self):
        error = JSONRPCError(-32602, "Invalid params")
        assert error.http_status == 200
        assert error.headers == {}
        assert str(error) == "Invalid params"
