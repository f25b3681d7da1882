# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/validation/jsonrpc.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

JSON-RPC Validation.
This module provides validation functions for JSON-RPC 2.0 requests
according to the specification at https://www.jsonrpc.org/specification.

Includes:
- Request validation
- Standard error codes plus the gateway's unauthorized code
- Error envelope formatting

Examples:
    >>> from mcpbridge.validation.jsonrpc import JSONRPCError, validate_request
    >>> error = JSONRPCError(-32600, "Invalid Request")
    >>> error.code
    -32600
    >>> validate_request({'jsonrpc': '2.0', 'method': 'test', 'id': 1})
    >>> try:
    ...     validate_request({'method': 'test'})  # missing jsonrpc
    ... except JSONRPCError as e:
    ...     e.code
    -32600
"""

# Standard
from typing import Any, Dict, Optional, Union

# Standard JSON-RPC error codes
PARSE_ERROR = -32700  # Invalid JSON
INVALID_REQUEST = -32600  # Invalid Request object
METHOD_NOT_FOUND = -32601  # Method not found
INVALID_PARAMS = -32602  # Invalid method parameters
INTERNAL_ERROR = -32603  # Internal JSON-RPC error
UNAUTHORIZED = -32401  # Missing or rejected bridge access token


class JSONRPCError(Exception):
    """JSON-RPC protocol error.

    Besides the JSON-RPC fields, the error carries the HTTP status and extra
    headers the gateway answers with.
    """

    def __init__(
        self,
        code: int,
        message: str,
        data: Optional[Any] = None,
        request_id: Optional[Union[str, int]] = None,
        http_status: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize JSON-RPC error.

        Args:
            code: Error code
            message: Error message
            data: Optional error data
            request_id: Optional request ID
            http_status: HTTP status of the response carrying the error
            headers: Extra HTTP headers for the response
        """
        self.code = code
        self.message = message
        self.data = data
        self.request_id = request_id
        self.http_status = http_status
        self.headers = headers or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-RPC error response dict.

        Returns:
            Error response dictionary

        Examples:
            >>> JSONRPCError(-32601, "Method not found: foo", request_id=1).to_dict()
            {'jsonrpc': '2.0', 'error': {'code': -32601, 'message': 'Method not found: foo'}, 'id': 1}

            >>> JSONRPCError(-32602, "Invalid params", data={"param": "uri"}, request_id="abc").to_dict()
            {'jsonrpc': '2.0', 'error': {'code': -32602, 'message': 'Invalid params', 'data': {'param': 'uri'}}, 'id': 'abc'}

            Errors raised before the envelope is parsed have a null id:
            >>> JSONRPCError(-32700, "Parse error").to_dict()["id"] is None
            True
        """
        error = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data

        return {"jsonrpc": "2.0", "error": error, "id": self.request_id}


def validate_request(request: Any) -> None:
    """Validate JSON-RPC request.

    Args:
        request: Decoded request body to validate

    Raises:
        JSONRPCError: If request is invalid

    Examples:
        >>> validate_request({"jsonrpc": "2.0", "method": "tools/list", "id": 1})
        >>> validate_request({"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "x"}, "id": "a"})

        >>> validate_request({"jsonrpc": "1.0", "method": "ping", "id": 1})  # doctest: +ELLIPSIS
        Traceback (most recent call last):
            ...
        mcpbridge.validation.jsonrpc.JSONRPCError: Invalid Request: jsonrpc must be "2.0"

        >>> validate_request([1, 2])  # doctest: +ELLIPSIS
        Traceback (most recent call last):
            ...
        mcpbridge.validation.jsonrpc.JSONRPCError: Invalid Request: expected a JSON object

        >>> validate_request({"jsonrpc": "2.0", "method": "", "id": 1})  # doctest: +ELLIPSIS
        Traceback (most recent call last):
            ...
        mcpbridge.validation.jsonrpc.JSONRPCError: Invalid or missing method

        >>> validate_request({"jsonrpc": "2.0", "method": "test", "params": "invalid", "id": 1})  # doctest: +ELLIPSIS
        Traceback (most recent call last):
            ...
        mcpbridge.validation.jsonrpc.JSONRPCError: Invalid params type

        >>> validate_request({"jsonrpc": "2.0", "method": "test", "id": True})  # doctest: +ELLIPSIS
        Traceback (most recent call last):
            ...
        mcpbridge.validation.jsonrpc.JSONRPCError: Invalid request ID type
    """
    if not isinstance(request, dict):
        raise JSONRPCError(INVALID_REQUEST, "Invalid Request: expected a JSON object", http_status=400)

    request_id = request.get("id")
    if isinstance(request_id, bool) or not isinstance(request_id, (str, int, type(None))):
        raise JSONRPCError(INVALID_REQUEST, "Invalid request ID type", request_id=None, http_status=400)

    # Check jsonrpc version
    if request.get("jsonrpc") != "2.0":
        raise JSONRPCError(INVALID_REQUEST, 'Invalid Request: jsonrpc must be "2.0"', request_id=request_id, http_status=400)

    # Check method
    method = request.get("method")
    if not isinstance(method, str) or not method:
        raise JSONRPCError(INVALID_REQUEST, "Invalid or missing method", request_id=request_id, http_status=400)

    # Check params if present
    params = request.get("params")
    if params is not None and not isinstance(params, (dict, list)):
        raise JSONRPCError(INVALID_REQUEST, "Invalid params type", request_id=request_id, http_status=400)

