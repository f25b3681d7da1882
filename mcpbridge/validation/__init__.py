# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/validation/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Validation Package.
Provides JSON-RPC request validation for the MCP Bridge gateway.
"""

from mcpbridge.validation.jsonrpc import JSONRPCError, validate_request

__all__ = ["validate_request", "JSONRPCError"]
