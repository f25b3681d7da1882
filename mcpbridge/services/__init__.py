# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Services Package.
Exposes core MCP Bridge services:
- Bridge repository
- Request dispatching
- Resource handling
- Prompt templates
"""

from mcpbridge.services.bridge_service import BridgeError, BridgeService
from mcpbridge.services.dispatcher import Dispatcher, DispatchResult
from mcpbridge.services.prompt_service import PromptError, PromptService
from mcpbridge.services.resource_service import ResourceError, ResourceService

__all__ = [
    "BridgeService",
    "BridgeError",
    "Dispatcher",
    "DispatchResult",
    "ResourceService",
    "ResourceError",
    "PromptService",
    "PromptError",
]
