# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/cache/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Cache Package.
Provides caching components for the MCP Bridge gateway including:
- Verified bridge id memoization for event logging
"""

from mcpbridge.cache.verified_bridge_cache import VerifiedBridgeCache

__all__ = ["VerifiedBridgeCache"]
