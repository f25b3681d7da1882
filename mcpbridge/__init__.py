# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

MCP Bridge - A FastAPI-based gateway that exposes configured REST APIs as Model Context Protocol (MCP) tools.
"""

__author__ = "Mihai Criveti"
__copyright__ = "Copyright 2025"
__license__ = "Apache 2.0"
__version__ = "0.1.0"
__description__ = "MCP gateway for REST API bridges"
__packages__ = ["mcpbridge"]

__all__ = [
    "__version__",
    "__author__",
    "__license__",
]
