# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/utils/identifiers.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Identifier helpers for MCP Bridge.
A bridge is addressed in ``/mcp/{bridge_id}`` URLs either by its primary key
(a uuid4 hex string) or by its slug.
"""

# Standard
import re

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-?[0-9a-f]{4}-?4[0-9a-f]{3}-?[89ab][0-9a-f]{3}-?[0-9a-f]{12}$", re.IGNORECASE)


def looks_like_uuid(value: str) -> bool:
    """Check whether an identifier has the shape of a UUID v4.

    Dashed and 32 character hex forms are both accepted, since bridge ids are
    stored as uuid4 hex strings.

    Args:
        value: Identifier from the request path

    Returns:
        bool: True for UUID v4 shaped values

    Examples:
        >>> looks_like_uuid("3f2b8c4e-1d2a-4b3c-9d4e-5f6a7b8c9d0e")
        True
        >>> looks_like_uuid("3f2b8c4e1d2a4b3c9d4e5f6a7b8c9d0e")
        True
        >>> looks_like_uuid("pet-store")
        False
    """
    return bool(UUID_PATTERN.match(value))
