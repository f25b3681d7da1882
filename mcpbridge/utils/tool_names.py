# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/utils/tool_names.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Tool name generation for endpoint-derived MCP tools.

The same function names tools for ``tools/list`` and re-derives names from
endpoints when resolving ``tools/call``, so both directions always agree.

Examples:
    >>> generate_tool_name("GET", "/users")
    'get_users_list'
    >>> generate_tool_name("GET", "/users/{id}")
    'get_users_read'
    >>> generate_tool_name("POST", "/users")
    'post_users_create'
    >>> generate_tool_name("PUT", "/users/{id}")
    'put_users_update'
    >>> generate_tool_name("DELETE", "/users/{id}")
    'delete_users_delete'
"""

# Standard
import re

PLACEHOLDER_PATTERN = re.compile(r"\{[^}]*\}")
NON_ALPHANUMERIC_PATTERN = re.compile(r"[^a-z0-9]+")
VALID_TOOL_NAME_PATTERN = re.compile(r"[a-z][a-z0-9_]{2,}")

ACTIONS = {
    "post": "create",
    "put": "update",
    "patch": "update",
    "delete": "delete",
}


def generate_tool_name(method: str, path: str) -> str:
    """Map an HTTP method and path template to a canonical tool name.

    The last static path segment is the resource; ``{...}`` placeholders are
    dropped. ``GET`` becomes ``list`` for collection paths and ``read`` when
    the path has a placeholder. Unknown methods yield an empty action.

    Args:
        method: HTTP method
        path: Path template

    Returns:
        str: ``<method>_<resource>_<action>``

    Examples:
        >>> generate_tool_name("get", "/")
        'get_root_list'
        >>> generate_tool_name("PATCH", "/v1/Orders/{orderId}/Items/{itemId}")
        'patch_items_update'
        >>> generate_tool_name("HEAD", "/status")
        'head_status_'
    """
    method = (method or "").lower()
    path = path or ""
    segments = [segment.lower() for segment in PLACEHOLDER_PATTERN.sub("", path).split("/") if segment]
    resource = segments[-1] if segments else "root"

    if method == "get":
        action = "read" if "{" in path else "list"
    else:
        action = ACTIONS.get(method, "")

    return f"{method}_{resource}_{action}"


def is_valid_tool_name(name: str) -> bool:
    """Check a human-entered tool name.

    Args:
        name: Candidate name

    Returns:
        bool: True when the name starts with a lower-case letter and has at
        least three characters from ``[a-z0-9_]``

    Examples:
        >>> is_valid_tool_name("get_users")
        True
        >>> is_valid_tool_name("ab")
        False
        >>> is_valid_tool_name("GetUsers")
        False
        >>> is_valid_tool_name("1abc")
        False
        >>> is_valid_tool_name("abc\\n")
        False
    """
    return VALID_TOOL_NAME_PATTERN.fullmatch(name or "") is not None


def normalize_tool_name(value: str) -> str:
    """Reduce a name to lower-case words joined by underscores.

    Args:
        value: Endpoint name, ``METHOD path`` string or requested tool name

    Returns:
        str: Normalized name used for loose matching

    Examples:
        >>> normalize_tool_name("List Users")
        'list_users'
        >>> normalize_tool_name("GET /users/{id}")
        'get_users_id'
        >>> normalize_tool_name("__Get-Users__")
        'get_users'
    """
    return NON_ALPHANUMERIC_PATTERN.sub("_", (value or "").lower()).strip("_")
