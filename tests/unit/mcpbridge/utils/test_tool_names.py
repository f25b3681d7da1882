# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/utils/test_tool_names.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Third-Party
from pydantic import ValidationError
import pytest

# First-Party
from mcpbridge.schemas import BridgeCreate
from mcpbridge.utils.identifiers import looks_like_uuid
from mcpbridge.utils.tool_names import generate_tool_name, is_valid_tool_name, normalize_tool_name


class TestGenerateToolName:
    """Tests for canonical tool name derivation."""

    @pytest.mark.parametrize(
        "method,path,expected",
        [
            ("GET", "/users", "get_users_list"),
            ("GET", "/users/{id}", "get_users_read"),
            ("POST", "/users", "post_users_create"),
            ("PUT", "/users/{id}", "put_users_update"),
            ("PATCH", "/users/{id}", "patch_users_update"),
            ("DELETE", "/users/{id}", "delete_users_delete"),
            ("GET", "/orgs/{orgId}/members", "get_members_read"),
            ("GET", "/", "get_root_list"),
            ("GET", "", "get_root_list"),
            ("OPTIONS", "/users", "options_users_"),
        ],
    )
    def test_names(self, method, path, expected):
        assert generate_tool_name(method, path) == expected

    def test_method_is_case_insensitive(self):
        assert generate_tool_name("get", "/Users") == generate_tool_name("GET", "/users")


class TestToolNameHelpers:
    """Tests for tool name validation and normalization."""

    def test_valid_names(self):
        assert is_valid_tool_name("get_users_list")
        assert is_valid_tool_name("abc")

    @pytest.mark.parametrize("name", ["", "ab", "Get_users", "1users", "get-users", "get_users\n", None])
    def test_invalid_names(self, name):
        assert not is_valid_tool_name(name)

    def test_normalize(self):
        assert normalize_tool_name("List Users") == "list_users"
        assert normalize_tool_name("GET /users/{id}") == "get_users_id"
        assert normalize_tool_name("list-users") == normalize_tool_name("List Users")

    def test_bridge_rejects_name_with_trailing_newline(self):
        payload = {"name": "Users", "baseUrl": "https://api.example.com", "mcpTools": [{"name": "get_users\n"}]}
        with pytest.raises(ValidationError, match="Tool name must match"):
            BridgeCreate.model_validate(payload)


class TestLooksLikeUuid:
    """Tests for bridge id detection."""

    def test_hex_and_dashed(self):
        assert looks_like_uuid("0e4b7c1a9f2d4e3b8a6c5d7e9f1a2b3c")
        assert looks_like_uuid("0e4b7c1a-9f2d-4e3b-8a6c-5d7e9f1a2b3c")

    def test_slug(self):
        assert not looks_like_uuid("users-api")
