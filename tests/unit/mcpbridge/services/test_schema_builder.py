# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/services/test_schema_builder.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Standard
import logging

# First-Party
from mcpbridge.schemas import Endpoint
from mcpbridge.services.schema_builder import build_endpoint_tools, build_input_schema, build_tool_description, map_type


def _endpoint(**data) -> Endpoint:
    return Endpoint.model_validate({"id": "e1", "name": "Endpoint", **data})


class TestMapType:
    def test_mapping(self):
        assert map_type("int32") == "number"
        assert map_type("float") == "number"
        assert map_type("date") == "string"
        assert map_type("string") == "string"
        assert map_type("object") == "object"
        assert map_type("") == "string"


class TestBuildInputSchema:
    """Tests for inputSchema derivation."""

    def test_path_and_query_parameters(self):
        ep = _endpoint(
            method="GET",
            path="/users/{id}",
            config={
                "parameters": [
                    {"name": "id", "type": "integer", "required": True, "description": "User id"},
                    {"name": "expand", "type": "boolean", "defaultValue": False},
                ]
            },
        )
        schema = build_input_schema(ep)
        assert schema == {
            "type": "object",
            "properties": {
                "id": {"type": "number", "description": "User id"},
                "expand": {"type": "boolean", "description": "expand parameter", "default": False},
            },
            "required": ["id"],
        }

    def test_body_parameters_ignored_for_get(self):
        ep = _endpoint(method="GET", path="/search", config={"parameters": [{"name": "q", "location": "body", "required": True}]})
        assert build_input_schema(ep) == {"type": "object", "properties": {}, "required": []}

    def test_body_parameters_and_fields_for_post(self):
        ep = _endpoint(
            method="POST",
            path="/users",
            config={
                "parameters": [{"name": "email", "location": "body", "required": True, "description": "Login email"}],
                "requestBody": {
                    "properties": {
                        "email": {"type": "string", "description": "ignored, parameter wins"},
                        "role": {"type": "string", "enum": ["admin", "user"], "required": True},
                        "tags": {"type": "array", "items": {"type": "string"}},
                    }
                },
            },
        )
        schema = build_input_schema(ep)
        assert list(schema["properties"]) == ["email", "role", "tags"]
        assert schema["properties"]["email"]["description"] == "Login email"
        assert schema["properties"]["role"] == {"type": "string", "description": "role field", "enum": ["admin", "user"]}
        assert schema["properties"]["tags"]["items"] == {"type": "string"}
        assert schema["required"] == ["email", "role"]

    def test_generic_request_body(self):
        ep = _endpoint(method="PATCH", path="/users/{id}", config={"parameters": [{"name": "id", "required": True}], "requestBody": {"description": "Patch document"}})
        schema = build_input_schema(ep)
        assert schema["properties"]["requestBody"] == {"type": "object", "description": "Patch document"}
        assert schema["required"] == ["id"]

    def test_no_generic_body_when_body_parameters_exist(self):
        ep = _endpoint(method="POST", path="/notes", config={"parameters": [{"name": "text", "location": "body"}], "requestBody": {"required": True}})
        assert "requestBody" not in build_input_schema(ep)["properties"]


class TestBuildToolDescription:
    def test_body_fields(self):
        ep = _endpoint(
            method="POST",
            path="/users",
            description="Create a user",
            config={"requestBody": {"properties": {"email": {"type": "string", "required": True}, "name": {"type": "string"}}}},
        )
        assert build_tool_description(ep) == "Create a user\n\nRequired body fields: email (string)\n\nOptional body fields: name (string)"


class TestBuildEndpointTools:
    def test_one_tool_per_endpoint(self):
        tools = build_endpoint_tools(
            [
                _endpoint(id="e1", method="GET", path="/users"),
                _endpoint(id="e2", method="DELETE", path="/users/{id}"),
            ]
        )
        assert [(t.name, t.endpoint_id) for t in tools] == [("get_users_list", "e1"), ("delete_users_delete", "e2")]
        dumped = tools[0].model_dump(by_alias=True, exclude_none=True)
        assert dumped["inputSchema"]["type"] == "object"
        assert dumped["endpointId"] == "e1"

    def test_duplicate_names_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="mcpbridge.services.schema_builder"):
            tools = build_endpoint_tools([_endpoint(id="e1", method="GET", path="/users"), _endpoint(id="e2", method="GET", path="/v2/users")])
        assert [t.name for t in tools] == ["get_users_list", "get_users_list"]
        assert "duplicate tool name get_users_list" in caplog.text
