# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/models.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

MCP Protocol Type Definitions.
This module defines the MCP protocol types a bridge exposes:
  - Message content types
  - Tool definitions and results
  - Resource descriptors and read contents
  - Prompt structures
  - Protocol initialization types

Examples:
    >>> from mcpbridge.models import Role, LogLevel, TextContent
    >>> Role.USER.value
    'user'
    >>> LogLevel.ERROR.value
    'error'
    >>> content = TextContent(type='text', text='Hello')
    >>> content.text
    'Hello'
"""

# Standard
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

# Third-Party
from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Message role in conversations.

    Attributes:
        ASSISTANT (str): Indicates the assistant's role.
        USER (str): Indicates the user's role.

    Examples:
        >>> Role.USER == 'user'
        True
    """

    ASSISTANT = "assistant"
    USER = "user"


class LogLevel(str, Enum):
    """Standard syslog severity levels as defined in RFC 5424.

    Attributes:
        DEBUG (str): Debug level.
        INFO (str): Informational level.
        NOTICE (str): Notice level.
        WARNING (str): Warning level.
        ERROR (str): Error level.
        CRITICAL (str): Critical level.
        ALERT (str): Alert level.
        EMERGENCY (str): Emergency level.
    """

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"


class TextContent(BaseModel):
    """Text content for messages.

    Attributes:
        type (Literal["text"]): The fixed content type identifier for text.
        text (str): The actual text message.

    Examples:
        >>> TextContent(type='text', text='Hello World').model_dump()
        {'type': 'text', 'text': 'Hello World'}
    """

    type: Literal["text"]
    text: str


class Implementation(BaseModel):
    """MCP implementation information.

    Attributes:
        name (str): The name of the implementation.
        version (str): The version of the implementation.
    """

    name: str
    version: str


class ServerCapabilities(BaseModel):
    """Capabilities that a bridge advertises.

    Attributes:
        prompts (Optional[Dict[str, Any]]): Capability for prompt support.
        resources (Optional[Dict[str, Any]]): Capability for resource support.
        tools (Optional[Dict[str, Any]]): Capability for tool support.
    """

    prompts: Optional[Dict[str, Any]] = None
    resources: Optional[Dict[str, Any]] = None
    tools: Optional[Dict[str, Any]] = None


class InitializeResult(BaseModel):
    """Server's response to the initialization request.

    Attributes:
        protocol_version (str): The protocol version used.
        capabilities (ServerCapabilities): The server's capabilities.
        server_info (Implementation): The server's implementation information.

    Examples:
        >>> result = InitializeResult(
        ...     protocol_version="2024-11-05",
        ...     capabilities=ServerCapabilities(tools={}),
        ...     server_info=Implementation(name="Pets", version="1.0.0"),
        ... )
        >>> result.model_dump(by_alias=True, exclude_none=True)["capabilities"]
        {'tools': {}}
    """

    protocol_version: str = Field(..., alias="protocolVersion")
    capabilities: ServerCapabilities = Field(..., alias="capabilities")
    server_info: Implementation = Field(..., alias="serverInfo")

    model_config = ConfigDict(
        populate_by_name=True,
    )


class Tool(BaseModel):
    """A tool exposed by a bridge.

    Explicitly authored tools may carry extra keys; they are kept and
    returned as stored.

    Attributes:
        name (str): Tool name.
        description (Optional[str]): Human readable description.
        input_schema (Dict[str, Any]): JSON-Schema object describing arguments.
        endpoint_id (Optional[str]): Endpoint the tool is backed by.

    Examples:
        >>> t = Tool.model_validate({"name": "get_users_list", "endpointId": "ep1"})
        >>> t.endpoint_id
        'ep1'
        >>> t.model_dump(by_alias=True, exclude_none=True)
        {'name': 'get_users_list', 'inputSchema': {'type': 'object', 'properties': {}}, 'endpointId': 'ep1'}
    """

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}}, alias="inputSchema")
    endpoint_id: Optional[str] = Field(None, alias="endpointId")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ToolResult(BaseModel):
    """Result of a tool invocation.

    Attributes:
        content (List[TextContent]): Content items returned by the tool.
    """

    content: List[TextContent]


class Resource(BaseModel):
    """A resource available from a bridge.

    Attributes:
        uri (str): The unique URI of the resource.
        name (str): The human-readable name of the resource.
        description (Optional[str]): A description of the resource.
        mime_type (Optional[str]): The MIME type of the resource.
    """

    uri: str
    name: str
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ResourceContents(BaseModel):
    """Text contents returned by ``resources/read``.

    Attributes:
        uri (str): URI that was read.
        mime_type (str): MIME type of ``text``.
        text (str): The content.
    """

    uri: str
    mime_type: str = Field(..., alias="mimeType")
    text: str

    model_config = ConfigDict(populate_by_name=True)


class PromptArgument(BaseModel):
    """An argument that can be passed to a prompt.

    Attributes:
        name (str): The name of the argument.
        description (Optional[str]): An optional description of the argument.
        required (bool): Whether the argument is required. Defaults to False.
    """

    name: str
    description: Optional[str] = None
    required: bool = False


class Prompt(BaseModel):
    """A prompt template offered by a bridge.

    Attributes:
        name (str): The unique name of the prompt.
        description (Optional[str]): A description of the prompt.
        arguments (List[PromptArgument]): A list of expected prompt arguments.
    """

    name: str
    description: Optional[str] = None
    arguments: List[PromptArgument] = []

    model_config = ConfigDict(extra="allow")


class Message(BaseModel):
    """A message in a conversation.

    Attributes:
        role (Role): The role of the message sender.
        content (TextContent): The content of the message.
    """

    role: Role
    content: TextContent


class PromptResult(BaseModel):
    """Result of rendering a prompt template.

    Attributes:
        messages (List[Message]): The list of messages produced by rendering the prompt.
        description (Optional[str]): An optional description of the rendered result.
    """

    messages: List[Message]
    description: Optional[str] = None
