# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/prompt_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Prompt Service Implementation.
This module renders a bridge's declared prompts for ``prompts/get``. A prompt
renders to a single user message: the prompt description followed by one
``" - key: value"`` line per supplied argument.

Examples:
    >>> import asyncio
    >>> from mcpbridge.models import Prompt
    >>> prompt = Prompt(name="summarize", description="Summarize the account")
    >>> result = asyncio.run(PromptService().get_prompt([prompt], "summarize", {"account": "acme"}))
    >>> print(result.messages[0].content.text)
    Summarize the account
     - account: acme
"""

# Standard
from typing import Any, Dict, List, Optional

# First-Party
from mcpbridge.models import Message, Prompt, PromptResult, Role, TextContent


class PromptError(Exception):
    """Base class for prompt-related errors."""


class PromptNotFoundError(PromptError):
    """Raised when a requested prompt is not declared on the bridge."""


class PromptService:
    """Renders bridge prompts."""

    async def get_prompt(self, prompts: List[Prompt], name: str, arguments: Optional[Dict[str, Any]] = None) -> PromptResult:
        """Render a prompt with the supplied arguments.

        Args:
            prompts: The bridge's declared prompts
            name: Prompt name
            arguments: Argument values

        Returns:
            PromptResult: One user message carrying the rendered text

        Raises:
            PromptNotFoundError: If no declared prompt has this name
        """
        prompt = next((p for p in prompts if p.name == name), None)
        if prompt is None:
            raise PromptNotFoundError(f"Prompt not found: {name}")

        text = prompt.description or ""
        for key, value in (arguments or {}).items():
            text += f"\n - {key}: {value}"

        return PromptResult(
            description=prompt.description,
            messages=[Message(role=Role.USER, content=TextContent(type="text", text=text))],
        )
