# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/services/test_prompt_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Third-Party
import pytest

# First-Party
from mcpbridge.models import Prompt
from mcpbridge.services.prompt_service import PromptNotFoundError, PromptService


@pytest.fixture
def prompts():
    return [Prompt(name="triage", description="Triage the ticket"), Prompt(name="blank")]


class TestPromptService:
    @pytest.mark.asyncio
    async def test_renders_arguments_in_order(self, prompts):
        result = await PromptService().get_prompt(prompts, "triage", {"ticket": 42, "priority": "high"})
        assert result.description == "Triage the ticket"
        assert len(result.messages) == 1
        assert result.messages[0].role == "user"
        assert result.messages[0].content.text == "Triage the ticket\n - ticket: 42\n - priority: high"

    @pytest.mark.asyncio
    async def test_without_description_or_arguments(self, prompts):
        result = await PromptService().get_prompt(prompts, "blank")
        assert result.messages[0].content.text == ""
        assert result.description is None

    @pytest.mark.asyncio
    async def test_unknown_prompt(self, prompts):
        with pytest.raises(PromptNotFoundError, match="Prompt not found: missing"):
            await PromptService().get_prompt(prompts, "missing", {})
