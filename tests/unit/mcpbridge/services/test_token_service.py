# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/services/test_token_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Standard
from datetime import timedelta
from unittest.mock import patch

# Third-Party
import pytest

# First-Party
from mcpbridge.db import AccessToken, utc_now
from mcpbridge.schemas import TokenCreate, TokenUpdate
from mcpbridge.services.bridge_service import BridgeNotFoundError, BridgeService
from mcpbridge.services.token_service import (
    generate_token,
    parse_token_metadata,
    to_base36,
    TokenNotFoundError,
    TokenService,
    validate_token_format,
)


@pytest.fixture
def token_service():
    return TokenService()


class TestTokenFormat:
    """Tests for secret generation and parsing."""

    def test_generated_tokens_are_unique_and_well_formed(self):
        tokens = {generate_token() for _ in range(20)}
        assert len(tokens) == 20
        assert all(validate_token_format(token) for token in tokens)

    def test_timestamp_round_trips_through_metadata(self):
        with patch("mcpbridge.services.token_service.time.time", return_value=1700000000.0):
            token = generate_token(prefix="abc")
        assert token.startswith(f"abc_{to_base36(1700000000000)}_")
        assert parse_token_metadata(token) == {"prefix": "abc", "timestamp": 1700000000000}

    def test_malformed(self):
        assert not validate_token_format("")
        assert not validate_token_format("mcp_only")
        assert parse_token_metadata("mcp only") is None


class TestTokenService:
    """Tests for token CRUD."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, make_bridge, test_db, token_service):
        bridge = make_bridge()
        first = await token_service.create_token(test_db, bridge.id, TokenCreate(name="ci", description="CI runner"))
        second = await token_service.create_token(test_db, bridge.id, TokenCreate.model_validate({"name": "temp", "expiresInDays": 7}))

        assert validate_token_format(first.access_token)
        assert first.token.is_active is True
        assert first.token.expires_at is None
        assert second.token.expires_at is not None

        tokens = await token_service.list_tokens(test_db, bridge.id)
        assert {t.name for t in tokens} == {"ci", "temp"}
        assert "access_token" not in tokens[0].model_dump()

    @pytest.mark.asyncio
    async def test_created_token_is_findable(self, make_bridge, test_db, token_service):
        bridge = make_bridge()
        created = await token_service.create_token(test_db, bridge.id, TokenCreate(name="ci"))
        found = await BridgeService().find_active_token(test_db, bridge.id, created.access_token)
        assert found.id == created.token.id

    @pytest.mark.asyncio
    async def test_expired_token_is_not_findable(self, make_bridge, test_db, token_service):
        bridge = make_bridge()
        created = await token_service.create_token(test_db, bridge.id, TokenCreate(name="ci"))
        test_db.get(AccessToken, created.token.id).expires_at = utc_now() - timedelta(minutes=1)
        test_db.commit()
        assert await BridgeService().find_active_token(test_db, bridge.id, created.access_token) is None

    @pytest.mark.asyncio
    async def test_token_scoped_to_bridge(self, make_bridge, test_db, token_service):
        owner = make_bridge()
        other = make_bridge(slug="other")
        created = await token_service.create_token(test_db, owner.id, TokenCreate(name="ci"))
        assert await BridgeService().find_active_token(test_db, other.id, created.access_token) is None
        with pytest.raises(TokenNotFoundError):
            await token_service.delete_token(test_db, other.id, created.token.id)

    @pytest.mark.asyncio
    async def test_update_and_delete(self, make_bridge, test_db, token_service):
        bridge = make_bridge()
        created = await token_service.create_token(test_db, bridge.id, TokenCreate(name="ci", description="old"))

        updated = await token_service.update_token(test_db, bridge.id, created.token.id, TokenUpdate.model_validate({"name": "deploy", "description": None}))
        assert updated.name == "deploy"
        assert updated.description is None
        assert updated.is_active is True

        await token_service.delete_token(test_db, bridge.id, created.token.id)
        assert await token_service.list_tokens(test_db, bridge.id) == []
        with pytest.raises(TokenNotFoundError, match=f"Token not found: {created.token.id}"):
            await token_service.update_token(test_db, bridge.id, created.token.id, TokenUpdate(name="x"))

    @pytest.mark.asyncio
    async def test_unknown_bridge(self, test_db, token_service):
        with pytest.raises(BridgeNotFoundError):
            await token_service.list_tokens(test_db, "missing")
        with pytest.raises(BridgeNotFoundError):
            await token_service.create_token(test_db, "missing", TokenCreate(name="ci"))
