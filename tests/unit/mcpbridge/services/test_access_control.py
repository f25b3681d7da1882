# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/services/test_access_control.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Tests for gateway caller authentication.
"""

# Standard
from unittest.mock import AsyncMock, MagicMock

# Third-Party
import pytest
from sqlalchemy.exc import OperationalError

# First-Party
from mcpbridge.schemas import BridgeConfig, TokenCreate, TokenUpdate
from mcpbridge.services.access_control import (
    AccessControlError,
    AccessControlGuard,
    AccessDeniedError,
    AuthOutcome,
    extract_token,
    LegacyApiKeyStrategy,
    TokenStoreStrategy,
)
from mcpbridge.services.bridge_service import BridgeService
from mcpbridge.services.token_service import TokenService
from mcpbridge.validation.jsonrpc import UNAUTHORIZED


def _bridge(auth_required: bool = True, api_key=None) -> BridgeConfig:
    return BridgeConfig.model_validate(
        {"id": "b1", "name": "Users API", "baseUrl": "https://api.example.com", "accessConfig": {"authRequired": auth_required, "apiKey": api_key}}
    )


@pytest.fixture
def event_logger():
    events = MagicMock()
    events.log = AsyncMock(return_value=True)
    return events


class TestExtractToken:
    def test_precedence(self):
        assert extract_token({"Authorization": "Bearer t1", "X-API-Key": "t2"}) == "t1"
        assert extract_token({"AUTHORIZATION": "ApiKey t3"}) == "t3"
        assert extract_token({"x-api-key": " t4 "}) == "t4"

    def test_absent(self):
        assert extract_token({}) is None
        assert extract_token({"Authorization": "Basic abc"}) is None
        assert extract_token({"X-API-Key": "   "}) is None


class StaticStrategy:
    """Strategy returning a fixed outcome."""

    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome
        self.calls = 0

    async def evaluate(self, db, bridge, token):
        self.calls += 1
        return self.outcome


class TestAccessControlGuard:
    """Tests for AccessControlGuard with stubbed strategies."""

    @pytest.mark.asyncio
    async def test_open_bridge_skips_authentication(self, event_logger):
        strategy = StaticStrategy("s", AuthOutcome.REJECTED)
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[strategy])
        assert await guard.authenticate(None, _bridge(auth_required=False), {}) is False
        assert strategy.calls == 0

    @pytest.mark.asyncio
    async def test_missing_token(self, event_logger):
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[])
        with pytest.raises(AccessDeniedError) as exc:
            await guard.authenticate(None, _bridge(), {})
        assert exc.value.message == "Missing access token"
        assert exc.value.code == UNAUTHORIZED
        assert exc.value.http_status == 401
        assert exc.value.headers == {"WWW-Authenticate": 'Bearer realm="MCP Bridge"'}
        event_logger.log.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_all_strategies_run_after_success(self, event_logger):
        first = StaticStrategy("first", AuthOutcome.AUTHENTICATED)
        second = StaticStrategy("second", AuthOutcome.REJECTED)
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[first, second])
        assert await guard.authenticate(None, _bridge(), {"X-API-Key": "k"}) is True
        assert (first.calls, second.calls) == (1, 1)

    @pytest.mark.asyncio
    async def test_rejected(self, event_logger):
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[StaticStrategy("s", AuthOutcome.REJECTED)])
        with pytest.raises(AccessDeniedError, match="Invalid or expired access token"):
            await guard.authenticate(None, _bridge(), {"Authorization": "Bearer nope"})

    @pytest.mark.asyncio
    async def test_no_verdict(self, event_logger):
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[])
        with pytest.raises(AccessDeniedError, match="Invalid authentication"):
            await guard.authenticate(None, _bridge(), {"Authorization": "Bearer t"})

    @pytest.mark.asyncio
    async def test_store_error_before_success(self, event_logger):
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[StaticStrategy("a", AuthOutcome.REJECTED), StaticStrategy("b", AuthOutcome.ERROR)])
        with pytest.raises(AccessControlError) as exc:
            await guard.authenticate(None, _bridge(), {"Authorization": "Bearer t"})
        assert exc.value.http_status == 500
        assert exc.value.message == "Authentication service unavailable"

    @pytest.mark.asyncio
    async def test_store_error_after_success_is_tolerated(self, event_logger):
        guard = AccessControlGuard(MagicMock(), event_logger, strategies=[StaticStrategy("a", AuthOutcome.AUTHENTICATED), StaticStrategy("b", AuthOutcome.ERROR)])
        assert await guard.authenticate(None, _bridge(), {"Authorization": "Bearer t"}) is True


class TestStrategies:
    """Tests for the built-in strategies."""

    @pytest.mark.asyncio
    async def test_legacy_key(self):
        strategy = LegacyApiKeyStrategy()
        assert await strategy.evaluate(None, _bridge(api_key="legacy"), "legacy") == AuthOutcome.AUTHENTICATED
        assert await strategy.evaluate(None, _bridge(api_key="legacy"), "legacy2") == AuthOutcome.REJECTED
        assert await strategy.evaluate(None, _bridge(api_key=None), "legacy") == AuthOutcome.REJECTED

    @pytest.mark.asyncio
    async def test_token_store_accepts_stored_token(self, make_bridge, test_db, event_logger):
        bridge = make_bridge(access_config={"authRequired": True})
        created = await TokenService().create_token(test_db, bridge.id, TokenCreate(name="ci"))
        config = BridgeConfig.model_validate(bridge)

        outcome = await TokenStoreStrategy(BridgeService(), event_logger).evaluate(test_db, config, created.access_token)

        assert outcome == AuthOutcome.AUTHENTICATED
        tokens = await TokenService().list_tokens(test_db, bridge.id)
        assert tokens[0].last_used_at is not None
        assert event_logger.log.await_args.args[2] == "Authentication successful"

    @pytest.mark.asyncio
    async def test_token_store_rejects_unknown_and_inactive(self, make_bridge, test_db, event_logger):
        bridge = make_bridge(access_config={"authRequired": True})
        config = BridgeConfig.model_validate(bridge)
        strategy = TokenStoreStrategy(BridgeService(), event_logger)
        assert await strategy.evaluate(test_db, config, "mcp_x_unknown") == AuthOutcome.REJECTED
        assert event_logger.log.await_args.args[3] == {"tokenPrefix": "mcp_x_unkn"}

        created = await TokenService().create_token(test_db, bridge.id, TokenCreate(name="old"))
        await TokenService().update_token(test_db, bridge.id, created.token.id, TokenUpdate(is_active=False))
        assert await strategy.evaluate(test_db, config, created.access_token) == AuthOutcome.REJECTED

    @pytest.mark.asyncio
    async def test_token_store_failure(self, event_logger):
        bridge_service = MagicMock()
        bridge_service.find_active_token = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))
        db = MagicMock()
        outcome = await TokenStoreStrategy(bridge_service, event_logger).evaluate(db, _bridge(), "t")
        assert outcome == AuthOutcome.ERROR
        db.rollback.assert_called_once()
