# -*- coding: utf-8 -*-
"""Location: ./tests/unit/mcpbridge/services/test_logging_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Tests for the process logger wrapper and the per-bridge event logger.
"""

# Standard
from datetime import datetime, timezone
import json
import logging
from unittest.mock import MagicMock

# Third-Party
import pytest
from sqlalchemy import select

# First-Party
from mcpbridge.cache.verified_bridge_cache import VerifiedBridgeCache
from mcpbridge.db import BridgeLog
from mcpbridge.models import LogLevel
from mcpbridge.services.logging_service import BridgeEventLogger, build_formatter, LoggingService


class TestLoggingService:
    """Tests for LoggingService."""

    def test_get_logger_is_cached(self):
        service = LoggingService()
        logger = service.get_logger("mcpbridge.tests.cached")
        assert isinstance(logger, logging.Logger)
        assert service.get_logger("mcpbridge.tests.cached") is logger

    def test_json_formatter_escapes_message(self):
        record = logging.LogRecord("mcpbridge.tests", logging.ERROR, __file__, 1, 'Tool "get_users_list" failed\nsecond line', None, None)

        line = build_formatter("json").format(record)

        payload = json.loads(line)
        assert payload["message"] == 'Tool "get_users_list" failed\nsecond line'
        assert payload["level"] == "ERROR"
        assert payload["logger"] == "mcpbridge.tests"
        assert "time" in payload

    def test_text_formatter(self):
        record = logging.LogRecord("mcpbridge.tests", logging.INFO, __file__, 1, "plain", None, None)
        assert build_formatter("text").format(record).endswith("mcpbridge.tests - INFO - plain")

    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(self):
        service = LoggingService()
        await service.initialize()
        await service.shutdown()


class TestBridgeEventLogger:
    """Tests for BridgeEventLogger."""

    @pytest.mark.asyncio
    async def test_stores_event_and_caches_bridge(self, make_bridge, session_factory):
        bridge = make_bridge()
        events = BridgeEventLogger(session_factory=session_factory, cache=VerifiedBridgeCache())

        stored = await events.log(bridge.id, LogLevel.INFO, "MCP request: tools/list", {"when": datetime(2025, 1, 1, tzinfo=timezone.utc)})

        assert stored is True
        assert bridge.id in events.cache
        with session_factory() as db:
            rows = db.execute(select(BridgeLog).where(BridgeLog.bridge_id == bridge.id)).scalars().all()
        assert len(rows) == 1
        assert rows[0].level == "info"
        assert rows[0].message == "MCP request: tools/list"
        assert rows[0].details == {"when": "2025-01-01 00:00:00+00:00"}

    @pytest.mark.asyncio
    async def test_unknown_bridge_is_not_stored(self, session_factory):
        events = BridgeEventLogger(session_factory=session_factory)
        assert await events.log("0" * 32, LogLevel.WARNING, "Missing access token") is False
        assert len(events.cache) == 0

    @pytest.mark.asyncio
    async def test_missing_bridge_id_is_only_mirrored(self):
        factory = MagicMock()
        events = BridgeEventLogger(session_factory=factory)
        assert await events.log(None, LogLevel.INFO, "hello") is False
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_failure_never_raises(self):
        session = MagicMock()
        session.add.side_effect = RuntimeError("disk full")
        cache = VerifiedBridgeCache()
        cache.add("b1")
        events = BridgeEventLogger(session_factory=lambda: session, cache=cache)

        assert await events.log("b1", LogLevel.ERROR, "Internal error") is False
        session.rollback.assert_called_once()
        session.close.assert_called_once()
        assert "b1" not in cache

    @pytest.mark.asyncio
    async def test_accepts_level_strings(self, make_bridge, session_factory):
        bridge = make_bridge()
        events = BridgeEventLogger(session_factory=session_factory)
        assert await events.log(bridge.id, "warning", "Invalid or expired access token") is True
