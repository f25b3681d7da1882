# -*- coding: utf-8 -*-
"""Logging Service Implementation.

Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

This module implements process logging for the MCP Bridge and the per-bridge
event log. It supports RFC 5424 severity levels, log level management and
fire-and-forget event rows in the ``bridge_logs`` table.
"""

# Standard
from datetime import datetime, timezone
import json
import logging
from typing import Any, Callable, Dict, Optional

# Third-Party
from pythonjsonlogger import jsonlogger
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.cache.verified_bridge_cache import VerifiedBridgeCache
from mcpbridge.config import settings
from mcpbridge.db import Bridge, BridgeLog, SessionLocal
from mcpbridge.models import LogLevel

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s"

# RFC 5424 levels collapsed onto the standard library levels
STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.NOTICE: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ALERT: logging.CRITICAL,
    LogLevel.EMERGENCY: logging.CRITICAL,
}


def build_formatter(log_format: str) -> logging.Formatter:
    """Create the formatter for the configured log format.

    Args:
        log_format: ``json`` for one JSON object per line, anything else for plain text

    Returns:
        logging.Formatter: Formatter for the root handler

    Examples:
        >>> isinstance(build_formatter("json"), jsonlogger.JsonFormatter)
        True
        >>> build_formatter("text")._fmt == TEXT_FORMAT
        True
    """
    if log_format == "json":
        return jsonlogger.JsonFormatter(
            fmt=JSON_FIELDS,
            rename_fields={"asctime": "time", "name": "logger", "levelname": "level"},
        )
    return logging.Formatter(TEXT_FORMAT)


class LoggingService:
    """MCP Bridge logging service.

    Implements logging with:
    - RFC 5424 severity levels
    - Log level management
    - Logger name tracking
    """

    def __init__(self):
        """Initialize logging service."""
        try:
            self._level = LogLevel(settings.log_level.lower())
        except ValueError:
            self._level = LogLevel.INFO
        self._loggers: Dict[str, logging.Logger] = {}

    async def initialize(self) -> None:
        """Initialize logging service."""
        # Configure root logger
        handler = logging.StreamHandler()
        handler.setFormatter(build_formatter(settings.log_format))
        logging.basicConfig(level=STDLIB_LEVELS[self._level], handlers=[handler])
        self._loggers[""] = logging.getLogger()
        logging.info("Logging service initialized")

    async def shutdown(self) -> None:
        """Shutdown logging service."""
        logging.info("Logging service shutdown")

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create logger instance.

        Args:
            name: Logger name

        Returns:
            Logger instance

        Examples:
            >>> service = LoggingService()
            >>> service.get_logger("mcpbridge.test") is service.get_logger("mcpbridge.test")
            True
        """
        if name not in self._loggers:
            logger = logging.getLogger(name)

            # Set level to match service level
            logger.setLevel(STDLIB_LEVELS[self._level])

            self._loggers[name] = logger

        return self._loggers[name]


logging_service = LoggingService()
logger = logging_service.get_logger(__name__)


def _json_safe(details: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make event details storable in a JSON column.

    Args:
        details: Arbitrary metadata

    Returns:
        A JSON round-tripped copy, with unknown objects rendered via ``str``

    Examples:
        >>> _json_safe({"when": datetime(2025, 1, 1, tzinfo=timezone.utc)})
        {'when': '2025-01-01 00:00:00+00:00'}
        >>> _json_safe(None) is None
        True
    """
    if details is None:
        return None
    return json.loads(json.dumps(details, default=str))


class BridgeEventLogger:
    """Fire-and-forget sink for per-bridge gateway events.

    Each event is mirrored to the process logger and stored in
    ``bridge_logs`` when the bridge exists. Existence checks are memoized in
    a :class:`VerifiedBridgeCache`. Nothing here ever raises: storage failures
    degrade to a process log warning.

    Examples:
        >>> from unittest.mock import MagicMock
        >>> events = BridgeEventLogger(session_factory=MagicMock(side_effect=RuntimeError("db down")))
        >>> import asyncio
        >>> asyncio.run(events.log("b1", LogLevel.INFO, "hello"))
        False
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None, cache: Optional[VerifiedBridgeCache] = None):
        """Initialize the event logger.

        Args:
            session_factory: Callable returning a new Session; defaults to ``SessionLocal``
            cache: Verified bridge cache; a private one sized from settings when omitted
        """
        self._session_factory = session_factory or SessionLocal
        self.cache = cache if cache is not None else VerifiedBridgeCache(max_size=settings.verified_bridge_cache_size)

    async def log(self, bridge_id: Optional[str], level: LogLevel, message: str, details: Optional[Dict[str, Any]] = None) -> bool:
        """Record an event for a bridge.

        Args:
            bridge_id: Bridge primary key; events without one are only mirrored
            level: Severity
            message: Event message
            details: Optional structured metadata

        Returns:
            bool: True when a row was stored
        """
        logger.log(STDLIB_LEVELS[LogLevel(level)], f"[bridge {bridge_id}] {message}")
        if not bridge_id:
            return False

        try:
            return self._store(bridge_id, LogLevel(level), message, _json_safe(details))
        except Exception as e:
            logger.warning(f"Failed to store event for bridge {bridge_id}: {e}")
            return False

    def _store(self, bridge_id: str, level: LogLevel, message: str, details: Optional[Dict[str, Any]]) -> bool:
        """Write the event row if the bridge exists.

        Args:
            bridge_id: Bridge primary key
            level: Severity
            message: Event message
            details: JSON-safe metadata

        Returns:
            bool: True when a row was stored
        """
        session = self._session_factory()
        try:
            if not self.cache.contains(bridge_id):
                if session.get(Bridge, bridge_id) is None:
                    logger.debug(f"Skipping event for unknown bridge {bridge_id}")
                    return False
                self.cache.add(bridge_id)

            session.add(BridgeLog(bridge_id=bridge_id, level=level.value, message=message, details=details, timestamp=datetime.now(timezone.utc)))
            session.commit()
            return True
        except Exception:
            session.rollback()
            # The bridge may have been deleted since it was cached
            self.cache.discard(bridge_id)
            raise
        finally:
            session.close()
