# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/access_control.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Access Control Guard.
This module decides whether a gateway caller may use a bridge. When the
bridge's access policy requires authentication, a token is taken from the
request headers and evaluated by an ordered list of strategies:

1. ``LegacyApiKeyStrategy``: the bridge's single shared ``apiKey``
2. ``TokenStoreStrategy``: active, unexpired rows in ``access_tokens``

The first strategy that authenticates wins, but later strategies still run so
token-store outcomes are logged consistently.

Examples:
    >>> extract_token({"Authorization": "Bearer abc"})
    'abc'
    >>> extract_token({"authorization": "ApiKey xyz"})
    'xyz'
    >>> extract_token({"X-API-Key": "k1"})
    'k1'
    >>> extract_token({}) is None
    True
"""

# Standard
from enum import Enum
import secrets
from typing import List, Mapping, Optional

# Third-Party
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.models import LogLevel
from mcpbridge.schemas import BridgeConfig
from mcpbridge.services.bridge_service import BridgeService
from mcpbridge.services.logging_service import BridgeEventLogger, LoggingService
from mcpbridge.validation.jsonrpc import INTERNAL_ERROR, JSONRPCError, UNAUTHORIZED

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

AUTH_CHALLENGE = {"WWW-Authenticate": 'Bearer realm="MCP Bridge"'}


class AuthOutcome(str, Enum):
    """Verdict of one authentication strategy."""

    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    ERROR = "error"


class AccessDeniedError(JSONRPCError):
    """Raised when a caller fails the bridge's access policy.

    Examples:
        >>> err = AccessDeniedError("Missing access token")
        >>> err.code, err.http_status, err.headers["WWW-Authenticate"]
        (-32401, 401, 'Bearer realm="MCP Bridge"')
        >>> err.to_dict()["id"] is None
        True
    """

    def __init__(self, message: str):
        """Initialize the rejection.

        Args:
            message: Reason returned to the caller
        """
        super().__init__(UNAUTHORIZED, message, http_status=401, headers=dict(AUTH_CHALLENGE))


class AccessControlError(JSONRPCError):
    """Raised when the token store cannot be consulted.

    Examples:
        >>> err = AccessControlError("Authentication service unavailable")
        >>> err.code, err.http_status
        (-32603, 500)
    """

    def __init__(self, message: str):
        """Initialize the error.

        Args:
            message: Reason returned to the caller
        """
        super().__init__(INTERNAL_ERROR, message, http_status=500)


def extract_token(headers: Mapping[str, str]) -> Optional[str]:
    """Pull a candidate access token from request headers.

    Checked in order: ``Authorization: Bearer``, ``Authorization: ApiKey``,
    then ``X-API-Key``. Header names are matched case-insensitively.

    Args:
        headers: Request headers

    Returns:
        Optional[str]: The token, or None when absent

    Examples:
        >>> extract_token({"Authorization": "Basic dTpw", "X-API-Key": "fallback"})
        'fallback'
        >>> extract_token({"Authorization": "Bearer   "}) is None
        True
    """
    lowered = {key.lower(): value for key, value in headers.items()}
    authorization = lowered.get("authorization") or ""

    for prefix in ("Bearer ", "ApiKey "):
        if authorization.startswith(prefix):
            token = authorization[len(prefix) :].strip()
            if token:
                return token

    api_key = (lowered.get("x-api-key") or "").strip()
    return api_key or None


class AuthStrategy:
    """One step of the ordered access-control evaluation."""

    name = "strategy"

    async def evaluate(self, db: Session, bridge: BridgeConfig, token: str) -> AuthOutcome:
        """Judge a presented token.

        Args:
            db: Database session
            bridge: Bridge being accessed
            token: Presented token

        Returns:
            AuthOutcome: The verdict

        Raises:
            NotImplementedError: Always; subclasses implement this
        """
        raise NotImplementedError


class LegacyApiKeyStrategy(AuthStrategy):
    """Accept the bridge's single shared ``accessConfig.apiKey``.

    Examples:
        >>> import asyncio
        >>> bridge = BridgeConfig.model_validate({"id": "b1", "name": "B", "baseUrl": "https://x", "accessConfig": {"authRequired": True, "apiKey": "legacy"}})
        >>> asyncio.run(LegacyApiKeyStrategy().evaluate(None, bridge, "legacy")).value
        'authenticated'
        >>> asyncio.run(LegacyApiKeyStrategy().evaluate(None, bridge, "other")).value
        'rejected'
    """

    name = "legacy_api_key"

    async def evaluate(self, db: Session, bridge: BridgeConfig, token: str) -> AuthOutcome:
        """Compare the token against the legacy key.

        Args:
            db: Database session (unused)
            bridge: Bridge being accessed
            token: Presented token

        Returns:
            AuthOutcome: AUTHENTICATED on an exact match, else REJECTED
        """
        api_key = bridge.access.api_key
        if api_key and secrets.compare_digest(token.encode("utf-8"), api_key.encode("utf-8")):
            return AuthOutcome.AUTHENTICATED
        return AuthOutcome.REJECTED


class TokenStoreStrategy(AuthStrategy):
    """Accept active, unexpired tokens stored for the bridge."""

    name = "token_store"

    def __init__(self, bridge_service: BridgeService, event_logger: BridgeEventLogger):
        """Initialize the strategy.

        Args:
            bridge_service: Repository used for token lookup
            event_logger: Sink for authentication events
        """
        self._bridge_service = bridge_service
        self._event_logger = event_logger

    async def evaluate(self, db: Session, bridge: BridgeConfig, token: str) -> AuthOutcome:
        """Look the token up in the token store.

        A matching token has its ``last_used_at`` refreshed; failure to do so
        is logged and does not affect the verdict.

        Args:
            db: Database session
            bridge: Bridge being accessed
            token: Presented token

        Returns:
            AuthOutcome: AUTHENTICATED, REJECTED, or ERROR when the store fails
        """
        try:
            access_token = await self._bridge_service.find_active_token(db, bridge.id, token)
        except SQLAlchemyError as e:
            logger.error(f"Token lookup failed for bridge {bridge.id}: {e}")
            db.rollback()
            return AuthOutcome.ERROR

        if access_token is None:
            await self._event_logger.log(bridge.id, LogLevel.WARNING, "Invalid or expired access token", {"tokenPrefix": token[:10]})
            return AuthOutcome.REJECTED

        try:
            await self._bridge_service.touch_token(db, access_token.id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Failed to update last use of token {access_token.id}: {e}")

        await self._event_logger.log(bridge.id, LogLevel.INFO, "Authentication successful", {"tokenId": access_token.id, "tokenName": access_token.name})
        return AuthOutcome.AUTHENTICATED


class AccessControlGuard:
    """Evaluates a bridge's access policy for one request."""

    def __init__(self, bridge_service: BridgeService, event_logger: BridgeEventLogger, strategies: Optional[List[AuthStrategy]] = None):
        """Initialize the guard.

        Args:
            bridge_service: Repository used for token lookup
            event_logger: Sink for authentication events
            strategies: Ordered strategies; legacy key then token store by default
        """
        self._event_logger = event_logger
        self.strategies = strategies if strategies is not None else [LegacyApiKeyStrategy(), TokenStoreStrategy(bridge_service, event_logger)]

    async def authenticate(self, db: Session, bridge: BridgeConfig, headers: Mapping[str, str]) -> bool:
        """Authenticate a caller against the bridge's access policy.

        Args:
            db: Database session
            bridge: Bridge being accessed
            headers: Request headers

        Returns:
            bool: True when the caller was authenticated, False when the bridge requires no authentication

        Raises:
            AccessDeniedError: If the caller is rejected
            AccessControlError: If the token store fails before any strategy authenticated the caller
        """
        if not bridge.access.auth_required:
            return False

        token = extract_token(headers)
        if token is None:
            await self._event_logger.log(bridge.id, LogLevel.WARNING, "Missing access token")
            raise AccessDeniedError("Missing access token")

        authenticated_by: Optional[str] = None
        rejected = False
        for strategy in self.strategies:
            outcome = await strategy.evaluate(db, bridge, token)
            if outcome == AuthOutcome.ERROR:
                if authenticated_by is None:
                    raise AccessControlError("Authentication service unavailable")
                logger.warning(f"Strategy {strategy.name} failed after {authenticated_by} authenticated bridge {bridge.id} caller")
            elif outcome == AuthOutcome.AUTHENTICATED:
                authenticated_by = authenticated_by or strategy.name
            else:
                rejected = True

        if authenticated_by is None:
            raise AccessDeniedError("Invalid or expired access token" if rejected else "Invalid authentication")

        logger.debug(f"Bridge {bridge.id} caller authenticated by {authenticated_by}")
        return True
