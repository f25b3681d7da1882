# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/token_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Access Token Service.
This module manages the bridge-scoped access tokens the gateway accepts:
- Secret generation in the ``mcp_<base36 ms timestamp>_<random>`` format
- Token format validation and metadata parsing
- Listing, creation, update and deletion per bridge

Secrets are returned in full only by :meth:`TokenService.create_token`.

Examples:
    >>> token = generate_token()
    >>> token.startswith("mcp_") and validate_token_format(token)
    True
    >>> validate_token_format("not a token")
    False
"""

# Standard
from datetime import timedelta
import re
import secrets
import time
from typing import Any, Dict, List, Optional

# Third-Party
from sqlalchemy import select
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.db import AccessToken as DbAccessToken
from mcpbridge.db import Bridge as DbBridge
from mcpbridge.db import utc_now
from mcpbridge.schemas import TokenCreate, TokenCreateResponse, TokenRead, TokenUpdate
from mcpbridge.services.bridge_service import BridgeError, BridgeNotFoundError
from mcpbridge.services.logging_service import LoggingService

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

TOKEN_PATTERN = re.compile(r"^[a-z]+_[0-9a-z]+_[A-Za-z0-9_-]+$")
BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


class TokenNotFoundError(BridgeError):
    """Raised when a token does not exist on the given bridge.

    Examples:
        >>> issubclass(TokenNotFoundError, BridgeError)
        True
    """


def to_base36(value: int) -> str:
    """Render a non-negative integer in lower-case base 36.

    Args:
        value: Integer to encode

    Returns:
        str: Base 36 digits

    Examples:
        >>> to_base36(0), to_base36(35), to_base36(36), to_base36(1700000000000)
        ('0', 'z', '10', 'loyw3v28')
    """
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_token(prefix: str = "mcp") -> str:
    """Create a new access token secret.

    Args:
        prefix: Lower-case token prefix

    Returns:
        str: ``<prefix>_<base36 ms timestamp>_<32 random bytes, base64url>``

    Examples:
        >>> parts = generate_token().split("_", 2)
        >>> parts[0], len(parts[2]) >= 43
        ('mcp', True)
    """
    timestamp = to_base36(int(time.time() * 1000))
    return f"{prefix}_{timestamp}_{secrets.token_urlsafe(32)}"


def validate_token_format(token: str) -> bool:
    """Check a token has the ``prefix_timestamp_secret`` shape.

    Args:
        token: Candidate token

    Returns:
        bool: True for well-formed tokens

    Examples:
        >>> validate_token_format("mcp_loyw3v28_abc-DEF_123")
        True
        >>> validate_token_format("MCP_loyw3v28_abc")
        False
    """
    return bool(TOKEN_PATTERN.match(token or ""))


def parse_token_metadata(token: str) -> Optional[Dict[str, Any]]:
    """Extract the prefix and creation timestamp from a token.

    Args:
        token: Token secret

    Returns:
        Optional[Dict[str, Any]]: ``{"prefix", "timestamp"}`` with the timestamp in ms, or None if malformed

    Examples:
        >>> parse_token_metadata("mcp_loyw3v28_secret")
        {'prefix': 'mcp', 'timestamp': 1700000000000}
        >>> parse_token_metadata("garbage") is None
        True
    """
    if not validate_token_format(token):
        return None
    prefix, timestamp, _ = token.split("_", 2)
    return {"prefix": prefix, "timestamp": int(timestamp, 36)}


class TokenService:
    """Manages access tokens of bridges."""

    def _require_bridge(self, db: Session, bridge_id: str) -> None:
        """Ensure the bridge exists.

        Args:
            db: Database session
            bridge_id: Bridge primary key

        Raises:
            BridgeNotFoundError: If it does not
        """
        if db.get(DbBridge, bridge_id) is None:
            raise BridgeNotFoundError(f"Bridge not found: {bridge_id}")

    def _get_token(self, db: Session, bridge_id: str, token_id: str) -> DbAccessToken:
        """Load a token owned by the bridge.

        Args:
            db: Database session
            bridge_id: Owning bridge
            token_id: Token primary key

        Returns:
            DbAccessToken: The row

        Raises:
            TokenNotFoundError: If the bridge has no such token
        """
        token = db.get(DbAccessToken, token_id)
        if token is None or token.bridge_id != bridge_id:
            raise TokenNotFoundError(f"Token not found: {token_id}")
        return token

    async def list_tokens(self, db: Session, bridge_id: str) -> List[TokenRead]:
        """List a bridge's tokens, newest first.

        Args:
            db: Database session
            bridge_id: Owning bridge

        Returns:
            List[TokenRead]: Token metadata without secrets
        """
        self._require_bridge(db, bridge_id)
        query = select(DbAccessToken).where(DbAccessToken.bridge_id == bridge_id).order_by(DbAccessToken.created_at.desc())
        return [TokenRead.model_validate(token) for token in db.execute(query).scalars().all()]

    async def create_token(self, db: Session, bridge_id: str, token_create: TokenCreate) -> TokenCreateResponse:
        """Issue a new token for a bridge.

        Args:
            db: Database session
            bridge_id: Owning bridge
            token_create: Name, description and optional lifetime in days

        Returns:
            TokenCreateResponse: Metadata plus the secret, shown only here
        """
        self._require_bridge(db, bridge_id)
        expires_at = utc_now() + timedelta(days=token_create.expires_in_days) if token_create.expires_in_days else None
        db_token = DbAccessToken(
            bridge_id=bridge_id,
            token=generate_token(),
            name=token_create.name,
            description=token_create.description,
            is_active=True,
            expires_at=expires_at,
        )
        db.add(db_token)
        db.commit()
        db.refresh(db_token)
        logger.info(f"Created access token {db_token.id} ({db_token.name}) for bridge {bridge_id}")
        return TokenCreateResponse(token=TokenRead.model_validate(db_token), access_token=db_token.token)

    async def update_token(self, db: Session, bridge_id: str, token_id: str, token_update: TokenUpdate) -> TokenRead:
        """Rename, describe, activate or deactivate a token.

        Args:
            db: Database session
            bridge_id: Owning bridge
            token_id: Token primary key
            token_update: Fields to change

        Returns:
            TokenRead: The updated token
        """
        db_token = self._get_token(db, bridge_id, token_id)
        for field, value in token_update.model_dump(exclude_unset=True).items():
            if value is not None or field == "description":
                setattr(db_token, field, value)
        db.commit()
        db.refresh(db_token)
        logger.info(f"Updated access token {token_id} of bridge {bridge_id}")
        return TokenRead.model_validate(db_token)

    async def delete_token(self, db: Session, bridge_id: str, token_id: str) -> None:
        """Delete a token.

        Args:
            db: Database session
            bridge_id: Owning bridge
            token_id: Token primary key
        """
        db_token = self._get_token(db, bridge_id, token_id)
        db.delete(db_token)
        db.commit()
        logger.info(f"Deleted access token {token_id} of bridge {bridge_id}")
