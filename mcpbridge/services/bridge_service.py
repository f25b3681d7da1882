# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/services/bridge_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Bridge Service Implementation.
This module is the bridge repository used by the gateway and the admin API.
It handles:
- Bridge lookup by primary id or slug, restricted to enabled bridges
- Lazy loading of a bridge's resources and prompts
- Access token lookup and last-used bookkeeping
- Bridge creation, update and deletion, with upstream secrets encrypted at rest
- Reading the bridge event log

Examples:
    >>> from mcpbridge.services.bridge_service import BridgeNotFoundError
    >>> str(BridgeNotFoundError("Bridge not found: pets"))
    'Bridge not found: pets'
"""

# Standard
from typing import List, Optional

# Third-Party
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.db import AccessToken as DbAccessToken
from mcpbridge.db import ApiEndpoint as DbApiEndpoint
from mcpbridge.db import Bridge as DbBridge
from mcpbridge.db import BridgeLog as DbBridgeLog
from mcpbridge.db import utc_now
from mcpbridge.models import Prompt, Resource
from mcpbridge.schemas import BridgeConfig, BridgeCreate, BridgeLogRead, BridgeRead, BridgeUpdate, EndpointCreate
from mcpbridge.services.logging_service import LoggingService
from mcpbridge.utils.identifiers import looks_like_uuid
from mcpbridge.utils.services_auth import encrypt_secrets

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)


class BridgeError(Exception):
    """Base class for bridge-related errors.

    Examples:
        >>> issubclass(BridgeError, Exception)
        True
    """


class BridgeNotFoundError(BridgeError):
    """Raised when a requested bridge is not found.

    Examples:
        >>> issubclass(BridgeNotFoundError, BridgeError)
        True
    """


def _endpoint_rows(endpoints: List[EndpointCreate]) -> List[DbApiEndpoint]:
    """Build ORM rows for an ordered endpoint list.

    Args:
        endpoints: Endpoint declarations

    Returns:
        List[DbApiEndpoint]: Rows with positions matching list order
    """
    return [
        DbApiEndpoint(
            position=position,
            name=endpoint.name,
            method=endpoint.method,
            path=endpoint.path,
            description=endpoint.description,
            config=endpoint.config.model_dump(by_alias=True, exclude_none=True),
        )
        for position, endpoint in enumerate(endpoints)
    ]


class BridgeService:
    """Repository for bridges, their endpoints, tokens and logs."""

    async def get_bridge(self, db: Session, identifier: str) -> Optional[BridgeConfig]:
        """Resolve a dispatchable bridge by id or slug.

        UUID shaped identifiers are looked up by primary key first; any
        identifier not found that way is tried as a slug. Only enabled
        bridges are returned.

        Args:
            db: Database session
            identifier: Bridge id or slug from the request path

        Returns:
            Optional[BridgeConfig]: The bridge, or None

        Examples:
            >>> from unittest.mock import MagicMock
            >>> import asyncio
            >>> db = MagicMock()
            >>> db.execute.return_value.scalar_one_or_none.return_value = None
            >>> asyncio.run(BridgeService().get_bridge(db, "pets")) is None
            True
        """
        bridge = None
        if looks_like_uuid(identifier):
            candidates = sorted({identifier, identifier.replace("-", "").lower()})
            bridge = db.execute(select(DbBridge).where(DbBridge.id.in_(candidates), DbBridge.enabled.is_(True))).scalar_one_or_none()

        if bridge is None:
            bridge = db.execute(select(DbBridge).where(DbBridge.slug == identifier, DbBridge.enabled.is_(True))).scalar_one_or_none()

        if bridge is None:
            return None
        return BridgeConfig.model_validate(bridge)

    async def list_resources(self, db: Session, bridge_id: str) -> List[Resource]:
        """Fetch a bridge's declared resources.

        Args:
            db: Database session
            bridge_id: Bridge primary key

        Returns:
            List[Resource]: Declared resources, empty when none
        """
        raw = db.execute(select(DbBridge.mcp_resources).where(DbBridge.id == bridge_id)).scalar_one_or_none()
        return [Resource.model_validate(item) for item in raw or []]

    async def list_prompts(self, db: Session, bridge_id: str) -> List[Prompt]:
        """Fetch a bridge's declared prompts.

        Args:
            db: Database session
            bridge_id: Bridge primary key

        Returns:
            List[Prompt]: Declared prompts, empty when none
        """
        raw = db.execute(select(DbBridge.mcp_prompts).where(DbBridge.id == bridge_id)).scalar_one_or_none()
        return [Prompt.model_validate(item) for item in raw or []]

    async def find_active_token(self, db: Session, bridge_id: str, token: str) -> Optional[DbAccessToken]:
        """Look up a usable access token of a bridge.

        Args:
            db: Database session
            bridge_id: Owning bridge
            token: Presented secret

        Returns:
            Optional[DbAccessToken]: The token when it is active and not expired
        """
        query = select(DbAccessToken).where(
            DbAccessToken.bridge_id == bridge_id,
            DbAccessToken.token == token,
            DbAccessToken.is_active.is_(True),
            or_(DbAccessToken.expires_at.is_(None), DbAccessToken.expires_at > utc_now()),
        )
        return db.execute(query).scalar_one_or_none()

    async def touch_token(self, db: Session, token_id: str) -> None:
        """Record that a token was just used.

        Args:
            db: Database session
            token_id: Token primary key
        """
        token = db.get(DbAccessToken, token_id)
        if token is not None:
            token.last_used_at = utc_now()
            db.commit()

    async def list_bridges(self, db: Session, include_disabled: bool = True) -> List[BridgeRead]:
        """List bridges for the admin API.

        Args:
            db: Database session
            include_disabled: Whether disabled bridges are included

        Returns:
            List[BridgeRead]: Bridges ordered by name
        """
        query = select(DbBridge).order_by(DbBridge.name)
        if not include_disabled:
            query = query.where(DbBridge.enabled.is_(True))
        return [BridgeRead.model_validate(bridge) for bridge in db.execute(query).scalars().all()]

    def _get_record(self, db: Session, bridge_id: str) -> DbBridge:
        """Load a bridge row regardless of its enabled flag.

        Args:
            db: Database session
            bridge_id: Bridge primary key

        Returns:
            DbBridge: The row

        Raises:
            BridgeNotFoundError: If no such bridge exists
        """
        bridge = db.get(DbBridge, bridge_id)
        if bridge is None:
            raise BridgeNotFoundError(f"Bridge not found: {bridge_id}")
        return bridge

    async def read_bridge(self, db: Session, bridge_id: str) -> BridgeRead:
        """Get one bridge for the admin API.

        Args:
            db: Database session
            bridge_id: Bridge primary key

        Returns:
            BridgeRead: The bridge
        """
        return BridgeRead.model_validate(self._get_record(db, bridge_id))

    async def create_bridge(self, db: Session, bridge: BridgeCreate) -> BridgeRead:
        """Create a bridge with its endpoints.

        Args:
            db: Database session
            bridge: Creation payload

        Returns:
            BridgeRead: The stored bridge

        Raises:
            IntegrityError: If the slug is already taken
        """
        db_bridge = DbBridge(
            name=bridge.name,
            slug=bridge.slug,
            description=bridge.description,
            base_url=bridge.base_url,
            enabled=bridge.enabled,
            auth_config=encrypt_secrets(bridge.auth_config.model_dump(by_alias=True, exclude_none=True)),
            headers=bridge.headers,
            mcp_tools=bridge.mcp_tools,
            mcp_resources=bridge.mcp_resources,
            mcp_prompts=bridge.mcp_prompts,
            access_config=encrypt_secrets(bridge.access_config.model_dump(by_alias=True, exclude_none=True)),
            endpoints=_endpoint_rows(bridge.endpoints),
        )
        try:
            db.add(db_bridge)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        db.refresh(db_bridge)
        logger.info(f"Created bridge {db_bridge.id} ({db_bridge.name}) with {len(db_bridge.endpoints)} endpoints")
        return BridgeRead.model_validate(db_bridge)

    async def update_bridge(self, db: Session, bridge_id: str, update: BridgeUpdate) -> BridgeRead:
        """Apply a partial update to a bridge.

        Args:
            db: Database session
            bridge_id: Bridge primary key
            update: Fields to change; ``endpoints`` replaces the whole list

        Returns:
            BridgeRead: The updated bridge

        Raises:
            IntegrityError: If the new slug is already taken
        """
        db_bridge = self._get_record(db, bridge_id)
        changes = update.model_dump(exclude_unset=True)

        for field in ("name", "slug", "description", "base_url", "enabled", "headers", "mcp_tools", "mcp_resources", "mcp_prompts"):
            if field in changes:
                setattr(db_bridge, field, getattr(update, field))
        if "auth_config" in changes:
            db_bridge.auth_config = encrypt_secrets(update.auth_config.model_dump(by_alias=True, exclude_none=True), previous=db_bridge.auth_config) if update.auth_config else None
        if "access_config" in changes:
            db_bridge.access_config = encrypt_secrets(update.access_config.model_dump(by_alias=True, exclude_none=True), previous=db_bridge.access_config) if update.access_config else None
        if update.endpoints is not None:
            db_bridge.endpoints = _endpoint_rows(update.endpoints)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        db.refresh(db_bridge)
        logger.info(f"Updated bridge {bridge_id}")
        return BridgeRead.model_validate(db_bridge)

    async def delete_bridge(self, db: Session, bridge_id: str) -> None:
        """Delete a bridge with its endpoints, tokens and logs.

        Args:
            db: Database session
            bridge_id: Bridge primary key
        """
        db_bridge = self._get_record(db, bridge_id)
        db.delete(db_bridge)
        db.commit()
        logger.info(f"Deleted bridge {bridge_id}")

    async def list_logs(self, db: Session, bridge_id: str, limit: int = 100) -> List[BridgeLogRead]:
        """Read the most recent events of a bridge.

        Args:
            db: Database session
            bridge_id: Bridge primary key
            limit: Maximum number of events

        Returns:
            List[BridgeLogRead]: Events, newest first
        """
        self._get_record(db, bridge_id)
        query = select(DbBridgeLog).where(DbBridgeLog.bridge_id == bridge_id).order_by(DbBridgeLog.timestamp.desc(), DbBridgeLog.id.desc()).limit(limit)
        return [BridgeLogRead.model_validate(log) for log in db.execute(query).scalars().all()]
