# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/routers/bridges.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Bridge management API endpoints.
Provides CRUD for bridges and read access to their event logs. All routes
require the admin HTTP Basic credentials.
"""

# Standard
from typing import List

# Third-Party
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.db import get_db
from mcpbridge.schemas import BridgeCreate, BridgeLogRead, BridgeRead, BridgeUpdate
from mcpbridge.services.bridge_service import BridgeNotFoundError, BridgeService
from mcpbridge.services.logging_service import LoggingService
from mcpbridge.utils.verify_credentials import require_basic_auth

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

bridge_service = BridgeService()

router = APIRouter(prefix="/bridges", tags=["Bridges"], dependencies=[Depends(require_basic_auth)])


@router.get("", response_model=List[BridgeRead])
async def list_bridges(include_disabled: bool = True, db: Session = Depends(get_db)) -> List[BridgeRead]:
    """List configured bridges.

    Args:
        include_disabled: Whether disabled bridges are included
        db: Database session

    Returns:
        List[BridgeRead]: Bridges ordered by name

    Examples:
        >>> import asyncio
        >>> asyncio.iscoroutinefunction(list_bridges)
        True
    """
    return await bridge_service.list_bridges(db, include_disabled=include_disabled)


@router.post("", response_model=BridgeRead, status_code=status.HTTP_201_CREATED)
async def create_bridge(bridge: BridgeCreate, db: Session = Depends(get_db)) -> BridgeRead:
    """Create a bridge with its endpoints.

    Slug conflicts surface as 409 through the application's IntegrityError handler.

    Args:
        bridge: Bridge definition
        db: Database session

    Returns:
        BridgeRead: The stored bridge
    """
    return await bridge_service.create_bridge(db, bridge)


@router.get("/{bridge_id}", response_model=BridgeRead)
async def get_bridge(bridge_id: str, db: Session = Depends(get_db)) -> BridgeRead:
    """Get one bridge.

    Args:
        bridge_id: Bridge primary key
        db: Database session

    Returns:
        BridgeRead: The bridge

    Raises:
        HTTPException: 404 if the bridge does not exist
    """
    try:
        return await bridge_service.read_bridge(db, bridge_id)
    except BridgeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{bridge_id}", response_model=BridgeRead)
async def update_bridge(bridge_id: str, update: BridgeUpdate, db: Session = Depends(get_db)) -> BridgeRead:
    """Update a bridge; a supplied endpoint list replaces the stored one.

    Args:
        bridge_id: Bridge primary key
        update: Fields to change
        db: Database session

    Returns:
        BridgeRead: The updated bridge

    Raises:
        HTTPException: 404 if the bridge does not exist
    """
    try:
        return await bridge_service.update_bridge(db, bridge_id, update)
    except BridgeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{bridge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bridge(bridge_id: str, db: Session = Depends(get_db)) -> None:
    """Delete a bridge with its endpoints, tokens and logs.

    Args:
        bridge_id: Bridge primary key
        db: Database session

    Raises:
        HTTPException: 404 if the bridge does not exist
    """
    try:
        await bridge_service.delete_bridge(db, bridge_id)
    except BridgeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{bridge_id}/logs", response_model=List[BridgeLogRead])
async def list_bridge_logs(bridge_id: str, limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db)) -> List[BridgeLogRead]:
    """Read a bridge's most recent gateway events.

    Args:
        bridge_id: Bridge primary key
        limit: Maximum number of events
        db: Database session

    Returns:
        List[BridgeLogRead]: Events, newest first

    Raises:
        HTTPException: 404 if the bridge does not exist
    """
    try:
        return await bridge_service.list_logs(db, bridge_id, limit=limit)
    except BridgeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
