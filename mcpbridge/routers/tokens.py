# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/routers/tokens.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Access token management API.
Tokens are scoped to one bridge. The secret is returned once, on creation.

Examples:
    >>> from mcpbridge.routers.tokens import router
    >>> router.prefix
    '/bridges/{bridge_id}/tokens'
"""

# Standard
from typing import List

# Third-Party
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

# First-Party
from mcpbridge.db import get_db
from mcpbridge.schemas import TokenCreate, TokenCreateResponse, TokenRead, TokenUpdate
from mcpbridge.services.bridge_service import BridgeNotFoundError
from mcpbridge.services.logging_service import LoggingService
from mcpbridge.services.token_service import TokenNotFoundError, TokenService
from mcpbridge.utils.verify_credentials import require_basic_auth

# Initialize logging service first
logging_service = LoggingService()
logger = logging_service.get_logger(__name__)

token_service = TokenService()

router = APIRouter(prefix="/bridges/{bridge_id}/tokens", tags=["Access Tokens"], dependencies=[Depends(require_basic_auth)])


@router.get("", response_model=List[TokenRead])
async def list_tokens(bridge_id: str, db: Session = Depends(get_db)) -> List[TokenRead]:
    """List a bridge's tokens.

    Args:
        bridge_id: Owning bridge
        db: Database session

    Returns:
        List[TokenRead]: Token metadata, newest first

    Raises:
        HTTPException: 404 if the bridge does not exist
    """
    try:
        return await token_service.list_tokens(db, bridge_id)
    except BridgeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=TokenCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_token(bridge_id: str, request: TokenCreate, db: Session = Depends(get_db)) -> TokenCreateResponse:
    """Issue a token. Store the returned ``accessToken``; it is not shown again.

    Args:
        bridge_id: Owning bridge
        request: Token name, description and lifetime
        db: Database session

    Returns:
        TokenCreateResponse: Token metadata and secret

    Raises:
        HTTPException: 404 if the bridge does not exist
    """
    try:
        return await token_service.create_token(db, bridge_id, request)
    except BridgeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{token_id}", response_model=TokenRead)
async def update_token(bridge_id: str, token_id: str, request: TokenUpdate, db: Session = Depends(get_db)) -> TokenRead:
    """Update a token's name, description or active flag.

    Args:
        bridge_id: Owning bridge
        token_id: Token primary key
        request: Fields to change
        db: Database session

    Returns:
        TokenRead: Updated metadata

    Raises:
        HTTPException: 404 if the bridge has no such token
    """
    try:
        return await token_service.update_token(db, bridge_id, token_id, request)
    except TokenNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_token(bridge_id: str, token_id: str, db: Session = Depends(get_db)) -> None:
    """Revoke a token permanently.

    Args:
        bridge_id: Owning bridge
        token_id: Token primary key
        db: Database session

    Raises:
        HTTPException: 404 if the bridge has no such token
    """
    try:
        await token_service.delete_token(db, bridge_id, token_id)
    except TokenNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    logger.debug(f"Token {token_id} revoked through the admin API")
