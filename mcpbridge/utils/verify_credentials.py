# -*- coding: utf-8 -*-
"""Authentication verification utilities for the MCP Bridge admin API.

This module provides HTTP Basic authentication for the bridge and token
management endpoints. The MCP gateway endpoint itself is protected per bridge
by the access control guard, not by these credentials.

Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Examples:
    >>> from fastapi.security import HTTPBasicCredentials
    >>> from mcpbridge.config import settings
    >>> import asyncio
    >>> creds = HTTPBasicCredentials(username=settings.basic_auth_user, password=settings.basic_auth_password)
    >>> asyncio.run(verify_basic_credentials(creds)) == settings.basic_auth_user
    True
"""

# Standard
import secrets
from typing import Optional

# Third-Party
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

# First-Party
from mcpbridge.config import settings

basic_security = HTTPBasic(auto_error=False)


async def verify_basic_credentials(credentials: HTTPBasicCredentials) -> str:
    """Verify HTTP Basic authentication credentials.

    Validates the provided username and password against the configured
    basic auth credentials in settings.

    Args:
        credentials: HTTP Basic credentials containing username and password.

    Returns:
        str: The authenticated username if credentials are valid.

    Raises:
        HTTPException: 401 status if credentials are invalid.

    Examples:
        >>> from fastapi.security import HTTPBasicCredentials
        >>> import asyncio
        >>> try:
        ...     asyncio.run(verify_basic_credentials(HTTPBasicCredentials(username='nobody', password='wrong')))
        ... except HTTPException as e:
        ...     print(e.status_code, e.detail)
        401 Invalid credentials
    """
    is_valid_user = secrets.compare_digest(credentials.username.encode(), settings.basic_auth_user.encode())
    is_valid_pass = secrets.compare_digest(credentials.password.encode(), settings.basic_auth_password.encode())

    if not (is_valid_user and is_valid_pass):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


async def require_basic_auth(credentials: Optional[HTTPBasicCredentials] = Depends(basic_security)) -> str:
    """Require valid HTTP Basic authentication.

    FastAPI dependency guarding the admin routers.

    Args:
        credentials: HTTP Basic credentials provided by the client.

    Returns:
        str: The authenticated username.

    Raises:
        HTTPException: 401 status if no valid credentials are provided.

    Examples:
        >>> import asyncio
        >>> try:
        ...     asyncio.run(require_basic_auth(None))
        ... except HTTPException as e:
        ...     print(e.status_code, e.detail)
        401 Not authenticated
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )
    return await verify_basic_credentials(credentials)
