# -*- coding: utf-8 -*-
"""MCP Bridge Database Models.

Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

This module defines SQLAlchemy models for storing bridge configuration:
- Bridges with upstream auth, static headers and access policy
- Ordered API endpoints owned by a bridge
- Bridge-scoped access tokens consulted by the gateway
- Bridge event logs written by the gateway

Examples:
    >>> from mcpbridge.db import connect_args
    >>> isinstance(connect_args, dict)
    True
"""

# Standard
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

# Third-Party
from sqlalchemy import Boolean, create_engine, DateTime, ForeignKey, Integer, JSON, make_url, String, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, sessionmaker

# First-Party
from mcpbridge.config import settings

url = make_url(settings.database_url)
backend = url.get_backend_name()

connect_args: dict[str, object] = {}

if backend == "postgresql":
    connect_args.update(
        keepalives=1,
        keepalives_idle=30,
        keepalives_interval=5,
        keepalives_count=5,
    )
elif backend == "sqlite":
    # Allow pooled connections to hop across threads.
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
    pool_recycle=settings.db_pool_recycle,
    connect_args=connect_args,
)


def utc_now() -> datetime:
    """Return the current Coordinated Universal Time (UTC).

    Returns:
        datetime: A timezone-aware `datetime` whose `tzinfo` is
        `datetime.timezone.utc`.

    Examples:
        >>> from mcpbridge.db import utc_now
        >>> now = utc_now()
        >>> now.tzinfo is not None
        True
        >>> str(now.tzinfo)
        'UTC'
    """
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a primary key for a new row.

    Returns:
        str: 32 character hex uuid4

    Examples:
        >>> len(new_id())
        32
    """
    return uuid.uuid4().hex


# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all models."""


class Bridge(Base):
    """ORM model for a bridge between one REST API and an MCP surface.

    The resource and prompt blobs are deferred: the gateway loads them only
    for ``resources/*`` and ``prompts/*`` requests.
    """

    __tablename__ = "bridges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slug: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    base_url: Mapped[str] = mapped_column(String, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    auth_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    headers: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    access_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    mcp_tools: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True)
    mcp_resources: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True, deferred=True)
    mcp_prompts: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSON, nullable=True, deferred=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    endpoints: Mapped[List["ApiEndpoint"]] = relationship(
        back_populates="bridge",
        cascade="all, delete-orphan",
        order_by="ApiEndpoint.position",
        lazy="selectin",
    )
    access_tokens: Mapped[List["AccessToken"]] = relationship(back_populates="bridge", cascade="all, delete-orphan")
    logs: Mapped[List["BridgeLog"]] = relationship(back_populates="bridge", cascade="all, delete-orphan")


class ApiEndpoint(Base):
    """ORM model for one REST operation declared on a bridge."""

    __tablename__ = "api_endpoints"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    bridge_id: Mapped[str] = mapped_column(ForeignKey("bridges.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)
    name: Mapped[str] = mapped_column(String, nullable=False)
    method: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    path: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # parameters, requestBody, responseSchema, timeout (ms)
    config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    bridge: Mapped["Bridge"] = relationship(back_populates="endpoints")


class AccessToken(Base):
    """ORM model for a bridge-scoped access token."""

    __tablename__ = "access_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    bridge_id: Mapped[str] = mapped_column(ForeignKey("bridges.id", ondelete="CASCADE"), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    bridge: Mapped["Bridge"] = relationship(back_populates="access_tokens")


class BridgeLog(Base):
    """ORM model for a gateway event recorded against a bridge."""

    __tablename__ = "bridge_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bridge_id: Mapped[str] = mapped_column(ForeignKey("bridges.id", ondelete="CASCADE"), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    bridge: Mapped["Bridge"] = relationship(back_populates="logs")


def get_db():
    """
    Dependency to get database session.

    Yields:
        SessionLocal: A SQLAlchemy database session.

    Examples:
        >>> from mcpbridge.db import get_db
        >>> gen = get_db()
        >>> db = next(gen)
        >>> hasattr(db, 'query')
        True
        >>> gen.close()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Create all tables
def init_db():
    """
    Initialize database tables.

    Raises:
        Exception: If database initialization fails.
    """
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise Exception(f"Failed to initialize database: {str(e)}")


if __name__ == "__main__":
    init_db()
