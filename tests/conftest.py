# -*- coding: utf-8 -*-
"""Location: ./tests/conftest.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Shared fixtures: a throwaway SQLite database and a bridge factory.
"""

# Standard
from typing import Any, Dict, List

# Third-Party
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# First-Party
from mcpbridge.db import ApiEndpoint as DbApiEndpoint
from mcpbridge.db import Base
from mcpbridge.db import Bridge as DbBridge

DEFAULT_ENDPOINTS: List[Dict[str, Any]] = [
    {
        "name": "List users",
        "method": "GET",
        "path": "/users",
        "description": "List all users",
        "config": {"parameters": [{"name": "limit", "type": "integer"}]},
    },
    {
        "name": "Get user",
        "method": "GET",
        "path": "/users/{id}",
        "config": {"parameters": [{"name": "id", "type": "integer", "required": True}]},
    },
    {
        "name": "Create user",
        "method": "POST",
        "path": "/users",
        "config": {
            "requestBody": {
                "required": True,
                "properties": {
                    "email": {"type": "string", "required": True},
                    "name": {"type": "string"},
                },
            }
        },
    },
]


@pytest.fixture
def test_engine(tmp_path):
    """Create a SQLite engine on a per-test database file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def test_db(session_factory):
    """Create a fresh database session for a test."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_bridge(test_db):
    """Factory storing a bridge with endpoints; keyword arguments override columns."""

    def _make(**overrides) -> DbBridge:
        endpoints = overrides.pop("endpoints", DEFAULT_ENDPOINTS)
        columns: Dict[str, Any] = {
            "name": "Users API",
            "slug": "users-api",
            "description": "User directory",
            "base_url": "https://api.example.com",
            "enabled": True,
            "auth_config": {"type": "none"},
            "headers": {},
            "access_config": {"authRequired": False},
        }
        columns.update(overrides)
        bridge = DbBridge(
            **columns,
            endpoints=[
                DbApiEndpoint(
                    position=position,
                    name=ep["name"],
                    method=ep.get("method"),
                    path=ep.get("path"),
                    description=ep.get("description"),
                    config=ep.get("config"),
                )
                for position, ep in enumerate(endpoints)
            ],
        )
        test_db.add(bridge)
        test_db.commit()
        test_db.refresh(bridge)
        return bridge

    return _make
