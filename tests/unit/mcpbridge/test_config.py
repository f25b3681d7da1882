# -*- coding: utf-8 -*-
"""Test the configuration module.

Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Standard
from pathlib import Path

# Third-Party
from pydantic import ValidationError
import pytest

# First-Party
from mcpbridge.config import get_settings, Settings


# --------------------------------------------------------------------------- #
#                          Settings field parsers                             #
# --------------------------------------------------------------------------- #
def test_parse_allowed_origins_json_and_csv():
    """Validator should accept JSON array *or* comma-separated string."""
    s_json = Settings(allowed_origins='["https://a.com", "https://b.com"]')
    assert s_json.allowed_origins == {"https://a.com", "https://b.com"}

    s_csv = Settings(allowed_origins="https://x.com , https://y.com")
    assert s_csv.allowed_origins == {"https://x.com", "https://y.com"}


def test_allowed_origins_from_environment(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://admin.example.com")
    assert Settings().allowed_origins == {"https://admin.example.com"}


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("UPSTREAM_TIMEOUT", "2.5")
    monkeypatch.setenv("LOG_FORMAT", "TEXT")
    monkeypatch.setenv("PROTOCOL_VERSION", "2025-03-26")
    s = Settings()
    assert s.upstream_timeout == 2.5
    assert s.log_format == "text"
    assert s.protocol_version == "2025-03-26"


def test_invalid_log_format():
    with pytest.raises(ValidationError):
        Settings(log_format="xml")


# --------------------------------------------------------------------------- #
#                          database / CORS helpers                            #
# --------------------------------------------------------------------------- #
def test_cors_settings():
    s = Settings(cors_enabled=True, allowed_origins={"https://a.com"})
    assert s.cors_settings == {
        "allow_origins": ["https://a.com"],
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }
    assert Settings(cors_enabled=False).cors_settings == {}


def test_validate_database_creates_directory(tmp_path: Path):
    db_file = tmp_path / "nested" / "dir" / "bridge.db"
    Settings(database_url=f"sqlite:///{db_file}").validate_database()
    assert db_file.parent.is_dir()


def test_validate_database_ignores_memory_and_other_backends(tmp_path: Path):
    Settings(database_url="sqlite:///:memory:").validate_database()
    Settings(database_url="postgresql://user:pw@localhost/bridges").validate_database()


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
