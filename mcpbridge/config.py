# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/config.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

MCP Bridge Configuration.
This module defines configuration settings for the MCP Bridge gateway using Pydantic.
It loads configuration from environment variables with sensible defaults.

Environment variables:
- APP_NAME: Gateway name (default: "MCP_Bridge")
- HOST: Host to bind to (default: "127.0.0.1")
- PORT: Port to listen on (default: 4444)
- DATABASE_URL: SQLite database URL (default: "sqlite:///./mcpbridge.db")
- BASIC_AUTH_USER: Admin username (default: "admin")
- BASIC_AUTH_PASSWORD: Admin password (default: "changeme")
- AUTH_ENCRYPTION_SECRET: Passphrase for encrypting stored upstream credentials
- LOG_LEVEL: Logging level (default: "INFO")
- SKIP_SSL_VERIFY: Disable SSL verification for upstream APIs (default: False)
- UPSTREAM_TIMEOUT: Default upstream API timeout in seconds (default: 30)
- VERIFIED_BRIDGE_CACHE_SIZE: Max bridge ids remembered as existing (default: 1000)

Examples:
    >>> from mcpbridge.config import Settings
    >>> s = Settings(basic_auth_user='admin', basic_auth_password='secret')
    >>> s.basic_auth_password
    'secret'
    >>> Settings(upstream_timeout=5).upstream_timeout
    5.0
"""

# Standard
from functools import lru_cache
import json
import logging
from pathlib import Path
from typing import Annotated, Set

# Third-Party
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    MCP Bridge configuration settings.

    Examples:
        >>> s = Settings()
        >>> s.app_name
        'MCP_Bridge'
        >>> s.port
        4444
        >>> s.protocol_version
        '2024-11-05'
        >>> isinstance(s.allowed_origins, set)
        True
    """

    # Basic Settings
    app_name: str = "MCP_Bridge"
    host: str = "127.0.0.1"
    port: int = 4444
    database_url: str = "sqlite:///./mcpbridge.db"
    app_root_path: str = ""

    # Protocol
    protocol_version: str = "2024-11-05"
    server_version: str = "1.0.0"

    # Admin API authentication
    basic_auth_user: str = "admin"
    basic_auth_password: str = "changeme"

    # Encryption of upstream credentials stored with bridges
    auth_encryption_secret: str = "my-test-salt"

    # Upstream API calls
    skip_ssl_verify: bool = False
    upstream_timeout: float = Field(default=30.0, description="Default upstream API timeout in seconds")

    # Bridge event logging
    verified_bridge_cache_size: int = Field(default=1000, description="Max bridge ids remembered as existing")

    # CORS for the admin API (the MCP endpoint always answers with a wildcard origin)
    cors_enabled: bool = True
    allowed_origins: Annotated[Set[str], NoDecode] = {
        "http://localhost",
        "http://localhost:4444",
    }

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Database
    db_pool_size: int = 200
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_allowed_origins(cls, v):
        """Parse allowed origins from environment variable or config value.

        Accepts a JSON array string, a comma-separated string or an
        already parsed iterable.

        Args:
            v: The input value to parse.

        Returns:
            Set[str]: A set of allowed origin strings.

        Examples:
            >>> sorted(Settings._parse_allowed_origins('["https://a.com", "https://b.com"]'))
            ['https://a.com', 'https://b.com']
            >>> sorted(Settings._parse_allowed_origins("https://x.com , https://y.com"))
            ['https://x.com', 'https://y.com']
            >>> Settings._parse_allowed_origins('""')
            set()
        """
        if isinstance(v, str):
            v = v.strip()
            if v[:1] in "\"'" and v[-1:] == v[:1]:
                v = v[1:-1]
            try:
                parsed = set(json.loads(v))
            except Exception:
                origins = set()
                for part in v.split(","):
                    part = part.strip()
                    if part:
                        origins.add(part)
                return origins
            return parsed
        return set(v)

    @field_validator("log_format")
    @classmethod
    def _validate_log_format(cls, v: str) -> str:
        """Restrict the log format to the supported values.

        Args:
            v: Requested format

        Returns:
            str: Normalized format

        Raises:
            ValueError: If the format is unknown

        Examples:
            >>> Settings._validate_log_format("TEXT")
            'text'
            >>> Settings._validate_log_format("xml")
            Traceback (most recent call last):
            ...
            ValueError: log_format must be 'json' or 'text'
        """
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @property
    def cors_settings(self) -> dict:
        """Get CORS settings for the admin API.

        Returns:
            dict: Dictionary containing CORS configuration options.

        Examples:
            >>> s = Settings(cors_enabled=True, allowed_origins={'http://localhost'})
            >>> s.cors_settings['allow_origins']
            ['http://localhost']
            >>> Settings(cors_enabled=False).cors_settings
            {}
        """
        return (
            {
                "allow_origins": list(self.allowed_origins),
                "allow_credentials": True,
                "allow_methods": ["*"],
                "allow_headers": ["*"],
            }
            if self.cors_enabled
            else {}
        )

    def validate_database(self) -> None:
        """Create the directory of a SQLite database file when it is missing.

        Examples:
            >>> s = Settings(database_url='sqlite:///./test.db')
            >>> s.validate_database()
        """
        if self.database_url.startswith("sqlite") and ":memory:" not in self.database_url:
            db_path = Path(self.database_url.replace("sqlite:///", ""))
            db_dir = db_path.parent
            if not db_dir.exists():
                logger.info(f"Creating database directory {db_dir}")
                db_dir.mkdir(parents=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: A cached instance of the Settings class.

    Examples:
        >>> get_settings() is get_settings()
        True
    """
    cfg = Settings()
    cfg.validate_database()
    return cfg


# Create settings instance
settings = get_settings()
