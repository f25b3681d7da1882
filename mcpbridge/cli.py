# -*- coding: utf-8 -*-
"""Location: ./mcpbridge/cli.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Command line entry point for MCP Bridge.

Installed as the ``mcpbridge`` console script. It serves the gateway with
Uvicorn, filling in the application path and the configured bind address
when they are not given:

    mcpbridge init-db        create the bridge, endpoint, token and log tables
    mcpbridge --version      print the package version
    mcpbridge [uvicorn args] serve ``mcpbridge.main:app``

Any other arguments go to Uvicorn unchanged. The bind address comes from
``HOST``/``PORT`` settings, overridable with ``MCPBRIDGE_HOST`` and
``MCPBRIDGE_PORT``.
"""

# Future
from __future__ import annotations

# Standard
import os
import sys
from typing import List

# Third-Party
import uvicorn

# First-Party
from mcpbridge import __version__
from mcpbridge.config import settings

DEFAULT_APP = "mcpbridge.main:app"
DEFAULT_HOST = os.getenv("MCPBRIDGE_HOST", settings.host)
DEFAULT_PORT = int(os.getenv("MCPBRIDGE_PORT", str(settings.port)))

# Uvicorn flags that already fix where the server listens
BIND_FLAGS = ("--uds", "--fd")


def _needs_app(arg_list: List[str]) -> bool:
    """Check whether the bridge app path has to be supplied.

    Args:
        arg_list (List[str]): Arguments after the program name

    Returns:
        bool: True when there is no leading positional app path

    Examples:
        >>> _needs_app([])
        True
        >>> _needs_app(["--reload"])
        True
        >>> _needs_app(["myapp.main:app"])
        False
    """
    return not arg_list or arg_list[0].startswith("-")


def _insert_defaults(raw_args: List[str]) -> List[str]:
    """Build the Uvicorn argv for serving the gateway.

    Args:
        raw_args (List[str]): Arguments after the program name; not modified

    Returns:
        List[str]: Arguments with the app path, host and port filled in

    Examples:
        >>> _insert_defaults([])[0]
        'mcpbridge.main:app'
        >>> _insert_defaults(["--uds", "/tmp/mcpbridge.sock"])
        ['mcpbridge.main:app', '--uds', '/tmp/mcpbridge.sock']
        >>> "--port" in _insert_defaults(["myapp.main:app", "--reload"])
        True
    """
    args = [DEFAULT_APP, *raw_args] if _needs_app(raw_args) else list(raw_args)
    if any(flag in args for flag in BIND_FLAGS):
        return args
    if "--host" not in args and "--http" not in args:
        args += ["--host", DEFAULT_HOST]
    if "--port" not in args:
        args += ["--port", str(DEFAULT_PORT)]
    return args


def _init_db() -> None:
    """Create the database tables named by ``DATABASE_URL``."""
    # First-Party
    from mcpbridge.db import init_db  # pylint: disable=import-outside-toplevel

    init_db()
    print("Database initialized")


def main() -> None:
    """Run the ``mcpbridge`` console script."""
    user_args = sys.argv[1:]

    if user_args[:1] == ["init-db"]:
        _init_db()
        return

    if "--version" in user_args or "-V" in user_args:
        print(f"mcpbridge {__version__}")
        return

    # uvicorn.main() parses sys.argv itself
    sys.argv = ["mcpbridge", *_insert_defaults(user_args)]
    uvicorn.main()  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":  # pragma: no cover
    main()
