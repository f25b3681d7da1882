# -*- coding: utf-8 -*-
"""Tests for the mcpbridge CLI module (cli.py).

Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Covers default injection for the Uvicorn wrapper and the ``init-db`` and
``--version`` short-circuits of ``main()``.
"""

from __future__ import annotations

import sys
from typing import Any, Dict, List

import pytest

import mcpbridge.cli as cli

# ---------------------------------------------------------------------------
# helpers / fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _restore_sys_argv() -> None:
    """Keep the global *sys.argv* pristine between tests."""
    original = sys.argv.copy()
    yield
    sys.argv[:] = original


def _capture_uvicorn_main(monkeypatch) -> Dict[str, Any]:
    """Monkey-patch *uvicorn.main* and record the argv it sees."""
    captured: Dict[str, Any] = {}

    def _fake_main() -> None:
        captured["argv"] = sys.argv.copy()

    monkeypatch.setattr(cli.uvicorn, "main", _fake_main)
    return captured


def _forbid_uvicorn(monkeypatch) -> None:
    monkeypatch.setattr(cli.uvicorn, "main", lambda: (_ for _ in ()).throw(RuntimeError("should not be called")))


# ---------------------------------------------------------------------------
#  _needs_app / _insert_defaults
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("argv", "missing"),
    [
        ([], True),
        (["--reload"], True),
        (["somepkg.app:app"], False),
    ],
)
def test_needs_app_detection(argv: List[str], missing: bool) -> None:
    assert cli._needs_app(argv) is missing


def test_insert_defaults_injects_everything() -> None:
    raw = ["--reload"]
    out = cli._insert_defaults(raw)

    assert raw == ["--reload"]
    assert out == [cli.DEFAULT_APP, "--reload", "--host", cli.DEFAULT_HOST, "--port", str(cli.DEFAULT_PORT)]


def test_insert_defaults_respects_explicit_host_and_port() -> None:
    out = cli._insert_defaults(["myapp:app", "--host", "0.0.0.0", "--port", "9000"])
    assert out == ["myapp:app", "--host", "0.0.0.0", "--port", "9000"]


def test_insert_defaults_skips_for_uds() -> None:
    out = cli._insert_defaults(["--uds", "/tmp/app.sock"])
    assert "--host" not in out
    assert "--port" not in out


def test_insert_defaults_skips_for_inherited_fd() -> None:
    assert cli._insert_defaults(["--fd", "3"]) == [cli.DEFAULT_APP, "--fd", "3"]


# ---------------------------------------------------------------------------
#  main()
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("flag", ["--version", "-V"])
def test_main_prints_version(flag: str, capsys, monkeypatch) -> None:
    monkeypatch.setattr(sys, "argv", ["mcpbridge", flag])
    _forbid_uvicorn(monkeypatch)

    cli.main()

    assert capsys.readouterr().out.strip() == f"mcpbridge {cli.__version__}"


def test_main_init_db(capsys, monkeypatch) -> None:
    calls: List[bool] = []
    monkeypatch.setattr("mcpbridge.db.init_db", lambda: calls.append(True))
    monkeypatch.setattr(sys, "argv", ["mcpbridge", "init-db"])
    _forbid_uvicorn(monkeypatch)

    cli.main()

    assert calls == [True]
    assert capsys.readouterr().out.strip() == "Database initialized"


def test_main_invokes_uvicorn_with_patched_argv(monkeypatch) -> None:
    captured = _capture_uvicorn_main(monkeypatch)
    monkeypatch.setattr(sys, "argv", ["mcpbridge", "--reload"])

    cli.main()

    patched = captured["argv"]
    assert patched[0] == "mcpbridge"
    assert patched[1] == cli.DEFAULT_APP
    assert "--reload" in patched
    assert "--host" in patched and "--port" in patched
