# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskdesk.cli.bootstrap import create_app_state
from taskdesk.config import Settings


def test_defaults(monkeypatch) -> None:
    for name in (
        "TASKDESK_DATA_DIR",
        "TASKDESK_DB_PATH",
        "TASKDESK_PORT",
        "MCP_SERVER_PORT",
        "TASKDESK_TRANSPORT",
        "TASKDESK_TOKEN_TTL_HOURS",
        "TASKDESK_DB_POOL_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.data_dir == Path(".local/taskdesk")
    assert s.db_path == Path(".local/taskdesk/taskdesk.sqlite3")
    assert s.port == 8080
    assert s.transport == "http"
    assert s.token_ttl_hours == 24
    assert s.db_pool_size == 25


def test_overrides_and_fallbacks(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKDESK_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("TASKDESK_DB_PATH", raising=False)
    monkeypatch.delenv("TASKDESK_PORT", raising=False)
    monkeypatch.setenv("MCP_SERVER_PORT", "9090")
    monkeypatch.delenv("TASKDESK_JWT_SECRET", raising=False)
    monkeypatch.setenv("JWT_SECRET", "from-plain-env")
    monkeypatch.setenv("TASKDESK_TRANSPORT", " STDIO ")
    monkeypatch.setenv("TASKDESK_DB_POOL_SIZE", "not-a-number")

    s = Settings.from_env()
    assert s.db_path == tmp_path / "taskdesk.sqlite3"
    assert s.port == 9090
    assert s.jwt_secret == "from-plain-env"
    assert s.transport == "stdio"
    assert s.db_pool_size == 25


def test_startup_requires_signing_secret(settings) -> None:
    settings.jwt_secret = ""
    with pytest.raises(RuntimeError, match="TASKDESK_JWT_SECRET"):
        create_app_state(settings=settings)
