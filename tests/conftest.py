# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdesk.auth.tokens import TokenClaims
from taskdesk.cli.bootstrap import create_app_state
from taskdesk.core.state import AppState

TEST_SECRET = "test-secret-0123456789-abcdefghijklmnop"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_app_state().

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskdesk-test",
        data_dir=tmp_path,
        db_path=tmp_path / "taskdesk.sqlite3",
        db_pool_size=5,
        db_timeout_seconds=5.0,
        jwt_secret=TEST_SECRET,
        token_ttl_hours=24,
        stdio_token=None,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired with real SQLite stores (their correctness is under test)."""
    return create_app_state(settings=settings)


@pytest.fixture()
def admin(state: AppState) -> TokenClaims:
    issued = state.service.bootstrap_admin("admin")
    return state.tokens.validate_token(issued.token)


@pytest.fixture()
def alice(state: AppState, admin: TokenClaims) -> TokenClaims:
    issued = state.service.create_user(admin, name="alice")
    return state.tokens.validate_token(issued.token)


@pytest.fixture()
def bob(state: AppState, admin: TokenClaims) -> TokenClaims:
    issued = state.service.create_user(admin, name="bob")
    return state.tokens.validate_token(issued.token)


@pytest.fixture()
def mallory(state: AppState, admin: TokenClaims) -> TokenClaims:
    """A user unrelated to any task in the tests."""
    issued = state.service.create_user(admin, name="mallory")
    return state.tokens.validate_token(issued.token)
