# src/taskdesk/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- creates/migrates the database schema,
- wires concrete stores, the token service and the state machine into AppState.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..auth.tokens import TokenService
from ..config import get_settings
from ..core.service import TaskService
from ..core.state import AppState
from ..errors import PersistenceError
from ..storage.database import Database
from ..tasks.comment_ledger import CommentLedger
from ..tasks.state_machine import TaskStateMachine
from ..tasks.task_store import TaskStore
from ..users.user_store import UserStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_app_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    Raises RuntimeError when the signing secret is missing.
    """
    if settings is None:
        settings = get_settings()

    if not getattr(settings, "jwt_secret", None):
        raise RuntimeError("TASKDESK_JWT_SECRET is not set")

    _ensure_local_dirs(settings)

    database = Database(
        settings.db_path,
        pool_size=settings.db_pool_size,
        timeout=settings.db_timeout_seconds,
    )
    database.ensure_schema()

    users = UserStore(database)
    tasks = TaskStore(database)
    ledger = CommentLedger(database)
    tokens = TokenService(settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours))
    machine = TaskStateMachine(database, tasks, ledger)

    service = TaskService(
        users=users,
        tasks=tasks,
        ledger=ledger,
        machine=machine,
        tokens=tokens,
    )

    try:
        total = tasks.count_tasks()
    except PersistenceError:
        total = -1
    logger.info("Store ready db=%s tasks=%s", settings.db_path, total)

    return AppState(
        settings=settings,
        database=database,
        users=users,
        tasks=tasks,
        ledger=ledger,
        tokens=tokens,
        service=service,
    )
