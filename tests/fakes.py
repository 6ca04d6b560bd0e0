# tests/fakes.py

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta

from taskdesk.core.state import AppState
from taskdesk.errors import PersistenceError
from taskdesk.tasks.comment_ledger import CommentLedger
from taskdesk.tasks.task_models import TaskComment, TaskStatus


class ManualClock:
    """Deterministic datetime clock for TokenService."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FailingAppendLedger(CommentLedger):
    """
    Ledger whose append() fails after the status UPDATE has already run in the
    same transaction. Used to prove the two writes roll back together.
    """

    def append(
        self,
        conn: sqlite3.Connection,
        *,
        task_id: str,
        created_by: str,
        comment: str,
    ) -> TaskComment:
        raise PersistenceError("injected comment insert failure")


class BrokenReadLedger(CommentLedger):
    """Ledger whose reads fail for a chosen set of task ids."""

    def __init__(self, db, broken_task_ids: set[str]) -> None:
        super().__init__(db)
        self.broken_task_ids = broken_task_ids

    def list_for_task(self, task_id: str) -> list[TaskComment]:
        if task_id in self.broken_task_ids:
            raise PersistenceError("injected comment read failure")
        return super().list_for_task(task_id)


def archive_task(state: AppState, task_id: str) -> None:
    """No tool archives tasks; tests flip the flag directly in the store."""
    with state.database.connect() as conn:
        conn.execute(
            "UPDATE tasks SET is_archived = 1, archived_at = ? WHERE id = ?",
            (state.database.now(), task_id),
        )


def force_status(state: AppState, task_id: str, status: TaskStatus) -> None:
    with state.database.connect() as conn:
        conn.execute("UPDATE tasks SET status = ? WHERE id = ?", (status.value, task_id))


def comment_count(state: AppState, task_id: str) -> int:
    return state.ledger.count_for_task(task_id)
