# src/taskdesk/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterable, Sequence

from ..errors import ValidationError
from ..storage.database import Database
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

_SELECT_WITH_NAMES = """
    SELECT t.*,
           creator.name AS created_by_name,
           assignee.name AS assigned_to_name
    FROM tasks t
    JOIN users creator ON t.created_by = creator.id
    JOIN users assignee ON t.assigned_to = assignee.id
"""

CANCEL_NOTE_PREFIX = "[CANCELLED] "


def _placeholders(values: Sequence[object]) -> str:
    return ",".join("?" for _ in values)


class TaskStore:
    """
    SQLite task store.

    Reads return Task rows joined with creator/assignee display names.

    Writes that change status go through `try_transition()`: a single conditional
    UPDATE restricted to the expected source statuses and to non-archived rows.
    The affected row count is the only conflict signal; callers never rely on a
    separate prior SELECT.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        keys = row.keys()
        return Task(
            id=str(row["id"]),
            description=str(row["description"] or ""),
            status=TaskStatus(row["status"]),
            created_by=str(row["created_by"]),
            assigned_to=str(row["assigned_to"]),
            is_archived=bool(row["is_archived"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            result=row["result"],
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            archived_at=float(row["archived_at"]) if row["archived_at"] is not None else None,
            created_by_name=row["created_by_name"] if "created_by_name" in keys else None,
            assigned_to_name=row["assigned_to_name"] if "assigned_to_name" in keys else None,
        )

    # ---- writes ----

    def add_task(self, *, description: str, created_by: str, assigned_to: str) -> str:
        if not description or not description.strip():
            raise ValidationError("description is required")

        task_id = str(uuid.uuid4())
        now = self._db.now()

        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, description, status, created_by, assigned_to,
                    is_archived, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    task_id,
                    description.strip(),
                    TaskStatus.PENDING.value,
                    created_by,
                    assigned_to,
                    now,
                    now,
                ),
            )

        logger.debug(
            "Task added id=%s created_by=%s assigned_to=%s",
            task_id,
            created_by,
            assigned_to,
        )
        return task_id

    def try_transition(
        self,
        task_id: str,
        *,
        expected: Iterable[TaskStatus],
        target: TaskStatus,
        result: str | None = None,
        cancel_reason: str | None = None,
        mark_completed: bool = False,
        conn: sqlite3.Connection | None = None,
    ) -> bool:
        """
        Atomically transitions:
          status IN expected AND NOT archived -> status = target

        Optional side effects in the same statement:
        - result: overwrite the result text
        - cancel_reason: append "[CANCELLED] <reason>" after any existing result,
          separated by a blank line
        - mark_completed: completed_at = now

        Returns True if exactly this row was updated. Runs on `conn` when given
        (so it can share a transaction), otherwise on its own connection.
        """
        exp = [TaskStatus(e).value for e in expected]
        if not exp:
            return False

        now = self._db.now()
        fields = ["status = ?", "updated_at = ?"]
        params: list[object] = [TaskStatus(target).value, now]

        if result is not None:
            fields.append("result = ?")
            params.append(result)

        if cancel_reason is not None:
            note = f"{CANCEL_NOTE_PREFIX}{cancel_reason}"
            fields.append(
                "result = CASE WHEN result IS NULL OR result = '' THEN ? "
                "ELSE result || char(10) || char(10) || ? END"
            )
            params.extend([note, note])

        if mark_completed:
            fields.append("completed_at = ?")
            params.append(now)

        sql = (
            f"UPDATE tasks SET {', '.join(fields)} "
            f"WHERE id = ? AND is_archived = 0 AND status IN ({_placeholders(exp)})"
        )
        params.append(task_id)
        params.extend(exp)

        if conn is not None:
            cur = conn.execute(sql, params)
            return cur.rowcount == 1

        with self._db.connect() as own:
            cur = own.execute(sql, params)
            return cur.rowcount == 1

    # ---- reads ----

    def get_task(self, task_id: str) -> Task | None:
        with self._db.connect() as conn:
            row = conn.execute(f"{_SELECT_WITH_NAMES} WHERE t.id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def find_next_task(self, user_id: str, *, statuses: Sequence[TaskStatus]) -> Task | None:
        """
        Oldest non-archived task involving the user (as creator or assignee)
        whose status is one of `statuses`.
        """
        vals = [TaskStatus(s).value for s in statuses]
        if not user_id or not vals:
            return None

        with self._db.connect() as conn:
            row = conn.execute(
                f"""
                {_SELECT_WITH_NAMES}
                WHERE t.is_archived = 0
                  AND (t.created_by = ? OR t.assigned_to = ?)
                  AND t.status IN ({_placeholders(vals)})
                ORDER BY t.created_at ASC, t.rowid ASC
                LIMIT 1
                """,
                (user_id, user_id, *vals),
            ).fetchone()
        return self._row_to_task(row) if row else None

    def count_created_tasks(
        self, created_by: str, *, statuses: Sequence[TaskStatus] | None = None
    ) -> int:
        vals = [TaskStatus(s).value for s in (statuses or [])]
        sql = "SELECT COUNT(*) FROM tasks WHERE created_by = ?"
        if vals:
            sql += f" AND status IN ({_placeholders(vals)})"

        with self._db.connect() as conn:
            (n,) = conn.execute(sql, (created_by, *vals)).fetchone()
        return int(n)

    def list_created_tasks(
        self,
        created_by: str,
        *,
        statuses: Sequence[TaskStatus] | None = None,
        limit: int = 50,
    ) -> list[Task]:
        """Tasks created by the user, newest first."""
        vals = [TaskStatus(s).value for s in (statuses or [])]
        status_filter = f" AND t.status IN ({_placeholders(vals)})" if vals else ""

        with self._db.connect() as conn:
            rows = conn.execute(
                f"""
                {_SELECT_WITH_NAMES}
                WHERE t.created_by = ?{status_filter}
                ORDER BY t.created_at DESC, t.rowid DESC
                LIMIT ?
                """,
                (created_by, *vals, int(limit)),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def count_tasks(self) -> int:
        with self._db.connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
        return int(n)
