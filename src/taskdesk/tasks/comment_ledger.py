# src/taskdesk/tasks/comment_ledger.py

from __future__ import annotations

import logging
import sqlite3
import uuid

from ..errors import ValidationError
from ..storage.database import Database
from .task_models import TaskComment

logger = logging.getLogger(__name__)


class CommentLedger:
    """
    Append-only comment log attached to tasks.

    Writes never open their own transaction: `append()` runs on the caller's
    connection so the comment commits (or rolls back) together with the
    transition that produced it.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> TaskComment:
        return TaskComment(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            created_by=str(row["created_by"]),
            comment=str(row["comment"]),
            created_at=float(row["created_at"] or 0.0),
            created_by_name=row["created_by_name"],
        )

    def append(
        self,
        conn: sqlite3.Connection,
        *,
        task_id: str,
        created_by: str,
        comment: str,
    ) -> TaskComment:
        if not comment or not comment.strip():
            raise ValidationError("comment is required")

        comment_id = str(uuid.uuid4())
        now = self._db.now()
        conn.execute(
            """
            INSERT INTO task_comments(id, task_id, created_by, comment, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (comment_id, task_id, created_by, comment, now),
        )
        logger.debug("Comment appended id=%s task_id=%s by=%s", comment_id, task_id, created_by)
        return TaskComment(
            id=comment_id,
            task_id=task_id,
            created_by=created_by,
            comment=comment,
            created_at=now,
        )

    def list_for_task(self, task_id: str) -> list[TaskComment]:
        """Full comment history of a task, oldest first."""
        with self._db.connect() as conn:
            rows = conn.execute(
                """
                SELECT tc.id, tc.task_id, tc.created_by, tc.comment, tc.created_at,
                       u.name AS created_by_name
                FROM task_comments tc
                JOIN users u ON tc.created_by = u.id
                WHERE tc.task_id = ?
                ORDER BY tc.created_at ASC, tc.rowid ASC
                """,
                (task_id,),
            ).fetchall()
        return [self._row_to_comment(r) for r in rows]

    def count_for_task(self, task_id: str) -> int:
        with self._db.connect() as conn:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM task_comments WHERE task_id = ?",
                (task_id,),
            ).fetchone()
        return int(n)
