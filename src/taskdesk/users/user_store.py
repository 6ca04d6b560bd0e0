# src/taskdesk/users/user_store.py

from __future__ import annotations

import logging
import sqlite3
import uuid

from ..errors import ValidationError
from ..storage.database import Database
from .user_models import User

logger = logging.getLogger(__name__)


class UserStore:
    """
    SQLite user store.

    Names are unique (exact match, case-sensitive). Users are never deleted.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=str(row["id"]),
            name=str(row["name"]),
            is_admin=bool(row["is_admin"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            description=row["description"],
        )

    def create_user(
        self,
        *,
        name: str,
        is_admin: bool = False,
        description: str | None = None,
    ) -> User:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name is required")

        user_id = str(uuid.uuid4())
        now = self._db.now()

        with self._db.connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users(id, name, description, is_admin, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, name, description, 1 if is_admin else 0, now, now),
                )
            except sqlite3.IntegrityError as e:
                raise ValidationError(f"user with name '{name}' already exists") from e

        logger.info("User created id=%s name=%s is_admin=%s", user_id, name, is_admin)
        return User(
            id=user_id,
            name=name,
            is_admin=bool(is_admin),
            created_at=now,
            updated_at=now,
            description=description,
        )

    def get_user(self, user_id: str) -> User | None:
        with self._db.connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_name(self, name: str) -> User | None:
        with self._db.connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE name = ?", (name,)).fetchone()
        return self._row_to_user(row) if row else None

    def list_users(self, *, limit: int = 100) -> list[User]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM users ORDER BY name ASC LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self._db.connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM users").fetchone()
        return int(n)
