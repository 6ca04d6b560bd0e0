# src/taskdesk/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

_STATUS_VALUES = "'pending','in_progress','waiting_for_user','completed','cancelled'"


class Database:
    """
    SQLite database handle shared by the stores.

    Connections:
    - each operation opens its own short-lived connection (no shared cursors)
    - at most `pool_size` connections are open at once; waiting longer than
      `timeout` for a slot raises PersistenceError
    - connections run in autocommit mode; `transaction()` wraps a block in
      BEGIN IMMEDIATE ... COMMIT / ROLLBACK

    Schema is created on demand and migrated in place (missing columns are added
    with ALTER TABLE).
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        pool_size: int = 25,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = float(timeout)
        self._slots = threading.BoundedSemaphore(max(1, int(pool_size)))
        self._clock = clock

    def now(self) -> float:
        return float(self._clock())

    # ---- connections ----

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextlib.contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Borrow a connection; sqlite3 errors escape as PersistenceError."""
        if not self._slots.acquire(timeout=self._timeout):
            raise PersistenceError("database is busy: no free connection")
        try:
            conn = self._open()
        except sqlite3.Error as e:
            self._slots.release()
            logger.exception("Failed to open database %s", self._db_path)
            raise PersistenceError("database unavailable") from e

        try:
            yield conn
        except sqlite3.Error as e:
            logger.exception("Database error")
            raise PersistenceError(f"database error: {e}") from e
        finally:
            conn.close()
            self._slots.release()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """All-or-nothing scope: any exception in the block rolls back every write."""
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    # ---- schema ----

    def ensure_schema(self) -> None:
        with self.transaction() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    description TEXT,
                    is_admin INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    description TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ({_STATUS_VALUES})),
                    created_by TEXT NOT NULL REFERENCES users(id),
                    assigned_to TEXT NOT NULL REFERENCES users(id),
                    is_archived INTEGER NOT NULL DEFAULT 0,
                    result TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    completed_at REAL,
                    archived_at REAL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_comments (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    created_by TEXT NOT NULL REFERENCES users(id),
                    comment TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add columns that older databases lack.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("Schema migration: added column %s.%s", table, name)

            add_col("users", "description", "TEXT")
            add_col("tasks", "result", "TEXT")
            add_col("tasks", "completed_at", "REAL")
            add_col("tasks", "archived_at", "REAL")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_created_by "
                "ON tasks(created_by, status, created_at)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_assigned_to "
                "ON tasks(assigned_to, status, created_at)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_comments_task "
                "ON task_comments(task_id, created_at)"
            )

        logger.info("Database schema ready db=%s", self._db_path)
