# src/taskdesk/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..auth.tokens import TokenService
from ..storage.database import Database
from ..tasks.comment_ledger import CommentLedger
from ..tasks.task_store import TaskStore
from ..users.user_store import UserStore
from .service import TaskService


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    database: Database
    users: UserStore
    tasks: TaskStore
    ledger: CommentLedger
    tokens: TokenService
    service: TaskService
