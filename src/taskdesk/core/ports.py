# src/taskdesk/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core service.

The service depends on Protocols instead of concrete stores.
This keeps storage swappable and makes testing easier.
"""

from collections.abc import Sequence
from typing import Any, Protocol


class UserRepo(Protocol):
    def create_user(
            self,
            *,
            name: str,
            is_admin: bool = False,
            description: str | None = None,
    ) -> Any: ...

    def get_user(self, user_id: str) -> Any | None: ...
    def get_user_by_name(self, name: str) -> Any | None: ...
    def list_users(self, *, limit: int = 100) -> list[Any]: ...


class TaskRepo(Protocol):
    def add_task(self, *, description: str, created_by: str, assigned_to: str) -> str: ...
    def get_task(self, task_id: str) -> Any | None: ...

    # Query API
    def find_next_task(self, user_id: str, *, statuses: Sequence[Any]) -> Any | None: ...
    def count_created_tasks(self, created_by: str, *, statuses: Sequence[Any] | None = None) -> int: ...
    def list_created_tasks(
            self,
            created_by: str,
            *,
            statuses: Sequence[Any] | None = None,
            limit: int = 50,
    ) -> list[Any]: ...


class CommentRepo(Protocol):
    def list_for_task(self, task_id: str) -> list[Any]: ...


class Credentials(Protocol):
    def generate_token(self, user_id: str, is_admin: bool) -> str: ...
    def validate_token(self, presented: str | None) -> Any: ...
    def now(self) -> Any: ...
