# src/taskdesk/users/user_models.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class User:
    id: str
    name: str
    is_admin: bool
    created_at: float
    updated_at: float
    description: str | None = None
