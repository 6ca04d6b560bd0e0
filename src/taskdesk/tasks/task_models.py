# src/taskdesk/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from ..errors import ValidationError


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - COMPLETED and CANCELLED are terminal.
    - IN_PROGRESS is a valid stored state but no operation moves a task into it.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING_FOR_USER = "waiting_for_user"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, raw: object) -> TaskStatus:
        """Strict parse for caller input; unknown values are a ValidationError."""
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                pass
        valid = ", ".join(s.value for s in cls)
        raise ValidationError(f"invalid status: '{raw}'. Valid statuses are: {valid}")


class TaskAction(StrEnum):
    COMPLETE = "complete"
    CANCEL = "cancel"
    WAIT_FOR_USER = "wait_for_user"


@dataclass(frozen=True, slots=True)
class TaskComment:
    id: str
    task_id: str
    created_by: str
    comment: str
    created_at: float
    created_by_name: str | None = None


@dataclass(slots=True)
class Task:
    id: str
    description: str
    status: TaskStatus
    created_by: str
    assigned_to: str
    is_archived: bool
    created_at: float
    updated_at: float

    result: str | None = None
    completed_at: float | None = None
    archived_at: float | None = None

    created_by_name: str | None = None
    assigned_to_name: str | None = None
    comments: list[TaskComment] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class TaskPage:
    """One page of a creator's tasks plus the unpaged total."""

    tasks: list[Task]
    total_count: int
    limit_used: int
    created_by: str
    created_by_name: str
