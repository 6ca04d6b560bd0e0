# src/taskdesk/core/validation.py

from __future__ import annotations

import uuid
from collections.abc import Sequence

from ..errors import ValidationError
from ..tasks.task_models import TaskStatus


def require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value)


def require_uuid(value: str | None, field: str = "task ID") -> str:
    raw = require_text(value, field)
    try:
        uuid.UUID(raw)
    except ValueError as e:
        raise ValidationError(f"invalid {field} format") from e
    return raw


def check_limit(limit: int | None, *, default: int, maximum: int = 1000) -> int:
    if limit is None:
        return default
    if limit <= 0:
        raise ValidationError("limit must be positive")
    if limit > maximum:
        raise ValidationError(f"limit cannot exceed {maximum}")
    return int(limit)


def parse_statuses(values: Sequence[str] | None) -> list[TaskStatus]:
    """Every value must name a known status (duplicates are tolerated)."""
    return [TaskStatus.parse(v) for v in (values or [])]


def parse_status_filter(values: Sequence[str] | None) -> list[TaskStatus]:
    """
    Strict filter parsing for listings:
    - each entry a non-empty string
    - no duplicates
    - each a known status
    """
    seen: set[str] = set()
    out: list[TaskStatus] = []
    for raw in values or []:
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError("status cannot be empty")
        if raw in seen:
            raise ValidationError(f"duplicate status: '{raw}'")
        seen.add(raw)
        out.append(TaskStatus.parse(raw))
    return out
