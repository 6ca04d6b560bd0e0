# src/taskdesk/errors.py

"""
Error taxonomy shared by every layer.

All errors are recoverable per call: the tool surface turns them into
`{"error": str(err)}` payloads. Anything not derived from TaskdeskError is a bug.
"""

from __future__ import annotations

from enum import StrEnum


class TaskdeskError(Exception):
    """Base class for domain errors."""


class AuthFailure(StrEnum):
    MISSING = "missing"
    MALFORMED = "malformed"
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"


class AuthError(TaskdeskError):
    """The bearer credential is absent or cannot be trusted."""

    def __init__(self, reason: AuthFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class PermissionDeniedError(TaskdeskError):
    """The actor is authenticated but not allowed to perform the action."""


class ValidationError(TaskdeskError):
    """Bad or missing argument."""


class NotFoundError(TaskdeskError):
    """Referenced task or user does not exist."""


class StateConflictError(TaskdeskError):
    """Illegal lifecycle transition (terminal status, archived task, unmapped pair)."""


class PersistenceError(TaskdeskError):
    """The store failed."""
