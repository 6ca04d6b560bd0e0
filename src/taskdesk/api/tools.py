# src/taskdesk/api/tools.py

"""
Named tool dispatch.

A transport hands us: tool name, a JSON-object argument bag, and the raw
Authorization header. We return either a structured success payload or
`{"error": "..."}`; domain errors never escape as exceptions.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from ..auth.tokens import TokenClaims
from ..core.state import AppState
from ..errors import AuthError, TaskdeskError, ValidationError
from ..tasks.task_models import Task, TaskComment
from ..users.user_models import User

logger = logging.getLogger(__name__)

ToolArgs = Mapping[str, Any]
ToolHandler = Callable[[AppState, TokenClaims, ToolArgs], dict[str, Any]]


# ---- payload helpers ----


def _iso(ts: float | None) -> str | None:
    if ts is None:
        return None
    return datetime.fromtimestamp(float(ts), UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def user_to_dict(user: User) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": user.id,
        "name": user.name,
        "is_admin": user.is_admin,
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }
    if user.description:
        out["description"] = user.description
    return out


def comment_to_dict(comment: TaskComment) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": comment.id,
        "task_id": comment.task_id,
        "created_by": comment.created_by,
        "comment": comment.comment,
        "created_at": _iso(comment.created_at),
    }
    if comment.created_by_name is not None:
        out["created_by_name"] = comment.created_by_name
    return out


def task_to_dict(task: Task, *, include_listing_fields: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": task.id,
        "description": task.description,
        "status": task.status.value,
        "created_by": task.created_by,
        "created_by_name": task.created_by_name,
        "assigned_to": task.assigned_to,
        "assigned_to_name": task.assigned_to_name,
        "created_at": _iso(task.created_at),
        "updated_at": _iso(task.updated_at),
    }
    if task.result is not None:
        out["result"] = task.result
    if task.completed_at is not None:
        out["completed_at"] = _iso(task.completed_at)
    if include_listing_fields:
        out["is_archived"] = task.is_archived
        if task.archived_at is not None:
            out["archived_at"] = _iso(task.archived_at)
        out["comments"] = [comment_to_dict(c) for c in task.comments]
    return out


# ---- argument helpers ----


def _opt_str(args: ToolArgs, key: str) -> str | None:
    val = args.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise ValidationError(f"{key} must be a string")
    return val


def _opt_bool(args: ToolArgs, key: str, default: bool = False) -> bool:
    val = args.get(key)
    if val is None:
        return default
    if not isinstance(val, bool):
        raise ValidationError(f"{key} must be a boolean")
    return val


def _opt_int(args: ToolArgs, key: str) -> int | None:
    val = args.get(key)
    if val is None:
        return None
    # JSON numbers may arrive as floats; bools are ints in Python but not here.
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(val, float) and (not math.isfinite(val) or not val.is_integer()):
        raise ValidationError(f"{key} must be an integer")
    return int(val)


def _opt_str_list(args: ToolArgs, key: str) -> list[str] | None:
    val = args.get(key)
    if val is None:
        return None
    if not isinstance(val, list):
        raise ValidationError(f"{key} must be an array of strings")
    for item in val:
        if not isinstance(item, str):
            raise ValidationError(f"{key} must be an array of strings")
    return list(val)


# ---- registry ----


class ToolRegistry:
    """Name -> handler registry used by transports (MCP, tests)."""

    def __init__(self) -> None:
        self._handlers: dict[str, ToolHandler] = {}
        self._help: dict[str, str] = {}

    def register(self, name: str, handler: ToolHandler, help_text: str) -> None:
        self._handlers[name] = handler
        self._help[name] = help_text

    def names(self) -> list[str]:
        return list(self._handlers)

    def describe(self, name: str) -> str:
        return self._help.get(name, "")

    def call(
        self,
        state: AppState,
        name: str,
        args: ToolArgs | None,
        authorization: str | None,
    ) -> dict[str, Any]:
        handler = self._handlers.get(name)
        if handler is None:
            return {"error": f"unknown tool: {name}"}

        try:
            claims = state.tokens.validate_token(authorization)
        except AuthError as e:
            logger.info("Rejected %s call: auth %s", name, e.reason.value)
            return {"error": f"invalid token: {e}"}

        try:
            return handler(state, claims, args or {})
        except TaskdeskError as e:
            logger.info("Tool %s failed for user=%s: %s", name, claims.user_id, e)
            return {"error": str(e)}
        except Exception:
            logger.exception("Tool %s crashed for user=%s", name, claims.user_id)
            return {"error": "internal error"}


registry = ToolRegistry()


# ---- handlers ----


def tool_create_user(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    issued = state.service.create_user(
        claims,
        name=_opt_str(args, "name") or "",
        is_admin=_opt_bool(args, "is_admin"),
        description=_opt_str(args, "description"),
    )
    user = user_to_dict(issued.user)
    user["token"] = issued.token
    return {
        "success": True,
        "user": user,
        "message": f"User '{issued.user.name}' created successfully",
    }


def tool_generate_token(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    issued = state.service.generate_token(claims, user_id=_opt_str(args, "user_id") or "")
    return {
        "success": True,
        "token": issued.token,
        "user": user_to_dict(issued.user),
        "message": f"Token generated successfully for user '{issued.user.name}'",
    }


def tool_get_token_info(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    info = state.service.get_token_info(claims)
    return {
        "success": True,
        "token_info": {
            "user_id": info.claims.user_id,
            "user_name": info.user.name,
            "is_admin": info.claims.is_admin,
            "issued_at": info.claims.issued_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "expires_at": info.claims.expires_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "remaining_time": info.remaining_text,
        },
        "message": "Token information retrieved successfully",
    }


def tool_list_users(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    users = state.service.list_users(claims, limit=_opt_int(args, "limit"))
    return {
        "users": [user_to_dict(u) for u in users],
        "count": len(users),
    }


def tool_create_task(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    task = state.service.create_task(
        claims,
        description=_opt_str(args, "description") or "",
        assigned_to=_opt_str(args, "assigned_to") or "",
    )
    return task_to_dict(task)


def tool_complete_task(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    task = state.service.complete_task(
        claims,
        task_id=_opt_str(args, "id") or "",
        result=_opt_str(args, "result"),
    )
    return task_to_dict(task)


def tool_cancel_task(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    task = state.service.cancel_task(
        claims,
        task_id=_opt_str(args, "id") or "",
        reason=_opt_str(args, "reason") or "",
    )
    return task_to_dict(task)


def tool_wait_for_user(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    outcome = state.service.wait_for_user(
        claims,
        task_id=_opt_str(args, "id") or "",
        comment=_opt_str(args, "comment") or "",
    )
    out = task_to_dict(outcome.task)
    out["comment_added"] = {
        "id": outcome.comment.id,
        "comment": outcome.comment.comment,
        "created_at": _iso(outcome.comment.created_at),
    }
    return out


def tool_get_next_task(state: AppState, claims: TokenClaims, args: ToolArgs) -> dict[str, Any]:
    task = state.service.get_next_task(claims, statuses=_opt_str_list(args, "statuses"))
    if task is None:
        return {"task": None, "message": "No matching tasks"}
    return {"task": task_to_dict(task)}


def tool_list_created_tasks(
    state: AppState, claims: TokenClaims, args: ToolArgs
) -> dict[str, Any]:
    page = state.service.list_created_tasks(
        claims,
        user_name=_opt_str(args, "user_name"),
        limit=_opt_int(args, "limit"),
        statuses=_opt_str_list(args, "statuses"),
    )
    return {
        "tasks": [task_to_dict(t, include_listing_fields=True) for t in page.tasks],
        "total_count": page.total_count,
        "limit_used": page.limit_used,
        "created_by": page.created_by_name,
        "created_by_id": page.created_by,
    }


registry.register(
    "create_user", tool_create_user, "Create a new user in the system (admin only)."
)
registry.register(
    "generate_token",
    tool_generate_token,
    "Generate a new token for an existing user (admin only for other users).",
)
registry.register(
    "get_token_info", tool_get_token_info, "Get information about the current token."
)
registry.register("list_users", tool_list_users, "List all users in the system.")
registry.register(
    "create_task", tool_create_task, "Create a new task and assign it to a user by name."
)
registry.register(
    "complete_task", tool_complete_task, "Mark a task as completed with an optional result."
)
registry.register(
    "cancel_task", tool_cancel_task, "Cancel a task with a cancellation reason."
)
registry.register(
    "wait_for_user",
    tool_wait_for_user,
    "Send a task to waiting_for_user with a comment explaining what is needed.",
)
registry.register(
    "get_next_task",
    tool_get_next_task,
    "Get the oldest task where you are creator or assignee, filtered by status "
    "(default: pending).",
)
registry.register(
    "list_created_tasks",
    tool_list_created_tasks,
    "List tasks created by you (or by another user, admin only), newest first.",
)
