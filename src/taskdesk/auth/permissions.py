# src/taskdesk/auth/permissions.py

"""
Permission guard.

A pure decision over (actor, role, task ownership, action). The rule table below
is the only place where authorization rules live; every mutating operation goes
through `require()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..errors import PermissionDeniedError


class Action(StrEnum):
    CREATE_TASK = "create_task"
    COMPLETE_TASK = "complete_task"
    CANCEL_TASK = "cancel_task"
    WAIT_FOR_USER = "wait_for_user"
    CREATE_USER = "create_user"
    GENERATE_TOKEN_FOR_OTHER_USER = "generate_token_for_other_user"
    LIST_CREATED_TASKS_FOR_OTHER_USER = "list_created_tasks_for_other_user"


@dataclass(frozen=True, slots=True)
class Decision:
    allowed: bool
    reason: str = ""


ALLOW = Decision(True)

_OWNER_ACTIONS = frozenset({Action.COMPLETE_TASK, Action.CANCEL_TASK, Action.WAIT_FOR_USER})
_ADMIN_ACTIONS = frozenset(
    {
        Action.CREATE_USER,
        Action.GENERATE_TOKEN_FOR_OTHER_USER,
        Action.LIST_CREATED_TASKS_FOR_OTHER_USER,
    }
)

_DENY_REASONS = {
    Action.COMPLETE_TASK: "permission denied: you can only complete tasks you created or are assigned to",
    Action.CANCEL_TASK: "permission denied: you can only cancel tasks you created or are assigned to",
    Action.WAIT_FOR_USER: "permission denied: you can only modify tasks you created or are assigned to",
    Action.CREATE_USER: "only admins can create users",
    Action.GENERATE_TOKEN_FOR_OTHER_USER: "only admins can generate tokens for other users",
    Action.LIST_CREATED_TASKS_FOR_OTHER_USER: "only admins can view tasks created by other users",
}


def decide(
    actor_id: str,
    actor_is_admin: bool,
    action: Action,
    *,
    created_by: str | None = None,
    assigned_to: str | None = None,
) -> Decision:
    if not actor_id:
        return Decision(False, "unauthenticated actor")

    if action is Action.CREATE_TASK:
        return ALLOW

    if action in _OWNER_ACTIONS:
        # Ownership is a role, not a privilege: admins get no bypass here.
        if actor_id in (created_by, assigned_to):
            return ALLOW
        return Decision(False, _DENY_REASONS[action])

    if action in _ADMIN_ACTIONS:
        if actor_is_admin:
            return ALLOW
        return Decision(False, _DENY_REASONS[action])

    return Decision(False, f"unknown action: {action}")


def require(
    actor_id: str,
    actor_is_admin: bool,
    action: Action,
    *,
    created_by: str | None = None,
    assigned_to: str | None = None,
) -> None:
    """Raise PermissionDeniedError unless `decide()` allows the action."""
    decision = decide(
        actor_id,
        actor_is_admin,
        action,
        created_by=created_by,
        assigned_to=assigned_to,
    )
    if not decision.allowed:
        raise PermissionDeniedError(decision.reason)
