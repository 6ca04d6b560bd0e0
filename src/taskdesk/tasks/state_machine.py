# src/taskdesk/tasks/state_machine.py

"""
Task lifecycle state machine.

The transition table is keyed by (current status, action). Every mutating action
evaluates its guards in one fixed order so callers get a consistent error
taxonomy:

1. task exists                    -> NotFoundError
2. actor is creator or assignee   -> PermissionDeniedError
3. task is not archived           -> StateConflictError
4. status is not terminal
   (COMPLETED checked first)      -> StateConflictError
5. (status, action) is in table   -> StateConflictError
6. apply (conditional UPDATE; zero rows affected is a conflict)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..auth import permissions
from ..auth.permissions import Action
from ..auth.tokens import TokenClaims
from ..errors import NotFoundError, StateConflictError, ValidationError
from ..storage.database import Database
from .comment_ledger import CommentLedger
from .task_models import Task, TaskAction, TaskComment, TaskStatus
from .task_store import TaskStore

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})

TRANSITIONS: dict[tuple[TaskStatus, TaskAction], TaskStatus] = {
    (TaskStatus.PENDING, TaskAction.COMPLETE): TaskStatus.COMPLETED,
    (TaskStatus.IN_PROGRESS, TaskAction.COMPLETE): TaskStatus.COMPLETED,
    (TaskStatus.WAITING_FOR_USER, TaskAction.COMPLETE): TaskStatus.COMPLETED,
    (TaskStatus.PENDING, TaskAction.CANCEL): TaskStatus.CANCELLED,
    (TaskStatus.IN_PROGRESS, TaskAction.CANCEL): TaskStatus.CANCELLED,
    (TaskStatus.WAITING_FOR_USER, TaskAction.CANCEL): TaskStatus.CANCELLED,
    (TaskStatus.PENDING, TaskAction.WAIT_FOR_USER): TaskStatus.WAITING_FOR_USER,
    (TaskStatus.IN_PROGRESS, TaskAction.WAIT_FOR_USER): TaskStatus.WAITING_FOR_USER,
}

_PERMISSION_ACTIONS = {
    TaskAction.COMPLETE: Action.COMPLETE_TASK,
    TaskAction.CANCEL: Action.CANCEL_TASK,
    TaskAction.WAIT_FOR_USER: Action.WAIT_FOR_USER,
}

_ARCHIVED_MESSAGES = {
    TaskAction.COMPLETE: "cannot complete archived task",
    TaskAction.CANCEL: "cannot cancel archived task",
    TaskAction.WAIT_FOR_USER: "cannot modify archived task",
}

_TERMINAL_MESSAGES = {
    (TaskStatus.COMPLETED, TaskAction.COMPLETE): "task is already completed",
    (TaskStatus.CANCELLED, TaskAction.COMPLETE): "cannot complete cancelled task",
    (TaskStatus.COMPLETED, TaskAction.CANCEL): "cannot cancel completed task",
    (TaskStatus.CANCELLED, TaskAction.CANCEL): "task is already cancelled",
    (TaskStatus.COMPLETED, TaskAction.WAIT_FOR_USER): "cannot send completed task to waiting",
    (TaskStatus.CANCELLED, TaskAction.WAIT_FOR_USER): "cannot send cancelled task to waiting",
}


def source_statuses(action: TaskAction) -> frozenset[TaskStatus]:
    """Statuses from which `action` is defined."""
    return frozenset(src for (src, act) in TRANSITIONS if act is action)


def check_transition(task: Task, action: TaskAction) -> TaskStatus:
    """
    Guards 3-5 for an already loaded and authorized task.
    Returns the target status or raises StateConflictError.
    """
    if task.is_archived:
        raise StateConflictError(_ARCHIVED_MESSAGES[action])

    for terminal in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
        if task.status is terminal:
            raise StateConflictError(_TERMINAL_MESSAGES[(terminal, action)])

    target = TRANSITIONS.get((task.status, action))
    if target is None:
        raise StateConflictError(
            f"cannot {action.value.replace('_', ' ')} task in status '{task.status.value}'"
        )
    return target


@dataclass(frozen=True, slots=True)
class WaitOutcome:
    task: Task
    comment: TaskComment


class TaskStateMachine:
    """Validates and applies lifecycle transitions against the store."""

    def __init__(self, db: Database, store: TaskStore, ledger: CommentLedger) -> None:
        self._db = db
        self._store = store
        self._ledger = ledger

    # ---- guards ----

    def _load_authorized(self, task_id: str, actor: TokenClaims, action: TaskAction) -> Task:
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("task not found")

        permissions.require(
            actor.user_id,
            actor.is_admin,
            _PERMISSION_ACTIONS[action],
            created_by=task.created_by,
            assigned_to=task.assigned_to,
        )
        return task

    def _conflict_after_race(self, task_id: str, action: TaskAction) -> StateConflictError:
        """Classify a zero-row conditional update by re-reading the row."""
        current = self._store.get_task(task_id)
        if current is not None:
            try:
                check_transition(current, action)
            except StateConflictError as e:
                return e
        return StateConflictError("task was modified concurrently; retry")

    def _reload(self, task_id: str) -> Task:
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("task not found")
        return task

    # ---- transitions ----

    def complete(self, task_id: str, actor: TokenClaims, *, result: str | None = None) -> Task:
        action = TaskAction.COMPLETE
        task = self._load_authorized(task_id, actor, action)
        target = check_transition(task, action)

        applied = self._store.try_transition(
            task_id,
            expected=source_statuses(action),
            target=target,
            result=result,
            mark_completed=True,
        )
        if not applied:
            raise self._conflict_after_race(task_id, action)

        logger.info("Task completed id=%s by=%s", task_id, actor.user_id)
        return self._reload(task_id)

    def cancel(self, task_id: str, actor: TokenClaims, *, reason: str) -> Task:
        if not reason or not reason.strip():
            raise ValidationError("cancellation reason is required")

        action = TaskAction.CANCEL
        task = self._load_authorized(task_id, actor, action)
        target = check_transition(task, action)

        applied = self._store.try_transition(
            task_id,
            expected=source_statuses(action),
            target=target,
            cancel_reason=reason,
        )
        if not applied:
            raise self._conflict_after_race(task_id, action)

        logger.info("Task cancelled id=%s by=%s", task_id, actor.user_id)
        return self._reload(task_id)

    def wait_for_user(self, task_id: str, actor: TokenClaims, *, comment: str) -> WaitOutcome:
        """
        Move the task to WAITING_FOR_USER and append the actor's comment.
        Both writes share one transaction: either both commit or neither does.
        """
        if not comment or not comment.strip():
            raise ValidationError("comment is required")

        action = TaskAction.WAIT_FOR_USER
        task = self._load_authorized(task_id, actor, action)
        target = check_transition(task, action)

        added: TaskComment | None = None
        with self._db.transaction() as conn:
            applied = self._store.try_transition(
                task_id,
                expected=source_statuses(action),
                target=target,
                conn=conn,
            )
            if applied:
                added = self._ledger.append(
                    conn,
                    task_id=task_id,
                    created_by=actor.user_id,
                    comment=comment,
                )

        if added is None:
            raise self._conflict_after_race(task_id, action)

        logger.info(
            "Task waiting for user id=%s by=%s comment_id=%s",
            task_id,
            actor.user_id,
            added.id,
        )
        return WaitOutcome(task=self._reload(task_id), comment=added)
