# src/taskdesk/core/service.py

"""
Operation surface of the task tracker.

Every public method takes the validated credential (`TokenClaims`) of the caller
as the actor; identities are never taken from caller-supplied arguments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from ..auth import permissions
from ..auth.permissions import Action
from ..auth.tokens import TokenClaims
from ..errors import NotFoundError, PersistenceError, StateConflictError
from ..tasks.state_machine import TaskStateMachine, WaitOutcome
from ..tasks.task_models import Task, TaskPage, TaskStatus
from ..users.user_models import User
from .ports import CommentRepo, Credentials, TaskRepo, UserRepo
from .validation import (
    check_limit,
    parse_status_filter,
    parse_statuses,
    require_text,
    require_uuid,
)

logger = logging.getLogger(__name__)

DEFAULT_NEXT_STATUSES = (TaskStatus.PENDING,)
DEFAULT_TASK_LIMIT = 50
DEFAULT_USER_LIMIT = 100


def format_remaining(delta: timedelta) -> str:
    total = max(0, int(delta.total_seconds()))
    hours, rem = divmod(total, 3600)
    minutes = rem // 60
    return f"{hours}h {minutes}m"


@dataclass(frozen=True, slots=True)
class IssuedToken:
    user: User
    token: str


@dataclass(frozen=True, slots=True)
class TokenInfo:
    user: User
    claims: TokenClaims
    remaining: timedelta

    @property
    def remaining_text(self) -> str:
        return format_remaining(self.remaining)


class TaskService:
    def __init__(
        self,
        *,
        users: UserRepo,
        tasks: TaskRepo,
        ledger: CommentRepo,
        machine: TaskStateMachine,
        tokens: Credentials,
    ) -> None:
        self._users = users
        self._tasks = tasks
        self._ledger = ledger
        self._machine = machine
        self._tokens = tokens

    # ---- users & credentials ----

    def _require_user(self, user_id: str) -> User:
        user = self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"user not found: {user_id}")
        return user

    def create_user(
        self,
        actor: TokenClaims,
        *,
        name: str,
        is_admin: bool = False,
        description: str | None = None,
    ) -> IssuedToken:
        permissions.require(actor.user_id, actor.is_admin, Action.CREATE_USER)
        name = require_text(name, "name").strip()

        user = self._users.create_user(name=name, is_admin=is_admin, description=description)
        token = self._tokens.generate_token(user.id, user.is_admin)
        logger.info("User %s created by %s", user.name, actor.user_id)
        return IssuedToken(user=user, token=token)

    def generate_token(self, actor: TokenClaims, *, user_id: str) -> IssuedToken:
        user_id = require_uuid(user_id, "user ID")
        if user_id != actor.user_id:
            permissions.require(actor.user_id, actor.is_admin, Action.GENERATE_TOKEN_FOR_OTHER_USER)

        user = self._require_user(user_id)
        token = self._tokens.generate_token(user.id, user.is_admin)
        logger.info("Token generated for user %s by %s", user.id, actor.user_id)
        return IssuedToken(user=user, token=token)

    def get_token_info(self, claims: TokenClaims) -> TokenInfo:
        user = self._require_user(claims.user_id)
        return TokenInfo(user=user, claims=claims, remaining=claims.remaining(self._tokens.now()))

    def list_users(self, actor: TokenClaims, *, limit: int | None = None) -> list[User]:
        limit = check_limit(limit, default=DEFAULT_USER_LIMIT)
        return self._users.list_users(limit=limit)

    def bootstrap_admin(self, name: str = "admin") -> IssuedToken:
        """
        Ensure an admin user named `name` exists and issue a token for it.
        Idempotent: an existing admin is reused.
        """
        name = require_text(name, "name").strip()
        user = self._users.get_user_by_name(name)
        if user is None:
            user = self._users.create_user(name=name, is_admin=True)
            logger.info("Admin user created id=%s name=%s", user.id, user.name)
        elif not user.is_admin:
            raise StateConflictError(f"user '{name}' exists but is not an admin")
        else:
            logger.info("Admin user already exists id=%s name=%s", user.id, user.name)

        return IssuedToken(user=user, token=self._tokens.generate_token(user.id, True))

    # ---- tasks ----

    def create_task(self, actor: TokenClaims, *, description: str, assigned_to: str) -> Task:
        description = require_text(description, "description")
        assignee_name = require_text(assigned_to, "assigned_to")
        permissions.require(actor.user_id, actor.is_admin, Action.CREATE_TASK)

        assignee = self._users.get_user_by_name(assignee_name)
        if assignee is None:
            raise NotFoundError(f"user '{assignee_name}' does not exist")
        creator = self._require_user(actor.user_id)

        task_id = self._tasks.add_task(
            description=description,
            created_by=creator.id,
            assigned_to=assignee.id,
        )
        task = self._tasks.get_task(task_id)
        if task is None:
            raise PersistenceError("failed to create task")
        logger.info("Task created id=%s by=%s for=%s", task.id, creator.name, assignee.name)
        return task

    def complete_task(self, actor: TokenClaims, *, task_id: str, result: str | None = None) -> Task:
        task_id = require_uuid(task_id)
        return self._machine.complete(task_id, actor, result=result)

    def cancel_task(self, actor: TokenClaims, *, task_id: str, reason: str) -> Task:
        task_id = require_uuid(task_id)
        reason = require_text(reason, "cancellation reason")
        return self._machine.cancel(task_id, actor, reason=reason)

    def wait_for_user(self, actor: TokenClaims, *, task_id: str, comment: str) -> WaitOutcome:
        task_id = require_uuid(task_id)
        comment = require_text(comment, "comment")
        return self._machine.wait_for_user(task_id, actor, comment=comment)

    # ---- queries ----

    def get_next_task(
        self, actor: TokenClaims, *, statuses: list[str] | None = None
    ) -> Task | None:
        """Oldest matching task or None; an empty result is not an error."""
        wanted = parse_statuses(statuses) or list(DEFAULT_NEXT_STATUSES)
        return self._tasks.find_next_task(actor.user_id, statuses=wanted)

    def list_created_tasks(
        self,
        actor: TokenClaims,
        *,
        user_name: str | None = None,
        limit: int | None = None,
        statuses: list[str] | None = None,
    ) -> TaskPage:
        limit = check_limit(limit, default=DEFAULT_TASK_LIMIT)
        wanted = parse_status_filter(statuses)

        if user_name:
            target = self._users.get_user_by_name(user_name)
            if target is None or target.id != actor.user_id:
                permissions.require(
                    actor.user_id, actor.is_admin, Action.LIST_CREATED_TASKS_FOR_OTHER_USER
                )
            if target is None:
                raise NotFoundError(f"user not found: {user_name}")
        else:
            target = self._require_user(actor.user_id)

        total = self._tasks.count_created_tasks(target.id, statuses=wanted)
        tasks = self._tasks.list_created_tasks(target.id, statuses=wanted, limit=limit)

        for task in tasks:
            try:
                task.comments = self._ledger.list_for_task(task.id)
            except PersistenceError:
                logger.warning("Comments unavailable for task %s; returning none", task.id)
                task.comments = []

        return TaskPage(
            tasks=tasks,
            total_count=total,
            limit_used=limit,
            created_by=target.id,
            created_by_name=target.name,
        )
