# tests/test_queries.py

from __future__ import annotations

import pytest

from taskdesk.core.service import TaskService
from taskdesk.errors import NotFoundError, PermissionDeniedError, ValidationError
from taskdesk.tasks.task_models import TaskStatus

from .fakes import BrokenReadLedger, archive_task, force_status


def _create(state, creator, n: int, assignee: str = "bob") -> list[str]:
    return [
        state.service.create_task(creator, description=f"task {i}", assigned_to=assignee).id
        for i in range(n)
    ]


# ---- get_next_task ----


def test_next_task_none_when_nothing_matches(state, alice) -> None:
    assert state.service.get_next_task(alice) is None


def test_next_task_is_oldest_involving_actor(state, alice, bob, mallory) -> None:
    first, second = _create(state, alice, 2)
    _create(state, mallory, 1, assignee="mallory")

    # creator and assignee both see the same oldest task
    assert state.service.get_next_task(alice).id == first
    assert state.service.get_next_task(bob).id == first

    state.service.complete_task(bob, task_id=first)
    assert state.service.get_next_task(bob).id == second


def test_next_task_status_filter(state, alice, bob) -> None:
    first, second = _create(state, alice, 2)
    state.service.wait_for_user(bob, task_id=second, comment="need input")

    got = state.service.get_next_task(alice, statuses=["waiting_for_user"])
    assert got.id == second

    got = state.service.get_next_task(alice, statuses=["waiting_for_user", "pending"])
    assert got.id == first

    assert state.service.get_next_task(alice, statuses=["completed"]) is None


def test_next_task_rejects_unknown_status(state, alice) -> None:
    with pytest.raises(ValidationError, match="invalid status: 'done'"):
        state.service.get_next_task(alice, statuses=["done"])


def test_next_task_skips_archived(state, alice, bob) -> None:
    first, second = _create(state, alice, 2)
    archive_task(state, first)
    assert state.service.get_next_task(bob).id == second


def test_next_task_ignores_uninvolved_users(state, alice, bob, mallory) -> None:
    _create(state, alice, 3)
    assert state.service.get_next_task(mallory) is None


def test_next_task_in_progress(state, alice, bob) -> None:
    (task_id,) = _create(state, alice, 1)
    force_status(state, task_id, TaskStatus.IN_PROGRESS)
    assert state.service.get_next_task(bob) is None
    assert state.service.get_next_task(bob, statuses=["in_progress"]).id == task_id


# ---- list_created_tasks ----


def test_list_pages_with_unpaged_total(state, alice, bob) -> None:
    ids = _create(state, alice, 60)

    page = state.service.list_created_tasks(alice, limit=10)
    assert page.total_count == 60
    assert page.limit_used == 10
    assert len(page.tasks) == 10
    assert page.created_by == alice.user_id
    assert page.created_by_name == "alice"
    # newest first
    assert [t.id for t in page.tasks] == list(reversed(ids))[:10]


def test_list_default_limit(state, alice, bob) -> None:
    _create(state, alice, 55)
    page = state.service.list_created_tasks(alice)
    assert page.limit_used == 50
    assert len(page.tasks) == 50
    assert page.total_count == 55


@pytest.mark.parametrize(
    "limit,message",
    [(0, "limit must be positive"), (-5, "limit must be positive"), (1001, "cannot exceed 1000")],
)
def test_list_limit_bounds(state, alice, limit: int, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        state.service.list_created_tasks(alice, limit=limit)


def test_list_includes_archived_and_only_own_tasks(state, alice, bob) -> None:
    mine = _create(state, alice, 2)
    _create(state, bob, 3, assignee="alice")
    archive_task(state, mine[0])

    page = state.service.list_created_tasks(alice)
    assert page.total_count == 2
    assert {t.id for t in page.tasks} == set(mine)
    assert any(t.is_archived for t in page.tasks)


def test_list_status_filter(state, alice, bob) -> None:
    a, b, c = _create(state, alice, 3)
    state.service.complete_task(bob, task_id=a)
    state.service.cancel_task(bob, task_id=b, reason="dup")

    page = state.service.list_created_tasks(alice, statuses=["completed", "cancelled"])
    assert page.total_count == 2
    assert {t.id for t in page.tasks} == {a, b}

    page = state.service.list_created_tasks(alice, statuses=["pending"])
    assert [t.id for t in page.tasks] == [c]


@pytest.mark.parametrize(
    "statuses,message",
    [
        ([""], "status cannot be empty"),
        (["pending", "pending"], "duplicate status: 'pending'"),
        (["finished"], "invalid status: 'finished'"),
    ],
)
def test_list_status_filter_validation(state, alice, statuses, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        state.service.list_created_tasks(alice, statuses=statuses)


def test_listing_other_users_is_admin_only(state, admin, alice, bob) -> None:
    _create(state, alice, 2)

    with pytest.raises(PermissionDeniedError, match="only admins"):
        state.service.list_created_tasks(bob, user_name="alice")
    # unknown names do not leak existence to non-admins
    with pytest.raises(PermissionDeniedError):
        state.service.list_created_tasks(bob, user_name="ghost")

    page = state.service.list_created_tasks(admin, user_name="alice")
    assert page.total_count == 2
    assert page.created_by_name == "alice"

    with pytest.raises(NotFoundError, match="user not found: ghost"):
        state.service.list_created_tasks(admin, user_name="ghost")


def test_listing_self_by_name_is_allowed(state, alice, bob) -> None:
    _create(state, alice, 1)
    assert state.service.list_created_tasks(alice, user_name="alice").total_count == 1


def test_list_attaches_comments_in_order(state, alice, bob) -> None:
    (task_id,) = _create(state, alice, 1)
    state.service.wait_for_user(bob, task_id=task_id, comment="first")
    state.service.complete_task(alice, task_id=task_id)

    page = state.service.list_created_tasks(alice)
    comments = page.tasks[0].comments
    assert [c.comment for c in comments] == ["first"]
    assert comments[0].created_by_name == "bob"


def test_comment_read_failure_degrades_to_empty(state, alice, bob) -> None:
    broken, healthy = _create(state, alice, 2)
    for task_id in (broken, healthy):
        state.service.wait_for_user(bob, task_id=task_id, comment=f"note {task_id}")

    service = TaskService(
        users=state.users,
        tasks=state.tasks,
        ledger=BrokenReadLedger(state.database, {broken}),
        machine=state.service._machine,
        tokens=state.tokens,
    )
    page = service.list_created_tasks(alice)

    by_id = {t.id: t for t in page.tasks}
    assert by_id[broken].comments == []
    assert [c.comment for c in by_id[healthy].comments] == [f"note {healthy}"]
