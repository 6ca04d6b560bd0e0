# tests/test_tools.py

from __future__ import annotations

import uuid

import pytest

from taskdesk.api.tools import ToolRegistry, registry
from taskdesk.server.mcp_server import resolve_authorization

EXPECTED_TOOLS = {
    "create_user",
    "generate_token",
    "get_token_info",
    "list_users",
    "create_task",
    "complete_task",
    "cancel_task",
    "wait_for_user",
    "get_next_task",
    "list_created_tasks",
}


@pytest.fixture()
def tokens(state, admin, alice, bob):
    """Raw bearer strings, as a transport would forward them."""
    return {
        "admin": "Bearer " + state.tokens.generate_token(admin.user_id, True),
        "alice": "Bearer " + state.tokens.generate_token(alice.user_id, False),
        "bob": state.tokens.generate_token(bob.user_id, False),
    }


def test_registry_exposes_every_tool() -> None:
    assert set(registry.names()) == EXPECTED_TOOLS
    for name in EXPECTED_TOOLS:
        assert registry.describe(name)


def test_missing_token_is_rejected(state) -> None:
    out = registry.call(state, "list_users", {}, None)
    assert out == {"error": "invalid token: token is required"}


def test_garbage_token_is_rejected(state) -> None:
    out = registry.call(state, "list_users", {}, "Bearer nope")
    assert out["error"].startswith("invalid token:")


def test_unknown_tool(state, tokens) -> None:
    assert registry.call(state, "drop_tables", {}, tokens["alice"]) == {
        "error": "unknown tool: drop_tables"
    }


def test_create_task_and_complete_payloads(state, tokens, alice, bob) -> None:
    created = registry.call(
        state,
        "create_task",
        {"description": "write docs", "assigned_to": "bob"},
        tokens["alice"],
    )
    assert created["status"] == "pending"
    assert created["created_by_name"] == "alice"
    assert created["assigned_to_name"] == "bob"
    assert created["created_at"].endswith("Z")
    assert "result" not in created

    done = registry.call(
        state, "complete_task", {"id": created["id"], "result": "done"}, tokens["bob"]
    )
    assert done["status"] == "completed"
    assert done["result"] == "done"
    assert "completed_at" in done


def test_domain_errors_become_error_envelopes(state, tokens) -> None:
    out = registry.call(state, "complete_task", {"id": "nope"}, tokens["alice"])
    assert out == {"error": "invalid task ID format"}

    out = registry.call(state, "complete_task", {"id": str(uuid.uuid4())}, tokens["alice"])
    assert out == {"error": "task not found"}

    out = registry.call(state, "create_user", {"name": "x"}, tokens["alice"])
    assert out == {"error": "only admins can create users"}


def test_argument_types_are_checked(state, tokens) -> None:
    out = registry.call(state, "list_users", {"limit": True}, tokens["alice"])
    assert out == {"error": "limit must be an integer"}

    out = registry.call(state, "get_next_task", {"statuses": "pending"}, tokens["alice"])
    assert out == {"error": "statuses must be an array of strings"}


@pytest.mark.parametrize("limit", [float("inf"), float("-inf"), float("nan"), 2.5])
def test_non_integral_float_limit_is_a_validation_error(state, tokens, limit: float) -> None:
    out = registry.call(state, "list_created_tasks", {"limit": limit}, tokens["alice"])
    assert out == {"error": "limit must be an integer"}


def test_float_limit_from_json_is_accepted(state, tokens) -> None:
    out = registry.call(state, "list_users", {"limit": 2.0}, tokens["alice"])
    assert out["count"] == 2


def test_wait_for_user_payload(state, tokens) -> None:
    created = registry.call(
        state, "create_task", {"description": "d", "assigned_to": "bob"}, tokens["alice"]
    )
    out = registry.call(
        state, "wait_for_user", {"id": created["id"], "comment": "which branch?"}, tokens["bob"]
    )
    assert out["status"] == "waiting_for_user"
    assert out["comment_added"]["comment"] == "which branch?"


def test_next_task_empty_is_not_an_error(state, tokens) -> None:
    out = registry.call(state, "get_next_task", {}, tokens["alice"])
    assert out == {"task": None, "message": "No matching tasks"}


def test_list_created_tasks_payload(state, tokens) -> None:
    created = registry.call(
        state, "create_task", {"description": "d", "assigned_to": "bob"}, tokens["alice"]
    )
    registry.call(state, "wait_for_user", {"id": created["id"], "comment": "?"}, tokens["bob"])

    out = registry.call(state, "list_created_tasks", {"limit": 5}, tokens["alice"])
    assert out["total_count"] == 1
    assert out["limit_used"] == 5
    assert out["created_by"] == "alice"
    (task,) = out["tasks"]
    assert task["is_archived"] is False
    assert [c["comment"] for c in task["comments"]] == ["?"]
    assert task["comments"][0]["created_by_name"] == "bob"


def test_create_user_returns_token(state, tokens) -> None:
    out = registry.call(state, "create_user", {"name": "carol"}, tokens["admin"])
    assert out["success"] is True
    assert out["user"]["name"] == "carol"
    assert state.tokens.validate_token(out["user"]["token"]).user_id == out["user"]["id"]


def test_token_info_payload(state, tokens, alice) -> None:
    out = registry.call(state, "get_token_info", {}, tokens["alice"])
    info = out["token_info"]
    assert info["user_id"] == alice.user_id
    assert info["user_name"] == "alice"
    assert info["is_admin"] is False
    assert info["remaining_time"].endswith("m")


def test_unexpected_exception_is_masked(state, tokens) -> None:
    local = ToolRegistry()

    def boom(state, claims, args):
        raise RuntimeError("secret internals")

    local.register("boom", boom, "always fails")
    assert local.call(state, "boom", {}, tokens["alice"]) == {"error": "internal error"}


def test_resolve_authorization() -> None:
    assert resolve_authorization({"authorization": "Bearer a"}, "b") == "Bearer a"
    assert resolve_authorization({"Authorization": "Bearer a"}, None) == "Bearer a"
    assert resolve_authorization({"authorization": ""}, "Bearer b") == "Bearer b"
    assert resolve_authorization({}, None) is None
