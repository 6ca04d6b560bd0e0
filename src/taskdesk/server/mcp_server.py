# src/taskdesk/server/mcp_server.py

"""FastMCP server exposing the task tools.

Usage:
    taskdesk serve -t http     # streamable HTTP on TASKDESK_HOST:TASKDESK_PORT/mcp
    taskdesk serve -t stdio    # stdio, credential from TASKDESK_TOKEN

The bearer credential travels in the HTTP Authorization header, never in the
tool arguments.
"""

from __future__ import annotations

import logging
from typing import Any

from fastmcp import FastMCP
from fastmcp.server.dependencies import get_http_headers

from ..api.tools import registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

TRANSPORTS = ("stdio", "http")


def resolve_authorization(headers: dict[str, str], fallback: str | None) -> str | None:
    """Authorization header value (case-insensitive lookup), else the fallback."""
    for key, value in headers.items():
        if key.lower() == "authorization" and value:
            return value
    return fallback


def build_server(state: AppState) -> FastMCP:
    settings = state.settings
    mcp = FastMCP(getattr(settings, "app_name", "taskdesk"))
    stdio_token = getattr(settings, "stdio_token", None)

    def _call(name: str, args: dict[str, Any]) -> dict[str, Any]:
        authorization = resolve_authorization(get_http_headers(include_all=True), stdio_token)
        return registry.call(state, name, args, authorization)

    @mcp.tool(name="create_user", description=registry.describe("create_user"))
    def create_user(
        name: str, is_admin: bool = False, description: str | None = None
    ) -> dict[str, Any]:
        return _call(
            "create_user", {"name": name, "is_admin": is_admin, "description": description}
        )

    @mcp.tool(name="generate_token", description=registry.describe("generate_token"))
    def generate_token(user_id: str) -> dict[str, Any]:
        return _call("generate_token", {"user_id": user_id})

    @mcp.tool(name="get_token_info", description=registry.describe("get_token_info"))
    def get_token_info() -> dict[str, Any]:
        return _call("get_token_info", {})

    @mcp.tool(name="list_users", description=registry.describe("list_users"))
    def list_users(limit: int | None = None) -> dict[str, Any]:
        return _call("list_users", {"limit": limit})

    @mcp.tool(name="create_task", description=registry.describe("create_task"))
    def create_task(description: str, assigned_to: str) -> dict[str, Any]:
        return _call("create_task", {"description": description, "assigned_to": assigned_to})

    @mcp.tool(name="complete_task", description=registry.describe("complete_task"))
    def complete_task(id: str, result: str | None = None) -> dict[str, Any]:
        return _call("complete_task", {"id": id, "result": result})

    @mcp.tool(name="cancel_task", description=registry.describe("cancel_task"))
    def cancel_task(id: str, reason: str) -> dict[str, Any]:
        return _call("cancel_task", {"id": id, "reason": reason})

    @mcp.tool(name="wait_for_user", description=registry.describe("wait_for_user"))
    def wait_for_user(id: str, comment: str) -> dict[str, Any]:
        return _call("wait_for_user", {"id": id, "comment": comment})

    @mcp.tool(name="get_next_task", description=registry.describe("get_next_task"))
    def get_next_task(statuses: list[str] | None = None) -> dict[str, Any]:
        return _call("get_next_task", {"statuses": statuses})

    @mcp.tool(name="list_created_tasks", description=registry.describe("list_created_tasks"))
    def list_created_tasks(
        user_name: str | None = None,
        limit: int | None = None,
        statuses: list[str] | None = None,
    ) -> dict[str, Any]:
        return _call(
            "list_created_tasks",
            {"user_name": user_name, "limit": limit, "statuses": statuses},
        )

    logger.info("Registered %d tools", len(registry.names()))
    return mcp


def run_server(state: AppState, transport: str) -> None:
    if transport not in TRANSPORTS:
        raise ValueError(f"unknown transport: {transport}")

    mcp = build_server(state)
    settings = state.settings

    if transport == "stdio":
        logger.info("Starting MCP server with stdio transport")
        mcp.run(transport="stdio")
        return

    host = getattr(settings, "host", "0.0.0.0")
    port = int(getattr(settings, "port", 8080))
    path = getattr(settings, "http_path", "/mcp")
    logger.info("Starting MCP HTTP server on %s:%s%s", host, port, path)
    mcp.run(transport="http", host=host, port=port, path=path)
