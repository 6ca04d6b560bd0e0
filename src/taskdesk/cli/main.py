# src/taskdesk/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- serves the MCP tools (stdio or streamable HTTP), or
- bootstraps the admin user and prints its token.
"""

from __future__ import annotations

import argparse
import logging
import sys

from ..cli.bootstrap import create_app_state
from ..config import get_settings
from ..errors import TaskdeskError
from ..logging_setup import setup_logging
from ..server.mcp_server import TRANSPORTS, run_server

logger = logging.getLogger(__name__)


def _build_parser(default_transport: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskdesk", description="Task tracker MCP server.")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Serve the MCP tools.")
    serve.add_argument(
        "-t",
        "--transport",
        choices=TRANSPORTS,
        default=default_transport if default_transport in TRANSPORTS else "http",
        help="Transport type (default: %(default)s).",
    )

    admin = sub.add_parser("create-admin", help="Create the admin user and print its token.")
    admin.add_argument("--name", default=None, help="Admin user name (default: TASKDESK_ADMIN_NAME).")

    return parser


def _cmd_create_admin(state, name: str) -> int:
    issued = state.service.bootstrap_admin(name)
    # Plain stdout: this is the command's output, not a log line.
    print(f"Admin user ID: {issued.user.id}")
    print(f"Admin token: {issued.token}")
    return 0


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = _build_parser(settings.transport)
    args = parser.parse_args(argv)
    command = args.command or "serve"
    transport = getattr(args, "transport", settings.transport)

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    # keep noisy libs readable
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.info("Starting %s (%s)...", settings.app_name, command)

    try:
        state = create_app_state(settings=settings)
    except (RuntimeError, TaskdeskError) as e:
        logger.error("Startup failed: %s", e)
        return 1

    try:
        if command == "create-admin":
            return _cmd_create_admin(state, args.name or settings.admin_name)
        run_server(state, transport)
    except TaskdeskError as e:
        logger.error("%s failed: %s", command, e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
