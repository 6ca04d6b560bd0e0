# src/taskdesk/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the JWT secret is checked at startup).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKDESK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    db_path: Path
    db_pool_size: int
    db_timeout_seconds: float

    # ---- Credentials ----
    jwt_secret: str | None
    token_ttl_hours: int

    # ---- Transport ----
    transport: str
    host: str
    port: int
    http_path: str
    stdio_token: str | None

    # ---- Bootstrap ----
    admin_name: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdesk") or "taskdesk"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdesk"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskdesk.sqlite3")
        db_pool_size = max(1, _env_int(_k("DB_POOL_SIZE"), 25))
        db_timeout_seconds = max(0.1, _env_float(_k("DB_TIMEOUT"), 30.0))

        jwt_secret = _first_env(_k("JWT_SECRET"), "JWT_SECRET", default=None)
        token_ttl_hours = max(1, _env_int(_k("TOKEN_TTL_HOURS"), 24))

        transport = _env(_k("TRANSPORT"), "http").strip().lower() or "http"
        host = _env(_k("HOST"), "0.0.0.0")
        port = _env_int(_k("PORT"), _env_int("MCP_SERVER_PORT", 8080))
        http_path = _env(_k("HTTP_PATH"), "/mcp") or "/mcp"
        stdio_token = _first_env(_k("TOKEN"), default=None)

        admin_name = (_env(_k("ADMIN_NAME"), "admin") or "admin").strip()

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            db_pool_size=db_pool_size,
            db_timeout_seconds=db_timeout_seconds,
            jwt_secret=jwt_secret,
            token_ttl_hours=token_ttl_hours,
            transport=transport,
            host=host,
            port=port,
            http_path=http_path,
            stdio_token=stdio_token,
            admin_name=admin_name,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
