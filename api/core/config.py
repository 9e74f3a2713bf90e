"""
Process settings read from environment variables.

Everything here is plain data. Modules that need a value receive the
`Settings` object (or one of its parts) explicitly; nothing reads the
environment after startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .db import DatabaseConfig
from .server import ServerConfig

DEFAULT_REQUEST_TIMEOUT_S = 10.0


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    log_level: str = "INFO"
    cors_allowed_origins: list[str] = field(default_factory=list)


def load_settings() -> Settings:
    """
    Build `Settings` from the environment.

    A missing DATABASE_URL is not an error here; the connection manager
    reports it when the service actually tries to connect.
    """
    database = DatabaseConfig(
        url=os.environ.get("DATABASE_URL", "").strip(),
        connect_timeout_s=_env_float("DB_CONNECT_TIMEOUT_S", 10.0),
        min_pool_size=_env_int("DB_POOL_MIN_SIZE", 1),
        max_pool_size=_env_int("DB_POOL_MAX_SIZE", 5),
        command_timeout_s=_env_float("DB_COMMAND_TIMEOUT_S", 30.0),
    )
    server = ServerConfig(
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 8080),
        idle_timeout_s=_env_float("SERVER_IDLE_TIMEOUT_S", 60.0),
        shutdown_timeout_s=_env_float("SERVER_SHUTDOWN_TIMEOUT_S", 30.0),
    )
    return Settings(
        database=database,
        server=server,
        request_timeout_s=_env_float("REQUEST_TIMEOUT_S", DEFAULT_REQUEST_TIMEOUT_S),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        cors_allowed_origins=_env_list("CORS_ALLOWED_ORIGINS"),
    )
