"""
Async database access helpers (raw SQL) using asyncpg.

`ConnectionManager` owns the process-wide database handle. The service
creates one manager per process, connects it on startup and closes it on
shutdown (see `api/main.py`). Repositories receive the handle explicitly.

The handle is an `asyncpg.Pool`: a single asyncpg connection refuses
concurrent operations, and requests run concurrently.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

logger = logging.getLogger(__name__)


class ConnectionFailedError(RuntimeError):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = ""
    # <= 0 disables the bound on dial + ping.
    connect_timeout_s: float = 10.0
    min_pool_size: int = 1
    max_pool_size: int = 5
    command_timeout_s: float = 30.0


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url(config: DatabaseConfig) -> str:
    url = (config.url or "").strip()
    if not url:
        raise ConnectionFailedError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


class ConnectionManager:
    """
    Lazily opened, shared database handle.

    The first `connect()` dials and pings under a lock; every caller after
    that (including callers that were waiting on the lock) gets the cached
    pool or the cached `ConnectionFailedError`.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._done = False
        self._closed = False
        self._pool: asyncpg.Pool | None = None
        self._error: ConnectionFailedError | None = None

    async def connect(self, config: DatabaseConfig) -> asyncpg.Pool:
        async with self._lock:
            if self._closed:
                raise ConnectionFailedError("connection manager is closed")
            if not self._done:
                try:
                    self._pool = await self._open(config)
                except ConnectionFailedError as exc:
                    self._error = exc
                self._done = True

        if self._error is not None:
            raise self._error
        assert self._pool is not None
        return self._pool

    async def _open(self, config: DatabaseConfig) -> asyncpg.Pool:
        url = database_url(config)
        timeout = config.connect_timeout_s if config.connect_timeout_s > 0 else None
        try:
            pool = await asyncio.wait_for(self._dial_and_ping(url, config), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ConnectionFailedError(
                f"failed to connect to database: timed out after {timeout}s"
            ) from exc
        logger.info("db_connected min_size=%s max_size=%s", config.min_pool_size, config.max_pool_size)
        return pool

    async def _dial_and_ping(self, url: str, config: DatabaseConfig) -> asyncpg.Pool:
        try:
            pool = await asyncpg.create_pool(
                dsn=url,
                min_size=config.min_pool_size,
                max_size=config.max_pool_size,
                command_timeout=config.command_timeout_s,
            )
        except Exception as exc:
            raise ConnectionFailedError(f"failed to connect to database: {exc}") from exc

        try:
            await pool.execute("SELECT 1")
        except Exception as exc:
            pool.terminate()
            raise ConnectionFailedError(f"failed to ping database: {exc}") from exc
        except asyncio.CancelledError:
            # Connect timeout fired mid-ping.
            pool.terminate()
            raise
        return pool

    async def close(self) -> None:
        async with self._lock:
            self._closed = True
            self._done = True
            pool, self._pool = self._pool, None
        if pool is None:
            return None
        await pool.close()
        logger.info("db_closed")

    def get_conn(self) -> asyncpg.Pool | None:
        """
        Return the cached handle without connecting.
        """
        return self._pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(conn: asyncpg.Pool, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(conn: asyncpg.Pool, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(conn: asyncpg.Pool, sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    await conn.execute(sql, *args)
