"""
HTTP listener lifecycle (uvicorn).

`Server.start()` serves until shutdown is requested or the listener fails.
`Server.shutdown()` stops accepting connections and waits a bounded time
for in-flight requests. Signal handling is left to the process entry point
so that it can race signals against listener failure.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

import uvicorn

logger = logging.getLogger(__name__)


class ServerError(RuntimeError):
    pass


class ShutdownError(RuntimeError):
    pass


class ServerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    idle_timeout_s: float = 60.0
    shutdown_timeout_s: float = 30.0


def _listener_drain_bound(shutdown_timeout_s: float) -> int:
    # uvicorn takes whole seconds; stay strictly above our own bound so that
    # an overrun surfaces as ShutdownError instead of a silent task cancel.
    return max(1, math.ceil(shutdown_timeout_s)) + 1


class _UvicornServer(uvicorn.Server):
    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        # Signals belong to the entry point (see main.run).
        yield


class Server:
    def __init__(self, config: ServerConfig, app: Any) -> None:
        self._config = config
        self._server = _UvicornServer(
            uvicorn.Config(
                app,
                host=config.host,
                port=config.port,
                timeout_keep_alive=max(1, int(config.idle_timeout_s)),
                timeout_graceful_shutdown=_listener_drain_bound(config.shutdown_timeout_s),
                log_config=None,
            )
        )
        self._state = ServerState.STOPPED
        self._stopped = asyncio.Event()
        self._stopped.set()

    @property
    def state(self) -> ServerState:
        if self._state is ServerState.STARTING and self._server.started:
            return ServerState.SERVING
        return self._state

    async def start(self) -> None:
        if self._state is not ServerState.STOPPED:
            raise ServerError(f"server cannot start from state {self._state.value}")

        self._state = ServerState.STARTING
        self._stopped.clear()
        logger.info("server_starting host=%s port=%s", self._config.host, self._config.port)
        try:
            await self._server.serve()
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind.
            raise ServerError(
                f"server error: could not listen on {self._config.host}:{self._config.port}"
            ) from exc
        finally:
            self._state = ServerState.STOPPED
            self._stopped.set()

        logger.info("server_stopped")

    async def shutdown(self) -> None:
        if self._stopped.is_set():
            return None

        self._state = ServerState.SHUTTING_DOWN
        logger.info("server_shutting_down timeout_s=%s", self._config.shutdown_timeout_s)
        self._server.should_exit = True
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=self._config.shutdown_timeout_s)
        except asyncio.TimeoutError as exc:
            self._server.force_exit = True
            raise ShutdownError(
                f"server shutdown error: timed out after {self._config.shutdown_timeout_s}s"
            ) from exc
        logger.info("server_stopped_gracefully")
