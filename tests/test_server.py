import asyncio
import socket

import pytest
from fastapi import FastAPI

from core.server import Server, ServerConfig, ServerError, ServerState, ShutdownError


def _app() -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    def ping() -> dict:
        return {"ok": True}

    return app


async def _wait_for_state(server: Server, state: ServerState, timeout_s: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_s
    while server.state is not state:
        if loop.time() > deadline:
            raise AssertionError(f"server never reached {state.value}, stuck at {server.state.value}")
        await asyncio.sleep(0.01)


@pytest.mark.anyio
async def test_start_then_shutdown_goes_through_every_state():
    server = Server(ServerConfig(host="127.0.0.1", port=0, shutdown_timeout_s=5.0), _app())
    assert server.state is ServerState.STOPPED

    task = asyncio.create_task(server.start())
    await _wait_for_state(server, ServerState.SERVING)

    await server.shutdown()
    await asyncio.wait_for(task, timeout=5.0)

    assert server.state is ServerState.STOPPED
    assert task.exception() is None


@pytest.mark.anyio
async def test_bind_failure_raises_server_error():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]

        server = Server(ServerConfig(host="127.0.0.1", port=port), _app())
        with pytest.raises(ServerError, match="could not listen"):
            await server.start()

    assert server.state is ServerState.STOPPED


@pytest.mark.anyio
async def test_shutdown_of_stopped_server_is_a_no_op():
    await Server(ServerConfig(), _app()).shutdown()


@pytest.mark.anyio
async def test_start_twice_is_rejected():
    server = Server(ServerConfig(host="127.0.0.1", port=0), _app())
    task = asyncio.create_task(server.start())
    await _wait_for_state(server, ServerState.SERVING)

    with pytest.raises(ServerError):
        await server.start()

    await server.shutdown()
    await asyncio.wait_for(task, timeout=5.0)


class _StuckListener:
    """Listener that never drains, to exercise the shutdown bound."""

    def __init__(self) -> None:
        self.started = True
        self.should_exit = False
        self.force_exit = False

    async def serve(self) -> None:
        await asyncio.sleep(60)


@pytest.mark.anyio
async def test_shutdown_timeout_is_reported_and_forces_exit():
    server = Server(ServerConfig(shutdown_timeout_s=0.05), _app())
    listener = _StuckListener()
    server._server = listener
    task = asyncio.create_task(server.start())
    await _wait_for_state(server, ServerState.SERVING)

    with pytest.raises(ShutdownError, match="timed out"):
        await server.shutdown()

    assert listener.should_exit
    assert listener.force_exit
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.parametrize("shutdown_timeout_s", [0.05, 1.0, 30.0, 30.5])
def test_listener_drain_bound_outlasts_shutdown_bound(shutdown_timeout_s):
    """uvicorn must not cancel in-flight work before shutdown() reports an overrun."""
    server = Server(ServerConfig(shutdown_timeout_s=shutdown_timeout_s), _app())

    assert server._server.config.timeout_graceful_shutdown > shutdown_timeout_s
