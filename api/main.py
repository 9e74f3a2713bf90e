from __future__ import annotations

import asyncio
import logging
import signal
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware

from core.config import Settings, load_settings
from core.db import ConnectionManager
from core.responses import register_error_handlers, respond_json
from core.server import Server
from events.repository import EventRepository
from events.router import router as events_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, manager: ConnectionManager | None = None) -> FastAPI:
    settings = settings or load_settings()
    manager = manager or ConnectionManager()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Idempotent: returns the already-open pool when run() connected first.
        conn = await manager.connect(settings.database)
        app.state.event_repository = EventRepository(conn)
        try:
            yield
        finally:
            await manager.close()

    app = FastAPI(title="events-api", lifespan=lifespan)
    app.state.settings = settings

    if settings.cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allowed_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    register_error_handlers(app)
    app.include_router(events_router, tags=["events"])

    @app.get("/health")
    def health() -> Response:
        # Never dials; only reports what the manager already holds.
        if manager.get_conn() is None:
            return respond_json(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                {"status": "unavailable", "database": "unavailable"},
            )
        return respond_json(status.HTTP_200_OK, {"status": "ok", "database": "connected"})

    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


async def run(settings: Settings | None = None) -> None:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    manager = ConnectionManager()
    # Fail before binding the listener if the database is unreachable.
    await manager.connect(settings.database)
    try:
        app = create_app(settings, manager)
        server = Server(settings.server, app)

        loop = asyncio.get_running_loop()
        received: list[signal.Signals] = []
        stop = asyncio.Event()

        def _on_signal(sig: signal.Signals) -> None:
            received.append(sig)
            stop.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _on_signal, sig)

        server_task = asyncio.create_task(server.start())
        signal_task = asyncio.create_task(stop.wait())
        try:
            await asyncio.wait({server_task, signal_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

        if server_task.done():
            signal_task.cancel()
            # Raises ServerError if the listener failed.
            server_task.result()
            return None

        logger.info("signal_received signal=%s initiating graceful shutdown", received[0].name)
        await server.shutdown()
        await server_task
    finally:
        await manager.close()


def main() -> None:
    try:
        asyncio.run(run())
    except RuntimeError as exc:
        # ConnectionFailedError, ServerError and ShutdownError all land here.
        logger.error("fatal error: %s", exc)
        sys.exit(1)


app = create_app()


if __name__ == "__main__":
    main()
