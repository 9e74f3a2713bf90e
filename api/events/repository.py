"""
Event persistence (raw SQL).

The repository wraps driver failures in `EventStoreError` but does not
classify them; mapping to HTTP statuses is the router's job. Cancellation
is never wrapped, so a caller's deadline stays observable.
"""

from __future__ import annotations

import uuid
from typing import Any

import asyncpg

from core import db

from .models import Event, EventNotFoundError


class EventStoreError(RuntimeError):
    pass


def _row_to_event(row: dict[str, Any]) -> Event:
    return Event(
        id=uuid.UUID(str(row["id"])),
        title=str(row["title"]),
        description=row["description"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        created_at=row["created_at"],
    )


class EventRepository:
    def __init__(self, conn: asyncpg.Pool) -> None:
        self._conn = conn

    async def create(self, event: Event) -> None:
        try:
            await db.execute(
                self._conn,
                """
                INSERT INTO events (id, title, description, start_time, end_time, created_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                """,
                event.id,
                event.title,
                event.description,
                event.start_time,
                event.end_time,
                event.created_at,
            )
        except Exception as exc:
            raise EventStoreError(f"failed to create event: {exc}") from exc

    async def get_all(self) -> list[Event]:
        """
        Return every event ordered by start time (oldest first).
        """
        try:
            rows = await db.fetch_all(
                self._conn,
                """
                SELECT id, title, description, start_time, end_time, created_at
                FROM events
                ORDER BY start_time ASC
                """,
            )
        except Exception as exc:
            raise EventStoreError(f"failed to query events: {exc}") from exc
        return [_row_to_event(row) for row in rows]

    async def get_by_id(self, event_id: uuid.UUID) -> Event:
        try:
            row = await db.fetch_one(
                self._conn,
                """
                SELECT id, title, description, start_time, end_time, created_at
                FROM events
                WHERE id = $1
                """,
                event_id,
            )
        except Exception as exc:
            raise EventStoreError(f"failed to get event: {exc}") from exc
        if row is None:
            raise EventNotFoundError()
        return _row_to_event(row)
