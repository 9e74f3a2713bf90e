"""
Event domain model and its construction rules.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from . import schemas

MAX_TITLE_LENGTH = 100


class EventError(Exception):
    message = "event error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class EventValidationError(EventError):
    pass


class InvalidTitleError(EventValidationError):
    message = f"title must be non-empty and at most {MAX_TITLE_LENGTH} characters"


class InvalidTimeRangeError(EventValidationError):
    message = "start time must be before end time"


class EventNotFoundError(EventError):
    message = "event not found"


@dataclass(frozen=True)
class Event:
    id: uuid.UUID
    title: str
    description: str | None
    start_time: datetime
    end_time: datetime
    created_at: datetime


def validate_request(request: schemas.CreateEventRequest) -> None:
    if not request.title or len(request.title) > MAX_TITLE_LENGTH:
        raise InvalidTitleError()
    if not request.start_time < request.end_time:
        raise InvalidTimeRangeError()


def new_event(request: schemas.CreateEventRequest) -> Event:
    """
    Validate a creation request and build the Event to persist.

    `id` and `created_at` are always server-assigned.
    """
    validate_request(request)
    return Event(
        id=uuid.uuid4(),
        title=request.title,
        description=request.description,
        start_time=request.start_time,
        end_time=request.end_time,
        created_at=datetime.now(timezone.utc),
    )
