"""
Event API endpoints.

Every store call runs under a per-request deadline. Outcomes map to HTTP:
- bad JSON / wrong types        -> 400 invalid_payload
- failed domain validation      -> 400 validation_error
- unparsable id                 -> 400 invalid_id
- unknown id                    -> 404 not_found
- deadline expired              -> 504 timeout
- any other store failure       -> 500 internal_error
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import ValidationError

from core.responses import ErrorCode, respond_error, respond_json

from . import models, schemas
from .dependencies import get_event_repository, get_request_timeout
from .repository import EventRepository, EventStoreError

logger = logging.getLogger(__name__)

router = APIRouter()


class InvalidEventIdError(ValueError):
    pass


def _parse_event_id(path_tail: str) -> uuid.UUID:
    # Only the first segment after /events/ names the event; anything after it is ignored.
    raw = (path_tail or "").strip("/").split("/", 1)[0]
    if not raw:
        raise InvalidEventIdError("missing event ID")
    try:
        return uuid.UUID(raw)
    except ValueError as exc:
        raise InvalidEventIdError("invalid event ID format") from exc


def _event_json(event: models.Event) -> dict:
    return schemas.EventResponse.from_event(event).to_json()


def _timeout_response() -> Response:
    return respond_error(status.HTTP_504_GATEWAY_TIMEOUT, ErrorCode.TIMEOUT, "Request timed out")


@router.post("/events")
async def create_event(
    request: Request,
    repo: EventRepository = Depends(get_event_repository),
    timeout_s: float = Depends(get_request_timeout),
) -> Response:
    body = await request.body()
    try:
        payload = schemas.CreateEventRequest.model_validate_json(body)
    except ValidationError:
        return respond_error(
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.INVALID_PAYLOAD,
            "Invalid request payload",
        )

    try:
        event = models.new_event(payload)
    except models.EventValidationError as exc:
        return respond_error(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, str(exc))

    try:
        await asyncio.wait_for(repo.create(event), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.warning("event_create_timeout event_id=%s timeout_s=%s", event.id, timeout_s)
        return _timeout_response()
    except EventStoreError:
        logger.exception("event_create_failed event_id=%s", event.id)
        return respond_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
            "Failed to create event",
        )

    logger.info("event_created event_id=%s", event.id)
    return respond_json(status.HTTP_201_CREATED, _event_json(event))


@router.get("/events")
async def list_events(
    repo: EventRepository = Depends(get_event_repository),
    timeout_s: float = Depends(get_request_timeout),
) -> Response:
    try:
        events = await asyncio.wait_for(repo.get_all(), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.warning("event_list_timeout timeout_s=%s", timeout_s)
        return _timeout_response()
    except EventStoreError:
        logger.exception("event_list_failed")
        return respond_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
            "Failed to fetch events",
        )

    return respond_json(status.HTTP_200_OK, [_event_json(event) for event in events])


@router.get("/events/{event_id:path}")
async def get_event(
    event_id: str,
    repo: EventRepository = Depends(get_event_repository),
    timeout_s: float = Depends(get_request_timeout),
) -> Response:
    """
    Fetch one event. The id is parsed here rather than by FastAPI so that a
    bad id gets the `invalid_id` envelope instead of a generic 422.
    """
    try:
        parsed_id = _parse_event_id(event_id)
    except InvalidEventIdError as exc:
        return respond_error(status.HTTP_400_BAD_REQUEST, ErrorCode.INVALID_ID, str(exc))

    try:
        event = await asyncio.wait_for(repo.get_by_id(parsed_id), timeout=timeout_s)
    except models.EventNotFoundError:
        return respond_error(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND, "Event not found")
    except asyncio.TimeoutError:
        logger.warning("event_get_timeout event_id=%s timeout_s=%s", parsed_id, timeout_s)
        return _timeout_response()
    except EventStoreError:
        logger.exception("event_get_failed event_id=%s", parsed_id)
        return respond_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
            "Failed to fetch event",
        )

    return respond_json(status.HTTP_200_OK, _event_json(event))
