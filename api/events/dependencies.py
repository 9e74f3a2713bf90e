"""
Event dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Request

from .repository import EventRepository


def get_event_repository(request: Request) -> EventRepository:
    return request.app.state.event_repository


def get_request_timeout(request: Request) -> float:
    return float(request.app.state.settings.request_timeout_s)
