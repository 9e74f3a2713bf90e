"""
Pydantic schemas for event endpoints.
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field

# Value an omitted timestamp decodes to; ordering rules decide whether it passes.
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


class CreateEventRequest(BaseModel):
    # Omitted fields decode to zero values. Length and ordering rules live in
    # `models.validate_request` so that they surface as validation errors
    # rather than payload errors.
    title: str = ""
    description: str | None = None
    # strict: RFC 3339 strings only, no unix-epoch numbers.
    start_time: AwareDatetime = Field(default=ZERO_TIME, strict=True)
    end_time: AwareDatetime = Field(default=ZERO_TIME, strict=True)


class EventResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    created_at: datetime

    @classmethod
    def from_event(cls, event: Any) -> EventResponse:
        return cls(**dataclasses.asdict(event))

    def to_json(self) -> dict:
        # `description` is omitted when absent; no other field can be None.
        return self.model_dump(mode="json", exclude_none=True)
