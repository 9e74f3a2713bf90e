"""
JSON response helpers shared by every router.

Success bodies are the raw resource (object or array). Errors always use
the same envelope:

    {"error": "<stable_code>", "message": "<human readable text>"}
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    INVALID_PAYLOAD = "invalid_payload"
    VALIDATION_ERROR = "validation_error"
    INVALID_ID = "invalid_id"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal_error"


class ErrorResponse(BaseModel):
    error: ErrorCode
    message: str | None = None


# Errors raised by the router itself (unknown path, wrong method).
_STATUS_CODES: dict[int, tuple[ErrorCode, str]] = {
    404: (ErrorCode.NOT_FOUND, "Not found"),
    405: (ErrorCode.METHOD_NOT_ALLOWED, "Method not allowed"),
}


def respond_json(status_code: int, data: Any, headers: dict[str, str] | None = None) -> Response:
    """
    Serialize `data` into a JSON response.

    If the payload cannot be encoded, reply with a plain-text 500 instead;
    the client gets no partial JSON body.
    """
    try:
        return JSONResponse(content=data, status_code=status_code, headers=headers)
    except (TypeError, ValueError):
        logger.exception("response_encode_failed status_code=%s", status_code)
        return PlainTextResponse("failed to encode response", status_code=500)


def respond_error(
    status_code: int,
    code: ErrorCode,
    message: str | None = None,
    headers: dict[str, str] | None = None,
) -> Response:
    body = ErrorResponse(error=code, message=message).model_dump(mode="json", exclude_none=True)
    return respond_json(status_code, body, headers=headers)


async def _http_exception_handler(_: Request, exc: StarletteHTTPException) -> Response:
    code, message = _STATUS_CODES.get(exc.status_code, (ErrorCode.INTERNAL_ERROR, "Internal error"))
    return respond_error(exc.status_code, code, message, headers=exc.headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
