"""
Custom exception hierarchy for Signal.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.

Taxonomy
--------
ValidationError  (422) — rejected before any mutation
NotFoundError    (404) — unknown Day / Entry id
ConflictError    (409) — operation not allowed in the current state
StoreError       (500) — persistence failure, transaction rolled back
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

from signal_app.core.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class SignalException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# --- 422 -------------------------------------------------------------------

class ValidationError(SignalException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    def __init__(self, field: str):
        super().__init__(
            message=f"{field} is required.",
            details={"field": field},
        )


class FutureTimestampError(ValidationError):
    code = "FUTURE_TIMESTAMP"

    def __init__(self, field: str, value: datetime):
        super().__init__(
            message=f"{field} cannot be in the future.",
            details={"field": field, "value": value.isoformat()},
        )


class InvalidDurationError(ValidationError):
    code = "INVALID_DURATION"

    def __init__(self, value: Any):
        super().__init__(
            message=f"Duration must be a non-negative number of minutes. Received {value!r}.",
            details={"duration": value},
        )


# --- 404 -------------------------------------------------------------------

class NotFoundError(SignalException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class DayNotFoundError(NotFoundError):
    code = "DAY_NOT_FOUND"

    def __init__(self, day_id: int):
        super().__init__(
            message=f"Day {day_id} does not exist.",
            details={"day_id": day_id},
        )


class EntryNotFoundError(NotFoundError):
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: int):
        super().__init__(
            message=f"Entry {entry_id} does not exist.",
            details={"entry_id": entry_id},
        )


# --- 409 -------------------------------------------------------------------

class ConflictError(SignalException):
    http_status = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class DayNotReopenableError(ConflictError):
    code = "DAY_NOT_REOPENABLE"

    def __init__(self, day_id: int, reason: str):
        super().__init__(
            message=f"Day {day_id} cannot be reopened: {reason}.",
            details={"day_id": day_id, "reason": reason},
        )


class EntryAlreadyFinalError(ConflictError):
    code = "ENTRY_ALREADY_FINAL"

    def __init__(self, entry_id: int):
        super().__init__(
            message=f"Entry {entry_id} is already final.",
            details={"entry_id": entry_id},
        )


class TimerAlreadyRunningError(ConflictError):
    code = "TIMER_ALREADY_RUNNING"

    def __init__(self, entry_id: int | None):
        super().__init__(
            message="A timer session is already active. Stop or reset it first.",
            details={"entry_id": entry_id},
        )


class TimerNotRunningError(ConflictError):
    code = "TIMER_NOT_RUNNING"

    def __init__(self):
        super().__init__(message="No timer session is active.")


# --- 500 -------------------------------------------------------------------

class StoreError(SignalException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(
            message=message,
            details={"operation": operation} if operation else {},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def signal_exception_handler(request: Request, exc: SignalException) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
