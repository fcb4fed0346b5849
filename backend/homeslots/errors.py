# backend/homeslots/errors.py
"""
Scheduling error taxonomy.

ValidationError    malformed request, caller-fixable, never retried
ConflictError      time range taken or no longer offered; re-fetch slots
NotFoundError      provider / booking missing (or not visible to the caller)
TransientError     persistence unavailable; safe to retry the same call

Handlers at the bottom turn them into JSON responses shaped like
FastAPI's HTTPException bodies.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "scheduling_error"
    retryable = False

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvalidTransitionError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class TransientError(SchedulingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "transient_error"
    retryable = True


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    if isinstance(exc, TransientError):
        logger.warning(f"{request.method} {request.url.path} transient failure: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code, "retryable": exc.retryable},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
