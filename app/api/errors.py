"""
Maps scheduling errors to HTTP responses.
One table so routes stay thin and new error types only need a row here.
"""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.application.exceptions import (
    CompletionWindowExpired,
    DuplicateWindow,
    Forbidden,
    InvalidOffering,
    InvalidRange,
    InvalidTransition,
    NotFound,
    PastDate,
    SchedulingError,
    SlotNoLongerAvailable,
    StoreUnavailableError,
    TooEarly,
    WindowOccupied,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses go before their bases.
ERROR_STATUS: list[tuple[type[SchedulingError], int]] = [
    (InvalidRange, 400),
    (PastDate, 400),
    (InvalidOffering, 400),
    (TooEarly, 400),
    (CompletionWindowExpired, 400),
    (Forbidden, 403),
    (NotFound, 404),
    (DuplicateWindow, 409),
    (WindowOccupied, 409),
    (InvalidTransition, 409),
    (SlotNoLongerAvailable, 409),
]


def status_for(exc: SchedulingError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info(
        "Request rejected",
        extra={"reason": f"{type(exc).__name__}: {exc.message}", "status": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": exc.message, "context": _jsonable(exc.details)},
    )


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Store unavailable", extra={"reason": str(exc)})
    return JSONResponse(
        status_code=503,
        content={"error": "StoreUnavailable", "detail": "Storage is temporarily unavailable", "context": {}},
    )


def _jsonable(details: dict) -> dict:
    return {key: value if isinstance(value, (str, int, float, bool, type(None))) else str(value) for key, value in details.items()}
