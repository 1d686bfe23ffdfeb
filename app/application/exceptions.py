from __future__ import annotations

from typing import Any


class SchedulingError(Exception):
    """Base for business-rule failures surfaced directly to the caller."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRange(SchedulingError):
    """Raised when a window's start is not before its end."""
    pass


class DuplicateWindow(SchedulingError):
    """Raised when the provider already declared the exact same (date, start, end)."""
    pass


class PastDate(SchedulingError):
    """Raised when a window or booking targets a date before today."""
    pass


class WindowOccupied(SchedulingError):
    """Raised when a window held by a booking is deleted or edited out from under it."""
    pass


class NotFound(SchedulingError):
    pass


class Forbidden(SchedulingError):
    """Raised when the actor does not own the window or booking."""
    pass


class InvalidTransition(SchedulingError):
    """Raised when a booking is not in a source state of the requested transition."""
    pass


class InvalidOffering(SchedulingError):
    """Raised when the offering is inactive or belongs to another provider."""
    pass


class SlotNoLongerAvailable(SchedulingError):
    """Raised when another booking already holds the provider's time."""
    pass


class TooEarly(SchedulingError):
    """Raised when completion is attempted before the appointment starts."""
    pass


class CompletionWindowExpired(SchedulingError):
    """Raised when completion is attempted after the completion window closed."""
    pass


class StoreUnavailableError(RuntimeError):
    """Raised when the persistence layer fails (IO errors, corrupt records)."""
    pass
