from __future__ import annotations

from datetime import datetime, timedelta, tzinfo

from app.application.ports.clock import ClockPort


class FixedClock(ClockPort):
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        if now.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware datetime")
        self._now = now

    @property
    def timezone(self) -> tzinfo:
        return self._now.tzinfo

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now.replace(tzinfo=self._now.tzinfo) if now.tzinfo is None else now

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now
