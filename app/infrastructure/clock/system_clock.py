from __future__ import annotations

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from app.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    def __init__(self, timezone: str | tzinfo = "UTC") -> None:
        self._tz = _safe_timezone(timezone) if isinstance(timezone, str) else timezone

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


def _safe_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except Exception:
        return ZoneInfo("UTC")
