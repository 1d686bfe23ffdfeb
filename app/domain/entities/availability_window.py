from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum


class WindowStatus(str, Enum):
    AVAILABLE = "available"
    BLOCKED_MANUAL = "blocked_manual"
    OCCUPIED = "occupied"


@dataclass(frozen=True)
class AvailabilityWindow:
    id: str
    provider_id: str
    work_date: date
    start: time
    end: time
    status: WindowStatus = WindowStatus.AVAILABLE
    note: str | None = None
    booking_id: str | None = None  # set while OCCUPIED

    @property
    def key(self) -> tuple[date, time, time]:
        return (self.work_date, self.start, self.end)

    def covers(self, mark: time) -> bool:
        """Half-open check: start <= mark < end."""
        return self.start <= mark < self.end
