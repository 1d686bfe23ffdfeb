from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, time
from enum import Enum

from app.application.exceptions import (
    DuplicateWindow,
    InvalidRange,
    NotFound,
    PastDate,
    WindowOccupied,
)
from app.application.ports.availability_store import AvailabilityStorePort
from app.application.ports.clock import ClockPort
from app.application.utils.time_helpers import to_minute
from app.domain.entities.availability_window import AvailabilityWindow, WindowStatus


class _Unset(Enum):
    token = 0


_UNSET = _Unset.token


@dataclass(frozen=True)
class WindowPatch:
    start: time | None = None
    end: time | None = None
    status: WindowStatus | None = None
    note: str | None | _Unset = _UNSET  # None clears the note

    @property
    def touches_schedule(self) -> bool:
        return self.start is not None or self.end is not None or self.status is not None


class SlotStore:
    """
    Provider-owned inventory of declared windows.

    Declaration is permissive: only exact (date, start, end) duplicates are
    rejected. Overlapping windows are accepted and left to OccupancyResolver.
    """

    def __init__(self, store: AvailabilityStorePort, clock: ClockPort) -> None:
        self._store = store
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def declare(
        self,
        provider_id: str,
        work_date: date,
        start: time,
        end: time,
        status: WindowStatus = WindowStatus.AVAILABLE,
        note: str | None = None,
    ) -> AvailabilityWindow:
        start, end = to_minute(start), to_minute(end)
        if start >= end:
            raise InvalidRange(
                "Window end must be after its start",
                start=start.isoformat("minutes"),
                end=end.isoformat("minutes"),
            )
        if work_date < self._clock.today():
            raise PastDate("Cannot declare windows in the past", work_date=work_date.isoformat())
        if status == WindowStatus.OCCUPIED:
            raise WindowOccupied("Windows become occupied only through a confirmed booking")

        self._ensure_unique(provider_id, work_date, start, end)

        window = AvailabilityWindow(
            id=str(uuid.uuid4()),
            provider_id=provider_id,
            work_date=work_date,
            start=start,
            end=end,
            status=status,
            note=note,
        )
        self._store.add(window)
        self._logger.info(
            "Window declared",
            extra={"provider_id": provider_id, "window_id": window.id, "status": status.value},
        )
        return window

    def update(self, window_id: str, owner_id: str, patch: WindowPatch) -> AvailabilityWindow:
        window = self.get_owned(window_id, owner_id)

        if window.status == WindowStatus.OCCUPIED and patch.touches_schedule:
            raise WindowOccupied(
                "An occupied window can only be released by its booking",
                window_id=window_id,
                booking_id=window.booking_id,
            )
        if patch.status == WindowStatus.OCCUPIED:
            raise WindowOccupied("Windows become occupied only through a confirmed booking")

        updated = replace(
            window,
            start=to_minute(patch.start) if patch.start is not None else window.start,
            end=to_minute(patch.end) if patch.end is not None else window.end,
            status=patch.status or window.status,
            note=window.note if patch.note is _UNSET else patch.note,
        )
        if updated.start >= updated.end:
            raise InvalidRange(
                "Window end must be after its start",
                start=updated.start.isoformat("minutes"),
                end=updated.end.isoformat("minutes"),
            )
        if (updated.start, updated.end) != (window.start, window.end):
            self._ensure_unique(owner_id, updated.work_date, updated.start, updated.end)

        self._store.save(updated)
        self._logger.info("Window updated", extra={"provider_id": owner_id, "window_id": window_id})
        return updated

    def remove(self, window_id: str, owner_id: str) -> None:
        window = self.get_owned(window_id, owner_id)
        if window.status == WindowStatus.OCCUPIED:
            raise WindowOccupied(
                "Cannot delete a window held by a booking",
                window_id=window_id,
                booking_id=window.booking_id,
            )
        self._store.delete(window_id)
        self._logger.info("Window removed", extra={"provider_id": owner_id, "window_id": window_id})

    def list_for_range(self, provider_id: str, date_from: date, date_to: date) -> list[AvailabilityWindow]:
        return self._store.list_for_provider(provider_id, date_from, date_to)

    def list_available_on(self, provider_id: str, work_date: date) -> list[AvailabilityWindow]:
        return [
            w
            for w in self._store.list_for_provider(provider_id, work_date, work_date)
            if w.status == WindowStatus.AVAILABLE
        ]

    def get_owned(self, window_id: str, owner_id: str) -> AvailabilityWindow:
        window = self._store.get(window_id)
        if window is None or window.provider_id != owner_id:
            raise NotFound("Window not found", window_id=window_id)
        return window

    def covering(self, provider_id: str, work_date: date, mark: time) -> list[AvailabilityWindow]:
        """Every declared window on the date with start <= mark < end, whatever its status."""
        mark = to_minute(mark)
        return [w for w in self._store.list_for_provider(provider_id, work_date, work_date) if w.covers(mark)]

    def find_at(self, provider_id: str, work_date: date, start: time) -> AvailabilityWindow | None:
        """The declared window starting exactly at `start`, preferring one still AVAILABLE."""
        matches = self._store.find_starting_at(provider_id, work_date, to_minute(start))
        if not matches:
            return None
        for window in matches:
            if window.status == WindowStatus.AVAILABLE:
                return window
        return matches[0]

    def occupy(self, window: AvailabilityWindow, booking_id: str) -> AvailabilityWindow:
        occupied = replace(window, status=WindowStatus.OCCUPIED, booking_id=booking_id)
        self._store.save(occupied)
        return occupied

    def release_for(self, provider_id: str, booking_id: str, work_date: date, start: time) -> AvailabilityWindow | None:
        """Free the window this booking occupies, if any. Windows held by other bookings are untouched."""
        for window in self._store.find_starting_at(provider_id, work_date, to_minute(start)):
            if window.status == WindowStatus.OCCUPIED and window.booking_id == booking_id:
                released = replace(window, status=WindowStatus.AVAILABLE, booking_id=None)
                self._store.save(released)
                return released
        return None

    def restore(self, window: AvailabilityWindow) -> None:
        """Write back a previous version of a window (compensating action)."""
        self._store.save(window)

    def _ensure_unique(self, provider_id: str, work_date: date, start: time, end: time) -> None:
        for existing in self._store.find_starting_at(provider_id, work_date, start):
            if existing.end == end:
                raise DuplicateWindow(
                    "A window with the same time already exists",
                    window_id=existing.id,
                    work_date=work_date.isoformat(),
                    start=start.isoformat("minutes"),
                    end=end.isoformat("minutes"),
                )
