from __future__ import annotations

import logging
import math
from datetime import date, time

from app.application.ports.booking_store import BookingStorePort
from app.application.ports.service_catalog import ServiceCatalogPort
from app.application.use_cases.slot_store import SlotStore
from app.application.utils.time_helpers import minute_of
from app.domain.entities.availability_window import AvailabilityWindow
from app.domain.entities.booking import HOLDING_STATUSES, Booking

DEFAULT_DURATION_MINUTES = 60


def occupied_marks(start: time, duration_minutes: int | None) -> list[time]:
    """
    Hour-granular marks a booking holds: its start plus one mark per whole
    hour beyond the first, each at start + N hours (minutes unchanged,
    hour-of-day wraps modulo 24).

    Missing, zero or <= 60 minute durations hold only the start mark.
    """
    duration = duration_minutes or DEFAULT_DURATION_MINUTES
    extra_hours = max(math.ceil(duration / 60) - 1, 0)
    return [time((start.hour + n) % 24, start.minute) for n in range(extra_hours + 1)]


def is_blocked(window: AvailabilityWindow, marks: set[time]) -> bool:
    return any(window.covers(mark) for mark in marks)


class OccupancyResolver:
    """Reconciles fixed-size declared windows with bookings that may span several of them."""

    def __init__(
        self,
        slots: SlotStore,
        bookings: BookingStorePort,
        catalog: ServiceCatalogPort,
    ) -> None:
        self._slots = slots
        self._bookings = bookings
        self._catalog = catalog
        self._logger = logging.getLogger(__name__)

    def marks_for(self, booking: Booking) -> list[time]:
        if booking.confirmed_at is None:
            return []
        return self.marks_at(booking.offering_id, minute_of(booking.confirmed_at))

    def marks_at(self, offering_id: str, start: time) -> list[time]:
        offering = self._catalog.get_offering(offering_id)
        duration = offering.duration_minutes if offering else None
        return occupied_marks(start, duration)

    def occupied_marks_on(self, provider_id: str, day: date, exclude_booking_id: str | None = None) -> set[time]:
        marks: set[time] = set()
        for booking in self._bookings.list_holding_on(provider_id, day, HOLDING_STATUSES):
            if booking.id == exclude_booking_id:
                continue
            marks.update(self.marks_for(booking))
        return marks

    def free_windows(self, provider_id: str, day: date) -> list[AvailabilityWindow]:
        windows = self._slots.list_available_on(provider_id, day)
        marks = self.occupied_marks_on(provider_id, day)
        free = [w for w in windows if not is_blocked(w, marks)]
        self._logger.debug(
            "Resolved availability",
            extra={"provider_id": provider_id, "reason": f"{len(windows) - len(free)} blocked of {len(windows)}"},
        )
        return sorted(free, key=lambda w: (w.start, w.end))
