from __future__ import annotations

import threading
from datetime import date, time

from app.application.ports.availability_store import AvailabilityStorePort
from app.application.ports.booking_store import BookingStorePort
from app.domain.entities.availability_window import AvailabilityWindow
from app.domain.entities.booking import Booking, BookingStatus


class MemoryAvailabilityStore(AvailabilityStorePort):
    def __init__(self) -> None:
        self._windows: dict[str, AvailabilityWindow] = {}
        self._lock = threading.Lock()

    def add(self, window: AvailabilityWindow) -> None:
        with self._lock:
            self._windows[window.id] = window

    def get(self, window_id: str) -> AvailabilityWindow | None:
        return self._windows.get(window_id)

    def save(self, window: AvailabilityWindow) -> None:
        with self._lock:
            if window.id not in self._windows:
                raise KeyError(window.id)
            self._windows[window.id] = window

    def delete(self, window_id: str) -> None:
        with self._lock:
            self._windows.pop(window_id, None)

    def list_for_provider(
        self,
        provider_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[AvailabilityWindow]:
        with self._lock:
            windows = [w for w in self._windows.values() if w.provider_id == provider_id]
        if date_from is not None:
            windows = [w for w in windows if w.work_date >= date_from]
        if date_to is not None:
            windows = [w for w in windows if w.work_date <= date_to]
        return sorted(windows, key=lambda w: (w.work_date, w.start, w.end))

    def find_starting_at(self, provider_id: str, work_date: date, start: time) -> list[AvailabilityWindow]:
        return [w for w in self.list_for_provider(provider_id, work_date, work_date) if w.start == start]


class MemoryBookingStore(BookingStorePort):
    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.Lock()

    def add(self, booking: Booking) -> None:
        with self._lock:
            self._bookings[booking.id] = booking

    def get(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def save(self, booking: Booking) -> None:
        with self._lock:
            if booking.id not in self._bookings:
                raise KeyError(booking.id)
            self._bookings[booking.id] = booking

    def list_for_provider(
        self,
        provider_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        return self._select(lambda b: b.provider_id == provider_id, statuses)

    def list_for_client(
        self,
        client_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        return self._select(lambda b: b.client_id == client_id, statuses)

    def list_by_status(self, status: BookingStatus) -> list[Booking]:
        return self._select(lambda b: True, frozenset({status}))

    def _select(self, predicate, statuses: frozenset[BookingStatus] | None) -> list[Booking]:
        with self._lock:
            bookings = list(self._bookings.values())
        return [b for b in bookings if predicate(b) and (statuses is None or b.status in statuses)]
