from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from app.domain.entities.booking import Booking, BookingStatus


class BookingStorePort(ABC):
    @abstractmethod
    def add(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_for_provider(
        self,
        provider_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def list_for_client(
        self,
        client_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def list_by_status(self, status: BookingStatus) -> list[Booking]:
        raise NotImplementedError

    def list_holding_on(self, provider_id: str, day: date, statuses: frozenset[BookingStatus]) -> list[Booking]:
        """Bookings in `statuses` whose confirmed_at falls on `day` (in the datetime's own zone)."""
        return [
            b
            for b in self.list_for_provider(provider_id, statuses)
            if b.confirmed_at is not None and b.confirmed_at.date() == day
        ]
