from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, time

from app.domain.entities.availability_window import AvailabilityWindow


class AvailabilityStorePort(ABC):
    @abstractmethod
    def add(self, window: AvailabilityWindow) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, window_id: str) -> AvailabilityWindow | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, window: AvailabilityWindow) -> None:
        """Overwrite an existing window by id."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, window_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_for_provider(
        self,
        provider_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[AvailabilityWindow]:
        """Windows for a provider with date_from <= work_date <= date_to, ordered by (date, start)."""
        raise NotImplementedError

    @abstractmethod
    def find_starting_at(self, provider_id: str, work_date: date, start: time) -> list[AvailabilityWindow]:
        raise NotImplementedError
