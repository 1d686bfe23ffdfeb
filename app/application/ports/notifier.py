from abc import ABC, abstractmethod

from app.domain.entities.booking_event import BookingEvent


class NotifierPort(ABC):
    @abstractmethod
    def publish(self, event: BookingEvent) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Flush pending deliveries and release connections. No-op by default."""
