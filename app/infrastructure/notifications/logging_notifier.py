from __future__ import annotations

import logging

from app.application.ports.notifier import NotifierPort
from app.domain.entities.booking_event import BookingEvent


class LoggingNotifier(NotifierPort):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self.events: list[BookingEvent] = []

    def publish(self, event: BookingEvent) -> None:
        self.events.append(event)
        self._logger.info(
            "Booking event",
            extra={"event": event.type.value, "booking_id": event.booking_id, "status": event.status},
        )
