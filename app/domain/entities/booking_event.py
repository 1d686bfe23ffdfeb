from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class BookingEventType(str, Enum):
    created = "booking.created"
    confirmed = "booking.confirmed"
    alternative_proposed = "booking.alternative_proposed"
    declined = "booking.declined"
    cancelled = "booking.cancelled"
    completed = "booking.completed"
    timed_out = "booking.timed_out"


@dataclass(frozen=True)
class BookingEvent:
    type: BookingEventType
    booking_id: str
    client_id: str
    provider_id: str
    status: str
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "booking_id": self.booking_id,
            "client_id": self.client_id,
            "provider_id": self.provider_id,
            "status": self.status,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": dict(self.payload),
        }
