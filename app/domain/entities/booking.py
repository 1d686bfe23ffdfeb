from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ALTERNATIVE_PROPOSED = "alternative_proposed"
    DECLINED = "declined"
    TIMEOUT = "timeout"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ALTERNATIVE_PROPOSED}
)
TERMINAL_STATUSES = frozenset(
    {BookingStatus.DECLINED, BookingStatus.TIMEOUT, BookingStatus.COMPLETED, BookingStatus.CANCELLED}
)
# Statuses whose confirmed_at still holds a time mark on the provider's day.
HOLDING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


@dataclass(frozen=True)
class Booking:
    id: str
    client_id: str
    provider_id: str
    offering_id: str
    requested_at: datetime
    price: Decimal
    status: BookingStatus = BookingStatus.PENDING
    design_ref: str | None = None
    description: str | None = None
    client_notes: str | None = None
    provider_notes: str | None = None
    proposed_at: datetime | None = None
    confirmed_at: datetime | None = None
    provider_responded_at: datetime | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None  # "provider"
    rating: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
