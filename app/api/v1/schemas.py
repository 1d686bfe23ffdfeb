from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, Field

from app.api.v1.identity import ID_PATTERN
from app.application.use_cases.schedule_gateway import DaySchedule
from app.domain.entities.availability_window import AvailabilityWindow, WindowStatus
from app.domain.entities.booking import Booking, BookingStatus


class WindowCreateSchema(BaseModel):
    work_date: date
    start: time
    end: time
    status: WindowStatus = WindowStatus.AVAILABLE
    note: str | None = None


class WindowUpdateSchema(BaseModel):
    start: time | None = None
    end: time | None = None
    status: WindowStatus | None = None
    note: str | None = None


class WindowSchema(BaseModel):
    id: str
    provider_id: str
    work_date: date
    start: time
    end: time
    status: WindowStatus
    note: str | None = None
    booking_id: str | None = None

    @classmethod
    def from_entity(cls, window: AvailabilityWindow) -> "WindowSchema":
        return cls(
            id=window.id,
            provider_id=window.provider_id,
            work_date=window.work_date,
            start=window.start,
            end=window.end,
            status=window.status,
            note=window.note,
            booking_id=window.booking_id,
        )


class DayScheduleSchema(BaseModel):
    day: date
    windows: list[WindowSchema] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, day: DaySchedule) -> "DayScheduleSchema":
        return cls(day=day.day, windows=[WindowSchema.from_entity(w) for w in day.windows])


class BookingCreateSchema(BaseModel):
    provider_id: str = Field(pattern=ID_PATTERN)
    offering_id: str
    requested_at: datetime
    design_ref: str | None = None
    description: str | None = None
    client_notes: str | None = None


class ConfirmSchema(BaseModel):
    price: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None


class ProposeSchema(BaseModel):
    proposed_at: datetime
    notes: str | None = None


class NotesSchema(BaseModel):
    notes: str | None = None


class CompleteSchema(BaseModel):
    notes: str | None = None
    rating: int | None = None


class BookingSchema(BaseModel):
    id: str
    client_id: str
    provider_id: str
    offering_id: str
    status: BookingStatus
    price: Decimal
    requested_at: datetime
    proposed_at: datetime | None = None
    confirmed_at: datetime | None = None
    provider_responded_at: datetime | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None
    design_ref: str | None = None
    description: str | None = None
    client_notes: str | None = None
    provider_notes: str | None = None
    rating: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingSchema":
        return cls(
            id=booking.id,
            client_id=booking.client_id,
            provider_id=booking.provider_id,
            offering_id=booking.offering_id,
            status=booking.status,
            price=booking.price,
            requested_at=booking.requested_at,
            proposed_at=booking.proposed_at,
            confirmed_at=booking.confirmed_at,
            provider_responded_at=booking.provider_responded_at,
            completed_at=booking.completed_at,
            completed_by=booking.completed_by,
            design_ref=booking.design_ref,
            description=booking.description,
            client_notes=booking.client_notes,
            provider_notes=booking.provider_notes,
            rating=booking.rating,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class ExpiredBookingsSchema(BaseModel):
    expired: list[str]
