from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

from app.application.exceptions import (
    CompletionWindowExpired,
    Forbidden,
    InvalidOffering,
    InvalidTransition,
    NotFound,
    PastDate,
    TooEarly,
)
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.clock import ClockPort
from app.application.ports.service_catalog import ServiceCatalogPort
from app.application.use_cases.slot_store import SlotStore
from app.application.utils.time_helpers import localize, minute_of
from app.domain.entities.actor import Actor, ActorRole
from app.domain.entities.availability_window import WindowStatus
from app.domain.entities.booking import Booking, BookingStatus

# source states per transition
CONFIRM_FROM = frozenset({BookingStatus.PENDING})
PROPOSE_FROM = frozenset({BookingStatus.PENDING})
DECLINE_FROM = frozenset({BookingStatus.PENDING})
EXPIRE_FROM = frozenset({BookingStatus.PENDING})
ACCEPT_FROM = frozenset({BookingStatus.ALTERNATIVE_PROPOSED})
CANCEL_FROM = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ALTERNATIVE_PROPOSED}
)
COMPLETE_FROM = frozenset({BookingStatus.CONFIRMED})


class BookingLifecycle:
    """
    State machine for a single booking.

    PENDING -> CONFIRMED | ALTERNATIVE_PROPOSED | DECLINED | TIMEOUT
    ALTERNATIVE_PROPOSED -> CONFIRMED | CANCELLED
    CONFIRMED -> COMPLETED | CANCELLED

    Every transition checks ownership first (Forbidden), then the source
    state (InvalidTransition). Landing on CONFIRMED occupies the declared
    window starting at the confirmed time; cancelling a CONFIRMED booking
    releases it. The window write and the booking write are applied as one
    unit: if the booking write fails the window is written back.
    """

    def __init__(
        self,
        bookings: BookingStorePort,
        slots: SlotStore,
        catalog: ServiceCatalogPort,
        clock: ClockPort,
        completion_window: timedelta = timedelta(hours=24),
    ) -> None:
        self._bookings = bookings
        self._slots = slots
        self._catalog = catalog
        self._clock = clock
        self._completion_window = completion_window
        self._logger = logging.getLogger(__name__)

    def create(
        self,
        actor: Actor,
        provider_id: str,
        offering_id: str,
        requested_at: datetime,
        design_ref: str | None = None,
        description: str | None = None,
        client_notes: str | None = None,
    ) -> Booking:
        if actor.role != ActorRole.client:
            raise Forbidden("Only clients can request bookings", actor_id=actor.id)

        offering = self._catalog.get_offering(offering_id)
        if offering is None:
            raise NotFound("Service offering not found", offering_id=offering_id)
        if offering.provider_id != provider_id:
            raise InvalidOffering(
                "Service offering does not belong to this provider",
                offering_id=offering_id,
                provider_id=provider_id,
            )
        if not offering.is_active:
            raise InvalidOffering("Service offering is not active", offering_id=offering_id)

        now = self._clock.now()
        requested_at = localize(requested_at, self._clock.timezone)
        if requested_at < now:
            raise PastDate("Cannot book a time in the past", requested_at=requested_at.isoformat())

        price = Decimal(offering.price)
        if design_ref:
            surcharge = self._catalog.get_design_surcharge(offering_id, design_ref)
            if surcharge:
                price += Decimal(surcharge)

        booking = Booking(
            id=str(uuid.uuid4()),
            client_id=actor.id,
            provider_id=provider_id,
            offering_id=offering_id,
            requested_at=requested_at,
            price=price,
            status=BookingStatus.PENDING,
            design_ref=design_ref,
            description=description,
            client_notes=client_notes,
            created_at=now,
            updated_at=now,
        )
        self._bookings.add(booking)
        self._log_transition(booking, "created")
        return booking

    def get(self, actor: Actor, booking_id: str) -> Booking:
        booking = self._load(booking_id)
        if actor.is_system or actor.id in (booking.client_id, booking.provider_id):
            return booking
        raise Forbidden("Not a party to this booking", booking_id=booking_id)

    def list_for(self, actor: Actor, statuses: frozenset[BookingStatus] | None = None) -> list[Booking]:
        if actor.role == ActorRole.provider:
            found = self._bookings.list_for_provider(actor.id, statuses)
        elif actor.role == ActorRole.client:
            found = self._bookings.list_for_client(actor.id, statuses)
        else:
            raise Forbidden("Listing requires a client or provider", actor_id=actor.id)
        return sorted(found, key=lambda b: b.created_at or b.requested_at, reverse=True)

    def confirm(
        self,
        actor: Actor,
        booking_id: str,
        price: Decimal | None = None,
        notes: str | None = None,
    ) -> Booking:
        booking = self._for_provider(actor, booking_id, CONFIRM_FROM, "confirm")
        now = self._clock.now()
        confirmed = replace(
            booking,
            status=BookingStatus.CONFIRMED,
            confirmed_at=booking.requested_at,
            provider_responded_at=now,
            price=price if price is not None else booking.price,
            provider_notes=notes or booking.provider_notes,
            updated_at=now,
        )
        self._commit_with_occupancy(confirmed)
        self._log_transition(confirmed, "confirmed")
        return confirmed

    def propose_alternative(
        self,
        actor: Actor,
        booking_id: str,
        proposed_at: datetime,
        notes: str | None = None,
    ) -> Booking:
        booking = self._for_provider(actor, booking_id, PROPOSE_FROM, "propose_alternative")
        now = self._clock.now()
        proposed_at = localize(proposed_at, self._clock.timezone)
        if proposed_at < now:
            raise PastDate("Cannot propose a time in the past", proposed_at=proposed_at.isoformat())
        proposed = replace(
            booking,
            status=BookingStatus.ALTERNATIVE_PROPOSED,
            proposed_at=proposed_at,
            provider_responded_at=now,
            provider_notes=notes or booking.provider_notes,
            updated_at=now,
        )
        self._bookings.save(proposed)
        self._log_transition(proposed, "alternative proposed")
        return proposed

    def accept_alternative(self, actor: Actor, booking_id: str) -> Booking:
        booking = self._for_client(actor, booking_id, ACCEPT_FROM, "accept_alternative")
        now = self._clock.now()
        accepted = replace(
            booking,
            status=BookingStatus.CONFIRMED,
            confirmed_at=booking.proposed_at,
            updated_at=now,
        )
        self._commit_with_occupancy(accepted)
        self._log_transition(accepted, "alternative accepted")
        return accepted

    def decline(self, actor: Actor, booking_id: str, notes: str | None = None) -> Booking:
        booking = self._for_provider(actor, booking_id, DECLINE_FROM, "decline")
        now = self._clock.now()
        declined = replace(
            booking,
            status=BookingStatus.DECLINED,
            provider_responded_at=now,
            provider_notes=notes or booking.provider_notes,
            updated_at=now,
        )
        self._bookings.save(declined)
        self._log_transition(declined, "declined")
        return declined

    def cancel(self, actor: Actor, booking_id: str) -> Booking:
        booking = self._for_client(actor, booking_id, CANCEL_FROM, "cancel")
        cancelled = replace(booking, status=BookingStatus.CANCELLED, updated_at=self._clock.now())

        if booking.status == BookingStatus.CONFIRMED and booking.confirmed_at is not None:
            released = self._slots.release_for(
                booking.provider_id,
                booking.id,
                booking.confirmed_at.date(),
                minute_of(booking.confirmed_at),
            )
            try:
                self._bookings.save(cancelled)
            except Exception:
                if released is not None:
                    self._slots.occupy(released, booking.id)
                raise
        else:
            self._bookings.save(cancelled)

        self._log_transition(cancelled, "cancelled")
        return cancelled

    def complete(
        self,
        actor: Actor,
        booking_id: str,
        notes: str | None = None,
        rating: int | None = None,
    ) -> Booking:
        booking = self._for_provider(actor, booking_id, COMPLETE_FROM, "complete")
        now = self._clock.now()
        appointment = booking.confirmed_at or booking.requested_at

        if now < appointment:
            raise TooEarly(
                "A booking can only be completed once the appointment has started",
                booking_id=booking_id,
                appointment_at=appointment.isoformat(),
            )
        if now > appointment + self._completion_window:
            raise CompletionWindowExpired(
                "The completion window for this booking has closed",
                booking_id=booking_id,
                appointment_at=appointment.isoformat(),
                window_hours=self._completion_window.total_seconds() / 3600,
            )

        completed = replace(
            booking,
            status=BookingStatus.COMPLETED,
            completed_at=now,
            completed_by=ActorRole.provider.value,
            provider_notes=notes or booking.provider_notes,
            rating=rating if rating is not None else booking.rating,
            updated_at=now,
        )
        self._bookings.save(completed)
        self._log_transition(completed, "completed")
        return completed

    def expire(self, actor: Actor, booking_id: str) -> Booking:
        if not actor.is_system:
            raise Forbidden("Only the scheduler can time out bookings", actor_id=actor.id)
        booking = self._load(booking_id)
        self._guard(booking, EXPIRE_FROM, "expire")
        expired = replace(booking, status=BookingStatus.TIMEOUT, updated_at=self._clock.now())
        self._bookings.save(expired)
        self._log_transition(expired, "timed out")
        return expired

    def _commit_with_occupancy(self, booking: Booking) -> None:
        window = self._slots.find_at(
            booking.provider_id,
            booking.confirmed_at.date(),
            minute_of(booking.confirmed_at),
        )
        previous = None
        if window is not None and window.status == WindowStatus.AVAILABLE:
            previous = window
            self._slots.occupy(window, booking.id)

        try:
            self._bookings.save(booking)
        except Exception:
            if previous is not None:
                self._slots.restore(previous)
            raise

    def _for_provider(self, actor: Actor, booking_id: str, allowed: frozenset[BookingStatus], action: str) -> Booking:
        booking = self._load(booking_id)
        if actor.id != booking.provider_id:
            raise Forbidden("Only the booked provider can do this", booking_id=booking_id, action=action)
        self._guard(booking, allowed, action)
        return booking

    def _for_client(self, actor: Actor, booking_id: str, allowed: frozenset[BookingStatus], action: str) -> Booking:
        booking = self._load(booking_id)
        if actor.id != booking.client_id:
            raise Forbidden("Only the requesting client can do this", booking_id=booking_id, action=action)
        self._guard(booking, allowed, action)
        return booking

    def _guard(self, booking: Booking, allowed: frozenset[BookingStatus], action: str) -> None:
        if booking.status not in allowed:
            raise InvalidTransition(
                f"Cannot {action} a booking that is {booking.status.value}",
                booking_id=booking.id,
                status=booking.status.value,
                action=action,
            )

    def _load(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        return booking

    def _log_transition(self, booking: Booking, what: str) -> None:
        self._logger.info(
            "Booking %s",
            what,
            extra={"booking_id": booking.id, "provider_id": booking.provider_id, "status": booking.status.value},
        )
