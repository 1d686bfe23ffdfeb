from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from app.application.exceptions import Forbidden, InvalidTransition, NotFound, SlotNoLongerAvailable
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.clock import ClockPort
from app.application.ports.notifier import NotifierPort
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.use_cases.occupancy import OccupancyResolver
from app.application.use_cases.slot_store import SlotStore, WindowPatch
from app.application.utils.locks import KeyedLocks
from app.application.utils.time_helpers import date_range, localize, minute_of
from app.domain.entities.actor import SYSTEM_ACTOR, Actor, ActorRole
from app.domain.entities.availability_window import AvailabilityWindow, WindowStatus
from app.domain.entities.booking import Booking, BookingStatus
from app.domain.entities.booking_event import BookingEvent, BookingEventType


class ProviderAction(str, Enum):
    confirm = "confirm"
    propose = "propose"
    decline = "decline"


class ResolutionAction(str, Enum):
    accept = "accept"
    cancel = "cancel"
    complete = "complete"


@dataclass(frozen=True)
class ProviderResponse:
    action: ProviderAction
    proposed_at: datetime | None = None
    price: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class BookingResolution:
    action: ResolutionAction
    notes: str | None = None
    rating: int | None = None


@dataclass(frozen=True)
class DaySchedule:
    day: date
    windows: list[AvailabilityWindow]


class ScheduleGateway:
    """
    Entry point for the catalog, client and provider apps.

    Every write takes the provider's critical section before reading and then
    writing window or booking state, so window edits, confirmations and
    cancellations for one provider never interleave. Availability reads run
    unlocked; a stale "free" answer is caught by the re-check at confirm time.
    """

    def __init__(
        self,
        slots: SlotStore,
        occupancy: OccupancyResolver,
        lifecycle: BookingLifecycle,
        bookings: BookingStorePort,
        notifier: NotifierPort,
        clock: ClockPort,
        locks: KeyedLocks | None = None,
        response_timeout: timedelta = timedelta(minutes=5),
    ) -> None:
        self._slots = slots
        self._occupancy = occupancy
        self._lifecycle = lifecycle
        self._bookings = bookings
        self._notifier = notifier
        self._clock = clock
        self._locks = locks or KeyedLocks()
        self._response_timeout = response_timeout
        self._logger = logging.getLogger(__name__)

    # windows

    def declare_window(
        self,
        actor: Actor,
        work_date: date,
        start: time,
        end: time,
        status: WindowStatus = WindowStatus.AVAILABLE,
        note: str | None = None,
    ) -> AvailabilityWindow:
        self._require_provider(actor)
        with self._locks.hold(actor.id):
            return self._slots.declare(actor.id, work_date, start, end, status, note)

    def update_window(self, actor: Actor, window_id: str, patch: WindowPatch) -> AvailabilityWindow:
        self._require_provider(actor)
        with self._locks.hold(actor.id):
            return self._slots.update(window_id, actor.id, patch)

    def remove_window(self, actor: Actor, window_id: str) -> None:
        self._require_provider(actor)
        with self._locks.hold(actor.id):
            self._slots.remove(window_id, actor.id)

    def get_schedule(self, provider_id: str, date_from: date, date_to: date) -> list[DaySchedule]:
        by_day: dict[date, list[AvailabilityWindow]] = {}
        for window in self._slots.list_for_range(provider_id, date_from, date_to):
            by_day.setdefault(window.work_date, []).append(window)
        return [DaySchedule(day=day, windows=windows) for day, windows in sorted(by_day.items())]

    def get_availability(self, provider_id: str, date_from: date, date_to: date | None = None) -> list[DaySchedule]:
        """Bookable windows per day. Past days are empty; today's windows drop once they have started."""
        now = self._clock.now()
        today = now.date()
        result: list[DaySchedule] = []
        for day in date_range(date_from, date_to or date_from):
            if day < today:
                result.append(DaySchedule(day=day, windows=[]))
                continue
            windows = self._occupancy.free_windows(provider_id, day)
            if day == today:
                current = minute_of(now)
                windows = [w for w in windows if w.start >= current]
            result.append(DaySchedule(day=day, windows=windows))
        return result

    # bookings

    def request_booking(
        self,
        actor: Actor,
        provider_id: str,
        offering_id: str,
        requested_at: datetime,
        design_ref: str | None = None,
        description: str | None = None,
        client_notes: str | None = None,
    ) -> Booking:
        requested_at = localize(requested_at, self._clock.timezone)
        with self._locks.hold(provider_id):
            marks = self._occupancy.marks_at(offering_id, minute_of(requested_at))
            window = self._occupied_window(provider_id, requested_at.date(), marks)
            if window is not None:
                raise SlotNoLongerAvailable(
                    "This time is already booked",
                    provider_id=provider_id,
                    requested_at=requested_at.isoformat(),
                    window_id=window.id,
                )
            booking = self._lifecycle.create(
                actor,
                provider_id,
                offering_id,
                requested_at,
                design_ref=design_ref,
                description=description,
                client_notes=client_notes,
            )
        self._publish(BookingEventType.created, booking)
        return booking

    def respond_to_booking(self, actor: Actor, booking_id: str, response: ProviderResponse) -> Booking:
        provider_id = self._provider_of(booking_id)
        with self._locks.hold(provider_id):
            if response.action == ProviderAction.confirm:
                current = self._lifecycle.get(actor, booking_id)
                if actor.id == current.provider_id and current.status == BookingStatus.PENDING:
                    self._ensure_free(current, current.requested_at)
                booking = self._lifecycle.confirm(actor, booking_id, price=response.price, notes=response.notes)
                event = BookingEventType.confirmed
            elif response.action == ProviderAction.propose:
                if response.proposed_at is None:
                    raise ValueError("proposed_at is required to propose an alternative time")
                booking = self._lifecycle.propose_alternative(
                    actor, booking_id, response.proposed_at, notes=response.notes
                )
                event = BookingEventType.alternative_proposed
            else:
                booking = self._lifecycle.decline(actor, booking_id, notes=response.notes)
                event = BookingEventType.declined
        self._publish(event, booking)
        return booking

    def resolve_booking(self, actor: Actor, booking_id: str, resolution: BookingResolution) -> Booking:
        provider_id = self._provider_of(booking_id)
        with self._locks.hold(provider_id):
            if resolution.action == ResolutionAction.accept:
                current = self._lifecycle.get(actor, booking_id)
                if (
                    actor.id == current.client_id
                    and current.status == BookingStatus.ALTERNATIVE_PROPOSED
                    and current.proposed_at is not None
                ):
                    self._ensure_free(current, current.proposed_at)
                booking = self._lifecycle.accept_alternative(actor, booking_id)
                event = BookingEventType.confirmed
            elif resolution.action == ResolutionAction.cancel:
                booking = self._lifecycle.cancel(actor, booking_id)
                event = BookingEventType.cancelled
            else:
                booking = self._lifecycle.complete(actor, booking_id, notes=resolution.notes, rating=resolution.rating)
                event = BookingEventType.completed
        self._publish(event, booking)
        return booking

    def expire_stale_bookings(self) -> list[Booking]:
        """Time out PENDING bookings the provider has not answered within the response timeout."""
        cutoff = self._clock.now() - self._response_timeout
        expired: list[Booking] = []
        for stale in self._bookings.list_by_status(BookingStatus.PENDING):
            if stale.created_at is None or stale.created_at > cutoff:
                continue
            with self._locks.hold(stale.provider_id):
                try:
                    booking = self._lifecycle.expire(SYSTEM_ACTOR, stale.id)
                except InvalidTransition:
                    # answered between the scan and the lock
                    continue
            expired.append(booking)
            self._publish(BookingEventType.timed_out, booking)
        if expired:
            self._logger.info("Expired stale bookings", extra={"reason": f"{len(expired)} timed out"})
        return expired

    def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        return self._lifecycle.get(actor, booking_id)

    def list_bookings(self, actor: Actor, statuses: frozenset[BookingStatus] | None = None) -> list[Booking]:
        return self._lifecycle.list_for(actor, statuses)

    def _ensure_free(self, booking: Booking, target: datetime) -> None:
        """Every mark the booking would hold at `target` must be clear of other bookings."""
        day = target.date()
        marks = self._occupancy.marks_for(replace(booking, confirmed_at=target))
        held = self._occupancy.occupied_marks_on(booking.provider_id, day, exclude_booking_id=booking.id)
        clashing = [m for m in marks if m in held]
        if clashing:
            raise SlotNoLongerAvailable(
                "Another booking already holds this time",
                booking_id=booking.id,
                target=target.isoformat(),
                mark=clashing[0].isoformat("minutes"),
            )
        window = self._occupied_window(booking.provider_id, day, marks, booking.id)
        if window is not None:
            raise SlotNoLongerAvailable(
                "The window for this time is already occupied",
                booking_id=booking.id,
                window_id=window.id,
            )

    def _occupied_window(
        self,
        provider_id: str,
        day: date,
        marks: list[time],
        booking_id: str | None = None,
    ) -> AvailabilityWindow | None:
        """First declared window covering any mark that another booking occupies."""
        for mark in marks:
            for window in self._slots.covering(provider_id, day, mark):
                if window.status == WindowStatus.OCCUPIED and window.booking_id != booking_id:
                    return window
        return None

    def _provider_of(self, booking_id: str) -> str:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("Booking not found", booking_id=booking_id)
        return booking.provider_id

    def _require_provider(self, actor: Actor) -> None:
        if actor.role != ActorRole.provider:
            raise Forbidden("Only providers manage availability windows", actor_id=actor.id)

    def _publish(self, event_type: BookingEventType, booking: Booking) -> None:
        event = BookingEvent(
            type=event_type,
            booking_id=booking.id,
            client_id=booking.client_id,
            provider_id=booking.provider_id,
            status=booking.status.value,
            occurred_at=self._clock.now(),
            payload=_event_payload(booking),
        )
        try:
            self._notifier.publish(event)
        except Exception as e:
            self._logger.exception(
                "Failed to publish booking event",
                extra={"booking_id": booking.id, "event": event_type.value, "reason": str(e)},
            )


def _event_payload(booking: Booking) -> dict[str, Any]:
    def iso(value: datetime | None) -> str | None:
        return value.isoformat() if value else None

    return {
        "offering_id": booking.offering_id,
        "design_ref": booking.design_ref,
        "price": str(booking.price),
        "requested_at": iso(booking.requested_at),
        "proposed_at": iso(booking.proposed_at),
        "confirmed_at": iso(booking.confirmed_at),
        "completed_at": iso(booking.completed_at),
        "provider_notes": booking.provider_notes,
        "rating": booking.rating,
    }
