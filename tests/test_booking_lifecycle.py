"""
Tests for the booking state machine and its window side effects.
"""

from __future__ import annotations

from datetime import time, timedelta
from decimal import Decimal

import pytest

from conftest import CLIENT, OTHER_CLIENT, OTHER_PROVIDER, PROVIDER, TOMORROW, at
from app.application.exceptions import (
    CompletionWindowExpired,
    Forbidden,
    InvalidOffering,
    InvalidTransition,
    NotFound,
    PastDate,
    TooEarly,
)
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.use_cases.slot_store import SlotStore
from app.domain.entities.actor import SYSTEM_ACTOR
from app.domain.entities.availability_window import WindowStatus
from app.domain.entities.booking import BookingStatus


@pytest.fixture
def slots(windows, clock) -> SlotStore:
    return SlotStore(store=windows, clock=clock)


@pytest.fixture
def lifecycle(bookings, slots, catalog, clock) -> BookingLifecycle:
    return BookingLifecycle(bookings=bookings, slots=slots, catalog=catalog, clock=clock)


def test_create_prices_offering_plus_design_surcharge(lifecycle):
    plain = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    styled = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 11), design_ref="fade")
    unknown = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 12), design_ref="mohawk")

    assert plain.status == BookingStatus.PENDING
    assert plain.price == Decimal("50")
    assert styled.price == Decimal("65")
    assert unknown.price == Decimal("50")


def test_create_reads_naive_times_in_business_timezone(lifecycle):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10).replace(tzinfo=None))
    assert booking.requested_at == at(TOMORROW, 10)


def test_create_validation(lifecycle):
    with pytest.raises(Forbidden):
        lifecycle.create(PROVIDER, PROVIDER.id, "haircut", at(TOMORROW, 10))
    with pytest.raises(NotFound):
        lifecycle.create(CLIENT, PROVIDER.id, "nope", at(TOMORROW, 10))
    with pytest.raises(InvalidOffering):
        lifecycle.create(CLIENT, PROVIDER.id, "elsewhere", at(TOMORROW, 10))
    with pytest.raises(InvalidOffering):
        lifecycle.create(CLIENT, PROVIDER.id, "retired", at(TOMORROW, 10))
    with pytest.raises(PastDate):
        lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10) - timedelta(days=2))


def test_confirm_occupies_window_tagged_with_booking(lifecycle, slots):
    window = slots.declare(PROVIDER.id, TOMORROW, time(10), time(11))
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))

    confirmed = lifecycle.confirm(PROVIDER, booking.id, price=Decimal("45"), notes="see you")

    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.confirmed_at == at(TOMORROW, 10)
    assert confirmed.price == Decimal("45")
    assert confirmed.provider_notes == "see you"
    held = slots.get_owned(window.id, PROVIDER.id)
    assert held.status == WindowStatus.OCCUPIED
    assert held.booking_id == booking.id


def test_confirm_without_declared_window_still_confirms(lifecycle, slots):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 16))
    confirmed = lifecycle.confirm(PROVIDER, booking.id)

    assert confirmed.status == BookingStatus.CONFIRMED
    assert slots.list_for_range(PROVIDER.id, TOMORROW, TOMORROW) == []


def test_alternative_path_confirms_at_proposed_time(lifecycle, slots):
    window = slots.declare(PROVIDER.id, TOMORROW, time(14), time(15))
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))

    proposed = lifecycle.propose_alternative(PROVIDER, booking.id, at(TOMORROW, 14), notes="10 is taken")
    assert proposed.status == BookingStatus.ALTERNATIVE_PROPOSED
    assert proposed.proposed_at == at(TOMORROW, 14)
    assert proposed.confirmed_at is None

    accepted = lifecycle.accept_alternative(CLIENT, booking.id)
    assert accepted.status == BookingStatus.CONFIRMED
    assert accepted.confirmed_at == at(TOMORROW, 14)
    assert accepted.requested_at == at(TOMORROW, 10)
    assert slots.get_owned(window.id, PROVIDER.id).booking_id == booking.id


def test_propose_in_past_rejected(lifecycle):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    with pytest.raises(PastDate):
        lifecycle.propose_alternative(PROVIDER, booking.id, at(TOMORROW, 10) - timedelta(days=3))


def test_only_parties_can_act(lifecycle):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))

    with pytest.raises(Forbidden):
        lifecycle.confirm(OTHER_PROVIDER, booking.id)
    with pytest.raises(Forbidden):
        lifecycle.confirm(CLIENT, booking.id)
    with pytest.raises(Forbidden):
        lifecycle.cancel(OTHER_CLIENT, booking.id)
    with pytest.raises(Forbidden):
        lifecycle.get(OTHER_CLIENT, booking.id)

    assert lifecycle.get(PROVIDER, booking.id).id == booking.id
    assert lifecycle.get(SYSTEM_ACTOR, booking.id).id == booking.id


def test_transitions_from_wrong_state_rejected(lifecycle):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))

    with pytest.raises(InvalidTransition):
        lifecycle.accept_alternative(CLIENT, booking.id)
    with pytest.raises(InvalidTransition):
        lifecycle.complete(PROVIDER, booking.id)

    lifecycle.decline(PROVIDER, booking.id, notes="fully booked")
    with pytest.raises(InvalidTransition):
        lifecycle.confirm(PROVIDER, booking.id)
    with pytest.raises(InvalidTransition):
        lifecycle.cancel(CLIENT, booking.id)


def test_ownership_checked_before_state(lifecycle):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    lifecycle.decline(PROVIDER, booking.id)

    with pytest.raises(Forbidden):
        lifecycle.confirm(OTHER_PROVIDER, booking.id)


def test_cancel_confirmed_releases_only_its_window(lifecycle, slots):
    window = slots.declare(PROVIDER.id, TOMORROW, time(10), time(11))
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    lifecycle.confirm(PROVIDER, booking.id)

    cancelled = lifecycle.cancel(CLIENT, booking.id)

    assert cancelled.status == BookingStatus.CANCELLED
    freed = slots.get_owned(window.id, PROVIDER.id)
    assert freed.status == WindowStatus.AVAILABLE
    assert freed.booking_id is None


def test_cancel_pending_and_proposed(lifecycle):
    pending = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    assert lifecycle.cancel(CLIENT, pending.id).status == BookingStatus.CANCELLED

    proposed = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 11))
    lifecycle.propose_alternative(PROVIDER, proposed.id, at(TOMORROW, 12))
    assert lifecycle.cancel(CLIENT, proposed.id).status == BookingStatus.CANCELLED


def test_complete_inside_window(lifecycle, clock):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    lifecycle.confirm(PROVIDER, booking.id)

    clock.set(at(TOMORROW, 9, 59))
    with pytest.raises(TooEarly):
        lifecycle.complete(PROVIDER, booking.id)

    clock.set(at(TOMORROW, 11))
    completed = lifecycle.complete(PROVIDER, booking.id, notes="great", rating=5)

    assert completed.status == BookingStatus.COMPLETED
    assert completed.completed_at == at(TOMORROW, 11)
    assert completed.completed_by == "provider"
    assert completed.rating == 5

    with pytest.raises(InvalidTransition):
        lifecycle.complete(PROVIDER, booking.id)


def test_complete_after_window_closes(lifecycle, clock):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    lifecycle.confirm(PROVIDER, booking.id)

    clock.set(at(TOMORROW, 10) + timedelta(hours=24, minutes=1))
    with pytest.raises(CompletionWindowExpired):
        lifecycle.complete(PROVIDER, booking.id)


def test_complete_at_window_edge(lifecycle, clock):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    lifecycle.confirm(PROVIDER, booking.id)

    clock.set(at(TOMORROW, 10) + timedelta(hours=24))
    assert lifecycle.complete(PROVIDER, booking.id).status == BookingStatus.COMPLETED


def test_complete_uses_accepted_alternative_time(lifecycle, clock):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    lifecycle.propose_alternative(PROVIDER, booking.id, at(TOMORROW, 15))
    lifecycle.accept_alternative(CLIENT, booking.id)

    clock.set(at(TOMORROW, 12))
    with pytest.raises(TooEarly):
        lifecycle.complete(PROVIDER, booking.id)


def test_expire_requires_system_actor(lifecycle):
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))

    with pytest.raises(Forbidden):
        lifecycle.expire(PROVIDER, booking.id)
    assert lifecycle.expire(SYSTEM_ACTOR, booking.id).status == BookingStatus.TIMEOUT
    with pytest.raises(InvalidTransition):
        lifecycle.expire(SYSTEM_ACTOR, booking.id)


def test_failed_booking_write_restores_window(lifecycle, slots, bookings, monkeypatch):
    window = slots.declare(PROVIDER.id, TOMORROW, time(10), time(11))
    booking = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))

    def broken_save(_booking):
        raise OSError("disk full")

    monkeypatch.setattr(bookings, "save", broken_save)
    with pytest.raises(OSError):
        lifecycle.confirm(PROVIDER, booking.id)

    restored = slots.get_owned(window.id, PROVIDER.id)
    assert restored.status == WindowStatus.AVAILABLE
    assert restored.booking_id is None


def test_list_for_actor_newest_first(lifecycle, clock):
    first = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 10))
    clock.advance(minutes=1)
    second = lifecycle.create(CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 11))
    lifecycle.create(OTHER_CLIENT, PROVIDER.id, "haircut", at(TOMORROW, 12))

    assert [b.id for b in lifecycle.list_for(CLIENT)] == [second.id, first.id]
    assert len(lifecycle.list_for(PROVIDER)) == 3
    assert lifecycle.list_for(PROVIDER, frozenset({BookingStatus.CONFIRMED})) == []
    with pytest.raises(Forbidden):
        lifecycle.list_for(SYSTEM_ACTOR)
