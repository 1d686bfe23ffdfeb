from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from app.domain.entities.actor import Actor, ActorRole
from app.domain.entities.service_offering import ServiceOffering
from app.infrastructure.catalog.service_catalog_store import ServiceCatalogStore
from app.infrastructure.clock.fixed_clock import FixedClock
from app.infrastructure.notifications.logging_notifier import LoggingNotifier
from app.infrastructure.store.memory_store import MemoryAvailabilityStore, MemoryBookingStore
from app.wiring.dependencies import build_gateway

TZ = ZoneInfo("UTC")
TODAY = date(2024, 6, 10)
TOMORROW = date(2024, 6, 11)

PROVIDER = Actor(id="provider-1", role=ActorRole.provider)
OTHER_PROVIDER = Actor(id="provider-2", role=ActorRole.provider)
CLIENT = Actor(id="client-1", role=ActorRole.client)
OTHER_CLIENT = Actor(id="client-2", role=ActorRole.client)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=TZ)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at(TODAY, 8))


@pytest.fixture
def catalog() -> ServiceCatalogStore:
    store = ServiceCatalogStore()
    store.add_offering(ServiceOffering("haircut", PROVIDER.id, "Haircut", 60, Decimal("50")))
    store.add_offering(ServiceOffering("coloring", PROVIDER.id, "Coloring", 90, Decimal("120")))
    store.add_offering(ServiceOffering("trim", PROVIDER.id, "Beard trim", 30, Decimal("20")))
    store.add_offering(ServiceOffering("retired", PROVIDER.id, "Perm", 60, Decimal("80"), is_active=False))
    store.add_offering(ServiceOffering("elsewhere", OTHER_PROVIDER.id, "Massage", 60, Decimal("70")))
    store.add_design_surcharge("haircut", "fade", Decimal("15"))
    return store


@pytest.fixture
def windows() -> MemoryAvailabilityStore:
    return MemoryAvailabilityStore()


@pytest.fixture
def bookings() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def gateway(windows, bookings, catalog, notifier, clock):
    return build_gateway(
        availability_store=windows,
        booking_store=bookings,
        catalog=catalog,
        notifier=notifier,
        clock=clock,
    )
