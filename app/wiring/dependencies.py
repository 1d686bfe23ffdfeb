from functools import lru_cache
import logging
from datetime import timedelta
from pathlib import Path

from app.core.config import settings
from app.application.ports.availability_store import AvailabilityStorePort
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.clock import ClockPort
from app.application.ports.notifier import NotifierPort
from app.application.ports.service_catalog import ServiceCatalogPort
from app.application.use_cases.booking_lifecycle import BookingLifecycle
from app.application.use_cases.occupancy import OccupancyResolver
from app.application.use_cases.schedule_gateway import ScheduleGateway
from app.application.use_cases.slot_store import SlotStore
from app.infrastructure.catalog.service_catalog_store import ServiceCatalogStore
from app.infrastructure.clock.system_clock import SystemClock
from app.infrastructure.notifications.logging_notifier import LoggingNotifier
from app.infrastructure.notifications.webhook_notifier import WebhookNotifier
from app.infrastructure.store.json_store import JsonAvailabilityStore, JsonBookingStore
from app.infrastructure.store.memory_store import MemoryAvailabilityStore, MemoryBookingStore


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock(settings.BUSINESS_TIMEZONE)


@lru_cache
def get_availability_store() -> AvailabilityStorePort:
    if settings.STORE_PROVIDER.lower() == "json":
        return JsonAvailabilityStore(data_dir=str(Path(settings.DATA_DIR) / "windows"))
    return MemoryAvailabilityStore()


@lru_cache
def get_booking_store() -> BookingStorePort:
    if settings.STORE_PROVIDER.lower() == "json":
        return JsonBookingStore(data_dir=str(Path(settings.DATA_DIR) / "bookings"))
    return MemoryBookingStore()


@lru_cache
def get_service_catalog() -> ServiceCatalogPort:
    if settings.CATALOG_SEED_PATH:
        return ServiceCatalogStore.from_file(settings.CATALOG_SEED_PATH)
    return ServiceCatalogStore()


@lru_cache
def get_notifier() -> NotifierPort:
    logger = logging.getLogger(__name__)
    if not settings.NOTIFY_WEBHOOK_URL:
        logger.info("Using LoggingNotifier (NOTIFY_WEBHOOK_URL not set)")
        return LoggingNotifier()

    logger.info("Using WebhookNotifier", extra={"reason": settings.NOTIFY_WEBHOOK_URL})
    return WebhookNotifier(
        url=settings.NOTIFY_WEBHOOK_URL,
        secret=settings.NOTIFY_WEBHOOK_SECRET,
        timeout=settings.NOTIFY_TIMEOUT_SECONDS,
    )


def build_gateway(
    availability_store: AvailabilityStorePort,
    booking_store: BookingStorePort,
    catalog: ServiceCatalogPort,
    notifier: NotifierPort,
    clock: ClockPort,
    completion_window_hours: int = 24,
    response_timeout_minutes: int = 5,
) -> ScheduleGateway:
    slots = SlotStore(store=availability_store, clock=clock)
    occupancy = OccupancyResolver(slots=slots, bookings=booking_store, catalog=catalog)
    lifecycle = BookingLifecycle(
        bookings=booking_store,
        slots=slots,
        catalog=catalog,
        clock=clock,
        completion_window=timedelta(hours=completion_window_hours),
    )
    return ScheduleGateway(
        slots=slots,
        occupancy=occupancy,
        lifecycle=lifecycle,
        bookings=booking_store,
        notifier=notifier,
        clock=clock,
        response_timeout=timedelta(minutes=response_timeout_minutes),
    )


@lru_cache
def get_schedule_gateway() -> ScheduleGateway:
    return build_gateway(
        availability_store=get_availability_store(),
        booking_store=get_booking_store(),
        catalog=get_service_catalog(),
        notifier=get_notifier(),
        clock=get_clock(),
        completion_window_hours=settings.COMPLETION_WINDOW_HOURS,
        response_timeout_minutes=settings.PROVIDER_RESPONSE_TIMEOUT_MINUTES,
    )
