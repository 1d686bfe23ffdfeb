import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.errors import scheduling_error_handler, store_unavailable_handler
from app.api.v1.bookings import router as bookings_router
from app.api.v1.windows import router as windows_router
from app.application.exceptions import SchedulingError, StoreUnavailableError
from app.core.config import settings
from app.wiring.dependencies import get_notifier


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "provider_id", "window_id", "status", "event", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logging.getLogger(__name__).info(
    "Starting scheduling service",
    extra={"reason": f"env={settings.ENV} store={settings.STORE_PROVIDER} tz={settings.BUSINESS_TIMEZONE}"},
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # drain queued webhook deliveries before the process exits
    get_notifier().close()


app = FastAPI(title="Appointment Scheduling Service", version="1.0.0", lifespan=lifespan)

app.add_exception_handler(SchedulingError, scheduling_error_handler)
app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)

app.include_router(windows_router, prefix="/api/v1", tags=["schedule"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
