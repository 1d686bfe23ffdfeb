from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any

from app.application.exceptions import StoreUnavailableError
from app.application.ports.availability_store import AvailabilityStorePort
from app.application.ports.booking_store import BookingStorePort
from app.application.utils.locks import KeyedLocks
from app.domain.entities.availability_window import AvailabilityWindow, WindowStatus
from app.domain.entities.booking import Booking, BookingStatus


class _JsonFiles:
    """Atomic JSON file IO confined to one directory tree, one lock per key."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._root = self._data_dir.resolve()
        self.locks = KeyedLocks()

    def path(self, key: str, folder: str | None = None) -> Path:
        file_path = self.folder_path(folder) / f"{_checked(key)}.json"
        if self._root not in file_path.resolve().parents:
            raise ValueError(f"Store key escapes the data directory: {key!r}")
        return file_path

    def folder_path(self, folder: str | None = None) -> Path:
        return self._data_dir / _checked(folder) if folder is not None else self._data_dir

    def folders(self) -> list[str]:
        return sorted(p.name for p in self._data_dir.iterdir() if p.is_dir())

    def keys(self, folder: str | None = None) -> list[str]:
        return sorted(p.stem for p in self.folder_path(folder).glob("*.json"))

    def load(self, key: str, folder: str | None = None) -> dict[str, Any] | None:
        file_path = self.path(key, folder)
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StoreUnavailableError(f"Cannot read {file_path.name}: {e}") from e

    def save(self, key: str, data: dict[str, Any], folder: str | None = None) -> None:
        file_path = self.path(key, folder)
        temp_path = file_path.with_suffix(".json.tmp")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            # Atomic rename
            temp_path.replace(file_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StoreUnavailableError(f"Cannot write {file_path.name}: {e}") from e


def _checked(name: str) -> str:
    """File and folder names come from ids; anything that could leave its directory is refused."""
    if not name or name in (".", "..") or any(sep in name for sep in ("/", "\\", "\x00")):
        raise ValueError(f"Invalid store key: {name!r}")
    return name


class JsonAvailabilityStore(AvailabilityStorePort):
    """One file per provider holding all of that provider's windows."""

    def __init__(self, data_dir: str = "./data/windows") -> None:
        self._files = _JsonFiles(Path(data_dir))

    def add(self, window: AvailabilityWindow) -> None:
        with self._files.locks.hold(window.provider_id):
            windows = self._load_provider(window.provider_id)
            windows[window.id] = window
            self._save_provider(window.provider_id, windows)

    def get(self, window_id: str) -> AvailabilityWindow | None:
        for provider_id in self._files.keys():
            window = self._load_provider(provider_id).get(window_id)
            if window is not None:
                return window
        return None

    def save(self, window: AvailabilityWindow) -> None:
        with self._files.locks.hold(window.provider_id):
            windows = self._load_provider(window.provider_id)
            if window.id not in windows:
                raise KeyError(window.id)
            windows[window.id] = window
            self._save_provider(window.provider_id, windows)

    def delete(self, window_id: str) -> None:
        window = self.get(window_id)
        if window is None:
            return
        with self._files.locks.hold(window.provider_id):
            windows = self._load_provider(window.provider_id)
            windows.pop(window_id, None)
            self._save_provider(window.provider_id, windows)

    def list_for_provider(
        self,
        provider_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[AvailabilityWindow]:
        with self._files.locks.hold(provider_id):
            windows = list(self._load_provider(provider_id).values())
        if date_from is not None:
            windows = [w for w in windows if w.work_date >= date_from]
        if date_to is not None:
            windows = [w for w in windows if w.work_date <= date_to]
        return sorted(windows, key=lambda w: (w.work_date, w.start, w.end))

    def find_starting_at(self, provider_id: str, work_date: date, start: time) -> list[AvailabilityWindow]:
        return [w for w in self.list_for_provider(provider_id, work_date, work_date) if w.start == start]

    def _load_provider(self, provider_id: str) -> dict[str, AvailabilityWindow]:
        data = self._files.load(provider_id)
        if data is None:
            return {}
        return {raw["id"]: _deserialize_window(raw) for raw in data.get("windows", [])}

    def _save_provider(self, provider_id: str, windows: dict[str, AvailabilityWindow]) -> None:
        self._files.save(
            provider_id,
            {
                "provider_id": provider_id,
                "windows": [_serialize_window(w) for w in windows.values()],
                "version": 1,
            },
        )


class JsonBookingStore(BookingStorePort):
    """
    One file per booking, grouped in one folder per provider. Bookings are never deleted.

    Writes serialize per provider. Reads take no lock: every write is an atomic
    replace, so a reader sees either the previous or the new file.
    """

    def __init__(self, data_dir: str = "./data/bookings") -> None:
        self._files = _JsonFiles(Path(data_dir))

    def add(self, booking: Booking) -> None:
        with self._files.locks.hold(booking.provider_id):
            self._files.save(booking.id, _serialize_booking(booking), folder=booking.provider_id)

    def get(self, booking_id: str) -> Booking | None:
        for provider_id in self._files.folders():
            data = self._files.load(booking_id, folder=provider_id)
            if data is not None:
                return _deserialize_booking(data)
        return None

    def save(self, booking: Booking) -> None:
        with self._files.locks.hold(booking.provider_id):
            if not self._files.path(booking.id, folder=booking.provider_id).exists():
                raise KeyError(booking.id)
            self._files.save(booking.id, _serialize_booking(booking), folder=booking.provider_id)

    def list_for_provider(
        self,
        provider_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        if not self._files.folder_path(provider_id).is_dir():
            return []
        return _with_status(self._load_folder(provider_id), statuses)

    def list_for_client(
        self,
        client_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        return [b for b in self._all(statuses) if b.client_id == client_id]

    def list_by_status(self, status: BookingStatus) -> list[Booking]:
        return self._all(frozenset({status}))

    def _all(self, statuses: frozenset[BookingStatus] | None) -> list[Booking]:
        bookings: list[Booking] = []
        for provider_id in self._files.folders():
            bookings.extend(_with_status(self._load_folder(provider_id), statuses))
        return bookings

    def _load_folder(self, provider_id: str) -> list[Booking]:
        bookings = []
        for key in self._files.keys(provider_id):
            data = self._files.load(key, folder=provider_id)
            if data is not None:
                bookings.append(_deserialize_booking(data))
        return bookings


def _with_status(bookings: list[Booking], statuses: frozenset[BookingStatus] | None) -> list[Booking]:
    if statuses is None:
        return bookings
    return [b for b in bookings if b.status in statuses]


def _serialize_window(window: AvailabilityWindow) -> dict[str, Any]:
    return {
        "id": window.id,
        "provider_id": window.provider_id,
        "work_date": window.work_date.isoformat(),
        "start": window.start.strftime("%H:%M"),
        "end": window.end.strftime("%H:%M"),
        "status": window.status.value,
        "note": window.note,
        "booking_id": window.booking_id,
    }


def _deserialize_window(data: dict[str, Any]) -> AvailabilityWindow:
    return AvailabilityWindow(
        id=data["id"],
        provider_id=data["provider_id"],
        work_date=date.fromisoformat(data["work_date"]),
        start=time.fromisoformat(data["start"]),
        end=time.fromisoformat(data["end"]),
        status=WindowStatus(data.get("status", WindowStatus.AVAILABLE.value)),
        note=data.get("note"),
        booking_id=data.get("booking_id"),
    )


_BOOKING_DATETIMES = (
    "requested_at",
    "proposed_at",
    "confirmed_at",
    "provider_responded_at",
    "completed_at",
    "created_at",
    "updated_at",
)


def _serialize_booking(booking: Booking) -> dict[str, Any]:
    result: dict[str, Any] = {
        "id": booking.id,
        "client_id": booking.client_id,
        "provider_id": booking.provider_id,
        "offering_id": booking.offering_id,
        "price": str(booking.price),
        "status": booking.status.value,
        "design_ref": booking.design_ref,
        "description": booking.description,
        "client_notes": booking.client_notes,
        "provider_notes": booking.provider_notes,
        "completed_by": booking.completed_by,
        "rating": booking.rating,
    }
    for field_name in _BOOKING_DATETIMES:
        value: datetime | None = getattr(booking, field_name)
        result[field_name] = value.isoformat() if value else None
    return result


def _deserialize_booking(data: dict[str, Any]) -> Booking:
    stamps = {
        field_name: datetime.fromisoformat(data[field_name]) if data.get(field_name) else None
        for field_name in _BOOKING_DATETIMES
    }
    return Booking(
        id=data["id"],
        client_id=data["client_id"],
        provider_id=data["provider_id"],
        offering_id=data["offering_id"],
        price=Decimal(data["price"]),
        status=BookingStatus(data["status"]),
        design_ref=data.get("design_ref"),
        description=data.get("description"),
        client_notes=data.get("client_notes"),
        provider_notes=data.get("provider_notes"),
        completed_by=data.get("completed_by"),
        rating=data.get("rating"),
        **stamps,
    )
