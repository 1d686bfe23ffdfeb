from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo


def localize(value: datetime, tz: tzinfo) -> datetime:
    """Naive datetimes are read as wall time in `tz`; aware ones are converted to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def minute_of(value: datetime) -> time:
    """Wall-clock time truncated to the minute."""
    return time(value.hour, value.minute)


def date_range(date_from: date, date_to: date) -> list[date]:
    days = (date_to - date_from).days
    return [date_from + timedelta(days=i) for i in range(days + 1)]


def to_minute(value: time) -> time:
    return time(value.hour, value.minute)
