"""Time helpers for UTC storage and ISO-8601 wire formatting."""

from __future__ import annotations

import re
from datetime import datetime, timezone

_DATE_ONLY = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Restore UTC tzinfo on timestamps read back from SQLite."""
    if value is None:
        return None
    return to_utc(value)


def isoformat(value: datetime) -> str:
    """Render a timestamp as an ISO-8601 UTC string with millisecond precision."""
    return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def looks_date_only(value: str) -> bool:
    """Return True when the value is a bare ``YYYY-MM-DD`` date."""
    return _DATE_ONLY.fullmatch(value) is not None
