"""
Diary Backend — Record Keys & Timestamps
=========================================

What:  Helpers shared by the record and summary services for the RecordKey
       format and the timestamp format stored in records.

Record Key Format:
    diary:<YYYY-MM-DD>:<uuid4>
    The date is the UTC creation date, so lexicographic key order is
    chronological order, and the summary can filter by date without
    reading record bodies.
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

RECORD_PREFIX = "diary:"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_timestamp(moment: datetime) -> str:
    """UTC ISO 8601 with millisecond precision and a Z suffix, e.g. 2026-10-19T08:15:30.123Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_record_key(moment: datetime) -> str:
    """Fresh RecordKey for a record created at `moment`."""
    day = moment.astimezone(timezone.utc).date().isoformat()
    return f"{RECORD_PREFIX}{day}:{uuid.uuid4()}"


def is_record_key(key: Any) -> bool:
    return isinstance(key, str) and key.startswith(RECORD_PREFIX)


def extract_date_from_key(key: str) -> str:
    """Date segment of a key ("" when the key has no second segment)."""
    parts = key.split(":")
    return parts[1] if len(parts) >= 2 else ""


def cutoff_date(days: int, today: date) -> str:
    """
    Oldest ISO date inside a window of `days` calendar dates ending `today`.

    days=1 → today; days=7 → today minus 6 days. A window reaching back
    past the first representable date starts at date.min (every record).
    """
    span = days - 1
    if span > (today - date.min).days:
        return date.min.isoformat()
    return (today - timedelta(days=span)).isoformat()


def is_within_window(key: str, cutoff: str) -> bool:
    """ISO dates compare correctly as strings, so no parsing is needed."""
    day = extract_date_from_key(key)
    return bool(day) and day >= cutoff
