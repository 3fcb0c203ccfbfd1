"""
Field normalizers for the Hotelbeds flat-file format.

Raw values arrive as strings split on ":". Empty strings mean "no value".
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

_COMPACT_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_calendar_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYYMMDD or YYYY-MM-DD into a date. Anything else returns None."""
    if not value:
        return None
    value = value.strip()
    match = _COMPACT_DATE.match(value) or _ISO_DATE.match(value)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_iso_timestamp(day: date) -> str:
    """Midnight UTC of a calendar date as ISO-8601."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )


def parse_date(value: Optional[str]) -> Optional[str]:
    """Parse a feed date into an ISO-8601 timestamp at midnight UTC."""
    day = parse_calendar_date(value)
    return to_iso_timestamp(day) if day else None


def add_days(iso_timestamp: str, days: int) -> str:
    day = date.fromisoformat(iso_timestamp[:10])
    return to_iso_timestamp(day + timedelta(days=days))


def parse_bool(value: Optional[str]) -> bool:
    return value == "Y"


def parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def null_if_empty(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    return value
