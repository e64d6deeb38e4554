"""Datetime utilities for server timestamps and timeline display.

The laboratory API emits ISO 8601 timestamps that sometimes omit the
UTC offset. Everything here treats naive values as UTC.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime object is timezone-aware and in UTC.

    If the datetime is naive (no tzinfo), it's assumed to be UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: A datetime object (naive or aware)

    Returns:
        Timezone-aware datetime in UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_server_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an API timestamp into an aware UTC datetime.

    Args:
        value: ISO 8601 string (``Z`` suffix accepted), datetime or None

    Returns:
        Aware UTC datetime, or None when the value is empty or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def format_local_datetime(dt: datetime, tz_name: str = "UTC") -> str:
    """Format a timestamp as ``dd/mm/YYYY, HH:MM`` in the given timezone.

    Args:
        dt: Timestamp (naive values are taken as UTC)
        tz_name: IANA timezone name used for display

    Returns:
        Display string such as ``05/03/2025, 14:07``
    """
    tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
    local = ensure_utc(dt).astimezone(tz)
    return local.strftime("%d/%m/%Y, %H:%M")


__all__ = [
    "ensure_utc",
    "format_local_datetime",
    "parse_server_timestamp",
]
