# backend/skillswap/core/timezone_utils.py
"""
Time helpers.

All instants inside the engine are timezone-aware UTC datetimes. The
per-session ``timezone`` is display metadata only and never shifts the
stored instant.
"""

from datetime import datetime, timezone

import pytz


def utc_now() -> datetime:
    """Return the current timezone-aware UTC instant."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are interpreted as UTC; aware values are converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_valid_timezone(name: str) -> bool:
    """Check whether ``name`` is a known IANA timezone."""
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def to_user_timezone(value: datetime, tz_name: str) -> datetime:
    """Render a UTC instant in the given IANA timezone."""
    return ensure_utc(value).astimezone(pytz.timezone(tz_name))
