"""
DateTime utilities for consistent timezone handling.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware UTC.

    Naive datetimes, as returned for ``timestamp`` columns, are assumed to
    already be in UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_utc(dt: datetime) -> str:
    """Render a datetime for email bodies, e.g. ``2024-05-08 12:00 UTC``."""
    return ensure_utc(dt).strftime("%Y-%m-%d %H:%M UTC")
