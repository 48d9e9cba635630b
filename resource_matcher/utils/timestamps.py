"""Time helpers shared by the engine, the API and the response cache."""

import time
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """ISO 8601 in UTC with a ``Z`` suffix, second precision.

    Example:
        >>> format_timestamp(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))
        '2026-03-01T12:00:00Z'
    """
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def elapsed_ms(start: float) -> int:
    """Milliseconds since ``start`` (a ``time.time()`` value)."""
    return int((time.time() - start) * 1000)
