"""
Time and date utilities for recency ordering.

Key concepts:
  - All timestamps are compared as timezone-aware UTC datetimes.  Naive
    datetimes coming from the database or JSON files are assumed to be UTC.
  - Records without a usable timestamp sort as if created at ``EPOCH``.
  - ``calendar_day()`` is the grouping key used when ranking recommendations.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Leniently parse a timestamp into an aware UTC datetime.

    Accepts ``datetime`` objects, ISO-8601 strings (a trailing ``Z`` is
    understood) and POSIX epoch numbers in seconds.

    Args:
        value: Raw timestamp value from a model field, DB row or JSON file.

    Returns:
        Aware UTC ``datetime``, or ``None`` when the value is missing or
        cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def recency_key(value: Optional[datetime]) -> datetime:
    """Sort key for "newest first" ordering; missing timestamps map to ``EPOCH``."""
    return ensure_utc(value) if value is not None else EPOCH


def calendar_day(value: datetime) -> date:
    """UTC calendar day of ``value``."""
    return ensure_utc(value).date()


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)
