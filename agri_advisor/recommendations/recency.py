"""
Newest-first ordering for timestamped records.

Every extractor pre-processes its input with ``most_recent()``.  Records
without a usable ``created_at`` sort as if created at the epoch, i.e. last.
Sorting always happens on a copy; the caller's sequence is never reordered.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Optional, Protocol, TypeVar

from agri_advisor.utils.time_utils import recency_key


class Timestamped(Protocol):
    @property
    def created_at(self) -> Optional[datetime]: ...


T = TypeVar("T", bound=Timestamped)


def sort_by_recency(records: Iterable[T]) -> list[T]:
    """Return a new list of ``records`` ordered by ``created_at`` descending.

    The sort is stable: records with identical timestamps keep their
    relative input order.

    Args:
        records: Any iterable of objects exposing ``created_at``.

    Returns:
        New list, newest first; untimestamped records last.
    """
    return sorted(records, key=lambda r: recency_key(r.created_at), reverse=True)


def most_recent(records: Iterable[T], limit: int) -> list[T]:
    """Return at most ``limit`` records, newest first."""
    return sort_by_recency(records)[:limit]
