"""
Identifiers for recommendation items and sets.

Item ids are derived from the data that produced the item, never from the
wall clock, so re-running the engine on the same snapshot yields the same ids:

    analysis rules : "{prefix}-{analysis_id}"      e.g. "biz-profit-7f3c…"
    chat insights  : "chat-{category}-{digest}"    digest of contributing message ids
    seasonal       : "seasonal-crop-{season}" / "seasonal-activity-{season}"

Set ids are the one place a fresh value is wanted; ``new_set_id()`` is the
default factory and callers (tests, replays) can inject their own.
"""

from __future__ import annotations

import hashlib
from uuid import uuid4

_DIGEST_LEN = 12


def analysis_item_id(prefix: str, analysis_id: str) -> str:
    """Id for an item produced by a rule applied to one analysis."""
    return f"{prefix}-{analysis_id}"


def content_id(prefix: str, *parts: str) -> str:
    """Id for an item derived from several source records.

    The digest is order-sensitive, so callers pass parts in a stable order.
    """
    digest = hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:_DIGEST_LEN]}"


def new_set_id() -> str:
    """Fresh identifier for a recommendation set."""
    return f"rec-set-{uuid4()}"
