"""
Recommendation input and output models.

``RecommendationInput`` is the single argument of the engine: a snapshot of
one user's analyses and chat history plus an optional season tag.

``RecommendationItem`` is one advisory message; ``RecommendationSet`` is the
ranked bundle returned for one run.  Both are frozen — items are created
fresh on every run and never mutated afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from agri_advisor.config import MAX_SET_SIZE
from agri_advisor.models.analysis import AnalysisResult
from agri_advisor.models.chat import ChatMessage
from agri_advisor.taxonomy.recommendation_taxonomy import (
    RecommendationSource,
    RecommendationType,
    Season,
)

logger = logging.getLogger(__name__)


class RecommendationItem(BaseModel):
    """One short advisory message.

    Attributes:
        id: Deterministic identifier, unique within a set.
        type: Business area the advice concerns.
        title: Short headline, e.g. ``"Growing Demand Trend"``.
        description: One or two sentences of advice.
        confidence: Fixed per-rule score in ``[0, 1]``.
        data: Supporting figures the rule looked at.
        source: Which signal produced the item.
        created_at: UTC time of the run that produced the item.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: RecommendationType
    title: str
    description: str
    confidence: float
    data: dict[str, Any] = {}
    source: RecommendationSource
    created_at: datetime

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("title", "description")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty.")
        return v.strip()


class RecommendationSet(BaseModel):
    """The ranked bundle of items plus summary returned for one user.

    Attributes:
        id: Set identifier.
        user_id: Owner of the set.
        recommendations: At most ten items, best first, with unique ids.
        summary: Natural-language summary of the leading items.
        created_at: UTC time of the run.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    recommendations: list[RecommendationItem] = []
    summary: str
    created_at: datetime

    @field_validator("recommendations")
    @classmethod
    def validate_recommendations(
        cls, v: list[RecommendationItem]
    ) -> list[RecommendationItem]:
        if len(v) > MAX_SET_SIZE:
            raise ValueError(
                f"A recommendation set holds at most {MAX_SET_SIZE} items, got {len(v)}."
            )
        ids = [item.id for item in v]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Recommendation ids must be unique within a set: {ids}")
        return v


class RecommendationInput(BaseModel):
    """Snapshot of everything the engine reads for one user.

    Attributes:
        user_id: The user the set is generated for.
        analysis_results: All stored analyses of the user (any order).
        chat_history: All chat messages of the user (any order, any role).
        current_season: Optional season tag; unknown strings are treated as absent.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    analysis_results: list[AnalysisResult] = []
    chat_history: list[ChatMessage] = []
    current_season: Optional[Season] = None

    @field_validator("current_season", mode="before")
    @classmethod
    def normalize_season(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip().lower()
        if not text:
            return None
        if text not in {s.value for s in Season}:
            logger.warning("Ignoring unknown season tag %r.", v)
            return None
        return text
