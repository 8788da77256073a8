"""
Recommendation taxonomy for the agricultural advisory engine.

Four dimensions describe the engine's inputs and outputs:
  - ``AnalysisType``         — which stored computation produced an analysis.
  - ``RecommendationType``   — the *what*: which part of the farm business
                               an advisory item is about.
  - ``RecommendationSource`` — the *why*: which signal produced the item.
  - ``InsightCategory``      — topic buckets for chat-derived insights.

``Season`` and ``ChatRole`` round out the closed vocabularies used at the
input boundary.

Usage example::

    from agri_advisor.taxonomy.recommendation_taxonomy import RecommendationType

    rec_type = RecommendationType.MARKET

This module has NO imports from any other ``agri_advisor`` package.
"""

from enum import StrEnum


class AnalysisType(StrEnum):
    """Kind of stored analysis the extractors know how to read.

    Stored analyses may carry other type strings (the ``analysis_results.type``
    column is open); those are kept but never produce recommendations.
    """

    BUSINESS_FEASIBILITY = "business_feasibility"
    """Profitability, ROI, cost structure and break-even study of a venture."""

    DEMAND_FORECAST = "demand_forecast"
    """Projected demand series for a product plus its historical chart."""

    OPTIMIZATION = "optimization"
    """Linear-programming style resource allocation run."""


class RecommendationType(StrEnum):
    """Which area of the business an advisory item addresses."""

    CROP = "crop"
    BUSINESS = "business"
    RESOURCE = "resource"
    MARKET = "market"


class RecommendationSource(StrEnum):
    """Provenance of an advisory item."""

    ANALYSIS = "analysis"
    """Threshold rule applied to a stored analysis result."""

    CHAT = "chat"
    """Keyword match in a recent assistant chat message."""

    PATTERN = "pattern"
    """Pattern detected in a historical series (e.g. seasonal peaks)."""

    SEASONAL = "seasonal"
    """Static advice for the current season."""


class Season(StrEnum):
    """Northern-hemisphere season tag supplied by the caller."""

    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"


class ChatRole(StrEnum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class InsightCategory(StrEnum):
    """Topic bucket for sentences lifted from assistant chat messages.

    Declaration order is the order in which chat items are emitted.
    """

    GROWTH = "growth"
    PROFIT = "profit"
    COST = "cost"
    RISK = "risk"
    MARKET = "market"
    SEASONAL = "seasonal"
    RESOURCE = "resource"
