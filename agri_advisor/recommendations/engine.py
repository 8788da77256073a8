"""
Recommendation engine: runs every extractor and aggregates a RecommendationSet.

Usage flow
----------
1. Window the analyses: newest ``analysis_window`` (10) of all types.
2. Run the extractors and concatenate their items in this order:
       business -> forecast -> optimization -> chat -> seasonal
3. rank_recommendations(items)
   -> one stable sort, newest calendar day first, then confidence desc
4. Drop repeated ids (first occurrence wins) and keep ``max_recommendations``.
5. build_summary(...)
   -> opening clause + leading titles + season sentence
6. Return the RecommendationSet.

Ranking key
-----------
    (calendar_day(created_at), confidence, created_at)   descending

Confidence only reorders items from the same UTC calendar day; an item from
a later day always precedes one from an earlier day, whatever the confidences.
Items that tie on the whole key keep their concatenation order.

The engine performs no I/O.  Its only side inputs are the clock and the set
id factory, both injectable.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Optional

from agri_advisor.config import RecommendationConfig
from agri_advisor.models.analysis import AnalysisResult
from agri_advisor.models.recommendation import (
    RecommendationInput,
    RecommendationItem,
    RecommendationSet,
)
from agri_advisor.recommendations.business import extract_business_recommendations
from agri_advisor.recommendations.chat import extract_chat_insights
from agri_advisor.recommendations.forecast import extract_forecast_recommendations
from agri_advisor.recommendations.ids import new_set_id
from agri_advisor.recommendations.optimization import extract_optimization_recommendations
from agri_advisor.recommendations.recency import most_recent
from agri_advisor.recommendations.seasonal import seasonal_recommendations
from agri_advisor.taxonomy.recommendation_taxonomy import (
    AnalysisType,
    RecommendationType,
    Season,
)
from agri_advisor.utils.time_utils import calendar_day, ensure_utc, utcnow

logger = logging.getLogger(__name__)

# Product-neutral wording; the summary never names a host application.
FALLBACK_SUMMARY = (
    "Insufficient data for personalized recommendations. Continue running "
    "analyses on your agricultural business for tailored insights."
)

# Opening-clause phrase per analysis type, in clause order.
_ANALYSIS_PHRASES: tuple[tuple[AnalysisType, str], ...] = (
    (AnalysisType.BUSINESS_FEASIBILITY, "business feasibility analysis"),
    (AnalysisType.DEMAND_FORECAST,      "demand forecasting"),
    (AnalysisType.OPTIMIZATION,         "optimization analysis"),
)

# Item types whose leading title is quoted in the summary, in quote order.
_SUMMARY_TYPES: tuple[RecommendationType, ...] = (
    RecommendationType.BUSINESS,
    RecommendationType.MARKET,
    RecommendationType.RESOURCE,
    RecommendationType.CROP,
)


def rank_key(item: RecommendationItem) -> tuple:
    """Composite sort key; sort descending on it."""
    created = ensure_utc(item.created_at)
    return (calendar_day(created), item.confidence, created)


def rank_recommendations(items: Sequence[RecommendationItem]) -> list[RecommendationItem]:
    """Return a new list ordered best-first by ``rank_key``.

    The sort is stable, so items tying on the full key stay in input order.
    """
    return sorted(items, key=rank_key, reverse=True)


def _dedupe(items: Sequence[RecommendationItem]) -> list[RecommendationItem]:
    seen: set[str] = set()
    unique: list[RecommendationItem] = []
    for item in items:
        if item.id in seen:
            logger.warning("Dropping duplicate recommendation id %r.", item.id)
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def build_summary(
    top:              Sequence[RecommendationItem],
    analysis_results: Sequence[AnalysisResult],
    season:           Optional[Season],
) -> str:
    """Compose the natural-language summary of a set.

    Args:
        top:              The leading items of the final set (normally 5).
        analysis_results: The caller's complete, un-windowed analyses; only
                          used to decide which analysis kinds to mention.
        season:           Season tag of the run, if any.

    Returns:
        Summary text, or ``FALLBACK_SUMMARY`` when ``top`` is empty.
    """
    if not top:
        return FALLBACK_SUMMARY

    present = {r.type for r in analysis_results}
    phrases = [phrase for kind, phrase in _ANALYSIS_PHRASES if kind in present]
    if phrases:
        summary = "Based on your " + "".join(f"{p}, " for p in phrases) + "we recommend: "
    else:
        summary = "Based on your historical data, we recommend: "

    for rec_type in _SUMMARY_TYPES:
        leader = next((item for item in top if item.type == rec_type), None)
        if leader is not None:
            summary += f"{leader.title}. "

    if season is not None:
        summary += f"Consider adjusting your strategy for the {season.value} season."

    # Title sentences carry a trailing separator; a summary never ends in one.
    return summary.rstrip()


def generate_recommendations(
    inp:            RecommendationInput,
    config:         Optional[RecommendationConfig] = None,
    *,
    clock:          Callable[[], datetime] = utcnow,
    set_id_factory: Optional[Callable[[], str]] = None,
) -> RecommendationSet:
    """Run all extractors over one user's snapshot and build the ranked set.

    Never raises for data problems: malformed analyses and messages simply
    contribute nothing.

    Args:
        inp:            User snapshot (analyses, chat history, optional season).
        config:         Caps; defaults to ``RecommendationConfig()``.
        clock:          Returns the run timestamp; read exactly once.
        set_id_factory: Returns the set id; defaults to ``new_set_id``.

    Returns:
        ``RecommendationSet`` with at most ``config.max_recommendations`` items.
    """
    cfg = config or RecommendationConfig()
    make_set_id = set_id_factory or new_set_id
    now = ensure_utc(clock())

    window = most_recent(inp.analysis_results, cfg.analysis_window)

    business = extract_business_recommendations(window, now, cfg.per_type_limit)
    forecast = extract_forecast_recommendations(window, now, cfg.per_type_limit)
    optimization = extract_optimization_recommendations(window, now, cfg.per_type_limit)
    chat = extract_chat_insights(inp.chat_history, now, cfg.chat_message_limit)
    seasonal = seasonal_recommendations(inp.current_season, now)

    ranked = _dedupe(
        rank_recommendations(business + forecast + optimization + chat + seasonal)
    )
    final = ranked[: cfg.max_recommendations]

    summary = build_summary(
        final[: cfg.summary_top_n], inp.analysis_results, inp.current_season,
    )

    logger.info(
        "Recommendations for user=%s: business=%d forecast=%d optimization=%d "
        "chat=%d seasonal=%d -> %d kept (window=%d analyses).",
        inp.user_id, len(business), len(forecast), len(optimization),
        len(chat), len(seasonal), len(final), len(window),
    )

    return RecommendationSet(
        id=make_set_id(),
        user_id=inp.user_id,
        recommendations=final,
        summary=summary,
        created_at=now,
    )
