"""
Demand-forecast extractor: trend, seasonality and accuracy rules.

Reads the three most recent ``demand_forecast`` analyses and emits up to
three items per analysis.

Growth rate
-----------
    growth_rate = (last_forecast - first_forecast) / first_forecast

    growth_rate >  0.10  -> "Growing Demand Trend"    (market, 0.75)
    growth_rate < -0.10  -> "Declining Demand Alert"  (market, 0.75)
    otherwise            -> nothing

Needs at least two forecast points and a non-zero first point.

Seasonality
-----------
A historical point is a *peak* when it exceeds 1.2 × the historical mean.
Two or more peaks -> "Seasonal Demand Pattern" (market, 0.70, source=pattern).

Accuracy (MAPE, percent)
------------------------
    mape < 10   -> "High Forecast Reliability"   (business, 0.80)
    mape > 20   -> "Forecast Uncertainty Alert"  (business, 0.70)
    10..20      -> nothing
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime

from agri_advisor.models.analysis import AnalysisResult, DemandForecastPayload
from agri_advisor.models.recommendation import RecommendationItem
from agri_advisor.recommendations.ids import analysis_item_id
from agri_advisor.recommendations.recency import most_recent
from agri_advisor.taxonomy.recommendation_taxonomy import (
    AnalysisType,
    RecommendationSource,
    RecommendationType,
)

logger = logging.getLogger(__name__)

GROWTH_THRESHOLD = 0.10
PEAK_FACTOR = 1.2
MIN_PEAKS = 2
HIGH_ACCURACY_MAPE = 10.0
LOW_ACCURACY_MAPE = 20.0

_DEFAULT_PRODUCT_NAME = "product"


def compute_growth_rate(forecasted: Sequence[float]) -> float | None:
    """Relative change from the first to the last forecast point.

    Returns:
        The growth rate, or ``None`` with fewer than two points or a zero
        first point, or when the rate is not finite.
    """
    if len(forecasted) < 2 or forecasted[0] == 0:
        return None
    rate = (forecasted[-1] - forecasted[0]) / forecasted[0]
    return rate if math.isfinite(rate) else None


def count_peaks(values: Sequence[float]) -> tuple[int, float] | None:
    """Count values above ``PEAK_FACTOR`` × mean.

    Returns:
        ``(peaks, mean)``, or ``None`` for an empty series.
    """
    if not values:
        return None
    mean = sum(values) / len(values)
    peaks = sum(1 for v in values if v > mean * PEAK_FACTOR)
    return peaks, mean


def extract_forecast_recommendations(
    results:    Sequence[AnalysisResult],
    created_at: datetime,
    limit:      int = 3,
) -> list[RecommendationItem]:
    """Apply the trend/seasonality/accuracy rules to recent demand forecasts.

    Args:
        results:    Analyses of any type; only ``demand_forecast`` is read.
        created_at: Run timestamp stamped on every emitted item.
        limit:      Max analyses considered (most recent first).

    Returns:
        Items in analysis order (newest first), rules in the order above.
    """
    forecasts = [r for r in results if r.type == AnalysisType.DEMAND_FORECAST]
    items: list[RecommendationItem] = []

    for result in most_recent(forecasts, limit):
        payload = result.payload()
        if not isinstance(payload, DemandForecastPayload):
            continue
        items.extend(_rules_for(result.id, payload, created_at))

    logger.debug(
        "Forecast extractor: %d item(s) from %d forecast analysis(es).",
        len(items), min(len(forecasts), limit),
    )
    return items


def _rules_for(
    analysis_id: str,
    p:           DemandForecastPayload,
    created_at:  datetime,
) -> list[RecommendationItem]:
    product = p.product_name or _DEFAULT_PRODUCT_NAME
    items: list[RecommendationItem] = []

    # ── Trend ─────────────────────────────────────────────────────────────────
    if p.forecasted is not None:
        growth_rate = compute_growth_rate(p.forecasted)
        if growth_rate is None or not math.isfinite(growth_rate * 100):
            logger.debug("analysis=%s: growth rate unavailable; trend rule skipped.", analysis_id)
        elif growth_rate > GROWTH_THRESHOLD:
            items.append(
                RecommendationItem(
                    id=analysis_item_id("forecast-growth", analysis_id),
                    type=RecommendationType.MARKET,
                    title="Growing Demand Trend",
                    description=(
                        f"Demand for {product} is projected to grow by "
                        f"{growth_rate * 100:.1f}% over the forecast period. "
                        "Consider increasing production capacity."
                    ),
                    confidence=0.75,
                    data={
                        "product_name":   p.product_name,
                        "growth_rate":    growth_rate,
                        "first_forecast": p.forecasted[0],
                        "last_forecast":  p.forecasted[-1],
                    },
                    source=RecommendationSource.ANALYSIS,
                    created_at=created_at,
                )
            )
        elif growth_rate < -GROWTH_THRESHOLD:
            decline_rate = abs(growth_rate)
            items.append(
                RecommendationItem(
                    id=analysis_item_id("forecast-decline", analysis_id),
                    type=RecommendationType.MARKET,
                    title="Declining Demand Alert",
                    description=(
                        f"Demand for {product} is projected to decline by "
                        f"{decline_rate * 100:.1f}% over the forecast period. "
                        "Consider diversifying your product mix."
                    ),
                    confidence=0.75,
                    data={
                        "product_name":   p.product_name,
                        "decline_rate":   decline_rate,
                        "first_forecast": p.forecasted[0],
                        "last_forecast":  p.forecasted[-1],
                    },
                    source=RecommendationSource.ANALYSIS,
                    created_at=created_at,
                )
            )

    # ── Seasonality ───────────────────────────────────────────────────────────
    if p.historical is not None:
        peak_stats = count_peaks(p.historical)
        if peak_stats is not None and peak_stats[0] >= MIN_PEAKS:
            peaks, mean = peak_stats
            items.append(
                RecommendationItem(
                    id=analysis_item_id("forecast-seasonal", analysis_id),
                    type=RecommendationType.MARKET,
                    title="Seasonal Demand Pattern",
                    description=(
                        f"{product[:1].upper()}{product[1:]} shows seasonal demand "
                        f"patterns with {peaks} peak periods. Plan inventory and "
                        "production to align with these patterns."
                    ),
                    confidence=0.70,
                    data={
                        "product_name":   p.product_name,
                        "peak_periods":   peaks,
                        "average_demand": mean,
                    },
                    source=RecommendationSource.PATTERN,
                    created_at=created_at,
                )
            )

    # ── Accuracy ──────────────────────────────────────────────────────────────
    if p.mape is not None:
        if p.mape < HIGH_ACCURACY_MAPE:
            items.append(
                RecommendationItem(
                    id=analysis_item_id("forecast-accuracy", analysis_id),
                    type=RecommendationType.BUSINESS,
                    title="High Forecast Reliability",
                    description=(
                        f"Your {product} forecast has a high accuracy "
                        f"(MAPE: {p.mape:.1f}%). Use this forecast with confidence "
                        "for planning."
                    ),
                    confidence=0.80,
                    data={"product_name": p.product_name, "mape": p.mape},
                    source=RecommendationSource.ANALYSIS,
                    created_at=created_at,
                )
            )
        elif p.mape > LOW_ACCURACY_MAPE:
            items.append(
                RecommendationItem(
                    id=analysis_item_id("forecast-inaccuracy", analysis_id),
                    type=RecommendationType.BUSINESS,
                    title="Forecast Uncertainty Alert",
                    description=(
                        f"Your {product} forecast has a higher error rate "
                        f"(MAPE: {p.mape:.1f}%). Consider using more historical "
                        "data or adjusting your forecast method."
                    ),
                    confidence=0.70,
                    data={"product_name": p.product_name, "mape": p.mape},
                    source=RecommendationSource.ANALYSIS,
                    created_at=created_at,
                )
            )

    return items
