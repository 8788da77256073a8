"""
Business-feasibility extractor: threshold rules over feasibility studies.

Reads the three most recent ``business_feasibility`` analyses and emits up to
four items per analysis:

    Rule                     Condition                               Conf.  Type
    ----------------------   -------------------------------------   -----  --------
    Profitable Business      profit_margin > 0.25                    0.80   business
    Strong ROI               roi > 0.15                              0.75   business
    Cost Reduction           largest cost > 30% of total costs       0.70   resource
    Favorable Break-Even     break_even_units / monthly_volume < 0.5 0.85   business

Ratios are only computed when the denominator is positive; otherwise the
rule is skipped (the metric is unavailable, not an error). Margins and
ROIs too large to render as a finite percentage are treated the same way.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime

from agri_advisor.models.analysis import AnalysisResult, BusinessFeasibilityPayload
from agri_advisor.models.recommendation import RecommendationItem
from agri_advisor.recommendations.ids import analysis_item_id
from agri_advisor.recommendations.recency import most_recent
from agri_advisor.taxonomy.recommendation_taxonomy import (
    AnalysisType,
    RecommendationSource,
    RecommendationType,
)

logger = logging.getLogger(__name__)

PROFIT_MARGIN_THRESHOLD = 0.25
ROI_THRESHOLD = 0.15
COST_SHARE_THRESHOLD = 0.30
BREAK_EVEN_RATIO_THRESHOLD = 0.5

_DEFAULT_BUSINESS_NAME = "business"


def extract_business_recommendations(
    results:    Sequence[AnalysisResult],
    created_at: datetime,
    limit:      int = 3,
) -> list[RecommendationItem]:
    """Apply the feasibility rules to the most recent feasibility analyses.

    Args:
        results:    Analyses of any type; only ``business_feasibility`` is read.
        created_at: Run timestamp stamped on every emitted item.
        limit:      Max analyses considered (most recent first).

    Returns:
        Items in analysis order (newest first), rules in table order.
    """
    feasibility = [r for r in results if r.type == AnalysisType.BUSINESS_FEASIBILITY]
    items: list[RecommendationItem] = []

    for result in most_recent(feasibility, limit):
        payload = result.payload()
        if not isinstance(payload, BusinessFeasibilityPayload):
            continue
        items.extend(_rules_for(result.id, payload, created_at))

    logger.debug(
        "Business extractor: %d item(s) from %d feasibility analysis(es).",
        len(items), min(len(feasibility), limit),
    )
    return items


def _percent_ok(value: float | None) -> bool:
    return value is not None and math.isfinite(value * 100)


def _rules_for(
    analysis_id: str,
    p:           BusinessFeasibilityPayload,
    created_at:  datetime,
) -> list[RecommendationItem]:
    name = p.business_name or _DEFAULT_BUSINESS_NAME
    items: list[RecommendationItem] = []

    if _percent_ok(p.profit_margin) and p.profit_margin > PROFIT_MARGIN_THRESHOLD:
        items.append(
            RecommendationItem(
                id=analysis_item_id("biz-profit", analysis_id),
                type=RecommendationType.BUSINESS,
                title="Profitable Business Model",
                description=(
                    f"Your {name} shows a strong profit margin of "
                    f"{p.profit_margin * 100:.1f}%. Consider scaling operations "
                    "while maintaining current cost structure."
                ),
                confidence=0.80,
                data={
                    "profit_margin": p.profit_margin,
                    "roi":           p.roi,
                    "business_name": p.business_name,
                },
                source=RecommendationSource.ANALYSIS,
                created_at=created_at,
            )
        )

    if _percent_ok(p.roi) and p.roi > ROI_THRESHOLD:
        items.append(
            RecommendationItem(
                id=analysis_item_id("biz-roi", analysis_id),
                type=RecommendationType.BUSINESS,
                title="Strong Return on Investment",
                description=(
                    f"Your investment in {name} shows a {p.roi * 100:.1f}% ROI. "
                    "Consider additional investment in similar ventures."
                ),
                confidence=0.75,
                data={"roi": p.roi, "payback_period": p.payback_period},
                source=RecommendationSource.ANALYSIS,
                created_at=created_at,
            )
        )

    if p.operational_costs:
        ranked = sorted(p.operational_costs, key=lambda c: c.amount, reverse=True)
        total = sum(c.amount for c in ranked)
        if total > 0:
            highest = ranked[0]
            share = highest.amount / total
            if share > COST_SHARE_THRESHOLD:
                items.append(
                    RecommendationItem(
                        id=analysis_item_id("biz-cost", analysis_id),
                        type=RecommendationType.RESOURCE,
                        title="Cost Reduction Opportunity",
                        description=(
                            f"{highest.name} represents {share * 100:.1f}% of your "
                            "operational costs. Reducing this could significantly "
                            "improve profitability."
                        ),
                        confidence=0.70,
                        data={
                            "cost_name":   highest.name,
                            "cost_amount": highest.amount,
                            "percentage":  share,
                        },
                        source=RecommendationSource.ANALYSIS,
                        created_at=created_at,
                    )
                )
        else:
            logger.debug("analysis=%s: non-positive cost total; cost rule skipped.", analysis_id)

    if p.break_even_units is not None and p.monthly_sales_volume is not None:
        if p.monthly_sales_volume > 0:
            ratio = p.break_even_units / p.monthly_sales_volume
            if ratio < BREAK_EVEN_RATIO_THRESHOLD:
                items.append(
                    RecommendationItem(
                        id=analysis_item_id("biz-breakeven", analysis_id),
                        type=RecommendationType.BUSINESS,
                        title="Favorable Break-Even Point",
                        description=(
                            f"You reach break-even at just {ratio * 100:.1f}% of your "
                            "monthly sales volume. This gives you a safety margin in "
                            "market fluctuations."
                        ),
                        confidence=0.85,
                        data={
                            "break_even_units":     p.break_even_units,
                            "monthly_sales_volume": p.monthly_sales_volume,
                            "ratio":                ratio,
                        },
                        source=RecommendationSource.ANALYSIS,
                        created_at=created_at,
                    )
                )
        else:
            logger.debug(
                "analysis=%s: monthly_sales_volume <= 0; break-even rule skipped.",
                analysis_id,
            )

    return items
