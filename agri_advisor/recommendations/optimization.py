"""
Optimization extractor: feasibility, dominant allocations, bottlenecks.

Reads the three most recent ``optimization`` analyses.

    feasible is True
        "Optimal Resource Allocation"     resource  0.90   always
        "Key Resource Allocation"         resource  0.80   top-3 positive variables
        "Resource Bottlenecks Identified" business  0.85   constraints with |slack| < 0.001
    feasible is False
        "Resource Constraints Too Tight"  business  0.90   and nothing else
    feasible missing
        nothing
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from agri_advisor.models.analysis import AnalysisResult, OptimizationPayload
from agri_advisor.models.recommendation import RecommendationItem
from agri_advisor.recommendations.ids import analysis_item_id
from agri_advisor.recommendations.recency import most_recent
from agri_advisor.taxonomy.recommendation_taxonomy import (
    AnalysisType,
    RecommendationSource,
    RecommendationType,
)

logger = logging.getLogger(__name__)

TOP_VARIABLES = 3
BINDING_SLACK_TOLERANCE = 0.001

_DEFAULT_MODEL_NAME = "resource plan"


def is_binding(slack: float | None) -> bool:
    """A constraint binds when its slack is zero or within tolerance of zero."""
    return slack is not None and abs(slack) < BINDING_SLACK_TOLERANCE


def extract_optimization_recommendations(
    results:    Sequence[AnalysisResult],
    created_at: datetime,
    limit:      int = 3,
) -> list[RecommendationItem]:
    """Apply the feasibility/allocation/bottleneck rules to recent optimization runs.

    Args:
        results:    Analyses of any type; only ``optimization`` is read.
        created_at: Run timestamp stamped on every emitted item.
        limit:      Max analyses considered (most recent first).

    Returns:
        Items in analysis order (newest first).
    """
    runs = [r for r in results if r.type == AnalysisType.OPTIMIZATION]
    items: list[RecommendationItem] = []

    for result in most_recent(runs, limit):
        payload = result.payload()
        if not isinstance(payload, OptimizationPayload):
            continue
        if payload.feasible is True:
            items.extend(_feasible_items(result.id, payload, created_at))
        elif payload.feasible is False:
            items.append(_infeasible_item(result.id, payload, created_at))

    logger.debug(
        "Optimization extractor: %d item(s) from %d optimization run(s).",
        len(items), min(len(runs), limit),
    )
    return items


def _feasible_items(
    analysis_id: str,
    p:           OptimizationPayload,
    created_at:  datetime,
) -> list[RecommendationItem]:
    name = p.name or _DEFAULT_MODEL_NAME
    if p.objective_value is not None:
        outcome = f"an objective value of {p.objective_value:.2f}"
    else:
        outcome = "optimized resource allocation"

    items = [
        RecommendationItem(
            id=analysis_item_id("opt-feasible", analysis_id),
            type=RecommendationType.RESOURCE,
            title="Optimal Resource Allocation",
            description=(
                f"Your {name} optimization model has a feasible solution with {outcome}."
            ),
            confidence=0.90,
            data={"optimization_name": p.name, "objective_value": p.objective_value},
            source=RecommendationSource.ANALYSIS,
            created_at=created_at,
        )
    ]

    if p.variables:
        top = sorted(
            (v for v in p.variables if v.value > 0),
            key=lambda v: v.value,
            reverse=True,
        )[:TOP_VARIABLES]
        if top:
            listing = ", ".join(f"{v.name}: {v.value:.2f}" for v in top)
            items.append(
                RecommendationItem(
                    id=analysis_item_id("opt-resources", analysis_id),
                    type=RecommendationType.RESOURCE,
                    title="Key Resource Allocation",
                    description=f"Focus on these resources for optimal results: {listing}",
                    confidence=0.80,
                    data={
                        "optimization_name": p.name,
                        "top_resources": [v.model_dump() for v in top],
                    },
                    source=RecommendationSource.ANALYSIS,
                    created_at=created_at,
                )
            )

    if p.constraints:
        binding = [c.name for c in p.constraints if is_binding(c.slack)]
        if binding:
            items.append(
                RecommendationItem(
                    id=analysis_item_id("opt-constraints", analysis_id),
                    type=RecommendationType.BUSINESS,
                    title="Resource Bottlenecks Identified",
                    description=(
                        "These factors are limiting your optimization: "
                        f"{', '.join(binding)}. Consider increasing these resources."
                    ),
                    confidence=0.85,
                    data={"optimization_name": p.name, "binding_constraints": binding},
                    source=RecommendationSource.ANALYSIS,
                    created_at=created_at,
                )
            )

    return items


def _infeasible_item(
    analysis_id: str,
    p:           OptimizationPayload,
    created_at:  datetime,
) -> RecommendationItem:
    name = p.name or _DEFAULT_MODEL_NAME
    return RecommendationItem(
        id=analysis_item_id("opt-infeasible", analysis_id),
        type=RecommendationType.BUSINESS,
        title="Resource Constraints Too Tight",
        description=(
            f"Your {name} optimization model doesn't have a feasible solution. "
            "Consider relaxing some constraints or adding more resources."
        ),
        confidence=0.90,
        data={"optimization_name": p.name},
        source=RecommendationSource.ANALYSIS,
        created_at=created_at,
    )
