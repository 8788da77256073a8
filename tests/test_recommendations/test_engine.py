"""
Tests for agri_advisor/recommendations/engine.py.

What we test
------------
rank_recommendations():
  - Same day: higher confidence first; ties keep input order.
  - Different days: later day first regardless of confidence.

build_summary():
  - Opening clause lists the analysis kinds present (un-windowed input).
  - Leading business/market/resource/crop titles, each at most once.
  - Season sentence; fallback text when there are no items.
  - No trailing whitespace when the last sentence is a title.

generate_recommendations():
  - Empty input -> no items + fallback summary.
  - Winter-only input -> two seasonal items, summary ends with the season sentence.
  - Full input -> ranked, capped set with one shared timestamp.
  - Determinism, cap invariants, injected clock and set id factory.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from agri_advisor.config import RecommendationConfig
from agri_advisor.models.recommendation import RecommendationInput, RecommendationItem
from agri_advisor.recommendations.engine import (
    FALLBACK_SUMMARY,
    build_summary,
    generate_recommendations,
    rank_recommendations,
)
from agri_advisor.taxonomy.recommendation_taxonomy import (
    RecommendationSource,
    RecommendationType,
    Season,
)

DAY1 = datetime(2026, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


def _item(item_id: str, confidence: float, created_at: datetime = DAY1,
          rec_type: RecommendationType = RecommendationType.BUSINESS) -> RecommendationItem:
    return RecommendationItem(
        id=item_id,
        type=rec_type,
        title=f"Title {item_id}",
        description="Some advice.",
        confidence=confidence,
        source=RecommendationSource.ANALYSIS,
        created_at=created_at,
    )


class TestRankRecommendations:
    def test_same_day_by_confidence(self):
        items = [_item("a", 0.6), _item("b", 0.9), _item("c", 0.75)]
        assert [i.id for i in rank_recommendations(items)] == ["b", "c", "a"]

    def test_ties_keep_input_order(self):
        items = [_item("a", 0.7), _item("b", 0.7), _item("c", 0.8), _item("d", 0.7)]
        assert [i.id for i in rank_recommendations(items)] == ["c", "a", "b", "d"]

    def test_later_day_wins_over_confidence(self):
        older = _item("old", 0.95, DAY1)
        newer = _item("new", 0.60, DAY1 + timedelta(days=1))
        assert [i.id for i in rank_recommendations([older, newer])] == ["new", "old"]

    def test_input_untouched(self):
        items = [_item("a", 0.6), _item("b", 0.9)]
        rank_recommendations(items)
        assert [i.id for i in items] == ["a", "b"]


class TestBuildSummary:
    def test_fallback_when_empty(self, make_analysis):
        analyses = [make_analysis("a1", "optimization", {})]
        assert build_summary([], analyses, Season.SPRING) == FALLBACK_SUMMARY

    def test_fallback_wording(self):
        assert FALLBACK_SUMMARY == (
            "Insufficient data for personalized recommendations. Continue running "
            "analyses on your agricultural business for tailored insights."
        )

    def test_historical_data_opening(self):
        summary = build_summary([_item("a", 0.8)], [], None)
        assert summary == "Based on your historical data, we recommend: Title a."

    def test_no_trailing_whitespace_without_season(self):
        top = [
            _item("biz", 0.9),
            _item("mkt", 0.9, rec_type=RecommendationType.MARKET),
        ]
        summary = build_summary(top, [], None)
        assert summary.endswith("Title mkt.")
        assert summary == summary.strip()

    def test_opening_lists_kinds_present(self, make_analysis):
        analyses = [
            make_analysis("o", "optimization", {}),
            make_analysis("b", "business_feasibility", {}),
        ]
        summary = build_summary([_item("a", 0.8)], analyses, None)
        assert summary.startswith(
            "Based on your business feasibility analysis, optimization analysis, we recommend: "
        )

    def test_one_title_per_type_in_fixed_order(self):
        top = [
            _item("crop", 0.9, rec_type=RecommendationType.CROP),
            _item("res", 0.9, rec_type=RecommendationType.RESOURCE),
            _item("biz1", 0.9),
            _item("biz2", 0.9),
            _item("mkt", 0.9, rec_type=RecommendationType.MARKET),
        ]
        summary = build_summary(top, [], Season.FALL)
        assert summary == (
            "Based on your historical data, we recommend: Title biz1. Title mkt. "
            "Title res. Title crop. Consider adjusting your strategy for the fall season."
        )


class TestGenerateRecommendations:
    def test_empty_input(self, fixed_clock):
        result = generate_recommendations(
            RecommendationInput(user_id="user-1"), clock=fixed_clock,
        )
        assert result.recommendations == []
        assert result.summary == FALLBACK_SUMMARY
        assert result.user_id == "user-1"

    def test_winter_only(self, fixed_clock):
        result = generate_recommendations(
            RecommendationInput(user_id="user-1", current_season="winter"),
            clock=fixed_clock,
        )
        assert len(result.recommendations) == 2
        assert {i.source for i in result.recommendations} == {RecommendationSource.SEASONAL}
        assert {i.type for i in result.recommendations} == {
            RecommendationType.CROP, RecommendationType.BUSINESS,
        }
        assert result.summary.endswith("strategy for the winter season.")
        assert result.summary == (
            "Based on your historical data, we recommend: Winter Activity Focus. "
            "Winter Crop Recommendations. Consider adjusting your strategy for the winter season."
        )

    def test_unknown_season_is_ignored(self, fixed_clock):
        result = generate_recommendations(
            RecommendationInput(user_id="user-1", current_season="monsoon"),
            clock=fixed_clock,
        )
        assert result.recommendations == []

    def test_full_input_ranking_and_summary(
        self, make_analysis, business_data, forecast_data, optimization_data,
        fixed_clock, fixed_now,
    ):
        inp = RecommendationInput(
            user_id="user-1",
            analysis_results=[
                make_analysis("b1", "business_feasibility", business_data, hours=3),
                make_analysis("f1", "demand_forecast", forecast_data, hours=2),
                make_analysis("o1", "optimization", optimization_data, hours=1),
            ],
        )
        result = generate_recommendations(inp, clock=fixed_clock, set_id_factory=lambda: "set-1")

        assert result.id == "set-1"
        assert result.created_at == fixed_now
        assert all(i.created_at == fixed_now for i in result.recommendations)
        assert [i.id for i in result.recommendations] == [
            "opt-feasible-o1",
            "biz-breakeven-b1",
            "opt-constraints-o1",
            "biz-profit-b1",
            "forecast-accuracy-f1",
            "opt-resources-o1",
            "biz-roi-b1",
            "forecast-growth-f1",
            "biz-cost-b1",
            "forecast-seasonal-f1",
        ]
        assert result.summary == (
            "Based on your business feasibility analysis, demand forecasting, "
            "optimization analysis, we recommend: Favorable Break-Even Point. "
            "Optimal Resource Allocation."
        )

    def test_cap_invariants(self, make_analysis, make_message, business_data,
                            forecast_data, optimization_data, fixed_clock):
        analyses = []
        for n in range(4):
            analyses += [
                make_analysis(f"b{n}", "business_feasibility", business_data, hours=n),
                make_analysis(f"f{n}", "demand_forecast", forecast_data, hours=n),
                make_analysis(f"o{n}", "optimization", optimization_data, hours=n),
            ]
        messages = [make_message("m1", "Grow profit, cut cost, manage risk and water.")]
        result = generate_recommendations(
            RecommendationInput(
                user_id="user-1",
                analysis_results=analyses,
                chat_history=messages,
                current_season="summer",
            ),
            clock=fixed_clock,
        )
        assert len(result.recommendations) == 10
        assert len({i.id for i in result.recommendations}) == 10
        assert all(0.0 <= i.confidence <= 1.0 for i in result.recommendations)
        confidences = [i.confidence for i in result.recommendations]
        assert confidences == sorted(confidences, reverse=True)

    def test_max_recommendations_configurable(self, make_analysis, business_data, fixed_clock):
        inp = RecommendationInput(
            user_id="user-1",
            analysis_results=[make_analysis("b1", "business_feasibility", business_data)],
        )
        config = RecommendationConfig(max_recommendations=2)
        result = generate_recommendations(inp, config, clock=fixed_clock)
        assert [i.id for i in result.recommendations] == ["biz-breakeven-b1", "biz-profit-b1"]

    def test_analysis_window_applies_across_types(self, make_analysis, fixed_clock):
        analyses = [
            make_analysis(f"o{h}", "optimization", {"feasible": False}, hours=h)
            for h in range(10)
        ]
        analyses.append(
            make_analysis("old-biz", "business_feasibility", {"profitMargin": 0.9}, hours=-1)
        )
        result = generate_recommendations(
            RecommendationInput(user_id="user-1", analysis_results=analyses), clock=fixed_clock,
        )
        assert all(not i.id.startswith("biz-") for i in result.recommendations)
        # the windowed-out analysis still shapes the opening clause
        assert result.summary.startswith("Based on your business feasibility analysis, ")

    def test_deterministic(self, make_analysis, make_message, business_data, fixed_clock):
        inp = RecommendationInput(
            user_id="user-1",
            analysis_results=[make_analysis("b1", "business_feasibility", business_data)],
            chat_history=[make_message("m1", "Expand into new markets.")],
            current_season="spring",
        )
        first = generate_recommendations(inp, clock=fixed_clock)
        second = generate_recommendations(inp, clock=fixed_clock)
        assert first.recommendations == second.recommendations
        assert first.summary == second.summary
        assert first.id != second.id

    def test_duplicate_analysis_ids_are_deduplicated(self, make_analysis, fixed_clock):
        analyses = [
            make_analysis("dup", "business_feasibility", {"profitMargin": 0.5}, hours=1),
            make_analysis("dup", "business_feasibility", {"profitMargin": 0.6}, hours=2),
        ]
        result = generate_recommendations(
            RecommendationInput(user_id="user-1", analysis_results=analyses), clock=fixed_clock,
        )
        assert [i.id for i in result.recommendations] == ["biz-profit-dup"]
        assert "60.0%" in result.recommendations[0].description

    def test_malformed_payloads_never_raise(self, make_analysis, fixed_clock):
        analyses = [
            make_analysis("x1", "business_feasibility", {"operationalCosts": "lots"}),
            make_analysis("x2", "demand_forecast", {"forecasted": [1, 2, 3], "chart": 5}),
            make_analysis("x3", "optimization", {"feasible": True, "variables": {"a": 1}}),
            make_analysis("x4", "soil_survey", {"ph": 6.5}),
        ]
        result = generate_recommendations(
            RecommendationInput(user_id="user-1", analysis_results=analyses), clock=fixed_clock,
        )
        assert [i.id for i in result.recommendations] == ["opt-feasible-x3"]

    def test_oversized_numbers_never_raise(self, make_analysis, fixed_clock):
        data = json.loads('{"profitMargin": 1' + "0" * 400 + ', "roi": 1e307}')
        analyses = [make_analysis("x1", "business_feasibility", data)]
        result = generate_recommendations(
            RecommendationInput(user_id="user-1", analysis_results=analyses), clock=fixed_clock,
        )
        assert result.recommendations == []
        assert result.summary == FALLBACK_SUMMARY
