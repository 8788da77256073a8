"""
Tests for agri_advisor/models/analysis.py — boundary decoding of payloads.

What we test
------------
  - decode_payload() picks the variant by analysis type; unknown types -> None.
  - camelCase keys are mapped onto typed fields.
  - Wrong-shaped values (strings, booleans, NaN, nested junk) become None.
  - Integers too large for a float become None instead of raising.
  - A series with any malformed point is absent as a whole.
  - AnalysisResult normalises type, coerces non-dict data and parses timestamps.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone

from agri_advisor.models.analysis import (
    AnalysisResult,
    BusinessFeasibilityPayload,
    DemandForecastPayload,
    OptimizationPayload,
    decode_payload,
)


class TestDecodePayload:
    def test_variant_per_type(self):
        assert isinstance(decode_payload("business_feasibility", {}), BusinessFeasibilityPayload)
        assert isinstance(decode_payload("demand_forecast", {}), DemandForecastPayload)
        assert isinstance(decode_payload("optimization", {}), OptimizationPayload)

    def test_unknown_type(self):
        assert decode_payload("soil_survey", {"ph": 6}) is None


class TestBusinessFeasibilityPayload:
    def test_reads_camel_case(self, business_data):
        p = BusinessFeasibilityPayload.from_data(business_data)
        assert p.business_name == "FarmCo"
        assert p.profit_margin == 0.30
        assert p.break_even_units == 400
        assert [c.name for c in p.operational_costs] == ["Labor", "Seeds", "Fuel"]

    def test_wrong_shapes_are_absent(self):
        p = BusinessFeasibilityPayload.from_data({
            "businessName": "   ",
            "profitMargin": True,
            "roi": math.nan,
            "monthlySalesVolume": "1000",
            "operationalCosts": {"Labor": 5},
        })
        assert p.business_name is None
        assert p.profit_margin is None
        assert p.roi is None
        assert p.monthly_sales_volume is None
        assert p.operational_costs is None

    def test_bad_cost_lines_dropped_individually(self):
        p = BusinessFeasibilityPayload.from_data({
            "operationalCosts": [
                {"name": "Labor", "amount": 10},
                {"name": "Seeds", "amount": "many"},
                "Fuel",
                {"amount": 4},
            ],
        })
        assert [(c.name, c.amount) for c in p.operational_costs] == [
            ("Labor", 10.0), ("Unnamed cost", 4.0),
        ]

    def test_oversized_integer_is_absent(self):
        data = json.loads('{"profitMargin": 1' + "0" * 400 + ', "roi": 0.2}')
        p = BusinessFeasibilityPayload.from_data(data)
        assert p.profit_margin is None
        assert p.roi == 0.2


class TestDemandForecastPayload:
    def test_reads_nested_fields(self, forecast_data):
        p = DemandForecastPayload.from_data(forecast_data)
        assert p.product_name == "tomatoes"
        assert p.forecasted == [100.0, 115.0, 130.0]
        assert len(p.historical) == 6
        assert p.mape == 8.0

    def test_malformed_series_absent(self):
        p = DemandForecastPayload.from_data({
            "forecasted": [{"forecast": 1}, {"value": 2}],
            "chart": {"historical": "n/a"},
            "accuracy": "high",
        })
        assert p.forecasted is None
        assert p.historical is None
        assert p.mape is None

    def test_empty_series_is_present(self):
        p = DemandForecastPayload.from_data({"forecasted": []})
        assert p.forecasted == []


class TestOptimizationPayload:
    def test_reads_fields(self, optimization_data):
        p = OptimizationPayload.from_data(optimization_data)
        assert p.feasible is True
        assert p.objective_value == 12500.456
        assert len(p.variables) == 5
        assert p.constraints[0].slack == 0.0

    def test_feasible_must_be_boolean(self):
        assert OptimizationPayload.from_data({"feasible": "yes"}).feasible is None
        assert OptimizationPayload.from_data({"feasible": 0}).feasible is None
        assert OptimizationPayload.from_data({"feasible": False}).feasible is False

    def test_constraint_without_slack_kept(self):
        p = OptimizationPayload.from_data({"constraints": [{"name": "land"}]})
        assert p.constraints[0].name == "land"
        assert p.constraints[0].slack is None


class TestAnalysisResult:
    def test_normalises_type(self):
        r = AnalysisResult(id="a", user_id="u", type=" Demand_Forecast ", data={})
        assert r.type == "demand_forecast"
        assert isinstance(r.payload(), DemandForecastPayload)

    def test_non_dict_data_becomes_empty(self):
        r = AnalysisResult(id="a", user_id="u", type="optimization", data=[1, 2])
        assert r.data == {}

    def test_timestamp_parsing(self):
        r = AnalysisResult(
            id="a", user_id="u", type="optimization", data={},
            created_at="2026-04-02T10:00:00Z", updated_at="garbage",
        )
        assert r.created_at == datetime(2026, 4, 2, 10, tzinfo=timezone.utc)
        assert r.updated_at is None
