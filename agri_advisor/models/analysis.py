"""
Stored analysis results and their typed payloads.

An ``AnalysisResult`` row carries an open ``type`` string and an untyped
JSON ``data`` blob written by the analysis tools.  The blob is decoded at the
boundary into one payload model per known ``AnalysisType``:

    business_feasibility → BusinessFeasibilityPayload
    demand_forecast      → DemandForecastPayload
    optimization         → OptimizationPayload
    anything else        → None

Decoding never raises.  Each ``from_data()`` reads the camelCase keys the
analysis tools emit and treats every missing or wrong-shaped field as absent
(``None``), so the extractors only ever test for presence:

  - numbers must be real ``int``/``float`` values (booleans, numeric strings,
    NaN and infinities are absent);
  - a forecast or historical series with any non-numeric point is absent as a
    whole, so "first" and "last" always mean the real endpoints;
  - cost lines, variables and constraints that are not objects with a numeric
    amount/value are dropped individually.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

from agri_advisor.taxonomy.recommendation_taxonomy import AnalysisType
from agri_advisor.utils.time_utils import parse_timestamp


# ── Field coercion helpers ────────────────────────────────────────────────────

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _objects(value: Any) -> Optional[list[dict[str, Any]]]:
    if not isinstance(value, list):
        return None
    return [v for v in value if isinstance(v, dict)]


def _series(value: Any, key: str) -> Optional[list[float]]:
    """Extract ``[point[key] for point in value]``; ``None`` if any point is malformed."""
    if not isinstance(value, list):
        return None
    points: list[float] = []
    for point in value:
        num = _number(point.get(key)) if isinstance(point, dict) else None
        if num is None:
            return None
        points.append(num)
    return points


# ── Payload variants ──────────────────────────────────────────────────────────


class CostLine(BaseModel):
    """One operational cost category."""

    model_config = ConfigDict(frozen=True)

    name: str
    amount: float


class BusinessFeasibilityPayload(BaseModel):
    """Decoded ``business_feasibility`` analysis.

    Attributes:
        business_name:        Venture name used in descriptions.
        profit_margin:        Net margin as a fraction (0.30 = 30%).
        roi:                  Return on investment as a fraction.
        payback_period:       Months to recover the investment (informational).
        operational_costs:    Cost breakdown, or ``None`` when not supplied.
        break_even_units:     Units needed to break even per month.
        monthly_sales_volume: Expected units sold per month.
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[AnalysisType] = AnalysisType.BUSINESS_FEASIBILITY

    business_name: Optional[str] = None
    profit_margin: Optional[float] = None
    roi: Optional[float] = None
    payback_period: Optional[float] = None
    operational_costs: Optional[list[CostLine]] = None
    break_even_units: Optional[float] = None
    monthly_sales_volume: Optional[float] = None

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "BusinessFeasibilityPayload":
        costs: Optional[list[CostLine]] = None
        raw_costs = _objects(data.get("operationalCosts"))
        if raw_costs is not None:
            costs = [
                CostLine(name=_text(c.get("name")) or "Unnamed cost", amount=amount)
                for c in raw_costs
                if (amount := _number(c.get("amount"))) is not None
            ]
        return cls(
            business_name=_text(data.get("businessName")),
            profit_margin=_number(data.get("profitMargin")),
            roi=_number(data.get("roi")),
            payback_period=_number(data.get("paybackPeriod")),
            operational_costs=costs,
            break_even_units=_number(data.get("breakEvenUnits")),
            monthly_sales_volume=_number(data.get("monthlySalesVolume")),
        )


class DemandForecastPayload(BaseModel):
    """Decoded ``demand_forecast`` analysis.

    Attributes:
        product_name: Product the forecast is about.
        forecasted:   Projected demand values in period order
                      (``data.forecasted[].forecast``).
        historical:   Observed demand values (``data.chart.historical[].value``).
        mape:         Mean absolute percentage error of the model, in percent
                      (``data.accuracy.mape``).
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[AnalysisType] = AnalysisType.DEMAND_FORECAST

    product_name: Optional[str] = None
    forecasted: Optional[list[float]] = None
    historical: Optional[list[float]] = None
    mape: Optional[float] = None

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "DemandForecastPayload":
        return cls(
            product_name=_text(data.get("productName")),
            forecasted=_series(data.get("forecasted"), "forecast"),
            historical=_series(_mapping(data.get("chart")).get("historical"), "value"),
            mape=_number(_mapping(data.get("accuracy")).get("mape")),
        )


class OptimizationVariable(BaseModel):
    """A decision variable and its value in the solution."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: float


class OptimizationConstraint(BaseModel):
    """A constraint and its slack (``None`` when the solver did not report it)."""

    model_config = ConfigDict(frozen=True)

    name: str
    slack: Optional[float] = None


class OptimizationPayload(BaseModel):
    """Decoded ``optimization`` analysis.

    ``feasible`` is tri-state: ``True``/``False`` from the solver, ``None``
    when the run never reported feasibility (no recommendations are derived).
    """

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[AnalysisType] = AnalysisType.OPTIMIZATION

    name: Optional[str] = None
    feasible: Optional[bool] = None
    objective_value: Optional[float] = None
    variables: Optional[list[OptimizationVariable]] = None
    constraints: Optional[list[OptimizationConstraint]] = None

    @classmethod
    def from_data(cls, data: dict[str, Any]) -> "OptimizationPayload":
        feasible = data.get("feasible")
        variables: Optional[list[OptimizationVariable]] = None
        raw_vars = _objects(data.get("variables"))
        if raw_vars is not None:
            variables = [
                OptimizationVariable(name=_text(v.get("name")) or "unnamed", value=value)
                for v in raw_vars
                if (value := _number(v.get("value"))) is not None
            ]
        constraints: Optional[list[OptimizationConstraint]] = None
        raw_cons = _objects(data.get("constraints"))
        if raw_cons is not None:
            constraints = [
                OptimizationConstraint(
                    name=_text(c.get("name")) or "unnamed",
                    slack=_number(c.get("slack")),
                )
                for c in raw_cons
            ]
        return cls(
            name=_text(data.get("name")),
            feasible=feasible if isinstance(feasible, bool) else None,
            objective_value=_number(data.get("objectiveValue")),
            variables=variables,
            constraints=constraints,
        )


AnalysisPayload = Union[
    BusinessFeasibilityPayload, DemandForecastPayload, OptimizationPayload
]

_PAYLOAD_TYPES: dict[str, type] = {
    AnalysisType.BUSINESS_FEASIBILITY: BusinessFeasibilityPayload,
    AnalysisType.DEMAND_FORECAST: DemandForecastPayload,
    AnalysisType.OPTIMIZATION: OptimizationPayload,
}


def decode_payload(analysis_type: str, data: dict[str, Any]) -> Optional[AnalysisPayload]:
    """Decode ``data`` into the payload variant for ``analysis_type``.

    Returns:
        The typed payload, or ``None`` for analysis types the engine does
        not read.
    """
    payload_cls = _PAYLOAD_TYPES.get(analysis_type)
    if payload_cls is None:
        return None
    return payload_cls.from_data(_mapping(data))


# ── Stored analysis ───────────────────────────────────────────────────────────


class AnalysisResult(BaseModel):
    """A stored output of a prior business/forecast/optimization computation.

    Immutable once produced; owned by a user.

    Attributes:
        id: Analysis UUID.
        user_id: FK to ``users.id``.
        type: Analysis type string (usually an ``AnalysisType`` value).
        data: Raw JSON payload as written by the analysis tool.
        created_at: UTC creation time, or ``None`` when missing/unparseable.
        updated_at: UTC last-update time.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    type: str
    data: dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        return str(v).strip().lower() if v is not None else ""

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    def payload(self) -> Optional[AnalysisPayload]:
        """Typed view of ``data`` for this result's ``type``."""
        return decode_payload(self.type, self.data)
