"""
Shared pytest fixtures for the Agri Advisor test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``fixed_now`` / ``fixed_clock``: a deterministic run timestamp.
  - ``make_analysis`` / ``make_message``: small factories for engine inputs.
  - Sample payloads for each analysis type.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generator

import pytest

from agri_advisor.db.connection import configure_connection
from agri_advisor.db.schema import apply_schema
from agri_advisor.models.analysis import AnalysisResult
from agri_advisor.models.chat import ChatConversation, ChatMessage
from agri_advisor.models.user import User

BASE_TIME = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    configure_connection(conn, wal_mode=False, is_memory=True)
    apply_schema(conn)
    yield conn
    conn.close()


# ── Clock ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock(fixed_now: datetime) -> Callable[[], datetime]:
    return lambda: fixed_now


# ── Domain object factories ───────────────────────────────────────────────────

@pytest.fixture
def make_analysis() -> Callable[..., AnalysisResult]:
    """Factory: ``make_analysis(id, type, data, hours=0)``.

    ``hours`` offsets ``created_at`` from a fixed base time, so larger values
    are more recent.  Pass ``created_at=None`` for an untimestamped record.
    """

    def _make(
        analysis_id: str,
        analysis_type: str,
        data: Any,
        hours: int = 0,
        user_id: str = "user-1",
        **overrides: Any,
    ) -> AnalysisResult:
        fields: dict[str, Any] = {
            "id": analysis_id,
            "user_id": user_id,
            "type": analysis_type,
            "data": data,
            "created_at": BASE_TIME + timedelta(hours=hours),
        }
        fields.update(overrides)
        return AnalysisResult(**fields)

    return _make


@pytest.fixture
def make_message() -> Callable[..., ChatMessage]:
    """Factory: ``make_message(id, content, hours=0, role="assistant")``."""

    def _make(
        message_id: str,
        content: str,
        hours: int = 0,
        role: str = "assistant",
        conversation_id: str = "conv-1",
        **overrides: Any,
    ) -> ChatMessage:
        fields: dict[str, Any] = {
            "id": message_id,
            "conversation_id": conversation_id,
            "role": role,
            "content": content,
            "created_at": BASE_TIME + timedelta(hours=hours),
        }
        fields.update(overrides)
        return ChatMessage(**fields)

    return _make


@pytest.fixture
def sample_user() -> User:
    return User(id="user-1", email="Grower@Example.com", name="Dana Grower")


@pytest.fixture
def sample_conversation() -> ChatConversation:
    return ChatConversation(
        id="conv-1",
        user_id="user-1",
        title="Spring planning",
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


# ── Sample payloads ───────────────────────────────────────────────────────────

@pytest.fixture
def business_data() -> dict[str, Any]:
    """Feasibility payload that triggers all four business rules."""
    return {
        "businessName": "FarmCo",
        "profitMargin": 0.30,
        "roi": 0.20,
        "paybackPeriod": 18,
        "operationalCosts": [
            {"name": "Labor", "amount": 500},
            {"name": "Seeds", "amount": 300},
            {"name": "Fuel", "amount": 200},
        ],
        "breakEvenUnits": 400,
        "monthlySalesVolume": 1000,
    }


@pytest.fixture
def forecast_data() -> dict[str, Any]:
    """Forecast payload with growth, two historical peaks and high accuracy."""
    return {
        "productName": "tomatoes",
        "forecasted": [{"forecast": 100}, {"forecast": 115}, {"forecast": 130}],
        "chart": {
            "historical": [
                {"value": 100}, {"value": 100}, {"value": 200},
                {"value": 100}, {"value": 100}, {"value": 200},
            ]
        },
        "accuracy": {"mape": 8.0},
    }


@pytest.fixture
def optimization_data() -> dict[str, Any]:
    """Feasible optimization payload with positive variables and one binding constraint."""
    return {
        "name": "Field allocation",
        "feasible": True,
        "objectiveValue": 12500.456,
        "variables": [
            {"name": "corn_acres", "value": 40},
            {"name": "wheat_acres", "value": 25.5},
            {"name": "soy_acres", "value": 0},
            {"name": "barley_acres", "value": 10},
            {"name": "oat_acres", "value": 5},
        ],
        "constraints": [
            {"name": "land", "slack": 0},
            {"name": "water", "slack": 12.5},
            {"name": "labor", "slack": 0.0004},
        ],
    }
