"""Tests for repository round-trip operations using in-memory SQLite."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from agri_advisor.db.repositories.analysis_repo import AnalysisResultRepository
from agri_advisor.db.repositories.base import from_db_json, to_db_json, to_db_timestamp
from agri_advisor.db.repositories.chat_repo import ChatRepository
from agri_advisor.db.repositories.recommendation_repo import (
    RecommendationRepository,
    RunMetadataRepository,
)
from agri_advisor.db.repositories.user_repo import UserRepository
from agri_advisor.models.meta import RunMetadata
from agri_advisor.models.recommendation import RecommendationItem, RecommendationSet
from agri_advisor.models.user import User

NOW = datetime(2026, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _rec_set(set_id: str = "set-1", created_at: datetime = NOW) -> RecommendationSet:
    items = [
        RecommendationItem(
            id="biz-profit-a1",
            type="business",
            title="Profitable Business Model",
            description="Your FarmCo shows a strong profit margin of 30.0%.",
            confidence=0.75,
            data={"profit_margin": 0.3},
            source="analysis",
            created_at=created_at,
        ),
        RecommendationItem(
            id="seasonal-crop-summer",
            type="crop",
            title="Summer Crop Recommendations",
            description="Consider planting tomatoes.",
            confidence=0.70,
            data={"season": "summer", "recommended_crops": ["tomatoes"]},
            source="seasonal",
            created_at=created_at,
        ),
    ]
    return RecommendationSet(
        id=set_id, user_id="user-1", recommendations=items,
        summary="Based on your historical data, we recommend: ...",
        created_at=created_at,
    )


@pytest.fixture
def seeded_db(in_memory_db, sample_user, sample_conversation):
    UserRepository(in_memory_db).insert(sample_user)
    ChatRepository(in_memory_db).insert_conversation(sample_conversation)
    return in_memory_db


# ── Serialisation helpers ──────────────────────────────────────────────────────

class TestBaseHelpers:
    def test_timestamp_normalised_to_utc(self):
        naive = datetime(2026, 1, 1, 8, 30)
        assert to_db_timestamp(naive) == "2026-01-01T08:30:00+00:00"
        assert to_db_timestamp(None) is None

    def test_json_sorted(self):
        assert to_db_json({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'

    def test_unreadable_json(self):
        assert from_db_json("{not json") == {}
        assert from_db_json(None) == {}


# ── Users ──────────────────────────────────────────────────────────────────────

class TestUserRepository:
    def test_insert_and_get(self, in_memory_db, sample_user):
        repo = UserRepository(in_memory_db)
        repo.insert(sample_user)
        fetched = repo.get_by_id("user-1")
        assert fetched.email == "grower@example.com"
        assert fetched.created_at is not None

    def test_get_by_email_case_insensitive(self, in_memory_db, sample_user):
        repo = UserRepository(in_memory_db)
        repo.insert(sample_user)
        assert repo.get_by_email("GROWER@example.COM").id == "user-1"

    def test_duplicate_insert_raises(self, in_memory_db, sample_user):
        repo = UserRepository(in_memory_db)
        repo.insert(sample_user)
        with pytest.raises(sqlite3.IntegrityError):
            repo.insert(sample_user)

    def test_upsert_keeps_created_at(self, in_memory_db):
        repo = UserRepository(in_memory_db)
        repo.insert(User(id="u", email="a@x.io", name="A", created_at=NOW))
        repo.upsert(User(id="u", email="b@x.io", name="B", created_at=NOW + timedelta(days=3)))
        user = repo.get_by_id("u")
        assert (user.email, user.name) == ("b@x.io", "B")
        assert user.created_at == NOW
        assert repo.count() == 1

    def test_missing(self, in_memory_db):
        assert UserRepository(in_memory_db).get_by_id("nobody") is None


# ── Chat ───────────────────────────────────────────────────────────────────────

class TestChatRepository:
    def test_messages_for_user_joins_conversations(self, seeded_db, make_message):
        repo = ChatRepository(seeded_db)
        repo.insert_message(make_message("m2", "Second.", hours=2))
        repo.insert_message(make_message("m1", "First.", hours=1, role="user"))
        messages = repo.get_messages_for_user("user-1")
        assert [m.id for m in messages] == ["m1", "m2"]
        assert messages[0].role == "user"
        assert repo.get_messages_for_user("someone-else") == []

    def test_message_requires_conversation(self, seeded_db, make_message):
        with pytest.raises(sqlite3.IntegrityError):
            ChatRepository(seeded_db).insert_message(
                make_message("m1", "Hi.", conversation_id="missing")
            )

    def test_upsert_message_replaces_content(self, seeded_db, make_message):
        repo = ChatRepository(seeded_db)
        repo.upsert_message(make_message("m1", "Old."))
        repo.upsert_message(make_message("m1", "New."))
        assert [m.content for m in repo.get_messages_for_conversation("conv-1")] == ["New."]

    def test_conversations_for_user(self, seeded_db):
        convs = ChatRepository(seeded_db).get_conversations_for_user("user-1")
        assert [c.title for c in convs] == ["Spring planning"]


# ── Analyses ───────────────────────────────────────────────────────────────────

class TestAnalysisResultRepository:
    def test_round_trip_preserves_data(self, seeded_db, make_analysis, business_data):
        repo = AnalysisResultRepository(seeded_db)
        repo.insert(make_analysis("a1", "business_feasibility", business_data))
        fetched = repo.get_by_id("a1")
        assert fetched.data == business_data
        assert fetched.created_at.tzinfo is not None

    def test_get_for_user_newest_first(self, seeded_db, make_analysis):
        repo = AnalysisResultRepository(seeded_db)
        repo.insert(make_analysis("old", "optimization", {}, hours=1))
        repo.insert(make_analysis("new", "optimization", {}, hours=5))
        repo.insert(make_analysis("undated", "demand_forecast", {}, created_at=None))
        assert [a.id for a in repo.get_for_user("user-1")] == ["new", "old", "undated"]
        assert [a.id for a in repo.get_for_user("user-1", "demand_forecast")] == ["undated"]

    def test_count_by_type(self, seeded_db, make_analysis):
        repo = AnalysisResultRepository(seeded_db)
        repo.insert(make_analysis("a", "optimization", {}))
        repo.insert(make_analysis("b", "optimization", {}, hours=1))
        repo.insert(make_analysis("c", "demand_forecast", {}))
        assert repo.count_by_type("user-1") == {"demand_forecast": 1, "optimization": 2}

    def test_upsert_replaces_data(self, seeded_db, make_analysis):
        repo = AnalysisResultRepository(seeded_db)
        repo.upsert(make_analysis("a", "optimization", {"feasible": False}))
        repo.upsert(make_analysis("a", "optimization", {"feasible": True}))
        assert repo.get_by_id("a").data == {"feasible": True}

    def test_unknown_user_rejected(self, in_memory_db, make_analysis):
        with pytest.raises(sqlite3.IntegrityError):
            AnalysisResultRepository(in_memory_db).insert(
                make_analysis("a", "optimization", {}, user_id="ghost")
            )


# ── Recommendation sets ────────────────────────────────────────────────────────

class TestRecommendationRepository:
    def test_round_trip_keeps_order_and_data(self, seeded_db):
        repo = RecommendationRepository(seeded_db)
        original = _rec_set()
        repo.insert_set(original)
        fetched = repo.get_set("set-1")
        assert fetched == original

    def test_empty_set(self, seeded_db):
        repo = RecommendationRepository(seeded_db)
        empty = RecommendationSet(
            id="empty", user_id="user-1", recommendations=[], summary="x", created_at=NOW,
        )
        repo.insert_set(empty)
        assert repo.get_set("empty").recommendations == []

    def test_latest_for_user(self, seeded_db):
        repo = RecommendationRepository(seeded_db)
        repo.insert_set(_rec_set("older", NOW - timedelta(days=1)))
        repo.insert_set(_rec_set("newer", NOW))
        assert repo.get_latest_for_user("user-1").id == "newer"
        assert repo.count_sets_for_user("user-1") == 2
        assert repo.get_latest_for_user("someone-else") is None

    def test_set_delete_cascades_to_items(self, seeded_db):
        RecommendationRepository(seeded_db).insert_set(_rec_set())
        seeded_db.execute("DELETE FROM recommendation_sets WHERE id = 'set-1';")
        assert seeded_db.execute("SELECT COUNT(*) FROM recommendation_items;").fetchone()[0] == 0


# ── Run metadata ───────────────────────────────────────────────────────────────

class TestRunMetadataRepository:
    def test_insert_update_fetch(self, in_memory_db):
        repo = RunMetadataRepository(in_memory_db)
        run = RunMetadata(
            run_slug="slug-1", pipeline_stage="recommend", user_id="user-1",
            config_snapshot={"debug": False}, started_at=NOW,
        )
        run.run_id = repo.insert_run(run)
        run.status = "success"
        run.rows_processed = 7
        run.finished_at = NOW + timedelta(seconds=2)
        repo.update_run(run)

        fetched = repo.get_run_by_slug("slug-1")
        assert fetched.status == "success"
        assert fetched.rows_processed == 7
        assert fetched.user_id == "user-1"
        assert fetched.config_snapshot == {"debug": False}

    def test_update_without_id(self, in_memory_db):
        run = RunMetadata(run_slug="s", pipeline_stage="import", config_snapshot={}, started_at=NOW)
        with pytest.raises(ValueError):
            RunMetadataRepository(in_memory_db).update_run(run)

    def test_recent_runs_filtered_by_stage(self, in_memory_db):
        repo = RunMetadataRepository(in_memory_db)
        for n, stage in enumerate(["import", "recommend", "recommend"]):
            repo.insert_run(RunMetadata(
                run_slug=f"s{n}", pipeline_stage=stage, config_snapshot={},
                started_at=NOW + timedelta(minutes=n),
            ))
        assert [r.run_slug for r in repo.get_recent_runs("recommend")] == ["s2", "s1"]
        assert len(repo.get_recent_runs(limit=2)) == 2
