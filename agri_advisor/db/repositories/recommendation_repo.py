"""
Repositories for recommendation sets/items and pipeline run metadata.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from agri_advisor.db.repositories.base import (
    BaseRepository,
    from_db_json,
    to_db_json,
    to_db_timestamp,
)
from agri_advisor.models.meta import RunMetadata
from agri_advisor.models.recommendation import RecommendationItem, RecommendationSet

logger = logging.getLogger(__name__)


class RecommendationRepository(BaseRepository):
    """Read/write access to ``recommendation_sets`` and ``recommendation_items``."""

    def insert_set(self, rec_set: RecommendationSet) -> str:
        """Persist a set and all of its items, preserving item order.

        Args:
            rec_set: The ``RecommendationSet`` to persist.

        Returns:
            The set id.

        Raises:
            sqlite3.IntegrityError: On a duplicate set id or unknown ``user_id``.
        """
        self.execute(
            """
            INSERT INTO recommendation_sets (id, user_id, summary, created_at)
            VALUES (?, ?, ?, ?);
            """,
            (
                rec_set.id,
                rec_set.user_id,
                rec_set.summary,
                to_db_timestamp(rec_set.created_at),
            ),
        )
        if rec_set.recommendations:
            self.executemany(
                """
                INSERT INTO recommendation_items (
                    set_id, item_id, position, type, title, description,
                    confidence, data, source, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                [
                    (
                        rec_set.id,
                        item.id,
                        position,
                        item.type.value,
                        item.title,
                        item.description,
                        item.confidence,
                        to_db_json(item.data),
                        item.source.value,
                        to_db_timestamp(item.created_at),
                    )
                    for position, item in enumerate(rec_set.recommendations)
                ],
            )
        logger.debug(
            "Stored recommendation set %s (%d items).",
            rec_set.id, len(rec_set.recommendations),
        )
        return rec_set.id

    def get_set(self, set_id: str) -> Optional[RecommendationSet]:
        """Fetch a set with its items in rank order."""
        row = self.fetchone("SELECT * FROM recommendation_sets WHERE id = ?;", (set_id,))
        return self._hydrate(row) if row else None

    def get_latest_for_user(self, user_id: str) -> Optional[RecommendationSet]:
        """Fetch the most recently created set for a user, or ``None``."""
        row = self.fetchone(
            """
            SELECT * FROM recommendation_sets
            WHERE user_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT 1;
            """,
            (user_id,),
        )
        return self._hydrate(row) if row else None

    def count_sets_for_user(self, user_id: str) -> int:
        return self.count_rows(
            "SELECT COUNT(*) AS n FROM recommendation_sets WHERE user_id = ?;",
            (user_id,),
        )

    def _hydrate(self, set_row: sqlite3.Row) -> RecommendationSet:
        item_rows = self.fetchall(
            """
            SELECT * FROM recommendation_items
            WHERE set_id = ?
            ORDER BY position;
            """,
            (set_row["id"],),
        )
        return RecommendationSet(
            id=set_row["id"],
            user_id=set_row["user_id"],
            recommendations=[_row_to_item(r) for r in item_rows],
            summary=set_row["summary"],
            created_at=set_row["created_at"],
        )


class RunMetadataRepository(BaseRepository):
    """Read/write access to ``run_metadata``."""

    def insert_run(self, run: RunMetadata) -> int:
        """Insert a new run metadata record and return its ``run_id``."""
        self.execute(
            """
            INSERT INTO run_metadata (
                run_slug, pipeline_stage, status, user_id, config_snapshot,
                rows_processed, error_message, started_at, finished_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                run.run_slug,
                run.pipeline_stage,
                run.status,
                run.user_id,
                json.dumps(run.config_snapshot, default=str),
                run.rows_processed,
                run.error_message,
                to_db_timestamp(run.started_at),
                to_db_timestamp(run.finished_at),
            ),
        )
        return self.last_insert_rowid()

    def update_run(self, run: RunMetadata) -> None:
        """Update the mutable fields of an existing run record.

        Raises:
            ValueError: If ``run.run_id`` is ``None``.
        """
        if run.run_id is None:
            raise ValueError("Cannot update RunMetadata without a run_id.")
        self.execute(
            """
            UPDATE run_metadata SET
                status         = ?,
                rows_processed = ?,
                error_message  = ?,
                finished_at    = ?
            WHERE run_id = ?;
            """,
            (
                run.status,
                run.rows_processed,
                run.error_message,
                to_db_timestamp(run.finished_at),
                run.run_id,
            ),
        )

    def get_run_by_slug(self, run_slug: str) -> Optional[RunMetadata]:
        row = self.fetchone("SELECT * FROM run_metadata WHERE run_slug = ?;", (run_slug,))
        return _row_to_run(row) if row else None

    def get_recent_runs(
        self,
        pipeline_stage: Optional[str] = None,
        limit: int = 20,
    ) -> list[RunMetadata]:
        """Fetch recent run records, most recent first, optionally for one stage."""
        if pipeline_stage:
            rows = self.fetchall(
                """
                SELECT * FROM run_metadata
                WHERE pipeline_stage = ?
                ORDER BY started_at DESC, run_id DESC LIMIT ?;
                """,
                (pipeline_stage, limit),
            )
        else:
            rows = self.fetchall(
                "SELECT * FROM run_metadata ORDER BY started_at DESC, run_id DESC LIMIT ?;",
                (limit,),
            )
        return [_row_to_run(r) for r in rows]


# ── Private helpers ────────────────────────────────────────────────────────────

def _row_to_item(row: sqlite3.Row) -> RecommendationItem:
    return RecommendationItem(
        id=row["item_id"],
        type=row["type"],
        title=row["title"],
        description=row["description"],
        confidence=row["confidence"],
        data=from_db_json(row["data"]),
        source=row["source"],
        created_at=row["created_at"],
    )


def _row_to_run(row: sqlite3.Row) -> RunMetadata:
    return RunMetadata(
        run_id=row["run_id"],
        run_slug=row["run_slug"],
        pipeline_stage=row["pipeline_stage"],
        status=row["status"],
        user_id=row["user_id"],
        config_snapshot=from_db_json(row["config_snapshot"]),
        rows_processed=row["rows_processed"],
        error_message=row["error_message"],
        started_at=row["started_at"],
        finished_at=row["finished_at"],
    )
