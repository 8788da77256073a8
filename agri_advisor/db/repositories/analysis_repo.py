"""
Repository for stored analysis results.

``data`` is kept verbatim as JSON text; decoding into typed payloads happens
in ``AnalysisResult.payload()``, never here.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from agri_advisor.db.repositories.base import (
    BaseRepository,
    from_db_json,
    to_db_json,
    to_db_timestamp,
)
from agri_advisor.models.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisResultRepository(BaseRepository):
    """Read/write access to the ``analysis_results`` table."""

    def insert(self, result: AnalysisResult) -> str:
        """Insert an analysis result and return its id.

        Raises:
            sqlite3.IntegrityError: On a duplicate id or unknown ``user_id``.
        """
        self.execute(
            """
            INSERT INTO analysis_results (id, user_id, type, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            _params(result),
        )
        return result.id

    def upsert(self, result: AnalysisResult) -> str:
        """Insert an analysis result or replace the type/data of an existing id."""
        self.execute(
            """
            INSERT INTO analysis_results (id, user_id, type, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                type       = excluded.type,
                data       = excluded.data,
                created_at = excluded.created_at,
                updated_at = excluded.updated_at;
            """,
            _params(result),
        )
        return result.id

    def get_by_id(self, analysis_id: str) -> Optional[AnalysisResult]:
        row = self.fetchone("SELECT * FROM analysis_results WHERE id = ?;", (analysis_id,))
        return _row_to_result(row) if row else None

    def get_for_user(
        self,
        user_id: str,
        analysis_type: Optional[str] = None,
    ) -> list[AnalysisResult]:
        """Fetch a user's analyses, newest first, optionally of one type.

        Args:
            user_id: Owner of the analyses.
            analysis_type: If provided, filter to this ``type`` string.

        Returns:
            List of ``AnalysisResult`` (rows without ``created_at`` last).
        """
        if analysis_type:
            rows = self.fetchall(
                """
                SELECT * FROM analysis_results
                WHERE user_id = ? AND type = ?
                ORDER BY created_at IS NULL, created_at DESC, id;
                """,
                (user_id, analysis_type),
            )
        else:
            rows = self.fetchall(
                """
                SELECT * FROM analysis_results
                WHERE user_id = ?
                ORDER BY created_at IS NULL, created_at DESC, id;
                """,
                (user_id,),
            )
        return [_row_to_result(r) for r in rows]

    def count_by_type(self, user_id: str) -> dict[str, int]:
        """Return ``{type: count}`` for one user's analyses."""
        rows = self.fetchall(
            """
            SELECT type, COUNT(*) AS n FROM analysis_results
            WHERE user_id = ?
            GROUP BY type ORDER BY type;
            """,
            (user_id,),
        )
        return {r["type"]: int(r["n"]) for r in rows}


# ── Private helpers ────────────────────────────────────────────────────────────

def _params(r: AnalysisResult) -> tuple:
    return (
        r.id,
        r.user_id,
        r.type,
        to_db_json(r.data),
        to_db_timestamp(r.created_at),
        to_db_timestamp(r.updated_at),
    )


def _row_to_result(row: sqlite3.Row) -> AnalysisResult:
    return AnalysisResult(
        id=row["id"],
        user_id=row["user_id"],
        type=row["type"],
        data=from_db_json(row["data"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
