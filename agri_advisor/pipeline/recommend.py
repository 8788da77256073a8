"""
RecommendStage — generate, store and report a user's recommendation set.

Recommendation flow
-------------------
  1. Look up the user (unknown user -> ValueError, run recorded as failed).
  2. Load all of the user's analyses and chat messages.
  3. generate_recommendations() with the configured caps.
  4. Persist the set and its items (skipped with persist=False).
  5. Write CSV + JSON reports to config.data.report_dir (skipped with
     write_reports=False).

The generated set is kept on ``RecommendStage.last_set`` for display.
Returns the number of items in the set.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Optional

from agri_advisor.config import AppConfig
from agri_advisor.db.repositories.analysis_repo import AnalysisResultRepository
from agri_advisor.db.repositories.chat_repo import ChatRepository
from agri_advisor.db.repositories.recommendation_repo import RecommendationRepository
from agri_advisor.db.repositories.user_repo import UserRepository
from agri_advisor.models.meta import RunMetadata
from agri_advisor.models.recommendation import RecommendationInput, RecommendationSet
from agri_advisor.pipeline.base import PipelineStage
from agri_advisor.recommendations.engine import generate_recommendations
from agri_advisor.recommendations.reporter import (
    write_recommendation_csv,
    write_recommendation_json,
)
from agri_advisor.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class RecommendStage(PipelineStage):
    """Turn one user's stored analyses and chats into a persisted RecommendationSet."""

    stage_name = "recommend"

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
        clock: Callable[[], datetime] = utcnow,
        set_id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        super().__init__(config, db_path)
        self.clock = clock
        self.set_id_factory = set_id_factory
        self.last_set: Optional[RecommendationSet] = None
        self.report_paths: list[Path] = []

    def _execute(
        self,
        run: RunMetadata,
        user_id: str | None = None,
        season: str | None = None,
        persist: bool = True,
        write_reports: bool = True,
        **kwargs,
    ) -> int:
        """Generate a set for ``user_id``.

        Args:
            run:           In-progress RunMetadata (mutable).
            user_id:       User to generate recommendations for.
            season:        Optional season tag; unknown values are ignored.
            persist:       Store the set in ``recommendation_sets``/``_items``.
            write_reports: Write CSV + JSON files to ``config.data.report_dir``.

        Returns:
            Number of items in the generated set.
        """
        if not user_id:
            raise ValueError("RecommendStage requires user_id.")

        with self._connect() as conn:
            if UserRepository(conn).get_by_id(user_id) is None:
                raise ValueError(f"Unknown user '{user_id}'.")

            analyses = AnalysisResultRepository(conn).get_for_user(user_id)
            messages = ChatRepository(conn).get_messages_for_user(user_id)
            logger.info(
                "Loaded %d analysis(es) and %d message(s) for user=%s.",
                len(analyses), len(messages), user_id,
            )

            rec_set = generate_recommendations(
                RecommendationInput(
                    user_id=user_id,
                    analysis_results=analyses,
                    chat_history=messages,
                    current_season=season,
                ),
                self.config.recommendations,
                clock=self.clock,
                set_id_factory=self.set_id_factory,
            )

            if persist:
                RecommendationRepository(conn).insert_set(rec_set)

        self.last_set = rec_set
        self.report_paths = []
        if write_reports:
            output_dir = Path(self.config.data.report_dir)
            self.report_paths = [
                write_recommendation_csv(rec_set, output_dir),
                write_recommendation_json(rec_set, output_dir, run_slug=run.run_slug),
            ]

        return len(rec_set.recommendations)
