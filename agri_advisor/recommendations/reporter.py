"""
Recommendation report writer: CSV and JSON output for recommendation sets.

All functions are pure I/O — no DB access.  They consume an in-memory
RecommendationSet and write human-readable + machine-readable files.

Output files (written by RecommendStage)
-----------------------------------------
  data/outputs/recommendations/
    recommendations_{user}_{date}.csv   -- one row per item, in rank order
    recommendations_{user}_{date}.json  -- same items plus the summary
"""

from __future__ import annotations

import csv
import json
import logging
import re
from datetime import date
from pathlib import Path

from agri_advisor.models.recommendation import RecommendationSet

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1.0.0"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def _file_stem(rec_set: RecommendationSet, run_date: date | None) -> str:
    if run_date is None:
        run_date = rec_set.created_at.date()
    user = _UNSAFE_FILENAME_CHARS.sub("_", rec_set.user_id) or "user"
    return f"recommendations_{user}_{run_date}"


def write_recommendation_csv(
    rec_set: RecommendationSet,
    output_dir: Path,
    run_date: date | None = None,
) -> Path:
    """Write the items of a set to a CSV file.

    Columns: rank, id, type, source, confidence, title, description.

    Args:
        rec_set:    Set returned by ``generate_recommendations``.
        output_dir: Directory to write the file (created if missing).
        run_date:   Date label for the filename. Defaults to the set's date.

    Returns:
        Path to the written CSV file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / f"{_file_stem(rec_set, run_date)}.csv"

    fieldnames = ["rank", "id", "type", "source", "confidence", "title", "description"]

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for rank, item in enumerate(rec_set.recommendations, start=1):
            writer.writerow(
                {
                    "rank":        rank,
                    "id":          item.id,
                    "type":        item.type.value,
                    "source":      item.source.value,
                    "confidence":  f"{item.confidence:.2f}",
                    "title":       item.title,
                    "description": item.description,
                }
            )

    logger.info(
        "Recommendation CSV written: %s (%d rows)", csv_path, len(rec_set.recommendations)
    )
    return csv_path


def write_recommendation_json(
    rec_set: RecommendationSet,
    output_dir: Path,
    run_date: date | None = None,
    run_slug: str = "",
) -> Path:
    """Write a set (items, supporting data and summary) to a JSON file.

    Args:
        rec_set:    Set returned by ``generate_recommendations``.
        output_dir: Target directory.
        run_date:   Date label. Defaults to the set's date.
        run_slug:   Pipeline run UUID for provenance.

    Returns:
        Path to the written JSON file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"{_file_stem(rec_set, run_date)}.json"

    payload: dict = {
        "schema_version": SCHEMA_VERSION,
        "set_id":         rec_set.id,
        "user_id":        rec_set.user_id,
        "generated_at":   rec_set.created_at.isoformat(),
        "run_slug":       run_slug,
        "summary":        rec_set.summary,
        "recommendations": [
            {
                "rank":        rank,
                "id":          item.id,
                "type":        item.type.value,
                "source":      item.source.value,
                "confidence":  item.confidence,
                "title":       item.title,
                "description": item.description,
                "data":        item.data,
            }
            for rank, item in enumerate(rec_set.recommendations, start=1)
        ],
    }

    json_path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    logger.info("Recommendation JSON written: %s", json_path)
    return json_path
