"""
Agricultural Advisor — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, data import, recommendation run, ...).
  5. Report result to stdout; errors go to stderr as ``[ERROR] ...`` with exit code 1.

Install and run::

    pip install -e .
    agri-advisor --help
    agri-advisor init-db
    agri-advisor validate-config
    agri-advisor import-data --file data/import/bundle.json
    agri-advisor recommend --user-id u-123 --season spring
    agri-advisor show-latest --user-id u-123
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from agri_advisor.config import AppConfig, load_config
from agri_advisor.db.connection import get_connection
from agri_advisor.db.repositories.recommendation_repo import RecommendationRepository
from agri_advisor.db.schema import ALL_TABLE_NAMES, apply_schema
from agri_advisor.pipeline.import_data import ImportStage
from agri_advisor.pipeline.recommend import RecommendStage
from agri_advisor.reporting.formatters import format_recommendation_set, format_rejections
from agri_advisor.utils.logging import configure_logging

app = typer.Typer(
    name="agri-advisor",
    help="Agricultural business advisor — rule-based recommendations from analyses and chats.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None) -> AppConfig:
    """Load AppConfig, printing a friendly error and exiting on failure."""
    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except (ValidationError, ValueError) as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _connect(config: AppConfig, db_path: Optional[str]):
    return get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    """
    config = _load_config_or_exit(config_path)
    configure_logging(config.logging)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    try:
        with _connect(config, target_path) as conn:
            apply_schema(conn)
    except sqlite3.Error as exc:
        typer.echo(f"[ERROR] Database initialization failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    rec = config.recommendations

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:       {config.database.db_path}")
    typer.echo(f"  Report directory:    {config.data.report_dir}")
    typer.echo(f"  Analysis window:     {rec.analysis_window}")
    typer.echo(f"  Per-type limit:      {rec.per_type_limit}")
    typer.echo(f"  Chat message limit:  {rec.chat_message_limit}")
    typer.echo(f"  Max recommendations: {rec.max_recommendations}")
    typer.echo(f"  Log level:           {config.logging.level}")
    typer.echo(f"  Debug mode:          {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


@app.command("import-data")
def import_data(
    file: str = typer.Option(
        ...,
        "--file",
        help="JSON bundle with users, conversations, messages and analyses.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Import a JSON data bundle (upserts by id; invalid records are reported)."""
    config = _load_config_or_exit(config_path)
    configure_logging(config.logging)

    stage = ImportStage(config=config, db_path=db_path)
    try:
        run = stage.run(source_path=Path(file))
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except (ValueError, sqlite3.Error) as exc:
        typer.echo(f"[ERROR] Import failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Imported {run.rows_processed} record(s) from {file}.")
    if stage.rejected:
        typer.echo(f"[WARN] {len(stage.rejected)} record(s) rejected:", err=True)
        typer.echo(format_rejections(stage.rejected), err=True)
    typer.echo("[OK] Import complete.")


@app.command("recommend")
def recommend(
    user_id: str = typer.Option(
        ...,
        "--user-id",
        help="User to generate recommendations for.",
    ),
    season: Optional[str] = typer.Option(
        None,
        "--season",
        help="Current season: spring, summer, fall or winter.",
    ),
    no_persist: bool = typer.Option(
        False,
        "--no-persist",
        help="Do not store the generated set in the database.",
    ),
    no_report: bool = typer.Option(
        False,
        "--no-report",
        help="Do not write CSV/JSON report files.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Generate a ranked recommendation set for one user and print it."""
    config = _load_config_or_exit(config_path)
    configure_logging(config.logging)

    stage = RecommendStage(config=config, db_path=db_path)
    try:
        stage.run(
            user_id=user_id,
            season=season,
            persist=not no_persist,
            write_reports=not no_report,
        )
    except (ValueError, sqlite3.Error) as exc:
        typer.echo(f"[ERROR] Recommendation run failed: {exc}", err=True)
        raise typer.Exit(code=1)

    assert stage.last_set is not None
    typer.echo(format_recommendation_set(stage.last_set))
    for path in stage.report_paths:
        typer.echo(f"  Report: {path}")
    typer.echo("")
    typer.echo("[OK] Recommendations generated.")


@app.command("show-latest")
def show_latest(
    user_id: str = typer.Option(
        ...,
        "--user-id",
        help="User whose latest stored set should be shown.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the most recently stored recommendation set for a user."""
    config = _load_config_or_exit(config_path)
    configure_logging(config.logging)

    try:
        with _connect(config, db_path) as conn:
            rec_set = RecommendationRepository(conn).get_latest_for_user(user_id)
    except sqlite3.Error as exc:
        typer.echo(f"[ERROR] Could not read recommendations: {exc}", err=True)
        raise typer.Exit(code=1)

    if rec_set is None:
        typer.echo(f"[ERROR] No stored recommendations for user '{user_id}'.", err=True)
        raise typer.Exit(code=1)

    typer.echo(format_recommendation_set(rec_set))


if __name__ == "__main__":
    app()
