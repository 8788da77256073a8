"""
Base repository providing shared SQLite execution helpers.

All repositories inherit from ``BaseRepository`` and receive a
``sqlite3.Connection`` at construction time. The connection is assumed
to be opened and managed by the caller (typically via ``get_connection()``).

Design:
  - No ORM — all SQL is explicit and lives in repository methods.
  - Repositories speak Pydantic models, not raw dicts.
  - Datetimes are written as ISO-8601 UTC strings and parsed back leniently
    by the models' own validators.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional

from agri_advisor.utils.time_utils import ensure_utc

logger = logging.getLogger(__name__)


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialise a datetime for a TEXT timestamp column (``None`` passes through)."""
    return ensure_utc(value).isoformat() if value is not None else None


def to_db_json(value: Any) -> str:
    """Serialise a JSON payload for a TEXT column."""
    return json.dumps(value, default=str, sort_keys=True)


def from_db_json(text: Optional[str]) -> Any:
    """Parse a JSON TEXT column; unreadable payloads come back as ``{}``."""
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Unreadable JSON payload in database: %.60r", text)
        return {}


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def executemany(
        self,
        sql: str,
        params_list: list[tuple[Any, ...] | dict[str, Any]],
    ) -> sqlite3.Cursor:
        logger.debug("SQL (many): %s | count: %d", sql.strip(), len(params_list))
        return self.conn.executemany(sql, params_list)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        """Execute a query and return the first row, or ``None``."""
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        """Execute a query and return all rows."""
        return self.execute(sql, params).fetchall()

    def count_rows(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        """Run a ``SELECT COUNT(*) AS n ...`` query and return ``n``."""
        row = self.fetchone(sql, params)
        return int(row["n"]) if row is not None else 0

    def last_insert_rowid(self) -> int:
        row = self.fetchone("SELECT last_insert_rowid() AS rowid;")
        assert row is not None
        return int(row["rowid"])
