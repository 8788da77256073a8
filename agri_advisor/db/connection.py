"""
SQLite connection management.

``get_connection()`` yields a connection that:
  - enforces foreign keys, so deleting a user cascades to its conversations,
    analyses and recommendation sets;
  - waits ``busy_timeout_ms`` on lock contention;
  - optionally runs in WAL mode (ignored for ``":memory:"`` databases);
  - returns ``sqlite3.Row`` rows, addressable by column name;
  - commits on clean exit and rolls back on exception.

Usage::

    from agri_advisor.db.connection import get_connection

    with get_connection(config.database.db_path) as conn:
        UserRepository(conn).upsert(user)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def configure_connection(
    conn: sqlite3.Connection,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
    is_memory: bool = False,
) -> sqlite3.Connection:
    """Apply row factory and pragmas to an already-open connection."""
    conn.row_factory = sqlite3.Row
    # Pragmas must precede any DML/DDL.
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
    if wal_mode and not is_memory:
        conn.execute("PRAGMA journal_mode = WAL;")
    return conn


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    Parent directories of a file database are created if missing.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.
        wal_mode: Enable WAL journal mode for file databases.
        busy_timeout_ms: Milliseconds to wait on a locked database.

    Yields:
        An open, configured ``sqlite3.Connection``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or stays locked.
    """
    is_memory = db_path == MEMORY_DB
    if not is_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    try:
        configure_connection(conn, wal_mode, busy_timeout_ms, is_memory)
        yield conn
        conn.commit()
    except Exception:
        logger.debug("Rolling back transaction on %s.", db_path)
        conn.rollback()
        raise
    finally:
        conn.close()
