"""
SQLite schema DDL — all CREATE TABLE and CREATE INDEX statements.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` is **idempotent**:
safe to call on an already-initialized database (e.g. after restart or in tests).

Table creation order respects foreign key dependencies:
  1. users                 (no FKs)
  2. chat_conversations    (→ users, cascade)
  3. chat_messages         (→ chat_conversations, cascade)
  4. analysis_results      (→ users, cascade)
  5. recommendation_sets   (→ users, cascade)
  6. recommendation_items  (→ recommendation_sets, cascade)
  7. run_metadata          (no FKs; user_id kept as plain text for audit)

Timestamps are stored as ISO-8601 UTC strings.  JSON payloads (``data``,
``config_snapshot``) are stored as TEXT.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_USERS = """
CREATE TABLE IF NOT EXISTS users (
    id          TEXT    PRIMARY KEY,
    email       TEXT    NOT NULL UNIQUE,
    name        TEXT    NOT NULL,
    photo_url   TEXT,
    created_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_CHAT_CONVERSATIONS = """
CREATE TABLE IF NOT EXISTS chat_conversations (
    id          TEXT    PRIMARY KEY,
    user_id     TEXT    NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title       TEXT    NOT NULL,
    created_at  TEXT,
    updated_at  TEXT
);
"""

_DDL_CHAT_CONVERSATIONS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_conversations_user
    ON chat_conversations(user_id);
"""

_DDL_CHAT_MESSAGES = """
CREATE TABLE IF NOT EXISTS chat_messages (
    id               TEXT    PRIMARY KEY,
    conversation_id  TEXT    NOT NULL REFERENCES chat_conversations(id) ON DELETE CASCADE,
    role             TEXT    NOT NULL,
    content          TEXT    NOT NULL DEFAULT '',
    created_at       TEXT
);
"""

_DDL_CHAT_MESSAGES_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_messages_conversation_time
    ON chat_messages(conversation_id, created_at);
"""

_DDL_ANALYSIS_RESULTS = """
CREATE TABLE IF NOT EXISTS analysis_results (
    id          TEXT    PRIMARY KEY,
    user_id     TEXT    NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    type        TEXT    NOT NULL,
    data        TEXT    NOT NULL DEFAULT '{}',
    created_at  TEXT,
    updated_at  TEXT
);
"""

_DDL_ANALYSIS_RESULTS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_analysis_user_time
    ON analysis_results(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_analysis_user_type
    ON analysis_results(user_id, type);
"""

_DDL_RECOMMENDATION_SETS = """
CREATE TABLE IF NOT EXISTS recommendation_sets (
    id          TEXT    PRIMARY KEY,
    user_id     TEXT    NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    summary     TEXT    NOT NULL,
    created_at  TEXT    NOT NULL
);
"""

_DDL_RECOMMENDATION_SETS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_rec_sets_user_time
    ON recommendation_sets(user_id, created_at);
"""

_DDL_RECOMMENDATION_ITEMS = """
CREATE TABLE IF NOT EXISTS recommendation_items (
    row_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    set_id       TEXT    NOT NULL REFERENCES recommendation_sets(id) ON DELETE CASCADE,
    item_id      TEXT    NOT NULL,
    position     INTEGER NOT NULL,
    type         TEXT    NOT NULL,
    title        TEXT    NOT NULL,
    description  TEXT    NOT NULL,
    confidence   REAL    NOT NULL CHECK (confidence >= 0.0 AND confidence <= 1.0),
    data         TEXT    NOT NULL DEFAULT '{}',
    source       TEXT    NOT NULL,
    created_at   TEXT    NOT NULL,
    UNIQUE (set_id, item_id)
);
"""

_DDL_RECOMMENDATION_ITEMS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_rec_items_set
    ON recommendation_items(set_id, position);
"""

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug        TEXT    NOT NULL UNIQUE,
    pipeline_stage  TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'started',
    user_id         TEXT,
    config_snapshot TEXT    NOT NULL,
    rows_processed  INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    started_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    finished_at     TEXT
);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_USERS,
    _DDL_CHAT_CONVERSATIONS,
    _DDL_CHAT_CONVERSATIONS_INDEXES,
    _DDL_CHAT_MESSAGES,
    _DDL_CHAT_MESSAGES_INDEXES,
    _DDL_ANALYSIS_RESULTS,
    _DDL_ANALYSIS_RESULTS_INDEXES,
    _DDL_RECOMMENDATION_SETS,
    _DDL_RECOMMENDATION_SETS_INDEXES,
    _DDL_RECOMMENDATION_ITEMS,
    _DDL_RECOMMENDATION_ITEMS_INDEXES,
    _DDL_RUN_METADATA,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = [
    "users",
    "chat_conversations",
    "chat_messages",
    "analysis_results",
    "recommendation_sets",
    "recommendation_items",
    "run_metadata",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent — safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return user table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return explicitly created index names, sorted alphabetically.

    SQLite's implicit ``sqlite_autoindex_*`` indexes (from PRIMARY KEY and
    UNIQUE constraints) are excluded.
    """
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type='index' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
