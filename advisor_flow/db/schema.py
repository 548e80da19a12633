"""
SQLite schema DDL for the path store.

Every statement uses ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables:
  1. decision_paths          one row per (user_id, advisor_id); carries the
                             optimistic ``version`` counter, the completion
                             flag and the cached recommendation JSON. Lookups
                             by user use the index behind the UNIQUE key.
  2. decision_path_entries   answered steps (→ decision_paths). The
                             ``UNIQUE(path_id, step)`` constraint means two
                             writers can never both record the same step.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_DECISION_PATHS = """
CREATE TABLE IF NOT EXISTS decision_paths (
    path_id              INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id              TEXT    NOT NULL,
    advisor_id           TEXT    NOT NULL,
    version              INTEGER NOT NULL DEFAULT 1,
    completed            INTEGER NOT NULL DEFAULT 0,
    final_recommendation TEXT,
    created_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    updated_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (user_id, advisor_id)
);
"""

_DDL_DECISION_PATHS_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_paths_advisor_completed
    ON decision_paths(advisor_id, completed);
"""

_DDL_DECISION_PATH_ENTRIES = """
CREATE TABLE IF NOT EXISTS decision_path_entries (
    entry_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    path_id      INTEGER NOT NULL REFERENCES decision_paths(path_id) ON DELETE CASCADE,
    step         INTEGER NOT NULL CHECK (step >= 0),
    option_id    TEXT    NOT NULL,
    value        TEXT    NOT NULL,
    title        TEXT    NOT NULL,
    description  TEXT    NOT NULL DEFAULT '',
    selected_at  TEXT    NOT NULL,
    UNIQUE (path_id, step)
);
"""

_DDL_DECISION_PATH_ENTRIES_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_entries_selected_at
    ON decision_path_entries(selected_at);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_DECISION_PATHS,
    _DDL_DECISION_PATHS_INDEXES,
    _DDL_DECISION_PATH_ENTRIES,
    _DDL_DECISION_PATH_ENTRIES_INDEXES,
]

# Table names for introspection / tests
ALL_TABLE_NAMES = [
    "decision_paths",
    "decision_path_entries",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent; safe to call on an already-initialized database.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.debug("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return index names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
