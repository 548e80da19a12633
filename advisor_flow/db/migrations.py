"""
Schema migrations for the path store.

``apply_schema()`` creates the current base tables; everything that changes
an existing database afterwards is a migration here. Applied migrations are
recorded in ``schema_versions`` and never re-run. There are no down
migrations.

To add one, write ``migration_NNNN_<what>(conn)`` and append it to
``MIGRATIONS``; order of that dict is application order.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable

logger = logging.getLogger(__name__)

MigrationFn = Callable[[sqlite3.Connection], None]

_VERSION_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS schema_versions (
        version_id  TEXT    NOT NULL PRIMARY KEY,
        applied_at  TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
        description TEXT
    );
"""


# ── Migrations ────────────────────────────────────────────────────────────────

def migration_0001_bootstrap(conn: sqlite3.Connection) -> None:
    """Baseline marker for databases created by ``apply_schema()``."""


MIGRATIONS: dict[str, tuple[MigrationFn, str]] = {
    "0001_bootstrap": (
        migration_0001_bootstrap,
        "Baseline: decision_paths and decision_path_entries",
    ),
}


# ── Runner ────────────────────────────────────────────────────────────────────

def pending_migrations(conn: sqlite3.Connection) -> list[str]:
    """Ids of migrations not yet recorded in ``schema_versions``, in order."""
    conn.execute(_VERSION_TABLE_DDL)
    done = {row[0] for row in conn.execute("SELECT version_id FROM schema_versions;")}
    return [version_id for version_id in MIGRATIONS if version_id not in done]


def run_migrations(conn: sqlite3.Connection) -> int:
    """Apply pending migrations, each committed together with its version row.

    Returns:
        Number of migrations applied by this call.

    Raises:
        Exception: Whatever a failing migration raised; that migration is
            rolled back and later ones are not attempted.
    """
    pending = pending_migrations(conn)
    conn.commit()
    if not pending:
        logger.debug("Schema up to date (%d migrations).", len(MIGRATIONS))
        return 0

    for version_id in pending:
        fn, description = MIGRATIONS[version_id]
        logger.info("Applying migration %s: %s", version_id, description)
        try:
            fn(conn)
            conn.execute(
                "INSERT INTO schema_versions(version_id, description) VALUES (?, ?);",
                (version_id, description),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            logger.exception("Migration %s failed.", version_id)
            raise

    logger.info("Applied %d migration(s).", len(pending))
    return len(pending)
