"""
SQLite connection management for the path store.

``get_connection()`` yields a connection that:
  - Enforces foreign keys (OFF by default in SQLite).
  - Uses WAL journal mode so status reads do not block advances.
  - Waits ``busy_timeout_ms`` on a locked database instead of failing at once.
  - Returns ``sqlite3.Row`` rows.
  - Commits on clean exit and rolls back on exception.

One connection per request; connections are never shared across threads.

Usage::

    from advisor_flow.db.connection import get_connection

    with get_connection("data/db/advisor_flow.db") as conn:
        repo = DecisionPathRepository(conn)
        path = repo.load("user-1", "budget_planner")
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    Parent directories of ``db_path`` are created if missing.

    Args:
        db_path: Database file, or ``":memory:"``.
        wal_mode: Enable WAL journal mode.
        busy_timeout_ms: Lock wait before ``OperationalError``.

    Yields:
        An open, configured ``sqlite3.Connection``.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL;")
        logger.debug("Opened %s (wal=%s, busy_timeout=%dms)", db_path, wal_mode, busy_timeout_ms)

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
