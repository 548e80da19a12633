"""
Repository for decision paths (``decision_paths`` + ``decision_path_entries``).

Concurrency
-----------
``save()`` is a compare-and-swap on ``decision_paths.version``:

  - ``path.version == 0`` (never saved): INSERT. A concurrent first save for
    the same ``(user_id, advisor_id)`` hits ``UNIQUE(user_id, advisor_id)``.
  - otherwise: ``UPDATE ... WHERE version = ?``. Zero rows updated means
    another writer saved first.

Both cases raise ``StoreConflict`` and the caller's transaction is rolled
back by ``get_connection()``. On success the entries are rewritten and the
returned path carries the new version. Entries are additionally guarded by
``UNIQUE(path_id, step)``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Optional

from pydantic import ValidationError

from advisor_flow.db.repositories.base import BaseRepository
from advisor_flow.errors import StoreConflict
from advisor_flow.models.path import DecisionPath, PathEntry
from advisor_flow.models.recommendation import FinalRecommendation
from advisor_flow.utils.time_utils import parse_iso, to_iso, utcnow

logger = logging.getLogger(__name__)


class DecisionPathRepository(BaseRepository):
    """Read/write access to stored decision paths."""

    # ── Reads ─────────────────────────────────────────────────────────────────

    def load(self, user_id: str, advisor_id: str) -> DecisionPath:
        """Return the stored path, or a fresh empty one if none exists.

        Raises:
            StoreConflict: If the stored rows do not form a valid path.
        """
        # Header first: a version read before the entries can only be older
        # than them, which makes a later save fail rather than succeed stale.
        row = self.fetchone(
            """
            SELECT path_id, version, completed
            FROM decision_paths
            WHERE user_id = ? AND advisor_id = ?;
            """,
            (user_id, advisor_id),
        )
        if row is None:
            return DecisionPath.empty(user_id, advisor_id)
        return self._build_path(user_id, advisor_id, row)

    def advisor_ids_for_user(self, user_id: str) -> list[str]:
        """Advisor ids the user has a stored path for, sorted.

        Only the keys are read, so one malformed path cannot hide the others;
        callers ``load()`` each path separately.
        """
        rows = self.fetchall(
            "SELECT advisor_id FROM decision_paths WHERE user_id = ? ORDER BY advisor_id;",
            (user_id,),
        )
        return [r["advisor_id"] for r in rows]

    def get_cached_recommendation(self, user_id: str, advisor_id: str) -> Optional[dict[str, Any]]:
        """The recommendation JSON stored with a completed path, if any."""
        row = self.fetchone(
            """
            SELECT final_recommendation
            FROM decision_paths
            WHERE user_id = ? AND advisor_id = ?;
            """,
            (user_id, advisor_id),
        )
        if row is None or row["final_recommendation"] is None:
            return None
        return json.loads(row["final_recommendation"])

    def all_entries(self, advisor_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Flat entry rows across all users, for export.

        Args:
            advisor_id: Restrict to one advisor; ``None`` for all.

        Returns:
            Dicts with keys user_id, advisor_id, completed, step, option_id,
            value, title, selected_at; ordered by user, advisor, step.
        """
        sql = """
            SELECT p.user_id, p.advisor_id, p.completed,
                   e.step, e.option_id, e.value, e.title, e.selected_at
            FROM decision_path_entries e
            JOIN decision_paths p ON p.path_id = e.path_id
        """
        params: tuple[Any, ...] = ()
        if advisor_id is not None:
            sql += " WHERE p.advisor_id = ?"
            params = (advisor_id,)
        sql += " ORDER BY p.user_id, p.advisor_id, e.step;"
        return [
            {
                "user_id": r["user_id"],
                "advisor_id": r["advisor_id"],
                "completed": bool(r["completed"]),
                "step": r["step"],
                "option_id": r["option_id"],
                "value": r["value"],
                "title": r["title"],
                "selected_at": r["selected_at"],
            }
            for r in self.fetchall(sql, params)
        ]

    # ── Writes ────────────────────────────────────────────────────────────────

    def save(
        self,
        path: DecisionPath,
        recommendation: Optional[FinalRecommendation] = None,
    ) -> DecisionPath:
        """Persist ``path`` if nobody else has saved it since it was loaded.

        Args:
            path:           Path to store; ``path.version`` is the version it
                            was loaded at.
            recommendation: Cached alongside a completed path; ignored and
                            cleared for incomplete paths.

        Returns:
            ``path`` with its new version.

        Raises:
            StoreConflict: The stored version moved on (lost race).
        """
        rec_json = (
            json.dumps(recommendation.to_record(), sort_keys=True)
            if path.completed and recommendation is not None
            else None
        )
        now = to_iso(utcnow())
        new_version = path.version + 1

        try:
            if path.version == 0:
                cursor = self.execute(
                    """
                    INSERT INTO decision_paths (
                        user_id, advisor_id, version, completed,
                        final_recommendation, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?);
                    """,
                    (path.user_id, path.advisor_id, new_version,
                     int(path.completed), rec_json, now, now),
                )
                path_id = cursor.lastrowid
            else:
                cursor = self.execute(
                    """
                    UPDATE decision_paths
                    SET version = ?, completed = ?, final_recommendation = ?, updated_at = ?
                    WHERE user_id = ? AND advisor_id = ? AND version = ?;
                    """,
                    (new_version, int(path.completed), rec_json, now,
                     path.user_id, path.advisor_id, path.version),
                )
                if cursor.rowcount == 0:
                    raise StoreConflict(
                        f"Path ({path.user_id}, {path.advisor_id}) changed since "
                        f"version {path.version} was loaded."
                    )
                path_id = self._path_id(path.user_id, path.advisor_id)

            self.execute("DELETE FROM decision_path_entries WHERE path_id = ?;", (path_id,))
            self.executemany(
                """
                INSERT INTO decision_path_entries (
                    path_id, step, option_id, value, title, description, selected_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                [
                    (path_id, e.step, e.option_id, e.value, e.title,
                     e.description, to_iso(e.timestamp))
                    for e in path.entries
                ],
            )
        except sqlite3.IntegrityError as exc:
            raise StoreConflict(
                f"Path ({path.user_id}, {path.advisor_id}) was created concurrently: {exc}"
            ) from exc
        except sqlite3.OperationalError as exc:
            if "locked" not in str(exc):
                raise
            raise StoreConflict(
                f"Path ({path.user_id}, {path.advisor_id}) is being written by another request."
            ) from exc

        logger.debug(
            "Saved path (%s, %s) v%d: %d entries, completed=%s",
            path.user_id, path.advisor_id, new_version, len(path.entries), path.completed,
        )
        return path.model_copy(update={"version": new_version})

    def reset(self, user_id: str, advisor_id: str) -> bool:
        """Delete the stored path for a key.

        Returns:
            ``True`` if a path existed and was removed.
        """
        self.execute(
            """
            DELETE FROM decision_path_entries
            WHERE path_id IN (
                SELECT path_id FROM decision_paths WHERE user_id = ? AND advisor_id = ?
            );
            """,
            (user_id, advisor_id),
        )
        cursor = self.execute(
            "DELETE FROM decision_paths WHERE user_id = ? AND advisor_id = ?;",
            (user_id, advisor_id),
        )
        return cursor.rowcount > 0

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _path_id(self, user_id: str, advisor_id: str) -> int:
        row = self.fetchone(
            "SELECT path_id FROM decision_paths WHERE user_id = ? AND advisor_id = ?;",
            (user_id, advisor_id),
        )
        assert row is not None
        return int(row["path_id"])

    def _build_path(self, user_id: str, advisor_id: str, row: sqlite3.Row) -> DecisionPath:
        entry_rows = self.fetchall(
            """
            SELECT step, option_id, value, title, description, selected_at
            FROM decision_path_entries
            WHERE path_id = ?
            ORDER BY step;
            """,
            (row["path_id"],),
        )
        try:
            return DecisionPath(
                user_id=user_id,
                advisor_id=advisor_id,
                entries=tuple(
                    PathEntry(
                        step=r["step"],
                        option_id=r["option_id"],
                        value=r["value"],
                        title=r["title"],
                        description=r["description"],
                        timestamp=parse_iso(r["selected_at"]),
                    )
                    for r in entry_rows
                ),
                completed=bool(row["completed"]),
                version=int(row["version"]),
            )
        except ValidationError as exc:
            raise StoreConflict(
                f"Stored path ({user_id}, {advisor_id}) is malformed: {exc}"
            ) from exc
