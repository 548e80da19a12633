"""
Progress API: the boundary request handlers call.

``ProgressService`` ties the pieces together for one request at a time:

    registry lookup → load path → navigator transition → synthesize (when
    complete) → compare-and-swap save

Each call opens its own connection via ``get_connection()`` and holds no
session state between calls, so one service instance can serve any number
of threads. Requests for different ``(user_id, advisor_id)`` keys never
coordinate; requests for the same key are serialized by the store's version
check.

Per-request failures (``NavigationError`` subclasses) come back as typed
results with ``ok == False``; they are never raised to the caller.
``ConfigurationError`` is only raised while building the registry.

Conflict retries
----------------
When a save loses a race, the request is retried up to ``conflict_retries``
times, but only while the reloaded path still has the entry count the
request first saw. If another request has already answered (or rewound) that
step, the answer is no longer meant for the current step and the caller gets
``StoreConflict`` instead.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from advisor_flow.config import AppConfig, resolve_project_path
from advisor_flow.db.connection import get_connection
from advisor_flow.db.migrations import run_migrations
from advisor_flow.db.repositories.path_repo import DecisionPathRepository
from advisor_flow.db.schema import apply_schema
from advisor_flow.errors import NavigationError, StoreConflict
from advisor_flow.models.path import DecisionPath
from advisor_flow.models.progress import (
    AdvanceResult,
    ProgressError,
    ResetResult,
    RewindResult,
    StatusResult,
)
from advisor_flow.models.recommendation import FinalRecommendation
from advisor_flow.models.tree import DecisionTree
from advisor_flow.navigation import navigator
from advisor_flow.recommendations.synthesizer import synthesize
from advisor_flow.registry.tree_registry import TreeRegistry
from advisor_flow.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Transition = Callable[[DecisionTree, DecisionPath], DecisionPath]


def _context(user_id: str, advisor_id: str) -> dict[str, str]:
    return {"user_id": user_id, "advisor_id": advisor_id}


class ProgressService:
    """Advance, rewind, inspect and reset decision paths.

    Attributes:
        registry:         Loaded tree registry.
        db_path:          SQLite path store location.
        conflict_retries: Extra attempts after a lost compare-and-swap.
    """

    def __init__(
        self,
        registry: TreeRegistry,
        db_path: str,
        *,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        conflict_retries: int = 1,
        clock: Optional[Clock] = None,
        init_schema: bool = True,
    ) -> None:
        self.registry = registry
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.conflict_retries = conflict_retries
        self._clock: Clock = clock or utcnow
        if init_schema:
            self.init_db()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        registry: TreeRegistry,
        clock: Optional[Clock] = None,
    ) -> "ProgressService":
        """Build a service from ``AppConfig`` (database and engine sections)."""
        db_path = config.database.db_path
        if db_path != ":memory:":
            db_path = str(resolve_project_path(db_path))
        return cls(
            registry,
            db_path,
            wal_mode=config.database.wal_mode,
            busy_timeout_ms=config.database.busy_timeout_ms,
            conflict_retries=config.engine.conflict_retries,
            clock=clock,
        )

    def connect(self):
        """Open a configured connection to the path store."""
        return get_connection(
            self.db_path, wal_mode=self.wal_mode, busy_timeout_ms=self.busy_timeout_ms
        )

    def init_db(self) -> int:
        """Create tables and apply pending migrations. Returns migrations applied."""
        with self.connect() as conn:
            apply_schema(conn)
            return run_migrations(conn)

    # ── Operations ────────────────────────────────────────────────────────────

    def advance_step(self, user_id: str, advisor_id: str, option_id: str) -> AdvanceResult:
        """Answer the current step of ``advisor_id`` for ``user_id``.

        Errors: ``not_found``, ``invalid_option``, ``already_complete``,
        ``store_conflict``. An unknown advisor never creates a path.
        """
        try:
            tree = self.registry.get_tree(advisor_id)
            path, rec = self._mutate(
                tree, user_id,
                lambda t, p: navigator.advance(t, p, option_id, self._clock()),
            )
        except NavigationError as exc:
            return self._failed(AdvanceResult, "advance", user_id, advisor_id, exc)

        percent = navigator.progress_percent(tree, path)
        logger.info(
            "advance %s/%s option=%s -> %d%%%s",
            user_id, advisor_id, option_id, percent, " (complete)" if path.completed else "",
            extra=_context(user_id, advisor_id),
        )
        return AdvanceResult(
            path=path,
            completed=path.completed,
            progress_percent=percent,
            recommendation=rec,
        )

    def rewind_step(self, user_id: str, advisor_id: str) -> RewindResult:
        """Undo the last answer. Errors: ``not_found``, ``nothing_to_rewind``, ``store_conflict``."""
        try:
            tree = self.registry.get_tree(advisor_id)
            path, _ = self._mutate(tree, user_id, navigator.rewind)
        except NavigationError as exc:
            return self._failed(RewindResult, "rewind", user_id, advisor_id, exc)

        percent = navigator.progress_percent(tree, path)
        logger.info(
            "rewind %s/%s -> %d%%", user_id, advisor_id, percent,
            extra=_context(user_id, advisor_id),
        )
        return RewindResult(path=path, progress_percent=percent)

    def get_status(self, user_id: str, advisor_id: str) -> StatusResult:
        """Pure read of the current position, progress and (when complete) recommendation."""
        try:
            tree = self.registry.get_tree(advisor_id)
            with self.connect() as conn:
                path = DecisionPathRepository(conn).load(user_id, advisor_id)
            return self._status(tree, path)
        except NavigationError as exc:
            return self._failed(StatusResult, "status", user_id, advisor_id, exc)

    def reset_path(self, user_id: str, advisor_id: str) -> ResetResult:
        """Delete the stored path.

        Works for advisor ids no longer in the registry so orphaned paths can
        be cleaned up.
        """
        with self.connect() as conn:
            removed = DecisionPathRepository(conn).reset(user_id, advisor_id)
        logger.info(
            "reset %s/%s removed=%s", user_id, advisor_id, removed,
            extra=_context(user_id, advisor_id),
        )
        return ResetResult(removed=removed)

    def list_paths(self, user_id: str) -> list[StatusResult]:
        """Status of every stored path of ``user_id``, ordered by advisor id.

        A path that cannot be served (malformed rows, advisor no longer
        registered) comes back as an error entry for its advisor id; the other
        paths are unaffected.
        """
        results: list[StatusResult] = []
        with self.connect() as conn:
            repo = DecisionPathRepository(conn)
            for advisor_id in repo.advisor_ids_for_user(user_id):
                path: Optional[DecisionPath] = None
                try:
                    path = repo.load(user_id, advisor_id)
                    tree = self.registry.get_tree(advisor_id)
                    results.append(self._status(tree, path))
                except NavigationError as exc:
                    logger.warning(
                        "list %s/%s failed: %s: %s", user_id, advisor_id, exc.code, exc.message,
                        extra=_context(user_id, advisor_id),
                    )
                    results.append(
                        StatusResult(
                            error=ProgressError.from_exc(exc),
                            advisor_id=advisor_id,
                            path=path,
                            completed=path.completed if path is not None else False,
                        )
                    )
        return results

    # ── Internals ─────────────────────────────────────────────────────────────

    def _status(self, tree: DecisionTree, path: DecisionPath) -> StatusResult:
        nav = navigator.state(tree, path)
        return StatusResult(
            advisor_id=tree.advisor_id,
            current_step=nav.current_step,
            completed=nav.completed,
            progress_percent=navigator.progress_percent(tree, path),
            path=path,
            step=navigator.current_step(tree, path),
            recommendation=synthesize(tree, path.entries) if nav.completed else None,
        )

    def _mutate(
        self,
        tree: DecisionTree,
        user_id: str,
        transition: Transition,
    ) -> tuple[DecisionPath, Optional[FinalRecommendation]]:
        """Load, transition and save one path, retrying lost races.

        Raises:
            NavigationError: From the navigator or the store.
        """
        expected_entries: Optional[int] = None
        attempt = 0
        while True:
            moved = False
            try:
                with self.connect() as conn:
                    repo = DecisionPathRepository(conn)
                    path = repo.load(user_id, tree.advisor_id)
                    if expected_entries is None:
                        expected_entries = len(path.entries)
                    elif len(path.entries) != expected_entries:
                        moved = True
                        raise StoreConflict(
                            f"Path ({user_id}, {tree.advisor_id}) moved from step "
                            f"{expected_entries} to {len(path.entries)} during the request."
                        )

                    new_path = transition(tree, path)
                    rec = synthesize(tree, new_path.entries) if new_path.completed else None
                    saved = repo.save(new_path, rec)
                return saved, rec

            except StoreConflict:
                if moved or attempt >= self.conflict_retries:
                    raise
                attempt += 1
                logger.warning(
                    "Store conflict on (%s, %s); retrying (%d/%d).",
                    user_id, tree.advisor_id, attempt, self.conflict_retries,
                    extra=_context(user_id, tree.advisor_id),
                )

    @staticmethod
    def _failed(result_cls, op: str, user_id: str, advisor_id: str, exc: NavigationError):
        logger.warning(
            "%s %s/%s failed: %s: %s", op, user_id, advisor_id, exc.code, exc.message,
            extra=_context(user_id, advisor_id),
        )
        return result_cls(error=ProgressError.from_exc(exc))
