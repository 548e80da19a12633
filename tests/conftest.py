"""
Shared pytest fixtures for the advisor-flow test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the schema
    applied. Created anew for each test that requests it.
  - ``registry``: The shipped tree definitions (config/trees/advisor_trees.json).
  - ``clock``: A deterministic clock that ticks one second per call.
  - ``service``: A ``ProgressService`` over a file-backed database in ``tmp_path``.
  - Small factories for trees and paths.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from advisor_flow.db.schema import apply_schema
from advisor_flow.models.path import DecisionPath, PathEntry
from advisor_flow.registry.tree_registry import TreeRegistry, clear_registry_cache
from advisor_flow.service.progress import ProgressService

PROJECT_ROOT = Path(__file__).parent.parent
TREES_PATH = PROJECT_ROOT / "config" / "trees" / "advisor_trees.json"

BASE_TIME = datetime(2024, 9, 15, 12, 0, 0, tzinfo=timezone.utc)

# Option ids of the worked budget example, one per step.
BUDGET_SCENARIO = ["none", "medium", "moderate", "steady"]


class FixedClock:
    """Callable returning BASE_TIME, BASE_TIME + 1s, BASE_TIME + 2s, ..."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.now + timedelta(seconds=self.calls)
        self.calls += 1
        return value


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Registry / clock / service ────────────────────────────────────────────────

@pytest.fixture(scope="session")
def registry() -> TreeRegistry:
    return TreeRegistry.from_file(TREES_PATH, required_length=4)


@pytest.fixture(autouse=True)
def _reset_registry_cache():
    clear_registry_cache()
    yield
    clear_registry_cache()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Undo handlers installed by ``configure_logging()`` (CLI and logging tests)."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def db_file(tmp_path) -> str:
    return str(tmp_path / "paths.db")


@pytest.fixture
def service(registry, db_file, clock) -> ProgressService:
    return ProgressService(registry, db_file, clock=clock)


# ── Sample domain object factories ────────────────────────────────────────────

def _make_tree_dict(
    advisor_id: str = "mini",
    family: str = "budget",
    n_steps: int = 2,
    n_options: int = 2,
) -> dict:
    """A valid raw tree definition with ``n_steps`` steps of ``n_options`` options."""
    return {
        "advisor_id": advisor_id,
        "family": family,
        "display_name": advisor_id.title(),
        "total_steps": n_steps,
        "steps": [
            {
                "index": i,
                "key": f"q{i}",
                "title": f"Question {i}",
                "options": [
                    {"id": f"o{j}", "value": str(100 * (j + 1)), "title": f"Option {j}"}
                    for j in range(n_options)
                ],
            }
            for i in range(n_steps)
        ],
    }


def _make_path(registry: TreeRegistry, advisor_id: str, option_ids: list[str], user_id: str = "u1") -> DecisionPath:
    """Build a path by picking ``option_ids`` in order, without the navigator."""
    tree = registry.get_tree(advisor_id)
    entries = []
    for i, oid in enumerate(option_ids):
        opt = tree.steps[i].get_option(oid)
        assert opt is not None, f"{advisor_id} step {i} has no option {oid}"
        entries.append(
            PathEntry(
                step=i,
                option_id=opt.id,
                value=opt.value,
                title=opt.title,
                description=opt.description,
                timestamp=BASE_TIME + timedelta(seconds=i),
            )
        )
    return DecisionPath(
        user_id=user_id,
        advisor_id=advisor_id,
        entries=tuple(entries),
        completed=len(entries) == tree.total_steps,
    )


@pytest.fixture
def make_tree_dict():
    """Factory fixture: ``make_tree_dict(advisor_id, family, n_steps, n_options)``."""
    return _make_tree_dict


@pytest.fixture
def make_path(registry):
    """Factory fixture: ``make_path(advisor_id, option_ids, user_id="u1")``."""
    def _factory(advisor_id: str, option_ids: list[str], user_id: str = "u1") -> DecisionPath:
        return _make_path(registry, advisor_id, option_ids, user_id)
    return _factory


@pytest.fixture
def budget_scenario() -> list[str]:
    return list(BUDGET_SCENARIO)
