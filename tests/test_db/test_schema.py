"""Tests for the path store schema: idempotency, tables, indexes, constraints."""

from __future__ import annotations

import sqlite3

import pytest

from advisor_flow.db.connection import get_connection
from advisor_flow.db.migrations import MIGRATIONS, pending_migrations, run_migrations
from advisor_flow.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


def _insert_path(conn, user_id="u1", advisor_id="budget_planner") -> int:
    cur = conn.execute(
        "INSERT INTO decision_paths (user_id, advisor_id) VALUES (?, ?);",
        (user_id, advisor_id),
    )
    return cur.lastrowid


def _insert_entry(conn, path_id: int, step: int) -> None:
    conn.execute(
        """
        INSERT INTO decision_path_entries (path_id, step, option_id, value, title, selected_at)
        VALUES (?, ?, 'none', '0', 'None', '2024-09-15T12:00:00.000000Z');
        """,
        (path_id, step),
    )


class TestApplySchema:
    def test_all_tables_created(self, in_memory_db):
        tables = get_existing_tables(in_memory_db)
        for expected_table in ALL_TABLE_NAMES:
            assert expected_table in tables, (
                f"Expected table '{expected_table}' not found. Found: {tables}"
            )

    def test_idempotent_double_apply(self, in_memory_db):
        """apply_schema() called twice must not raise errors."""
        apply_schema(in_memory_db)
        assert set(ALL_TABLE_NAMES) <= set(get_existing_tables(in_memory_db))

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        for idx in ("idx_paths_advisor_completed", "idx_entries_selected_at"):
            assert idx in indexes

    def test_user_lookup_uses_unique_key_index(self, in_memory_db):
        plan = in_memory_db.execute(
            "EXPLAIN QUERY PLAN SELECT path_id FROM decision_paths WHERE user_id = ?;",
            ("alice",),
        ).fetchall()
        details = " ".join(row["detail"] for row in plan)
        assert "sqlite_autoindex_decision_paths_1" in details
        assert [i for i in get_existing_indexes(in_memory_db) if i.startswith("idx_paths")] == [
            "idx_paths_advisor_completed"
        ]

    def test_entry_columns(self, in_memory_db):
        cols = [
            row[1]
            for row in in_memory_db.execute("PRAGMA table_info(decision_path_entries);").fetchall()
        ]
        for col in ("path_id", "step", "option_id", "value", "title", "description", "selected_at"):
            assert col in cols


class TestConstraints:
    def test_one_path_per_user_and_advisor(self, in_memory_db):
        _insert_path(in_memory_db)
        with pytest.raises(sqlite3.IntegrityError):
            _insert_path(in_memory_db)

    def test_same_user_different_advisors(self, in_memory_db):
        _insert_path(in_memory_db, advisor_id="budget_planner")
        _insert_path(in_memory_db, advisor_id="debt_expert")
        count = in_memory_db.execute("SELECT COUNT(*) FROM decision_paths;").fetchone()[0]
        assert count == 2

    def test_duplicate_step_index_rejected(self, in_memory_db):
        path_id = _insert_path(in_memory_db)
        _insert_entry(in_memory_db, path_id, 0)
        with pytest.raises(sqlite3.IntegrityError):
            _insert_entry(in_memory_db, path_id, 0)

    def test_negative_step_rejected(self, in_memory_db):
        path_id = _insert_path(in_memory_db)
        with pytest.raises(sqlite3.IntegrityError):
            _insert_entry(in_memory_db, path_id, -1)

    def test_entry_requires_existing_path(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            _insert_entry(in_memory_db, 9999, 0)


class TestMigrations:
    def test_run_migrations_applies_all_once(self, in_memory_db):
        assert run_migrations(in_memory_db) == len(MIGRATIONS)
        assert run_migrations(in_memory_db) == 0
        assert "schema_versions" in get_existing_tables(in_memory_db)

    def test_pending_migrations_lists_unapplied_in_order(self, in_memory_db):
        assert pending_migrations(in_memory_db) == list(MIGRATIONS)
        run_migrations(in_memory_db)
        assert pending_migrations(in_memory_db) == []


class TestGetConnection:
    def test_creates_parent_dirs_and_commits(self, tmp_path):
        db = tmp_path / "nested" / "dir" / "paths.db"
        with get_connection(str(db)) as conn:
            apply_schema(conn)
            _insert_path(conn)
        with get_connection(str(db)) as conn:
            assert conn.execute("SELECT COUNT(*) FROM decision_paths;").fetchone()[0] == 1

    def test_rolls_back_on_error(self, tmp_path):
        db = str(tmp_path / "paths.db")
        with get_connection(db) as conn:
            apply_schema(conn)
        with pytest.raises(RuntimeError):
            with get_connection(db) as conn:
                _insert_path(conn)
                raise RuntimeError("boom")
        with get_connection(db) as conn:
            assert conn.execute("SELECT COUNT(*) FROM decision_paths;").fetchone()[0] == 0

    def test_wal_and_foreign_keys(self, tmp_path):
        with get_connection(str(tmp_path / "paths.db")) as conn:
            assert conn.execute("PRAGMA journal_mode;").fetchone()[0] == "wal"
            assert conn.execute("PRAGMA foreign_keys;").fetchone()[0] == 1
