"""Tests for advisor_flow.reporting.export."""

from __future__ import annotations

import json
from pathlib import Path

import pyarrow.parquet as pq

from advisor_flow.reporting.export import (
    PATH_ENTRY_SCHEMA,
    export_paths_parquet,
    export_recommendation_json,
    export_to_json,
)
from advisor_flow.recommendations.synthesizer import synthesize


def _rows() -> list[dict]:
    return [
        {
            "user_id": "alice", "advisor_id": "budget_planner", "completed": False,
            "step": 0, "option_id": "none", "value": "0", "title": "No emergency fund",
            "selected_at": "2024-09-15T12:00:00.000000Z",
        },
        {
            "user_id": "alice", "advisor_id": "budget_planner", "completed": False,
            "step": 1, "option_id": "medium", "value": "3500", "title": "$2,500 - $4,500",
            "selected_at": "2024-09-15T12:00:01.000000Z",
        },
    ]


def test_export_to_json_creates_parents(tmp_path: Path) -> None:
    out = tmp_path / "a" / "b.json"
    assert export_to_json({"k": [1, 2]}, out) == out
    assert json.loads(out.read_text(encoding="utf-8")) == {"k": [1, 2]}


def test_export_recommendation_json(tmp_path: Path, registry, make_path, budget_scenario) -> None:
    tree = registry.get_tree("budget_planner")
    rec = synthesize(tree, make_path("budget_planner", budget_scenario).entries)
    out = export_recommendation_json(rec, tmp_path / "rec.json")

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["advisorId"] == "budget_planner"
    assert len(data["actionSteps"]) == 4
    assert data["projections"]["timeToGoal"] == "42 months"


def test_export_paths_parquet(tmp_path: Path) -> None:
    out = export_paths_parquet(_rows(), tmp_path / "exports")
    assert out == tmp_path / "exports" / "decision_paths.parquet"

    table = pq.read_table(str(out))
    assert table.schema.names == PATH_ENTRY_SCHEMA.names
    assert table.num_rows == 2
    assert table.column("option_id").to_pylist() == ["none", "medium"]
    assert table.column("step").to_pylist() == [0, 1]


def test_export_paths_parquet_empty(tmp_path: Path) -> None:
    out = export_paths_parquet([], tmp_path, name="empty")
    assert pq.read_table(str(out)).num_rows == 0
