"""Tests for ASCII formatters."""

from __future__ import annotations

from advisor_flow.models.progress import StatusResult
from advisor_flow.navigation import navigator
from advisor_flow.recommendations.synthesizer import synthesize
from advisor_flow.reporting.formatters import (
    format_advisor_list,
    format_progress_bar,
    format_recommendation,
    format_status,
    format_tree,
)


def test_progress_bar() -> None:
    assert format_progress_bar(0) == "[--------------------]   0%"
    assert format_progress_bar(25) == "[#####---------------]  25%"
    assert format_progress_bar(100) == "[####################] 100%"


def test_format_tree_lists_every_option(registry) -> None:
    tree = registry.get_tree("debt_expert")
    out = format_tree(tree)
    assert tree.display_name in out
    for step in tree.steps:
        assert step.title in out
        for opt in step.options:
            assert opt.id in out


def test_format_advisor_list(registry) -> None:
    out = format_advisor_list(registry.list_trees())
    for advisor_id in registry.advisor_ids():
        assert advisor_id in out


def test_format_status_in_progress(registry, make_path) -> None:
    tree = registry.get_tree("budget_planner")
    path = make_path("budget_planner", ["none"])
    status = StatusResult(
        current_step=1,
        progress_percent=25,
        path=path,
        step=navigator.current_step(tree, path),
    )
    out = format_status(status, tree)
    assert "25%" in out
    assert "Answers so far" in out
    assert "Step 2/4" in out


def test_format_status_complete(registry, make_path, budget_scenario) -> None:
    tree = registry.get_tree("budget_planner")
    path = make_path("budget_planner", budget_scenario)
    rec = synthesize(tree, path.entries)
    status = StatusResult(completed=True, progress_percent=100, path=path, recommendation=rec)
    out = format_status(status, tree)
    assert "Consultation complete." in out
    assert rec.title in out


def test_format_recommendation(registry, make_path) -> None:
    tree = registry.get_tree("debt_expert")
    rec = synthesize(tree, make_path("debt_expert", ["medium", "medium_interest", "avalanche", "aggressive"]).entries)
    out = format_recommendation(rec)
    assert "Action plan:" in out
    assert "Interest saved:        $1,080" in out
    assert "27 months" in out
    for action in rec.action_steps:
        assert action.action in out
