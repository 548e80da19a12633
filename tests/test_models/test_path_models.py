"""Tests for PathEntry / DecisionPath / FinalRecommendation / NavState models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from advisor_flow.errors import ErrorCode, InvalidOption
from advisor_flow.models.path import DecisionPath, PathEntry
from advisor_flow.models.progress import AdvanceResult, NavState, ProgressError
from advisor_flow.models.recommendation import ActionStep, FinalRecommendation, Projections
from advisor_flow.taxonomy.advisor_taxonomy import Priority

TS = datetime(2024, 9, 15, 12, 0, 0, tzinfo=timezone.utc)


def _entry(step: int, oid: str = "x", value: str = "1") -> PathEntry:
    return PathEntry(step=step, option_id=oid, value=value, title=oid, timestamp=TS)


class TestPathEntry:
    def test_to_record_shape(self):
        rec = _entry(0, "none", "0").to_record()
        assert rec == {
            "step": 0,
            "optionId": "none",
            "value": "0",
            "title": "none",
            "description": "",
            "timestamp": "2024-09-15T12:00:00.000000Z",
        }

    def test_json_dump_serializes_timestamp(self):
        dumped = _entry(0).model_dump(mode="json")
        assert dumped["timestamp"].endswith("Z")


class TestDecisionPath:
    def test_empty(self):
        path = DecisionPath.empty("u1", "budget_planner")
        assert path.is_empty
        assert path.version == 0
        assert not path.completed
        assert path.key == ("u1", "budget_planner")

    def test_entries_must_be_contiguous(self):
        with pytest.raises(ValidationError, match="records step 2"):
            DecisionPath(user_id="u", advisor_id="a", entries=(_entry(0), _entry(2)))

    def test_duplicate_step_rejected(self):
        with pytest.raises(ValidationError):
            DecisionPath(user_id="u", advisor_id="a", entries=(_entry(0), _entry(0)))

    def test_selected_values(self):
        path = DecisionPath(
            user_id="u", advisor_id="a",
            entries=(_entry(0, value="0"), _entry(1, value="3500")),
        )
        assert path.selected_values == ["0", "3500"]


class TestFinalRecommendation:
    def test_to_record_uses_camel_case(self):
        rec = FinalRecommendation(
            advisor_id="budget_planner",
            title="T",
            summary="S",
            recommendations=("r1",),
            action_steps=(ActionStep(step=1, action="a", timeline="Now", priority=Priority.HIGH),),
            projections=Projections(time_to_goal="42 months", monthly_savings=500),
        )
        record = rec.to_record()
        assert record["advisorId"] == "budget_planner"
        assert record["actionSteps"][0]["priority"] == "high"
        assert record["projections"] == {"timeToGoal": "42 months", "monthlySavings": 500}

    def test_priority_must_be_known(self):
        with pytest.raises(ValidationError):
            ActionStep(step=1, action="a", timeline="Now", priority="urgent")


class TestProgressModels:
    def test_nav_state_str(self):
        assert str(NavState.awaiting(2)) == "AwaitingStep(2)"
        assert str(NavState.complete()) == "Complete"

    def test_progress_error_from_exc(self):
        err = ProgressError.from_exc(InvalidOption("bad option"))
        assert err.code == ErrorCode.INVALID_OPTION
        assert err.message == "bad option"

    def test_result_ok_flag(self):
        assert AdvanceResult().ok
        failed = AdvanceResult(error=ProgressError(code=ErrorCode.NOT_FOUND, message="x"))
        assert not failed.ok
