"""Tests for the recommendation synthesizer.

Covers the worked example per advisor family, determinism, and totality:
every reachable 4-answer combination yields a recommendation with exactly
four ordered action steps.
"""

from __future__ import annotations

import itertools

import pytest

from advisor_flow.recommendations.synthesizer import synthesize
from advisor_flow.taxonomy.advisor_taxonomy import Priority

ADVISORS = ["budget_planner", "debt_expert", "savings_strategist", "retirement_advisor"]


def _rec(registry, make_path, advisor_id, option_ids):
    tree = registry.get_tree(advisor_id)
    return synthesize(tree, make_path(advisor_id, option_ids).entries)


# ── Budget ────────────────────────────────────────────────────────────────────


class TestBudget:
    def test_concrete_scenario(self, registry, make_path, budget_scenario):
        rec = _rec(registry, make_path, "budget_planner", budget_scenario)

        assert rec.advisor_id == "budget_planner"
        assert rec.title == "Emergency Fund & Budget Plan"
        assert "$21,000" in rec.summary
        assert "42 months" in rec.summary
        assert "$1,750" in rec.summary

        steps = rec.action_steps
        assert [a.step for a in steps] == [1, 2, 3, 4]
        # No emergency fund -> urgent first action
        assert steps[0].priority == Priority.HIGH
        assert "starter emergency fund" in steps[0].action
        # Medium expenses -> trim discretionary spending
        assert steps[1].priority == Priority.MEDIUM
        assert "discretionary" in steps[1].action
        # Moderate savings rate
        assert steps[2].action == "Set up an automatic transfer of $500 monthly"
        # 12-month timeline, currently behind it
        assert steps[3].action == "Review progress against your 12-month target"
        assert steps[3].timeline == "Quarterly"
        assert steps[3].priority == Priority.HIGH

        assert rec.projections.time_to_goal == "42 months"
        assert rec.projections.monthly_savings == 500

    def test_urgent_framing_for_no_fund_and_high_expenses(self, registry, make_path):
        rec = _rec(registry, make_path, "budget_planner", ["none", "high", "minimal", "fast"])
        assert rec.summary.startswith("Building an emergency fund is urgent")

    def test_adequate_fund_keeps_full_target(self, registry, make_path):
        # 6 x 2000 at 1000/month, regardless of what is already saved
        rec = _rec(registry, make_path, "budget_planner", ["adequate", "low", "aggressive", "fast"])
        assert rec.projections.time_to_goal == "12 months"
        assert "$12,000" in rec.summary
        assert rec.summary.startswith("Your emergency fund foundation is solid.")
        assert rec.action_steps[0].priority == Priority.LOW

    @pytest.mark.parametrize("baseline", ["none", "partial", "adequate"])
    def test_existing_fund_does_not_change_months(self, registry, make_path, baseline):
        rec = _rec(registry, make_path, "budget_planner", [baseline, "medium", "moderate", "steady"])
        assert rec.projections.time_to_goal == "42 months"


# ── Debt ──────────────────────────────────────────────────────────────────────


class TestDebt:
    def test_projections(self, registry, make_path):
        rec = _rec(registry, make_path, "debt_expert", ["medium", "medium_interest", "avalanche", "aggressive"])
        assert rec.title == "Debt Elimination Strategy"
        assert rec.projections.time_to_goal == "27 months"
        assert rec.projections.total_interest_saved == 1080
        assert rec.projections.monthly_savings == 750
        assert "avalanche method" in rec.summary
        assert rec.recommendations[0] == "Focus on highest interest rate debts first"

    def test_snowball_ordering(self, registry, make_path):
        rec = _rec(registry, make_path, "debt_expert", ["low", "low_interest", "snowball", "maximum"])
        assert rec.action_steps[2].action == "Order debts by balance (smallest first)"
        assert rec.projections.time_to_goal == "5 months"

    def test_high_rate_is_urgent(self, registry, make_path):
        rec = _rec(registry, make_path, "debt_expert", ["high", "high_interest", "hybrid", "conservative"])
        assert rec.summary.startswith("Your debt is costing you heavily")
        assert rec.action_steps[1].priority == Priority.HIGH
        assert rec.projections.total_interest_saved == 3360


# ── Savings ───────────────────────────────────────────────────────────────────


class TestSavings:
    def test_home_purchase(self, registry, make_path):
        rec = _rec(registry, make_path, "savings_strategist", ["home_purchase", "moderate", "moderate", "modest"])
        assert rec.title == "HOME PURCHASE Savings Plan"
        assert rec.projections.time_to_goal == "50 months"
        assert rec.action_steps[1].priority == Priority.LOW

    def test_yearly_milestones(self, registry, make_path):
        # 150000 / 2000 = 75 months -> 7 years -> 21429 per year
        rec = _rec(registry, make_path, "savings_strategist", ["investment", "major", "aggressive", "aggressive"])
        assert rec.projections.time_to_goal == "75 months"
        assert "$21,429" in rec.action_steps[1].action
        assert rec.title == "INVESTMENT Savings Plan"


# ── Retirement ────────────────────────────────────────────────────────────────


class TestRetirement:
    def test_projection_with_shortfall(self, registry, make_path):
        rec = _rec(registry, make_path, "retirement_advisor", ["middle", "comfortable", "moderate", "recommended"])
        assert rec.projections.time_to_goal == "20 years"
        assert rec.projections.projected_balance == 331_800
        assert len(rec.recommendations) == 6
        assert rec.recommendations[1] == "Add about $4,546 monthly to close the projected shortfall"

    def test_no_shortfall(self, registry, make_path):
        rec = _rec(registry, make_path, "retirement_advisor", ["young", "basic", "substantial", "aggressive"])
        assert rec.projections.projected_balance == 1_224_480
        assert len(rec.recommendations) == 5
        assert "meets the $1,000,000" in rec.summary


# ── Contract ──────────────────────────────────────────────────────────────────


class TestContract:
    @pytest.mark.parametrize("advisor_id", ADVISORS)
    def test_total_over_all_combinations(self, registry, make_path, advisor_id):
        tree = registry.get_tree(advisor_id)
        for combo in itertools.product(*(s.option_ids for s in tree.steps)):
            rec = _rec(registry, make_path, advisor_id, list(combo))
            assert [a.step for a in rec.action_steps] == [1, 2, 3, 4]
            assert rec.summary
            assert len(rec.recommendations) >= 5
            assert rec.projections is not None
            assert rec.projections.time_to_goal

    @pytest.mark.parametrize("advisor_id", ADVISORS)
    def test_deterministic(self, registry, make_path, advisor_id):
        tree = registry.get_tree(advisor_id)
        ids = [s.options[1].id for s in tree.steps]
        first = synthesize(tree, make_path(advisor_id, ids).entries)
        second = synthesize(tree, make_path(advisor_id, ids).entries)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_timestamps_do_not_affect_output(self, registry, make_path, budget_scenario):
        tree = registry.get_tree("budget_planner")
        path = make_path("budget_planner", budget_scenario)
        shifted = tuple(
            e.model_copy(update={"timestamp": e.timestamp.replace(year=2030)}) for e in path.entries
        )
        assert synthesize(tree, path.entries) == synthesize(tree, shifted)

    def test_incomplete_entries_rejected(self, registry, make_path):
        tree = registry.get_tree("budget_planner")
        with pytest.raises(ValueError, match="1 of 4"):
            synthesize(tree, make_path("budget_planner", ["none"]).entries)
