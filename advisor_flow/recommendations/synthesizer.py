"""
Recommendation synthesizer: completed decision path → ``FinalRecommendation``.

``synthesize(tree, entries)`` is a pure function: no I/O, no clock, no
randomness. The same family and the same ordered option values always
produce an identical recommendation, so results can be recomputed on every
read instead of trusted from a cache.

Each advisor family reads its four answered values positionally:

  budget      emergency-fund baseline, monthly expenses, monthly savings, timeline
  debt        total debt, average interest rate, payoff strategy, extra payment
  savings     goal, target amount, risk tolerance, monthly savings
  retirement  current age, lifestyle goal, current savings, monthly contribution

Every family produces exactly four action steps, one per answered step, and
the wording and priority of each come from the band its value falls into.
Values the tables do not recognize fall back to the family defaults, which
keeps the function total over any tree that declares a known family.

Projections
-----------
  budget      months to goal = ceil(6 x expenses / savings)
  debt        months to payoff = ceil(debt / extra payment);
              interest saved = round(debt x rate% x 0.3)
  savings     months to goal = ceil(target / monthly)
  retirement  years = 65 - age (min 1);
              projected balance = current + monthly x 12 x years x 1.07
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from advisor_flow.models.path import PathEntry
from advisor_flow.models.recommendation import ActionStep, FinalRecommendation, Projections
from advisor_flow.models.tree import DecisionTree
from advisor_flow.recommendations.bands import (
    band,
    ceil_div,
    leading_int,
    money,
    round_half_up,
    token,
)
from advisor_flow.taxonomy.advisor_taxonomy import AdvisorFamily, Priority

logger = logging.getLogger(__name__)

H, M, L = Priority.HIGH, Priority.MEDIUM, Priority.LOW

EMERGENCY_FUND_MONTHS = 6
RETIREMENT_AGE = 65
RETIREMENT_GROWTH_FACTOR = 1.07
INTEREST_SAVED_FACTOR = 0.3

# Annual spending by lifestyle; the nest egg target is 25x (4% withdrawal rule).
LIFESTYLE_ANNUAL_SPEND: dict[str, int] = {
    "basic": 40_000,
    "comfortable": 60_000,
    "luxury": 100_000,
}


def _value(values: Sequence[str], position: int) -> str | None:
    return values[position] if position < len(values) else None


def _plan(*items: tuple[str, str, Priority]) -> tuple[ActionStep, ...]:
    return tuple(
        ActionStep(step=i, action=action, timeline=timeline, priority=priority)
        for i, (action, timeline, priority) in enumerate(items, start=1)
    )


# ── Budget ────────────────────────────────────────────────────────────────────

_BUDGET_BASELINE_ACTIONS: dict[str, tuple[str, str, Priority]] = {
    "none": (
        "Open a high-yield savings account and deposit a $1,000 starter emergency fund",
        "This week", H,
    ),
    "partial": (
        "Move existing emergency savings into a dedicated high-yield savings account",
        "This week", M,
    ),
    "adequate": (
        "Confirm your emergency fund sits in an FDIC-insured, easily accessible account",
        "This month", L,
    ),
}


def _budget(advisor_id: str, values: Sequence[str]) -> FinalRecommendation:
    existing_months = max(leading_int(_value(values, 0), 0), 0)
    expenses = leading_int(_value(values, 1), 3000)
    savings = leading_int(_value(values, 2), 300)
    timeline = leading_int(_value(values, 3), 12)

    baseline_band = band(existing_months, [(1, "none"), (3, "partial")], "adequate")
    expense_band = band(expenses, [(2500, "low"), (4500, "medium")], "high")
    savings_band = band(savings, [(300, "minimal"), (700, "moderate")], "aggressive")
    timeline_band = band(timeline, [(7, "fast"), (13, "steady")], "gradual")

    # The existing fund sets tone and priority only; the goal is always the full target.
    target = expenses * EMERGENCY_FUND_MONTHS
    months = ceil_div(target, savings)
    behind = months > timeline
    needed = ceil_div(target, timeline)

    if baseline_band == "none" and (savings_band == "minimal" or expense_band == "high"):
        opener = "Building an emergency fund is urgent: you have no cushion and little room in your budget."
    elif baseline_band == "none":
        opener = "Starting an emergency fund should be your first priority."
    elif baseline_band == "partial":
        opener = "You have a start on your emergency fund; now finish the job."
    else:
        opener = "Your emergency fund foundation is solid."

    plan_sentence = (
        f"Based on your responses, I recommend building a {money(target)} emergency fund "
        f"over {months} months by saving {money(savings)} monthly."
    )
    if behind:
        plan_sentence += (
            f" That is slower than your {timeline}-month timeline; "
            f"saving {money(needed)} monthly would close the gap in time."
        )
        pace = f"Increase monthly savings to {money(needed)} to reach the goal within {timeline} months"
    else:
        pace = (
            f"At {money(savings)} per month you reach the goal in {months} months, "
            f"inside your {timeline}-month timeline"
        )

    expense_action = {
        "low": (f"Keep tracking spending to protect your {money(expenses)} monthly budget", "This month", L),
        "medium": ("Track expenses for 30 days and trim 5-10% of discretionary spending", "This month", M),
        "high": ("Audit fixed costs (housing, transport, subscriptions) to lower monthly expenses", "Next week", H),
    }[expense_band]

    savings_action = {
        "minimal": (f"Automate a {money(savings)} monthly transfer and raise it with every pay increase", "Next week", H),
        "moderate": (f"Set up an automatic transfer of {money(savings)} monthly", "Next week", M),
        "aggressive": (f"Automate {money(savings)} monthly and route any surplus beyond the goal to investing", "Next week", M),
    }[savings_band]

    review_cadence = {"fast": "Monthly", "steady": "Quarterly", "gradual": "Every 6 months"}[timeline_band]
    timeline_action = (
        f"Review progress against your {timeline}-month target",
        review_cadence,
        H if behind else (M if timeline_band == "fast" else L),
    )

    return FinalRecommendation(
        advisor_id=advisor_id,
        title="Emergency Fund & Budget Plan",
        summary=f"{opener} {plan_sentence}",
        recommendations=(
            f"Build emergency fund to cover {EMERGENCY_FUND_MONTHS} months of expenses ({money(target)})",
            f"Set up automatic transfer of {money(savings)} monthly to high-yield savings account",
            pace,
            "Track expenses using budgeting app or spreadsheet",
            "Keep emergency fund in easily accessible, FDIC-insured account",
        ),
        action_steps=_plan(
            _BUDGET_BASELINE_ACTIONS[baseline_band],
            expense_action,
            savings_action,
            timeline_action,
        ),
        projections=Projections(time_to_goal=f"{months} months", monthly_savings=savings),
    )


# ── Debt ──────────────────────────────────────────────────────────────────────

_STRATEGY_LABELS: dict[str, str] = {
    "avalanche": "avalanche method",
    "snowball": "snowball method",
    "hybrid": "hybrid approach",
}
_STRATEGY_ORDER: dict[str, str] = {
    "avalanche": "interest rate (highest first)",
    "snowball": "balance (smallest first)",
    "hybrid": "balance, but move any debt above 20% interest to the front",
}


def _debt(advisor_id: str, values: Sequence[str]) -> FinalRecommendation:
    debt = leading_int(_value(values, 0), 15000)
    rate = leading_int(_value(values, 1), 18)
    strategy = token(_value(values, 2), tuple(_STRATEGY_LABELS), "avalanche")
    extra = leading_int(_value(values, 3), 500)

    debt_band = band(debt, [(10000, "low"), (30000, "medium")], "high")
    rate_band = band(rate, [(10, "low"), (25, "medium")], "high")
    extra_band = band(extra, [(500, "conservative"), (1000, "aggressive")], "maximum")

    months = ceil_div(debt, extra)
    interest_saved = round_half_up(debt * (rate / 100) * INTEREST_SAVED_FACTOR)

    if rate_band == "high" or (debt_band == "high" and extra_band == "conservative"):
        opener = "Your debt is costing you heavily; act on it now."
    elif debt_band == "low":
        opener = "Your debt is manageable and can be cleared quickly."
    else:
        opener = "A focused plan will clear your debt steadily."

    summary = (
        f"{opener} Using the {_STRATEGY_LABELS[strategy]} with {money(extra)} extra monthly payments, "
        f"you'll be debt-free in approximately {months} months and save "
        f"{money(interest_saved)} in interest."
    )

    focus = {
        "avalanche": "Focus on highest interest rate debts first",
        "snowball": "Focus on smallest balances first",
        "hybrid": "Clear small balances for momentum while keeping high-rate debt in view",
    }[strategy]

    debt_action = {
        "low": ("List all debts with balances, rates, and minimum payments", "This week", M),
        "medium": ("List all debts with balances, rates, and minimum payments", "This week", H),
        "high": ("List every debt and stop adding new credit card charges", "This week", H),
    }[debt_band]

    rate_action = {
        "low": ("Keep low-rate debt on autopay and avoid refinancing fees", "Month 1", L),
        "medium": (f"Compare consolidation loans priced below your {rate}% average rate", "Month 1", M),
        "high": ("Contact creditors to negotiate lower rates or move balances to a 0% transfer card", "This week", H),
    }[rate_band]

    extra_action = {
        "conservative": (f"Set up an automatic extra payment of {money(extra)} and raise it when income grows", "Next week", H),
        "aggressive": (f"Set up an automatic extra payment of {money(extra)} to the priority debt", "Next week", H),
        "maximum": (f"Automate {money(extra)} extra monthly and roll each cleared payment into the next debt", "Next week", H),
    }[extra_band]

    return FinalRecommendation(
        advisor_id=advisor_id,
        title="Debt Elimination Strategy",
        summary=summary,
        recommendations=(
            focus,
            f"Allocate {money(extra)} extra monthly toward debt payments",
            "Consolidate high-interest debt if beneficial",
            "Negotiate with creditors for lower interest rates",
            "Avoid taking on new debt during payoff period",
        ),
        action_steps=_plan(
            debt_action,
            rate_action,
            (f"Order debts by {_STRATEGY_ORDER[strategy]}", "This week", H),
            extra_action,
        ),
        projections=Projections(
            time_to_goal=f"{months} months",
            monthly_savings=extra,
            total_interest_saved=interest_saved,
        ),
    )


# ── Savings ───────────────────────────────────────────────────────────────────

_GOALS = ("home_purchase", "major_purchase", "investment")
_RISKS = ("conservative", "moderate", "aggressive")

_RISK_ALLOCATIONS: dict[str, str] = {
    "conservative": "high-yield savings and short-term bonds",
    "moderate": "a 60/40 stock and bond mix",
    "aggressive": "broad stock index funds",
}


def _savings(advisor_id: str, values: Sequence[str]) -> FinalRecommendation:
    goal = token(_value(values, 0), _GOALS, "home_purchase")
    target = leading_int(_value(values, 1), 50000)
    risk = token(_value(values, 2), _RISKS, "moderate")
    monthly = leading_int(_value(values, 3), 1000)

    target_band = band(target, [(40000, "moderate"), (100000, "substantial")], "major")
    monthly_band = band(monthly, [(700, "modest"), (1500, "substantial")], "aggressive")

    months = ceil_div(target, monthly)
    short_horizon = months <= 36
    goal_label = goal.replace("_", " ").upper()

    summary = (
        f"To reach your {money(target)} goal, save {money(monthly)} monthly for {months} months "
        f"using a {risk} investment approach."
    )
    if short_horizon and risk == "aggressive":
        summary += " With under three years to go, keep most of the money out of volatile assets."
    elif not short_horizon and risk == "conservative":
        summary += " Over a horizon this long, a little more growth exposure could shorten the wait."

    account_action = {
        "home_purchase": ("Open a high-yield savings account dedicated to the down payment", "This week", H),
        "major_purchase": ("Open a separate high-yield savings account for the purchase", "This week", H),
        "investment": ("Open a brokerage or tax-advantaged investment account", "This week", H),
    }[goal]

    milestone = ceil_div(target, max(ceil_div(months, 12), 1))
    target_action = {
        "moderate": (f"Track the {money(target)} goal with a simple monthly checklist", "Month 1", L),
        "substantial": (f"Break the {money(target)} goal into yearly milestones of {money(milestone)}", "Month 1", M),
        "major": (f"Break the {money(target)} goal into yearly milestones of {money(milestone)} and revisit them annually", "Month 1", M),
    }[target_band]

    monthly_action = {
        "modest": (f"Set up automatic monthly transfer of {money(monthly)} and raise it each year", "Next week", H),
        "substantial": (f"Set up automatic monthly transfer of {money(monthly)}", "Next week", H),
        "aggressive": (f"Set up automatic monthly transfer of {money(monthly)}", "Next week", M),
    }[monthly_band]

    return FinalRecommendation(
        advisor_id=advisor_id,
        title=f"{goal_label} Savings Plan",
        summary=summary,
        recommendations=(
            f"Save {money(monthly)} monthly toward {money(target)} goal",
            f"Use {risk} investment strategy based on your risk tolerance",
            "Maximize tax-advantaged accounts when applicable",
            "Consider dollar-cost averaging for market investments",
            "Review and adjust strategy quarterly",
        ),
        action_steps=_plan(
            account_action,
            target_action,
            (f"Implement {risk} investment allocation ({_RISK_ALLOCATIONS[risk]})", "Month 1", M),
            monthly_action,
        ),
        projections=Projections(time_to_goal=f"{months} months", monthly_savings=monthly),
    )


# ── Retirement ────────────────────────────────────────────────────────────────

def _retirement(advisor_id: str, values: Sequence[str]) -> FinalRecommendation:
    age = leading_int(_value(values, 0), 35)
    lifestyle = token(_value(values, 1), tuple(LIFESTYLE_ANNUAL_SPEND), "comfortable")
    current = leading_int(_value(values, 2), 50000)
    monthly = leading_int(_value(values, 3), 1000)

    age_band = band(age, [(40, "young"), (55, "middle")], "approaching")
    savings_band = band(current, [(25000, "minimal"), (150000, "moderate")], "substantial")
    contribution_band = band(monthly, [(700, "basic"), (1300, "recommended")], "aggressive")

    years = max(RETIREMENT_AGE - age, 1)
    projected = round_half_up(current + monthly * 12 * years * RETIREMENT_GROWTH_FACTOR)
    annual_spend = LIFESTYLE_ANNUAL_SPEND[lifestyle]
    nest_egg = annual_spend * 25
    shortfall = max(nest_egg - projected, 0)

    summary = (
        f"Contributing {money(monthly)} monthly for {years} years could result in approximately "
        f"{money(projected)} for your {lifestyle} retirement lifestyle."
    )
    if shortfall:
        summary += (
            f" That is {money(shortfall)} short of the {money(nest_egg)} a {lifestyle} "
            "lifestyle typically needs, so contributions should rise over time."
        )
    else:
        summary += f" That meets the {money(nest_egg)} a {lifestyle} lifestyle typically needs."

    age_action = {
        "young": ("Verify 401(k) contribution and employer match; favor a growth-heavy allocation", "This week", H),
        "middle": ("Verify 401(k) contribution and employer match; rebalance toward your target mix", "This week", H),
        "approaching": ("Shift toward a more conservative allocation and plan catch-up contributions", "This week", H),
    }[age_band]

    savings_action = {
        "minimal": ("Open an IRA and consolidate any old workplace accounts", "Month 1", H),
        "moderate": ("Open IRA account if not already available", "Month 1", M),
        "substantial": ("Review fees and asset allocation across existing retirement accounts", "Month 1", L),
    }[savings_band]

    contribution_action = {
        "basic": (f"Increase contribution to {money(monthly)} monthly and add 1% each year", "Next paycheck", H),
        "recommended": (f"Increase contribution to {money(monthly)} monthly", "Next paycheck", H),
        "aggressive": (f"Keep contributing {money(monthly)} monthly and confirm you stay under annual limits", "Next paycheck", M),
    }[contribution_band]

    recommendations = [
        f"Contribute {money(monthly)} monthly to retirement accounts",
        "Maximize employer 401(k) match if available",
        "Consider Roth IRA for tax diversification",
        "Increase contribution rate by 1% annually",
        "Review asset allocation based on age and risk tolerance",
    ]
    if shortfall:
        extra_needed = ceil_div(shortfall, round_half_up(12 * years * RETIREMENT_GROWTH_FACTOR))
        recommendations.insert(1, f"Add about {money(extra_needed)} monthly to close the projected shortfall")

    return FinalRecommendation(
        advisor_id=advisor_id,
        title="Retirement Planning Strategy",
        summary=summary,
        recommendations=tuple(recommendations),
        action_steps=_plan(
            age_action,
            (f"Estimate annual spending for a {lifestyle} retirement (about {money(annual_spend)} per year)", "This month", M),
            savings_action,
            contribution_action,
        ),
        projections=Projections(
            time_to_goal=f"{years} years",
            monthly_savings=monthly,
            projected_balance=projected,
        ),
    )


# ── Dispatch ──────────────────────────────────────────────────────────────────

FamilyBuilder = Callable[[str, Sequence[str]], FinalRecommendation]

FAMILY_BUILDERS: dict[AdvisorFamily, FamilyBuilder] = {
    AdvisorFamily.BUDGET: _budget,
    AdvisorFamily.DEBT: _debt,
    AdvisorFamily.SAVINGS: _savings,
    AdvisorFamily.RETIREMENT: _retirement,
}


def synthesize(tree: DecisionTree, entries: Sequence[PathEntry]) -> FinalRecommendation:
    """Build the final recommendation for a completed path.

    Args:
        tree:    The advisor's decision tree (supplies id and family).
        entries: All answered entries, in step order.

    Returns:
        The deterministic ``FinalRecommendation`` for these answers.

    Raises:
        ValueError: If ``entries`` does not cover every step of ``tree``.
            Callers only synthesize completed paths.
    """
    if len(entries) != tree.total_steps:
        raise ValueError(
            f"Cannot synthesize '{tree.advisor_id}': {len(entries)} of "
            f"{tree.total_steps} steps answered."
        )
    builder = FAMILY_BUILDERS[tree.family]
    values = [e.value for e in entries]
    logger.debug("Synthesizing %s (%s) from values=%s", tree.advisor_id, tree.family, values)
    return builder(tree.advisor_id, values)
