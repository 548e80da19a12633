"""
Advisor taxonomy: recommendation families and action priorities.

``AdvisorFamily`` decides how the recommendation synthesizer reads the four
answered values of a tree. Any number of advisors may share a family; the
shipped trees use one advisor per family.

This module has NO imports from any other ``advisor_flow`` package.
"""

from enum import StrEnum


class AdvisorFamily(StrEnum):
    """How a tree's answers are interpreted when building a recommendation."""

    BUDGET = "budget"
    """Emergency fund baseline, monthly expenses, savings capacity, timeline."""

    DEBT = "debt"
    """Total debt, average interest rate, payoff strategy, extra payment."""

    SAVINGS = "savings"
    """Savings goal, target amount, risk tolerance, monthly savings."""

    RETIREMENT = "retirement"
    """Current age, lifestyle goal, current savings, monthly contribution."""


class Priority(StrEnum):
    """Urgency of a single recommended action."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
