"""
Final recommendation models.

A ``FinalRecommendation`` is derived from a completed decision path and is
never stored independently of it: ``synthesize()`` recomputes it from the
path's entry values on demand, and the copy cached next to the path in the
store is only a convenience for external readers.

Field names are snake_case in Python; ``model_dump(by_alias=True)`` produces
the camelCase persisted shape (``actionSteps``, ``timeToGoal``, ...).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from advisor_flow.taxonomy.advisor_taxonomy import Priority

_MODEL_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ActionStep(BaseModel):
    """One prioritized action in the plan.

    Attributes:
        step:     1-based position in the plan.
        action:   What to do.
        timeline: When to do it, e.g. ``"This week"``.
        priority: ``high`` / ``medium`` / ``low``.
    """

    model_config = _MODEL_CONFIG

    step: int
    action: str
    timeline: str
    priority: Priority


class Projections(BaseModel):
    """Numeric projections derived from the answered values.

    Attributes:
        time_to_goal:         E.g. ``"14 months"`` or ``"20 years"``.
        monthly_savings:      Monthly amount the plan is built around.
        total_interest_saved: Debt plans only.
        projected_balance:    Retirement plans only.
    """

    model_config = _MODEL_CONFIG

    time_to_goal: Optional[str] = None
    monthly_savings: Optional[int] = None
    total_interest_saved: Optional[int] = None
    projected_balance: Optional[int] = None


class FinalRecommendation(BaseModel):
    """The structured result of a completed consultation."""

    model_config = _MODEL_CONFIG

    advisor_id: str
    title: str
    summary: str
    recommendations: tuple[str, ...]
    action_steps: tuple[ActionStep, ...]
    projections: Optional[Projections] = None

    def to_record(self) -> dict:
        """camelCase dict for persistence and JSON export."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
