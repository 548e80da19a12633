"""
Decision tree models: ``Option`` → ``Step`` → ``DecisionTree``.

Trees are static configuration. They are validated once when the registry
loads them and are immutable afterwards (all models are frozen).

Structural invariants enforced here:
  - Every step has at least one option.
  - Option ids are unique within their step (values need not be).
  - ``steps[i].index == i`` for every step.
  - ``total_steps == len(steps)``.

Trees are linear chains of fixed length: choosing an option never skips or
inserts a step. ``total_steps`` is the single place that length lives, so
the navigator reads it rather than assuming four.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from advisor_flow.taxonomy.advisor_taxonomy import AdvisorFamily


class Option(BaseModel):
    """One selectable answer at a step.

    Attributes:
        id:          Stable short identifier, unique within its step.
        value:       Semantic payload read by the recommendation synthesizer
                     (numeric string, enum token or free-form tag).
        title:       Display text.
        description: Display text.
        consequence: Optional advisory text shown with the option.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    value: str
    title: str
    description: str = ""
    consequence: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Option id must be a non-empty string.")
        return v


class Step(BaseModel):
    """One question in a tree.

    Attributes:
        index:       Zero-based position in the tree.
        key:         Stable step slug, e.g. ``"emergency_current"``.
        title:       The question text.
        description: Supporting text for the question.
        options:     Answers in display order (order carries no ranking).
    """

    model_config = ConfigDict(frozen=True)

    index: int
    key: str
    title: str
    description: str = ""
    options: tuple[Option, ...]

    @model_validator(mode="after")
    def validate_options(self) -> "Step":
        if not self.options:
            raise ValueError(f"Step {self.index} ('{self.key}') has no options.")
        seen: set[str] = set()
        for opt in self.options:
            if opt.id in seen:
                raise ValueError(
                    f"Step {self.index} ('{self.key}') has duplicate option id '{opt.id}'."
                )
            seen.add(opt.id)
        return self

    def get_option(self, option_id: str) -> Optional[Option]:
        """Return the option with ``option_id``, or ``None``."""
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    @property
    def option_ids(self) -> list[str]:
        return [opt.id for opt in self.options]


class DecisionTree(BaseModel):
    """The fixed, ordered sequence of steps for one advisor.

    Attributes:
        advisor_id:   Registry key, e.g. ``"budget_planner"``.
        family:       Recommendation family used by the synthesizer.
        display_name: Human-readable advisor name.
        total_steps:  Fixed tree length; reaching it completes the tree.
        steps:        Steps ordered by index.
    """

    model_config = ConfigDict(frozen=True)

    advisor_id: str
    family: AdvisorFamily
    display_name: str = ""
    total_steps: int
    steps: tuple[Step, ...]

    @model_validator(mode="after")
    def validate_shape(self) -> "DecisionTree":
        if self.total_steps < 1:
            raise ValueError(
                f"Tree '{self.advisor_id}': total_steps must be >= 1, got {self.total_steps}."
            )
        if len(self.steps) != self.total_steps:
            raise ValueError(
                f"Tree '{self.advisor_id}': total_steps={self.total_steps} "
                f"but {len(self.steps)} steps are defined."
            )
        for position, step in enumerate(self.steps):
            if step.index != position:
                raise ValueError(
                    f"Tree '{self.advisor_id}': step at position {position} "
                    f"declares index {step.index}."
                )
        return self

    def step_at(self, index: int) -> Optional[Step]:
        """Return the step at ``index``, or ``None`` when out of range."""
        if 0 <= index < self.total_steps:
            return self.steps[index]
        return None
