"""
Navigation state and Progress API result models.

``NavState`` is the navigator's view of a path: either awaiting step ``n``
or complete.

The ``*Result`` models are what ``ProgressService`` hands back to request
handlers. Per-request failures are carried in ``error`` rather than raised,
so a handler only has to branch on ``result.ok``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from advisor_flow.errors import ErrorCode, NavigationError
from advisor_flow.models.path import DecisionPath
from advisor_flow.models.recommendation import FinalRecommendation
from advisor_flow.models.tree import Step


class NavState(BaseModel):
    """``AwaitingStep(current_step)`` when not completed, else ``Complete``."""

    model_config = ConfigDict(frozen=True)

    current_step: Optional[int]
    completed: bool

    @classmethod
    def awaiting(cls, index: int) -> "NavState":
        return cls(current_step=index, completed=False)

    @classmethod
    def complete(cls) -> "NavState":
        return cls(current_step=None, completed=True)

    def __str__(self) -> str:
        return "Complete" if self.completed else f"AwaitingStep({self.current_step})"


class ProgressError(BaseModel):
    """Typed per-request failure."""

    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    message: str

    @classmethod
    def from_exc(cls, exc: NavigationError) -> "ProgressError":
        return cls(code=exc.code, message=exc.message)


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)

    error: Optional[ProgressError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AdvanceResult(_Result):
    """Outcome of ``advance_step``."""

    path: Optional[DecisionPath] = None
    completed: bool = False
    progress_percent: int = 0
    recommendation: Optional[FinalRecommendation] = None


class RewindResult(_Result):
    """Outcome of ``rewind_step``."""

    path: Optional[DecisionPath] = None
    progress_percent: int = 0


class StatusResult(_Result):
    """Outcome of ``get_status``.

    ``current_step`` is ``None`` once the path is complete; ``step`` is the
    full current question with its options (also ``None`` when complete).
    """

    advisor_id: Optional[str] = None
    current_step: Optional[int] = None
    completed: bool = False
    progress_percent: int = 0
    path: Optional[DecisionPath] = None
    step: Optional[Step] = None
    recommendation: Optional[FinalRecommendation] = None


class ResetResult(_Result):
    """Outcome of ``reset_path``."""

    removed: bool = False
