"""
Decision path models — the per-user, per-advisor answer log.

A ``DecisionPath`` is keyed by ``(user_id, advisor_id)`` and holds the
ordered entries the user has answered so far. It is an append-only log with
a single controlled rewind: the navigator builds a new path instance for
every transition (models are frozen), and the path store persists it.

``version`` is the optimistic-concurrency counter maintained by the store.
A path that has never been saved has ``version == 0``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer, model_validator

from advisor_flow.utils.time_utils import to_iso


class PathEntry(BaseModel):
    """One answered step.

    Attributes:
        step:        Zero-based index of the answered step.
        option_id:   Id of the chosen option.
        value:       The chosen option's semantic value.
        title:       The chosen option's title.
        description: The chosen option's description.
        timestamp:   UTC time the answer was recorded.
    """

    model_config = ConfigDict(frozen=True)

    step: int
    option_id: str
    value: str
    title: str
    description: str = ""
    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, ts: datetime) -> str:
        return to_iso(ts)

    def to_record(self) -> dict[str, Any]:
        """Persisted representation: ``{step, optionId, value, title, description, timestamp}``."""
        return {
            "step": self.step,
            "optionId": self.option_id,
            "value": self.value,
            "title": self.title,
            "description": self.description,
            "timestamp": to_iso(self.timestamp),
        }


class DecisionPath(BaseModel):
    """The user-specific record of answered steps for one advisor.

    Attributes:
        user_id:    Owning user.
        advisor_id: Advisor / tree the answers belong to.
        entries:    Answered steps, ``entries[i].step == i``.
        completed:  ``True`` iff every step of the tree has been answered.
        version:    Store concurrency counter (0 = never saved).
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    advisor_id: str
    entries: tuple[PathEntry, ...] = ()
    completed: bool = False
    version: int = 0

    @model_validator(mode="after")
    def validate_entry_order(self) -> "DecisionPath":
        for position, entry in enumerate(self.entries):
            if entry.step != position:
                raise ValueError(
                    f"Path ({self.user_id}, {self.advisor_id}): entry at position "
                    f"{position} records step {entry.step}."
                )
        return self

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.advisor_id)

    @property
    def selected_values(self) -> list[str]:
        """Selected option values in step order."""
        return [e.value for e in self.entries]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @classmethod
    def empty(cls, user_id: str, advisor_id: str) -> "DecisionPath":
        """Fresh path for a key with no stored data."""
        return cls(user_id=user_id, advisor_id=advisor_id)
