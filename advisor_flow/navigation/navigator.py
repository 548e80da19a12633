"""
Tree navigator: the per-path state machine.

States are ``AwaitingStep(n)`` for ``0 <= n < tree.total_steps`` and
``Complete``. An empty path is ``AwaitingStep(0)``.

Transitions:
  advance(option_id)  AwaitingStep(n) -> AwaitingStep(n+1), or Complete when
                      n + 1 == total_steps. Fails with ``InvalidOption`` if the
                      option is not offered at step n and with
                      ``AlreadyComplete`` if the path is complete.
  rewind()            Drops the last entry. Complete -> AwaitingStep(total-1).
                      Fails with ``NothingToRewind`` on an empty path.

Every function here is pure. Paths are frozen models, so transitions return
a new ``DecisionPath`` that keeps the input's ``version``; the store bumps the
version when it saves.

A stored path that does not fit its tree (more entries than steps, for
example after the tree definition changed) raises ``StoreConflict``. The
caller resets such paths.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from advisor_flow.errors import AlreadyComplete, InvalidOption, NothingToRewind, StoreConflict
from advisor_flow.models.path import DecisionPath, PathEntry
from advisor_flow.models.progress import NavState
from advisor_flow.models.tree import DecisionTree, Step

logger = logging.getLogger(__name__)


def check_consistent(tree: DecisionTree, path: DecisionPath) -> None:
    """Raise ``StoreConflict`` if ``path`` cannot belong to ``tree``."""
    if path.advisor_id != tree.advisor_id:
        raise StoreConflict(
            f"Path for advisor '{path.advisor_id}' used with tree '{tree.advisor_id}'."
        )
    n = len(path.entries)
    if n > tree.total_steps:
        raise StoreConflict(
            f"Path ({path.user_id}, {path.advisor_id}) has {n} entries "
            f"but the tree has {tree.total_steps} steps."
        )
    if path.completed != (n == tree.total_steps):
        raise StoreConflict(
            f"Path ({path.user_id}, {path.advisor_id}) completed={path.completed} "
            f"with {n}/{tree.total_steps} entries."
        )


def state(tree: DecisionTree, path: DecisionPath) -> NavState:
    """Return ``AwaitingStep(len(entries))`` or ``Complete``."""
    check_consistent(tree, path)
    n = len(path.entries)
    if n == tree.total_steps:
        return NavState.complete()
    return NavState.awaiting(n)


def progress_percent(tree: DecisionTree, path: DecisionPath) -> int:
    """``round(100 * answered / total)`` with halves rounded up, in [0, 100]."""
    return int(100 * len(path.entries) / tree.total_steps + 0.5)


def current_step(tree: DecisionTree, path: DecisionPath) -> Optional[Step]:
    """The step awaiting an answer, or ``None`` when complete."""
    nav = state(tree, path)
    if nav.completed:
        return None
    return tree.steps[nav.current_step]


def advance(
    tree: DecisionTree,
    path: DecisionPath,
    option_id: str,
    now: datetime,
) -> DecisionPath:
    """Answer the current step with ``option_id``.

    Args:
        tree:      The advisor's tree.
        path:      The path as loaded from the store.
        option_id: Id of an option at the current step.
        now:       Timestamp recorded on the new entry.

    Returns:
        A new ``DecisionPath`` with one more entry.

    Raises:
        AlreadyComplete: The path is already complete.
        InvalidOption:   ``option_id`` is not offered at the current step.
        StoreConflict:   The path is inconsistent with ``tree``.
    """
    nav = state(tree, path)
    if nav.completed:
        raise AlreadyComplete(
            f"Advisor '{tree.advisor_id}' is already complete for user "
            f"'{path.user_id}'; rewind or reset to change answers."
        )

    index = nav.current_step
    step = tree.steps[index]
    option = step.get_option(option_id)
    if option is None:
        raise InvalidOption(
            f"Option '{option_id}' is not available at step {index} "
            f"('{step.key}'). Valid options: {step.option_ids}"
        )

    entry = PathEntry(
        step=index,
        option_id=option.id,
        value=option.value,
        title=option.title,
        description=option.description,
        timestamp=now,
    )
    entries = path.entries + (entry,)
    logger.debug(
        "advance %s/%s: step %d -> option '%s'",
        path.user_id, tree.advisor_id, index, option.id,
    )
    return path.model_copy(
        update={"entries": entries, "completed": len(entries) == tree.total_steps}
    )


def rewind(tree: DecisionTree, path: DecisionPath) -> DecisionPath:
    """Remove the last answered entry.

    Raises:
        NothingToRewind: The path has no entries.
        StoreConflict:   The path is inconsistent with ``tree``.
    """
    check_consistent(tree, path)
    if path.is_empty:
        raise NothingToRewind(
            f"Nothing to rewind for user '{path.user_id}' on advisor '{tree.advisor_id}'."
        )
    logger.debug(
        "rewind %s/%s: dropping step %d",
        path.user_id, tree.advisor_id, path.entries[-1].step,
    )
    return path.model_copy(update={"entries": path.entries[:-1], "completed": False})
