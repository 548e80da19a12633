"""
Decision tree registry.

Loads ``DecisionTree`` objects from versioned JSON (``config/trees/
advisor_trees.json`` by default) and provides read-only lookup. The registry
is built once at startup and never mutated afterwards, so any number of
request handlers may read it concurrently.

Usage
-----
    from advisor_flow.registry.tree_registry import TreeRegistry, get_registry

    registry = TreeRegistry.from_file(Path("config/trees/advisor_trees.json"))
    tree = registry.get_tree("budget_planner")

    # or the process-wide cached instance:
    registry = get_registry()

Fail fast
---------
Anything wrong with the definitions raises ``ConfigurationError`` at load
time — never a per-request error:

  - file missing or not valid JSON
  - a tree failing model validation (step with zero options, duplicate
    option ids, ``total_steps`` not matching the step list, step indices
    out of order, unknown family)
  - duplicate advisor ids
  - a tree whose length differs from ``required_length`` (when set)

JSON structure expected
-----------------------
    {
      "version": "2024.08.1",
      "trees": [
        {
          "advisor_id": "budget_planner",
          "family": "budget",
          "display_name": "Budget Planner",
          "total_steps": 4,
          "steps": [
            {"index": 0, "key": "...", "title": "...", "description": "...",
             "options": [{"id": "...", "value": "...", "title": "...", ...}]}
          ]
        }
      ]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from advisor_flow.errors import AdvisorNotFound, ConfigurationError
from advisor_flow.models.tree import DecisionTree, Step
from advisor_flow.recommendations.synthesizer import FAMILY_BUILDERS

logger = logging.getLogger(__name__)

# ── Module-level cache ────────────────────────────────────────────────────────

_REGISTRY_CACHE: Optional["TreeRegistry"] = None
_CACHE_KEY: Optional[tuple[str, int]] = None

_PROJECT_ROOT = Path(__file__).parent.parent.parent


def default_trees_path() -> Path:
    """Return the default path to config/trees/advisor_trees.json."""
    return _PROJECT_ROOT / "config" / "trees" / "advisor_trees.json"


class TreeRegistry:
    """Immutable ``advisor_id -> DecisionTree`` mapping.

    Attributes:
        version: Version string of the loaded definitions file.
    """

    def __init__(self, trees: Iterable[DecisionTree], version: str = "unversioned") -> None:
        registry: dict[str, DecisionTree] = {}
        for tree in trees:
            if tree.advisor_id in registry:
                raise ConfigurationError(
                    f"Duplicate advisor_id '{tree.advisor_id}' in tree definitions."
                )
            registry[tree.advisor_id] = tree
        self._trees = registry
        self.version = version

    # ── Construction ──────────────────────────────────────────────────────────

    @classmethod
    def from_definitions(
        cls,
        definitions: list[dict[str, Any]],
        version: str = "unversioned",
        required_length: int = 0,
    ) -> "TreeRegistry":
        """Validate raw tree dicts and build a registry.

        Args:
            definitions:     List of tree dicts (see module docstring).
            version:         Version label for the definitions.
            required_length: When > 0, every tree must have exactly this many steps.

        Raises:
            ConfigurationError: On any structural problem.
        """
        trees: list[DecisionTree] = []
        for i, raw in enumerate(definitions):
            advisor_id = raw.get("advisor_id", f"<tree #{i}>") if isinstance(raw, dict) else f"<tree #{i}>"
            try:
                tree = DecisionTree.model_validate(raw)
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Invalid tree definition '{advisor_id}': {exc}"
                ) from exc
            if tree.family not in FAMILY_BUILDERS:
                raise ConfigurationError(
                    f"Tree '{tree.advisor_id}' declares family '{tree.family}' "
                    "which has no recommendation builder."
                )
            if required_length and tree.total_steps != required_length:
                raise ConfigurationError(
                    f"Tree '{tree.advisor_id}' has {tree.total_steps} steps; "
                    f"configuration requires {required_length}."
                )
            trees.append(tree)

        if not trees:
            raise ConfigurationError("Tree definitions contain no trees.")

        registry = cls(trees, version=version)
        logger.info(
            "Loaded %d decision trees (version %s): %s",
            len(trees), version, ", ".join(registry.advisor_ids()),
        )
        return registry

    @classmethod
    def from_file(cls, path: Path, required_length: int = 0) -> "TreeRegistry":
        """Load and validate a tree definitions JSON file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Tree definitions file not found: {path}\n"
                "Expected at config/trees/advisor_trees.json.  "
                "Set trees.definitions_path in default.toml to override."
            )
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Tree definitions file {path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise ConfigurationError(f"Cannot read tree definitions file {path}: {exc}") from exc

        if not isinstance(raw, dict) or not isinstance(raw.get("trees"), list):
            raise ConfigurationError(
                f"Tree definitions file {path} must be an object with a 'trees' list."
            )
        return cls.from_definitions(
            raw["trees"],
            version=str(raw.get("version", "unversioned")),
            required_length=required_length,
        )

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get_tree(self, advisor_id: str) -> DecisionTree:
        """Return the tree for ``advisor_id``.

        Raises:
            AdvisorNotFound: If no tree is registered under that id.
        """
        tree = self._trees.get(advisor_id)
        if tree is None:
            raise AdvisorNotFound(
                f"Advisor '{advisor_id}' not found. Available advisors: {self.advisor_ids()}"
            )
        return tree

    def has_tree(self, advisor_id: str) -> bool:
        return advisor_id in self._trees

    def get_step(self, advisor_id: str, index: int) -> Optional[Step]:
        """Return one step of a tree, or ``None`` if the advisor or index is unknown."""
        tree = self._trees.get(advisor_id)
        if tree is None:
            return None
        return tree.step_at(index)

    def advisor_ids(self) -> list[str]:
        return sorted(self._trees)

    def list_trees(self) -> list[DecisionTree]:
        """All registered trees sorted by advisor id."""
        return [self._trees[a] for a in self.advisor_ids()]

    def __len__(self) -> int:
        return len(self._trees)

    def __contains__(self, advisor_id: object) -> bool:
        return advisor_id in self._trees


# ── Process-wide cache ────────────────────────────────────────────────────────

def get_registry(
    trees_path: Optional[str | Path] = None,
    required_length: int = 0,
) -> TreeRegistry:
    """Return the process-wide registry (cached after first load).

    Args:
        trees_path:      Override path to the definitions file. If None,
                         uses the default config/trees/advisor_trees.json.
        required_length: Forwarded to ``TreeRegistry.from_file``.
    """
    global _REGISTRY_CACHE, _CACHE_KEY

    resolved = Path(trees_path) if trees_path else default_trees_path()
    key = (str(resolved), required_length)

    if _REGISTRY_CACHE is None or _CACHE_KEY != key:
        _REGISTRY_CACHE = TreeRegistry.from_file(resolved, required_length=required_length)
        _CACHE_KEY = key

    return _REGISTRY_CACHE


def clear_registry_cache() -> None:
    """Clear the module-level registry cache (used by tests)."""
    global _REGISTRY_CACHE, _CACHE_KEY
    _REGISTRY_CACHE = None
    _CACHE_KEY = None
