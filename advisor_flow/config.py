"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``ADVISOR_FLOW_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The CLI and ``ProgressService.from_config()`` receive an ``AppConfig``
instance — never raw dicts or individual env var lookups scattered through
the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite database connection settings (the decision path store)."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/advisor_flow.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class TreesConfig(BaseModel):
    """Where advisor decision trees are loaded from.

    ``required_length`` pins every tree to the same fixed number of steps.
    Set it to 0 to allow trees of differing (but still fixed) lengths.
    """

    model_config = ConfigDict(frozen=True)

    definitions_path: str = "config/trees/advisor_trees.json"
    required_length: int = 4

    @field_validator("required_length")
    @classmethod
    def validate_required_length(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"required_length must be >= 0, got {v}.")
        return v


class EngineConfig(BaseModel):
    """Navigation policy knobs."""

    model_config = ConfigDict(frozen=True)

    after_complete_policy: str = "reject"
    conflict_retries: int = 1

    @field_validator("after_complete_policy")
    @classmethod
    def validate_policy(cls, v: str) -> str:
        if v != "reject":
            raise ValueError(
                f"after_complete_policy must be 'reject', got '{v}'. "
                "Call reset to start a completed consultation over."
            )
        return v

    @field_validator("conflict_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"conflict_retries must be >= 0, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/advisor_flow.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class ExportConfig(BaseModel):
    """Output locations for recommendation and path exports."""

    model_config = ConfigDict(frozen=True)

    output_dir: str = "data/outputs"


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    trees: TreesConfig = TreesConfig()
    engine: EngineConfig = EngineConfig()
    logging: LoggingConfig = LoggingConfig()
    export: ExportConfig = ExportConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def resolve_project_path(path: str | Path) -> Path:
    """Resolve a config-relative path against the project root.

    Absolute paths are returned unchanged.
    """
    p = Path(path)
    if p.is_absolute():
        return p
    return _find_project_root() / p


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    dotenv_path = root / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    # Also merge local.toml if present (gitignored local overrides)
    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply ADVISOR_FLOW_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply ADVISOR_FLOW_* env vars to the raw config dict.

    Supported overrides:
      ADVISOR_FLOW_DB_PATH     → raw["database"]["db_path"]
      ADVISOR_FLOW_TREES_PATH  → raw["trees"]["definitions_path"]
      ADVISOR_FLOW_LOG_LEVEL   → raw["logging"]["level"]
      ADVISOR_FLOW_DEBUG       → raw["debug"]
    """
    if db_path := os.environ.get("ADVISOR_FLOW_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if trees_path := os.environ.get("ADVISOR_FLOW_TREES_PATH"):
        raw.setdefault("trees", {})["definitions_path"] = trees_path

    if log_level := os.environ.get("ADVISOR_FLOW_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("ADVISOR_FLOW_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    # Flatten top-level keys that may be nested under [project]
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        trees=TreesConfig(**raw.get("trees", {})),
        engine=EngineConfig(**raw.get("engine", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        export=ExportConfig(**raw.get("export", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
