"""
advisor-flow CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load the tree registry (exit 1 on ``ConfigurationError``).
  4. Call ``ProgressService`` (per-request errors exit 2).
  5. Report the result to stdout.

Install and run::

    pip install -e .
    advisor-flow --help
    advisor-flow init-db
    advisor-flow list-advisors
    advisor-flow status --user alice --advisor budget_planner
    advisor-flow advance none --user alice --advisor budget_planner
    advisor-flow rewind --user alice --advisor budget_planner
    advisor-flow export-paths --output-dir data/outputs
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="advisor-flow",
    help="Decision-tree financial consultation engine.",
    add_completion=False,
)

_USER_OPT = typer.Option(..., "--user", "-u", help="User id owning the decision path.")
_ADVISOR_OPT = typer.Option(..., "--advisor", "-a", help="Advisor id, e.g. budget_planner.")
_CONFIG_OPT = typer.Option(None, "--config", help="Path to TOML config file.")
_DB_OPT = typer.Option(None, "--db-path", help="Override DB path from config.")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from advisor_flow.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from advisor_flow.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_registry_or_exit(config, trees_path: Optional[str] = None):
    """Load the tree registry; broken definitions exit with code 1."""
    from advisor_flow.config import resolve_project_path
    from advisor_flow.errors import ConfigurationError
    from advisor_flow.registry.tree_registry import get_registry

    path = resolve_project_path(trees_path or config.trees.definitions_path)
    try:
        return get_registry(path, required_length=config.trees.required_length)
    except ConfigurationError as exc:
        typer.echo(f"[ERROR] Tree definitions invalid: {exc}", err=True)
        raise typer.Exit(code=1)


def _bootstrap(config_path: Optional[str], db_path: Optional[str] = None):
    """Config + logging + registry + service, for the path commands."""
    from advisor_flow.service.progress import ProgressService

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    registry = _load_registry_or_exit(config)
    if db_path:
        config = config.model_copy(
            update={"database": config.database.model_copy(update={"db_path": db_path})}
        )
    return config, registry, ProgressService.from_config(config, registry)


def _exit_on_error(result) -> None:
    """Print a per-request error and exit 2."""
    if result.error is not None:
        typer.echo(f"[ERROR] {result.error.code}: {result.error.message}", err=True)
        raise typer.Exit(code=2)


# ── Setup commands ────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Initialize the path store and apply pending migrations.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    """
    from advisor_flow.config import resolve_project_path
    from advisor_flow.db.connection import get_connection
    from advisor_flow.db.migrations import run_migrations
    from advisor_flow.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = str(resolve_project_path(db_path or config.database.db_path))
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        migrations_applied = run_migrations(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPT,
    show_full: bool = typer.Option(False, "--full", help="Print the full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  Tree definitions:  {config.trees.definitions_path}")
    typer.echo(f"  Required length:   {config.trees.required_length or 'any'}")
    typer.echo(f"  After complete:    {config.engine.after_complete_policy}")
    typer.echo(f"  Conflict retries:  {config.engine.conflict_retries}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


@app.command("validate-trees")
def validate_trees(
    trees_path: Optional[str] = typer.Option(
        None, "--trees-path", help="Override tree definitions file from config."
    ),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Load the tree definitions and report any structural problem (exit 1)."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    registry = _load_registry_or_exit(config, trees_path)

    typer.echo(f"Tree definitions valid (version {registry.version}).")
    for tree in registry.list_trees():
        n_options = sum(len(s.options) for s in tree.steps)
        typer.echo(f"  {tree.advisor_id:<22} {tree.total_steps} steps, {n_options} options")
    typer.echo("[OK]")


@app.command("list-advisors")
def list_advisors(config_path: Optional[str] = _CONFIG_OPT) -> None:
    """List registered advisors."""
    from advisor_flow.reporting.formatters import format_advisor_list

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    registry = _load_registry_or_exit(config)
    typer.echo(format_advisor_list(registry.list_trees()))


@app.command("show-tree")
def show_tree(
    advisor_id: str = typer.Argument(..., help="Advisor id to display."),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Print every step and option of one advisor's tree."""
    from advisor_flow.errors import AdvisorNotFound
    from advisor_flow.reporting.formatters import format_tree

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    registry = _load_registry_or_exit(config)
    try:
        tree = registry.get_tree(advisor_id)
    except AdvisorNotFound as exc:
        typer.echo(f"[ERROR] {exc.code}: {exc.message}", err=True)
        raise typer.Exit(code=2)
    typer.echo(format_tree(tree))


# ── Path commands ─────────────────────────────────────────────────────────────

@app.command("advance")
def advance(
    option_id: str = typer.Argument(..., help="Option id for the current step."),
    user_id: str = _USER_OPT,
    advisor_id: str = _ADVISOR_OPT,
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Answer the current step."""
    from advisor_flow.reporting.formatters import (
        format_progress_bar,
        format_recommendation,
        format_step,
    )

    _, registry, service = _bootstrap(config_path, db_path)
    result = service.advance_step(user_id, advisor_id, option_id)
    _exit_on_error(result)

    tree = registry.get_tree(advisor_id)
    typer.echo(f"Progress: {format_progress_bar(result.progress_percent)}")
    if result.completed and result.recommendation is not None:
        typer.echo("[OK] Consultation complete.")
        typer.echo(format_recommendation(result.recommendation))
    else:
        typer.echo(format_step(tree.steps[len(result.path.entries)], tree.total_steps))


@app.command("rewind")
def rewind(
    user_id: str = _USER_OPT,
    advisor_id: str = _ADVISOR_OPT,
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Undo the last answer."""
    from advisor_flow.reporting.formatters import format_progress_bar, format_step

    _, registry, service = _bootstrap(config_path, db_path)
    result = service.rewind_step(user_id, advisor_id)
    _exit_on_error(result)

    tree = registry.get_tree(advisor_id)
    typer.echo(f"Progress: {format_progress_bar(result.progress_percent)}")
    typer.echo(format_step(tree.steps[len(result.path.entries)], tree.total_steps))


@app.command("status")
def status(
    user_id: str = _USER_OPT,
    advisor_id: str = _ADVISOR_OPT,
    as_json: bool = typer.Option(False, "--json", help="Print the status as JSON."),
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Show answered steps, progress and the next question or recommendation."""
    from advisor_flow.reporting.formatters import format_status

    _, registry, service = _bootstrap(config_path, db_path)
    result = service.get_status(user_id, advisor_id)
    _exit_on_error(result)

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json", exclude={"error"}), indent=2))
        return
    typer.echo(format_status(result, registry.get_tree(advisor_id)))


@app.command("list-paths")
def list_paths(
    user_id: str = _USER_OPT,
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """List every advisor the user has started, with progress."""
    from advisor_flow.reporting.formatters import format_progress_bar

    _, _, service = _bootstrap(config_path, db_path)
    results = service.list_paths(user_id)
    if not results:
        typer.echo(f"No decision paths for user '{user_id}'.")
        return
    for r in results:
        advisor = r.advisor_id or "?"
        if r.error is not None:
            typer.echo(f"  {advisor:<22} [{r.error.code}] {r.error.message}")
        else:
            typer.echo(f"  {advisor:<22} {format_progress_bar(r.progress_percent)}")


@app.command("reset")
def reset(
    user_id: str = _USER_OPT,
    advisor_id: str = _ADVISOR_OPT,
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Delete the stored path so the consultation starts over."""
    _, _, service = _bootstrap(config_path, db_path)
    result = service.reset_path(user_id, advisor_id)
    if result.removed:
        typer.echo(f"[OK] Path for {user_id}/{advisor_id} reset.")
    else:
        typer.echo(f"No stored path for {user_id}/{advisor_id}; nothing to reset.")


# ── Export commands ───────────────────────────────────────────────────────────

@app.command("export-recommendation")
def export_recommendation(
    user_id: str = _USER_OPT,
    advisor_id: str = _ADVISOR_OPT,
    output: Optional[str] = typer.Option(
        None, "--output", "-o",
        help="Output file (default: <export.output_dir>/recommendation_<user>_<advisor>.json).",
    ),
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Write the final recommendation of a completed path to JSON."""
    from advisor_flow.config import resolve_project_path
    from advisor_flow.reporting.export import export_recommendation_json

    config, _, service = _bootstrap(config_path, db_path)
    result = service.get_status(user_id, advisor_id)
    _exit_on_error(result)
    if result.recommendation is None:
        typer.echo(
            f"[ERROR] Consultation {user_id}/{advisor_id} is not complete "
            f"({result.progress_percent}%).",
            err=True,
        )
        raise typer.Exit(code=2)

    out = (
        Path(output)
        if output
        else resolve_project_path(config.export.output_dir)
        / f"recommendation_{user_id}_{advisor_id}.json"
    )
    written = export_recommendation_json(result.recommendation, out)
    typer.echo(f"[OK] Recommendation written to {written}")


@app.command("export-paths")
def export_paths(
    advisor_id: Optional[str] = typer.Option(None, "--advisor", "-a", help="Restrict to one advisor."),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Directory for the Parquet file (default: export.output_dir)."
    ),
    db_path: Optional[str] = _DB_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Export answered steps across all users to Parquet."""
    from advisor_flow.config import resolve_project_path
    from advisor_flow.db.repositories.path_repo import DecisionPathRepository
    from advisor_flow.reporting.export import export_paths_parquet

    config, _, service = _bootstrap(config_path, db_path)
    with service.connect() as conn:
        rows = DecisionPathRepository(conn).all_entries(advisor_id)

    out_dir = Path(output_dir) if output_dir else resolve_project_path(config.export.output_dir)
    written = export_paths_parquet(rows, out_dir)
    typer.echo(f"[OK] {len(rows)} entries written to {written}")


if __name__ == "__main__":
    app()
