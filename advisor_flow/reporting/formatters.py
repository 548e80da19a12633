"""
ASCII terminal formatters for CLI commands.

All formatters take engine models and return plain multi-line strings
suitable for ``typer.echo()``. No third-party dependencies.
"""

from __future__ import annotations

from advisor_flow.models.progress import StatusResult
from advisor_flow.models.recommendation import FinalRecommendation
from advisor_flow.models.tree import DecisionTree, Step

_BAR_WIDTH = 20


def format_progress_bar(percent: int) -> str:
    """``[#####---------------]  25%``"""
    filled = max(0, min(_BAR_WIDTH, round(_BAR_WIDTH * percent / 100)))
    return f"[{'#' * filled}{'-' * (_BAR_WIDTH - filled)}] {percent:>3}%"


def format_step(step: Step, total_steps: int) -> str:
    """One question with its options, as shown while awaiting an answer."""
    lines = [f"  Step {step.index + 1}/{total_steps}: {step.title}"]
    if step.description:
        lines.append(f"    {step.description}")
    for opt in step.options:
        lines.append(f"    ({opt.id:<12}) {opt.title}")
        if opt.description:
            lines.append(f"    {'':14} {opt.description}")
        if opt.consequence:
            lines.append(f"    {'':14} -> {opt.consequence}")
    return "\n".join(lines)


def format_tree(tree: DecisionTree) -> str:
    """Every step and option of one advisor's tree."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== {tree.display_name or tree.advisor_id} ===")
    lines.append(f"  Advisor: {tree.advisor_id}   Family: {tree.family}   Steps: {tree.total_steps}")
    for step in tree.steps:
        lines.append("")
        lines.append(format_step(step, tree.total_steps))
    return "\n".join(lines)


def format_advisor_list(trees: list[DecisionTree]) -> str:
    """Table of registered advisors."""
    lines: list[str] = []
    header = f"  {'Advisor':<22}  {'Family':<12}  {'Steps':>5}  Name"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for tree in trees:
        lines.append(
            f"  {tree.advisor_id:<22}  {tree.family.value:<12}  "
            f"{tree.total_steps:>5}  {tree.display_name}"
        )
    return "\n".join(lines)


def format_status(status: StatusResult, tree: DecisionTree) -> str:
    """Answered steps, progress and the next question (or the recommendation)."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== {tree.display_name or tree.advisor_id} ===")
    lines.append(f"  Progress: {format_progress_bar(status.progress_percent)}")

    entries = status.path.entries if status.path else ()
    if entries:
        lines.append("")
        lines.append("  Answers so far:")
        for e in entries:
            step_title = tree.steps[e.step].title
            lines.append(f"    {e.step + 1}. {step_title} -> {e.title} ({e.option_id})")

    lines.append("")
    if status.completed and status.recommendation is not None:
        lines.append("  Consultation complete.")
        lines.append(format_recommendation(status.recommendation))
    elif status.step is not None:
        lines.append(format_step(status.step, tree.total_steps))
    return "\n".join(lines)


def format_recommendation(rec: FinalRecommendation) -> str:
    """Title, summary, recommendations, action plan and projections."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== {rec.title} ===")
    lines.append(f"  {rec.summary}")

    lines.append("")
    lines.append("  Recommendations:")
    for r in rec.recommendations:
        lines.append(f"    - {r}")

    lines.append("")
    header = f"    {'#':>2}  {'Priority':<8}  {'Timeline':<18}  Action"
    lines.append("  Action plan:")
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for a in rec.action_steps:
        lines.append(f"    {a.step:>2}  {a.priority.value:<8}  {a.timeline:<18}  {a.action}")

    p = rec.projections
    if p is not None:
        lines.append("")
        lines.append("  Projections:")
        if p.time_to_goal is not None:
            lines.append(f"    Time to goal:          {p.time_to_goal}")
        if p.monthly_savings is not None:
            lines.append(f"    Monthly amount:        ${p.monthly_savings:,}")
        if p.total_interest_saved is not None:
            lines.append(f"    Interest saved:        ${p.total_interest_saved:,}")
        if p.projected_balance is not None:
            lines.append(f"    Projected balance:     ${p.projected_balance:,}")
    return "\n".join(lines)
