"""Text rendering for CLI output."""

from prstack.core.constants import SHORT_HASH_LENGTH
from prstack.core.models import PRUnit, SplitGroupError
from prstack.core.title import resolve_unit_title
from prstack.repair.models import RepairResult


def _short(commit_hash: str) -> str:
    return commit_hash[:SHORT_HASH_LENGTH]


def format_validation_error(result: SplitGroupError) -> str:
    """Describe a split group and how to repair it."""
    lines = [
        f'✗ Split group: "{result.group.title}" ({result.group.id})',
        f"  Members: {', '.join(_short(h) for h in result.group.commits)}",
        f"  Interrupted by: {', '.join(_short(h) for h in result.interrupting_commits)}",
        "",
        "Run 'prstack group fix --mode merge' to move the members back together,",
        "or 'prstack group fix --mode dissolve' to ungroup them.",
    ]
    return "\n".join(lines)


def format_unit(unit: PRUnit) -> list[str]:
    title = resolve_unit_title(unit)
    if unit.type == "single":
        return [f"  {unit.id}  {title}"]

    count = len(unit.commits)
    lines = [f"  {unit.id}  \"{title}\" ({count} commit{'s' if count != 1 else ''})"]
    for commit_hash, subject in zip(unit.commits, unit.subjects):
        lines.append(f"      {_short(commit_hash)}  {subject}")
    return lines


def format_stack_view(units: list[PRUnit], branch: str, commit_count: int) -> str:
    """Render the PR units of a stack, oldest at the bottom."""
    header = (
        f"Stack on {branch}: {commit_count} commit{'s' if commit_count != 1 else ''}, "
        f"{len(units)} PR unit{'s' if len(units) != 1 else ''}"
    )
    lines = [header, ""]
    for unit in reversed(units):
        lines.extend(format_unit(unit))
    return "\n".join(lines)


def format_repair_failure(result: RepairResult) -> str:
    message = f"Error: {result.error}"
    if result.conflict_file:
        message += f"\n  Conflict in: {result.conflict_file}"
    return message
