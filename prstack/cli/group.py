"""CLI commands for group management."""

from enum import Enum
from typing import Optional

import typer

from prstack.cli.output import format_repair_failure, format_validation_error
from prstack.config import ConfigError, PrstackConfig, load_config
from prstack.core.constants import COMMIT_ID_TRAILER
from prstack.core.identifier import format_resolution_error, resolve_identifier
from prstack.core.models import PRUnit
from prstack.core.stack import detect_pr_units, parse_stack
from prstack.core.title import resolve_unit_title
from prstack.core.validation import validate_pr_title
from prstack.git.exceptions import GitError
from prstack.git.group_titles import read_group_titles, set_group_title
from prstack.git.queries import get_stack_commits_with_trailers
from prstack.repair import (
    GroupSpecError,
    RepairResult,
    apply_group_spec,
    dissolve_group,
    inject_missing_ids,
    merge_split_group,
    parse_group_spec,
    remove_all_group_trailers,
)


class FixMode(str, Enum):
    """How `group fix` repairs a split group."""

    MERGE = "merge"
    DISSOLVE = "dissolve"
    RESET = "reset"


# Subcommand group for group management
group_app = typer.Typer(
    name="group",
    help="Create, repair and dissolve commit groups",
    add_completion=False,
)


def _load_config() -> PrstackConfig:
    try:
        return load_config()
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _exit_on_failure(result: RepairResult) -> None:
    if not result.success:
        typer.echo(format_repair_failure(result), err=True)
        raise typer.Exit(1)


def _list_groups(groups: list[PRUnit]) -> None:
    typer.echo("Available groups:")
    for group in groups:
        count = len(group.commits)
        typer.echo(
            f"  {group.id}: \"{resolve_unit_title(group)}\" "
            f"({count} commit{'s' if count != 1 else ''})"
        )


@group_app.command("apply")
def group_apply(
    spec_json: str = typer.Argument(
        ...,
        metavar="SPEC",
        help='JSON spec: {"order": [...], "groups": [{"commits": [...], "name": "..."}]}',
    ),
) -> None:
    """Reorder commits and assign groups from a JSON spec."""
    config = _load_config()
    try:
        spec = parse_group_spec(spec_json)

        typer.echo("Applying group spec...")
        if spec.order is not None:
            typer.echo(f"  Order: {len(spec.order)} commits")
        for definition in spec.groups:
            typer.echo(f"  - \"{definition.name}\" ({len(definition.commits)} commits)")

        result = apply_group_spec(spec, config=config)
    except GroupSpecError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    _exit_on_failure(result)
    typer.echo("✓ Group spec applied.")


@group_app.command("dissolve")
def group_dissolve(
    group_id: Optional[str] = typer.Argument(
        None,
        help="Group id or unique prefix. Lists the groups when omitted.",
    ),
) -> None:
    """Dissolve a group, turning its commits back into singles."""
    config = _load_config()
    try:
        commits = get_stack_commits_with_trailers(config.trunk_ref)
        if not commits:
            typer.echo("No commits in stack.")
            return

        result = parse_stack(commits, read_group_titles(config))
        if not result.ok:
            typer.echo(format_validation_error(result), err=True)
            raise typer.Exit(1)

        groups = [unit for unit in result.units if unit.type == "group"]
        if not groups:
            typer.echo("No groups in the current stack.")
            return

        if group_id is None:
            _list_groups(groups)
            typer.echo()
            typer.echo("Usage: prstack group dissolve <group-id>")
            return

        resolution = resolve_identifier(group_id, groups, [])
        if not resolution.ok:
            typer.echo(format_resolution_error(resolution), err=True)
            typer.echo(err=True)
            _list_groups(groups)
            raise typer.Exit(1)

        group = resolution.unit
        title = resolve_unit_title(group)
        typer.echo(f"Dissolving group \"{title}\" ({group.id})...")
        _exit_on_failure(dissolve_group(group.id, config=config))
        typer.echo(f"✓ Group \"{title}\" dissolved.")

    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@group_app.command("rename")
def group_rename(
    group_id: str = typer.Argument(..., help="Group id or unique prefix"),
    title: str = typer.Argument(..., help="New title for the group's PR"),
) -> None:
    """Set a group's title. No commits are rewritten."""
    config = _load_config()
    check = validate_pr_title(title)
    if not check.ok:
        typer.echo(f"Error: {check.error}", err=True)
        raise typer.Exit(1)

    try:
        commits = get_stack_commits_with_trailers(config.trunk_ref)
        # A split group still has one title, so each id is listed once
        groups: list[PRUnit] = []
        for unit in detect_pr_units(commits, read_group_titles(config)):
            if unit.type == "group" and unit.id not in [g.id for g in groups]:
                groups.append(unit)
        if not groups:
            typer.echo("Error: No groups in the current stack.", err=True)
            raise typer.Exit(1)

        resolution = resolve_identifier(group_id, groups, [])
        if not resolution.ok:
            typer.echo(format_resolution_error(resolution), err=True)
            typer.echo(err=True)
            _list_groups(groups)
            raise typer.Exit(1)

        group = resolution.unit
        set_group_title(group.id, title.strip(), config)
        typer.echo(f"✓ Group {group.id} renamed to \"{title.strip()}\".")

    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@group_app.command("fix")
def group_fix(
    mode: FixMode = typer.Option(
        FixMode.DISSOLVE,
        "--mode",
        "-m",
        help="merge: move members back together; dissolve: ungroup them; reset: remove all groups",
    ),
) -> None:
    """Repair a split group."""
    config = _load_config()
    try:
        commits = get_stack_commits_with_trailers(config.trunk_ref)
        if not commits:
            typer.echo("No commits in stack.")
            return

        result = parse_stack(commits, read_group_titles(config))
        if result.ok:
            typer.echo("✓ No invalid groups found. Stack is valid.")
            return

        typer.echo(format_validation_error(result))
        typer.echo()

        group = result.group
        if mode == FixMode.MERGE:
            typer.echo(f"Moving the commits of \"{group.title}\" back together...")
            _exit_on_failure(merge_split_group(group.id, config=config))
            typer.echo(f"✓ Group \"{group.title}\" is contiguous again.")
        elif mode == FixMode.DISSOLVE:
            typer.echo(f"Dissolving group \"{group.title}\"...")
            _exit_on_failure(dissolve_group(group.id, config=config))
            typer.echo(f"✓ Group \"{group.title}\" dissolved.")
        else:
            typer.echo("Removing all group trailers...")
            _exit_on_failure(remove_all_group_trailers(config=config))
            typer.echo("✓ All groups removed.")

    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@group_app.command("ids")
def group_ids() -> None:
    """Add a commit id to every stack commit that lacks one."""
    config = _load_config()
    try:
        commits = get_stack_commits_with_trailers(config.trunk_ref)
        missing = [c for c in commits if not c.trailers.get(COMMIT_ID_TRAILER)]
        if not missing:
            typer.echo("✓ All commits already have ids.")
            return

        _exit_on_failure(inject_missing_ids(config=config))
        typer.echo(f"✓ Added ids to {len(missing)} commit(s).")

    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
