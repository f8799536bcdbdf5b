"""CLI command for viewing the stack."""

import typer

from prstack.cli.output import format_stack_view, format_validation_error
from prstack.config import ConfigError, load_config
from prstack.core.stack import parse_stack
from prstack.git.exceptions import GitError
from prstack.git.group_titles import read_group_titles
from prstack.git.queries import get_current_branch, get_stack_commits_with_trailers


def view_command() -> None:
    """Show the PR units of the current stack."""
    try:
        config = load_config()
        commits = get_stack_commits_with_trailers(config.trunk_ref)
        if not commits:
            typer.echo("No commits in stack.")
            return

        titles = read_group_titles(config)
        result = parse_stack(commits, titles)
        if not result.ok:
            typer.echo(format_validation_error(result), err=True)
            raise typer.Exit(1)

        typer.echo(format_stack_view(result.units, get_current_branch(), len(commits)))

    except (ConfigError, GitError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
