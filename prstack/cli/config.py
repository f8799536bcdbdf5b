"""CLI commands for configuration."""

import typer
from pydantic import ValidationError

from prstack.config import (
    ConfigError,
    PrstackConfig,
    get_config_file_path,
    load_config,
    load_global_config,
    save_global_config,
)

# Subcommand group for configuration
config_app = typer.Typer(
    name="config",
    help="Inspect and change prstack configuration",
    add_completion=False,
)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration for the current repository."""
    try:
        config = load_config()
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Current prstack configuration:")
    typer.echo()
    typer.echo(f"  Trunk ref: {config.trunk_ref}")
    typer.echo(f"  Branch prefix: {config.branch_prefix}")
    typer.echo(f"  Namespace: {config.namespace}")
    typer.echo(f"  Group titles ref: {config.group_titles_ref}")
    typer.echo()
    typer.echo(f"Config file: {get_config_file_path()}")
    typer.echo("Override per repository with: git config prstack.trunkRef <ref>")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        ...,
        help="Setting to change (trunk_ref, branch_prefix, namespace)",
    ),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Store a setting in ~/.prstack/config.yaml."""
    fields = list(PrstackConfig.model_fields)
    if key not in fields:
        typer.echo(f"Unknown config key: {key}", err=True)
        typer.echo(f"Valid keys: {', '.join(fields)}")
        raise typer.Exit(1)

    try:
        stored = load_global_config()
        stored[key] = value
        PrstackConfig(**{k: v for k, v in stored.items() if k in fields})
        save_global_config(stored)
    except ValidationError as e:
        typer.echo(f"Error: Invalid value for {key}: {e.errors()[0]['msg']}", err=True)
        raise typer.Exit(1)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✓ {key} set to: {value}")
