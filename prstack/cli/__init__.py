"""CLI entry point for prstack.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from prstack.cli.config import config_app
from prstack.cli.group import group_app
from prstack.cli.main import main_command
from prstack.cli.view import view_command

# Main application
app = typer.Typer(
    name="prstack",
    help="prstack: manage a stack of commits as reviewable PR units",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(group_app, name="group")
app.add_typer(config_app, name="config")

# Add individual commands
app.command("view")(view_command)

# Global options
app.callback()(main_command)


__all__ = [
    "app",
    "config_app",
    "group_app",
    "main_command",
    "view_command",
]
