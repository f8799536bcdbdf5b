"""Main CLI callback: global options."""

import logging
from typing import Optional

import typer

from prstack import __version__


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"prstack {__version__}")
        raise typer.Exit()


def main_command(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging (git commands and rewrites)",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """prstack: manage a stack of commits as reviewable PR units."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
        force=True,
    )
