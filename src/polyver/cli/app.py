# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands and shared options."""

from __future__ import annotations

from pathlib import Path

import typer

from .. import __version__
from ..console import configure_logging
from .commands import CLIState, register_commands

app = typer.Typer(
    name="polyver",
    help="Polyglot runtime version manager.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"polyver {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    cd: Path | None = typer.Option(None, "--cd", "-C", help="Run as if started in this directory."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug diagnostics."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Polyglot runtime version manager."""

    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = CLIState(cwd=(cd or Path.cwd()).expanduser(), verbose=verbose, quiet=quiet)


register_commands(app)

__all__ = ["app"]
