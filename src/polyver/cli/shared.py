# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (logging, errors, progress)."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer
from rich.console import Console

from ..console import fail as core_fail
from ..console import get_console
from ..console import ok as core_ok
from ..console import warn as core_warn
from ..errors import PolyverError


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around console helpers respecting CLI emoji settings."""

    console: Console
    use_emoji: bool
    quiet: bool = False

    def fail(self, message: str) -> None:
        core_fail(message, use_emoji=self.use_emoji)

    def warn(self, message: str) -> None:
        if not self.quiet:
            core_warn(message, use_emoji=self.use_emoji)

    def ok(self, message: str) -> None:
        if not self.quiet:
            core_ok(message, use_emoji=self.use_emoji)

    def echo(self, message: str) -> None:
        """Write ``message`` to stdout using Typer's echo helper."""

        typer.echo(message)


def build_cli_logger(*, emoji: bool = False, quiet: bool = False) -> CLILogger:
    """Return a ``CLILogger`` bound to the shared stderr console."""

    return CLILogger(console=get_console(emoji=emoji), use_emoji=emoji, quiet=quiet)


@dataclass(slots=True)
class ConsoleProgress:
    """Progress sink printing installer output through a :class:`CLILogger`."""

    logger: CLILogger

    def set_message(self, message: str) -> None:
        if not self.logger.quiet:
            self.logger.console.print(f"[dim]{message}[/dim]")

    def println(self, line: str) -> None:
        self.logger.echo(line)


@contextmanager
def cli_errors(logger: CLILogger) -> Iterator[None]:
    """Translate polyver failures into a non-zero exit.

    Raises:
        typer.Exit: When the wrapped block raises :class:`PolyverError` or :class:`CLIError`.
    """

    try:
        yield
    except CLIError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    except PolyverError as exc:
        logger.fail(str(exc))
        raise typer.Exit(code=1) from exc


__all__ = ["CLIError", "CLILogger", "ConsoleProgress", "build_cli_logger", "cli_errors"]
