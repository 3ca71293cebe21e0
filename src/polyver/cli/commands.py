# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command implementations for the ``polyver`` CLI."""

from __future__ import annotations

import json
import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from typer.core import TyperCommand

from ..config import Config, load
from ..console import configure_logging
from ..filesystem import display_path
from ..process import CommandOptions, run_command
from ..toolset.builder import ToolsetBuilder
from ..toolset.requests import ToolVersionRequest, parse_tool_arg
from ..toolset.toolset import Toolset
from .shared import CLIError, CLILogger, ConsoleProgress, build_cli_logger, cli_errors

PROGRAM_META_KEY = "polyver.program"


@dataclass(slots=True)
class CLIState:
    """Options shared by every command, set by the application callback."""

    cwd: Path
    verbose: bool = False
    quiet: bool = False


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        state = CLIState(cwd=Path.cwd())
        ctx.obj = state
    return state


def _logger(state: CLIState) -> CLILogger:
    return build_cli_logger(quiet=state.quiet)


def _load(state: CLIState, logger: CLILogger) -> Config:
    """Load the config for ``state.cwd`` and apply its ``verbose`` and ``quiet`` settings.

    A setting can only turn an option on; the CLI flags are never overridden.
    """

    config = load(cwd=state.cwd)
    verbose = state.verbose or config.settings.verbose
    quiet = state.quiet or config.settings.quiet
    if (verbose, quiet) != (state.verbose, state.quiet):
        state.verbose, state.quiet = verbose, quiet
        configure_logging(verbose=verbose, quiet=quiet)
    logger.quiet = quiet
    return config


def _parse_args(tools: Sequence[str] | None) -> list[ToolVersionRequest]:
    requests: list[ToolVersionRequest] = []
    for tool in tools or ():
        try:
            requests.append(parse_tool_arg(tool))
        except ValueError as exc:
            raise CLIError(str(exc), exit_code=2) from exc
    return requests


def _resolved_toolset(config: Config, args: Sequence[ToolVersionRequest] = (), *, only_args: bool = False) -> Toolset:
    toolset = ToolsetBuilder(args).build(config)
    if only_args:
        toolset = Toolset(entry for entry in toolset if entry.source.is_argument)
    toolset.resolve(config)
    return toolset


def _format_setting(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    return str(value)


def _print_env(logger: CLILogger, env: dict[str, str], *, as_json: bool) -> None:
    if as_json:
        logger.echo(json.dumps(env, indent=2, sort_keys=True))
        return
    for key in sorted(env):
        logger.echo(f"export {key}={shlex.quote(env[key])}")


def settings_command(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print settings as JSON."),
    show_sources: bool = typer.Option(False, "--sources", help="Show which layer set each value."),
) -> None:
    """Show the effective settings."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        config = _load(state, logger)
    mapping = config.settings.to_mapping()
    if as_json:
        logger.echo(json.dumps(mapping, indent=2, sort_keys=True))
        return
    for key, value in mapping.items():
        line = f"{key} = {_format_setting(value)}"
        if show_sources:
            line += f"  # {config.settings_sources.get(key, 'defaults')}"
        logger.echo(line)


def current_command(
    ctx: typer.Context,
    plugin: str | None = typer.Argument(None, help="Only show this plugin."),
) -> None:
    """Show the active tool versions and where they were declared."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        config = _load(state, logger)
        toolset = _resolved_toolset(config)
    for version in toolset.list_current_versions():
        if plugin is not None and version.plugin != plugin:
            continue
        logger.echo(f"{version.plugin} {version.version} {version.source}")
        if not version.is_installed():
            logger.warn(f"{version} is not installed")


def resolve_command(
    ctx: typer.Context,
    tools: list[str] = typer.Argument(..., help="Tools to resolve, as plugin@spec."),
) -> None:
    """Resolve symbolic versions such as ``20`` or ``lts`` to concrete versions."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        args = _parse_args(tools)
        config = _load(state, logger)
        toolset = _resolved_toolset(config, args, only_args=True)
    for entry in toolset:
        for request, version in zip(entry.requests, entry.versions):
            logger.echo(f"{request} {version.version}")


def env_command(
    ctx: typer.Context,
    tools: list[str] | None = typer.Argument(None, help="Extra tools to activate, as plugin@spec."),
    as_json: bool = typer.Option(False, "--json", help="Print the environment as JSON."),
) -> None:
    """Print the environment, including PATH, for the active toolset."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        args = _parse_args(tools)
        config = _load(state, logger)
        toolset = _resolved_toolset(config, args)
    _print_env(logger, toolset.env_with_path(config), as_json=as_json)


def hook_env_command(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the environment as JSON."),
) -> None:
    """Like ``env``, but print nothing when no config file changed since the last run."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        config = _load(state, logger)
        if config.should_exit_early:
            return
        toolset = _resolved_toolset(config)
    _print_env(logger, toolset.env_with_path(config), as_json=as_json)


def aliases_command(
    ctx: typer.Context,
    plugin: str | None = typer.Argument(None, help="Only show aliases of this plugin."),
) -> None:
    """List config-declared and plugin-provided aliases."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        config = _load(state, logger)
    for name, table in config.all_aliases().items():
        if plugin is not None and name != plugin:
            continue
        for alias, version in sorted(table.items()):
            logger.echo(f"{name} {alias} {version}")


def config_files_command(
    ctx: typer.Context,
    tracked: bool = typer.Option(False, "--tracked", help="List every config file seen by earlier runs."),
) -> None:
    """List the config files in precedence order, nearest first."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        config = _load(state, logger)
        files = config.get_tracked_config_files() if tracked else dict(config.config_files)
    for path, config_file in files.items():
        tools = config_file.fragment().describe_tools()
        logger.echo(f"{display_path(path)} ({config_file.file_type.value}) {tools}".rstrip())


def install_command(
    ctx: typer.Context,
    tools: list[str] | None = typer.Argument(None, help="Tools to install, as plugin@spec."),
) -> None:
    """Install every missing version of the active toolset."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        args = _parse_args(tools)
        config = _load(state, logger)
        toolset = _resolved_toolset(config, args, only_args=bool(args))
        installed = toolset.install_missing(config, ConsoleProgress(logger))
    if installed:
        logger.ok(f"installed {' '.join(str(version) for version in installed)}")
    else:
        logger.ok("all tools are installed")


class SeparatedCommand(TyperCommand):
    """Typer command that keeps every argument after ``--`` as a program to run."""

    def parse_args(self, ctx: typer.Context, args: list[str]) -> list[str]:
        if "--" in args:
            index = args.index("--")
            ctx.meta[PROGRAM_META_KEY] = args[index + 1 :]
            args = args[:index]
        return super().parse_args(ctx, args)


def exec_command(
    ctx: typer.Context,
    tools: list[str] | None = typer.Argument(None, help="Tools to activate, as plugin@spec."),
    command: str | None = typer.Option(None, "--command", "-c", help="Command string run through the shell."),
) -> None:
    """Run a command with the toolset active.

    Tools named as arguments replace the config's versions of those plugins
    and are installed when missing. Separate the program from the tools with
    ``--``, or pass a shell string with ``--command``.
    """

    state = _state(ctx)
    logger = _logger(state)
    program: list[str] = list(ctx.meta.get(PROGRAM_META_KEY, ()))
    with cli_errors(logger):
        if command is not None and program:
            raise CLIError("pass either --command or a program after --, not both", exit_code=2)
        if command is None and not program:
            raise CLIError("missing command: pass --command or a program after --", exit_code=2)
        args = _parse_args(tools)
        config = _load(state, logger)
        toolset = _resolved_toolset(config, args)
        toolset.install_arg_versions(config, ConsoleProgress(logger))
        env = {**config.process_env.variables, **toolset.env_with_path(config)}
        if command is not None:
            program = [config.process_env.get("SHELL") or "sh", "-c", command]
        options = CommandOptions(cwd=state.cwd, env=env, check=False, capture_output=False, stdin=None)
        try:
            completed = run_command(program, options=options)
        except FileNotFoundError as exc:
            raise CLIError(str(exc), exit_code=127) from exc
    if completed.returncode != 0:
        raise typer.Exit(code=completed.returncode)


def plugins_command(
    ctx: typer.Context,
    urls: bool = typer.Option(False, "--urls", help="Show repository URLs declared in config files."),
) -> None:
    """List the available plugins."""

    state = _state(ctx)
    logger = _logger(state)
    with cli_errors(logger):
        config = _load(state, logger)
    for name in sorted(config.plugins):
        line = f"{name} ({config.plugins[name].plugin_type.value})"
        if urls and name in config.repo_urls:
            line += f" {config.repo_urls[name]}"
        logger.echo(line)


def register_commands(app: typer.Typer) -> None:
    """Attach every polyver command to ``app``."""

    app.command("settings")(settings_command)
    app.command("current")(current_command)
    app.command("resolve")(resolve_command)
    app.command("env")(env_command)
    app.command("hook-env")(hook_env_command)
    app.command("aliases")(aliases_command)
    app.command("config-files")(config_files_command)
    app.command("install")(install_command)
    app.command("exec", cls=SeparatedCommand)(exec_command)
    app.command("plugins")(plugins_command)


__all__ = ["CLIState", "register_commands"]
