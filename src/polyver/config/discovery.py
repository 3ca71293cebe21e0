# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate the configuration files that apply to a working directory."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from ..env import DEFAULT_CONFIG_FILENAME, Env
from ..errors import PolyverError
from ..filesystem import canonical_path, find_up
from ..plugins import Plugin
from ..plugins.registry import PluginRegistry
from ..process import SubprocessExecutionError
from .settings import Settings

LOGGER = logging.getLogger(__name__)

LegacyFilenames = dict[str, list[str]]


def _plugin_legacy_filenames(plugin: Plugin, settings: Settings) -> list[str]:
    try:
        return plugin.legacy_filenames(settings)
    except (PolyverError, SubprocessExecutionError, OSError) as exc:
        LOGGER.warning("[%s] failed to list legacy filenames: %s", plugin.name, exc)
        return []


def legacy_filenames(settings: Settings, registry: PluginRegistry) -> LegacyFilenames:
    """Map each legacy version file name to the plugins that understand it.

    Args:
        settings: Settings controlling legacy file support.
        registry: Plugins to query, in parallel.

    Returns:
        LegacyFilenames: File name to candidate plugin names, sorted by plugin name.
    """

    if not settings.legacy_version_file:
        return {}
    excluded = set(settings.legacy_version_file_disable_tools)
    plugins = [plugin for plugin in registry.enabled(settings) if plugin.name not in excluded]
    mapping: LegacyFilenames = {}
    with ThreadPoolExecutor(max_workers=settings.jobs) as executor:
        future_map = {executor.submit(_plugin_legacy_filenames, plugin, settings): plugin for plugin in plugins}
        for future in as_completed(future_map):
            plugin = future_map[future]
            for filename in future.result():
                mapping.setdefault(filename, []).append(plugin.name)
    return {filename: sorted(names) for filename, names in sorted(mapping.items())}


def config_filenames(settings: Settings, env: Env, legacy: Mapping[str, Sequence[str]]) -> list[str]:
    """Return the file names searched in each directory, lowest precedence first."""

    filenames = [*legacy, env.default_tool_versions_filename, env.default_config_filename]
    if settings.experimental and env.default_config_filename == DEFAULT_CONFIG_FILENAME:
        filenames.append(".polyver.local.toml")
        if scope := env.env_scope:
            filenames.extend([f".polyver.{scope}.toml", f".polyver.{scope}.local.toml"])
    return list(dict.fromkeys(filenames))


def global_config_files(env: Env) -> list[Path]:
    """Return the global files that exist, the home tool-versions file first."""

    candidates: list[Path] = []
    if env.config_file is None and not env.use_toml:
        candidates.append(env.home / env.default_tool_versions_filename)
    candidates.append(env.global_config_path)
    return [path for path in candidates if path.is_file()]


def discover(settings: Settings, env: Env, legacy: Mapping[str, Sequence[str]], cwd: Path) -> list[Path]:
    """Return every applicable config file, nearest first and global files last.

    Within one directory the higher-precedence names come first, so the native
    file beats the tool-versions file, which beats legacy files.

    Args:
        settings: Settings that select the searched file names.
        env: Environment snapshot supplying reserved variables.
        legacy: Legacy file name mapping from :func:`legacy_filenames`.
        cwd: Directory the upward search starts from.

    Returns:
        list[Path]: Canonical paths without duplicates.
    """

    filenames = list(reversed(config_filenames(settings, env, legacy)))
    found = [*find_up(cwd, filenames), *global_config_files(env)]
    unique: dict[Path, None] = {}
    for path in found:
        unique.setdefault(canonical_path(path), None)
    LOGGER.debug("discovered config files: %s", ", ".join(str(path) for path in unique))
    return list(unique)


__all__ = ["LegacyFilenames", "config_filenames", "discover", "global_config_files", "legacy_filenames"]
