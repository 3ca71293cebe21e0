# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Fold config files, environment overrides and CLI arguments into a :class:`Toolset`."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..env import Env, tool_version_var
from .requests import ToolSource, ToolVersionRequest, parse_request
from .toolset import Toolset, ToolVersionList

if TYPE_CHECKING:
    from ..config.loader import Config

LOGGER = logging.getLogger(__name__)


class ToolsetBuilder:
    """Build the active toolset for a loaded config.

    Layers, lowest precedence first:

    1. every config file, global first and the nearest project file last;
    2. ``POLYVER_<PLUGIN>_VERSION`` environment variables;
    3. CLI arguments.

    Each layer replaces a plugin's request list wholesale. Plugins named in
    ``disable_tools`` are dropped at the end.
    """

    def __init__(self, args: Sequence[ToolVersionRequest] = (), env: Env | None = None) -> None:
        self.args = list(args)
        self.env = env

    def build(self, config: Config) -> Toolset:
        env = self.env or config.process_env
        toolset = Toolset(disable_tools=config.settings.disable_tools)
        self._load_config_files(toolset, config)
        self._load_environment(toolset, config, env)
        self._load_args(toolset)
        toolset.drop_disabled()
        LOGGER.debug("toolset: %s", toolset)
        return toolset

    @staticmethod
    def _load_config_files(toolset: Toolset, config: Config) -> None:
        for fragment in reversed(config.fragments()):
            toolset.merge(Toolset.from_requests(fragment.tools, fragment.source))

    @staticmethod
    def _load_environment(toolset: Toolset, config: Config, env: Env) -> None:
        candidates = dict.fromkeys([*toolset.plugins, *config.plugins])
        for plugin in candidates:
            raw = env.tool_version_override(plugin)
            if raw is None:
                continue
            requests = [parse_request(plugin, spec) for spec in raw.split()]
            source = ToolSource.environment(tool_version_var(plugin))
            toolset.merge(Toolset([ToolVersionList(plugin, source, requests)]))

    def _load_args(self, toolset: Toolset) -> None:
        grouped: dict[str, list[ToolVersionRequest]] = {}
        for request in self.args:
            grouped.setdefault(request.plugin, []).append(request)
        if grouped:
            toolset.merge(Toolset.from_requests(grouped, ToolSource.argument()))


__all__ = ["ToolsetBuilder"]
