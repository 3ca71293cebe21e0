# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Name-addressed lookup table of every available plugin."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from ..env import Env
from ..errors import PluginNotFound
from . import Plugin, unalias_plugin
from .core import core_plugins
from .external import ExternalPlugin

if TYPE_CHECKING:
    from ..config.settings import Settings

LOGGER = logging.getLogger(__name__)


def discover_external_plugins(plugins_dir: Path, env: Env) -> list[ExternalPlugin]:
    """Return an :class:`ExternalPlugin` for every directory under ``plugins_dir``."""

    if not plugins_dir.is_dir():
        return []
    return [
        ExternalPlugin(entry.name, entry, env)
        for entry in sorted(plugins_dir.iterdir())
        if entry.is_dir() and not entry.name.startswith(".")
    ]


class PluginRegistry(Mapping[str, Plugin]):
    """Core plugins plus external plugins found on disk.

    Core plugins win when an external plugin directory shares their name.
    """

    def __init__(self, plugins: Iterable[Plugin] = ()) -> None:
        self._plugins: dict[str, Plugin] = {}
        for plugin in plugins:
            self.register(plugin)

    @classmethod
    def load(cls, settings: Settings, env: Env) -> PluginRegistry:
        registry = cls(core_plugins(settings, env))
        for plugin in discover_external_plugins(env.plugins_dir, env):
            if plugin.name in registry:
                LOGGER.debug("external plugin %s shadowed by core plugin", plugin.name)
                continue
            registry.register(plugin)
        return registry

    def register(self, plugin: Plugin) -> None:
        self._plugins[plugin.name] = plugin

    def __getitem__(self, name: str) -> Plugin:
        return self._plugins[unalias_plugin(name)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and unalias_plugin(name) in self._plugins

    def require(self, name: str) -> Plugin:
        """Return the plugin called ``name``.

        Raises:
            PluginNotFound: If no such plugin is available.
        """

        try:
            return self[name]
        except KeyError:
            raise PluginNotFound(name) from None

    def enabled(self, settings: Settings) -> list[Plugin]:
        disabled = set(settings.disable_tools)
        return [plugin for name, plugin in self._plugins.items() if name not in disabled]


__all__ = ["PluginRegistry", "discover_external_plugins"]
