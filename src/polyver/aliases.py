# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Alias lookup combining config-declared and plugin-intrinsic alias tables."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from threading import Lock
from typing import TYPE_CHECKING

from .errors import PolyverError
from .once import OnceCell
from .process import SubprocessExecutionError

if TYPE_CHECKING:
    from .config.settings import Settings
    from .plugins import Plugin
    from .plugins.registry import PluginRegistry

LOGGER = logging.getLogger(__name__)

AliasMap = dict[str, dict[str, str]]


class AliasResolver:
    """Resolve alias symbols such as ``lts`` to the version they stand for.

    Config aliases are consulted first, then the plugin's own table (queried
    once per plugin), and an unknown symbol is returned unchanged. Lookups are
    exact and case-sensitive.
    """

    def __init__(self, config_aliases: Mapping[str, Mapping[str, str]], registry: PluginRegistry, settings: Settings) -> None:
        self._config_aliases = {plugin: dict(table) for plugin, table in config_aliases.items()}
        self._registry = registry
        self._settings = settings
        self._lock = Lock()
        self._plugin_cells: dict[str, OnceCell[dict[str, str]]] = {}
        self._all: OnceCell[AliasMap] = OnceCell()

    def resolve(self, plugin: str, symbol: str) -> str:
        configured = self._config_aliases.get(plugin, {})
        if symbol in configured:
            return configured[symbol]
        if plugin in self._registry:
            return self.plugin_aliases(plugin).get(symbol, symbol)
        return symbol

    def plugin_aliases(self, plugin: str) -> dict[str, str]:
        """Return the intrinsic alias table of ``plugin``, degrading to ``{}`` on failure."""

        with self._lock:
            cell = self._plugin_cells.setdefault(plugin, OnceCell())
        return cell.get_or_init(lambda: self._fetch(self._registry[plugin]))

    def all_aliases(self) -> AliasMap:
        """Return every plugin's aliases with config aliases layered on top.

        Computed once; plugins are queried in parallel.
        """

        return self._all.get_or_init(self._load_all)

    def _load_all(self) -> AliasMap:
        aliases: AliasMap = {}
        plugins = list(self._registry)
        with ThreadPoolExecutor(max_workers=self._settings.jobs) as executor:
            future_map = {executor.submit(self.plugin_aliases, plugin): plugin for plugin in plugins}
            for future in as_completed(future_map):
                table = future.result()
                if table:
                    aliases[future_map[future]] = dict(table)
        for plugin, table in self._config_aliases.items():
            aliases.setdefault(plugin, {}).update(table)
        return {plugin: aliases[plugin] for plugin in sorted(aliases)}

    def _fetch(self, plugin: Plugin) -> dict[str, str]:
        try:
            return dict(plugin.get_aliases(self._settings))
        except (PolyverError, SubprocessExecutionError, OSError) as exc:
            LOGGER.warning("[%s] failed to load aliases: %s", plugin.name, exc)
            return {}


__all__ = ["AliasMap", "AliasResolver"]
