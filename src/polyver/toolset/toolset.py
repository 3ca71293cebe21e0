# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""The set of tool version requests active for a project, and their resolved form."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import PluginNotFound, SourceUnavailable
from .requests import PathRequest, RefRequest, SystemRequest, ToolSource, ToolVersionRequest
from .resolver import VersionResolver

if TYPE_CHECKING:
    from ..config.loader import Config
    from ..env import Env
    from ..plugins import ProgressReport

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolVersion:
    """A request pinned to a concrete version.

    Attributes:
        request: Request the version was resolved from.
        version: Concrete version string.
        source: Where the request was declared.
        install_path: Directory the version lives in; ``None`` for ``system``.
    """

    request: ToolVersionRequest
    version: str
    source: ToolSource
    install_path: Path | None

    @classmethod
    def from_request(cls, request: ToolVersionRequest, version: str, source: ToolSource, env: Env) -> ToolVersion:
        install_path: Path | None
        if isinstance(request, SystemRequest):
            install_path = None
        elif isinstance(request, PathRequest):
            install_path = request.path
        elif isinstance(request, RefRequest):
            install_path = env.installs_dir / request.plugin / f"ref-{request.ref}"
        else:
            install_path = env.installs_dir / request.plugin / version
        return cls(request, version, source, install_path)

    @property
    def plugin(self) -> str:
        return self.request.plugin

    def is_installed(self) -> bool:
        return self.install_path is None or self.install_path.is_dir()

    def bin_paths(self) -> list[Path]:
        if self.install_path is None:
            return []
        return [self.install_path / "bin"]

    def __str__(self) -> str:
        return f"{self.plugin}@{self.version}"


@dataclass(slots=True)
class ToolVersionList:
    """Every request declared for one plugin by a single source layer."""

    plugin: str
    source: ToolSource
    requests: list[ToolVersionRequest] = field(default_factory=list)
    versions: list[ToolVersion] = field(default_factory=list)

    def resolve(self, resolver: VersionResolver, env: Env) -> None:
        """Resolve each request in order, dropping those whose source is unavailable.

        Raises:
            SourceUnavailable: If the list came from a CLI argument and a query failed.
            ResolutionError: If a request matches no version.
        """

        self.versions = []
        for request in self.requests:
            try:
                version = resolver.resolve(request)
            except SourceUnavailable as exc:
                if self.source.is_argument:
                    raise
                LOGGER.warning("skipping %s from %s: %s", request, self.source, exc)
                continue
            self.versions.append(ToolVersion.from_request(request, version, self.source, env))


class Toolset:
    """Ordered mapping of plugin name to the requests of the layer that won it.

    Adding a plugin that is already present replaces its request list
    wholesale; plugin order follows first appearance.
    """

    def __init__(self, entries: Iterable[ToolVersionList] = (), *, disable_tools: Iterable[str] = ()) -> None:
        self._entries: dict[str, ToolVersionList] = {}
        self.disable_tools = frozenset(disable_tools)
        for entry in entries:
            self._entries[entry.plugin] = entry

    @classmethod
    def from_requests(cls, requests: Mapping[str, Iterable[ToolVersionRequest]], source: ToolSource) -> Toolset:
        return cls(ToolVersionList(plugin, source, list(specs)) for plugin, specs in requests.items())

    def __iter__(self) -> Iterator[ToolVersionList]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, plugin: object) -> bool:
        return plugin in self._entries

    def __getitem__(self, plugin: str) -> ToolVersionList:
        return self._entries[plugin]

    def __str__(self) -> str:
        return " ".join(str(request) for entry in self for request in entry.requests)

    def __repr__(self) -> str:
        return f"Toolset({self})"

    @property
    def plugins(self) -> list[str]:
        return list(self._entries)

    def merge(self, other: Toolset) -> Toolset:
        """Overlay ``other``; its plugins replace this toolset's entries."""

        for entry in other:
            self._entries[entry.plugin] = entry
        self.disable_tools |= other.disable_tools
        return self

    def remove(self, plugin: str) -> None:
        self._entries.pop(plugin, None)

    def drop_disabled(self) -> None:
        for plugin in self.disable_tools:
            self.remove(plugin)

    def resolve(self, config: Config) -> None:
        """Resolve every plugin's requests in parallel.

        Raises:
            PluginNotFound: If a CLI argument names a plugin that is not installed.
            SourceUnavailable: If a CLI-requested plugin cannot be queried.
            ResolutionError: If a request matches no version.
        """

        resolver = VersionResolver(config.plugins, config.alias_resolver, config.settings)
        entries = [entry for entry in self if self._resolvable(entry, config)]
        with ThreadPoolExecutor(max_workers=config.settings.jobs) as executor:
            future_map = {executor.submit(entry.resolve, resolver, config.process_env): entry for entry in entries}
            for future in as_completed(future_map):
                future.result()

    @staticmethod
    def _resolvable(entry: ToolVersionList, config: Config) -> bool:
        if entry.plugin in config.plugins:
            return True
        if all(isinstance(request, (PathRequest, SystemRequest)) for request in entry.requests):
            return True
        if entry.source.is_argument:
            raise PluginNotFound(entry.plugin)
        LOGGER.warning("%s, requested by %s", PluginNotFound(entry.plugin), entry.source)
        return False

    def list_current_versions(self) -> list[ToolVersion]:
        return [version for entry in self for version in entry.versions]

    def list_missing(self) -> list[ToolVersion]:
        """Return resolved versions whose install directory does not exist yet."""

        return [version for version in self.list_current_versions() if not version.is_installed()]

    def install_missing(self, config: Config, progress: ProgressReport) -> list[ToolVersion]:
        """Install every missing version, one plugin at a time.

        Returns:
            list[ToolVersion]: Versions that were installed.

        Raises:
            PluginNotFound: If a missing version belongs to an unknown plugin.
        """

        return self._install(self.list_missing(), config, progress)

    def install_arg_versions(self, config: Config, progress: ProgressReport) -> list[ToolVersion]:
        """Install the missing versions requested on the command line only."""

        missing = [version for version in self.list_missing() if version.source.is_argument]
        return self._install(missing, config, progress)

    @staticmethod
    def _install(versions: Iterable[ToolVersion], config: Config, progress: ProgressReport) -> list[ToolVersion]:
        installed: list[ToolVersion] = []
        for version in versions:
            plugin = config.plugins.require(version.plugin)
            progress.set_message(f"installing {version}")
            plugin.install_version(version, progress)
            progress.println(f"installed {version}")
            installed.append(version)
        return installed

    def list_paths(self) -> list[Path]:
        return [path for version in self.list_current_versions() for path in version.bin_paths()]

    def env_with_path(self, config: Config, base_path: str | None = None) -> dict[str, str]:
        """Return the config environment with ``PATH`` extended for the resolved tools.

        Config ``env_path`` directories come first, then tool bin directories
        in toolset order, then ``base_path``.
        """

        env = dict(config.env)
        entries = [str(path) for path in (*config.path_dirs, *self.list_paths())]
        base = base_path if base_path is not None else config.process_env.get("PATH", "")
        if base:
            entries.append(base)
        env["PATH"] = os.pathsep.join(entries)
        return env


__all__ = ["ToolVersion", "ToolVersionList", "Toolset"]
