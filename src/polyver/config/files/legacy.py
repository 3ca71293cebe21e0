# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool-specific version files such as ``.nvmrc`` or ``.python-version``."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ...errors import ParseError, PolyverError
from ...plugins import Plugin
from ...process import SubprocessExecutionError
from ...toolset.requests import ToolSource, ToolSourceKind, parse_request
from ..fragments import ConfigFileType, ConfigFragment
from ..settings import Settings
from ..sources import ConfigSource
from . import ConfigFile

LOGGER = logging.getLogger(__name__)


class LegacyVersionFile(ConfigFile):
    """A single-version file interpreted by the plugins that claim its name."""

    file_type = ConfigFileType.LEGACY

    def __init__(self, source: ConfigSource, versions: dict[str, str]) -> None:
        super().__init__(source)
        self._versions = versions

    @classmethod
    def parse(cls, source: ConfigSource, plugins: Sequence[Plugin], settings: Settings) -> LegacyVersionFile:
        """Ask each candidate plugin for the version ``source`` declares.

        Raises:
            ParseError: If a plugin fails to interpret the file.
        """

        versions: dict[str, str] = {}
        for plugin in plugins:
            try:
                version = plugin.parse_legacy_file(source.path, settings).strip()
            except ParseError:
                raise
            except (PolyverError, SubprocessExecutionError) as exc:
                raise ParseError(source.path, f"[{plugin.name}] {exc}") from exc
            if version:
                versions[plugin.name] = version
        LOGGER.debug("legacy file %s declares %s", source, versions)
        return cls(source, versions)

    @property
    def versions(self) -> dict[str, str]:
        return dict(self._versions)

    def build_fragment(self) -> ConfigFragment:
        base_dir = self.path.parent
        return ConfigFragment(
            source=ToolSource(ToolSourceKind.LEGACY, self.path),
            tools={plugin: (parse_request(plugin, version, base_dir=base_dir),) for plugin, version in self._versions.items()},
        )

    def replace_versions(self, plugin: str, versions: Sequence[str]) -> None:
        self._invalidate()
        if versions:
            self._versions[plugin] = versions[0]

    def remove_plugin(self, plugin: str) -> None:
        self._invalidate()
        self._versions.pop(plugin, None)

    def dump(self) -> str:
        version = next(iter(self._versions.values()), "")
        return f"{version}\n"


__all__ = ["LegacyVersionFile"]
