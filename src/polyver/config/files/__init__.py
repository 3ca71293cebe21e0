# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Config file variants and the dispatcher that selects one per source."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from ...env import Env
from ...errors import ParseError
from ...filesystem import display_path, write_atomic
from ..fragments import ConfigFileType, ConfigFragment
from ..settings import Settings
from ..sources import ConfigSource

if TYPE_CHECKING:
    from ...plugins.registry import PluginRegistry


class ConfigFile(ABC):
    """One parsed configuration source that can be re-serialised."""

    file_type: ClassVar[ConfigFileType]

    def __init__(self, source: ConfigSource) -> None:
        self.source = source
        self._fragment: ConfigFragment | None = None

    @property
    def path(self) -> Path:
        return self.source.path

    def fragment(self) -> ConfigFragment:
        """Return the normalised data contributed by this file, computed once per edit."""

        if self._fragment is None:
            self._fragment = self.build_fragment()
        return self._fragment

    @abstractmethod
    def build_fragment(self) -> ConfigFragment:
        """Extract the fragment from the current file content."""

    def _invalidate(self) -> None:
        self._fragment = None

    @abstractmethod
    def dump(self) -> str:
        """Return the file text; untouched regions are reproduced byte for byte."""

    @abstractmethod
    def replace_versions(self, plugin: str, versions: Sequence[str]) -> None:
        """Replace every version declared for ``plugin`` with ``versions``."""

    @abstractmethod
    def remove_plugin(self, plugin: str) -> None:
        """Drop every declaration of ``plugin``."""

    def save(self) -> None:
        write_atomic(self.path, self.dump())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({display_path(self.path)}): {self.fragment().describe_tools()}"


def is_tool_versions_name(name: str, env: Env) -> bool:
    return name == env.default_tool_versions_filename or name.endswith(".tool-versions")


def parse_config_file(
    source: ConfigSource,
    *,
    settings: Settings,
    env: Env,
    legacy_filenames: Mapping[str, Sequence[str]],
    registry: PluginRegistry,
) -> ConfigFile:
    """Parse ``source`` with the variant its file name selects.

    Args:
        source: Source to parse.
        settings: Settings passed to plugins parsing legacy files.
        env: Environment snapshot used as template context.
        legacy_filenames: Legacy file name to candidate plugin names.
        registry: Plugins available for legacy parsing.

    Returns:
        ConfigFile: Parsed file.

    Raises:
        ParseError: If the content is malformed or cannot be read.
    """

    from .legacy import LegacyVersionFile
    from .native import NativeConfigFile
    from .tool_versions import ToolVersionsFile

    name = source.path.name
    try:
        if name in legacy_filenames:
            plugins = [registry[plugin] for plugin in legacy_filenames[name] if plugin in registry]
            return LegacyVersionFile.parse(source, plugins, settings)
        if is_tool_versions_name(name, env):
            return ToolVersionsFile.from_file(source, env)
        return NativeConfigFile.from_file(source, env)
    except ParseError:
        raise
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(source.path, str(exc)) from exc


__all__ = ["ConfigFile", "is_tool_versions_name", "parse_config_file"]
