# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Plugin capability interface shared by core and external plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

from ..filesystem import read_text

if TYPE_CHECKING:
    from ..config.settings import Settings
    from ..toolset.toolset import ToolVersion

# Historical plugin names canonicalised to their current name.
PLUGIN_ALIASES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "nodejs": "node",
        "golang": "go",
    }
)


def unalias_plugin(name: str) -> str:
    """Return the canonical plugin name for ``name``."""

    return PLUGIN_ALIASES.get(name, name)


class PluginType(str, Enum):
    """Where a plugin implementation comes from."""

    CORE = "core"
    EXTERNAL = "external"


@runtime_checkable
class ProgressReport(Protocol):
    """Sink receiving installer progress lines."""

    def set_message(self, message: str) -> None:
        """Replace the current status line."""

    def println(self, line: str) -> None:
        """Emit a persistent line of output."""


class Plugin(ABC):
    """Capability surface every tool plugin provides.

    Callers never branch on the concrete variant; they only react to a
    capability failing.
    """

    plugin_type: PluginType

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @abstractmethod
    def list_remote_versions(self, settings: Settings) -> list[str]:
        """Return every installable version in ascending order.

        Raises:
            SourceUnavailable: If the listing cannot be fetched.
        """

    def get_aliases(self, settings: Settings) -> dict[str, str]:
        """Return the plugin's intrinsic alias table."""

        return {}

    def legacy_filenames(self, settings: Settings) -> list[str]:
        """Return tool-specific version file names the plugin understands."""

        return []

    def parse_legacy_file(self, path: Path, settings: Settings) -> str:
        """Return the version declared by the legacy file at ``path``."""

        return read_text(path).strip()

    @abstractmethod
    def install_version(self, tool_version: ToolVersion, progress: ProgressReport) -> None:
        """Install ``tool_version`` into its install path."""


__all__ = [
    "PLUGIN_ALIASES",
    "Plugin",
    "PluginType",
    "ProgressReport",
    "unalias_plugin",
]
