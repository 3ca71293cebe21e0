# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Normalised data extracted from one configuration source."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ..toolset.requests import ToolSource, ToolVersionRequest


class ConfigFileType(str, Enum):
    """Variants of configuration files understood by the parser."""

    TOOL_VERSIONS = "tool-versions"
    NATIVE = "native"
    LEGACY = "legacy"


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True, slots=True)
class ConfigFragment:
    """Everything a single source contributes to the run.

    Attributes:
        source: Provenance attached to every tool request of this fragment.
        tools: Ordered mapping of plugin name to its requests in file order.
        env: Environment assignments; later keys override earlier ones.
        env_remove: Keys removed from the accumulated environment.
        path_dirs: Directories prepended to ``PATH``, in file order.
        aliases: Plugin name to alias table.
        settings: Raw settings overrides validated by the settings builder.
        plugins: Plugin name to repository URL declarations.
    """

    source: ToolSource
    tools: Mapping[str, tuple[ToolVersionRequest, ...]] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)
    env_remove: tuple[str, ...] = ()
    path_dirs: tuple[Path, ...] = ()
    aliases: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    settings: Mapping[str, Any] = field(default_factory=dict)
    plugins: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tools", _frozen({k: tuple(v) for k, v in self.tools.items()}))
        object.__setattr__(self, "env", _frozen(self.env))
        object.__setattr__(self, "aliases", _frozen({k: _frozen(v) for k, v in self.aliases.items()}))
        object.__setattr__(self, "settings", _frozen(self.settings))
        object.__setattr__(self, "plugins", _frozen(self.plugins))

    def describe_tools(self) -> str:
        """Return the ``plugin@spec`` listing of the fragment's tool requests."""

        return " ".join(str(request) for requests in self.tools.values() for request in requests)


__all__ = ["ConfigFileType", "ConfigFragment"]
