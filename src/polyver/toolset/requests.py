# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool version requests and the provenance attached to them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from ..filesystem import display_path

LATEST: Final[str] = "latest"
SYSTEM: Final[str] = "system"
REF_PREFIX: Final[str] = "ref:"
PATH_PREFIX: Final[str] = "path:"
FILTER_PREFIX: Final[str] = "prefix:"


class ToolSourceKind(str, Enum):
    """Kinds of origin a tool version request may have."""

    TOOL_VERSIONS = "tool-versions"
    NATIVE = "native"
    LEGACY = "legacy"
    ENVIRONMENT = "environment"
    ARGUMENT = "argument"


@dataclass(frozen=True, slots=True)
class ToolSource:
    """Where a request was declared."""

    kind: ToolSourceKind
    path: Path | None = None
    detail: str | None = None

    @classmethod
    def argument(cls) -> ToolSource:
        return cls(ToolSourceKind.ARGUMENT)

    @classmethod
    def environment(cls, variable: str) -> ToolSource:
        return cls(ToolSourceKind.ENVIRONMENT, detail=variable)

    @property
    def is_argument(self) -> bool:
        return self.kind is ToolSourceKind.ARGUMENT

    def __str__(self) -> str:
        if self.path is not None:
            return display_path(self.path)
        if self.detail:
            return f"{self.kind.value} {self.detail}"
        return self.kind.value


@dataclass(frozen=True, slots=True)
class ToolVersionRequest:
    """Base class of the tagged request variants."""

    plugin: str

    @property
    def spec(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return f"{self.plugin}@{self.spec}"


@dataclass(frozen=True, slots=True)
class VersionRequest(ToolVersionRequest):
    """An exact version or a symbolic string resolved through aliases and filtering."""

    version: str

    @property
    def spec(self) -> str:
        return self.version


@dataclass(frozen=True, slots=True)
class PrefixRequest(ToolVersionRequest):
    """An explicit version prefix, written ``prefix:<filter>``."""

    prefix: str

    @property
    def spec(self) -> str:
        return f"{FILTER_PREFIX}{self.prefix}"


@dataclass(frozen=True, slots=True)
class LatestRequest(ToolVersionRequest):
    """The highest listed version."""

    @property
    def spec(self) -> str:
        return LATEST


@dataclass(frozen=True, slots=True)
class RefRequest(ToolVersionRequest):
    """A git ref built from source, written ``ref:<ref>``."""

    ref: str

    @property
    def spec(self) -> str:
        return f"{REF_PREFIX}{self.ref}"


@dataclass(frozen=True, slots=True)
class PathRequest(ToolVersionRequest):
    """A pre-installed tool directory, written ``path:<dir>``."""

    path: Path

    @property
    def spec(self) -> str:
        return f"{PATH_PREFIX}{self.path}"


@dataclass(frozen=True, slots=True)
class SystemRequest(ToolVersionRequest):
    """Whatever version is already on ``PATH``."""

    @property
    def spec(self) -> str:
        return SYSTEM


def parse_request(plugin: str, spec: str, *, base_dir: Path | None = None) -> ToolVersionRequest:
    """Return the request variant described by ``spec``.

    Parsing is total: strings without a recognised marker become
    :class:`VersionRequest`.

    Args:
        plugin: Plugin the request targets.
        spec: Textual spec as written in a config file or CLI argument.
        base_dir: Directory that relative ``path:`` specs are anchored to.

    Returns:
        ToolVersionRequest: Parsed request.
    """

    if spec == LATEST:
        return LatestRequest(plugin)
    if spec == SYSTEM:
        return SystemRequest(plugin)
    if spec.startswith(REF_PREFIX):
        return RefRequest(plugin, spec[len(REF_PREFIX) :])
    if spec.startswith(FILTER_PREFIX):
        return PrefixRequest(plugin, spec[len(FILTER_PREFIX) :])
    if spec.startswith(PATH_PREFIX):
        path = Path(spec[len(PATH_PREFIX) :]).expanduser()
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return PathRequest(plugin, path)
    return VersionRequest(plugin, spec)


def parse_tool_arg(arg: str) -> ToolVersionRequest:
    """Parse a ``plugin@spec`` argument; a bare plugin name means ``latest``."""

    plugin, sep, spec = arg.partition("@")
    if not plugin:
        raise ValueError(f"invalid tool argument '{arg}'")
    return parse_request(plugin, spec if sep and spec else LATEST)


__all__ = [
    "LATEST",
    "LatestRequest",
    "PathRequest",
    "PrefixRequest",
    "RefRequest",
    "SYSTEM",
    "SystemRequest",
    "ToolSource",
    "ToolSourceKind",
    "ToolVersionRequest",
    "VersionRequest",
    "parse_request",
    "parse_tool_arg",
]
