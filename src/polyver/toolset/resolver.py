# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Turn symbolic version requests into concrete versions."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Final

from ..errors import ResolutionError
from .requests import (
    LATEST,
    LatestRequest,
    PathRequest,
    PrefixRequest,
    RefRequest,
    SystemRequest,
    ToolVersionRequest,
    VersionRequest,
)

if TYPE_CHECKING:
    from ..aliases import AliasResolver
    from ..config.settings import Settings
    from ..plugins.registry import PluginRegistry

LOGGER = logging.getLogger(__name__)

FULL_VERSION_RE: Final[re.Pattern[str]] = re.compile(r"^v?(\d+\.\d+\.\d+)$")
V_PREFIX_RE: Final[re.Pattern[str]] = re.compile(r"^v\d")


def match_version(versions: Sequence[str], version_filter: str) -> str | None:
    """Return the last entry of ``versions`` that matches ``version_filter``.

    An empty filter matches everything; otherwise an entry matches when it
    equals the filter or starts with the filter followed by a dot, so ``"2"``
    never matches ``"20.1.0"``.
    """

    if not version_filter:
        return versions[-1] if versions else None
    if V_PREFIX_RE.match(version_filter):
        version_filter = version_filter[1:]
    prefix = f"{version_filter}."
    matches = [version for version in versions if version == version_filter or version.startswith(prefix)]
    return matches[-1] if matches else None


class VersionResolver:
    """Resolve requests against plugin listings and alias tables.

    Full ``X.Y.Z`` versions never trigger a remote query; refs, paths and
    ``system`` resolve to themselves.
    """

    def __init__(self, registry: PluginRegistry, aliases: AliasResolver, settings: Settings) -> None:
        self._registry = registry
        self._aliases = aliases
        self._settings = settings

    def resolve(self, request: ToolVersionRequest) -> str:
        """Return the concrete version ``request`` designates.

        Raises:
            PluginNotFound: If the request needs a listing from an unknown plugin.
            SourceUnavailable: If the plugin listing cannot be fetched.
            ResolutionError: If nothing in the listing matches.
        """

        match request:
            case SystemRequest():
                return request.spec
            case PathRequest(path=path):
                return str(path)
            case RefRequest():
                return request.spec
            case LatestRequest():
                return self.resolve_version(request.plugin, LATEST)
            case PrefixRequest(prefix=prefix):
                return self._resolve_filter(request.plugin, prefix, request.spec)
            case VersionRequest(version=version):
                return self.resolve_version(request.plugin, version)
        raise TypeError(f"unsupported request {request!r}")

    def resolve_version(self, plugin: str, version: str) -> str:
        if full := FULL_VERSION_RE.match(version):
            return full.group(1)
        resolved = self._aliases.resolve(plugin, version)
        if resolved != version:
            LOGGER.debug("[%s] alias %s -> %s", plugin, version, resolved)
            if full := FULL_VERSION_RE.match(resolved):
                return full.group(1)
        version_filter = "" if resolved == LATEST else resolved
        return self._resolve_filter(plugin, version_filter, version)

    def _resolve_filter(self, plugin: str, version_filter: str, spec: str) -> str:
        versions = self._registry.require(plugin).list_remote_versions(self._settings)
        matched = match_version(versions, version_filter)
        if matched is None:
            raise ResolutionError(plugin, spec)
        return matched


__all__ = ["FULL_VERSION_RE", "VersionResolver", "match_version"]
