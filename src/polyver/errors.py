# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared by configuration loading and version resolution."""

from __future__ import annotations

from pathlib import Path


class PolyverError(Exception):
    """Base class for every error surfaced to polyver callers."""


class ParseError(PolyverError):
    """Raised when a configuration source contains malformed content.

    The error is fatal for the whole load: a partially parsed configuration set
    is never acted upon.
    """

    def __init__(self, path: Path, message: str) -> None:
        """Initialise the error with the offending ``path``.

        Args:
            path: Configuration file that failed to parse.
            message: Description of the failure.
        """

        super().__init__(f"error parsing config file {path}: {message}")
        self.path = path


class SettingsError(PolyverError):
    """Raised when a settings key is unknown or carries a malformed value."""

    def __init__(self, key: str, source: str, message: str) -> None:
        """Initialise the error naming the offending ``key`` and ``source``.

        Args:
            key: Settings key that failed validation.
            source: Identifier of the layer that supplied the value.
            message: Description of the failure.
        """

        super().__init__(f"invalid setting '{key}' from {source}: {message}")
        self.key = key
        self.source = source


class SourceUnavailable(PolyverError):
    """Raised when a plugin query fails or times out.

    Callers downgrade this to empty data unless the affected plugin was
    explicitly requested by the user.
    """

    def __init__(self, plugin: str, message: str) -> None:
        super().__init__(f"[{plugin}] {message}")
        self.plugin = plugin


class ResolutionError(PolyverError):
    """Raised when no concrete version matches a symbolic request."""

    def __init__(self, plugin: str, spec: str) -> None:
        super().__init__(f"[{plugin}] no version found matching {spec}")
        self.plugin = plugin
        self.spec = spec


class PluginNotFound(PolyverError):
    """Raised when a request names a plugin that is not installed."""

    def __init__(self, plugin: str) -> None:
        super().__init__(f"plugin {plugin} is not installed")
        self.plugin = plugin


class TrackingError(PolyverError):
    """Raised internally when the change tracker cannot persist its record."""


__all__ = [
    "ParseError",
    "PluginNotFound",
    "PolyverError",
    "ResolutionError",
    "SettingsError",
    "SourceUnavailable",
    "TrackingError",
]
