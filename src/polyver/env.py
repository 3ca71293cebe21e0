# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Reserved environment variables and the on-disk directory layout."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

ENV_PREFIX: Final[str] = "POLYVER_"

CONFIG_FILE_VAR: Final[str] = "POLYVER_CONFIG_FILE"
DEFAULT_CONFIG_FILENAME_VAR: Final[str] = "POLYVER_DEFAULT_CONFIG_FILENAME"
DEFAULT_TOOL_VERSIONS_FILENAME_VAR: Final[str] = "POLYVER_DEFAULT_TOOL_VERSIONS_FILENAME"
ENV_SCOPE_VAR: Final[str] = "POLYVER_ENV"
USE_TOML_VAR: Final[str] = "POLYVER_USE_TOML"
CONFIG_DIR_VAR: Final[str] = "POLYVER_CONFIG_DIR"
DATA_DIR_VAR: Final[str] = "POLYVER_DATA_DIR"
CACHE_DIR_VAR: Final[str] = "POLYVER_CACHE_DIR"

DEFAULT_CONFIG_FILENAME: Final[str] = ".polyver.toml"
DEFAULT_TOOL_VERSIONS_FILENAME: Final[str] = ".tool-versions"
GLOBAL_CONFIG_FILENAME: Final[str] = "config.toml"
APP_DIR_NAME: Final[str] = "polyver"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off", ""})


def parse_bool(raw: str) -> bool | None:
    """Return the boolean meaning of ``raw`` or ``None`` when ambiguous.

    Args:
        raw: Raw environment variable value.

    Returns:
        bool | None: Parsed flag, ``None`` when ``raw`` is not a recognised literal.
    """

    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    return None


def tool_version_var(plugin: str) -> str:
    """Return the variable that overrides the requested versions of ``plugin``."""

    return f"{ENV_PREFIX}{plugin.upper().replace('-', '_')}_VERSION"


@dataclass(frozen=True, slots=True)
class Env:
    """Snapshot of the process environment with reserved-variable accessors."""

    variables: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))

    @classmethod
    def current(cls) -> Env:
        """Return a snapshot of ``os.environ``."""

        return cls(dict(os.environ))

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.variables.get(key, default)

    def flag(self, key: str) -> bool:
        value = self.variables.get(key)
        return bool(value is not None and parse_bool(value))

    @property
    def home(self) -> Path:
        return Path(self.variables.get("HOME") or Path.home())

    @property
    def config_file(self) -> Path | None:
        """Return the user override for the global native config file."""

        raw = self.variables.get(CONFIG_FILE_VAR)
        return Path(raw).expanduser() if raw else None

    @property
    def default_config_filename(self) -> str:
        return self.variables.get(DEFAULT_CONFIG_FILENAME_VAR) or DEFAULT_CONFIG_FILENAME

    @property
    def default_tool_versions_filename(self) -> str:
        return self.variables.get(DEFAULT_TOOL_VERSIONS_FILENAME_VAR) or DEFAULT_TOOL_VERSIONS_FILENAME

    @property
    def env_scope(self) -> str | None:
        return self.variables.get(ENV_SCOPE_VAR) or None

    @property
    def use_toml(self) -> bool:
        return self.flag(USE_TOML_VAR)

    @property
    def config_dir(self) -> Path:
        return self._app_dir(CONFIG_DIR_VAR, "XDG_CONFIG_HOME", ".config")

    @property
    def data_dir(self) -> Path:
        return self._app_dir(DATA_DIR_VAR, "XDG_DATA_HOME", ".local/share")

    @property
    def cache_dir(self) -> Path:
        return self._app_dir(CACHE_DIR_VAR, "XDG_CACHE_HOME", ".cache")

    @property
    def plugins_dir(self) -> Path:
        return self.data_dir / "plugins"

    @property
    def installs_dir(self) -> Path:
        return self.data_dir / "installs"

    @property
    def global_config_path(self) -> Path:
        """Return the global native config file, honouring the override variable."""

        return self.config_file or self.config_dir / GLOBAL_CONFIG_FILENAME

    def tool_version_override(self, plugin: str) -> str | None:
        """Return ``POLYVER_<PLUGIN>_VERSION`` for ``plugin`` when set."""

        return self.variables.get(tool_version_var(plugin)) or None

    def _app_dir(self, override_var: str, xdg_var: str, fallback: str) -> Path:
        if override := self.variables.get(override_var):
            return Path(override).expanduser()
        base = self.variables.get(xdg_var)
        root = Path(base).expanduser() if base else self.home / fallback
        return root / APP_DIR_NAME


__all__ = [
    "CACHE_DIR_VAR",
    "CONFIG_DIR_VAR",
    "CONFIG_FILE_VAR",
    "DATA_DIR_VAR",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_CONFIG_FILENAME_VAR",
    "DEFAULT_TOOL_VERSIONS_FILENAME",
    "DEFAULT_TOOL_VERSIONS_FILENAME_VAR",
    "ENV_PREFIX",
    "ENV_SCOPE_VAR",
    "Env",
    "USE_TOML_VAR",
    "parse_bool",
    "tool_version_var",
]
