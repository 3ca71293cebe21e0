# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Settings snapshot and the layered builder that folds settings fragments."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..env import ENV_PREFIX, Env
from ..errors import SettingsError

DEFAULTS_SOURCE: Final[str] = "defaults"
ENVIRONMENT_SOURCE: Final[str] = "environment"


def _default_jobs() -> int:
    return os.cpu_count() or 4


class Settings(BaseModel):
    """Immutable snapshot of every option; unset options always carry a default."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    experimental: bool = False
    legacy_version_file: bool = True
    legacy_version_file_disable_tools: tuple[str, ...] = ()
    disable_tools: tuple[str, ...] = ()
    trusted_config_paths: tuple[Path, ...] = ()
    jobs: int = Field(default_factory=_default_jobs, ge=1)
    verbose: bool = False
    quiet: bool = False
    fetch_remote_versions_timeout: float = Field(default=10.0, gt=0)
    fetch_remote_versions_cache: int = Field(default=3600, ge=0)

    @field_validator(
        "legacy_version_file_disable_tools",
        "disable_tools",
        "trusted_config_paths",
        mode="before",
    )
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @field_validator("trusted_config_paths", mode="after")
    @classmethod
    def _expand_paths(cls, value: tuple[Path, ...]) -> tuple[Path, ...]:
        return tuple(path.expanduser() for path in value)

    def to_mapping(self) -> dict[str, Any]:
        """Return a JSON-friendly mapping of every setting, sorted by key."""

        dumped = self.model_dump(mode="json")
        return {key: dumped[key] for key in sorted(dumped)}


def settings_keys() -> tuple[str, ...]:
    return tuple(Settings.model_fields)


def env_var_for(key: str) -> str:
    """Return the environment variable that overrides settings ``key``."""

    return f"{ENV_PREFIX}{key.upper()}"


class SettingsBuilder:
    """Fold partial settings mappings field by field into a :class:`Settings`.

    Each :meth:`preloaded` call validates its keys and values immediately so a
    malformed value fails the load even when a later layer overrides it.
    Environment variables are applied by :meth:`build` after every file layer.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._sources: dict[str, str] = {}

    def preloaded(self, values: Mapping[str, Any], source: str) -> SettingsBuilder:
        """Overlay ``values`` supplied by ``source`` onto the accumulated layers.

        Args:
            values: Raw settings mapping (e.g. a ``[settings]`` table).
            source: Identifier used in error messages and provenance.

        Returns:
            SettingsBuilder: ``self`` to allow chaining.

        Raises:
            SettingsError: If a key is unknown or its value is malformed.
        """

        for key, raw in values.items():
            if key not in Settings.model_fields:
                raise SettingsError(key, source, "unknown setting")
            self._values[key] = _validate_field(key, raw, source)
            self._sources[key] = source
        return self

    def environment_overrides(self, env: Env) -> dict[str, str]:
        overrides: dict[str, str] = {}
        for key in settings_keys():
            raw = env.get(env_var_for(key))
            if raw is not None:
                overrides[key] = raw
        return overrides

    def build(self, env: Env | None = None) -> Settings:
        """Apply environment overrides and return the immutable snapshot.

        Args:
            env: Environment snapshot; ``None`` skips the environment layer.

        Returns:
            Settings: Snapshot combining defaults, file layers and environment.
        """

        if env is not None:
            self.preloaded(self.environment_overrides(env), ENVIRONMENT_SOURCE)
        return Settings(**self._values)

    def sources(self) -> dict[str, str]:
        """Return which layer last set each key; unset keys report ``defaults``."""

        return {key: self._sources.get(key, DEFAULTS_SOURCE) for key in settings_keys()}


def _validate_field(key: str, raw: Any, source: str) -> Any:
    try:
        validated = Settings.model_validate({key: raw})
    except ValidationError as exc:
        message = "; ".join(error["msg"] for error in exc.errors())
        raise SettingsError(key, source, message) from exc
    return getattr(validated, key)


__all__ = [
    "DEFAULTS_SOURCE",
    "ENVIRONMENT_SOURCE",
    "Settings",
    "SettingsBuilder",
    "env_var_for",
    "settings_keys",
]
