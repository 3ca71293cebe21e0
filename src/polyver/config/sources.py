# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration source identities and trust evaluation."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from ..env import Env
from ..filesystem import canonical_path, display_path, is_within
from .settings import Settings


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """A configuration file selected by discovery.

    Identity is the canonical path; ``order`` is the discovery index (nearest
    project file first, global files last).
    """

    path: Path
    trusted: bool
    order: int

    def __str__(self) -> str:
        return display_path(self.path)


def trusted_roots(settings: Settings, env: Env) -> tuple[Path, ...]:
    """Return the directories whose files may execute template expressions.

    The user config directory and the global config file are always trusted;
    additional roots come from ``trusted_config_paths``.
    """

    roots = [env.config_dir, env.global_config_path]
    roots.extend(settings.trusted_config_paths)
    return tuple(canonical_path(root) for root in roots)


def is_trusted(path: Path, settings: Settings, env: Env) -> bool:
    """Return ``True`` when ``path`` lives under a trusted root.

    The home flat tool-versions file is the user's own global file and is
    trusted as well.
    """

    candidate = canonical_path(path)
    if candidate == canonical_path(env.home / env.default_tool_versions_filename):
        return True
    return any(is_within(candidate, root) for root in trusted_roots(settings, env))


def build_sources(paths: Iterable[Path], settings: Settings, env: Env) -> list[ConfigSource]:
    """Return unique :class:`ConfigSource` entries for ``paths`` in the given order.

    Args:
        paths: Candidate files in precedence order (nearest first).
        settings: Settings used to evaluate trust.
        env: Environment snapshot providing the fixed trusted locations.

    Returns:
        list[ConfigSource]: Sources deduplicated by canonical path; the first
        occurrence wins.
    """

    seen: set[Path] = set()
    sources: list[ConfigSource] = []
    for path in paths:
        canonical = canonical_path(path)
        if canonical in seen:
            continue
        seen.add(canonical)
        sources.append(ConfigSource(canonical, is_trusted(canonical, settings, env), len(sources)))
    return sources


__all__ = ["ConfigSource", "build_sources", "is_trusted", "trusted_roots"]
