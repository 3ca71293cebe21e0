# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""On-disk cache of remote version listings produced by external plugins."""

from __future__ import annotations

import json
import time
from collections.abc import Sequence
from pathlib import Path

from ..filesystem import write_atomic

_CACHE_FILE = "remote-versions.json"


def cache_path(cache_dir: Path, plugin: str) -> Path:
    return cache_dir / "plugins" / plugin / _CACHE_FILE


def load_remote_versions(path: Path, *, ttl: float, newer_than: float = 0.0) -> list[str] | None:
    """Use this helper to read a cached listing that is still fresh.

    Args:
        path: Cache file location.
        ttl: Maximum age in seconds; ``0`` disables the cache.
        newer_than: Timestamp the cache must be newer than, such as the
            modification time of the plugin's listing script.

    Returns:
        list[str] | None: Cached versions, or ``None`` when missing, stale or corrupt.
    """

    if ttl <= 0 or not path.is_file():
        return None
    mtime = path.stat().st_mtime
    if mtime < newer_than or time.time() - mtime > ttl:
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, list):
        return None
    return [str(item) for item in data if isinstance(item, str)]


def save_remote_versions(path: Path, versions: Sequence[str]) -> None:
    """Use this helper to persist ``versions`` at ``path``."""

    write_atomic(path, json.dumps(list(versions), indent=2))


__all__ = ["cache_path", "load_remote_versions", "save_remote_versions"]
