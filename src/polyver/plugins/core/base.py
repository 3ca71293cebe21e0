# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared behaviour of plugins built into polyver."""

from __future__ import annotations

import threading
from abc import abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

from ...env import Env
from ...errors import PolyverError, SourceUnavailable
from ...once import OnceCell
from .. import Plugin, PluginType

if TYPE_CHECKING:
    from ...config.settings import Settings

T = TypeVar("T")


def run_with_timeout(plugin: str, task: Callable[[], T], timeout: float) -> T:
    """Run ``task`` on a daemon thread and give up after ``timeout`` seconds.

    An abandoned task keeps running until its own I/O gives up; the thread is
    a daemon so it never delays interpreter exit.

    Raises:
        SourceUnavailable: If the task times out or fails with an I/O error.
    """

    results: list[T] = []
    errors: list[Exception] = []

    def worker() -> None:
        try:
            results.append(task())
        except Exception as exc:  # re-raised on the calling thread
            errors.append(exc)

    thread = threading.Thread(target=worker, name=f"polyver-fetch-{plugin}", daemon=True)
    thread.start()
    thread.join(timeout)
    if thread.is_alive():
        raise SourceUnavailable(plugin, f"timed out after {timeout}s fetching remote versions")
    if errors:
        exc = errors[0]
        if isinstance(exc, SourceUnavailable):
            raise exc
        if isinstance(exc, (PolyverError, OSError, ValueError)):
            raise SourceUnavailable(plugin, f"failed to fetch remote versions: {exc}") from exc
        raise exc
    return results[0]


class CorePlugin(Plugin):
    """Base for built-in plugins; remote listings are fetched once per process.

    An unavailable listing is remembered as well, so an unreachable mirror
    costs one timeout per process rather than one per request.
    """

    plugin_type = PluginType.CORE

    def __init__(self, name: str, env: Env) -> None:
        super().__init__(name)
        self.env = env
        self._remote_versions: OnceCell[tuple[str, ...]] = OnceCell()

    def list_remote_versions(self, settings: Settings) -> list[str]:
        versions = self._remote_versions.get_or_init(
            lambda: tuple(
                run_with_timeout(
                    self.name,
                    lambda: self.fetch_remote_versions(settings),
                    settings.fetch_remote_versions_timeout,
                )
            ),
            remember=(SourceUnavailable,),
        )
        return list(versions)

    @abstractmethod
    def fetch_remote_versions(self, settings: Settings) -> list[str]:
        """Query the upstream listing, returning versions in ascending order."""


__all__ = ["CorePlugin", "run_with_timeout"]
