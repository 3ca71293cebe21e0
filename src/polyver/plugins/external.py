# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""asdf-compatible plugins installed under ``<data_dir>/plugins/<name>``."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Final

from ..env import Env
from ..errors import SourceUnavailable
from ..once import OnceCell
from ..process import CommandOptions, SubprocessExecutionError, run_command
from ..toolset.requests import PathRequest, RefRequest
from . import Plugin, PluginType
from .remote_cache import cache_path, load_remote_versions, save_remote_versions

if TYPE_CHECKING:
    from ..config.settings import Settings
    from ..toolset.toolset import ToolVersion
    from . import ProgressReport

LOGGER = logging.getLogger(__name__)

LIST_ALL: Final[str] = "list-all"
LIST_LEGACY_FILENAMES: Final[str] = "list-legacy-filenames"
PARSE_LEGACY_FILE: Final[str] = "parse-legacy-file"
LIST_ALIASES: Final[str] = "list-aliases"
INSTALL: Final[str] = "install"


class ExternalPlugin(Plugin):
    """A plugin whose capabilities are executables in its ``bin`` directory.

    Missing optional scripts fall back to the defaults of :class:`Plugin`.
    """

    plugin_type = PluginType.EXTERNAL

    def __init__(self, name: str, plugin_path: Path, env: Env) -> None:
        super().__init__(name)
        self.plugin_path = plugin_path
        self.env = env
        self._remote_versions: OnceCell[tuple[str, ...]] = OnceCell()

    def script(self, name: str) -> Path:
        return self.plugin_path / "bin" / name

    def has_script(self, name: str) -> bool:
        script = self.script(name)
        return script.is_file() and os.access(script, os.X_OK)

    def _run(self, name: str, *args: str, timeout: float | None = None, extra_env: dict[str, str] | None = None) -> str:
        env = {**self.env.variables, **(extra_env or {})}
        options = CommandOptions(cwd=self.plugin_path, env=env).with_timeout(timeout)
        LOGGER.debug("[%s] running %s %s", self.name, name, " ".join(args))
        return run_command([str(self.script(name)), *args], options=options).stdout

    def list_remote_versions(self, settings: Settings) -> list[str]:
        versions = self._remote_versions.get_or_init(
            lambda: tuple(self._cached_remote_versions(settings)),
            remember=(SourceUnavailable,),
        )
        return list(versions)

    def _cached_remote_versions(self, settings: Settings) -> list[str]:
        path = cache_path(self.env.cache_dir, self.name)
        script = self.script(LIST_ALL)
        newer_than = script.stat().st_mtime if script.exists() else 0.0
        cached = load_remote_versions(path, ttl=settings.fetch_remote_versions_cache, newer_than=newer_than)
        if cached is not None:
            LOGGER.debug("[%s] using cached remote versions from %s", self.name, path)
            return cached
        versions = self.fetch_remote_versions(settings)
        if settings.fetch_remote_versions_cache > 0:
            try:
                save_remote_versions(path, versions)
            except OSError as exc:
                LOGGER.warning("[%s] failed to cache remote versions: %s", self.name, exc)
        return versions

    def fetch_remote_versions(self, settings: Settings) -> list[str]:
        """Run ``bin/list-all``; listed versions are already in ascending order.

        Raises:
            SourceUnavailable: If the script is missing, fails or times out.
        """

        if not self.has_script(LIST_ALL):
            raise SourceUnavailable(self.name, f"plugin has no bin/{LIST_ALL} script")
        try:
            output = self._run(LIST_ALL, timeout=settings.fetch_remote_versions_timeout)
        except SubprocessExecutionError as exc:
            reason = "timed out" if exc.timed_out else f"failed: {exc}"
            raise SourceUnavailable(self.name, f"{LIST_ALL} {reason}") from exc
        except OSError as exc:
            raise SourceUnavailable(self.name, f"{LIST_ALL} failed: {exc}") from exc
        return list(dict.fromkeys(output.split()))

    def get_aliases(self, settings: Settings) -> dict[str, str]:
        if not self.has_script(LIST_ALIASES):
            return {}
        aliases: dict[str, str] = {}
        for line in self._run(LIST_ALIASES).splitlines():
            parts = line.split()
            if len(parts) == 2:
                aliases[parts[0]] = parts[1]
            elif parts:
                LOGGER.warning("[%s] ignoring malformed alias line: %s", self.name, line)
        return aliases

    def legacy_filenames(self, settings: Settings) -> list[str]:
        if not self.has_script(LIST_LEGACY_FILENAMES):
            return []
        return self._run(LIST_LEGACY_FILENAMES).split()

    def parse_legacy_file(self, path: Path, settings: Settings) -> str:
        if not self.has_script(PARSE_LEGACY_FILE):
            return super().parse_legacy_file(path, settings)
        return self._run(PARSE_LEGACY_FILE, str(path)).strip()

    def install_version(self, tool_version: ToolVersion, progress: ProgressReport) -> None:
        if tool_version.install_path is None or isinstance(tool_version.request, PathRequest):
            return
        if isinstance(tool_version.request, RefRequest):
            install_type, version = "ref", tool_version.request.ref
        else:
            install_type, version = "version", tool_version.version
        tool_version.install_path.mkdir(parents=True, exist_ok=True)
        progress.set_message(f"running {INSTALL}")
        output = self._run(
            INSTALL,
            extra_env={
                "ASDF_INSTALL_TYPE": install_type,
                "ASDF_INSTALL_VERSION": version,
                "ASDF_INSTALL_PATH": str(tool_version.install_path),
            },
        )
        for line in output.splitlines():
            progress.println(line)


__all__ = ["ExternalPlugin"]
