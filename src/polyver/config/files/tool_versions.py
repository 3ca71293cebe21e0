# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Flat, line-oriented ``.tool-versions`` files.

Example::

    # pinned runtimes
    python 3.11.0 3.10.0
    shfmt  3.6.0
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ...env import Env
from ...filesystem import read_text
from ...plugins import unalias_plugin
from ...toolset.requests import ToolSource, ToolSourceKind, parse_request
from ..fragments import ConfigFileType, ConfigFragment
from ..sources import ConfigSource
from ..templating import TemplateRenderer
from . import ConfigFile

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _PluginLine:
    """One data line plus the comment text that follows it."""

    orig_name: str
    versions: list[str] = field(default_factory=list)
    post: str = "\n"


def _is_filler(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith("#")


class ToolVersionsFile(ConfigFile):
    """A ``.tool-versions`` file.

    Leading comment and blank lines form the prologue; comment lines after a
    data line travel with that line; a trailing colon on a plugin name is
    dropped for good on the next save.
    """

    file_type = ConfigFileType.TOOL_VERSIONS

    def __init__(self, source: ConfigSource, *, pre: str = "", plugins: dict[str, _PluginLine] | None = None) -> None:
        super().__init__(source)
        self._pre = pre
        self._plugins: dict[str, _PluginLine] = plugins or {}

    @classmethod
    def from_file(cls, source: ConfigSource, env: Env) -> ToolVersionsFile:
        LOGGER.debug("parsing tool-versions: %s", source)
        return cls.parse_str(read_text(source.path), source, env)

    @classmethod
    def parse_str(cls, text: str, source: ConfigSource, env: Env) -> ToolVersionsFile:
        """Parse ``text`` as the content of ``source``.

        Trusted sources are rendered through the template engine first;
        untrusted sources are read literally.
        """

        if source.trusted:
            text = TemplateRenderer(source.path, env.variables).render(text)
        pre: list[str] = []
        for line in text.splitlines():
            if not _is_filler(line):
                break
            pre.append(line + "\n")
        return cls(source, pre="".join(pre), plugins=_parse_plugins(text))

    @property
    def plugins(self) -> dict[str, list[str]]:
        return {plugin: list(line.versions) for plugin, line in self._plugins.items()}

    def build_fragment(self) -> ConfigFragment:
        base_dir = self.path.parent
        tools = {
            plugin: tuple(parse_request(plugin, version, base_dir=base_dir) for version in line.versions)
            for plugin, line in self._plugins.items()
            if line.versions
        }
        return ConfigFragment(source=ToolSource(ToolSourceKind.TOOL_VERSIONS, self.path), tools=tools)

    def replace_versions(self, plugin: str, versions: Sequence[str]) -> None:
        self._invalidate()
        line = self._plugins.setdefault(plugin, _PluginLine(orig_name=plugin))
        line.versions = list(versions)

    def remove_plugin(self, plugin: str) -> None:
        self._invalidate()
        self._plugins.pop(plugin, None)

    def dump(self) -> str:
        width = max((len(line.orig_name) for line in self._plugins.values()), default=0)
        parts = [self._pre]
        for line in self._plugins.values():
            parts.append(f"{line.orig_name.ljust(width)} {' '.join(line.versions)}{line.post}")
        return "".join(parts).rstrip() + "\n"


def _parse_plugins(text: str) -> dict[str, _PluginLine]:
    plugins: dict[str, _PluginLine] = {}
    last: _PluginLine | None = None
    for raw in text.splitlines():
        if _is_filler(raw):
            if last is not None:
                last.post += raw + "\n"
            continue
        data, sep, comment = raw.partition("#")
        parts = data.split()
        orig_name = parts[0].rstrip(":")
        if not orig_name:
            LOGGER.warning("ignoring tool-versions line without a plugin name: %r", raw)
            if last is not None:
                last.post += raw + "\n"
            continue
        last = _PluginLine(
            orig_name=orig_name,
            versions=parts[1:],
            post=f" #{comment}\n" if sep else "\n",
        )
        plugins[unalias_plugin(orig_name)] = last
    return plugins


__all__ = ["ToolVersionsFile"]
