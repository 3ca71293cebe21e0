# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Native ``.polyver.toml`` files, edited in place through ``tomlkit``."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.toml_document import TOMLDocument

from ...env import Env
from ...errors import ParseError
from ...filesystem import canonical_path, read_text
from ...plugins import unalias_plugin
from ...toolset.requests import ToolSource, ToolSourceKind, ToolVersionRequest, parse_request
from ..fragments import ConfigFileType, ConfigFragment
from ..sources import ConfigSource
from ..templating import TemplateRenderer
from . import ConfigFile

LOGGER = logging.getLogger(__name__)

KNOWN_KEYS: Final[frozenset[str]] = frozenset({"settings", "env", "env_path", "alias", "tools", "plugins"})


class NativeConfigFile(ConfigFile):
    """A TOML config file with ``[settings]``, ``[env]``, ``[alias]``, ``[tools]`` and ``[plugins]``.

    The tomlkit document is kept so edits only touch the ``tools`` table and
    every other region dumps unchanged.
    """

    file_type = ConfigFileType.NATIVE

    def __init__(self, source: ConfigSource, document: TOMLDocument, *, env: Env | None = None) -> None:
        super().__init__(source)
        self._document = document
        self._renderer = TemplateRenderer(source.path, env.variables) if env is not None and source.trusted else None

    @classmethod
    def init(cls, path: Path) -> NativeConfigFile:
        """Return an empty document for ``path``, typically the global config before it exists."""

        return cls(ConfigSource(canonical_path(path), trusted=True, order=0), tomlkit.document())

    @classmethod
    def from_file(cls, source: ConfigSource, env: Env) -> NativeConfigFile:
        LOGGER.debug("parsing native config: %s", source)
        return cls.parse_str(read_text(source.path), source, env)

    @classmethod
    def parse_str(cls, text: str, source: ConfigSource, env: Env) -> NativeConfigFile:
        """Parse ``text`` and validate its sections eagerly.

        Raises:
            ParseError: If the TOML is malformed or a section has the wrong shape.
        """

        try:
            document = tomlkit.parse(text)
        except TOMLKitError as exc:
            raise ParseError(source.path, str(exc)) from exc
        parsed = cls(source, document, env=env)
        parsed.fragment()
        return parsed

    @property
    def document(self) -> TOMLDocument:
        return self._document

    def _render(self, value: str) -> str:
        return self._renderer.render(value) if self._renderer is not None else value

    def _error(self, message: str) -> ParseError:
        return ParseError(self.path, message)

    def _table(self, data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
        value = data.get(key, {})
        if not isinstance(value, Mapping):
            raise self._error(f"'{key}' must be a table")
        return value

    def build_fragment(self) -> ConfigFragment:
        data: dict[str, Any] = self._document.unwrap()
        for key in data:
            if key not in KNOWN_KEYS:
                LOGGER.warning("unknown key '%s' in %s", key, self.source)

        env, env_remove = self._parse_env(self._table(data, "env"))
        return ConfigFragment(
            source=ToolSource(ToolSourceKind.NATIVE, self.path),
            tools=self._parse_tools(self._table(data, "tools")),
            env=env,
            env_remove=env_remove,
            path_dirs=self._parse_env_path(data.get("env_path", [])),
            aliases=self._parse_aliases(self._table(data, "alias")),
            settings={
                key: self._render(value) if isinstance(value, str) else value
                for key, value in self._table(data, "settings").items()
            },
            plugins=self._parse_plugins(self._table(data, "plugins")),
        )

    def _parse_env(self, table: Mapping[str, Any]) -> tuple[dict[str, str], tuple[str, ...]]:
        env: dict[str, str] = {}
        removed: list[str] = []
        for key, value in table.items():
            if value is False:
                removed.append(key)
            elif isinstance(value, str):
                env[key] = self._render(value)
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                env[key] = str(value)
            else:
                raise self._error(f"env.{key} must be a string or false")
        return env, tuple(removed)

    def _parse_env_path(self, value: Any) -> tuple[Path, ...]:
        entries = [value] if isinstance(value, str) else value
        if not isinstance(entries, list) or not all(isinstance(entry, str) for entry in entries):
            raise self._error("'env_path' must be a string or a list of strings")
        base_dir = self.path.parent
        dirs: list[Path] = []
        for entry in entries:
            path = Path(self._render(entry)).expanduser()
            dirs.append(path if path.is_absolute() else base_dir / path)
        return tuple(dirs)

    def _parse_aliases(self, table: Mapping[str, Any]) -> dict[str, dict[str, str]]:
        aliases: dict[str, dict[str, str]] = {}
        for plugin, entries in table.items():
            if not isinstance(entries, Mapping):
                raise self._error(f"alias.{plugin} must be a table")
            plugin_aliases = aliases.setdefault(unalias_plugin(plugin), {})
            for alias, version in entries.items():
                if not isinstance(version, str):
                    raise self._error(f"alias.{plugin}.{alias} must be a string")
                plugin_aliases[alias] = self._render(version)
        return aliases

    def _parse_tools(self, table: Mapping[str, Any]) -> dict[str, tuple[ToolVersionRequest, ...]]:
        base_dir = self.path.parent
        tools: dict[str, tuple[ToolVersionRequest, ...]] = {}
        for key, value in table.items():
            specs = [value] if isinstance(value, str) else value
            if not isinstance(specs, list) or not all(isinstance(spec, str) for spec in specs):
                raise self._error(f"tools.{key} must be a string or a list of strings")
            plugin = unalias_plugin(key)
            tools[plugin] = tuple(parse_request(plugin, self._render(spec), base_dir=base_dir) for spec in specs)
        return tools

    def _parse_plugins(self, table: Mapping[str, Any]) -> dict[str, str]:
        plugins: dict[str, str] = {}
        for plugin, url in table.items():
            if not isinstance(url, str):
                raise self._error(f"plugins.{plugin} must be a repository URL")
            plugins[plugin] = self._render(url)
        return plugins

    def _tool_key(self, plugin: str) -> str | None:
        tools = self._document.get("tools")
        if tools is None:
            return None
        for key in tools:
            if unalias_plugin(key) == plugin:
                return key
        return None

    def replace_versions(self, plugin: str, versions: Sequence[str]) -> None:
        self._invalidate()
        if "tools" not in self._document:
            self._document["tools"] = tomlkit.table()
        key = self._tool_key(plugin) or plugin
        self._document["tools"][key] = versions[0] if len(versions) == 1 else list(versions)

    def remove_plugin(self, plugin: str) -> None:
        self._invalidate()
        key = self._tool_key(plugin)
        if key is not None:
            del self._document["tools"][key]

    def dump(self) -> str:
        return tomlkit.dumps(self._document)


__all__ = ["NativeConfigFile"]
