# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Load the configuration that applies to a directory.

Loading is a two-pass bootstrap. Pass one builds settings from defaults,
the global config file and the environment; those settings select which
file names are searched. Every discovered file is then parsed in parallel
and the settings are rebuilt from all of them. If that changes the
filename-affecting settings, discovery runs again and only files not parsed
yet are read.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final

from ..aliases import AliasMap, AliasResolver
from ..env import Env
from ..errors import ParseError
from ..filesystem import canonical_path, display_path
from ..plugins.registry import PluginRegistry
from ..tracking import ChangeTracker
from .discovery import LegacyFilenames, discover, legacy_filenames
from .files import ConfigFile, parse_config_file
from .files.native import NativeConfigFile
from .fragments import ConfigFileType, ConfigFragment
from .settings import Settings, SettingsBuilder
from .sources import ConfigSource, build_sources

LOGGER = logging.getLogger(__name__)

TRUST_SETTINGS: Final[frozenset[str]] = frozenset({"trusted_config_paths"})


@dataclass(frozen=True)
class Config:
    """Immutable result of :func:`load`.

    Attributes:
        settings: Final settings snapshot.
        settings_sources: Which layer last set each settings key.
        config_files: Parsed files in discovery order, nearest first.
        plugins: Available plugins.
        env: Environment assignments folded from every file.
        env_sources: Config file that last assigned each env key.
        path_dirs: Directories to prepend to ``PATH``, nearest source first.
        aliases: Config-declared aliases folded from every file.
        repo_urls: Plugin repository URLs declared in native files.
        project_root: Directory of the nearest project config file.
        legacy_filenames: Legacy file name to candidate plugin names.
        should_exit_early: Whether every config file is unchanged since the last run.
        process_env: Environment snapshot the load ran against.
        tracker: Change tracker holding the config file fingerprints.
    """

    settings: Settings
    settings_sources: Mapping[str, str]
    config_files: Mapping[Path, ConfigFile]
    plugins: PluginRegistry
    env: Mapping[str, str]
    env_sources: Mapping[str, Path]
    path_dirs: tuple[Path, ...]
    aliases: Mapping[str, Mapping[str, str]]
    repo_urls: Mapping[str, str]
    project_root: Path | None
    legacy_filenames: Mapping[str, Sequence[str]]
    should_exit_early: bool
    process_env: Env
    tracker: ChangeTracker = field(repr=False)
    alias_resolver: AliasResolver = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "alias_resolver", AliasResolver(self.aliases, self.plugins, self.settings))

    @property
    def global_config(self) -> ConfigFile | None:
        return self.config_files.get(canonical_path(self.process_env.global_config_path))

    def fragments(self) -> list[ConfigFragment]:
        """Return every file's fragment, nearest first."""

        return [config_file.fragment() for config_file in self.config_files.values()]

    def resolve_alias(self, plugin: str, symbol: str) -> str:
        return self.alias_resolver.resolve(plugin, symbol)

    def all_aliases(self) -> AliasMap:
        return self.alias_resolver.all_aliases()

    def get_tracked_config_files(self) -> dict[Path, ConfigFile]:
        """Parse every config file ever recorded by the change tracker.

        Files that no longer parse are logged and skipped.
        """

        tracked: dict[Path, ConfigFile] = {}
        sources = build_sources(self.tracker.tracked_paths(), self.settings, self.process_env)
        for source in sources:
            if source.path in self.config_files:
                tracked[source.path] = self.config_files[source.path]
                continue
            try:
                tracked[source.path] = self._parse(source)
            except ParseError as exc:
                LOGGER.warning("%s", exc)
        return tracked

    def _parse(self, source: ConfigSource) -> ConfigFile:
        return parse_config_file(
            source,
            settings=self.settings,
            env=self.process_env,
            legacy_filenames=self.legacy_filenames,
            registry=self.plugins,
        )


def _filename_settings(settings: Settings) -> tuple[object, ...]:
    return (
        settings.experimental,
        settings.legacy_version_file,
        settings.legacy_version_file_disable_tools,
        settings.disable_tools,
    )


def _parse_all(
    sources: Sequence[ConfigSource],
    *,
    settings: Settings,
    env: Env,
    legacy: LegacyFilenames,
    registry: PluginRegistry,
    parsed: Mapping[Path, ConfigFile],
) -> dict[Path, ConfigFile]:
    """Parse ``sources`` in parallel, reusing entries of ``parsed`` with the same trust.

    Raises:
        ParseError: The failure of the source earliest in discovery order.
    """

    results: dict[Path, ConfigFile] = {}
    pending: list[ConfigSource] = []
    for source in sources:
        previous = parsed.get(source.path)
        if previous is not None and previous.source.trusted == source.trusted:
            results[source.path] = previous
        else:
            pending.append(source)

    errors: dict[int, ParseError] = {}
    with ThreadPoolExecutor(max_workers=settings.jobs) as executor:
        future_map = {
            executor.submit(
                parse_config_file,
                source,
                settings=settings,
                env=env,
                legacy_filenames=legacy,
                registry=registry,
            ): source
            for source in pending
        }
        for future in as_completed(future_map):
            source = future_map[future]
            try:
                results[source.path] = future.result()
            except ParseError as exc:
                errors[source.order] = exc
    if errors:
        raise errors[min(errors)]
    return {source.path: results[source.path] for source in sources}


def _fold_settings(files: Mapping[Path, ConfigFile], env: Env) -> tuple[Settings, dict[str, str]]:
    """Fold every file's ``[settings]``, farthest first, then the environment.

    Trust settings are only honoured from the global config file; a project
    file cannot widen the set of files allowed to run template expressions.
    """

    global_path = canonical_path(env.global_config_path)
    builder = SettingsBuilder()
    for path, config_file in reversed(list(files.items())):
        settings = dict(config_file.fragment().settings)
        if path != global_path:
            for key in TRUST_SETTINGS.intersection(settings):
                LOGGER.warning(
                    "ignoring setting '%s' from %s: only allowed in %s", key, config_file.source, display_path(global_path)
                )
                del settings[key]
        if settings:
            builder.preloaded(settings, str(config_file.source))
    return builder.build(env), builder.sources()


def _global_settings(env: Env) -> tuple[Settings, dict[Path, ConfigFile]]:
    """Pass one: defaults, the global config file and the environment."""

    builder = SettingsBuilder()
    parsed: dict[Path, ConfigFile] = {}
    path = env.global_config_path
    if path.is_file():
        source = ConfigSource(canonical_path(path), trusted=True, order=0)
        try:
            global_file = NativeConfigFile.from_file(source, env)
        except OSError as exc:
            raise ParseError(source.path, str(exc)) from exc
        builder.preloaded(global_file.fragment().settings, str(source))
        parsed[source.path] = global_file
    return builder.build(env), parsed


def _project_root(files: Mapping[Path, ConfigFile], env: Env) -> Path | None:
    global_paths = {
        canonical_path(env.global_config_path),
        canonical_path(env.home / env.default_tool_versions_filename),
    }
    for path, config_file in files.items():
        if path in global_paths:
            continue
        if config_file.file_type in (ConfigFileType.NATIVE, ConfigFileType.TOOL_VERSIONS):
            return path.parent
    return None


def _fold_env(files: Mapping[Path, ConfigFile]) -> tuple[dict[str, str], dict[str, Path]]:
    env: dict[str, str] = {}
    sources: dict[str, Path] = {}
    for path, config_file in reversed(list(files.items())):
        fragment = config_file.fragment()
        for key in fragment.env_remove:
            env.pop(key, None)
            sources.pop(key, None)
        for key, value in fragment.env.items():
            env[key] = value
            sources[key] = path
    return env, sources


def _fold_aliases(files: Mapping[Path, ConfigFile]) -> dict[str, dict[str, str]]:
    aliases: dict[str, dict[str, str]] = {}
    for config_file in reversed(list(files.values())):
        for plugin, table in config_file.fragment().aliases.items():
            aliases.setdefault(plugin, {}).update(table)
    return aliases


def _fold_repo_urls(files: Mapping[Path, ConfigFile]) -> dict[str, str]:
    urls: dict[str, str] = {}
    for config_file in reversed(list(files.values())):
        urls.update(config_file.fragment().plugins)
    return urls


def load(cwd: Path | None = None, env: Env | None = None, registry: PluginRegistry | None = None) -> Config:
    """Discover, parse and fold every config file that applies to ``cwd``.

    Args:
        cwd: Directory the search starts from; defaults to the process cwd.
        env: Environment snapshot; defaults to ``os.environ``.
        registry: Plugins to use; defaults to core plus installed external plugins.

    Returns:
        Config: The loaded configuration.

    Raises:
        ParseError: If any discovered file is malformed.
        SettingsError: If a settings key is unknown or malformed.
    """

    env = env or Env.current()
    start = canonical_path(cwd or Path.cwd())

    settings, parsed = _global_settings(env)
    plugins = registry or PluginRegistry.load(settings, env)
    legacy = legacy_filenames(settings, plugins)
    paths = discover(settings, env, legacy, start)

    tracker = ChangeTracker(env.cache_dir)
    tracker.start(paths)
    try:
        sources = build_sources(paths, settings, env)
        files = _parse_all(sources, settings=settings, env=env, legacy=legacy, registry=plugins, parsed=parsed)
        final_settings, _ = _fold_settings(files, env)

        if _filename_settings(final_settings) != _filename_settings(settings):
            LOGGER.debug("settings changed the searched file names; discovering again")
            if registry is None and final_settings.experimental != settings.experimental:
                plugins = PluginRegistry.load(final_settings, env)
            new_legacy = legacy_filenames(final_settings, plugins)
            if new_legacy != legacy:
                files = {path: cf for path, cf in files.items() if cf.file_type is not ConfigFileType.LEGACY}
            legacy = new_legacy
            paths = discover(final_settings, env, legacy, start)
            tracker.start(paths)
        sources = build_sources(paths, settings, env)
        files = _parse_all(sources, settings=final_settings, env=env, legacy=legacy, registry=plugins, parsed=files)
        final_settings, settings_sources = _fold_settings(files, env)

        env_vars, env_sources = _fold_env(files)
        path_dirs = tuple(path for config_file in files.values() for path in config_file.fragment().path_dirs)
        config = Config(
            settings=final_settings,
            settings_sources=MappingProxyType(settings_sources),
            config_files=MappingProxyType(files),
            plugins=plugins,
            env=MappingProxyType(env_vars),
            env_sources=MappingProxyType(env_sources),
            path_dirs=path_dirs,
            aliases=MappingProxyType(_fold_aliases(files)),
            repo_urls=MappingProxyType(_fold_repo_urls(files)),
            project_root=_project_root(files, env),
            legacy_filenames=MappingProxyType(legacy),
            should_exit_early=tracker.should_exit_early(paths),
            process_env=env,
            tracker=tracker,
        )
    finally:
        tracker.join()
    LOGGER.debug("loaded %d config files: %s", len(config.config_files), ", ".join(map(str, config.config_files)))
    return config


__all__ = ["Config", "load"]
