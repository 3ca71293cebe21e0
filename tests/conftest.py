# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import pytest

from polyver.config.settings import Settings
from polyver.env import Env
from polyver.errors import PolyverError
from polyver.plugins import Plugin, PluginType
from polyver.plugins.registry import PluginRegistry
from polyver.toolset.toolset import ToolVersion

NODE_INDEX = [
    {"version": "v20.1.0"},
    {"version": "v20.0.0"},
    {"version": "v18.16.0"},
    {"version": "v18.0.0"},
]


class StaticPlugin(Plugin):
    """In-memory plugin with canned answers and call counters."""

    plugin_type = PluginType.CORE

    def __init__(
        self,
        name: str,
        versions: Iterable[str] = (),
        *,
        aliases: Mapping[str, str] | None = None,
        legacy: Iterable[str] = (),
        remote_error: PolyverError | None = None,
        alias_error: PolyverError | None = None,
        legacy_error: PolyverError | None = None,
        parse_error: PolyverError | None = None,
    ) -> None:
        super().__init__(name)
        self.versions = list(versions)
        self.aliases = dict(aliases or {})
        self.legacy = list(legacy)
        self.remote_error = remote_error
        self.alias_error = alias_error
        self.legacy_error = legacy_error
        self.parse_error = parse_error
        self.calls: Counter[str] = Counter()
        self.installed: list[str] = []

    def list_remote_versions(self, settings: Settings) -> list[str]:
        self.calls["list_remote_versions"] += 1
        if self.remote_error is not None:
            raise self.remote_error
        return list(self.versions)

    def get_aliases(self, settings: Settings) -> dict[str, str]:
        self.calls["get_aliases"] += 1
        if self.alias_error is not None:
            raise self.alias_error
        return dict(self.aliases)

    def legacy_filenames(self, settings: Settings) -> list[str]:
        self.calls["legacy_filenames"] += 1
        if self.legacy_error is not None:
            raise self.legacy_error
        return list(self.legacy)

    def parse_legacy_file(self, path: Path, settings: Settings) -> str:
        if self.parse_error is not None:
            raise self.parse_error
        return super().parse_legacy_file(path, settings)

    def install_version(self, tool_version: ToolVersion, progress) -> None:
        assert tool_version.install_path is not None
        (tool_version.install_path / "bin").mkdir(parents=True)
        self.installed.append(tool_version.version)


class RecordingProgress:
    def __init__(self) -> None:
        self.messages: list[str] = []
        self.lines: list[str] = []

    def set_message(self, message: str) -> None:
        self.messages.append(message)

    def println(self, line: str) -> None:
        self.lines.append(line)


@pytest.fixture(autouse=True)
def _reset_polyver_logger() -> Iterable[None]:
    yield
    logger = logging.getLogger("polyver")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def polyver_env(tmp_path: Path, home_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Env:
    """Point every polyver directory at ``tmp_path`` and return the matching snapshot."""

    for key in list(os.environ):
        if key.startswith("POLYVER_"):
            monkeypatch.delenv(key)
    mirror = tmp_path / "mirror"
    mirror.mkdir()
    (mirror / "index.json").write_text(json.dumps(NODE_INDEX), encoding="utf-8")
    variables = {
        "HOME": str(home_dir),
        "XDG_CONFIG_HOME": str(home_dir / ".config"),
        "XDG_DATA_HOME": str(home_dir / ".local" / "share"),
        "XDG_CACHE_HOME": str(home_dir / ".cache"),
        "POLYVER_NODE_MIRROR_URL": mirror.as_uri() + "/",
        "POLYVER_JOBS": "2",
    }
    for key, value in variables.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setattr(Path, "home", lambda: home_dir)
    return Env({**variables, "PATH": os.environ.get("PATH", "")})


@pytest.fixture
def make_plugin() -> Callable[..., StaticPlugin]:
    return StaticPlugin


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()


@pytest.fixture
def node_plugin() -> StaticPlugin:
    return StaticPlugin(
        "node",
        ["18.0.0", "18.16.0", "20.0.0", "20.1.0"],
        aliases={"lts": "20", "lts/hydrogen": "18"},
        legacy=[".nvmrc", ".node-version"],
    )


@pytest.fixture
def registry(node_plugin: StaticPlugin) -> PluginRegistry:
    return PluginRegistry([node_plugin, StaticPlugin("python", ["3.10.0", "3.11.0", "3.11.4", "3.12.0"])])


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root

