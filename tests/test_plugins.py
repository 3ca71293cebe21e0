# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for core and external plugins and the plugin registry."""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path

import pytest

from polyver.config.settings import Settings
from polyver.env import Env
from polyver.errors import PluginNotFound, SourceUnavailable
from polyver.filesystem import make_executable
from polyver.plugins import PluginType, unalias_plugin
from polyver.plugins.core import core_plugins
from polyver.plugins.core.base import CorePlugin, run_with_timeout
from polyver.plugins.core.node import NodePlugin
from polyver.plugins.core.python import PythonPlugin, sort_versions
from polyver.plugins.external import ExternalPlugin
from polyver.plugins.registry import PluginRegistry, discover_external_plugins
from polyver.plugins.remote_cache import cache_path, load_remote_versions, save_remote_versions
from polyver.toolset.requests import RefRequest, ToolSource, VersionRequest
from polyver.toolset.toolset import ToolVersion


def _script(plugin_dir: Path, name: str, body: str) -> Path:
    path = plugin_dir / "bin" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    make_executable(path)
    return path


@pytest.fixture
def plugin_dir(polyver_env: Env) -> Path:
    path = polyver_env.plugins_dir / "tiny"
    path.mkdir(parents=True)
    return path


def test_unalias_plugin() -> None:
    assert unalias_plugin("nodejs") == "node"
    assert unalias_plugin("golang") == "go"
    assert unalias_plugin("ruby") == "ruby"


def test_external_list_all_is_cached(plugin_dir: Path, polyver_env: Env) -> None:
    script = _script(plugin_dir, "list-all", 'echo "1.0.0 1.1.0"\necho "2.0.0 1.1.0"')
    settings = Settings()

    assert ExternalPlugin("tiny", plugin_dir, polyver_env).list_remote_versions(settings) == ["1.0.0", "1.1.0", "2.0.0"]
    assert cache_path(polyver_env.cache_dir, "tiny").is_file()

    # a fresh instance answers from the cache while the script is not executable
    script.chmod(0o644)
    assert ExternalPlugin("tiny", plugin_dir, polyver_env).list_remote_versions(settings) == ["1.0.0", "1.1.0", "2.0.0"]

    future = time.time() + 60
    os.utime(script, (future, future))
    with pytest.raises(SourceUnavailable, match="no bin/list-all script"):
        ExternalPlugin("tiny", plugin_dir, polyver_env).list_remote_versions(settings)


def test_external_cache_can_be_disabled(plugin_dir: Path, polyver_env: Env) -> None:
    _script(plugin_dir, "list-all", 'echo "1.0.0"')

    ExternalPlugin("tiny", plugin_dir, polyver_env).list_remote_versions(Settings(fetch_remote_versions_cache=0))

    assert not cache_path(polyver_env.cache_dir, "tiny").exists()


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("echo broken >&2\nexit 3", "list-all failed"),
        ("exec sleep 5", "list-all timed out"),
    ],
)
def test_external_list_all_failures(plugin_dir: Path, polyver_env: Env, body: str, message: str) -> None:
    _script(plugin_dir, "list-all", body)
    settings = Settings(fetch_remote_versions_timeout=0.5, fetch_remote_versions_cache=0)

    with pytest.raises(SourceUnavailable, match=message) as excinfo:
        ExternalPlugin("tiny", plugin_dir, polyver_env).fetch_remote_versions(settings)

    assert excinfo.value.plugin == "tiny"


def test_external_optional_scripts(
    plugin_dir: Path, polyver_env: Env, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    plugin = ExternalPlugin("tiny", plugin_dir, polyver_env)
    legacy = tmp_path / ".tiny-version"
    legacy.write_text("v1.1.0\n", encoding="utf-8")

    assert plugin.get_aliases(Settings()) == {}
    assert plugin.legacy_filenames(Settings()) == []
    assert plugin.parse_legacy_file(legacy, Settings()) == "v1.1.0"

    _script(plugin_dir, "list-aliases", 'echo "stable 1.1.0"\necho "broken line here"')
    _script(plugin_dir, "list-legacy-filenames", 'echo ".tiny-version .tinyrc"')
    _script(plugin_dir, "parse-legacy-file", "sed 's/^v//' \"$1\"")

    with caplog.at_level(logging.WARNING, logger="polyver"):
        assert plugin.get_aliases(Settings()) == {"stable": "1.1.0"}
    assert "ignoring malformed alias line" in caplog.text
    assert plugin.legacy_filenames(Settings()) == [".tiny-version", ".tinyrc"]
    assert plugin.parse_legacy_file(legacy, Settings()) == "1.1.0"


def test_external_install_passes_asdf_variables(plugin_dir: Path, polyver_env: Env, progress) -> None:
    _script(plugin_dir, "install", 'mkdir -p "$ASDF_INSTALL_PATH/bin"\necho "$ASDF_INSTALL_TYPE $ASDF_INSTALL_VERSION"')
    plugin = ExternalPlugin("tiny", plugin_dir, polyver_env)
    version = ToolVersion.from_request(VersionRequest("tiny", "1"), "1.1.0", ToolSource.argument(), polyver_env)
    ref = ToolVersion.from_request(RefRequest("tiny", "main"), "ref:main", ToolSource.argument(), polyver_env)

    plugin.install_version(version, progress)
    plugin.install_version(ref, progress)

    assert version.is_installed()
    assert ref.install_path == polyver_env.installs_dir / "tiny" / "ref-main"
    assert progress.lines == ["version 1.1.0", "ref main"]


def test_registry_discovers_external_plugins(polyver_env: Env) -> None:
    for name in ("tiny", "node", ".hidden"):
        (polyver_env.plugins_dir / name).mkdir(parents=True)

    registry = PluginRegistry.load(Settings(), polyver_env)

    assert sorted(registry) == ["node", "tiny"]
    assert isinstance(registry["node"], NodePlugin)
    assert registry["tiny"].plugin_type is PluginType.EXTERNAL
    assert registry["nodejs"] is registry["node"]
    assert "nodejs" in registry
    with pytest.raises(PluginNotFound, match="plugin ruby is not installed"):
        registry.require("ruby")


def test_discover_without_plugins_dir(tmp_path: Path) -> None:
    assert discover_external_plugins(tmp_path / "missing", Env({})) == []


def test_python_is_experimental(polyver_env: Env) -> None:
    assert [plugin.name for plugin in core_plugins(Settings(), polyver_env)] == ["node"]
    assert [plugin.name for plugin in core_plugins(Settings(experimental=True), polyver_env)] == ["node", "python"]


def test_registry_enabled_skips_disabled_tools(registry: PluginRegistry) -> None:
    assert [plugin.name for plugin in registry.enabled(Settings(disable_tools=("python",)))] == ["node"]


def test_node_lists_versions_from_mirror(polyver_env: Env) -> None:
    plugin = NodePlugin("node", polyver_env)

    assert plugin.list_remote_versions(Settings()) == ["18.0.0", "18.16.0", "20.0.0", "20.1.0"]
    assert plugin.get_aliases(Settings())["lts/hydrogen"] == "18"
    assert plugin.legacy_filenames(Settings()) == [".node-version", ".nvmrc"]


def test_node_unreachable_mirror(tmp_path: Path) -> None:
    env = Env({"POLYVER_NODE_MIRROR_URL": (tmp_path / "nowhere").as_uri() + "/"})

    with pytest.raises(SourceUnavailable, match=r"^\[node\] failed to fetch remote versions"):
        NodePlugin("node", env).list_remote_versions(Settings())


def test_python_lists_release_directories(tmp_path: Path) -> None:
    listing = tmp_path / "python.html"
    listing.write_text(
        '<a href="3.11.4/">3.11.4/</a>\n<a href="3.10.0/">3.10.0/</a>\n'
        '<a href="3.12.0/">3.12.0/</a>\n<a href="doc/">doc/</a>\n<a href="3.11.4/">3.11.4/</a>\n',
        encoding="utf-8",
    )
    plugin = PythonPlugin("python", Env({"POLYVER_PYTHON_MIRROR_URL": listing.as_uri()}))

    assert plugin.list_remote_versions(Settings()) == ["3.10.0", "3.11.4", "3.12.0"]


def test_sort_versions_drops_invalid_entries() -> None:
    assert sort_versions(["3.10.0", "3.9.10", "nightly", "3.9.1"]) == ["3.9.1", "3.9.10", "3.10.0"]


def test_run_with_timeout() -> None:
    release = threading.Event()

    assert run_with_timeout("node", lambda: ["1.0.0"], 1.0) == ["1.0.0"]
    with pytest.raises(SourceUnavailable, match="timed out after 0.1s"):
        run_with_timeout("node", lambda: release.wait(5), 0.1)
    release.set()

    def broken() -> list[str]:
        raise OSError("connection reset")

    with pytest.raises(SourceUnavailable, match="connection reset"):
        run_with_timeout("node", broken, 1.0)


def test_remote_cache_freshness(tmp_path: Path) -> None:
    path = cache_path(tmp_path, "tiny")
    save_remote_versions(path, ["1.0.0", "2.0.0"])

    assert load_remote_versions(path, ttl=60) == ["1.0.0", "2.0.0"]
    assert load_remote_versions(path, ttl=0) is None
    assert load_remote_versions(path, ttl=60, newer_than=time.time() + 60) is None

    stale = time.time() - 120
    os.utime(path, (stale, stale))
    assert load_remote_versions(path, ttl=60) is None

    path.write_text("{broken", encoding="utf-8")
    assert load_remote_versions(path, ttl=3600) is None


class _HangingPlugin(CorePlugin):
    def __init__(self, env: Env, release: threading.Event) -> None:
        super().__init__("hanging", env)
        self.release = release
        self.fetches = 0

    def fetch_remote_versions(self, settings: Settings) -> list[str]:
        self.fetches += 1
        self.release.wait(5)
        return ["1.0.0"]

    def install_version(self, tool_version: ToolVersion, progress) -> None:
        raise NotImplementedError


def test_unavailable_listing_is_remembered(polyver_env: Env) -> None:
    release = threading.Event()
    plugin = _HangingPlugin(polyver_env, release)
    settings = Settings(fetch_remote_versions_timeout=0.1)

    try:
        with pytest.raises(SourceUnavailable, match="timed out"):
            plugin.list_remote_versions(settings)
        started = time.monotonic()
        for _ in range(3):
            with pytest.raises(SourceUnavailable, match="timed out"):
                plugin.list_remote_versions(settings)
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert plugin.fetches == 1
    assert elapsed < 0.1


def test_abandoned_fetch_runs_on_a_daemon_thread() -> None:
    release = threading.Event()
    seen: list[threading.Thread] = []

    def hang() -> list[str]:
        seen.append(threading.current_thread())
        release.wait(5)
        return []

    with pytest.raises(SourceUnavailable):
        run_with_timeout("node", hang, 0.1)
    release.set()

    assert seen[0].daemon is True


def test_unreachable_node_mirror_is_queried_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    plugin = NodePlugin("node", Env({"POLYVER_NODE_MIRROR_URL": (tmp_path / "nowhere").as_uri() + "/"}))
    calls: list[Settings] = []
    original = NodePlugin.fetch_remote_versions

    def counting(self: NodePlugin, settings: Settings) -> list[str]:
        calls.append(settings)
        return original(self, settings)

    monkeypatch.setattr(NodePlugin, "fetch_remote_versions", counting)

    for _ in range(3):
        with pytest.raises(SourceUnavailable):
            plugin.list_remote_versions(Settings())

    assert len(calls) == 1


def test_external_failure_is_remembered(plugin_dir: Path, polyver_env: Env) -> None:
    counter = plugin_dir / "runs"
    _script(plugin_dir, "list-all", f'echo run >> "{counter}"\nexit 1')
    plugin = ExternalPlugin("tiny", plugin_dir, polyver_env)
    settings = Settings(fetch_remote_versions_cache=0)

    for _ in range(2):
        with pytest.raises(SourceUnavailable, match="list-all failed"):
            plugin.list_remote_versions(settings)

    assert counter.read_text(encoding="utf-8").splitlines() == ["run"]
