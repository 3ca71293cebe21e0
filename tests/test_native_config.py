# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for :mod:`polyver.config.files.native`."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from polyver.config.files.native import NativeConfigFile
from polyver.config.sources import ConfigSource
from polyver.env import Env
from polyver.errors import ParseError
from polyver.filesystem import canonical_path
from polyver.toolset.requests import LatestRequest, ToolSourceKind, VersionRequest

FULL_CONFIG = """\
# project config
env_path = ["bin", "/opt/tools/bin"]

[settings]
experimental = true
disable_tools = ["ruby"]

[env]
NODE_ENV = "production"
PORT = 8080
LEGACY_FLAG = false

[alias.nodejs]
my-lts = "20"

[tools]
node = "20"
python = ["3.11", "latest"]

[plugins]
shfmt = "https://example.invalid/asdf-shfmt.git"
"""


def _source(tmp_path: Path, *, trusted: bool = False) -> ConfigSource:
    return ConfigSource(canonical_path(tmp_path) / ".polyver.toml", trusted=trusted, order=0)


def _parse(tmp_path: Path, text: str, *, trusted: bool = False, env: Env | None = None) -> NativeConfigFile:
    return NativeConfigFile.parse_str(text, _source(tmp_path, trusted=trusted), env or Env({}))


def test_parse_every_section(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, FULL_CONFIG)
    fragment = parsed.fragment()
    root = canonical_path(tmp_path)

    assert fragment.source.kind is ToolSourceKind.NATIVE
    assert dict(fragment.settings) == {"experimental": True, "disable_tools": ["ruby"]}
    assert dict(fragment.env) == {"NODE_ENV": "production", "PORT": "8080"}
    assert fragment.env_remove == ("LEGACY_FLAG",)
    assert fragment.path_dirs == (root / "bin", Path("/opt/tools/bin"))
    assert {plugin: dict(table) for plugin, table in fragment.aliases.items()} == {"node": {"my-lts": "20"}}
    assert fragment.tools["node"] == (VersionRequest("node", "20"),)
    assert fragment.tools["python"] == (VersionRequest("python", "3.11"), LatestRequest("python"))
    assert dict(fragment.plugins) == {"shfmt": "https://example.invalid/asdf-shfmt.git"}


def test_env_path_accepts_a_single_string(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, 'env_path = "tools"\n')

    assert parsed.fragment().path_dirs == (canonical_path(tmp_path) / "tools",)


def test_replace_versions_preserves_untouched_regions(tmp_path: Path) -> None:
    text = '# keep this comment\n[env]\nFOO = "bar"\n\n[tools]\nnode = "18"\npython = "3.11"\n'
    parsed = _parse(tmp_path, text)

    parsed.replace_versions("node", ["20"])
    parsed.replace_versions("python", ["3.12", "3.11"])
    dumped = parsed.dump()

    assert dumped.startswith('# keep this comment\n[env]\nFOO = "bar"\n')
    assert 'node = "20"' in dumped
    assert 'python = ["3.12", "3.11"]' in dumped
    assert parsed.fragment().tools["node"] == (VersionRequest("node", "20"),)


def test_replace_versions_keeps_historical_key(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, '[tools]\nnodejs = "18"\n')

    parsed.replace_versions("node", ["20"])

    assert 'nodejs = "20"' in parsed.dump()
    assert list(parsed.fragment().tools) == ["node"]


def test_remove_plugin_drops_tool_key(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, '[tools]\nnode = "18"\npython = "3.11"\n')

    parsed.remove_plugin("node")
    parsed.remove_plugin("ruby")

    assert "node" not in parsed.dump()
    assert list(parsed.fragment().tools) == ["python"]


def test_init_and_save_create_a_new_file(tmp_path: Path) -> None:
    path = tmp_path / "polyver" / "config.toml"
    config_file = NativeConfigFile.init(path)

    config_file.replace_versions("node", ["20"])
    config_file.save()

    content = path.read_text(encoding="utf-8")
    assert "[tools]" in content
    assert 'node = "20"' in content


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("[tools\nnode = ", ""),
        ("[tools]\nnode = 18\n", "tools.node must be a string or a list of strings"),
        ("[env]\nFOO = [1]\n", "env.FOO must be a string or false"),
        ("env_path = 3\n", "'env_path' must be a string or a list of strings"),
        ("tools = 3\n", "'tools' must be a table"),
        ("[alias]\nnode = \"20\"\n", "alias.node must be a table"),
    ],
)
def test_malformed_content_is_a_parse_error(tmp_path: Path, text: str, message: str) -> None:
    with pytest.raises(ParseError, match=message) as excinfo:
        _parse(tmp_path, text)

    assert excinfo.value.path == canonical_path(tmp_path) / ".polyver.toml"


def test_unknown_top_level_key_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="polyver"):
        parsed = _parse(tmp_path, 'colour = "blue"\n[tools]\nnode = "20"\n')

    assert "node" in parsed.fragment().tools
    assert "unknown key 'colour'" in caplog.text


def test_trusted_file_renders_values(tmp_path: Path) -> None:
    env = Env({"HOME": "/home/dev", "NODE_VERSION": "20.1.0"})
    text = '[env]\nTOOLS = "{{ env.HOME }}/tools"\n[tools]\nnode = "{{ env.NODE_VERSION }}"\n'

    parsed = _parse(tmp_path, text, trusted=True, env=env)

    assert parsed.fragment().env["TOOLS"] == "/home/dev/tools"
    assert parsed.fragment().tools["node"] == (VersionRequest("node", "20.1.0"),)


def test_untrusted_file_keeps_template_text(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, '[env]\nTOOLS = "{{ env.HOME }}/tools"\n', env=Env({"HOME": "/home/dev"}))

    assert parsed.fragment().env["TOOLS"] == "{{ env.HOME }}/tools"
