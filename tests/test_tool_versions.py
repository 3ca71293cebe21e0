# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for :mod:`polyver.config.files.tool_versions`."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from polyver.config.files.tool_versions import ToolVersionsFile
from polyver.config.sources import ConfigSource
from polyver.env import Env
from polyver.errors import ParseError
from polyver.filesystem import canonical_path
from polyver.toolset.requests import LatestRequest, PathRequest, SystemRequest, ToolSourceKind, VersionRequest


def _source(tmp_path: Path, *, trusted: bool = False) -> ConfigSource:
    return ConfigSource(canonical_path(tmp_path) / ".tool-versions", trusted=trusted, order=0)


def _parse(tmp_path: Path, text: str, *, trusted: bool = False, env: Env | None = None) -> ToolVersionsFile:
    return ToolVersionsFile.parse_str(text, _source(tmp_path, trusted=trusted), env or Env({}))


def test_parse_reads_plugins_in_file_order(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "python 3.11.0 3.10.0\nnode 20\nshfmt latest\n")

    assert parsed.plugins == {"python": ["3.11.0", "3.10.0"], "node": ["20"], "shfmt": ["latest"]}
    fragment = parsed.fragment()
    assert list(fragment.tools) == ["python", "node", "shfmt"]
    assert fragment.tools["python"] == (VersionRequest("python", "3.11.0"), VersionRequest("python", "3.10.0"))
    assert fragment.tools["shfmt"] == (LatestRequest("shfmt"),)
    assert fragment.source.kind is ToolSourceKind.TOOL_VERSIONS
    assert fragment.source.path == parsed.path


def test_unmodified_file_dumps_identically(tmp_path: Path) -> None:
    text = "python 3.11.0 3.10.0\nshfmt  3.6.0\n"

    assert _parse(tmp_path, text).dump() == text


def test_comments_survive_a_version_change(tmp_path: Path) -> None:
    text = "# intro comment\n\nnode   20.1.0 # lts\n# about python\npython 3.11.0\n# tail comment\n"
    parsed = _parse(tmp_path, text)

    parsed.replace_versions("python", ["3.12.0"])

    assert parsed.dump() == "# intro comment\n\nnode   20.1.0 # lts\n# about python\npython 3.12.0\n# tail comment\n"


def test_trailing_colon_is_dropped(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "ruby: 3.0.5 3.1\n")

    assert parsed.plugins == {"ruby": ["3.0.5", "3.1"]}
    assert parsed.fragment().describe_tools() == "ruby@3.0.5 ruby@3.1"
    assert parsed.dump() == "ruby 3.0.5 3.1\n"


def test_historical_names_are_normalised(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "nodejs: 18\ngolang 1.21.0\n")

    assert parsed.plugins == {"node": ["18"], "go": ["1.21.0"]}
    assert parsed.dump() == "nodejs 18\ngolang 1.21.0\n"


def test_special_specs_are_parsed(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "node system\nruby path:./vendor/ruby\n")

    tools = parsed.fragment().tools
    assert tools["node"] == (SystemRequest("node"),)
    assert tools["ruby"] == (PathRequest("ruby", canonical_path(tmp_path) / "vendor" / "ruby"),)


def test_plugin_without_versions_is_not_requested(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "node\npython 3.11.0\n")

    assert list(parsed.fragment().tools) == ["python"]


def test_replace_versions_updates_fragment_and_dump(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "node 18 # old\npython 3.11.0\n")
    assert parsed.fragment().tools["node"] == (VersionRequest("node", "18"),)

    parsed.replace_versions("node", ["20.1.0", "18.16.0"])
    parsed.replace_versions("go", ["1.21.0"])

    assert parsed.fragment().tools["node"] == (VersionRequest("node", "20.1.0"), VersionRequest("node", "18.16.0"))
    assert parsed.dump() == "node   20.1.0 18.16.0 # old\npython 3.11.0\ngo     1.21.0\n"


def test_remove_plugin_drops_line(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "node 20\npython 3.11.0\n")

    parsed.remove_plugin("node")

    assert "node" not in parsed.fragment().tools
    assert parsed.dump() == "python 3.11.0\n"


def test_save_writes_dump(tmp_path: Path) -> None:
    path = tmp_path / ".tool-versions"
    path.write_text("node 18\n", encoding="utf-8")
    parsed = ToolVersionsFile.from_file(_source(tmp_path), Env({}))

    parsed.replace_versions("node", ["20"])
    parsed.save()

    assert path.read_text(encoding="utf-8") == "node 20\n"


def test_trusted_file_renders_templates(tmp_path: Path) -> None:
    env = Env({"NODE_VERSION": "20.1.0", "PATH": os.environ.get("PATH", "")})
    text = "node {{ env.NODE_VERSION }}\npython {{ exec(command='echo 3.11.0') }}\n"

    parsed = _parse(tmp_path, text, trusted=True, env=env)

    assert parsed.plugins == {"node": ["20.1.0"], "python": ["3.11.0"]}


def test_untrusted_file_is_read_literally(tmp_path: Path) -> None:
    parsed = _parse(tmp_path, "node {{ env.NODE_VERSION }}\n", env=Env({"NODE_VERSION": "20.1.0"}))

    assert parsed.plugins["node"][0] == "{{"


def test_template_failure_is_a_parse_error(tmp_path: Path) -> None:
    with pytest.raises(ParseError, match="template error"):
        _parse(tmp_path, "node {{ env.MISSING }}\n", trusted=True)


def test_line_without_plugin_name_is_ignored(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="polyver"):
        parsed = _parse(tmp_path, "node 20\n: 1.0.0\npython 3.11.0\n")

    assert parsed.plugins == {"node": ["20"], "python": ["3.11.0"]}
    assert "" not in parsed.fragment().tools
    assert parsed.dump() == "node   20\n: 1.0.0\npython 3.11.0\n"
    assert "without a plugin name" in caplog.text
