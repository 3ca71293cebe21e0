# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in Python plugin listing CPython releases from the python.org FTP mirror."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Final

from packaging.version import InvalidVersion, Version

from ...errors import PolyverError
from ...filesystem import read_text
from ...http import get_text
from .base import CorePlugin

if TYPE_CHECKING:
    from ...config.settings import Settings
    from ...toolset.toolset import ToolVersion
    from .. import ProgressReport

MIRROR_URL_VAR: Final[str] = "POLYVER_PYTHON_MIRROR_URL"
DEFAULT_MIRROR_URL: Final[str] = "https://www.python.org/ftp/python/"

_RELEASE_DIR_RE: Final[re.Pattern[str]] = re.compile(r'href="(\d+\.\d+\.\d+)/"')


def sort_versions(versions: list[str]) -> list[str]:
    """Return ``versions`` in ascending PEP 440 order, dropping unparsable entries."""

    parsed: list[tuple[Version, str]] = []
    for raw in versions:
        try:
            parsed.append((Version(raw), raw))
        except InvalidVersion:
            continue
    return [raw for _, raw in sorted(parsed)]


class PythonPlugin(CorePlugin):
    def fetch_remote_versions(self, settings: Settings) -> list[str]:
        mirror = self.env.get(MIRROR_URL_VAR) or DEFAULT_MIRROR_URL
        listing = get_text(mirror, timeout=settings.fetch_remote_versions_timeout)
        return sort_versions(list(set(_RELEASE_DIR_RE.findall(listing))))

    def legacy_filenames(self, settings: Settings) -> list[str]:
        return [".python-version"]

    def parse_legacy_file(self, path: Path, settings: Settings) -> str:
        # pyenv files may list several versions; the first line wins
        lines = [line.strip() for line in read_text(path).splitlines() if line.strip()]
        return lines[0] if lines else ""

    def install_version(self, tool_version: ToolVersion, progress: ProgressReport) -> None:
        raise PolyverError(f"python {tool_version.version}: building from source is not supported")


__all__ = ["PythonPlugin", "sort_versions"]
