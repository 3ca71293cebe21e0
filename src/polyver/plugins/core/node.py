# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in Node.js plugin backed by the official distribution mirror."""

from __future__ import annotations

import logging
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Final

from ...env import Env
from ...filesystem import read_text
from ...http import get_json, join_url
from ...installers import Product, extract_tarball, fetch_archive, host_platform
from ...process import CommandOptions, run_command
from .base import CorePlugin

if TYPE_CHECKING:
    from ...config.settings import Settings
    from ...toolset.toolset import ToolVersion
    from .. import ProgressReport

LOGGER = logging.getLogger(__name__)

MIRROR_URL_VAR: Final[str] = "POLYVER_NODE_MIRROR_URL"
DEFAULT_MIRROR_URL: Final[str] = "https://nodejs.org/dist/"

_LTS_CODENAMES: Final[dict[str, str]] = {
    "argon": "4",
    "boron": "6",
    "carbon": "8",
    "dubnium": "10",
    "erbium": "12",
    "fermium": "14",
    "gallium": "16",
    "hydrogen": "18",
    "iron": "20",
}
LTS_ALIASES: Final[dict[str, str]] = {
    **{f"lts/{name}": major for name, major in _LTS_CODENAMES.items()},
    **{f"lts-{name}": major for name, major in _LTS_CODENAMES.items()},
    "lts": "20",
}

_NODE_ARCH: Final[dict[str, str]] = {"x86_64": "x64", "aarch64": "arm64"}
_V_VERSION_RE: Final[re.Pattern[str]] = re.compile(r"^v\d+\.")


def _strip_v(version: str) -> str:
    return version[1:] if _V_VERSION_RE.match(version) else version


class NodeProduct(Product):
    """Node.js releases published on a ``nodejs.org/dist`` compatible mirror."""

    name = "node"

    def __init__(self, mirror_url: str, *, timeout: float | None = None) -> None:
        self.mirror_url = mirror_url
        self.timeout = timeout

    def list_versions(self) -> list[str]:
        entries = get_json(join_url(self.mirror_url, "index.json"), timeout=self.timeout)
        # index.json is newest first
        return [_strip_v(str(entry["version"])) for entry in reversed(entries)]

    def binary_slug(self, version: str) -> str:
        system, machine = host_platform()
        return f"node-v{version}-{system}-{_NODE_ARCH.get(machine, machine)}"

    def install_binary(self, version: str, output: Path, progress: ProgressReport) -> None:
        slug = self.binary_slug(version)
        url = join_url(self.mirror_url, f"v{version}/{slug}.tar.gz")
        with tempfile.TemporaryDirectory(prefix="polyver-node-") as tmp:
            archive = Path(tmp) / f"{slug}.tar.gz"
            progress.set_message(f"downloading {url}")
            fetch_archive(self.name, version, url, archive, timeout=self.timeout)
            progress.set_message(f"extracting {archive.name}")
            extract_tarball(archive, output)


class NodePlugin(CorePlugin):
    """Node.js: understands ``.node-version`` and ``.nvmrc`` and the LTS codenames."""

    def __init__(self, name: str, env: Env) -> None:
        super().__init__(name, env)
        self.mirror_url = env.get(MIRROR_URL_VAR) or DEFAULT_MIRROR_URL

    def product(self, settings: Settings | None = None) -> NodeProduct:
        timeout = settings.fetch_remote_versions_timeout if settings is not None else None
        return NodeProduct(self.mirror_url, timeout=timeout)

    def fetch_remote_versions(self, settings: Settings) -> list[str]:
        return self.product(settings).list_versions()

    def get_aliases(self, settings: Settings) -> dict[str, str]:
        return dict(LTS_ALIASES)

    def legacy_filenames(self, settings: Settings) -> list[str]:
        return [".node-version", ".nvmrc"]

    def parse_legacy_file(self, path: Path, settings: Settings) -> str:
        body = read_text(path).strip()
        body = body.removeprefix("v")
        return body.replace("lts/*", "lts")

    def install_version(self, tool_version: ToolVersion, progress: ProgressReport) -> None:
        if tool_version.install_path is None:
            return
        self.product().install(tool_version.version, tool_version.install_path, progress)
        progress.set_message("node -v")
        completed = run_command([str(tool_version.install_path / "bin" / "node"), "-v"], options=CommandOptions())
        progress.println(completed.stdout.strip())


__all__ = ["LTS_ALIASES", "NodePlugin", "NodeProduct"]
