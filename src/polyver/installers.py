# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-tool product installers consumed by core plugins."""

from __future__ import annotations

import logging
import platform
import shutil
import tarfile
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Final

from .errors import PolyverError
from .filesystem import remove_all
from .http import HttpStatusError, download

if TYPE_CHECKING:
    from .plugins import ProgressReport

LOGGER = logging.getLogger(__name__)

ARCH_ALIASES: Final[dict[str, str]] = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


class BinaryNotFound(PolyverError):
    """Raised when no prebuilt binary exists for the requested version and platform."""

    def __init__(self, product: str, version: str, url: str) -> None:
        super().__init__(f"{product} {version}: no prebuilt binary at {url}")
        self.product = product
        self.version = version
        self.url = url


def host_platform() -> tuple[str, str]:
    """Return the ``(system, machine)`` pair of the running host.

    Raises:
        PolyverError: If the architecture is not supported.
    """

    system = platform.system().lower()
    machine = ARCH_ALIASES.get(platform.machine().lower())
    if not machine:
        raise PolyverError(f"unsupported architecture: {platform.machine()}")
    return system, machine


class Product(ABC):
    """A tool that can list its versions and install one into a directory."""

    name: ClassVar[str]

    @abstractmethod
    def list_versions(self) -> list[str]:
        """Return every published version in ascending order."""

    def install(self, version: str, output: Path, progress: ProgressReport) -> None:
        """Install ``version`` into ``output``.

        The prebuilt binary is tried first; a source build is attempted only
        when the binary does not exist.
        """

        LOGGER.debug("installing %s %s to %s", self.name, version, output)
        try:
            self.install_binary(version, output, progress)
            return
        except BinaryNotFound as exc:
            LOGGER.info("%s", exc)
        self.install_source(version, output, progress)

    @abstractmethod
    def install_binary(self, version: str, output: Path, progress: ProgressReport) -> None:
        """Install a prebuilt binary.

        Raises:
            BinaryNotFound: If the upstream mirror has no binary for this host.
        """

    def install_source(self, version: str, output: Path, progress: ProgressReport) -> None:
        raise PolyverError(f"{self.name} {version}: building from source is not supported")


def fetch_archive(product: str, version: str, url: str, destination: Path, *, timeout: float | None = None) -> None:
    """Download an archive, mapping a 404 to :class:`BinaryNotFound`."""

    try:
        download(url, destination, timeout=timeout)
    except HttpStatusError as exc:
        if exc.status == 404:
            raise BinaryNotFound(product, version, url) from exc
        raise


def extract_tarball(archive: Path, output: Path, *, strip_components: int = 1) -> None:
    """Extract ``archive`` into ``output``, dropping leading path components.

    Extraction happens in a sibling staging directory that replaces ``output``
    once complete, so an interrupted install never leaves a partial tree.
    """

    output.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{output.name}-", dir=output.parent))
    try:
        with tarfile.open(archive) as tar:
            tar.extractall(staging, filter="data")
        root = staging
        for _ in range(strip_components):
            children = list(root.iterdir())
            if len(children) != 1 or not children[0].is_dir():
                raise PolyverError(f"unexpected layout in archive {archive.name}")
            root = children[0]
        remove_all(output)
        shutil.move(str(root), str(output))
    finally:
        remove_all(staging)


__all__ = [
    "ARCH_ALIASES",
    "BinaryNotFound",
    "Product",
    "extract_tarball",
    "fetch_archive",
    "host_platform",
]
