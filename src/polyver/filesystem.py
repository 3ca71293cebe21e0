# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Filesystem primitives used by discovery, parsing and persistence."""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Iterator, Sequence
from os import PathLike
from pathlib import Path

LOGGER = logging.getLogger(__name__)

_Pathish = str | PathLike[str] | Path


def canonical_path(path: _Pathish) -> Path:
    """Return ``path`` made absolute and resolved where possible without raising.

    Args:
        path: Candidate path to resolve.

    Returns:
        Path: Absolute variant used as the identity of a configuration source.
    """

    candidate = Path(path).expanduser()
    try:
        return candidate.resolve(strict=False)
    except (OSError, RuntimeError):
        return candidate.absolute()


def find_up(start: _Pathish, filenames: Sequence[str]) -> Iterator[Path]:
    """Yield files named in ``filenames`` from ``start`` up to the filesystem root.

    At each directory level the matches are yielded in ``filenames`` order, so
    the nearest directory always comes first.

    Args:
        start: Directory where the search begins.
        filenames: Candidate file names, in priority order.

    Yields:
        Path: Existing files matching one of ``filenames``.
    """

    current = canonical_path(start)
    while True:
        for name in filenames:
            candidate = current / name
            if candidate.is_file():
                yield candidate
        if current.parent == current:
            return
        current = current.parent


def display_path(path: _Pathish, *, home: Path | None = None) -> str:
    """Return ``path`` with the home directory abbreviated to ``~``."""

    text = str(path)
    home_text = str(home or Path.home())
    if text == home_text:
        return "~"
    if text.startswith(home_text + os.sep):
        return "~" + text[len(home_text) :]
    return text


def read_text(path: _Pathish) -> str:
    """Read ``path`` as UTF-8 text."""

    return Path(path).read_text(encoding="utf-8")


def write_atomic(path: _Pathish, content: str) -> None:
    """Write ``content`` to ``path`` through a same-directory temporary file.

    Args:
        path: Destination file.
        content: Text written with UTF-8 encoding.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def remove_all(path: _Pathish) -> None:
    """Remove ``path`` whether it is a file, symlink or directory tree."""

    target = Path(path)
    if target.is_symlink() or target.is_file():
        LOGGER.debug("rm %s", target)
        target.unlink()
    elif target.is_dir():
        LOGGER.debug("rm -rf %s", target)
        shutil.rmtree(target)


def make_executable(path: _Pathish) -> None:
    """Add the executable bits to ``path`` for every class that can read it."""

    target = Path(path)
    mode = target.stat().st_mode
    target.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def is_within(path: _Pathish, root: _Pathish) -> bool:
    """Return ``True`` when ``path`` is ``root`` or lives beneath it."""

    try:
        canonical_path(path).relative_to(canonical_path(root))
    except ValueError:
        return False
    return True


__all__ = [
    "canonical_path",
    "display_path",
    "find_up",
    "is_within",
    "make_executable",
    "read_text",
    "remove_all",
    "write_atomic",
]
