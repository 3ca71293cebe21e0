# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Minimal HTTPS helpers used by core plugins and installers."""

from __future__ import annotations

import json
import logging
import shutil
import ssl
import urllib.request
from pathlib import Path
from typing import Any, Final
from urllib.error import HTTPError
from urllib.parse import urljoin, urlparse

from . import __version__

LOGGER = logging.getLogger(__name__)

_SUPPORTED_SCHEMES: Final[frozenset[str]] = frozenset({"https", "http", "file"})
USER_AGENT: Final[str] = f"polyver/{__version__}"


class HttpStatusError(OSError):
    """Raised when a server answers with a non-success status."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"GET {url} returned HTTP {status}")
        self.url = url
        self.status = status


def join_url(base: str, path: str) -> str:
    return urljoin(base if base.endswith("/") else f"{base}/", path)


def _open(url: str, timeout: float | None):
    parsed = urlparse(url)
    if parsed.scheme.lower() not in _SUPPORTED_SCHEMES:
        raise ValueError(f"unsupported download scheme '{parsed.scheme}'")
    LOGGER.debug("GET %s", url)
    request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    opener = urllib.request.build_opener(urllib.request.HTTPSHandler(context=ssl.create_default_context()))
    try:
        return opener.open(request, timeout=timeout)
    except HTTPError as exc:
        raise HttpStatusError(url, exc.code) from exc


def get_text(url: str, *, timeout: float | None = None) -> str:
    """Return the body of ``url`` decoded as UTF-8.

    Raises:
        HttpStatusError: If the server answers with an error status.
        OSError: If the request fails or times out.
    """

    with _open(url, timeout) as response:
        return response.read().decode("utf-8")


def get_json(url: str, *, timeout: float | None = None) -> Any:
    return json.loads(get_text(url, timeout=timeout))


def download(url: str, destination: Path, *, timeout: float | None = None) -> None:
    """Stream ``url`` into ``destination``, creating parent directories."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    with _open(url, timeout) as response, destination.open("wb") as handle:
        shutil.copyfileobj(response, handle)


__all__ = ["HttpStatusError", "download", "get_json", "get_text", "join_url"]
