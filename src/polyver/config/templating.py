# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Template expansion applied to trusted configuration sources only."""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from ..errors import ParseError
from ..process import CommandOptions, SubprocessExecutionError, run_command


def _exec(command: str, *, cwd: Path, env: Mapping[str, str]) -> str:
    completed = run_command(["sh", "-c", command], options=CommandOptions(cwd=cwd, env=env))
    return completed.stdout.strip()


def _get_env(name: str, default: str | None = None, *, env: Mapping[str, str]) -> str:
    value = env.get(name, default)
    if value is None:
        raise TemplateError(f"environment variable '{name}' is not set")
    return value


class TemplateRenderer:
    """Render ``{{ ... }}`` expressions in a trusted file's text.

    The context exposes ``env`` (the process environment), ``config_root``
    (the directory holding the file) and ``cwd``; ``exec(command=...)`` runs
    a shell command and substitutes its trimmed stdout, and
    ``get_env(name, default)`` reads a variable with an optional fallback.
    """

    def __init__(self, path: Path, environ: Mapping[str, str], *, cwd: Path | None = None) -> None:
        self._path = path
        root = path.parent
        self._jinja = Environment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=False,
            lstrip_blocks=False,
        )
        self._jinja.globals["exec"] = partial(_exec, cwd=root, env=environ)
        self._jinja.globals["get_env"] = partial(_get_env, env=environ)
        self._context: dict[str, Any] = {
            "env": dict(environ),
            "config_root": str(root),
            "cwd": str(cwd or Path.cwd()),
        }

    def render(self, text: str) -> str:
        """Return ``text`` with every template expression expanded.

        Raises:
            ParseError: If the template is malformed or an expression fails.
        """

        if "{{" not in text and "{%" not in text:
            return text
        try:
            return self._jinja.from_string(text).render(**self._context)
        except (TemplateError, SubprocessExecutionError, OSError) as exc:
            raise ParseError(self._path, f"template error: {exc}") from exc


__all__ = ["TemplateRenderer"]
