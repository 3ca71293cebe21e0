# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Plugins built into polyver."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from ...env import Env
from .base import CorePlugin
from .node import NodePlugin
from .python import PythonPlugin

if TYPE_CHECKING:
    from ...config.settings import Settings

CORE_PLUGINS: Final[Mapping[str, type[CorePlugin]]] = MappingProxyType({"node": NodePlugin})

# Only registered when ``experimental`` is enabled.
EXPERIMENTAL_CORE_PLUGINS: Final[Mapping[str, type[CorePlugin]]] = MappingProxyType({"python": PythonPlugin})


def core_plugins(settings: Settings, env: Env) -> list[CorePlugin]:
    """Instantiate the built-in plugins enabled by ``settings``."""

    classes = dict(CORE_PLUGINS)
    if settings.experimental:
        classes.update(EXPERIMENTAL_CORE_PLUGINS)
    return [cls(name, env) for name, cls in classes.items()]


__all__ = ["CORE_PLUGINS", "CorePlugin", "EXPERIMENTAL_CORE_PLUGINS", "core_plugins"]
