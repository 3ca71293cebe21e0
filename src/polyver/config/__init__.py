# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration discovery, parsing and settings for polyver."""

from .loader import Config, load
from .settings import Settings, SettingsBuilder

__all__ = ["Config", "Settings", "SettingsBuilder", "load"]
