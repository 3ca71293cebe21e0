# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool version requests, their resolution and the toolset they form."""

from .requests import ToolSource, ToolSourceKind, ToolVersionRequest, parse_request, parse_tool_arg

__all__ = [
    "ToolSource",
    "ToolSourceKind",
    "ToolVersionRequest",
    "parse_request",
    "parse_tool_arg",
]
