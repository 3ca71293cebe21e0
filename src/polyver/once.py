# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Single-initialisation cache cell shared across worker threads."""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import Generic, TypeVar, cast

T = TypeVar("T")

_UNSET = object()


class OnceCell(Generic[T]):
    """Hold a value computed at most once, even under concurrent access.

    A factory that raises leaves the cell empty so a later caller can retry,
    unless the exception is one of the ``remember`` types passed to
    :meth:`get_or_init`; those are stored and raised again to every later
    caller.
    """

    __slots__ = ("_error", "_lock", "_value")

    def __init__(self) -> None:
        self._lock = Lock()
        self._value: object = _UNSET
        self._error: BaseException | None = None

    def get_or_init(
        self,
        factory: Callable[[], T],
        *,
        remember: tuple[type[BaseException], ...] = (),
    ) -> T:
        """Return the cached value, computing it with ``factory`` on first use.

        Args:
            factory: Zero-argument callable producing the value.
            remember: Exception types that are cached like a value.

        Returns:
            T: The value shared by every caller.
        """

        value = self._value
        if value is not _UNSET:
            return cast(T, value)
        with self._lock:
            if self._error is not None:
                raise self._error
            if self._value is _UNSET:
                try:
                    self._value = factory()
                except remember as exc:
                    self._error = exc
                    raise
            return cast(T, self._value)


__all__ = ["OnceCell"]
