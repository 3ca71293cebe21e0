# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Record config file fingerprints so shell hooks can skip unchanged work."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import TrackingError
from .filesystem import canonical_path, write_atomic

LOGGER = logging.getLogger(__name__)

_RECORD_FILE = "config-files.json"

FileRecord = dict[str, str | None]


def fingerprint(path: Path) -> str | None:
    """Return the sha256 of ``path``'s content, ``None`` when it does not exist."""

    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except FileNotFoundError:
        return None


def record_path(cache_dir: Path) -> Path:
    return cache_dir / "tracking" / _RECORD_FILE


@dataclass(slots=True)
class TrackingRecord:
    """Persisted state of the previous run.

    Attributes:
        watched: Fingerprints of exactly the files the last run loaded.
        seen: Every config file recorded by any run.
    """

    watched: FileRecord = field(default_factory=dict)
    seen: list[str] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> TrackingRecord:
        if not isinstance(data, Mapping):
            return cls()
        watched = data.get("watched")
        seen = data.get("seen")
        if not isinstance(watched, Mapping) or not isinstance(seen, list):
            return cls()
        return cls(
            watched={str(key): value if isinstance(value, str) else None for key, value in watched.items()},
            seen=[str(path) for path in seen],
        )

    def to_json(self) -> dict[str, Any]:
        return {"watched": self.watched, "seen": sorted(set(self.seen))}


def _load_record(path: Path) -> TrackingRecord:
    if not path.is_file():
        return TrackingRecord()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.debug("ignoring unreadable tracking record %s: %s", path, exc)
        return TrackingRecord()
    return TrackingRecord.from_json(data)


class ChangeTracker:
    """Persisted fingerprints of the config files loaded by the last run.

    The previous record is read when the tracker is created; :meth:`start`
    writes the current fingerprints on a background thread. Only the latest
    :meth:`start` call defines the watch list; every path ever started is
    kept in the ``seen`` list. The record is disposable: deleting it only
    disables the early exit once.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.path = record_path(cache_dir)
        self._previous = _load_record(self.path)
        self._watched: list[Path] = []
        self._seen: dict[Path, None] = {}
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None

    def start(self, paths: Iterable[Path]) -> None:
        """Record ``paths`` as the current watch list in the background."""

        self.join()
        self._watched = list(dict.fromkeys(canonical_path(path) for path in paths))
        self._seen.update(dict.fromkeys(self._watched))
        self._thread = threading.Thread(
            target=self._record, args=(list(self._watched), list(self._seen)), name="polyver-tracker", daemon=True
        )
        self._thread.start()

    def _record(self, paths: list[Path], seen: list[Path]) -> None:
        try:
            record = TrackingRecord(
                watched={str(path): fingerprint(path) for path in paths},
                seen=[*self._previous.seen, *(str(path) for path in seen)],
            )
            write_atomic(self.path, json.dumps(record.to_json(), indent=2, sort_keys=True))
        except OSError as exc:
            self._error = TrackingError(f"failed to record config files in {self.path}: {exc}")

    def join(self) -> None:
        """Wait for the background recording; failures are logged, never raised."""

        if self._thread is None:
            return
        self._thread.join()
        self._thread = None
        if self._error is not None:
            LOGGER.warning("%s", self._error)
            self._error = None

    def should_exit_early(self, paths: Iterable[Path]) -> bool:
        """Return ``True`` when ``paths`` is the previous watch list and no file changed.

        A different set of files (another project, a deleted or a new config
        file) never exits early. Without a previous record nothing is known
        to be unchanged, so this is always ``False`` on the first run.
        """

        previous = self._previous.watched
        if not previous:
            return False
        current = {str(canonical_path(path)) for path in paths}
        if current != set(previous):
            return False
        return all(previous[key] == fingerprint(Path(key)) for key in current)

    def tracked_paths(self) -> list[Path]:
        """Return every path recorded by any run that still exists."""

        record = _load_record(self.path) if self._thread is None else self._previous
        seen = {*record.seen, *(str(path) for path in self._seen)}
        return sorted(Path(key) for key in seen if Path(key).is_file())


__all__ = ["ChangeTracker", "TrackingRecord", "fingerprint", "record_path"]
