"""Best-effort persistence for session progress and results history.

The gateway sits on top of an opaque key-value store. Every operation
absorbs store and decode failures: they are logged and reported as "nothing
saved" so the quiz itself keeps working without resume support.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from .models import QuizProgress, QuizStats

__all__ = [
    "PROGRESS_KEY",
    "STATS_KEY",
    "DEFAULT_HISTORY_LIMIT",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "PersistenceGateway",
]

PROGRESS_KEY = "quiz_progress"
STATS_KEY = "quiz_stats"
DEFAULT_HISTORY_LIMIT = 50

_STORE_ERRORS = (OSError, TypeError, ValueError)
_DECODE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dictionary-backed store."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    """Store each key as ``<root>/<key>.json``, replaced atomically."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def get(self, key: str) -> str | None:
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        target = self.path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w", delete=False, encoding="utf-8", dir=str(target.parent)
        )
        try:
            try:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            finally:
                handle.close()
            os.replace(handle.name, target)
        except BaseException:
            Path(handle.name).unlink(missing_ok=True)
            raise
        try:
            target.chmod(0o600)
        except PermissionError:  # pragma: no cover - depends on filesystem
            pass

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class PersistenceGateway:
    """Save/load progress snapshots and keep a bounded results history."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        logger: logging.Logger | None = None,
    ) -> None:
        if history_limit <= 0:
            raise ValueError("history_limit must be positive")
        self._store = store
        self._history_limit = history_limit
        self._logger = logger or logging.getLogger(__name__)

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def save_progress(self, progress: QuizProgress) -> None:
        self._write(PROGRESS_KEY, progress.to_dict())

    def load_progress(self) -> QuizProgress | None:
        payload = self._read(PROGRESS_KEY)
        if payload is None:
            return None
        try:
            return QuizProgress.from_dict(payload)
        except _DECODE_ERRORS as exc:
            self._logger.warning(
                "Discarding unreadable quiz progress: %s", exc
            )
            return None

    def clear_progress(self) -> None:
        try:
            self._store.remove(PROGRESS_KEY)
        except _STORE_ERRORS as exc:
            self._logger.warning("Failed to clear quiz progress: %s", exc)

    def append_stats(self, stats: QuizStats) -> None:
        history = self.load_stats_history()
        history.append(stats)
        del history[: max(len(history) - self._history_limit, 0)]
        self._write(STATS_KEY, [entry.to_dict() for entry in history])

    def load_stats_history(self) -> list[QuizStats]:
        payload = self._read(STATS_KEY)
        if payload is None:
            return []
        if not isinstance(payload, list):
            self._logger.warning("Discarding malformed quiz stats history")
            return []
        history: list[QuizStats] = []
        for entry in payload:
            try:
                history.append(QuizStats.from_dict(entry))
            except _DECODE_ERRORS as exc:
                self._logger.warning("Skipping unreadable quiz stats: %s", exc)
        return history

    def latest_stats(self) -> QuizStats | None:
        history = self.load_stats_history()
        return history[-1] if history else None

    def _read(self, key: str) -> object | None:
        try:
            raw = self._store.get(key)
        except _STORE_ERRORS as exc:
            self._logger.warning("Failed to read %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            self._logger.warning("Failed to decode %s: %s", key, exc)
            return None

    def _write(self, key: str, payload: object) -> None:
        try:
            self._store.set(key, json.dumps(payload, sort_keys=True))
        except _STORE_ERRORS as exc:
            self._logger.warning("Failed to save %s: %s", key, exc)
