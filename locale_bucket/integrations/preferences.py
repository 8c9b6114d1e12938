from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Protocol


logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    """Key-value persistence for small scalar values (locale index, fetch stamps)."""

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the stored value or ``default``."""

    def set(self, key: str, value: str) -> None:
        """Stage ``value`` under ``key``."""

    def save(self) -> None:
        """Flush staged values to durable storage."""


class InMemoryPreferenceStore:
    """Process-local preferences; nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.saves = 0

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def save(self) -> None:
        self.saves += 1

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


class JsonFilePreferenceStore:
    """Preferences persisted as a flat JSON object in a single file."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._values: dict[str, str] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = str(value)

    def save(self) -> None:
        with self._lock:
            payload = json.dumps(self._values, ensure_ascii=False, indent=2, sort_keys=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.warning("Failed to write preferences to %s: %s", self._path, exc)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring preferences file %s with unexpected schema", self._path)
            return {}
        return {str(key): str(value) for key, value in data.items()}


def read_int(preferences: PreferenceStore, key: str) -> int | None:
    raw = preferences.get(key)
    if not raw:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.debug("Discarding non-integer preference %s=%r", key, raw)
        return None
