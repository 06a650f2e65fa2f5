"""
Key-value settings stores.

The board remembers operator choices (currently just the selected printer)
across restarts. PrinterRegistry only sees the SettingsStore interface, so
tests substitute InMemorySettingsStore.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol

from logging_config import get_logger


logger = get_logger(__name__)


class SettingsStore(Protocol):
    """Minimal durable key-value store."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: Optional[str]) -> None:
        """Store ``value``; None removes the key."""
        ...


class InMemorySettingsStore:
    """Process-local store (tests, or when no settings file is configured)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        with self._lock:
            if value is None:
                self._values.pop(key, None)
            else:
                self._values[key] = value


class JsonFileSettingsStore:
    """
    Settings persisted as one JSON object on disk.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write leaves the previous settings intact. A missing or corrupt
    file reads as empty.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        with self._lock:
            values = self._read()
            if value is None:
                values.pop(key, None)
            else:
                values[key] = value
            self._write(values)

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable settings file {self._path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, values: Dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(values, f, indent=2)
        os.replace(tmp_path, self._path)
