"""Synchronous string-only key/value media for the local backend.

A medium mirrors the browser Web Storage API: it holds string values under
string keys, is shared by every adapter opened on it, and is enumerated by
index or snapshotted whole with `keys()` / `items()`. Two media are provided:

- `MemoryMedium` keeps everything in process memory.
- `FileMedium` keeps one JSON document on disk and writes it atomically by
  writing a temporary file and renaming it over the target.
"""
from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


class QuotaExceededError(OSError):
    """Raised when a write would push a medium over its quota."""


class MediumCorruptError(OSError):
    """Raised when a file medium does not hold a JSON object of strings."""


@runtime_checkable
class LocalMedium(Protocol):
    def __len__(self) -> int: ...

    def key(self, index: int) -> Optional[str]: ...

    def keys(self) -> List[str]: ...

    def items(self) -> List[Tuple[str, str]]: ...

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryMedium:
    """In-process medium. Thread-safe.

    `quota` limits the total number of characters of keys and values, the
    way browsers cap local storage per origin. None means unlimited.
    """

    def __init__(self, quota: Optional[int] = None) -> None:
        self._lock = RLock()
        self._store: Dict[str, str] = {}
        self.quota = quota

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def key(self, index: int) -> Optional[str]:
        with self._lock:
            if index < 0 or index >= len(self._store):
                return None
            return list(self._store)[index]

    def keys(self) -> List[str]:
        """Return every key, copied under the lock."""
        with self._lock:
            return list(self._store)

    def items(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._store.items())

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._store.get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("medium values must be str")
        with self._lock:
            if self.quota is not None:
                used = sum(len(k) + len(v) for k, v in self._store.items() if k != key)
                if used + len(key) + len(value) > self.quota:
                    raise QuotaExceededError(f"quota of {self.quota} characters exceeded")
            self._store[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)


class FileMedium:
    """Medium persisted as a single JSON object in `path`.

    The document is re-read on every operation so several processes (or
    several media opened on the same path) observe each other's writes.
    A missing file is an empty medium.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = RLock()
        # Ensure parent directory exists so writes succeed.
        if not self.path.parent.exists():
            os.makedirs(self.path.parent, exist_ok=True)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        if not text.strip():
            return {}
        try:
            doc = json.loads(text)
        except ValueError as e:
            raise MediumCorruptError(f"{self.path} is not valid JSON: {e}") from e
        if not isinstance(doc, dict) or not all(isinstance(v, str) for v in doc.values()):
            raise MediumCorruptError(f"{self.path} does not hold a JSON object of strings")
        return doc

    def _write(self, doc: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(doc, f)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(self.path)
        logger.debug("FileMedium wrote %s (%d entries)", self.path, len(doc))

    def __len__(self) -> int:
        with self._lock:
            return len(self._read())

    def key(self, index: int) -> Optional[str]:
        with self._lock:
            keys = list(self._read())
        if index < 0 or index >= len(keys):
            return None
        return keys[index]

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._read())

    def items(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._read().items())

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("medium values must be str")
        with self._lock:
            doc = self._read()
            doc[key] = value
            self._write(doc)

    def remove_item(self, key: str) -> None:
        with self._lock:
            doc = self._read()
            if key in doc:
                del doc[key]
                self._write(doc)
