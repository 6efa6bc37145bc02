"""Storage adapter interface definitions.

Defines the StorageAdapter abstract class through which the console reads
and writes its key/value entries. Concrete adapters bind to exactly one
namespace (a key prefix or a table) on one backend medium.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
import logging
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

# Diagnostic callback invoked with the physical key and the decode error
# when `list` has to skip an entry.
CorruptEntryHandler = Callable[[str, Exception], None]


def log_corrupt_entry(key: str, exc: Exception) -> None:
    logger.warning("Skipping unreadable storage entry %s: %s", key, exc)


class StorageAdapter(ABC):
    """Abstract asynchronous key/value adapter.

    All five operations are coroutines whether or not the medium is
    asynchronous, so callers never need to know which backend is active.
    """

    backend: str = ""

    def __init__(self, on_corrupt: Optional[CorruptEntryHandler] = None) -> None:
        self._on_corrupt = on_corrupt or log_corrupt_entry

    @property
    @abstractmethod
    def namespace(self) -> str:
        """Prefix or table name scoping this adapter's keys."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value stored under `key`, or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store `value` under `key`, overwriting any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove `key`. Deleting an absent key is not an error."""

    @abstractmethod
    async def list(self, prefix: Optional[str] = None) -> List[Any]:
        """Return the values of every entry whose key starts with `prefix`.

        Order is unspecified. Entries that cannot be decoded are reported
        through the corrupt-entry handler and skipped.
        """

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry in this adapter's namespace and nothing else."""

    def report_corrupt(self, key: str, exc: Exception) -> None:
        self._on_corrupt(key, exc)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(namespace={self.namespace!r})"
