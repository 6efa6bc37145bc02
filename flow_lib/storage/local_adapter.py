"""Local storage adapter.

Stores JSON text in a synchronous `LocalMedium` under physical keys of the
form `<prefix><key>`. The prefix is the adapter's namespace: it is a naming
convention on a shared medium, not an enforced boundary.
"""
from __future__ import annotations
import logging
from typing import Any, List, Optional

from .base import CorruptEntryHandler, StorageAdapter
from .errors import CLEAR, DELETE, GET, LIST, LOCAL, SET, wrap
from .medium import LocalMedium, MemoryMedium
from .serializer import JSONSerializer, Serializer

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "flow_management_"
_WHERE = "local storage"


class LocalStorageAdapter(StorageAdapter):
    backend = LOCAL

    def __init__(
        self,
        medium: Optional[LocalMedium] = None,
        prefix: str = DEFAULT_PREFIX,
        serializer: Optional[Serializer] = None,
        on_corrupt: Optional[CorruptEntryHandler] = None,
    ) -> None:
        super().__init__(on_corrupt)
        self.medium = medium if medium is not None else MemoryMedium()
        self.prefix = prefix
        self.serializer = serializer or JSONSerializer()

    @property
    def namespace(self) -> str:
        return self.prefix

    def _physical(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _snapshot_keys(self) -> List[str]:
        # Collect the key list in one call before acting on it: removing
        # entries while walking indices would skip the entry that slides
        # into the gap.
        return self.medium.keys()

    async def get(self, key: str) -> Optional[Any]:
        try:
            item = self.medium.get_item(self._physical(key))
            if item is None:
                return None
            return self.serializer.load(item)
        except Exception as e:
            raise wrap(e, LOCAL, GET, _WHERE) from e

    async def set(self, key: str, value: Any) -> None:
        try:
            self.medium.set_item(self._physical(key), self.serializer.dump(value))
        except Exception as e:
            raise wrap(e, LOCAL, SET, _WHERE) from e

    async def delete(self, key: str) -> None:
        try:
            self.medium.remove_item(self._physical(key))
        except Exception as e:
            raise wrap(e, LOCAL, DELETE, _WHERE) from e

    async def list(self, prefix: Optional[str] = None) -> List[Any]:
        search = self._physical(prefix or "")
        try:
            # One snapshot of keys and values taken under the medium lock
            matching = [(k, raw) for k, raw in self.medium.items() if k.startswith(search)]
            items: List[Any] = []
            for k, raw in matching:
                try:
                    items.append(self.serializer.load(raw))
                except ValueError as parse_error:
                    self.report_corrupt(k, parse_error)
            return items
        except Exception as e:
            raise wrap(e, LOCAL, LIST, _WHERE) from e

    async def clear(self) -> None:
        try:
            doomed = [k for k in self._snapshot_keys() if k.startswith(self.prefix)]
            for k in doomed:
                self.medium.remove_item(k)
            logger.debug("Cleared %d local entries under %r", len(doomed), self.prefix)
        except Exception as e:
            raise wrap(e, LOCAL, CLEAR, _WHERE) from e
