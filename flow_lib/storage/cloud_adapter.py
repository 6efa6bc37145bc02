"""Cloud table storage adapter.

Stores entries as rows of one remote table reached through the `supabase`
client (PostgREST query builder). The table must already exist:

    CREATE TABLE flow_management_data (
      id SERIAL PRIMARY KEY,
      key TEXT UNIQUE NOT NULL,
      value JSONB NOT NULL,
      created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
      updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    );

The supabase client is synchronous, so each request is executed in a
worker thread to keep the event loop free.
"""
from __future__ import annotations
import asyncio
import json
import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, List, Optional

from .base import CorruptEntryHandler, StorageAdapter
from .errors import (
    CLEAR,
    CLOUD,
    CLOUD_NOT_CONFIGURED,
    DELETE,
    GET,
    LIST,
    SET,
    StorageNotConfiguredError,
    wrap,
)

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "flow_management_data"
_WHERE = "cloud table"


def like_prefix(prefix: str) -> str:
    """Return a LIKE pattern for keys starting with `prefix`.

    `%`, `_` and backslash are escaped, but PostgREST rewrites `*` to `%` before
    the query reaches the database, so a prefix containing `*` may match
    more keys. Callers filter the returned rows on the exact prefix.
    """
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CloudTableAdapter(StorageAdapter):
    """Adapter over a single `key`/`value`/`updated_at` table.

    Parameters
    - url, key: project URL and API key used to build a supabase client.
    - table: table holding the entries; it is this adapter's namespace.
    - client: an already built client; takes precedence over url/key.
    - clock: returns the timestamp written to `updated_at`.
    """

    backend = CLOUD

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table: str = DEFAULT_TABLE,
        client: Any = None,
        on_corrupt: Optional[CorruptEntryHandler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        super().__init__(on_corrupt)
        if client is None and not (url and key):
            raise StorageNotConfiguredError(
                "Cloud storage requires a project URL and an API key",
                CLOUD_NOT_CONFIGURED,
                backend=CLOUD,
            )
        if not table:
            raise StorageNotConfiguredError(
                "Cloud storage requires a table name",
                CLOUD_NOT_CONFIGURED,
                backend=CLOUD,
            )
        self._url = url
        self._key = key
        self._client = client
        self._client_lock = Lock()
        self.table_name = table
        self._clock = clock or _utcnow

    @property
    def namespace(self) -> str:
        return self.table_name

    @property
    def client(self) -> Any:
        # Built lazily so that constructing an adapter never touches the network.
        with self._client_lock:
            if self._client is None:
                from supabase import create_client

                self._client = create_client(self._url, self._key)
                logger.info("Connected cloud storage client to %s", self._url)
            return self._client

    def _table(self):
        return self.client.table(self.table_name)

    async def _execute(self, build: Callable[[], Any]) -> Any:
        return await asyncio.to_thread(lambda: build().execute())

    async def get(self, key: str) -> Optional[Any]:
        try:
            response = await self._execute(
                lambda: self._table().select("value").eq("key", key).limit(1)
            )
        except Exception as e:
            raise wrap(e, CLOUD, GET, _WHERE) from e
        rows = response.data or []
        if not rows:
            return None
        return rows[0].get("value")

    async def set(self, key: str, value: Any) -> None:
        try:
            # Fail before the request for values the JSON column cannot hold.
            json.dumps(value, allow_nan=False)
            row = {
                "key": key,
                "value": value,
                "updated_at": self._clock().isoformat(),
            }
            await self._execute(lambda: self._table().upsert(row, on_conflict="key"))
        except Exception as e:
            raise wrap(e, CLOUD, SET, _WHERE) from e

    async def delete(self, key: str) -> None:
        try:
            await self._execute(lambda: self._table().delete().eq("key", key))
        except Exception as e:
            raise wrap(e, CLOUD, DELETE, _WHERE) from e

    async def list(self, prefix: Optional[str] = None) -> List[Any]:
        def build():
            query = self._table().select("key, value")
            if prefix:
                query = query.like("key", like_prefix(prefix))
            return query

        try:
            response = await self._execute(build)
        except Exception as e:
            raise wrap(e, CLOUD, LIST, _WHERE) from e
        items: List[Any] = []
        for row in response.data or []:
            if prefix and not str(row.get("key", "")).startswith(prefix):
                continue
            if "value" not in row:
                self.report_corrupt(str(row.get("key")), KeyError("value"))
                continue
            items.append(row["value"])
        return items

    async def clear(self) -> None:
        try:
            # PostgREST refuses an unfiltered DELETE; every key matches '%'.
            await self._execute(lambda: self._table().delete().like("key", "%"))
        except Exception as e:
            raise wrap(e, CLOUD, CLEAR, _WHERE) from e
