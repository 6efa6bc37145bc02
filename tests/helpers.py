import re
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from starlette.testclient import TestClient
from flow_lib.services.container import ServiceContainer


def register_service_on_client(client: TestClient, name: str, instance: Any) -> None:
    """Register a service instance into the app's DI container for tests."""
    container = getattr(client.app.state, 'container', None)
    if container is None:
        container = ServiceContainer()
        client.app.state.container = container

    container.register_singleton(name, instance)


class FakeAPIError(Exception):
    """Stands in for the errors the remote client raises from `execute`."""


def like_to_regex(pattern: str) -> re.Pattern:
    out = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == '\\' and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if c == '%':
            out.append('.*')
        elif c == '_':
            out.append('.')
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile('^' + ''.join(out) + '$', re.DOTALL)


class FakeQuery:
    """Minimal PostgREST-style query builder over an in-memory table."""

    def __init__(self, client: 'FakeCloudClient', table: str) -> None:
        self._client = client
        self._table = table
        self._op: Optional[str] = None
        self._columns: List[str] = []
        self._payload: Any = None
        self._filters: List[Any] = []
        self._limit: Optional[int] = None

    def select(self, columns: str = '*'):
        self._op = 'select'
        self._columns = [c.strip() for c in columns.split(',')]
        return self

    def upsert(self, row: Dict[str, Any], on_conflict: str = ''):
        self._op = 'upsert'
        self._payload = (row, on_conflict)
        return self

    def delete(self):
        self._op = 'delete'
        return self

    def eq(self, column: str, value: Any):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def like(self, column: str, pattern: str):
        # PostgREST accepts `*` as an alias for `%` in like filters
        rx = like_to_regex(pattern.replace("*", "%"))
        self._filters.append(lambda row: isinstance(row.get(column), str) and rx.match(row[column]) is not None)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self._client.tables.setdefault(self._table, {})
        return [r for r in rows.values() if all(f(r) for f in self._filters)]

    def execute(self):
        self._client.calls.append((self._table, self._op))
        if self._op in self._client.fail_on:
            raise FakeAPIError(f"simulated {self._op} failure")
        rows = self._client.tables.setdefault(self._table, {})
        if self._op == 'select':
            found = self._matching()
            if self._limit is not None:
                found = found[: self._limit]
            if self._columns == ['*']:
                data = [dict(r) for r in found]
            else:
                data = [{c: r[c] for c in self._columns if c in r} for r in found]
            return SimpleNamespace(data=data)
        if self._op == 'upsert':
            row, on_conflict = self._payload
            if on_conflict != 'key':
                raise FakeAPIError('duplicate key value violates unique constraint')
            rows[row['key']] = dict(row)
            return SimpleNamespace(data=[dict(row)])
        if self._op == 'delete':
            if not self._filters:
                raise FakeAPIError('DELETE requires a WHERE clause')
            doomed = self._matching()
            for r in doomed:
                del rows[r['key']]
            return SimpleNamespace(data=doomed)
        raise AssertionError(f'unsupported query {self._op!r}')


class FakeCloudClient:
    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Any] = []
        self.fail_on: set = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)
