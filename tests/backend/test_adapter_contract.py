"""Behaviour every adapter must share, run against both backends."""
import asyncio

import pytest

from flow_lib.storage.cloud_adapter import CloudTableAdapter
from flow_lib.storage.local_adapter import LocalStorageAdapter
from flow_lib.storage.medium import FileMedium, MemoryMedium
from tests.helpers import FakeCloudClient


def _local(shared, namespace):
    return LocalStorageAdapter(medium=shared, prefix=namespace)


def _cloud(shared, namespace):
    return CloudTableAdapter(table=namespace, client=shared)


@pytest.fixture(params=["local-memory", "local-file", "cloud"])
def make_adapter(request, tmp_path):
    """Return a factory building adapters that share one underlying medium."""
    if request.param == "local-memory":
        shared = MemoryMedium()
        build = _local
    elif request.param == "local-file":
        shared = FileMedium(tmp_path / "local_storage.json")
        build = _local
    else:
        shared = FakeCloudClient()
        build = _cloud
    return lambda namespace="ns_a_": build(shared, namespace)


def run(coro):
    return asyncio.run(coro)


def test_round_trip(make_adapter):
    s = make_adapter()
    values = [{"name": "Acme", "tags": ["x", "y"], "n": 1.5}, [1, 2, 3], "text", 0, False, None]
    for i, v in enumerate(values):
        run(s.set(f"k{i}", v))
    for i, v in enumerate(values):
        assert run(s.get(f"k{i}")) == v


def test_get_missing_returns_none(make_adapter):
    s = make_adapter()
    assert run(s.get("nope")) is None


def test_delete_is_idempotent(make_adapter):
    s = make_adapter()
    run(s.set("k", {"v": 1}))
    run(s.delete("k"))
    assert run(s.get("k")) is None
    # second delete and delete of a never-written key are no-ops
    run(s.delete("k"))
    run(s.delete("never"))


def test_namespace_isolation(make_adapter):
    a = make_adapter("ns_a_")
    b = make_adapter("ns_b_")
    run(a.set("k", "from a"))
    assert run(b.get("k")) is None
    assert run(b.list()) == []
    run(b.set("k", "from b"))
    assert run(a.get("k")) == "from a"


def test_list_filters_by_prefix(make_adapter):
    s = make_adapter()
    run(s.set("a1", {"id": "a1"}))
    run(s.set("a2", {"id": "a2"}))
    run(s.set("b1", {"id": "b1"}))
    assert sorted(v["id"] for v in run(s.list("a"))) == ["a1", "a2"]
    assert sorted(v["id"] for v in run(s.list())) == ["a1", "a2", "b1"]
    assert run(s.list("zzz")) == []


def test_clear_only_touches_own_namespace(make_adapter):
    a = make_adapter("ns_a_")
    b = make_adapter("ns_b_")
    run(a.set("x", 1))
    run(a.set("y", 2))
    run(b.set("x", 3))
    run(a.clear())
    assert run(a.list()) == []
    assert run(b.list()) == [3]
    assert run(b.get("x")) == 3


def test_set_twice_overwrites_without_duplicates(make_adapter):
    s = make_adapter()
    run(s.set("k", {"v": 1}))
    run(s.set("k", {"v": 1}))
    assert run(s.get("k")) == {"v": 1}
    assert run(s.list()) == [{"v": 1}]
    run(s.set("k", {"v": 2}))
    assert run(s.get("k")) == {"v": 2}


def test_client_scenario(make_adapter):
    s = make_adapter()
    run(s.set("client:1", {"name": "Acme"}))
    assert run(s.get("client:1")) == {"name": "Acme"}
    assert run(s.list("client:")) == [{"name": "Acme"}]
    run(s.delete("client:1"))
    assert run(s.get("client:1")) is None
