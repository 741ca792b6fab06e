import time

import pytest

from ttc.app.exc import StoreCacheException
from ttc.app.tagged_store import (
    TTL_TAG_PREFIX,
    TagVersionStore,
    filter_retired,
    tags_are_valid,
)
from ttc.app.types import Envelope
from ttc.infra.adapters.store.bad import BadStoreAdapter
from ttc.infra.adapters.store.dict import DictStoreAdapter
from tests.app.key_tracker import KeyTrackerStoreAdapter


@pytest.fixture
def adapter() -> KeyTrackerStoreAdapter:
    return KeyTrackerStoreAdapter()


@pytest.fixture
def store(adapter: KeyTrackerStoreAdapter) -> TagVersionStore:
    return TagVersionStore(adapter=adapter)


def test_tags_are_valid():
    assert tags_are_valid({}, {})
    assert tags_are_valid({"t-a": "1"}, {"t-a": "1", "t-b": "2"})
    assert not tags_are_valid({"t-a": "1"}, {"t-a": "2"})
    assert not tags_are_valid({"t-a": "1"}, {})


def test_filter_retired():
    assert filter_retired({"t-a": "1", "t-b": "2"}, []) == {"t-a": "1", "t-b": "2"}
    assert filter_retired({"t-a": "1", "t-b": "2"}, ["t-a"]) == {"t-b": "2"}


def test_fetch_or_create_versions(store: TagVersionStore):
    versions, read_only, error = store.fetch_or_create_versions(["t-a", "t-b"])
    assert read_only is False
    assert error is None
    assert list(versions) == ["t-a", "t-b"]
    assert versions["t-a"] != versions["t-b"]
    new_versions, read_only, _ = store.fetch_or_create_versions(["t-b", "t-c"])
    assert read_only is False
    assert new_versions["t-b"] == versions["t-b"]
    assert new_versions["t-c"] not in (versions["t-a"], versions["t-b"])


def test_fetch_or_create_versions_empty(store: TagVersionStore):
    assert store.fetch_or_create_versions([]) == ({}, False, None)


def test_fetch_or_create_versions_with_ttl(store: TagVersionStore):
    versions, _, _ = store.fetch_or_create_versions(["t-a"], ttl=1)
    ttl_tags = [t for t in versions if t.startswith(TTL_TAG_PREFIX)]
    assert len(ttl_tags) == 1
    assert ttl_tags[0].startswith(f"{TTL_TAG_PREFIX}-ttl-1-")
    assert store.adapter.get(ttl_tags[0]) == versions[ttl_tags[0]]
    time.sleep(2)
    assert store.adapter.get(ttl_tags[0]) is None
    assert store.adapter.get("t-a") == versions["t-a"]
    # unique per call
    other_versions, _, _ = store.fetch_or_create_versions([], ttl=1)
    assert ttl_tags[0] not in other_versions


def test_fetch_or_create_versions_bad_store():
    store = TagVersionStore(adapter=BadStoreAdapter())
    versions, read_only, error = store.fetch_or_create_versions(
        ["t-a", "t-b"], ttl=10
    )
    assert read_only is True
    assert isinstance(error, StoreCacheException)
    assert len(versions) == 3
    assert all(isinstance(v, str) and v for v in versions.values())


def test_get(store: TagVersionStore):
    assert store.get("k-1").value is None
    versions, _, _ = store.fetch_or_create_versions(["t-a", "t-b"])
    res = store.store("k-1", None, versions, "value")
    assert res.value == "value"
    assert res.error is None
    res = store.get("k-1")
    assert res.error is None
    assert res.value == Envelope("value", versions)
    assert store.invalidate("t-b") is True
    assert store.get("k-1").value is None


def test_get_missing_tag_is_stale(store: TagVersionStore):
    versions, _, _ = store.fetch_or_create_versions(["t-a"])
    store.store("k-1", None, versions, "value")
    store.adapter.delete("t-a")
    assert store.get("k-1").value is None


def test_get_ignores_unknown_values(store: TagVersionStore):
    store.adapter.set("k-1", "not an envelope")
    assert store.get("k-1").value is None


def test_get_with_retired_tags(store: TagVersionStore):
    versions, _, _ = store.fetch_or_create_versions(["t-a", "t-b"])
    store.store("k-1", None, versions, "value")
    store.invalidate("t-a")
    assert store.get("k-1").value is None
    res = store.get("k-1", retired=["t-a"])
    assert res.value == Envelope("value", {"t-b": versions["t-b"]})


def test_get_reads_value_before_tags(
    store: TagVersionStore, adapter: KeyTrackerStoreAdapter
):
    versions, _, _ = store.fetch_or_create_versions(["t-a"])
    store.store("k-1", None, versions, "value")
    adapter.reset()
    store.get("k-1")
    assert adapter.requested_keys == ["k-1"]
    assert adapter.requested_multiple_keys == [["t-a"]]


def test_get_multiple(store: TagVersionStore, adapter: KeyTrackerStoreAdapter):
    versions1, _, _ = store.fetch_or_create_versions(["t-a"])
    versions2, _, _ = store.fetch_or_create_versions(["t-b"])
    versions3, _, _ = store.fetch_or_create_versions(["t-a", "t-c"])
    store.store("k-1", None, versions1, "value1")
    store.store("k-2", None, versions2, "value2")
    store.store("k-3", None, versions3, "value3")
    store.invalidate("t-c")
    adapter.reset()
    res = store.get_multiple(["k-1", "k-2", "k-3", "k-4"])
    assert res.error is None
    assert res.value == {
        "k-1": Envelope("value1", versions1),
        "k-2": Envelope("value2", versions2),
    }
    assert adapter.requested_keys == []
    assert len(adapter.requested_multiple_keys) == 2
    assert sorted(adapter.requested_multiple_keys[1]) == ["t-a", "t-b", "t-c"]


def test_get_multiple_empty(store: TagVersionStore, adapter: KeyTrackerStoreAdapter):
    assert store.get_multiple([]).value == {}
    assert adapter.requested_multiple_keys == []


def test_bad_store():
    store = TagVersionStore(adapter=BadStoreAdapter())
    res = store.get("k-1")
    assert res.value is None
    assert isinstance(res.error, StoreCacheException)
    res = store.get_multiple(["k-1"])
    assert res.value == {}
    assert isinstance(res.error, StoreCacheException)
    res = store.store("k-1", None, {}, "value")
    assert res.value == "value"
    assert isinstance(res.error, StoreCacheException)
    assert store.invalidate("t-a") is False


def test_tags_lifetime():
    store = TagVersionStore(adapter=DictStoreAdapter(), tags_lifetime=1)
    versions, _, _ = store.fetch_or_create_versions(["t-a"])
    store.store("k-1", None, versions, "value")
    assert store.get("k-1").value is not None
    time.sleep(2)
    assert store.get("k-1").value is None


class FailingTagWritesStoreAdapter(DictStoreAdapter):
    def set_multiple(self, values, ttl=None) -> bool:
        raise StoreCacheException("read-only store")


def test_fetch_or_create_versions_failing_writes():
    store = TagVersionStore(adapter=FailingTagWritesStoreAdapter())
    versions, read_only, error = store.fetch_or_create_versions(["t-a"])
    assert read_only is True
    assert isinstance(error, StoreCacheException)
    assert list(versions) == ["t-a"]
