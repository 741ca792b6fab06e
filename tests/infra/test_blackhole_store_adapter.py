import pytest

from ttc.app.store import StorePort
from ttc.infra.adapters.store.blackhole import BlackHoleStoreAdapter


@pytest.fixture
def adapter() -> StorePort:
    return BlackHoleStoreAdapter()


def test_basic(adapter: StorePort):
    assert adapter.set("key", "value", 10) is True
    assert adapter.get("key") is None
    assert adapter.delete("key") is False


def test_multiple_values(adapter: StorePort):
    assert adapter.set_multiple({"key1": "value1", "key2": "value2"}) is True
    assert adapter.get_multiple(["key1", "key2"]) == {}
    assert adapter.delete_multiple(["key1", "key2"]) is False
