import pytest

from ttc.app.store import StorePort
from ttc.infra.adapters.store.dict import DictStoreAdapter
from tests.infra.store_adapter import (
    _test_basic,
    _test_delete_nonexistent,
    _test_expiration,
    _test_multiple_expiration,
    _test_multiple_values,
    _test_no_expiration,
)


@pytest.fixture
def adapter() -> StorePort:
    return DictStoreAdapter()


def test_basic(adapter: StorePort):
    _test_basic(adapter)


def test_expiration(adapter: StorePort):
    _test_expiration(adapter)


def test_no_expiration(adapter: StorePort):
    _test_no_expiration(adapter)


def test_multiple_values(adapter: StorePort):
    _test_multiple_values(adapter)


def test_multiple_expiration(adapter: StorePort):
    _test_multiple_expiration(adapter)


def test_delete_nonexistent(adapter: StorePort):
    _test_delete_nonexistent(adapter)


def test_values_are_not_copied(adapter: StorePort):
    value = ["foo"]
    adapter.set("key", value)
    assert adapter.get("key") is value
