import os
import uuid

import pytest

from ttc.app.exc import StoreCacheException
from ttc.app.store import StorePort
from ttc.infra.adapters.store.redis import RedisStoreAdapter, get_storage_key
from tests.infra.store_adapter import (
    _test_basic,
    _test_delete_nonexistent,
    _test_expiration,
    _test_multiple_expiration,
    _test_multiple_values,
    _test_no_expiration,
)

REDIS_HOST = os.getenv("REDIS_HOST", "")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))


@pytest.fixture
def adapter() -> StorePort:
    return RedisStoreAdapter(
        namespace=str(uuid.uuid4()),
        redis_kwargs={"host": REDIS_HOST, "port": REDIS_PORT},
    )


def test_storage_key():
    assert get_storage_key("ns", "k-foo") == get_storage_key("ns", "k-foo")
    assert get_storage_key("ns", "k-foo") != get_storage_key("ns2", "k-foo")
    assert get_storage_key("ns", "k-foo").endswith(":k-foo")


def test_unreachable_redis():
    adapter = RedisStoreAdapter(
        redis_kwargs={
            "host": "localhost",
            "port": 1,
            "socket_timeout": 1,
            "socket_connect_timeout": 1,
        }
    )
    with pytest.raises(StoreCacheException):
        adapter.get("key")
    with pytest.raises(StoreCacheException):
        adapter.set_multiple({"key": "value"})


def test_not_serializable_value():
    adapter = RedisStoreAdapter()
    with pytest.raises(StoreCacheException):
        adapter.set("key", lambda: None)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_basic(adapter: StorePort):
    _test_basic(adapter)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_expiration(adapter: StorePort):
    _test_expiration(adapter)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_no_expiration(adapter: StorePort):
    _test_no_expiration(adapter)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_multiple_values(adapter: StorePort):
    _test_multiple_values(adapter)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_multiple_expiration(adapter: StorePort):
    _test_multiple_expiration(adapter)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_delete_nonexistent(adapter: StorePort):
    _test_delete_nonexistent(adapter)


@pytest.mark.skipif(REDIS_HOST == "", reason="REDIS_HOST is not set")
def test_corrupted_value(adapter: RedisStoreAdapter):
    adapter.redis_client.set(get_storage_key(adapter.namespace, "key"), b"garbage")
    assert adapter.get("key") is None
