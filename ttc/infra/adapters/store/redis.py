import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import redis

from ttc.app.exc import StoreCacheException
from ttc.app.hash import short_hash
from ttc.app.serializer import DEFAULT_SERIALIZER, DEFAULT_UNSERIALIZER
from ttc.app.store import StorePort

LOGGER = logging.getLogger("ttc.infra.adapters.store.redis")


def get_storage_key(namespace: str, key: str) -> str:
    return f"ttc:{short_hash(namespace)}:{key}"


@dataclass
class RedisStoreAdapter(StorePort):
    """Redis adapter for the store port."""

    namespace: str = "default"
    redis_kwargs: Dict[str, Any] = field(default_factory=dict)
    serializer: Callable[[Any], Optional[bytes]] = DEFAULT_SERIALIZER
    unserializer: Callable[[bytes], Any] = DEFAULT_UNSERIALIZER
    _redis_client: Optional[redis.Redis] = None
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def redis_client(self) -> redis.Redis:
        with self._lock:
            if self._redis_client is None:
                self._redis_client = redis.Redis(**self.redis_kwargs)
            return self._redis_client

    def _unserialize(self, storage_key: str, value: Optional[bytes]) -> Optional[Any]:
        if value is None:
            return None
        try:
            return self.unserializer(value)
        except Exception:
            LOGGER.warning(
                "error while unserializing %s => handled as a miss",
                storage_key,
                exc_info=True,
            )
            return None

    def _serialize(self, value: Any) -> bytes:
        try:
            serialized = self.serializer(value)
        except Exception as e:
            raise StoreCacheException(f"Failed to serialize value: {e}") from e
        if serialized is None:
            raise StoreCacheException("Failed to serialize value: got None")
        return serialized

    def get(self, key: str) -> Optional[Any]:
        storage_key = get_storage_key(self.namespace, key)
        try:
            value = self.redis_client.get(storage_key)
        except Exception as e:
            raise StoreCacheException(f"Failed to get value from Redis: {e}") from e
        return self._unserialize(storage_key, value)  # type: ignore

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        storage_key = get_storage_key(self.namespace, key)
        serialized = self._serialize(value)
        try:
            return bool(self.redis_client.set(storage_key, serialized, ex=ttl or None))
        except Exception as e:
            raise StoreCacheException(f"Failed to set value in Redis: {e}") from e

    def delete(self, key: str) -> bool:
        storage_key = get_storage_key(self.namespace, key)
        try:
            deleted = self.redis_client.delete(storage_key)
            return deleted > 0  # type: ignore
        except Exception as e:
            raise StoreCacheException(
                f"Failed to delete value from Redis: {e}"
            ) from e

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        if not keys:
            return {}
        storage_keys = [get_storage_key(self.namespace, k) for k in keys]
        try:
            values: List[Optional[bytes]] = self.redis_client.mget(storage_keys)  # type: ignore
        except Exception as e:
            raise StoreCacheException(f"Failed to get values from Redis: {e}") from e
        res: Dict[str, Any] = {}
        for key, storage_key, value in zip(keys, storage_keys, values):
            unserialized = self._unserialize(storage_key, value)
            if unserialized is not None:
                res[key] = unserialized
        return res

    def set_multiple(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        if not values:
            return True
        serialized = {
            get_storage_key(self.namespace, k): self._serialize(v)
            for k, v in values.items()
        }
        try:
            pipeline = self.redis_client.pipeline(transaction=False)
            for storage_key, value in serialized.items():
                pipeline.set(storage_key, value, ex=ttl or None)
            pipeline.execute()
        except Exception as e:
            raise StoreCacheException(f"Failed to set values in Redis: {e}") from e
        return True

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        storage_keys = [get_storage_key(self.namespace, k) for k in keys]
        if not storage_keys:
            return False
        try:
            deleted = self.redis_client.delete(*storage_keys)
            return deleted > 0  # type: ignore
        except Exception as e:
            raise StoreCacheException(
                f"Failed to delete values from Redis: {e}"
            ) from e
