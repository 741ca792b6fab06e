import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional

import wrapt

from ttc.app.store import StorePort


@wrapt.decorator
def locked(wrapped, instance, args, kwargs):
    with instance._lock:
        return wrapped(*args, **kwargs)


class Item:
    value: Any
    _expiration: Optional[float] = None

    def __init__(
        self,
        value: Any,
        expiration_lifetime: Optional[int] = None,
    ):
        self.value = value
        if expiration_lifetime:
            self._expiration = time.perf_counter() + expiration_lifetime
        else:
            self._expiration = None

    @property
    def is_expired(self) -> bool:
        if self._expiration is None:
            return False
        return time.perf_counter() > self._expiration


@dataclass
class DictStoreAdapter(StorePort):
    """In-process store (values are kept as python objects, not serialized).

    Note: thread-safe but NOT production ready (no eviction at all), use it
    for unit-testing or for very small caches.

    """

    _data: Dict[str, Item] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _get(self, key: str) -> Optional[Any]:
        item = self._data.get(key)
        if item is None:
            return None
        if item.is_expired:
            self._delete(key)
            return None
        return item.value

    def _delete(self, key: str) -> bool:
        try:
            self._data.pop(key)
            return True
        except KeyError:
            return False

    @locked
    def get(self, key: str) -> Optional[Any]:
        return self._get(key)

    @locked
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._data[key] = Item(value, ttl)
        return True

    @locked
    def delete(self, key: str) -> bool:
        return self._delete(key)

    @locked
    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        res: Dict[str, Any] = {}
        for key in keys:
            value = self._get(key)
            if value is not None:
                res[key] = value
        return res

    @locked
    def set_multiple(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        for key, value in values.items():
            self._data[key] = Item(value, ttl)
        return True

    @locked
    def delete_multiple(self, keys: Iterable[str]) -> bool:
        deleted = False
        for key in keys:
            deleted = self._delete(key) or deleted
        return deleted
