from typing import Any, Dict, Iterable, Mapping, Optional

from ttc.app.exc import StoreCacheException
from ttc.app.store import StorePort


class BadStoreAdapter(StorePort):
    """Store adapter which always fails (unreachable store).

    Useful to check the degraded mode: values are still computed, never cached.

    """

    def get(self, key: str) -> Optional[Any]:
        raise StoreCacheException("bad store: get")

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        raise StoreCacheException("bad store: set")

    def delete(self, key: str) -> bool:
        raise StoreCacheException("bad store: delete")

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        raise StoreCacheException("bad store: get_multiple")

    def set_multiple(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        raise StoreCacheException("bad store: set_multiple")

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        raise StoreCacheException("bad store: delete_multiple")
