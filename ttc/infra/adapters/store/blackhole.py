from typing import Any, Dict, Iterable, Mapping, Optional

from ttc.app.store import StorePort


class BlackHoleStoreAdapter(StorePort):
    """Blackhole store adapter that does nothing (used when the cache is disabled)."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return True

    def delete(self, key: str) -> bool:
        return False

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {}

    def set_multiple(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        return True

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        return False
