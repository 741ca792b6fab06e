from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional


class StorePort(ABC):
    """Contract of the backing key/value store.

    Notes:

    - `ttl` is a lifetime in seconds, `None` (or 0) means "no expiration"
    - keys missing from the store are simply absent from `get_multiple()` results
    - any store failure must raise a `StoreCacheException` (never a silent miss)

    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under `key` (or None)."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete the given key, return True if something was deleted."""
        pass

    @abstractmethod
    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def set_multiple(self, values: Mapping[str, Any], ttl: Optional[int] = None) -> bool:
        pass

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        deleted = False
        for key in keys:
            deleted = self.delete(key) or deleted
        return deleted
