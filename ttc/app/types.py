from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Envelope:
    """A cached value along with the tag tokens in effect when it was computed.

    When read back from the store, the tokens must be compared with the
    current ones: if every recorded token is still current, `value` is usable.

    """

    value: Any
    """The cached value."""

    tags: Dict[str, str] = field(default_factory=dict)
    """Recorded tokens: hashed tag name => random token."""


class KnownMiss:
    """Marker stored in local caches by `load()`.

    It means that the key was already checked against the store (and was absent
    or invalid) so there is no need to check it again during the same request.

    """

    _instance: Optional["KnownMiss"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "KNOWN_MISS"


KNOWN_MISS = KnownMiss()


@dataclass(frozen=True)
class BypassCache(Generic[T]):
    """Return directive: return `value` to the caller but do not cache it.

    This is useful for example to avoid caching error values:

    ```python
    def compute():
        response = call_some_api()
        if response.status_code != 200:
            return BypassCache(None)
        return response.json()

    engine.remember("key", compute)
    ```

    """

    value: T


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a TagVersionStore operation (a value and an optional store error)."""

    value: T
    error: Optional[Exception] = None

    @property
    def has_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of `Engine.remember()`."""

    value: T
    """The cached or computed value."""

    hit: bool
    """True if the value comes from the cache (local or remote)."""

    tags: List[str] = field(default_factory=list)
    """Hashed tag names the value depends on (including nested ones)."""

    error: Optional[Exception] = None
    """Non-fatal store error encountered while reading or writing the cache."""

    @property
    def is_hit(self) -> bool:
        return self.hit

    @property
    def is_miss(self) -> bool:
        return not self.hit

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @classmethod
    def from_envelope(
        cls, envelope: Envelope, hit: bool, error: Optional[Exception] = None
    ) -> "Result":
        return cls(
            value=envelope.value, hit=hit, tags=list(envelope.tags), error=error
        )


@dataclass(frozen=True)
class LoadResult:
    """Outcome of `Engine.load()`.

    Keys are the original (non hashed) keys, in the order they were requested.

    """

    loaded_keys: List[Any] = field(default_factory=list)
    missing_keys: List[Any] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def has_error(self) -> bool:
        return self.error is not None
