from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Iterable, List, Optional, TypeVar, Union

from ttc.app.decorator import TagsArg, cache_decorator
from ttc.app.engine import CacheHook, Engine, Key
from ttc.app.hash import md5_hash
from ttc.app.serializer import DEFAULT_SERIALIZER, DEFAULT_UNSERIALIZER
from ttc.app.store import StorePort
from ttc.app.tagged_store import TagVersionStore
from ttc.app.tags import TagLike
from ttc.app.types import BypassCache, LoadResult, Result
from ttc.infra.adapters.store.blackhole import BlackHoleStoreAdapter
from ttc.infra.adapters.store.dict import DictStoreAdapter
from ttc.infra.adapters.store.redis import RedisStoreAdapter

T = TypeVar("T")


@dataclass
class TagTreeCache:
    """Main class for the tag tree cache.

    Note: thread-safe (each thread/asyncio task gets its own tag tree).

    """

    namespace: str = "default"
    """Namespace for the cache entries."""

    host: str = "localhost"
    """Redis server hostname."""

    port: int = 6379
    """Redis server port."""

    db: int = 0
    """Redis database number."""

    ssl: bool = False
    """Use SSL for the connection."""

    socket_timeout: int = 5
    """Socket timeout in seconds."""

    socket_connect_timeout: int = 5
    """Socket connection timeout in seconds."""

    tags_lifetime: Optional[int] = None
    """Lifetime for tags entries (in seconds).

    If a tag entry expires, every cache entry depending on it is invalidated.

    Note: None means "no expiration" (be sure in that case that your redis is
    configured to automatically evict keys even if they are not volatile).

    """

    disabled: bool = False
    """If True, the cache is disabled (cache always missed and no write) but the API is still available."""

    in_local_memory: bool = False
    """If True, the cache is stored in the process local memory (no redis at all!).

    This mode is NOT production ready and have some major caveats! You should use it
    only for unit-testing.

    """

    key_hasher: Callable[[str], str] = md5_hash
    """Function used to hash keys and tag names (must be stable between processes)."""

    cache_hook: Optional[CacheHook] = None
    """Optional custom hook called after each `remember()` call (decorators included).

    The signature of the hook must be:

    ```python
    def your_hook(key: str, tags: List[str], result: Result, userdata: Optional[Any] = None) -> None:
        # {your code here}
        return
    ```

    """

    serializer: Callable[[Any], Optional[bytes]] = DEFAULT_SERIALIZER
    """Serializer function to serialize data before storing it in redis."""

    unserializer: Callable[[bytes], Any] = DEFAULT_UNSERIALIZER
    """Unserializer function to unserialize data after reading it from redis."""

    _internal_lock: Lock = field(init=False, default_factory=Lock)
    _forced_store_adapter: Optional[StorePort] = field(
        init=False, default=None
    )  # for advanced usage only
    __engine: Optional[Engine] = field(init=False, default=None)  # cache of the Engine object

    @property
    def _engine(self) -> Engine:
        with self._internal_lock:
            if self.__engine is None:
                self.__engine = self._make_engine()
            return self.__engine

    def _make_store_adapter(self) -> StorePort:
        if self._forced_store_adapter:
            return self._forced_store_adapter
        if self.disabled:
            return BlackHoleStoreAdapter()
        if self.in_local_memory:
            return DictStoreAdapter()
        redis_kwargs = {
            "host": self.host,
            "port": self.port,
            "db": self.db,
            "ssl": self.ssl,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
        }
        return RedisStoreAdapter(
            namespace=self.namespace,
            redis_kwargs=redis_kwargs,
            serializer=self.serializer,
            unserializer=self.unserializer,
        )

    def _make_engine(self) -> Engine:
        return Engine(
            store=TagVersionStore(
                adapter=self._make_store_adapter(), tags_lifetime=self.tags_lifetime
            ),
            key_hasher=self.key_hasher,
            cache_hook=self.cache_hook,
        )

    def remember(
        self,
        key: Key,
        compute: Callable[[], Union[T, BypassCache[T]]],
        tags: Optional[Iterable[TagLike]] = None,
        ttl: Optional[int] = None,
        hook_userdata: Any = None,
    ) -> Result[T]:
        """Cache the result of `compute()` under the given key (with given invalidation tags).

        Tags (and ttl) used by nested `remember()` calls also apply to this value.

        """
        return self._engine.remember(
            key, compute, tags=tags, ttl=ttl, hook_userdata=hook_userdata
        )

    def wrap(self, tags: Iterable[TagLike], fn: Callable[[], T]) -> T:
        """Apply tags to everything cached during the `fn()` call (without caching its result)."""
        return self._engine.wrap(tags, fn)

    def load(self, keys: Iterable[Key]) -> LoadResult:
        """Preload keys in the current scope (must be called in `remember()`/`wrap()`)."""
        return self._engine.load(keys)

    def clear_tags(self, *tags: TagLike) -> bool:
        """Invalidate entries with given tags."""
        return self._engine.clear_tags(*tags)

    def hash_tags(self, *tags: TagLike) -> List[str]:
        return self._engine.hash_tags(*tags)

    def decorator(
        self,
        tags: TagsArg = None,
        ttl: Optional[int] = None,
        key: Optional[Callable[..., str]] = None,
        hook_userdata: Optional[Any] = None,
    ):
        """Decorator for caching the result of a function (or a method).

        Notes:

        - `tags` and `ttl` are the same as for `remember` method (but `tags` can also be a callable here to provide dynamic tags)
        - `key` is an optional function that can be used to generate a custom key
        - `hook_userdata` is an optional variable that can be transmitted to custom cache hooks (useless else)

        If you don't provide a `key` argument, a key is automatically generated from the function name/location and its calling arguments (they must be JSON serializable).
        You can override this behavior by providing a custom `key` function with following signature:

        ```python
        def custom_key(*args, **kwargs) -> str:
            # {your code here to generate key}
            # make your own key from *args, **kwargs that are exactly the calling arguments of the decorated function
            return key
        ```

        If you are interested by settings dynamic tags (i.e. tags that are computed at runtime depending on the function calling arguments), you can provide a callable for `tags` argument
        with the following signature:

        ```python
        def dynamic_tags(*args, **kwargs) -> List[str]:
            # {your code here to generate tags}
            # make your own tags from *args, **kwargs that are exactly the calling arguments of the decorated function
            return tags
        ```

        """
        return cache_decorator(
            engine=self._engine,
            tags=tags,
            ttl=ttl,
            key=key,
            hook_userdata=hook_userdata,
        )
