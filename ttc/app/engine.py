import logging
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
)

from ttc.app.hash import md5_hash
from ttc.app.tagged_store import TagVersionStore
from ttc.app.tags import Tag, TaggedKey, TagLike, as_tag, as_tags
from ttc.app.tree import CallTree
from ttc.app.types import KNOWN_MISS, BypassCache, Envelope, LoadResult, Result

LOGGER = logging.getLogger("ttc.app.engine")

T = TypeVar("T")

Key = Union[str, TaggedKey]

# active trees of the current context: id(engine) => tree (copied on write)
_ACTIVE_TREES: "ContextVar[Optional[Dict[int, CallTree]]]" = ContextVar(
    "ttc_active_trees", default=None
)


class CacheHook(Protocol):
    def __call__(
        self,
        cache_key: str,
        cache_tags: List[str],
        result: Result,
        userdata: Any = None,
    ) -> None:
        """Signature of cache hooks."""
        pass


@dataclass
class Engine:
    """Tag tree cache.

    It caches values computed by callables and builds, while doing so, a tree
    of the tags used at every nesting level: the tags applied to a nested
    cached value are also applied to every wrapping cached value. Clearing a
    tag used deep inside a call tree invalidates every ancestor, even if the
    ancestors never declared this dependency.

    Note: active trees are stored in a context variable so an engine can be
    shared by several threads (or asyncio tasks), each one getting its own tree.

    """

    store: TagVersionStore
    """Tag versioning layer over the backing store."""

    key_hasher: Callable[[str], str] = md5_hash
    """Function used to hash keys and tag names."""

    cache_hook: Optional[CacheHook] = None
    """Optional hook called after each `remember()` call."""

    def hashed_key(self, key: Key) -> str:
        return f"k-{self.key_hasher(str(key))}"

    def hashed_tag(self, tag: TagLike) -> str:
        return f"t-{self.key_hasher(as_tag(tag).name)}"

    def hash_tags(self, *tags: TagLike) -> List[str]:
        return [self.hashed_tag(t) for t in tags]

    @property
    def tree(self) -> Optional[CallTree]:
        """The active tree (None outside `remember()`/`wrap()` calls)."""
        trees = _ACTIVE_TREES.get()
        if not trees:
            return None
        return trees.get(id(self))

    def _init_tree(self) -> Tuple[CallTree, Optional[Token]]:
        """Return the active tree (created if needed).

        The returned token is not None when the caller owns (created) the tree:
        it must then give it to `_reset_tree()` when exiting.

        """
        trees = _ACTIVE_TREES.get() or {}
        tree = trees.get(id(self))
        if tree is not None:
            return tree, None
        tree = CallTree()
        return tree, _ACTIVE_TREES.set({**trees, id(self): tree})

    def _reset_tree(self, root_token: Optional[Token]) -> None:
        if root_token is not None:
            _ACTIVE_TREES.reset(root_token)

    def _split_tags(
        self, tags: Iterable[Tag]
    ) -> Tuple[List[str], List[str], List[str], List[str]]:
        """Return (tag names, heritable names, retired names, heritable retired names).

        All names are hashed. Retired tags are not versioned (they are only
        used to filter the validation of cached values).

        """
        names: List[str] = []
        heritable: List[str] = []
        retired: List[str] = []
        heritable_retired: List[str] = []
        for tag in tags:
            hashed = self.hashed_tag(tag)
            if tag.is_retired:
                retired.append(hashed)
                if tag.is_heritable:
                    heritable_retired.append(hashed)
                continue
            names.append(hashed)
            if tag.is_heritable:
                heritable.append(hashed)
        return names, heritable, retired, heritable_retired

    def _safe_call_hook(
        self, key: Key, result: Result, userdata: Any = None
    ) -> Result:
        if self.cache_hook is None:
            return result
        try:
            self.cache_hook(str(key), result.tags, result, userdata)
        except Exception:
            LOGGER.warning("error while calling cache hook", exc_info=True)
        return result

    def remember(
        self,
        key: Key,
        compute: Callable[[], Union[T, BypassCache[T]]],
        tags: Optional[Iterable[TagLike]] = None,
        ttl: Optional[int] = None,
        hook_userdata: Any = None,
    ) -> Result[T]:
        """Cache the result of `compute()` under the given key.

        - `tags`: list of tags that can be used to clear this value. Tags used
        in nested calls are also applied to this value.
        - `ttl`: lifetime (in seconds) of the value. It also applies to every
        wrapping `remember()` (the shortest one wins).

        If `compute()` returns a `BypassCache`, its value is returned but not
        cached. If `compute()` raises, the tree is rewound and the exception
        is propagated. Store failures never raise: they are reported in
        `Result.error`.

        """
        tag_list = as_tags(tags or [])
        if isinstance(key, TaggedKey):
            tag_list.extend(as_tags(key.tags))
        hkey = self.hashed_key(key)
        names, heritable, retired, heritable_retired = self._split_tags(tag_list)
        tree, root_token = self._init_tree()
        retired = tree.retired_names() + retired

        local = tree.local_lookup(hkey)
        if local is not None and local is not KNOWN_MISS:
            tree.attach(local.tags)
            self._reset_tree(root_token)
            return self._safe_call_hook(
                key, Result.from_envelope(local, True), hook_userdata
            )

        error: Optional[Exception] = None
        if local is None:
            store_result = self.store.get(hkey, retired)
            if store_result.value is not None:
                tree.attach(store_result.value.tags)
                self._reset_tree(root_token)
                return self._safe_call_hook(
                    key,
                    Result.from_envelope(store_result.value, True, store_result.error),
                    hook_userdata,
                )
            error = store_result.error

        tokens, read_only, versions_error = self.store.fetch_or_create_versions(
            names, ttl
        )
        if error is not None:
            read_only = True
        else:
            error = versions_error

        parent = tree.active
        node = tree.push_child(tokens, heritable, heritable_retired)
        try:
            value = compute()
        except BaseException:
            tree.rewind(parent)
            self._reset_tree(root_token)
            raise
        tree.pop_child()
        aggregated = tree.aggregate_tokens(node.index)

        if isinstance(value, BypassCache):
            self._reset_tree(root_token)
            return self._safe_call_hook(
                key, Result(value.value, False, list(aggregated), error), hook_userdata
            )

        if not read_only:
            store_result = self.store.store(hkey, ttl, aggregated, value)
            error = store_result.error or error
            value = store_result.value
        if local is KNOWN_MISS:
            # served locally for the rest of the request (even if not stored)
            tree.local_replace(hkey, Envelope(value, aggregated))

        self._reset_tree(root_token)
        return self._safe_call_hook(
            key, Result(value, False, list(aggregated), error), hook_userdata
        )

    def wrap(self, tags: Iterable[TagLike], fn: Callable[[], T]) -> T:
        """Apply tags to everything cached while calling `fn()` (without caching anything).

        This is mainly useful with heritable tags: every value cached below
        will depend on them.

        """
        names, heritable, _, heritable_retired = self._split_tags(as_tags(tags))
        tree, root_token = self._init_tree()
        tokens, _, _ = self.store.fetch_or_create_versions(names)

        parent = tree.active
        tree.push_child(tokens, heritable, heritable_retired)
        try:
            value = fn()
        except BaseException:
            tree.rewind(parent)
            self._reset_tree(root_token)
            raise
        tree.pop_child()
        self._reset_tree(root_token)
        return value

    def load(self, keys: Iterable[Key]) -> LoadResult:
        """Preload the given keys into the active node's local cache.

        Preloaded values are then served from memory by `remember()` calls made
        in the same scope (or below). Keys which were not found are recorded as
        known misses: `remember()` won't check the store again for them.

        """
        keys = list(keys)
        hkeys = [self.hashed_key(k) for k in keys]
        tree = self.tree
        retired = tree.retired_names() if tree is not None else []
        store_result = self.store.get_multiple(hkeys, retired)
        found = store_result.value
        loaded = [k for k, hk in zip(keys, hkeys) if hk in found]
        missing = [k for k, hk in zip(keys, hkeys) if hk not in found]
        if tree is None:
            LOGGER.debug(
                "load() called outside remember()/wrap() => preloaded values dropped"
            )
        else:
            tree.local_insert_all(found)
            tree.local_insert_all(
                {hk: KNOWN_MISS for hk in hkeys if hk not in found}
            )
        return LoadResult(
            loaded_keys=loaded, missing_keys=missing, error=store_result.error
        )

    def clear_tags(self, *tags: TagLike) -> bool:
        """Invalidate every value depending on any of the given tags.

        Returns False if the store failed.

        """
        return self.store.invalidate(*self.hash_tags(*tags))
