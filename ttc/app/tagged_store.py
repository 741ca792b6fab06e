import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ttc.app.exc import StoreCacheException
from ttc.app.hash import get_random_token
from ttc.app.store import StorePort
from ttc.app.types import Envelope, StoreResult

LOGGER = logging.getLogger("ttc.app.tagged_store")

TTL_TAG_PREFIX = "__ttc_ttl__"
"""Prefix of the synthetic tags used to scope a TTL (can't collide with `t-...` tags)."""


def make_ttl_tag_name(ttl: int) -> str:
    return f"{TTL_TAG_PREFIX}-ttl-{ttl}-{get_random_token()}"


def tags_are_valid(recorded: Mapping[str, str], current: Mapping[str, Any]) -> bool:
    """Check recorded tokens against the current ones.

    A tag missing from `current` is considered as `None` and never matches.

    """
    for tag_name, token in recorded.items():
        if token != current.get(tag_name):
            return False
    return True


def filter_retired(tags: Mapping[str, str], retired: Iterable[str]) -> Dict[str, str]:
    retired_set = set(retired)
    if not retired_set:
        return dict(tags)
    return {k: v for k, v in tags.items() if k not in retired_set}


@dataclass
class TagVersionStore:
    """Wrapper around the backing store which owns the tag versioning scheme.

    Each tag name is associated in the store with a random token. A value is
    stored along with the tokens of all the tags it depends on (as an
    `Envelope`). Invalidating a tag is just writing a new random token for it:
    envelopes recorded with the old token are then considered as stale when
    read back. Nothing is scanned and no envelope is touched.

    Store failures never raise from here: they are logged and returned in
    `StoreResult.error` (or as a read-only flag).

    """

    adapter: StorePort
    """The backing store."""

    tags_lifetime: Optional[int] = None
    """Lifetime (in seconds) of tag tokens (None: no expiration).

    An expired token is handled as a cleared tag.

    """

    def fetch_or_create_versions(
        self, tag_names: Iterable[str], ttl: Optional[int] = None
    ) -> Tuple[Dict[str, str], bool, Optional[StoreCacheException]]:
        """Return `(tokens, read_only, error)` for the given tag names.

        Missing tokens are created (and persisted). If `ttl` is given, a unique
        synthetic tag is added and its token is persisted with this ttl: when
        it expires, every value depending on it becomes stale.

        If the store can't be read, nothing is written, the read-only flag is
        set and fresh in-memory tokens are returned (with the store error).
        A failed write also sets the read-only flag.

        """
        names: List[str] = list(dict.fromkeys(tag_names))
        read_only = False
        error: Optional[StoreCacheException] = None
        current: Dict[str, str] = {}
        if names:
            try:
                fetched = self.adapter.get_multiple(names)
            except StoreCacheException as e:
                LOGGER.warning(
                    "can't read tag versions => read-only mode", exc_info=True
                )
                read_only = True
                error = e
            else:
                current = {n: fetched[n] for n in names if fetched.get(n) is not None}
        missing = {n: get_random_token() for n in names if n not in current}
        ttl_tag_name: Optional[str] = None
        ttl_token = ""
        if ttl is not None:
            ttl_tag_name = make_ttl_tag_name(ttl)
            ttl_token = get_random_token()
        if not read_only:
            try:
                if missing:
                    self.adapter.set_multiple(missing, self.tags_lifetime)
                if ttl_tag_name is not None:
                    self.adapter.set(ttl_tag_name, ttl_token, ttl)
            except StoreCacheException as e:
                LOGGER.warning(
                    "can't write tag versions => read-only mode", exc_info=True
                )
                read_only = True
                error = e
        versions: Dict[str, str] = {}
        if ttl_tag_name is not None:
            versions[ttl_tag_name] = ttl_token
        for name in names:
            versions[name] = current[name] if name in current else missing[name]
        return versions, read_only, error

    def get(self, key: str, retired: Iterable[str] = ()) -> StoreResult[Optional[Envelope]]:
        """Read the envelope stored under the given (hashed) key.

        The envelope is returned only if its tokens are still valid (retired
        tags being ignored).

        """
        try:
            envelope = self.adapter.get(key)
        except StoreCacheException as e:
            LOGGER.warning("can't read key %s from the store", key, exc_info=True)
            return StoreResult(None, e)
        if not isinstance(envelope, Envelope):
            return StoreResult(None)
        tags = filter_retired(envelope.tags, retired)
        current: Dict[str, Any] = {}
        if tags:
            # must be read after the value itself
            try:
                current = self.adapter.get_multiple(list(tags))
            except StoreCacheException as e:
                LOGGER.warning(
                    "can't read tag versions for key %s", key, exc_info=True
                )
                return StoreResult(None, e)
        if tags_are_valid(tags, current):
            return StoreResult(Envelope(envelope.value, tags))
        return StoreResult(None)

    def get_multiple(
        self, keys: Iterable[str], retired: Iterable[str] = ()
    ) -> StoreResult[Dict[str, Envelope]]:
        """Read several envelopes and return only the valid ones.

        There are exactly two round trips: one for the values, one for the
        union of all the tags referenced by them.

        """
        keys = list(keys)
        if not keys:
            return StoreResult({})
        try:
            fetched = self.adapter.get_multiple(keys)
        except StoreCacheException as e:
            LOGGER.warning("can't read keys from the store", exc_info=True)
            return StoreResult({}, e)
        envelopes: Dict[str, Envelope] = {}
        for key in keys:
            envelope = fetched.get(key)
            if isinstance(envelope, Envelope):
                envelopes[key] = Envelope(
                    envelope.value, filter_retired(envelope.tags, retired)
                )
        all_tags: List[str] = list(
            dict.fromkeys(t for e in envelopes.values() for t in e.tags)
        )
        current: Dict[str, Any] = {}
        if all_tags:
            try:
                current = self.adapter.get_multiple(all_tags)
            except StoreCacheException as e:
                LOGGER.warning("can't read tag versions", exc_info=True)
                return StoreResult({}, e)
        return StoreResult(
            {k: e for k, e in envelopes.items() if tags_are_valid(e.tags, current)}
        )

    def store(
        self, key: str, ttl: Optional[int], tokens: Mapping[str, str], value: Any
    ) -> StoreResult[Any]:
        """Store the value (with its tokens) under the given (hashed) key.

        Returns the stored value, with the store error if any (never raises).

        """
        envelope = Envelope(value, dict(tokens))
        try:
            self.adapter.set(key, envelope, ttl)
        except StoreCacheException as e:
            LOGGER.warning("can't store key %s => not cached", key, exc_info=True)
            return StoreResult(envelope.value, e)
        return StoreResult(envelope.value)

    def invalidate(self, *tag_names: str) -> bool:
        """Rotate the tokens of the given tag names (in one bulk write).

        Returns False if the store failed.

        """
        if not tag_names:
            return True
        tokens = {name: get_random_token() for name in tag_names}
        try:
            self.adapter.set_multiple(tokens, self.tags_lifetime)
        except StoreCacheException:
            LOGGER.warning("can't invalidate tags %s", list(tag_names), exc_info=True)
            return False
        return True
