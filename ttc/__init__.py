from ttc.app.decorator import cache_decorator
from ttc.app.engine import CacheHook, Engine
from ttc.app.exc import CacheException, StoreCacheException
from ttc.app.store import StorePort
from ttc.app.tagged_store import TagVersionStore
from ttc.app.tags import (
    HeritableTag,
    PlainTag,
    RetiredTag,
    ShardingTag,
    TaggedKey,
    tags_from_map,
)
from ttc.app.types import KNOWN_MISS, BypassCache, Envelope, LoadResult, Result
from ttc.infra.adapters.store.blackhole import BlackHoleStoreAdapter
from ttc.infra.adapters.store.dict import DictStoreAdapter
from ttc.infra.adapters.store.redis import RedisStoreAdapter
from ttc.infra.controllers.lib import TagTreeCache

__all__ = [
    "BlackHoleStoreAdapter",
    "BypassCache",
    "CacheException",
    "CacheHook",
    "DictStoreAdapter",
    "Engine",
    "Envelope",
    "HeritableTag",
    "KNOWN_MISS",
    "LoadResult",
    "PlainTag",
    "RedisStoreAdapter",
    "Result",
    "RetiredTag",
    "ShardingTag",
    "StoreCacheException",
    "StorePort",
    "TagTreeCache",
    "TagVersionStore",
    "TaggedKey",
    "cache_decorator",
    "tags_from_map",
]
