from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Union

from ttc.app.hash import shard_index


@dataclass(frozen=True)
class PlainTag:
    """An arbitrary invalidation label."""

    name: str
    is_heritable: bool = field(default=False, init=False)
    is_retired: bool = field(default=False, init=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class HeritableTag:
    """A tag that travels to every descendant cache scope.

    Every value cached below the scope which declared it (even values which
    never named it) depends on it, so clearing it clears the whole branch.

    """

    tag: Union[str, "PlainTag"]
    name: str = field(init=False)
    is_heritable: bool = field(default=True, init=False)
    is_retired: bool = field(default=False, init=False)

    def __post_init__(self):
        object.__setattr__(self, "name", str(self.tag))

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ShardingTag:
    """A heritable tag mapping `sharding_value` onto one of `shards` partitions.

    `ShardingTag("shard", "user:123", 20)` is named `shard-<n>` with
    `0 <= n < 20`. Clearing `shard-<n>` invalidates a slice of the cache
    without busting all of it at once.

    """

    prefix: str
    sharding_value: str
    shards: int
    name: str = field(init=False)
    is_heritable: bool = field(default=True, init=False)
    is_retired: bool = field(default=False, init=False)

    def __post_init__(self):
        index = shard_index(f"{self.prefix}{self.sharding_value}", self.shards)
        object.__setattr__(self, "name", f"{self.prefix}-{index}")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class RetiredTag:
    """A tag whose staleness is ignored.

    Values recorded against it stay valid even if it is cleared. If the wrapped
    tag is heritable, it is also ignored in every descendant scope.

    """

    tag: Union[str, PlainTag, HeritableTag, ShardingTag]
    name: str = field(init=False)
    is_heritable: bool = field(init=False)
    is_retired: bool = field(default=True, init=False)

    def __post_init__(self):
        object.__setattr__(self, "name", str(self.tag))
        object.__setattr__(
            self, "is_heritable", bool(getattr(self.tag, "is_heritable", False))
        )

    def __str__(self) -> str:
        return self.name


Tag = Union[PlainTag, HeritableTag, ShardingTag, RetiredTag]
TagLike = Union[str, Tag]


def as_tag(tag: TagLike) -> Tag:
    if isinstance(tag, str):
        return PlainTag(tag)
    if isinstance(tag, (PlainTag, HeritableTag, ShardingTag, RetiredTag)):
        return tag
    raise TypeError(f"unsupported tag type: {type(tag).__name__}")


def as_tags(tags: Iterable[TagLike]) -> List[Tag]:
    return [as_tag(t) for t in tags]


def tags_from_map(tag_map: Mapping[str, Any]) -> List[str]:
    """Build tags from a mapping.

    `tags_from_map({"user": 1, "product": 2})` returns `["user:1", "product:2"]`.

    """
    return [f"{k}:{v}" for k, v in tag_map.items()]


@dataclass(frozen=True)
class TaggedKey:
    """A cache key which carries its own tags.

    Its tags are added to the ones given to `remember()`.

    """

    key: str
    tags: List[TagLike] = field(default_factory=list)

    def __str__(self) -> str:
        return self.key
