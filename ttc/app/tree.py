from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Union

from ttc.app.types import Envelope, KnownMiss

LocalEntry = Union[Envelope, KnownMiss]


@dataclass
class TagNode:
    """One nesting level of `remember()`/`wrap()` calls."""

    index: int
    """Index of the node in the tree arena."""

    parent: Optional[int] = None
    """Index of the parent node (None for the root)."""

    tokens: Dict[str, str] = field(default_factory=dict)
    """Own tag tokens: hashed tag name => token."""

    heritable: List[str] = field(default_factory=list)
    """Hashed tag names whose tokens are copied onto every child."""

    retired: List[str] = field(default_factory=list)
    """Hashed tag names whose staleness is ignored in this scope (and below)."""

    local_cache: Dict[str, LocalEntry] = field(default_factory=dict)
    """Values preloaded by `load()`: hashed key => envelope (or known miss)."""

    children: List[int] = field(default_factory=list)
    """Indexes of the (popped) children whose tokens are merged into this node."""


@dataclass
class CallTree:
    """Per-request tree of tag tokens.

    Nodes live in an arena (a list) and reference their parent by index, so
    there is no reference cycle and dropping the tree drops everything.

    Note: not thread-safe, a tree belongs to a single request (context).

    """

    nodes: List[TagNode] = field(default_factory=list)
    active: int = 0
    """Index of the active node."""

    def __post_init__(self):
        if not self.nodes:
            self.nodes.append(TagNode(index=0))

    @property
    def root(self) -> TagNode:
        return self.nodes[0]

    @property
    def current(self) -> TagNode:
        return self.nodes[self.active]

    def push_child(
        self,
        tokens: Mapping[str, str],
        heritable_names: Iterable[str] = (),
        retired_names: Iterable[str] = (),
    ) -> TagNode:
        """Create a child of the active node and make it the active node.

        Tokens of the heritable tags known by the parent are copied onto the
        child even if the child never named them.

        """
        parent = self.current
        child = TagNode(
            index=len(self.nodes),
            parent=parent.index,
            tokens=dict(tokens),
            heritable=list(parent.heritable),
            retired=list(parent.retired),
        )
        for tag_name in parent.heritable:
            if tag_name in parent.tokens:
                child.tokens[tag_name] = parent.tokens[tag_name]
        for tag_name in heritable_names:
            if tag_name not in child.heritable:
                child.heritable.append(tag_name)
        for tag_name in retired_names:
            if tag_name not in child.retired:
                child.retired.append(tag_name)
        self.nodes.append(child)
        self.active = child.index
        return child

    def pop_child(self, merge: bool = True) -> TagNode:
        """Go back to the parent of the active node.

        If `merge` is True, all the tokens of the popped node (and of its
        descendants) are merged into the parent.

        """
        node = self.current
        if node.parent is None:
            raise RuntimeError("can't pop the root node")
        if merge:
            self.nodes[node.parent].children.append(node.index)
        self.active = node.parent
        return node

    def attach(self, tokens: Mapping[str, str]) -> TagNode:
        """Merge the given tokens into the active node (as a popped child)."""
        self.push_child(tokens)
        return self.pop_child()

    def rewind(self, index: int) -> None:
        """Restore the active node to `index`, discarding what was pushed since."""
        if not 0 <= index < len(self.nodes):
            raise IndexError(f"unknown node: {index}")
        self.active = index

    def aggregate_tokens(self, index: Optional[int] = None) -> Dict[str, str]:
        """Union of the tokens of a node (default: the active one) and its descendants."""
        node = self.nodes[self.active if index is None else index]
        tokens = dict(node.tokens)
        for child_index in node.children:
            tokens.update(self.aggregate_tokens(child_index))
        return tokens

    def local_lookup(self, key: str) -> Optional[LocalEntry]:
        """Search the local caches of the active node and of its ancestors."""
        index: Optional[int] = self.active
        while index is not None:
            node = self.nodes[index]
            if key in node.local_cache:
                return node.local_cache[key]
            index = node.parent
        return None

    def local_insert_all(self, entries: Mapping[str, LocalEntry]) -> None:
        self.current.local_cache.update(entries)

    def local_replace(self, key: str, entry: LocalEntry) -> None:
        """Replace a local cache entry in the node holding it (default: the active one)."""
        index: Optional[int] = self.active
        while index is not None:
            node = self.nodes[index]
            if key in node.local_cache:
                node.local_cache[key] = entry
                return
            index = node.parent
        self.current.local_cache[key] = entry

    def retired_names(self) -> List[str]:
        return list(self.current.retired)
