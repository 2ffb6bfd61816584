"""Generic trace tree and the builder that infers it from (parent id, id) pairs.

Several consumers need to walk a trace as a tree: clock skew correction looks at
network boundaries, dependency linking counts calls between services. Most of
them do not need full spans, so the tree is generic over its value.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterator, List, NamedTuple, Optional, Tuple, TypeVar

from trace_tree.diagnostics import DiagnosticSink, emit, null_sink

V = TypeVar("V")

MergeFunction = Callable[[Optional[V], Optional[V]], V]


def first_not_null(existing, update):
    """Default merge function: keep ``existing`` unless it is None."""
    return existing if existing is not None else update


class Node(Generic[V]):
    """A node in a trace tree.

    ``value`` is None only for a synthetic root, substituted when the input had
    no root span.
    """

    __slots__ = ("_value", "_parent", "_children")

    def __init__(self, value: Optional[V] = None) -> None:
        self._value = value
        self._parent: Optional[Node[V]] = None
        self._children: List[Node[V]] = []

    @property
    def value(self) -> Optional[V]:
        return self._value

    @property
    def parent(self) -> Optional[Node[V]]:
        """The parent node, or None for the root."""
        return self._parent

    @property
    def children(self) -> Tuple[Node[V], ...]:
        return tuple(self._children)

    def set_value(self, value: V) -> Node[V]:
        """Replace the value. Transformations such as clock skew adjust nodes in place."""
        if value is None:
            raise ValueError("value is None")
        self._value = value
        return self

    def add_child(self, child: Node[V]) -> Node[V]:
        # Only direct self-reference is checked: callers key nodes by id, so
        # longer cycles cannot be formed through the builder.
        if child is self:
            raise ValueError(f"circular dependency on {self!r}")
        child._parent = self
        self._children.append(child)
        return self

    def traverse(self) -> Iterator[Node[V]]:
        """Yield this node and its descendants, breadth-first.

        Children are read when their parent is visited, so mutating the tree
        while iterating gives an undefined order.
        """
        queue: deque[Node[V]] = deque([self])
        while queue:
            node = queue.popleft()
            queue.extend(node._children)
            yield node

    def __repr__(self) -> str:
        return f"Node(value={self._value!r}, children={len(self._children)})"


class Key(NamedTuple):
    """Tree position. An id may occur twice: once plain and once shared (RPC server side)."""

    id: str
    shared: bool


@dataclass(frozen=True)
class Entry(Generic[V]):
    parent_id: Optional[str]
    id: str
    shared: bool
    value: V

    def __post_init__(self) -> None:
        if self.id is None:
            raise ValueError("id is None")
        if self.value is None:
            raise ValueError("value is None")


class TreeBuilder(Generic[V]):
    """Builds a tree from calls to :meth:`add_node`.

    This is a parent/child graph specialised for Zipkin: a client and server can
    share the same span ID in an RPC, so a ``shared`` node is treated as a child
    of the plain node with the same ID. Missing, duplicate and headless parents
    are repaired rather than reported as errors.
    """

    def __init__(
        self,
        trace_id: Optional[str],
        merge_function: MergeFunction = first_not_null,
        sink: DiagnosticSink = null_sink,
    ) -> None:
        self.trace_id = trace_id
        self.merge_function = merge_function
        self.sink = sink
        self.root_key: Optional[Key] = None
        self.root_node: Optional[Node[V]] = None
        self.entries: List[Entry[V]] = []
        self.key_to_node: Dict[Key, Node[V]] = {}
        # every registered key, so edges can be materialised for all of them
        self.key_to_parent: Dict[Key, Optional[Key]] = {}

    def add_node(
        self,
        parent_id: Optional[str],
        id: str,
        shared: Optional[bool],
        value: V,
    ) -> bool:
        """Register a value at ``id``.

        Returns False, after logging at DEBUG, if the entry references itself
        as its parent.
        """
        is_shared = shared is True
        if parent_id is not None and parent_id == id:
            emit(
                self.sink,
                logging.DEBUG,
                f"skipping circular dependency: traceId={self.trace_id}, spanId={id}",
                self.trace_id,
                id,
            )
            return False

        entry = Entry(parent_id, id, is_shared, value)
        id_key = Key(id, is_shared)
        if is_shared:
            parent_key: Optional[Key] = Key(id, False)
        elif parent_id is not None:
            parent_key = Key(parent_id, False)
        else:
            parent_key = None
        self.key_to_parent[id_key] = parent_key

        self.entries.append(entry)
        return True

    def _process(self, entry: Entry[V]) -> None:
        key = Key(entry.id, entry.shared)

        parent_key: Optional[Key] = None
        if key.shared:
            parent_key = Key(entry.id, False)
        elif entry.parent_id is not None:
            # prefer a shared parent: this entry is then a child of the RPC server side
            parent_key = Key(entry.parent_id, True)
            if parent_key in self.key_to_parent:
                self.key_to_parent[key] = parent_key
            else:
                parent_key = Key(entry.parent_id, False)

        node: Node[V] = Node(entry.value)
        if parent_key is None:
            # the first root is assumed to be the real one
            if self.root_node is None:
                self.root_node = node
                self.root_key = key
                self.key_to_parent.pop(key, None)
                return
            if key == self.root_key:
                self.root_node.set_value(
                    self.merge_function(self.root_node.value, node.value)
                )
                return
            emit(
                self.sink,
                logging.DEBUG,
                "attributing span missing parent to root: "
                f"traceId={self.trace_id}, rootSpanId={self.root_key.id}, spanId={key.id}",
                self.trace_id,
                key.id,
            )

        previous = self.key_to_node.get(key)
        self.key_to_node[key] = node
        if previous is not None:
            node.set_value(self.merge_function(previous.value, node.value))

    def build(self) -> Node[V]:
        """Materialise the tree, substituting a synthetic root if none was added."""
        for entry in self.entries:
            self._process(entry)

        if self.root_node is None:
            emit(
                self.sink,
                logging.DEBUG,
                f"substituting dummy node for missing root span: traceId={self.trace_id}",
                self.trace_id,
            )
            self.root_node = Node(None)

        for key, parent_key in self.key_to_parent.items():
            if key == self.root_key:
                continue
            node = self.key_to_node[key]
            parent = self.key_to_node.get(parent_key) if parent_key is not None else None
            if parent is None:  # headless
                self.root_node.add_child(node)
            else:
                parent.add_child(node)
        return self.root_node
