"""Shared behaviour of graph nodes.

``GraphNode`` gives documents, collections and through views a stable
handle and a weak parent map. ``KeyCursor`` implements the explicit
``rewind/key/current/next/prev/end/valid`` cursor over a snapshot of keys
taken at rewind, so removing entries while iterating neither skips nor
repeats the remaining ones.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from row_model.core.map import Map, next_handle


class GraphNode:
    """Stable handle plus weak references to the containers holding a node."""

    def __init__(self) -> None:
        self.handle = next_handle()
        self._parents = Map()

    def parents(self) -> Map:
        return self._parents

    def set_parent(self, parent: Any, field: Any) -> GraphNode:
        self._parents.set(parent, field)
        return self

    def unset_parent(self, parent: Any) -> GraphNode:
        self._parents.remove(parent)
        return self

    def disconnect(self) -> GraphNode:
        """Remove this node from every parent it is attached to."""
        for parent, field in self._parents.items():
            parent.unset(field)
        self._parents.clear()
        return self


class KeyCursor:
    """Snapshot cursor mixin.

    Subclasses provide ``_cursor_store()`` (the live key -> value mapping)
    and may override ``_cursor_value(key)``.
    """

    _cursor_keys: list[Any] | None = None
    _cursor_pos: int = 0

    def _cursor_store(self) -> dict[Any, Any]:
        raise NotImplementedError

    def _cursor_value(self, key: Any) -> Any:
        return self._cursor_store()[key]

    def _snapshot_keys(self) -> Iterator[Any]:
        # keys removed after the snapshot are skipped, never revisited
        store = self._cursor_store()
        for key in list(store):
            if key in store:
                yield key

    def _settle(self, step: int) -> None:
        keys = self._cursor_keys or []
        store = self._cursor_store()
        while 0 <= self._cursor_pos < len(keys) and keys[self._cursor_pos] not in store:
            self._cursor_pos += step

    def _ensure_cursor(self) -> None:
        if self._cursor_keys is None:
            self.rewind()

    def rewind(self) -> Any:
        self._cursor_keys = list(self._cursor_store())
        self._cursor_pos = 0
        self._settle(1)
        return self.current()

    def end(self) -> Any:
        self._cursor_keys = list(self._cursor_store())
        self._cursor_pos = len(self._cursor_keys) - 1
        self._settle(-1)
        return self.current()

    def valid(self) -> bool:
        self._ensure_cursor()
        keys = self._cursor_keys or []
        return 0 <= self._cursor_pos < len(keys) and keys[self._cursor_pos] in self._cursor_store()

    def key(self) -> Any:
        if not self.valid():
            return None
        return (self._cursor_keys or [])[self._cursor_pos]

    def current(self) -> Any:
        if not self.valid():
            return None
        return self._cursor_value(self.key())

    def next(self) -> Any:
        self._ensure_cursor()
        self._cursor_pos += 1
        self._settle(1)
        return self.current()

    def prev(self) -> Any:
        self._ensure_cursor()
        self._cursor_pos -= 1
        self._settle(-1)
        return self.current()


def same_value(previous: Any, value: Any) -> bool:
    """Identity for graph nodes, strict (type and value) equality for scalars."""
    if previous is value:
        return True
    if isinstance(previous, GraphNode) or isinstance(value, GraphNode):
        return False
    return type(previous) is type(value) and previous == value
