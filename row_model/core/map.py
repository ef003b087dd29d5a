"""Identity maps.

``Map`` tracks graph nodes (documents, collections, through views) by their
integer handle and holds only weak references to them, so a child never
keeps its parents alive. ``Collector`` deduplicates materialized entities
by scalar key.
"""

from __future__ import annotations

import itertools
import weakref
from collections.abc import Hashable, Iterator
from typing import Any

from row_model.core.exceptions import UnknownKeyError

_handles = itertools.count(1)


def next_handle() -> int:
    """Return a fresh process-wide node handle."""
    return next(_handles)


class Map:
    """Handle-keyed map from live graph nodes to values."""

    def __init__(self) -> None:
        self._data: dict[int, tuple[weakref.ref[Any], Any]] = {}

    def _purge(self, handle: int) -> None:
        self._data.pop(handle, None)

    def set(self, instance: Any, value: Any) -> Map:
        handle = instance.handle
        ref = weakref.ref(instance, lambda _ref, h=handle: self._purge(h))
        self._data[handle] = (ref, value)
        return self

    def get(self, instance: Any) -> Any:
        entry = self._data.get(instance.handle)
        if entry is None or entry[0]() is None:
            raise UnknownKeyError(instance)
        return entry[1]

    def has(self, instance: Any) -> bool:
        entry = self._data.get(instance.handle)
        return entry is not None and entry[0]() is not None

    def remove(self, instance: Any) -> Map:
        self._data.pop(instance.handle, None)
        return self

    def keys(self) -> list[Any]:
        """Return the live instances in insertion order."""
        return [node for node, _ in self.items()]

    def values(self) -> list[Any]:
        return [value for _, value in self.items()]

    def items(self) -> list[tuple[Any, Any]]:
        result = []
        for ref, value in list(self._data.values()):
            node = ref()
            if node is not None:
                result.append((node, value))
        return result

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, instance: Any) -> bool:
        return self.has(instance)

    def __len__(self) -> int:
        return len(self.items())

    def __iter__(self) -> Iterator[Any]:
        return iter(self.keys())


class Collector:
    """Scalar-keyed identity map used to deduplicate materialized entities."""

    def __init__(self) -> None:
        self._data: dict[Hashable, Any] = {}

    def set(self, key: Hashable, value: Any) -> Collector:
        self._data[key] = value
        return self

    def get(self, key: Hashable) -> Any:
        try:
            return self._data[key]
        except KeyError:
            raise UnknownKeyError(key) from None

    def has(self, key: Hashable) -> bool:
        return key in self._data

    def remove(self, key: Hashable) -> Collector:
        self._data.pop(key, None)
        return self

    def keys(self) -> list[Hashable]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
