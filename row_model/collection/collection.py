"""Collection: ordered, integer-keyed container of entities or values.

Keys stay stable when an item is removed (no reindexing); appending uses
the highest key plus one.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any

from row_model.core.exceptions import InvalidFieldAccess
from row_model.core.node import GraphNode, KeyCursor, same_value
from row_model.core.protocol import DataStore, HasParents

if TYPE_CHECKING:
    from row_model.schema.schema import Schema

_MISSING = object()


def _index(index: Any) -> int:
    if isinstance(index, bool):
        raise InvalidFieldAccess(f"Invalid index `{index}` for a collection, must be a numeric value.")
    try:
        return int(index)
    except (TypeError, ValueError):
        raise InvalidFieldAccess(
            f"Invalid index `{index}` for a collection, must be a numeric value."
        ) from None


class Collection(GraphNode, KeyCursor):
    """Ordered container with stable integer keys.

    Args:
        schema: Schema casting the items. Items are entities of the schema
            when ``base_path`` is empty, elements of the array field at
            ``base_path`` otherwise. Without a schema items are kept as is.
        data: Initial items.
        base_path: Array field whose elements this collection holds.
        exists: Whether the items come from storage.
        meta: Free-form metadata (e.g. pagination counts).
    """

    def __init__(
        self,
        schema: Schema | None = None,
        data: Iterable[Any] | None = None,
        *,
        base_path: str = "",
        exists: bool = False,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self._schema = schema
        self._base_path = base_path
        self._exists = exists
        self.meta = dict(meta or {})
        self._items: dict[int, Any] = {}
        self._original: dict[int, Any] = {}
        if data is not None:
            values = data.values() if isinstance(data, (Collection, dict)) else data
            for value in values:
                self._set(None, value, exists=exists)
        self._original = dict(self._items)

    @property
    def schema(self) -> Schema | None:
        return self._schema

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def exists(self) -> bool:
        return self._exists

    # --- Access ---

    def get(self, index: Any = None) -> Any:
        """Return the item at ``index``; a dotted index reads inside the item.

        Called without an index, returns a shallow copy of the items.

        Raises:
            InvalidFieldAccess: If ``index`` is not numeric or missing.
        """
        if index is None:
            return dict(self._items)
        head, sep, rest = str(index).partition(".")
        key = _index(head)
        if key not in self._items:
            raise InvalidFieldAccess(f"Missing index `{key}` for collection.")
        value = self._items[key]
        if not sep:
            return value
        if not isinstance(value, DataStore):
            raise InvalidFieldAccess(f"The item at `{key}` is not a valid document or entity.")
        return value.get(rest)

    def set(self, index: Any, value: Any = None) -> Collection:
        """Write ``value`` at ``index`` (``None`` appends)."""
        if index is not None:
            head, sep, rest = str(index).partition(".")
            if sep:
                item = self.get(head)
                if not isinstance(item, DataStore):
                    raise InvalidFieldAccess(f"The item at `{head}` is not a valid document or entity.")
                item.set(rest, value)
                return self
        self._set(index, value, exists=False)
        return self

    def _set(self, index: Any, value: Any, *, exists: bool) -> None:
        if self._schema is not None:
            value = self._schema.cast(
                None, value, base_path=self._base_path, parent=self, exists=exists
            )
        key = self._next_key() if index is None else _index(index)
        self._write(key, value)

    def _next_key(self) -> int:
        return max(self._items) + 1 if self._items else 0

    def _write(self, key: int, value: Any) -> bool:
        # item write and parent bookkeeping happen together
        previous = self._items.get(key, _MISSING)
        if previous is not _MISSING and same_value(previous, value):
            return False
        self._items[key] = value
        if isinstance(previous, HasParents):
            previous.unset_parent(self)
        if isinstance(value, HasParents):
            value.set_parent(self, key)
        return True

    def append(self, value: Any) -> Collection:
        return self.set(None, value)

    def has(self, index: Any) -> bool:
        head, sep, rest = str(index).partition(".")
        try:
            key = _index(head)
        except InvalidFieldAccess:
            return False
        if key not in self._items:
            return False
        if not sep:
            return True
        value = self._items[key]
        return isinstance(value, DataStore) and value.has(rest)

    def unset(self, index: Any) -> Collection:
        head, sep, rest = str(index).partition(".")
        key = _index(head)
        if key not in self._items:
            return self
        if sep:
            value = self._items[key]
            if isinstance(value, DataStore):
                value.unset(rest)
            return self
        value = self._items.pop(key)
        if isinstance(value, HasParents):
            value.unset_parent(self)
        return self

    def clear(self) -> Collection:
        for key in list(self._items):
            self.unset(key)
        return self

    def keys(self) -> list[int]:
        return list(self._items)

    def values(self) -> list[Any]:
        return list(self._items.values())

    def items(self) -> list[tuple[int, Any]]:
        return list(self._items.items())

    def __getitem__(self, index: Any) -> Any:
        return self.get(index)

    def __setitem__(self, index: Any, value: Any) -> None:
        self.set(index, value)

    def __delitem__(self, index: Any) -> None:
        self.unset(index)

    def __contains__(self, value: Any) -> bool:
        return any(item is value or same_value(item, value) for item in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        for key in self._snapshot_keys():
            yield self._items[key]

    def _cursor_store(self) -> dict[Any, Any]:
        return self._items

    # --- Functional helpers ---

    def _derive(self, items: Iterable[tuple[int, Any]], preserve_keys: bool = True) -> Collection:
        result = Collection(schema=self._schema, base_path=self._base_path, exists=self._exists)
        for key, value in items:
            result.set(key if preserve_keys else None, value)
        result._original = dict(result._items)
        return result

    def each(self, callback: Callable[[Any, int], Any]) -> Collection:
        """Replace every item by ``callback(item, key)``."""
        for key, value in self.items():
            self.set(key, callback(value, key))
        return self

    def map(self, callback: Callable[[Any], Any]) -> Collection:
        """Collection of ``callback(item)`` under the same keys, without schema."""
        result = Collection()
        for key, value in self.items():
            result.set(key, callback(value))
        return result

    def filter(self, callback: Callable[[Any], bool]) -> Collection:
        """Items accepted by ``callback``, keys preserved."""
        return self._derive((key, value) for key, value in self.items() if callback(value))

    def find(self, callback: Callable[[Any], bool]) -> Any:
        """First item accepted by ``callback``, or ``None``."""
        return next((value for value in self.values() if callback(value)), None)

    def reduce(self, callback: Callable[[Any, Any], Any], initial: Any = None) -> Any:
        return functools.reduce(callback, self.values(), initial)

    def slice(self, offset: int, length: int | None = None, preserve_keys: bool = True) -> Collection:
        items = self.items()
        end = None if length is None else offset + length
        return self._derive(items[offset:end], preserve_keys)

    def sort(self, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> Collection:
        """Items ordered by ``key``, keys preserved.

        Raises:
            TypeError: If ``key`` is given but not callable.
        """
        if key is not None and not callable(key):
            raise TypeError(f"The sort key must be callable, got {type(key).__name__}.")
        ordered = sorted(
            self.items(),
            key=(lambda pair: key(pair[1])) if key is not None else (lambda pair: pair[1]),
            reverse=reverse,
        )
        return self._derive(ordered)

    def merge(self, other: Iterable[Any], preserve_keys: bool = False) -> Collection:
        """Add the items of ``other`` in place.

        Without key preservation items are appended under fresh keys; with
        it conflicting keys are overwritten.
        """
        if isinstance(other, Collection):
            pairs = other.items()
        elif isinstance(other, dict):
            pairs = list(other.items())
        else:
            pairs = list(enumerate(other))
        for key, value in pairs:
            self.set(key if preserve_keys else None, value)
        return self

    def index_by(self, field: str, by_value: bool = False) -> dict[Any, Any]:
        """Map each item's ``field`` value to its key (or to the item)."""
        result: dict[Any, Any] = {}
        for key, value in self.items():
            result[value.get(field)] = value if by_value else key
        return result

    def index_of_id(self, id: Any) -> int | None:  # noqa: A002
        for key, value in self.items():
            if value.id() == id:
                return key
        return None

    def invoke(self, method: str, *args: Any, **kwargs: Any) -> Collection:
        """Call ``method`` on every item, collecting the results by key."""
        result = Collection()
        for key, value in self.items():
            result.set(key, getattr(value, method)(*args, **kwargs))
        return result

    # --- Dirty state ---

    def modified(self, *, embed: Any = False) -> bool:
        if list(self._items) != list(self._original):
            return True
        for key, value in self._items.items():
            if not same_value(self._original[key], value):
                return True
            if isinstance(value, HasParents) and value.modified(embed=embed):
                return True
        return False

    def original(self) -> dict[int, Any]:
        return dict(self._original)

    def amend(self, data: Any = None, *, exists: Any = None) -> Collection:
        if exists is not None:
            self._exists = True if exists == "all" else bool(exists)
        if data is not None:
            self.merge(data)
        self._original = dict(self._items)
        for value in self._items.values():
            if isinstance(value, HasParents):
                value.amend(exists=exists)
        return self

    def restore(self) -> Collection:
        for key in list(self._items):
            if key not in self._original:
                self.unset(key)
        for key, value in self._original.items():
            self._write(key, value)
            if isinstance(value, HasParents):
                value.restore()
        self._items = dict(sorted(self._items.items()))
        return self

    # --- Graph ---

    def hierarchy(
        self, prefix: str = "", seen: set[int] | None = None, indexed: bool = False
    ) -> Any:
        seen = set() if seen is None else seen
        result: dict[str, bool] = {}
        for value in self._items.values():
            if isinstance(value, HasParents):
                children = value.hierarchy(prefix, seen, indexed=True)
                if children:
                    result.update(children)
        return result if indexed else list(result)

    def to(self, fmt: str = "array", **options: Any) -> list[Any]:
        result = []
        for value in self._items.values():
            if isinstance(value, DataStore):
                result.append(value.to(fmt, **options))
            elif self._schema is not None and self._base_path:
                result.append(self._schema.format(fmt, self._base_path, value))
            else:
                result.append(value)
        return result

    # --- Validation ---

    def validates(self, *, embed: Any = False) -> bool:
        valid = True
        for value in self._items.values():
            if isinstance(value, HasParents) and not value.validates(embed=embed):
                valid = False
        return valid

    def errors(self, *, embed: Any = False) -> dict[int, Any]:
        result: dict[int, Any] = {}
        for key, value in self._items.items():
            if isinstance(value, HasParents):
                errors = value.errors(embed=embed)
                if errors:
                    result[key] = errors
        return result

    def __repr__(self) -> str:
        schema = self._schema.name if self._schema is not None else None
        return f"<Collection {schema} count={len(self._items)}>"
