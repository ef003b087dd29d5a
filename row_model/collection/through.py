"""Through: collection view of a hasManyThrough relation.

The view stores nothing itself. Item ``i`` is ``pivot[i][using]`` where
``pivot`` is the parent's ``through`` collection; writing a new index
appends a pivot entity holding the value.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any

from row_model.collection.collection import Collection
from row_model.core.exceptions import MissingThroughDefinition
from row_model.core.node import GraphNode, KeyCursor
from row_model.relationship import operations

if TYPE_CHECKING:
    from row_model.schema.schema import Schema


class Through(GraphNode, KeyCursor):
    """Projection of a pivot collection onto its ``using`` field.

    Args:
        parent: Entity owning the pivot relation.
        schema: Schema of the projected entities.
        through: Name of the pivot relation on ``parent``.
        using: Name of the relation on each pivot entity holding the target.
        data: Items replacing the current pivot content.
        exists: Whether ``data`` comes from storage. Projected entities are
            then cast as persisted and the rebuilt pivot is not modified.

    Raises:
        MissingThroughDefinition: If any of the four parts is missing.
    """

    def __init__(
        self,
        parent: Any,
        schema: Schema,
        through: str,
        using: str,
        data: Iterable[Any] | None = None,
        *,
        exists: bool = False,
    ) -> None:
        for option, value in (("parent", parent), ("schema", schema)):
            if value is None:
                raise MissingThroughDefinition(through or "", option)
        for option, value in (("through", through), ("using", using)):
            if not value:
                raise MissingThroughDefinition(through or "", option)
        super().__init__()
        self._parent = parent
        self._schema = schema
        self._through = through
        self._using = using

        if data is not None:
            values = data.values() if isinstance(data, (Collection, Through)) else data
            relation = parent.schema.relation(through)
            pivot = Collection(schema=operations.target(relation), exists=exists)
            for value in values:
                pivot.append(self._item(value, exists=exists))
            if exists:
                pivot.amend()
                parent.attach(through, pivot)
            else:
                parent.set(through, pivot)
        self._original = self.values()

    @property
    def parent(self) -> Any:
        return self._parent

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def base_path(self) -> str:
        return ""

    @property
    def through(self) -> str:
        return self._through

    @property
    def using(self) -> str:
        return self._using

    def pivot(self) -> Collection:
        return self._parent.get(self._through)

    @property
    def exists(self) -> bool:
        return self.pivot().exists

    @property
    def meta(self) -> dict[str, Any]:
        return self.pivot().meta

    # --- Access ---

    def get(self, index: Any = None) -> Any:
        if index is None:
            return {key: item.get(self._using) for key, item in self.pivot().items()}
        head, sep, rest = str(index).partition(".")
        value = self.pivot().get(head).get(self._using)
        if not sep:
            return value
        return value.get(rest)

    def set(self, index: Any, value: Any = None) -> Through:
        """Write ``value`` at ``index`` (``None`` appends a pivot entity)."""
        pivot = self.pivot()
        if index is not None:
            head, sep, rest = str(index).partition(".")
            if sep:
                self.get(head).set(rest, value)
                return self
            if pivot.has(head):
                pivot.get(head).set(self._using, value)
                return self

        pivot.set(index, self._item(value))
        return self

    def _item(self, value: Any, *, exists: bool = False) -> Any:
        """New pivot entity holding ``value``, keyed to the parent when it is persisted."""
        relation = self._parent.schema.relation(self._through)
        conditions: dict[str, Any] = {}
        if self._parent.exists and operations.has_source(relation, self._parent):
            conditions = operations.match(relation, self._parent)
        item = operations.target(relation).cast(None, conditions)
        if exists:
            value = self._schema.cast(None, value, exists=True)
        item.set(self._using, value)
        return item

    def append(self, value: Any) -> Through:
        return self.set(None, value)

    def has(self, index: Any) -> bool:
        head, sep, rest = str(index).partition(".")
        if not self.pivot().has(head):
            return False
        if not sep:
            return True
        value = self.get(head)
        return value is not None and value.has(rest)

    def unset(self, index: Any) -> Through:
        self.pivot().unset(index)
        return self

    def clear(self) -> Through:
        self.pivot().clear()
        return self

    def keys(self) -> list[int]:
        return self.pivot().keys()

    def values(self) -> list[Any]:
        return [item.get(self._using) for item in self.pivot().values()]

    def items(self) -> list[tuple[int, Any]]:
        return [(key, item.get(self._using)) for key, item in self.pivot().items()]

    def __getitem__(self, index: Any) -> Any:
        return self.get(index)

    def __setitem__(self, index: Any, value: Any) -> None:
        self.set(index, value)

    def __delitem__(self, index: Any) -> None:
        self.unset(index)

    def __contains__(self, value: Any) -> bool:
        return any(item is value for item in self.values())

    def __len__(self) -> int:
        return len(self.pivot())

    def __iter__(self) -> Iterator[Any]:
        for key in self._snapshot_keys():
            yield self._cursor_value(key)

    def _cursor_store(self) -> dict[Any, Any]:
        return self.pivot()._items

    def _cursor_value(self, key: Any) -> Any:
        return self.pivot().get(key).get(self._using)

    # --- Functional helpers ---

    def _collection(self, items: Iterable[tuple[int, Any]]) -> Collection:
        result = Collection(schema=self._schema)
        for key, value in items:
            result.set(key, value)
        return result

    def each(self, callback: Callable[[Any, int], Any]) -> Through:
        for key, value in self.items():
            self.set(key, callback(value, key))
        return self

    def map(self, callback: Callable[[Any], Any]) -> Collection:
        result = Collection()
        for key, value in self.items():
            result.set(key, callback(value))
        return result

    def filter(self, callback: Callable[[Any], bool]) -> Collection:
        return self._collection((key, value) for key, value in self.items() if callback(value))

    def find(self, callback: Callable[[Any], bool]) -> Any:
        return next((value for value in self.values() if callback(value)), None)

    def reduce(self, callback: Callable[[Any, Any], Any], initial: Any = None) -> Any:
        return functools.reduce(callback, self.values(), initial)

    def slice(self, offset: int, length: int | None = None) -> Collection:
        end = None if length is None else offset + length
        return self._collection(self.items()[offset:end])

    def merge(self, other: Iterable[Any], preserve_keys: bool = False) -> Through:
        if isinstance(other, (Collection, Through)):
            pairs = other.items()
        else:
            pairs = list(enumerate(other))
        for key, value in pairs:
            self.set(key if preserve_keys else None, value)
        return self

    # --- Dirty state ---

    def modified(self, *, embed: Any = False) -> bool:
        """Positional comparison of the projected items with the last snapshot."""
        current = self.values()
        if len(current) != len(self._original):
            return True
        return any(a is not b for a, b in zip(current, self._original))

    def original(self) -> list[Any]:
        return list(self._original)

    def amend(self, data: Any = None, *, exists: Any = None) -> Through:
        if data is not None:
            self.merge(data)
        self.pivot().amend(exists=exists)
        self._original = self.values()
        return self

    def restore(self) -> Through:
        self.pivot().restore()
        return self

    # --- Graph ---

    def hierarchy(
        self, prefix: str = "", seen: set[int] | None = None, indexed: bool = False
    ) -> Any:
        seen = set() if seen is None else seen
        result: dict[str, bool] = {}
        for value in self.values():
            if value is None:
                continue
            children = value.hierarchy(prefix, seen, indexed=True)
            if children:
                result.update(children)
        return result if indexed else list(result)

    def to(self, fmt: str = "array", **options: Any) -> list[Any]:
        return [value.to(fmt, **options) for value in self.values() if value is not None]

    # --- Validation ---

    def validates(self, *, embed: Any = False) -> bool:
        valid = True
        for value in self.values():
            if value is not None and not value.validates(embed=embed):
                valid = False
        return valid

    def errors(self, *, embed: Any = False) -> dict[int, Any]:
        result: dict[int, Any] = {}
        for key, value in self.items():
            if value is None:
                continue
            errors = value.errors(embed=embed)
            if errors:
                result[key] = errors
        return result

    def __repr__(self) -> str:
        return f"<Through {self._through}.{self._using} count={len(self.pivot())}>"
