"""Graph node protocols.

Anything stored in a document field that satisfies ``HasParents`` gets
parent bookkeeping; anything that satisfies ``DataStore`` can be traversed
by dotted paths and exported.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from row_model.core.map import Map


@runtime_checkable
class HasParents(Protocol):
    """A node that tracks the containers it is attached to."""

    handle: int

    def parents(self) -> Map:
        """Map of parent node -> field name (or index) at that parent."""
        ...

    def set_parent(self, parent: Any, field: Any) -> Any:
        ...

    def unset_parent(self, parent: Any) -> Any:
        ...

    def disconnect(self) -> Any:
        """Detach from every parent without touching own data."""
        ...


@runtime_checkable
class DataStore(Protocol):
    """A node whose values can be read and written by path."""

    def get(self, name: Any = None) -> Any:
        ...

    def set(self, name: Any, value: Any = None) -> Any:
        ...

    def has(self, name: Any) -> bool:
        ...

    def unset(self, name: Any) -> Any:
        ...

    def to(self, fmt: str = "array", **options: Any) -> Any:
        ...
