"""Storage and validation collaborator protocols.

The entity graph never talks to a database directly: persistence goes
through a ``StorageAdapter`` and validation through a ``Validator``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a storage write."""

    id: Any = None
    error: str | None = None
    count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class StorageAdapter(Protocol):
    """Storage adapter protocol."""

    def insert(self, source: str, values: dict[str, Any]) -> WriteResult:
        """Insert one row; the result carries the generated id."""
        ...

    def update(
        self, source: str, values: dict[str, Any], conditions: dict[str, Any]
    ) -> WriteResult:
        """Update the rows matching ``conditions``."""
        ...

    def remove(self, source: str, conditions: dict[str, Any]) -> WriteResult:
        """Delete the rows matching ``conditions``."""
        ...

    def find(
        self,
        source: str,
        conditions: dict[str, Any],
        options: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the rows matching ``conditions``; list values mean ``IN``."""
        ...

    def last_insert_id(self) -> Any:
        ...

    def formatters(self) -> dict[str, dict[str, Callable[[Any, Any], Any]]]:
        """Formatter table ``{mode: {type: fn}}`` merged into schemas."""
        ...


@runtime_checkable
class Validator(Protocol):
    """Validation rule engine protocol."""

    def validate(self, data: dict[str, Any], options: dict[str, Any] | None = None) -> bool:
        ...

    def errors(self) -> dict[str, list[str]]:
        ...
