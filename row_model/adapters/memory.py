"""In-memory storage adapter.

Rows live in per-source dicts keyed by primary key. Useful for tests and
for prototyping schemas without a database.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from row_model.adapters.protocol import WriteResult

logger = logging.getLogger("row_model.adapters.memory")


def _matches(row: dict[str, Any], conditions: dict[str, Any]) -> bool:
    for field, expected in conditions.items():
        value = row.get(field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


class MemoryAdapter:
    """Storage adapter keeping rows in process memory.

    Args:
        key: Primary key column of every source.
        formatters: Formatter table merged into the schemas of a registry
            built with this adapter.
    """

    def __init__(
        self,
        key: str = "id",
        formatters: dict[str, dict[str, Callable[[Any, Any], Any]]] | None = None,
    ) -> None:
        self.key = key
        self._formatters = formatters or {}
        self._tables: dict[str, dict[Any, dict[str, Any]]] = {}
        self._last_insert_id: Any = None

    def table(self, source: str) -> dict[Any, dict[str, Any]]:
        return self._tables.setdefault(source, {})

    def _next_id(self, table: dict[Any, dict[str, Any]]) -> int:
        numeric = [key for key in table if isinstance(key, int)]
        return max(numeric) + 1 if numeric else 1

    def insert(self, source: str, values: dict[str, Any]) -> WriteResult:
        table = self.table(source)
        row = copy.deepcopy(values)
        identity = row.get(self.key)
        if identity is None:
            identity = self._next_id(table)
            row[self.key] = identity
        elif identity in table:
            return WriteResult(error=f"Duplicate entry `{identity}` for key `{self.key}`.")
        table[identity] = row
        self._last_insert_id = identity
        logger.debug("Inserted %s id:%s", source, identity)
        return WriteResult(id=identity, count=1)

    def update(
        self, source: str, values: dict[str, Any], conditions: dict[str, Any]
    ) -> WriteResult:
        count = 0
        for row in self.table(source).values():
            if _matches(row, conditions):
                row.update(copy.deepcopy(values))
                count += 1
        return WriteResult(count=count)

    def remove(self, source: str, conditions: dict[str, Any]) -> WriteResult:
        table = self.table(source)
        doomed = [key for key, row in table.items() if _matches(row, conditions)]
        for key in doomed:
            del table[key]
        return WriteResult(count=len(doomed))

    def find(
        self,
        source: str,
        conditions: dict[str, Any],
        options: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        rows = [
            copy.deepcopy(row) for row in self.table(source).values() if _matches(row, conditions)
        ]
        limit = (options or {}).get("limit")
        return rows[:limit] if limit is not None else rows

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    def formatters(self) -> dict[str, dict[str, Callable[[Any, Any], Any]]]:
        return {mode: dict(handlers) for mode, handlers in self._formatters.items()}
