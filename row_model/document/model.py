"""Model: a document with a persisted identity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from row_model.core.exceptions import ConfigurationError, MissingIdentifierError
from row_model.document.document import Document
from row_model.relationship import operations

if TYPE_CHECKING:
    from row_model.core.registry import Fetcher


class Model(Document):
    """Entity identified by the primary key of its schema."""

    def id(self) -> Any:
        """Return the primary key value.

        Raises:
            MissingIdentifierError: If the schema has no primary key.
        """
        key = self._schema.key
        if key is None:
            raise MissingIdentifierError(
                f"No primary key has been defined for `{self._schema.name}`'s schema."
            )
        return self._fields.get(key)

    def sync(self, id: Any = None, data: Any = None, *, exists: Any = None) -> Model:  # noqa: A002
        """Record the outcome of a persistence step and re-baseline."""
        if id is not None:
            self._write(self._schema.key, self._schema.cast(self._schema.key, id))
        self.amend(data, exists=exists)
        return self

    def fetch(self, name: str, fetcher: Fetcher | None = None) -> Any:
        """Load the relation ``name`` through a fetch handler.

        Raises:
            ConfigurationError: If neither ``fetcher`` nor a registry fetch
                handler is available.
        """
        fetcher = fetcher or self._schema.registry.fetcher
        if fetcher is None:
            raise ConfigurationError(f"No fetch handler available to load `{name}`.")
        relation = self._schema.relation(name)
        if not self._exists:
            return self.get(name)
        self.unset(name)
        return operations.fetch(relation, self, fetcher)

    def __repr__(self) -> str:
        key = self._schema.key
        identity = self._fields.get(key) if key else None
        return f"<{type(self).__name__} {self._schema.name} id={identity!r}>"
