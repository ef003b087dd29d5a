"""RowModel exception hierarchy.

Casting never raises for unknown scalar types; everything else that goes
wrong in a binding, a path lookup or a persistence step surfaces as one of
the exceptions below.
"""

from __future__ import annotations


class RowModelError(Exception):
    """Base exception for all RowModel errors."""


# --- Configuration ---


class ConfigurationError(RowModelError):
    """Raised on invalid schema, field or relation configuration."""


class MissingThroughDefinition(ConfigurationError):
    """Raised when a hasManyThrough relation lacks its pivot definition."""

    def __init__(self, name: str, missing: str = "through") -> None:
        self.name = name
        self.missing = missing
        super().__init__(f"Missing `{missing}` definition for hasManyThrough relation `{name}`.")


class RelationNotFoundError(ConfigurationError):
    """Raised when a relation name is not bound on a schema."""

    def __init__(self, schema_name: str, name: str) -> None:
        self.schema_name = schema_name
        self.name = name
        super().__init__(f"Relation `{name}` not found on schema `{schema_name}`.")


class AmbiguousRelationError(ConfigurationError):
    """Raised when more than one counterpart relation matches."""

    def __init__(self, kind: str, target: str, count: int) -> None:
        self.kind = kind
        self.target = target
        self.count = count
        super().__init__(
            f"Ambiguous {kind} counterpart relationship for `{target}` "
            f"({count} candidates). Apply the Single Table Inheritance pattern "
            f"to get unique models."
        )


class SchemaNotFoundError(RowModelError):
    """Raised when a schema name is not present in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Schema not found: '{name}'")


# --- Field access ---


class InvalidFieldAccess(RowModelError):
    """Raised on an empty field name or a non-traversable path segment."""


class UndefinedFieldError(InvalidFieldAccess):
    """Raised when writing an undeclared field on a locked schema."""

    def __init__(self, schema_name: str, path: str) -> None:
        self.schema_name = schema_name
        self.path = path
        super().__init__(f"Missing schema definition for field: `{path}` on `{schema_name}`.")


class RelationFetchRequired(InvalidFieldAccess):
    """Raised on a lazy read of an external relation without a fetch handler."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"The relation `{name}` is an external relation, use `fetch()` to lazy load its data."
        )


# --- Identity ---


class MissingIdentifierError(RowModelError):
    """Raised when an operation requires a primary or foreign key value."""


class NotFoundError(RowModelError):
    """Raised when a persisted row no longer exists."""

    def __init__(self, source: str, id: object) -> None:  # noqa: A002
        self.source = source
        self.id = id
        super().__init__(f"The entity id:`{id}` doesn't exists in `{source}`.")


class UnknownKeyError(RowModelError, KeyError):
    """Raised on a lookup miss in an identity map."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"No collected data associated to the key: {key!r}")

    def __str__(self) -> str:
        return str(self.args[0])


# --- Persistence ---


class PersistenceError(RowModelError):
    """Raised when the storage adapter reports a failed write."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        self.detail = detail
        super().__init__(f"Storage error on `{source}`: {detail}")
