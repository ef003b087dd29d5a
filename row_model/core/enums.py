"""Schema and relation enumerations."""

from __future__ import annotations

from enum import Enum


class RelationKind(str, Enum):
    """Supported relation kinds."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    HAS_MANY_THROUGH = "hasManyThrough"


class FormatMode(str, Enum):
    """Formatter directions: storage to runtime, runtime to plain data."""

    CAST = "cast"
    ARRAY = "array"


class NullPolicy(str, Enum):
    """How a non-nullable field handles a ``None`` input."""

    KEEP = "keep"
    COERCE = "coerce"


class SavePhase(str, Enum):
    """When a relation is persisted relative to its owner."""

    BEFORE = "before"
    AFTER = "after"
