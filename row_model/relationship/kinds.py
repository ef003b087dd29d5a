"""Relation kinds.

Frozen dataclasses, one per relation kind, each carrying only the fields
that kind needs. ``Relation`` is their union; behaviour lives in
``row_model.relationship.operations`` and dispatches on the concrete
class.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Union

from row_model.core.enums import RelationKind

if TYPE_CHECKING:
    from row_model.schema.schema import Schema


@dataclass(frozen=True, eq=False)
class BelongsTo:
    """The owner holds the foreign key of one related entity."""

    name: str
    schema: Schema = field(repr=False)
    to: str
    keys: dict[str, str]
    conditions: dict[str, Any] = field(default_factory=dict)
    embedded: bool = False

    kind: ClassVar[RelationKind] = RelationKind.BELONGS_TO


@dataclass(frozen=True, eq=False)
class HasOne:
    """One related entity holds the owner's key."""

    name: str
    schema: Schema = field(repr=False)
    to: str
    keys: dict[str, str]
    conditions: dict[str, Any] = field(default_factory=dict)
    embedded: bool = False

    kind: ClassVar[RelationKind] = RelationKind.HAS_ONE


@dataclass(frozen=True, eq=False)
class HasMany:
    """Many related entities hold the owner's key."""

    name: str
    schema: Schema = field(repr=False)
    to: str
    keys: dict[str, str]
    conditions: dict[str, Any] = field(default_factory=dict)
    embedded: bool = False
    junction: bool = False

    kind: ClassVar[RelationKind] = RelationKind.HAS_MANY


@dataclass(frozen=True, eq=False)
class HasManyThrough:
    """Virtual relation projected through a pivot hasMany relation."""

    name: str
    schema: Schema = field(repr=False)
    through: str
    using: str
    conditions: dict[str, Any] = field(default_factory=dict)
    embedded: bool = False

    kind: ClassVar[RelationKind] = RelationKind.HAS_MANY_THROUGH


Relation = Union[BelongsTo, HasOne, HasMany, HasManyThrough]
