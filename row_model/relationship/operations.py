"""Relation behaviour.

Every function dispatches on the relation kind with ``match``. Embedding
follows a single-pass fan-out: owners are indexed by their key, related
rows are fetched once per batch through the fetch handler, then attached
to each owner by key lookup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from row_model.core.enums import SavePhase
from row_model.core.exceptions import (
    AmbiguousRelationError,
    ConfigurationError,
    MissingIdentifierError,
    RelationFetchRequired,
    RelationNotFoundError,
)
from row_model.core.map import Collector
from row_model.relationship.kinds import BelongsTo, HasMany, HasManyThrough, HasOne, Relation

if TYPE_CHECKING:
    from row_model.core.registry import Fetcher
    from row_model.schema.schema import Schema

logger = logging.getLogger("row_model.relationship")


def target(relation: Relation) -> Schema:
    """Schema of the related entities."""
    match relation:
        case HasManyThrough(schema=schema, through=through, using=using):
            pivot = target(schema.relation(through))
            return target(pivot.relation(using))
        case BelongsTo(schema=schema, to=to) | HasOne(schema=schema, to=to) | HasMany(
            schema=schema, to=to
        ):
            return schema.registry.get(to)
    raise ConfigurationError(f"Unsupported relation: {relation!r}")


def is_many(relation: Relation) -> bool:
    match relation:
        case HasMany() | HasManyThrough():
            return True
        case _:
            return False


def _pair(relation: Relation) -> tuple[str, str]:
    match relation:
        case HasManyThrough(schema=schema, through=through, using=using):
            pivot = target(schema.relation(through))
            return _pair(pivot.relation(using))
        case _:
            return next(iter(relation.keys.items()))


def keys(relation: Relation, side: str | None = None) -> Any:
    """Key names of a relation.

    Args:
        relation: The relation.
        side: ``"from"`` or ``"to"``; omitted returns the ``{from: to}`` pair.
    """
    from_key, to_key = _pair(relation)
    if side is None:
        return {from_key: to_key}
    if side == "from":
        return from_key
    if side == "to":
        return to_key
    raise ConfigurationError(f"Invalid key side `{side}`, expected `from` or `to`.")


def match(relation: Relation, entity: Any) -> dict[str, Any]:
    """Conditions selecting the entities related to ``entity``.

    Raises:
        MissingIdentifierError: If ``entity`` has no value for the source key.
    """
    match relation:
        case HasManyThrough(schema=schema, through=through):
            return match(schema.relation(through), entity)
    from_key, to_key = _pair(relation)
    value = entity.get(from_key) if entity.has(from_key) else None
    if value is None:
        raise MissingIdentifierError(
            f"The `{from_key}` key is missing on `{relation.schema.name}` "
            f"for relation `{relation.name}`."
        )
    return {to_key: value}


def _mirrors(relation: Relation, other: Relation) -> bool:
    match relation, other:
        case HasManyThrough(), HasManyThrough():
            return target(other).name == relation.schema.name
        case BelongsTo(), HasOne() | HasMany():
            return other.to == relation.schema.name and _flipped(relation, other)
        case HasOne() | HasMany(), BelongsTo():
            return other.to == relation.schema.name and _flipped(relation, other)
        case _:
            return False


def _flipped(relation: Relation, other: Relation) -> bool:
    from_key, to_key = _pair(relation)
    return _pair(other) == (to_key, from_key)


def counterpart(relation: Relation) -> Relation:
    """Find the inverse relation on the target schema.

    Raises:
        AmbiguousRelationError: If more than one relation mirrors ``relation``.
        RelationNotFoundError: If none does.
    """
    schema = target(relation)
    candidates = [
        schema.relation(name)
        for name in schema.relations()
        if _mirrors(relation, schema.relation(name))
    ]
    if len(candidates) > 1:
        raise AmbiguousRelationError(relation.kind.value, schema.name, len(candidates))
    if not candidates:
        raise RelationNotFoundError(
            schema.name,
            f"counterpart of {relation.schema.name}.{relation.name}",
        )
    return candidates[0]


def save_phase(relation: Relation) -> SavePhase:
    """Whether a relation is persisted before or after its owner."""
    match relation:
        case BelongsTo():
            return SavePhase.BEFORE
        case _:
            return SavePhase.AFTER


def _find(
    relation: Relation,
    values: Iterable[Any],
    fetcher: Fetcher,
    options: dict[str, Any],
    collector: Collector,
) -> list[Any]:
    values = list(dict.fromkeys(value for value in values if value is not None))
    if not values:
        return []
    schema = target(relation)
    to_key = keys(relation, "to")
    conditions = {**relation.conditions, **options.get("conditions", {})}
    conditions[to_key] = values if len(values) > 1 else values[0]
    rows = fetcher(schema, conditions, options)
    related = [_materialize(schema, row, collector) for row in rows]
    logger.debug("Embedded %d `%s` rows for `%s`", len(related), schema.name, relation.name)
    return related


def _materialize(schema: Schema, row: Any, collector: Collector) -> Any:
    if not isinstance(row, dict):
        return row
    identity = row.get(schema.key) if schema.key else None
    if identity is not None and (schema.source, identity) in collector:
        return collector.get((schema.source, identity))
    entity = schema.cast(None, row, exists=True)
    if identity is not None:
        collector.set((schema.source, identity), entity)
    return entity


def embed(
    relation: Relation,
    entities: list[Any],
    fetcher: Fetcher,
    *,
    options: dict[str, Any] | None = None,
    collector: Collector | None = None,
) -> list[Any]:
    """Load the related entities of a batch of owners and attach them.

    Returns the related entities, so nested paths can be embedded on them.
    """
    options = options or {}
    collector = collector if collector is not None else Collector()
    from_key, to_key = _pair(relation) if not isinstance(relation, HasManyThrough) else ("", "")
    name = relation.name

    match relation:
        case HasManyThrough():
            # the expanded pivot path carries the load
            return []

        case BelongsTo():
            related = _find(
                relation, (entity.get(from_key) for entity in entities), fetcher, options, collector
            )
            index = {item.get(to_key): item for item in related}
            for entity in entities:
                entity.attach(name, index.get(entity.get(from_key)))
            return related

        case HasOne() | HasMany():
            owners: dict[Any, list[Any]] = {}
            for entity in entities:
                owners.setdefault(entity.get(from_key), []).append(entity)
                entity.attach(name, [] if isinstance(relation, HasMany) else None)
            related = _find(relation, owners, fetcher, options, collector)
            for item in related:
                for owner in owners.get(item.get(to_key), []):
                    if isinstance(relation, HasMany):
                        owner.get(name).append(item)
                    else:
                        owner.attach(name, item)
            if isinstance(relation, HasMany):
                for entity in entities:
                    entity.get(name).amend()
            return related

    raise ConfigurationError(f"Unsupported relation: {relation!r}")


def fetch(relation: Relation, entity: Any, fetcher: Fetcher) -> Any:
    """Load and attach the related data of a single entity."""
    match relation:
        case HasManyThrough(schema=schema, through=through, using=using):
            schema.embed([entity], {f"{through}.{using}": None}, fetcher=fetcher)
            return entity.get(relation.name)
        case _:
            embed(relation, [entity], fetcher)
            return entity.get(relation.name)


def get(relation: Relation, entity: Any, fetcher: Fetcher | None = None) -> Any:
    """Lazily materialize an unset relation field of ``entity``.

    A persisted entity holding the source key needs a fetch; without a
    fetch handler this raises instead of querying behind the caller's back.
    Otherwise an empty container is returned (``None`` for single relations).

    Raises:
        RelationFetchRequired: If a fetch is needed and no handler is given.
    """
    match relation:
        case HasManyThrough(through=through):
            loaded = entity.has(through) or not entity.exists or not has_source(relation, entity)
        case _:
            loaded = not entity.exists or not has_source(relation, entity)

    if loaded:
        if is_many(relation):
            return entity.schema.cast(relation.name, None, parent=entity)
        return None
    if fetcher is None:
        raise RelationFetchRequired(relation.name)
    return fetch(relation, entity, fetcher)


def has_source(relation: Relation, entity: Any) -> bool:
    """Whether ``entity`` holds a value for the key ``match`` reads."""
    match relation:
        case HasManyThrough(schema=schema, through=through):
            return has_source(schema.relation(through), entity)
    from_key = keys(relation, "from")
    return entity.has(from_key) and entity.get(from_key) is not None
