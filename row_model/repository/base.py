"""Repository: persistence orchestration over a storage adapter.

Saving walks the relation tree in two phases around the owner: belongsTo
relations first (their keys feed the owner's foreign keys), then the
owner, then hasOne/hasMany relations (they need the owner's key).
"""

from __future__ import annotations

import logging
from typing import Any

from row_model.adapters.protocol import StorageAdapter, WriteResult
from row_model.collection.collection import Collection
from row_model.core.enums import SavePhase
from row_model.core.exceptions import (
    ConfigurationError,
    MissingIdentifierError,
    NotFoundError,
    PersistenceError,
)
from row_model.core.map import Collector
from row_model.core.registry import SchemaRegistry
from row_model.relationship import operations
from row_model.relationship.kinds import BelongsTo, HasMany, HasManyThrough, HasOne, Relation
from row_model.schema.schema import Schema

logger = logging.getLogger("row_model.repository")


class Repository:
    """Loads and persists entity graphs.

    Args:
        registry: Registry holding the schemas.
        adapter: Storage adapter; defaults to the registry's adapter.

    Raises:
        ConfigurationError: If no adapter is available.
    """

    def __init__(self, registry: SchemaRegistry, adapter: StorageAdapter | None = None) -> None:
        adapter = adapter if adapter is not None else registry.adapter
        if adapter is None:
            raise ConfigurationError("A repository requires a storage adapter.")
        self.registry = registry
        self.adapter = adapter

    def fetch(
        self,
        schema: Schema,
        conditions: dict[str, Any],
        options: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch handler: rows of ``schema`` matching ``conditions``."""
        return self.adapter.find(schema.source, conditions, options)

    # --- Loading ---

    def load(self, name: str, id: Any, *, embed: Any = None) -> Any:  # noqa: A002
        """Load one entity by primary key, embedding the ``embed`` relations.

        Raises:
            MissingIdentifierError: If the schema has no primary key.
            NotFoundError: If no row has this key.
        """
        schema = self.registry.get(name)
        if schema.key is None:
            raise MissingIdentifierError(f"No primary key has been defined for `{name}`'s schema.")
        rows = self.fetch(schema, {schema.key: id})
        if not rows:
            raise NotFoundError(schema.source, id)
        collector = Collector()
        entity = schema.cast(None, rows[0], exists=True)
        collector.set((schema.source, entity.id()), entity)
        if embed:
            schema.embed([entity], embed, fetcher=self.fetch, collector=collector)
        return entity

    def all(
        self, name: str, conditions: dict[str, Any] | None = None, *, embed: Any = None
    ) -> Collection:
        """Load every entity matching ``conditions``."""
        schema = self.registry.get(name)
        rows = self.fetch(schema, conditions or {})
        collection = schema.create(rows, exists=True, collection=True)
        if embed:
            collector = Collector()
            if schema.key is not None:
                for entity in collection:
                    collector.set((schema.source, entity.id()), entity)
            schema.embed(collection.values(), embed, fetcher=self.fetch, collector=collector)
        return collection

    def reload(self, entity: Any) -> Any:
        """Re-read the persisted values of ``entity``.

        Raises:
            MissingIdentifierError: If the entity has no key value.
            NotFoundError: If the row no longer exists.
        """
        schema = entity.schema
        identity = self._identity(entity)
        rows = self.fetch(schema, {schema.key: identity})
        if not rows:
            raise NotFoundError(schema.source, identity)
        entity.amend(rows[0], exists=True)
        return entity

    # --- Writing ---

    def save(self, entity: Any, *, embed: Any = False, validate: bool = True) -> bool:
        """Persist ``entity`` and the relations selected by ``embed``.

        Returns ``False`` without writing anything when validation fails.

        Raises:
            PersistenceError: If the adapter reports a failed write.
            MissingIdentifierError: If a belongsTo relation got no key.
        """
        schema = entity.schema
        tree = schema.treeify(entity.hierarchy() if embed is True else embed)
        if validate and not entity.validates(embed=tree):
            logger.debug("Validation failed for %s, nothing saved", schema.name)
            return False
        return self._save(entity, tree, set())

    def _save(self, entity: Any, tree: dict[str, Any], seen: set[int]) -> bool:
        if entity.handle in seen:
            return True
        seen.add(entity.handle)
        schema = entity.schema
        relations = [(schema.relation(name), node or {}) for name, node in tree.items()]

        success = True
        for relation, node in relations:
            if operations.save_phase(relation) is SavePhase.BEFORE:
                success = self._save_relation(relation, entity, node, seen) and success
        self._persist(entity)
        for relation, node in relations:
            if operations.save_phase(relation) is SavePhase.AFTER:
                success = self._save_relation(relation, entity, node, seen) and success
        return success

    def _save_relation(
        self, relation: Relation, entity: Any, node: dict[str, Any], seen: set[int]
    ) -> bool:
        if not entity.has(relation.name):
            return True
        value = entity.get(relation.name)
        if value is None:
            return True
        sub = node.get("embed")
        subtree = operations.target(relation).treeify(sub) if sub else {}
        logger.debug(
            "Saving %s `%s` of %s", relation.kind.value, relation.name, entity.schema.name
        )

        match relation:
            case BelongsTo():
                success = self._save(value, subtree, seen)
                from_key, to_key = operations.keys(relation, "from"), operations.keys(relation, "to")
                identity = value.get(to_key)
                if identity is None:
                    raise MissingIdentifierError(
                        f"The `{relation.name}` relation of `{entity.schema.name}` "
                        f"has no `{to_key}` value after saving."
                    )
                entity.set(from_key, identity)
                return success
            case HasOne():
                value.set({**relation.conditions, **operations.match(relation, entity)})
                return self._save(value, subtree, seen)
            case HasMany():
                return self._save_many(relation, entity, value, subtree, seen)
            case HasManyThrough():
                # persisted through its pivot relation
                return True
        return True

    def _save_many(
        self,
        relation: HasMany,
        entity: Any,
        collection: Collection,
        subtree: dict[str, Any],
        seen: set[int],
    ) -> bool:
        schema = operations.target(relation)
        conditions = {**relation.conditions, **operations.match(relation, entity)}
        previous: dict[Any, dict[str, Any]] = {}
        if schema.key is not None:
            previous = {row[schema.key]: row for row in self.fetch(schema, conditions)}

        success = True
        for item in collection.values():
            if item.exists:
                previous.pop(item.id(), None)
            item.set(conditions)
            success = self._save(item, subtree, seen) and success

        junction = relation.junction or relation.schema.is_junction(relation.name)
        to_key = operations.keys(relation, "to")
        for identity in previous:
            if junction:
                self._check(schema.source, self.adapter.remove(schema.source, {schema.key: identity}))
                logger.info("Removed detached %s id:%s", schema.name, identity)
            else:
                self._check(
                    schema.source,
                    self.adapter.update(schema.source, {to_key: None}, {schema.key: identity}),
                )
                logger.warning("Unset `%s` of detached %s id:%s", to_key, schema.name, identity)
        collection.amend()
        return success

    def _persist(self, entity: Any) -> None:
        schema = entity.schema
        exported = entity.to("array", embed=False)
        values = {name: exported[name] for name in schema.fields() if name in exported}

        if not entity.exists:
            result = self.adapter.insert(schema.source, values)
            self._check(schema.source, result)
            identity = None
            if schema.key is not None and entity.id() is None:
                identity = result.id
            entity.sync(identity, exists=True)
            logger.info("Inserted %s id:%s", schema.name, result.id)
            return

        changed = [name for name in entity.modified(as_list=True) if name in values]
        if changed:
            identity = self._identity(entity)
            result = self.adapter.update(
                schema.source, {name: values[name] for name in changed}, {schema.key: identity}
            )
            self._check(schema.source, result)
            logger.debug("Updated %s id:%s fields=%s", schema.name, identity, changed)
        entity.amend()

    def delete(self, entity: Any) -> bool:
        """Remove the persisted row of ``entity``.

        Raises:
            MissingIdentifierError: If the entity has no key value.
        """
        schema = entity.schema
        identity = self._identity(entity)
        self._check(schema.source, self.adapter.remove(schema.source, {schema.key: identity}))
        entity.amend(exists=False)
        logger.info("Deleted %s id:%s", schema.name, identity)
        return True

    def _identity(self, entity: Any) -> Any:
        identity = entity.id()
        if identity is None:
            raise MissingIdentifierError(
                f"Existing entities of `{entity.schema.name}` must have a primary key value."
            )
        return identity

    def _check(self, source: str, result: WriteResult) -> None:
        if result.error is not None:
            raise PersistenceError(source, result.error)
