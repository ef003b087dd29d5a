"""Schema: field and relation definitions plus the casting engine.

A schema decides what every value written to an entity becomes: scalar
fields go through the type formatters, array fields become collections,
object fields become nested documents and relation fields become related
entities, collections or through views.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from row_model.collection.collection import Collection
from row_model.collection.through import Through
from row_model.core.config import (
    BelongsToConfig,
    FieldConfig,
    HasManyConfig,
    HasManyThroughConfig,
    HasOneConfig,
    SchemaConfig,
    binding_adapter,
)
from row_model.core.enums import FormatMode, NullPolicy, RelationKind
from row_model.core.exceptions import (
    ConfigurationError,
    MissingThroughDefinition,
    RelationNotFoundError,
    UndefinedFieldError,
)
from row_model.core.map import Collector
from row_model.core.registry import SchemaRegistry
from row_model.document.document import Document
from row_model.document.model import Model
from row_model.relationship import operations
from row_model.relationship.kinds import BelongsTo, HasMany, HasManyThrough, HasOne, Relation
from row_model.schema.definitions import FieldDefinition
from row_model.schema.formatters import (
    DEFAULT_NULL_POLICIES,
    ZERO_VALUES,
    Formatter,
    default_formatters,
)

if TYPE_CHECKING:
    from row_model.core.registry import Fetcher

logger = logging.getLogger("row_model.schema")

_RELATION_KINDS = {kind.value for kind in RelationKind}


def _normalize(paths: Any) -> dict[str, Any]:
    """Turn a relation path list (or single path) into a ``{path: options}`` map."""
    if not paths:
        return {}
    if isinstance(paths, str):
        return {paths: None}
    if isinstance(paths, Mapping):
        return dict(paths)
    return {path: None for path in paths}


def _merge_options(existing: Any, value: Any) -> Any:
    if existing is None:
        return copy.copy(value)
    if value is None:
        return existing
    merged = {**existing, **value}
    if "embed" in existing and "embed" in value:
        merged["embed"] = {**_normalize(existing["embed"]), **_normalize(value["embed"])}
    return merged


class Schema:
    """Definitions and casting rules for one entity type.

    Args:
        config: Validated schema configuration.
        registry: Registry resolving related schemas by name. A private
            registry is created when omitted.
    """

    def __init__(self, config: SchemaConfig, registry: SchemaRegistry | None = None) -> None:
        self.registry = registry if registry is not None else SchemaRegistry()
        conventions = self.registry.conventions
        self.name = config.name
        self.source = config.source or conventions.source(config.name)
        self.key: str | None = None if config.keyless else (config.key or conventions.key())
        self.locked = config.locked
        self.meta = dict(config.meta)
        self.model: type[Document] = config.model or Model
        self._columns: dict[str, FieldDefinition] = {}
        self._bindings: dict[str, Any] = {}
        self._relations: dict[str, Relation] = {}
        self._formatters = default_formatters()
        self._null_policies = {**DEFAULT_NULL_POLICIES, **config.null_policies}

        adapter = self.registry.adapter
        if adapter is not None:
            self.merge_formatters(adapter.formatters())

        for name, field_config in config.columns.items():
            self._columns[name] = FieldDefinition.from_config(name, field_config)
        for name, binding in config.relations.items():
            self.bind(name, **binding)

    @classmethod
    def anonymous(cls) -> Schema:
        """Unlocked, keyless schema used by schema-less documents."""
        return cls(SchemaConfig(name="document", keyless=True, locked=False, model=Document))

    # --- Fields ---

    def define(self, name: str, type: str = "string", **options: Any) -> FieldDefinition:  # noqa: A002
        """Add or replace the definition of ``name``.

        Raises:
            ConfigurationError: If the options are not valid field options.
        """
        try:
            config = FieldConfig(type=type, **options)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid definition for field `{name}` on `{self.name}`: {e}"
            ) from e
        definition = FieldDefinition.from_config(name, config)
        self._columns[name] = definition
        return definition

    def column(self, path: str) -> FieldDefinition | None:
        """Resolve the definition of ``path``: exact match, then last segment as ``*``."""
        definition = self._columns.get(path)
        if definition is not None:
            return definition
        head, sep, _ = path.rpartition(".")
        return self._columns.get(f"{head}.*" if sep else "*")

    def has(self, name: str) -> bool:
        return name in self._columns

    def remove(self, name: str) -> None:
        self._columns.pop(name, None)

    def names(self) -> list[str]:
        """All declared field paths, including nested and wildcard ones."""
        return list(self._columns)

    def fields(self) -> list[str]:
        """Top-level stored field names."""
        return [
            name
            for name, definition in self._columns.items()
            if not definition.is_nested and not definition.virtual
        ]

    def defaults(self, base_path: str = "") -> dict[str, Any]:
        """Nested default values of the fields below ``base_path``."""
        prefix = f"{base_path}." if base_path else ""
        result: dict[str, Any] = {}
        for name, definition in self._columns.items():
            if not definition.has_default or not name.startswith(prefix):
                continue
            parts = name[len(prefix) :].split(".")
            if "*" in parts:
                # applied when the wildcard child is instantiated
                continue
            node = result
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = copy.deepcopy(definition.default)
        return result

    # --- Formatters ---

    def formatter(self, mode: str, type: str, handler: Formatter | None = None) -> Formatter | None:  # noqa: A002
        """Get, or register when ``handler`` is given, the formatter of a type."""
        mode = mode.value if isinstance(mode, FormatMode) else mode
        if handler is not None:
            self._formatters.setdefault(mode, {})[type] = handler
            return handler
        return self._formatters.get(mode, {}).get(type)

    def merge_formatters(self, table: Mapping[str, Mapping[str, Formatter]]) -> None:
        for mode, handlers in table.items():
            mode = mode.value if isinstance(mode, FormatMode) else mode
            self._formatters.setdefault(mode, {}).update(handlers)

    def null_policy(self, type: str, policy: NullPolicy | None = None) -> NullPolicy:  # noqa: A002
        """Get, or set when ``policy`` is given, how a non-nullable type treats ``None``."""
        if policy is not None:
            self._null_policies[type] = NullPolicy(policy)
        return self._null_policies.get(type, NullPolicy.KEEP)

    def format(self, mode: str, path: str, value: Any) -> Any:
        """Format ``value`` for the field at ``path``.

        The formatter is looked up by the field type, then by ``_default_``;
        when none applies the value is returned unchanged.
        """
        mode = mode.value if isinstance(mode, FormatMode) else mode
        definition = self.column(path) if path else None
        if value is None:
            if definition is None or definition.nullable:
                return None
            if self.null_policy(definition.type) is NullPolicy.KEEP:
                return None
            if definition.type not in ZERO_VALUES:
                return None
            value = ZERO_VALUES[definition.type]
        handlers = self._formatters.get(mode, {})
        handler = handlers.get(definition.type) if definition is not None else None
        if handler is None:
            handler = handlers.get("_default_")
        return handler(value, definition) if handler is not None else value

    # --- Relations ---

    def bind(self, name: str, **config: Any) -> None:
        """Register the relation ``name``.

        Raises:
            ConfigurationError: If the binding is structurally invalid.
            MissingThroughDefinition: If a hasManyThrough binding has no
                ``through`` option.
        """
        relation = config.get("relation")
        if relation not in _RELATION_KINDS:
            raise ConfigurationError(f"Unexisting binding relation `{relation}` for `{name}`.")
        if relation == RelationKind.HAS_MANY_THROUGH.value:
            if not config.get("through"):
                raise MissingThroughDefinition(name)
        elif not config.get("to"):
            raise ConfigurationError(f"Binding requires `to` option to be set for `{name}`.")
        try:
            binding = binding_adapter.validate_python(config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid binding for `{name}` on `{self.name}`: {e}") from e

        self._bindings[name] = binding
        self._relations.pop(name, None)
        if isinstance(binding, HasManyThroughConfig):
            # the pivot relation becomes a junction
            self._relations.pop(binding.through, None)
        logger.debug("Bound %s relation `%s` on `%s`", relation, name, self.name)

    def unbind(self, name: str) -> bool:
        if name not in self._bindings:
            return False
        del self._bindings[name]
        self._relations.pop(name, None)
        logger.debug("Unbound relation `%s` from `%s`", name, self.name)
        return True

    def relation(self, name: str) -> Relation:
        """Return the relation bound under ``name``.

        Raises:
            RelationNotFoundError: If nothing is bound under ``name``.
        """
        cached = self._relations.get(name)
        if cached is not None:
            return cached
        binding = self._bindings.get(name)
        if binding is None:
            raise RelationNotFoundError(self.name, name)
        conventions = self.registry.conventions
        own_key = self.key or conventions.key()
        conditions = dict(binding.conditions)

        relation: Relation
        match binding:
            case HasManyThroughConfig():
                relation = HasManyThrough(
                    name=name,
                    schema=self,
                    through=binding.through,
                    using=binding.using or conventions.singular(name),
                    conditions=conditions,
                    embedded=binding.embedded,
                )
            case BelongsToConfig():
                target_key = conventions.key()
                if self.registry.has(binding.to):
                    target_key = self.registry.get(binding.to).key or target_key
                relation = BelongsTo(
                    name=name,
                    schema=self,
                    to=binding.to,
                    keys=binding.keys or {conventions.reference(binding.to): target_key},
                    conditions=conditions,
                    embedded=binding.embedded,
                )
            case HasManyConfig():
                relation = HasMany(
                    name=name,
                    schema=self,
                    to=binding.to,
                    keys=binding.keys or {own_key: conventions.reference(self.name)},
                    conditions=conditions,
                    embedded=binding.embedded,
                    junction=binding.junction or self.is_junction(name),
                )
            case HasOneConfig():
                relation = HasOne(
                    name=name,
                    schema=self,
                    to=binding.to,
                    keys=binding.keys or {own_key: conventions.reference(self.name)},
                    conditions=conditions,
                    embedded=binding.embedded,
                )
            case _:
                raise ConfigurationError(
                    f"Unsupported binding for relation `{name}` of `{self.name}`."
                )
        self._relations[name] = relation
        return relation

    def has_relation(self, name: str, embedded: bool = True) -> bool:
        """Check whether ``name`` is a relation.

        Embedded object fields only count when ``embedded`` is true.
        """
        binding = self._bindings.get(name)
        if binding is not None:
            return embedded or not binding.embedded
        return embedded and name in self._embedded_fields()

    def relations(self, include_embedded: bool = False) -> list[str]:
        names = [
            name
            for name, binding in self._bindings.items()
            if include_embedded or not binding.embedded
        ]
        if include_embedded:
            names.extend(name for name in self._embedded_fields() if name not in self._bindings)
        return names

    def is_junction(self, name: str) -> bool:
        """Whether ``name`` is the pivot relation of a hasManyThrough relation."""
        return any(
            isinstance(binding, HasManyThroughConfig) and binding.through == name
            for binding in self._bindings.values()
        )

    def _embedded_fields(self) -> list[str]:
        return [
            name
            for name, definition in self._columns.items()
            if definition.is_object and not definition.is_nested
        ]

    def expand(self, paths: Any) -> dict[str, Any]:
        """Add the ``through.using`` pivot path of every hasManyThrough path."""
        normalized = _normalize(paths)
        result = dict(normalized)
        for path, options in normalized.items():
            name, _, rest = path.partition(".")
            if not self.has_relation(name, embedded=False):
                continue
            relation = self.relation(name)
            if isinstance(relation, HasManyThrough):
                pivot_path = f"{relation.through}.{relation.using}"
                if rest:
                    pivot_path = f"{pivot_path}.{rest}"
                result.setdefault(pivot_path, copy.copy(options))
        return result

    def treeify(self, paths: Any) -> dict[str, Any]:
        """Convert dotted relation paths into a nested ``{name: {"embed": ...}}`` tree.

        Leaf options (e.g. ``conditions``) are kept; already nested input is
        returned with the same shape.
        """
        tree: dict[str, Any] = {}
        for path, options in _normalize(paths).items():
            name, _, rest = path.partition(".")
            if not self.has_relation(name, embedded=False):
                continue
            relation = self.relation(name)
            if isinstance(relation, HasManyThrough):
                using = f"{relation.using}.{rest}" if rest else relation.using
                node = dict(tree.get(relation.through) or {})
                embed = _normalize(node.get("embed"))
                embed[using] = _merge_options(embed.get(using), options)
                node["embed"] = embed
                tree[relation.through] = node
            if rest:
                node = dict(tree.get(name) or {})
                embed = _normalize(node.get("embed"))
                embed[rest] = _merge_options(embed.get(rest), options)
                node["embed"] = embed
                tree[name] = node
            else:
                tree[name] = _merge_options(tree.get(name), options)
        return tree

    def embed(
        self,
        entities: Iterable[Any],
        paths: Any,
        *,
        fetcher: Fetcher,
        collector: Collector | None = None,
    ) -> None:
        """Eagerly load the relation tree ``paths`` over a batch of entities."""
        entities = [entity for entity in entities if entity is not None]
        if not entities:
            return
        collector = collector if collector is not None else Collector()
        for name, options in self.treeify(paths).items():
            relation = self.relation(name)
            options = options or {}
            related = operations.embed(
                relation, entities, fetcher, options=options, collector=collector
            )
            sub = options.get("embed")
            if sub and related:
                operations.target(relation).embed(
                    related, sub, fetcher=fetcher, collector=collector
                )

    # --- Casting ---

    def create(
        self,
        data: Any = None,
        *,
        exists: bool = False,
        defaults: bool = True,
        collection: bool = False,
    ) -> Any:
        """Build an entity (or a collection of entities) from raw data."""
        if collection:
            return Collection(schema=self, data=data or [], exists=exists)
        return self.cast(None, {} if data is None else data, exists=exists, defaults=defaults)

    def cast(
        self,
        name: str | None,
        data: Any,
        *,
        base_path: str = "",
        parent: Any = None,
        exists: bool = False,
        defaults: bool = True,
    ) -> Any:
        """Cast ``data`` for the field ``name`` below ``base_path``.

        With ``name=None`` and no ``base_path`` the data is a whole entity
        payload; with ``name=None`` and a ``base_path`` it is one element of
        the array field at ``base_path``.

        Raises:
            UndefinedFieldError: If the path is undeclared on a locked schema.
            MissingThroughDefinition: If a hasManyThrough field is cast
                without its owning entity.
        """
        if name is None:
            path = base_path
        else:
            path = f"{base_path}.{name}" if base_path else name
        if not path:
            return self._cast_entity(data, exists=exists, defaults=defaults)
        element = name is None

        if not element and not base_path and path in self._bindings:
            return self._cast_relation(self.relation(path), data, parent=parent, exists=exists)

        definition = self.column(path)
        if definition is not None:
            if definition.setter is not None and not element and parent is not None:
                data = definition.setter(parent, data, name)
            if definition.array and not element:
                return self._cast_array(definition, data, exists=exists)
            if definition.is_object:
                return self._cast_object(definition, data, exists=exists, defaults=defaults)
            return self.format(FormatMode.CAST, definition.name, data)

        if self.locked:
            raise UndefinedFieldError(self.name, path)
        if isinstance(data, (Document, Collection, Through)):
            return data
        if isinstance(data, Mapping):
            return Document(self, data, base_path=path, exists=exists, defaults=defaults)
        if isinstance(data, (list, tuple)):
            return Collection(schema=self, data=data, base_path=path, exists=exists)
        return data

    def _cast_entity(self, data: Any, *, exists: bool, defaults: bool) -> Any:
        if data is None:
            return None
        if isinstance(data, self.model) and data.schema is self:
            return data
        if isinstance(data, Document):
            data = data.get()
        return self.model(self, data, exists=exists, defaults=defaults)

    def _cast_relation(self, relation: Relation, data: Any, *, parent: Any, exists: bool) -> Any:
        target = operations.target(relation)
        if isinstance(relation, HasManyThrough):
            if parent is None:
                raise MissingThroughDefinition(relation.name, "parent")
            if isinstance(data, Through) and data.parent is parent:
                return data
            return Through(
                parent, target, relation.through, relation.using, data=data, exists=exists
            )
        if isinstance(relation, HasMany):
            if isinstance(data, Collection) and data.schema is target:
                return data
            return Collection(schema=target, data=[] if data is None else data, exists=exists)
        return target.cast(None, data, exists=exists)

    def _cast_array(self, definition: FieldDefinition, data: Any, *, exists: bool) -> Any:
        if data is None and definition.nullable:
            return None
        if (
            isinstance(data, Collection)
            and data.schema is self
            and data.base_path == definition.name
        ):
            return data
        return Collection(
            schema=self,
            data=[] if data is None else data,
            base_path=definition.name,
            exists=exists,
        )

    def _cast_object(
        self, definition: FieldDefinition, data: Any, *, exists: bool, defaults: bool
    ) -> Any:
        if data is None:
            return None
        if definition.model:
            target = self.registry.get(definition.model)
            return target.cast(None, data, exists=exists, defaults=defaults)
        if (
            isinstance(data, Document)
            and data.schema is self
            and data.base_path == definition.name
        ):
            return data
        if isinstance(data, Document):
            data = data.get()
        return Document(self, data, base_path=definition.name, exists=exists, defaults=defaults)

    def __repr__(self) -> str:
        return f"<Schema {self.name} source={self.source!r} key={self.key!r}>"
