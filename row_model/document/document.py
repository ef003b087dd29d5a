"""Document: the mutable node of the entity graph.

A document stores field values cast by its schema, keeps the snapshot of
its last persisted state for dirty checking, and registers itself as the
parent of every graph node written into one of its fields.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

from row_model.core.exceptions import InvalidFieldAccess
from row_model.core.node import GraphNode, KeyCursor, same_value
from row_model.core.protocol import DataStore, HasParents
from row_model.relationship import operations
from row_model.relationship.kinds import BelongsTo, HasManyThrough

if TYPE_CHECKING:
    from row_model.schema.schema import Schema

_MISSING = object()


def merge_defaults(defaults: dict[str, Any], data: Any) -> Any:
    if not defaults:
        return data
    if not isinstance(data, Mapping):
        return data
    result = dict(defaults)
    for name, value in data.items():
        if isinstance(value, Mapping) and isinstance(result.get(name), dict):
            result[name] = merge_defaults(result[name], value)
        else:
            result[name] = value
    return result


class Document(GraphNode, KeyCursor):
    """A schema-driven, path-addressable value container.

    Args:
        schema: Schema casting the field values. Schema-less documents use
            an unlocked anonymous schema.
        data: Initial field values.
        base_path: Dotted location of this node inside the nested fields of
            an ancestor sharing the same schema.
        exists: Whether the data comes from storage.
        defaults: Whether schema defaults are merged into ``data``.
    """

    def __init__(
        self,
        schema: Schema | None = None,
        data: Any = None,
        *,
        base_path: str = "",
        exists: bool = False,
        defaults: bool = True,
    ) -> None:
        super().__init__()
        if schema is None:
            from row_model.schema.schema import Schema

            schema = Schema.anonymous()
        self._schema = schema
        self._base_path = base_path
        self._exists = exists
        self._fields: dict[str, Any] = {}
        self._original: dict[str, Any] = {}
        self._errors: dict[str, list[str]] = {}

        payload = {} if data is None else data
        if defaults and not exists:
            payload = merge_defaults(schema.defaults(base_path), payload)
        self._assign(payload, None, exists=exists)
        self._original = dict(self._fields)

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def exists(self) -> bool:
        return self._exists

    @exists.setter
    def exists(self, value: bool) -> None:
        self._exists = bool(value)

    def _path(self, name: str) -> str:
        return f"{self._base_path}.{name}" if self._base_path else name

    def _external(self, name: str) -> bool:
        return not self._base_path and self._schema.has_relation(name, embedded=False)

    # --- Access ---

    def get(self, name: str | None = None) -> Any:
        """Return the value at the dotted path ``name``.

        Called without a name, returns a shallow copy of all field values.

        Raises:
            InvalidFieldAccess: If ``name`` is empty or an intermediate
                segment is not a document, collection or through view.
        """
        if name is None:
            return dict(self._fields)
        if name == "":
            raise InvalidFieldAccess("Field name can't be empty.")
        head, sep, rest = str(name).partition(".")
        if not sep:
            return self._get(head)
        value = self._get(head)
        if value is None:
            return None
        if not isinstance(value, DataStore):
            raise InvalidFieldAccess(f"The field: `{head}` is not a valid document or entity.")
        return value.get(rest)

    def _get(self, name: str) -> Any:
        schema = self._schema
        definition = schema.column(self._path(name))
        if definition is not None and definition.getter is not None:
            value = definition.getter(self, self._fields.get(name), name)
            if definition.virtual:
                return schema.cast(name, value, base_path=self._base_path, parent=self)
            return value
        if name in self._fields:
            return self._fields[name]

        if self._external(name):
            relation = schema.relation(name)
            value = operations.get(relation, self, schema.registry.fetcher)
            if value is not None and name not in self._fields:
                self.attach(name, value)
            return self._fields.get(name, value)

        if definition is not None and (definition.array or definition.is_object):
            # autobox nested containers
            self.attach(name, [] if definition.array else {})
            return self._fields[name]
        return None

    def set(self, name: Any, value: Any = None) -> Document:
        """Write ``value`` at the dotted path ``name``.

        A mapping as ``name`` writes each of its items.

        Raises:
            InvalidFieldAccess: If ``name`` is empty or traverses a scalar.
            UndefinedFieldError: If the field is undeclared on a locked schema.
        """
        self._assign(name, value, exists=False)
        return self

    def _assign(self, name: Any, value: Any, *, exists: bool) -> None:
        if isinstance(name, (Mapping, Document)):
            for key, item in name.items():
                self._assign(key, item, exists=exists)
            return
        if name is None or name == "":
            raise InvalidFieldAccess("Field name can't be empty.")
        head, sep, rest = str(name).partition(".")
        if not sep:
            self._set(head, value, exists=exists)
            return
        child = self._get(head)
        if child is None:
            self._set(head, {}, exists=exists)
            child = self._fields[head]
        if not isinstance(child, DataStore):
            raise InvalidFieldAccess(f"The field: `{head}` is not a valid document or entity.")
        child.set(rest, value)

    def _set(self, name: str, value: Any, *, exists: bool = False) -> None:
        schema = self._schema
        definition = schema.column(self._path(name))
        value = schema.cast(name, value, base_path=self._base_path, parent=self, exists=exists)
        if definition is not None and definition.virtual:
            return
        self._write(name, value)
        if self._external(name):
            relation = schema.relation(name)
            if isinstance(relation, BelongsTo):
                from_key, to_key = operations.keys(relation, "from"), operations.keys(relation, "to")
                self._set(from_key, value.get(to_key) if value is not None else None)

    def _write(self, name: Any, value: Any) -> bool:
        # field write and parent bookkeeping happen together
        previous = self._fields.get(name, _MISSING)
        if previous is not _MISSING and same_value(previous, value):
            return False
        self._fields[name] = value
        if isinstance(previous, HasParents):
            previous.unset_parent(self)
        if isinstance(value, HasParents):
            value.set_parent(self, name)
        return True

    def attach(self, name: str, value: Any) -> Document:
        """Write an already persisted value: the field joins the original snapshot."""
        value = self._schema.cast(
            name, value, base_path=self._base_path, parent=self, exists=self._exists
        )
        self._write(name, value)
        self._original[name] = value
        return self

    def has(self, name: Any) -> bool:
        head, sep, rest = str(name).partition(".")
        if not sep:
            return head in self._fields
        value = self._fields.get(head)
        return isinstance(value, DataStore) and value.has(rest)

    def unset(self, name: Any) -> Document:
        head, sep, rest = str(name).partition(".")
        if sep:
            value = self._fields.get(head)
            if isinstance(value, DataStore):
                value.unset(rest)
            return self
        if head not in self._fields:
            return self
        value = self._fields.pop(head)
        if isinstance(value, HasParents):
            value.unset_parent(self)
        return self

    def keys(self) -> list[str]:
        return list(self._fields)

    def values(self) -> list[Any]:
        return list(self._fields.values())

    def items(self) -> list[tuple[str, Any]]:
        return list(self._fields.items())

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        self.unset(name)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[str]:
        return self._snapshot_keys()

    def _cursor_store(self) -> dict[Any, Any]:
        return self._fields

    # --- Dirty state ---

    def _tree(self, embed: Any) -> dict[str, Any]:
        if embed is True:
            embed = self.hierarchy()
        return self._schema.treeify(embed) if embed else {}

    def modified(
        self,
        field: str | None = None,
        *,
        embed: Any = False,
        ignore: tuple[str, ...] | list[str] = (),
        as_list: bool = False,
    ) -> bool | list[str]:
        """Compare the current values against the original snapshot.

        Args:
            field: Check a single field only.
            embed: Relation paths (or ``True`` for all loaded ones) whose
                related entities take part in the comparison.
            ignore: Field names left out.
            as_list: Return the modified field names instead of a boolean.
        """
        tree = self._tree(embed)
        if field is not None:
            names = [field]
        else:
            names = list(dict.fromkeys([*self._original, *self._fields]))
        changed = [
            name for name in names if name not in ignore and self._field_modified(name, tree)
        ]
        if as_list and field is None:
            return changed
        return bool(changed)

    def _field_modified(self, name: str, tree: dict[str, Any]) -> bool:
        external = self._external(name)
        if external and name not in tree:
            return False
        if name not in self._fields:
            return name in self._original
        if name not in self._original:
            return True
        value = self._fields[name]
        original = self._original[name]
        if not isinstance(value, HasParents):
            return not same_value(original, value)
        if original is not value:
            return True
        if external:
            if isinstance(self._schema.relation(name), HasManyThrough):
                return value.modified()
            return value.modified(embed=(tree.get(name) or {}).get("embed") or False)
        return value.modified()

    def original(self) -> dict[str, Any]:
        return dict(self._original)

    def amend(self, data: Any = None, *, exists: Any = None) -> Document:
        """Re-baseline the original snapshot on the current values.

        Args:
            data: Values written before the snapshot is taken.
            exists: New persisted state; ``"all"`` also marks every loaded
                relation as persisted.
        """
        cascade = exists == "all"
        if exists is not None:
            self._exists = True if cascade else bool(exists)
        if data:
            self._assign(data, None, exists=self._exists)
        self._original = dict(self._fields)
        for name, value in self._fields.items():
            if not isinstance(value, HasParents) or not hasattr(value, "amend"):
                continue
            if self._external(name):
                if cascade:
                    value.amend(exists="all")
                continue
            value.amend()
        return self

    def restore(self) -> Document:
        """Return every field to its original value."""
        for name in list(self._fields):
            if name not in self._original:
                self.unset(name)
        for name, value in self._original.items():
            self._write(name, value)
            if isinstance(value, HasParents) and not self._external(name):
                value.restore()
        return self

    # --- Graph ---

    def hierarchy(
        self, prefix: str = "", seen: set[int] | None = None, indexed: bool = False
    ) -> Any:
        """Paths of every loaded relation, depth first.

        Returns ``None`` when this node was already visited.
        """
        seen = set() if seen is None else seen
        if self.handle in seen:
            return None
        seen.add(self.handle)
        result: dict[str, bool] = {}
        schema = self._schema
        relations = [] if self._base_path else schema.relations()
        for name in relations:
            value = self._fields.get(name)
            if value is None:
                continue
            path = f"{prefix}.{name}" if prefix else name
            if isinstance(schema.relation(name), HasManyThrough):
                result[path] = True
                continue
            children = value.hierarchy(path, seen, indexed=True)
            if children:
                result.update(children)
            elif children is not None:
                result[path] = True
        return result if indexed else list(result)

    def to(self, fmt: str = "array", *, embed: Any = True, **options: Any) -> dict[str, Any]:
        """Export to plain values.

        Args:
            fmt: Formatter mode applied to scalar fields.
            embed: Relation paths exported (``True``: all loaded ones).
        """
        schema = self._schema
        tree = self._tree(embed)
        result: dict[str, Any] = {}
        for name, value in self._fields.items():
            path = self._path(name)
            external = self._external(name)
            if schema.locked and not external:
                declared = schema.column(path) is not None or (
                    not self._base_path and schema.has_relation(name)
                )
                if not declared:
                    continue
            if external:
                if name not in tree:
                    continue
                node = dict(tree[name] or {})
                sub = node.pop("embed", None) or False
                result[name] = (
                    None if value is None else value.to(fmt, embed=sub, **{**options, **node})
                )
            elif isinstance(value, DataStore):
                result[name] = value.to(fmt, **options)
            else:
                result[name] = schema.format(fmt, path, value)
        return result

    # --- Validation ---

    def validates(self, *, embed: Any = False) -> bool:
        """Run the registry validator of the schema and of embedded relations."""
        schema = self._schema
        validator = schema.registry.validator(schema.name)
        valid = True
        self._errors = {}
        if validator is not None and not validator.validate(self.to("array", embed=False)):
            valid = False
            self._errors = {name: list(messages) for name, messages in validator.errors().items()}
        for name, node in self._tree(embed).items():
            value = self._fields.get(name)
            if value is None:
                continue
            if not value.validates(embed=(node or {}).get("embed") or False):
                valid = False
        return valid

    def invalidate(self, field: str, messages: str | list[str]) -> Document:
        if isinstance(messages, str):
            messages = [messages]
        self._errors.setdefault(field, []).extend(messages)
        return self

    def errors(self, *, embed: Any = False) -> dict[str, Any]:
        result: dict[str, Any] = {name: list(messages) for name, messages in self._errors.items()}
        for name, node in self._tree(embed).items():
            value = self._fields.get(name)
            if value is None:
                continue
            errors = value.errors(embed=(node or {}).get("embed") or False)
            if errors:
                result[name] = errors
        return result

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._schema.name} fields={list(self._fields)}>"
