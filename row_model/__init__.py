"""RowModel - schema-driven entity graphs with relations and dirty tracking."""

from __future__ import annotations

from row_model.adapters.memory import MemoryAdapter
from row_model.adapters.protocol import StorageAdapter, Validator, WriteResult
from row_model.adapters.validation import PydanticValidator
from row_model.collection.collection import Collection
from row_model.collection.through import Through
from row_model.core.config import FieldConfig, SchemaConfig
from row_model.core.conventions import Conventions
from row_model.core.enums import FormatMode, NullPolicy, RelationKind, SavePhase
from row_model.core.exceptions import (
    AmbiguousRelationError,
    ConfigurationError,
    InvalidFieldAccess,
    MissingIdentifierError,
    MissingThroughDefinition,
    NotFoundError,
    PersistenceError,
    RelationFetchRequired,
    RelationNotFoundError,
    RowModelError,
    SchemaNotFoundError,
    UndefinedFieldError,
    UnknownKeyError,
)
from row_model.core.map import Collector, Map
from row_model.core.registry import SchemaRegistry
from row_model.document.document import Document
from row_model.document.model import Model
from row_model.relationship.kinds import BelongsTo, HasMany, HasManyThrough, HasOne, Relation
from row_model.repository.base import Repository
from row_model.schema.schema import Schema

__all__ = [
    # Registry
    "SchemaRegistry",
    "Conventions",
    # Schema
    "Schema",
    "SchemaConfig",
    "FieldConfig",
    # Entities
    "Document",
    "Model",
    "Collection",
    "Through",
    # Relations
    "Relation",
    "BelongsTo",
    "HasOne",
    "HasMany",
    "HasManyThrough",
    # Identity maps
    "Map",
    "Collector",
    # Persistence
    "Repository",
    "StorageAdapter",
    "WriteResult",
    "MemoryAdapter",
    # Validation
    "Validator",
    "PydanticValidator",
    # Enums
    "RelationKind",
    "FormatMode",
    "NullPolicy",
    "SavePhase",
    # Exceptions
    "RowModelError",
    "ConfigurationError",
    "MissingThroughDefinition",
    "RelationNotFoundError",
    "AmbiguousRelationError",
    "SchemaNotFoundError",
    "InvalidFieldAccess",
    "UndefinedFieldError",
    "RelationFetchRequired",
    "MissingIdentifierError",
    "NotFoundError",
    "PersistenceError",
    "UnknownKeyError",
]
