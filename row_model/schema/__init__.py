"""Schema layer - field definitions, formatters and the casting engine."""

from __future__ import annotations

from row_model.schema.definitions import FieldDefinition
from row_model.schema.schema import Schema

__all__ = [
    "Schema",
    "FieldDefinition",
]
