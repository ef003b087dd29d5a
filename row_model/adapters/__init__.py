"""Adapter layer - storage and validation collaborators."""

from __future__ import annotations

from row_model.adapters.memory import MemoryAdapter
from row_model.adapters.protocol import StorageAdapter, Validator, WriteResult
from row_model.adapters.validation import PydanticValidator

__all__ = [
    "StorageAdapter",
    "Validator",
    "WriteResult",
    "MemoryAdapter",
    "PydanticValidator",
]
