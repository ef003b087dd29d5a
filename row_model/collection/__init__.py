"""Collection layer - ordered containers and through views."""

from __future__ import annotations

from row_model.collection.collection import Collection
from row_model.collection.through import Through

__all__ = [
    "Collection",
    "Through",
]
