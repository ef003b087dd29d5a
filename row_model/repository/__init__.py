"""Repository layer - loading and two-phase saving of entity graphs."""

from __future__ import annotations

from row_model.repository.base import Repository

__all__ = [
    "Repository",
]
