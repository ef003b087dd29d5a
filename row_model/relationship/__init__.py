"""Relationship layer - relation kinds and their behaviour."""

from __future__ import annotations

from row_model.relationship.kinds import BelongsTo, HasMany, HasManyThrough, HasOne, Relation

__all__ = [
    "Relation",
    "BelongsTo",
    "HasOne",
    "HasMany",
    "HasManyThrough",
]
