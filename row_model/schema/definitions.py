"""Field definition data classes.

Frozen dataclasses built from validated FieldConfig declarations and used
by Schema at casting time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from row_model.core.config import FieldConfig


@dataclass(frozen=True)
class FieldDefinition:
    """Effective definition of one field path."""

    name: str
    type: str = "string"
    array: bool = False
    nullable: bool = True
    default: Any = None
    has_default: bool = False
    length: int | None = None
    precision: int | None = None
    virtual: bool = False
    getter: Callable[..., Any] | None = None
    setter: Callable[..., Any] | None = None
    model: str | None = None

    @classmethod
    def from_config(cls, name: str, config: FieldConfig) -> FieldDefinition:
        nullable = config.nullable
        if nullable is None:
            nullable = config.type != "serial"
        return cls(
            name=name,
            type=config.type,
            array=config.array,
            nullable=nullable,
            default=config.default,
            has_default="default" in config.model_fields_set,
            length=config.length,
            precision=config.precision,
            virtual=config.virtual,
            getter=config.getter,
            setter=config.setter,
            model=config.model,
        )

    @property
    def is_object(self) -> bool:
        return self.type == "object"

    @property
    def is_nested(self) -> bool:
        return "." in self.name
