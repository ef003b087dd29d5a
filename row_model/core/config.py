"""Schema configuration models.

SchemaConfig and FieldConfig are Pydantic models for type-safe schema
declarations. Relation bindings are validated through a discriminated
union on their ``relation`` key so that an invalid binding fails when it
is bound, never later while casting.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from row_model.core.enums import NullPolicy


class FieldConfig(BaseModel):
    """Declaration of a single (possibly dotted or wildcard) field."""

    model_config = ConfigDict(extra="forbid")

    type: str = "string"
    array: bool = False
    nullable: bool | None = None
    default: Any = None
    length: int | None = None
    precision: int | None = None
    virtual: bool = False
    getter: Callable[..., Any] | None = None
    setter: Callable[..., Any] | None = None
    model: str | None = None


class _BindingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    conditions: dict[str, Any] = {}
    embedded: bool = False


class _DirectBindingConfig(_BindingConfig):
    to: str
    keys: dict[str, str] | None = None

    @field_validator("keys")
    @classmethod
    def _single_pair(cls, value: dict[str, str] | None) -> dict[str, str] | None:
        if value is not None and len(value) != 1:
            raise ValueError("keys must hold exactly one `from: to` pair")
        return value


class BelongsToConfig(_DirectBindingConfig):
    relation: Literal["belongsTo"]


class HasOneConfig(_DirectBindingConfig):
    relation: Literal["hasOne"]


class HasManyConfig(_DirectBindingConfig):
    relation: Literal["hasMany"]
    junction: bool = False


class HasManyThroughConfig(_BindingConfig):
    relation: Literal["hasManyThrough"]
    through: str
    using: str | None = None


BindingConfig = Annotated[
    Union[BelongsToConfig, HasOneConfig, HasManyConfig, HasManyThroughConfig],
    Field(discriminator="relation"),
]

binding_adapter: TypeAdapter[Any] = TypeAdapter(BindingConfig)


class SchemaConfig(BaseModel):
    """Configuration for one entity schema."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    source: str | None = None
    key: str | None = None
    keyless: bool = False
    locked: bool = True
    columns: dict[str, FieldConfig] = {}
    relations: dict[str, dict[str, Any]] = {}
    meta: dict[str, Any] = {}
    null_policies: dict[str, NullPolicy] = {}
    model: Any = None

    @field_validator("columns", mode="before")
    @classmethod
    def _type_shorthand(cls, value: Any) -> Any:
        # {"name": "string"} is accepted as {"name": {"type": "string"}}
        if isinstance(value, dict):
            return {
                name: {"type": options} if isinstance(options, str) else options
                for name, options in value.items()
            }
        return value
