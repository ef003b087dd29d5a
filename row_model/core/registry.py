"""Schema registry.

Holds every schema of an application by name, together with the naming
conventions, the optional storage adapter whose formatters schemas merge,
the validators and the default fetch handler. Entities reach their
related schemas through the registry of their own schema; nothing is
stored on classes or in module globals.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from row_model.core.config import SchemaConfig
from row_model.core.conventions import Conventions
from row_model.core.exceptions import ConfigurationError, SchemaNotFoundError

if TYPE_CHECKING:
    from row_model.adapters.protocol import StorageAdapter, Validator
    from row_model.schema.schema import Schema

logger = logging.getLogger("row_model.registry")

Fetcher = Callable[..., Any]


class SchemaRegistry:
    """Name-keyed registry of schemas.

    Args:
        conventions: Naming rules shared by every schema of the registry.
        adapter: Storage adapter whose formatter table is merged into each
            schema registered afterwards.
        fetcher: Default fetch handler used for lazy relation reads,
            called as ``fetcher(schema, conditions, options)``.
    """

    def __init__(
        self,
        conventions: Conventions | None = None,
        adapter: StorageAdapter | None = None,
        fetcher: Fetcher | None = None,
    ) -> None:
        self.conventions = conventions or Conventions()
        self.adapter = adapter
        self.fetcher = fetcher
        self._schemas: dict[str, Schema] = {}
        self._validators: dict[str, Validator] = {}

    def define(self, name: str, **config: Any) -> Schema:
        """Build a schema from keyword configuration and register it.

        Raises:
            ConfigurationError: If the configuration does not validate.
        """
        from row_model.schema.schema import Schema

        try:
            config_model = SchemaConfig(name=name, **config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for schema `{name}`: {e}") from e
        schema = Schema(config_model, registry=self)
        return self.register(schema)

    def register(self, schema: Schema) -> Schema:
        if schema.registry is not self:
            schema.registry = self
        self._schemas[schema.name] = schema
        logger.info("Registered schema: %s -> %s", schema.name, schema.source)
        return schema

    def get(self, name: str) -> Schema:
        """Look up a schema by name.

        Raises:
            SchemaNotFoundError: If no schema is registered under ``name``.
        """
        try:
            return self._schemas[name]
        except KeyError:
            raise SchemaNotFoundError(name) from None

    def has(self, name: str) -> bool:
        return name in self._schemas

    def remove(self, name: str) -> None:
        self._schemas.pop(name, None)
        self._validators.pop(name, None)

    def set_validator(self, name: str, validator: Validator) -> None:
        self._validators[name] = validator

    def validator(self, name: str) -> Validator | None:
        return self._validators.get(name)

    @property
    def names(self) -> list[str]:
        """List all registered schema names, sorted alphabetically."""
        return sorted(self._schemas.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._schemas

    def __len__(self) -> int:
        """Number of registered schemas."""
        return len(self._schemas)
