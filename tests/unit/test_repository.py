"""Unit tests for Repository."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from row_model.adapters.memory import MemoryAdapter
from row_model.adapters.protocol import WriteResult
from row_model.core.exceptions import (
    ConfigurationError,
    MissingIdentifierError,
    NotFoundError,
    PersistenceError,
)
from row_model.core.registry import SchemaRegistry
from row_model.repository.base import Repository


class TestRepository:
    def test_adapter_from_registry(self, registry: SchemaRegistry, adapter: MemoryAdapter) -> None:
        assert Repository(registry).adapter is adapter

    def test_adapter_required(self) -> None:
        with pytest.raises(ConfigurationError, match="adapter"):
            Repository(SchemaRegistry())

    def test_fetch_delegates_to_adapter(self, registry: SchemaRegistry) -> None:
        adapter = MagicMock()
        adapter.find.return_value = [{"id": 1}]
        repository = Repository(registry, adapter)
        schema = registry.get("image")
        assert repository.fetch(schema, {"gallery_id": 1}) == [{"id": 1}]
        adapter.find.assert_called_once_with("image", {"gallery_id": 1}, None)

    def test_insert_failure(self, registry: SchemaRegistry) -> None:
        adapter = MagicMock()
        adapter.insert.return_value = WriteResult(error="disk full")
        repository = Repository(registry, adapter)
        gallery = registry.get("gallery").create({"name": "Foo"})
        with pytest.raises(PersistenceError, match="disk full"):
            repository.save(gallery)
        assert gallery.exists is False

    def test_update_only_sends_modified_fields(self, registry: SchemaRegistry) -> None:
        adapter = MagicMock()
        adapter.update.return_value = WriteResult(count=1)
        repository = Repository(registry, adapter)
        image = registry.get("image").create({"id": 4, "name": "a.jpg", "score": 1.0}, exists=True)
        image.set("score", 2.5)
        assert repository.save(image) is True
        adapter.update.assert_called_once_with("image", {"score": 2.5}, {"id": 4})
        assert image.modified() is False

    def test_unmodified_entity_is_not_written(self, registry: SchemaRegistry) -> None:
        adapter = MagicMock()
        repository = Repository(registry, adapter)
        image = registry.get("image").create({"id": 4, "name": "a.jpg"}, exists=True)
        repository.save(image)
        adapter.update.assert_not_called()
        adapter.insert.assert_not_called()

    def test_load_missing(self, repository: Repository) -> None:
        with pytest.raises(NotFoundError, match="doesn't exists in `gallery`"):
            repository.load("gallery", 42)

    def test_load_keyless_schema(self, registry: SchemaRegistry, repository: Repository) -> None:
        registry.define("log", keyless=True, columns={"msg": "string"})
        with pytest.raises(MissingIdentifierError):
            repository.load("log", 1)

    def test_delete_without_id(self, registry: SchemaRegistry, repository: Repository) -> None:
        gallery = registry.get("gallery").create({"name": "Foo"})
        with pytest.raises(MissingIdentifierError):
            repository.delete(gallery)

    def test_reload_missing(self, registry: SchemaRegistry, repository: Repository) -> None:
        gallery = registry.get("gallery").create({"id": 3, "name": "Foo"}, exists=True)
        with pytest.raises(NotFoundError):
            repository.reload(gallery)
