"""Shared test fixtures."""

from __future__ import annotations

import pytest

from row_model.adapters.memory import MemoryAdapter
from row_model.core.registry import SchemaRegistry
from row_model.repository.base import Repository
from row_model.schema.schema import Schema


@pytest.fixture
def adapter() -> MemoryAdapter:
    """Empty in-memory storage."""
    return MemoryAdapter()


@pytest.fixture
def registry(adapter: MemoryAdapter) -> SchemaRegistry:
    """Registry holding a small gallery domain.

    gallery -hasOne-> gallery_detail, gallery -hasMany-> image,
    image -hasManyThrough(images_tags)-> tag and back.
    """
    registry = SchemaRegistry(adapter=adapter)
    registry.define(
        "gallery",
        columns={"id": "serial", "name": "string"},
        relations={
            "detail": {"relation": "hasOne", "to": "gallery_detail"},
            "images": {"relation": "hasMany", "to": "image"},
        },
    )
    registry.define(
        "gallery_detail",
        columns={"id": "serial", "description": "string", "gallery_id": "integer"},
        relations={"gallery": {"relation": "belongsTo", "to": "gallery"}},
    )
    registry.define(
        "image",
        columns={
            "id": "serial",
            "gallery_id": "integer",
            "name": "string",
            "title": {"type": "string", "length": 50},
            "score": "float",
        },
        relations={
            "gallery": {"relation": "belongsTo", "to": "gallery"},
            "images_tags": {"relation": "hasMany", "to": "image_tag"},
            "tags": {"relation": "hasManyThrough", "through": "images_tags", "using": "tag"},
        },
    )
    registry.define(
        "image_tag",
        columns={"id": "serial", "image_id": "integer", "tag_id": "integer"},
        relations={
            "image": {"relation": "belongsTo", "to": "image"},
            "tag": {"relation": "belongsTo", "to": "tag"},
        },
    )
    registry.define(
        "tag",
        columns={"id": "serial", "name": "string"},
        relations={
            "images_tags": {"relation": "hasMany", "to": "image_tag", "keys": {"id": "tag_id"}},
            "images": {"relation": "hasManyThrough", "through": "images_tags", "using": "image"},
        },
    )
    return registry


@pytest.fixture
def repository(registry: SchemaRegistry, adapter: MemoryAdapter) -> Repository:
    return Repository(registry, adapter)


@pytest.fixture
def gallery_schema(registry: SchemaRegistry) -> Schema:
    return registry.get("gallery")


@pytest.fixture
def image_schema(registry: SchemaRegistry) -> Schema:
    return registry.get("image")


@pytest.fixture
def tag_schema(registry: SchemaRegistry) -> Schema:
    return registry.get("tag")
