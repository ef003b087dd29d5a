"""Unit tests for PydanticValidator and entity validation."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, Field

from row_model.adapters.validation import PydanticValidator
from row_model.core.registry import SchemaRegistry


class GalleryRules(BaseModel):
    name: str = Field(min_length=1)


class ImageRules(BaseModel):
    name: str = Field(min_length=1)
    score: float | None = Field(default=None, ge=0)


class TestPydanticValidator:
    def test_valid(self) -> None:
        validator = PydanticValidator(GalleryRules)
        assert validator.validate({"name": "Foo"}) is True
        assert validator.errors() == {}

    def test_invalid_collects_messages_per_field(self) -> None:
        validator = PydanticValidator(GalleryRules)
        assert validator.validate({"name": ""}) is False
        assert list(validator.errors()) == ["name"]

    def test_missing_field(self) -> None:
        validator = PydanticValidator(GalleryRules)
        assert validator.validate({}) is False
        assert "name" in validator.errors()

    def test_strict_option(self) -> None:
        validator = PydanticValidator(ImageRules)
        assert validator.validate({"name": "a", "score": "1.5"}) is True
        assert validator.validate({"name": "a", "score": "1.5"}, {"strict": True}) is False

    def test_errors_reset_between_runs(self) -> None:
        validator = PydanticValidator(GalleryRules)
        validator.validate({"name": ""})
        validator.validate({"name": "Foo"})
        assert validator.errors() == {}


class TestEntityValidation:
    @pytest.fixture
    def validated(self, registry: SchemaRegistry) -> SchemaRegistry:
        registry.set_validator("gallery", PydanticValidator(GalleryRules))
        registry.set_validator("image", PydanticValidator(ImageRules))
        return registry

    def test_entity_errors(self, validated: SchemaRegistry) -> None:
        gallery = validated.get("gallery").create({"name": ""})
        assert gallery.validates() is False
        assert list(gallery.errors()) == ["name"]

    def test_embedded_errors(self, validated: SchemaRegistry) -> None:
        gallery = validated.get("gallery").create(
            {"name": "Foo", "images": [{"name": "a.jpg"}, {"name": "b.jpg", "score": -1}]}
        )
        assert gallery.validates() is True
        assert gallery.validates(embed="images") is False
        errors = gallery.errors(embed="images")
        assert list(errors) == ["images"]
        assert list(errors["images"]) == [1]
        assert list(errors["images"][1]) == ["score"]

    def test_errors_clear_once_valid(self, validated: SchemaRegistry) -> None:
        gallery = validated.get("gallery").create({"name": ""})
        gallery.validates()
        gallery.set("name", "Foo")
        assert gallery.validates() is True
        assert gallery.errors() == {}
