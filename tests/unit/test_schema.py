"""Unit tests for Schema: field definitions, casting, formatting and relations."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from row_model.collection.collection import Collection
from row_model.collection.through import Through
from row_model.core.enums import NullPolicy
from row_model.core.exceptions import (
    ConfigurationError,
    MissingThroughDefinition,
    RelationNotFoundError,
    UndefinedFieldError,
)
from row_model.core.registry import SchemaRegistry
from row_model.document.document import Document
from row_model.document.model import Model
from row_model.relationship.kinds import BelongsTo, HasMany, HasManyThrough, HasOne
from row_model.schema.schema import Schema


@pytest.fixture
def post_schema() -> Schema:
    registry = SchemaRegistry()
    return registry.define(
        "post",
        columns={
            "id": "serial",
            "title": {"type": "string", "default": "untitled"},
            "published": "boolean",
            "rating": {"type": "decimal", "precision": 1},
            "created": "datetime",
            "day": "date",
            "views": "integer",
            "tags": {"type": "string", "array": True},
            "author": {"type": "object"},
            "author.name": "string",
            "meta": {"type": "object"},
            "meta.count": {"type": "integer", "default": 0},
            "data": {"type": "object"},
            "data.*": "integer",
        },
    )


class TestFieldDefinitions:
    def test_column_exact_match(self, post_schema: Schema) -> None:
        assert post_schema.column("author.name").type == "string"

    def test_column_wildcard(self, post_schema: Schema) -> None:
        definition = post_schema.column("data.anything")
        assert definition is not None
        assert definition.name == "data.*"
        assert definition.type == "integer"

    def test_column_missing(self, post_schema: Schema) -> None:
        assert post_schema.column("author.age") is None

    def test_define_and_remove(self, post_schema: Schema) -> None:
        post_schema.define("slug", "string", length=20)
        assert post_schema.has("slug")
        assert post_schema.column("slug").length == 20
        post_schema.remove("slug")
        assert not post_schema.has("slug")

    def test_define_rejects_unknown_option(self, post_schema: Schema) -> None:
        with pytest.raises(ConfigurationError, match="slug"):
            post_schema.define("slug", "string", size=20)

    def test_serial_is_not_nullable(self, post_schema: Schema) -> None:
        assert post_schema.column("id").nullable is False
        assert post_schema.column("views").nullable is True

    def test_fields_are_top_level(self, post_schema: Schema) -> None:
        fields = post_schema.fields()
        assert "author" in fields
        assert "author.name" not in fields
        assert "data.*" not in fields

    def test_defaults_nested(self, post_schema: Schema) -> None:
        assert post_schema.defaults() == {"title": "untitled", "meta": {"count": 0}}
        assert post_schema.defaults("meta") == {"count": 0}

    def test_create_applies_defaults(self, post_schema: Schema) -> None:
        post = post_schema.create()
        assert post.get("title") == "untitled"
        assert post.get("meta.count") == 0

    def test_create_without_defaults(self, post_schema: Schema) -> None:
        post = post_schema.create({}, defaults=False)
        assert not post.has("title")

    def test_existing_data_skips_defaults(self, post_schema: Schema) -> None:
        post = post_schema.create({"id": 1}, exists=True)
        assert not post.has("title")


class TestCasting:
    def test_create_returns_model(self, post_schema: Schema) -> None:
        post = post_schema.create({"title": "Hello"})
        assert isinstance(post, Model)
        assert post.schema is post_schema
        assert post.exists is False

    def test_scalar_types(self, post_schema: Schema) -> None:
        post = post_schema.create(
            {"id": "3", "views": "12", "published": "false", "rating": "4.26", "day": "2014-10-26"}
        )
        assert post.get("id") == 3
        assert post.get("views") == 12
        assert post.get("published") is False
        assert post.get("rating") == Decimal("4.3")
        assert post.get("day") == date(2014, 10, 26)

    def test_boolean_strings(self, post_schema: Schema) -> None:
        post = post_schema.create()
        for raw, expected in (("yes", True), ("off", False), ("0", False), ("", False), (1, True)):
            post.set("published", raw)
            assert post.get("published") is expected

    def test_datetime_from_string(self, post_schema: Schema) -> None:
        post = post_schema.create({"created": "2014-10-26T00:25:15"})
        assert post.get("created") == datetime(2014, 10, 26, 0, 25, 15)

    def test_datetime_from_timestamp(self, post_schema: Schema) -> None:
        post = post_schema.create({"created": 0})
        assert post.get("created") == datetime(1970, 1, 1)
        assert post.get("created").tzinfo is None

    def test_aware_datetime_is_converted_to_utc(self, post_schema: Schema) -> None:
        post = post_schema.create({"created": "2014-10-26T02:25:15+02:00"})
        assert post.get("created") == datetime(2014, 10, 26, 0, 25, 15)
        post.set("created", datetime(2014, 10, 26, 2, 25, 15, tzinfo=timezone(timedelta(hours=2))))
        assert post.get("created") == datetime(2014, 10, 26, 0, 25, 15)

    def test_unparseable_value_is_kept(self, post_schema: Schema) -> None:
        post = post_schema.create({"views": "many"})
        assert post.get("views") == "many"

    def test_array_field(self, post_schema: Schema) -> None:
        post = post_schema.create({"tags": ["news", 42]})
        tags = post.get("tags")
        assert isinstance(tags, Collection)
        assert tags.values() == ["news", "42"]
        tags.append(7)
        assert tags.get(2) == "7"

    def test_object_field(self, post_schema: Schema) -> None:
        post = post_schema.create({"author": {"name": "Bob"}})
        author = post.get("author")
        assert isinstance(author, Document)
        assert author.base_path == "author"
        assert post.get("author.name") == "Bob"

    def test_wildcard_children(self, post_schema: Schema) -> None:
        post = post_schema.create()
        post.set("data.hits", "5")
        post.set("data.misses", 2.0)
        assert post.get("data.hits") == 5
        assert post.get("data.misses") == 2

    def test_undefined_field_on_locked_schema(self, post_schema: Schema) -> None:
        post = post_schema.create()
        with pytest.raises(UndefinedFieldError, match="unknown"):
            post.set("unknown", 1)

    def test_undefined_nested_field(self, post_schema: Schema) -> None:
        post = post_schema.create()
        with pytest.raises(UndefinedFieldError, match="author.age"):
            post.set("author.age", 30)

    def test_unlocked_schema_accepts_anything(self) -> None:
        schema = SchemaRegistry().define("free", locked=False)
        entity = schema.create({"a": {"b": 1}, "list": [1, 2]})
        assert entity.get("a.b") == 1
        assert isinstance(entity.get("a"), Document)
        assert isinstance(entity.get("list"), Collection)

    def test_create_collection(self, post_schema: Schema) -> None:
        posts = post_schema.create([{"title": "a"}, {"title": "b"}], collection=True)
        assert isinstance(posts, Collection)
        assert [post.get("title") for post in posts] == ["a", "b"]

    def test_cast_keeps_own_entities(self, post_schema: Schema) -> None:
        post = post_schema.create()
        assert post_schema.cast(None, post) is post


class TestFormatting:
    def test_to_array(self, post_schema: Schema) -> None:
        post = post_schema.create(
            {
                "rating": 3,
                "created": "2014-10-26T00:25:15",
                "day": "2014-10-26",
                "tags": ["a"],
                "author": {"name": "Bob"},
            },
            defaults=False,
        )
        assert post.to() == {
            "rating": "3.0",
            "created": "2014-10-26 00:25:15",
            "day": "2014-10-26",
            "tags": ["a"],
            "author": {"name": "Bob"},
        }

    def test_cast_array_cast_round_trip(self) -> None:
        schema = SchemaRegistry().define("sample")
        samples = {
            "id": "7",
            "serial": 8,
            "integer": "12",
            "float": "1.5",
            "decimal": "4.256",
            "date": "2014-10-26",
            "datetime": 1414283115,
            "boolean": "yes",
            "string": 42,
            "null": "anything",
        }
        for type_name, raw in samples.items():
            schema.define(type_name, type_name)
            value = schema.cast(type_name, raw)
            exported = schema.format("array", type_name, value)
            assert schema.cast(type_name, exported) == value, type_name

    def test_round_trip_of_aware_datetime(self, post_schema: Schema) -> None:
        value = post_schema.cast("created", "2014-10-26T00:25:15+02:00")
        exported = post_schema.format("array", "created", value)
        assert exported == "2014-10-25 22:25:15"
        assert post_schema.cast("created", exported) == value

    def test_custom_formatter(self, post_schema: Schema) -> None:
        post_schema.formatter("array", "boolean", lambda value, _: "Y" if value else "N")
        post = post_schema.create({"published": True}, defaults=False)
        assert post.to() == {"published": "Y"}

    def test_formatter_lookup(self, post_schema: Schema) -> None:
        assert post_schema.formatter("cast", "integer")("7", None) == 7
        assert post_schema.formatter("cast", "unknown") is None

    def test_unknown_type_is_left_alone(self) -> None:
        schema = SchemaRegistry().define("geo", columns={"point": "geometry"})
        point = (1.0, 2.0)
        assert schema.create({"point": point}).get("point") is point


class TestNullPolicy:
    @pytest.fixture
    def strict_schema(self) -> Schema:
        return SchemaRegistry().define(
            "strict",
            columns={
                "label": {"type": "string", "nullable": False},
                "count": {"type": "integer", "nullable": False},
                "active": {"type": "boolean", "nullable": False},
                "day": {"type": "date", "nullable": False},
                "note": "string",
            },
        )

    def test_nullable_keeps_none(self, strict_schema: Schema) -> None:
        assert strict_schema.create({"note": None}).get("note") is None

    def test_coerce_to_zero_value(self, strict_schema: Schema) -> None:
        entity = strict_schema.create({"label": None, "count": None, "active": None})
        assert entity.get("label") == ""
        assert entity.get("count") == 0
        assert entity.get("active") is False

    def test_keep_for_dates(self, strict_schema: Schema) -> None:
        assert strict_schema.create({"day": None}).get("day") is None

    def test_policy_override(self, strict_schema: Schema) -> None:
        assert strict_schema.null_policy("string") is NullPolicy.COERCE
        strict_schema.null_policy("string", NullPolicy.KEEP)
        assert strict_schema.create({"label": None}).get("label") is None

    def test_policy_from_config(self) -> None:
        schema = SchemaRegistry().define(
            "strict",
            columns={"count": {"type": "integer", "nullable": False}},
            null_policies={"integer": "keep"},
        )
        assert schema.create({"count": None}).get("count") is None

    def test_serial_keeps_none(self) -> None:
        schema = SchemaRegistry().define("entry", columns={"id": "serial"})
        assert schema.create({"id": None}).get("id") is None


class TestAccessors:
    def test_getter(self) -> None:
        schema = SchemaRegistry().define(
            "person",
            columns={
                "first": "string",
                "last": "string",
                "full": {
                    "type": "string",
                    "virtual": True,
                    "getter": lambda entity, value, name: (
                        f"{entity.get('first')} {entity.get('last')}"
                    ),
                },
            },
        )
        person = schema.create({"first": "Ada", "last": "Lovelace"})
        assert person.get("full") == "Ada Lovelace"
        assert not person.has("full")

    def test_virtual_field_is_not_stored(self) -> None:
        schema = SchemaRegistry().define(
            "person", columns={"full": {"type": "string", "virtual": True}}
        )
        person = schema.create()
        person.set("full", "Ada Lovelace")
        assert not person.has("full")
        assert "full" not in schema.fields()

    def test_setter(self) -> None:
        schema = SchemaRegistry().define(
            "person",
            columns={
                "email": {
                    "type": "string",
                    "setter": lambda entity, value, name: value.strip().lower(),
                }
            },
        )
        person = schema.create({"email": "  Ada@Example.COM "})
        assert person.get("email") == "ada@example.com"


class TestBindings:
    def test_relation_kinds(self, registry: SchemaRegistry) -> None:
        gallery = registry.get("gallery")
        image = registry.get("image")
        assert isinstance(gallery.relation("detail"), HasOne)
        assert isinstance(gallery.relation("images"), HasMany)
        assert isinstance(image.relation("gallery"), BelongsTo)
        assert isinstance(image.relation("tags"), HasManyThrough)

    def test_default_keys(self, registry: SchemaRegistry) -> None:
        assert registry.get("gallery").relation("images").keys == {"id": "gallery_id"}
        assert registry.get("image").relation("gallery").keys == {"gallery_id": "id"}

    def test_pivot_relation_is_junction(self, registry: SchemaRegistry) -> None:
        image = registry.get("image")
        assert image.is_junction("images_tags")
        assert image.relation("images_tags").junction is True
        assert registry.get("gallery").relation("images").junction is False

    def test_relation_cache(self, registry: SchemaRegistry) -> None:
        gallery = registry.get("gallery")
        assert gallery.relation("images") is gallery.relation("images")

    def test_relation_not_found(self, registry: SchemaRegistry) -> None:
        with pytest.raises(RelationNotFoundError, match="missing"):
            registry.get("gallery").relation("missing")

    def test_relations(self, registry: SchemaRegistry) -> None:
        assert registry.get("gallery").relations() == ["detail", "images"]
        assert registry.get("image").relations() == ["gallery", "images_tags", "tags"]

    def test_embedded_object_fields(self) -> None:
        schema = SchemaRegistry().define(
            "post", columns={"author": {"type": "object"}, "author.name": "string"}
        )
        assert schema.relations() == []
        assert schema.relations(include_embedded=True) == ["author"]
        assert schema.has_relation("author")
        assert not schema.has_relation("author", embedded=False)

    def test_unbind(self, registry: SchemaRegistry) -> None:
        gallery = registry.get("gallery")
        assert gallery.unbind("detail") is True
        assert gallery.unbind("detail") is False
        assert not gallery.has_relation("detail")

    def test_unknown_kind(self, registry: SchemaRegistry) -> None:
        with pytest.raises(ConfigurationError, match="Unexisting binding relation `owns`"):
            registry.get("gallery").bind("owner", relation="owns", to="user")

    def test_unsupported_binding_object(self, registry: SchemaRegistry) -> None:
        gallery = registry.get("gallery")
        gallery._bindings["cover"] = SimpleNamespace(conditions={}, embedded=False)
        with pytest.raises(ConfigurationError, match="Unsupported binding for relation `cover`"):
            gallery.relation("cover")

    def test_missing_to(self, registry: SchemaRegistry) -> None:
        with pytest.raises(ConfigurationError, match="requires `to`"):
            registry.get("gallery").bind("cover", relation="hasOne")

    def test_missing_through(self, registry: SchemaRegistry) -> None:
        with pytest.raises(MissingThroughDefinition):
            registry.get("gallery").bind("tags", relation="hasManyThrough")

    def test_keys_must_be_one_pair(self, registry: SchemaRegistry) -> None:
        with pytest.raises(ConfigurationError):
            registry.get("gallery").bind(
                "cover", relation="hasOne", to="image", keys={"id": "gallery_id", "a": "b"}
            )

    def test_using_defaults_to_singular_name(self, registry: SchemaRegistry) -> None:
        gallery = registry.get("gallery")
        gallery.bind("images_tags", relation="hasMany", to="image_tag", keys={"id": "image_id"})
        gallery.bind("tags", relation="hasManyThrough", through="images_tags")
        assert gallery.relation("tags").using == "tag"


class TestPaths:
    def test_expand(self, image_schema: Schema) -> None:
        assert image_schema.expand(["tags"]) == {"tags": None, "images_tags.tag": None}

    def test_expand_copies_options_to_pivot_path(self, image_schema: Schema) -> None:
        options = {"conditions": {"name": "sunset"}}
        expanded = image_schema.expand({"tags": options})
        assert expanded["tags"] == options
        assert expanded["images_tags.tag"] == options

    def test_expand_nested(self, image_schema: Schema) -> None:
        expanded = image_schema.expand("tags.images")
        assert expanded == {"tags.images": None, "images_tags.tag.images": None}

    def test_treeify(self, gallery_schema: Schema) -> None:
        assert gallery_schema.treeify(["images", "detail"]) == {"images": None, "detail": None}

    def test_treeify_nested(self, gallery_schema: Schema) -> None:
        tree = gallery_schema.treeify(["images.gallery", "images.tags"])
        assert tree == {"images": {"embed": {"gallery": None, "tags": None}}}

    def test_treeify_through(self, image_schema: Schema) -> None:
        assert image_schema.treeify("tags") == {
            "images_tags": {"embed": {"tag": None}},
            "tags": None,
        }

    def test_treeify_keeps_options(self, gallery_schema: Schema) -> None:
        tree = gallery_schema.treeify({"images": {"conditions": {"name": "a.jpg"}}})
        assert tree == {"images": {"conditions": {"name": "a.jpg"}}}

    def test_treeify_skips_unknown(self, gallery_schema: Schema) -> None:
        assert gallery_schema.treeify(["name", "missing"]) == {}


class TestRelationCasting:
    def test_has_many_becomes_collection(self, gallery_schema: Schema, image_schema: Schema) -> None:
        gallery = gallery_schema.create({"images": [{"name": "a.jpg"}]})
        images = gallery.get("images")
        assert isinstance(images, Collection)
        assert images.schema is image_schema
        assert images.get(0).schema is image_schema

    def test_belongs_to_mirrors_foreign_key(self, image_schema: Schema) -> None:
        image = image_schema.create({"gallery": {"id": 4, "name": "Foo"}})
        assert image.get("gallery_id") == 4

    def test_through_needs_parent(self, image_schema: Schema) -> None:
        with pytest.raises(MissingThroughDefinition):
            image_schema.cast("tags", [])

    def test_through_becomes_view(self, image_schema: Schema) -> None:
        image = image_schema.create({"tags": [{"name": "red"}]})
        assert isinstance(image.get("tags"), Through)
        assert image.get("images_tags.0.tag.name") == "red"
