"""
Example 02: Relations

This example demonstrates belongsTo, hasMany and hasManyThrough relations,
dirty tracking and iteration over a through view.
"""

from row_model import SchemaRegistry


def build_registry(adapter=None) -> SchemaRegistry:
    registry = SchemaRegistry(adapter=adapter)
    registry.define(
        "gallery",
        columns={"id": "serial", "name": "string"},
        relations={"images": {"relation": "hasMany", "to": "image"}},
    )
    registry.define(
        "image",
        columns={"id": "serial", "gallery_id": "integer", "name": "string"},
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
    registry.define("tag", columns={"id": "serial", "name": "string"})
    return registry


def main():
    registry = build_registry()

    image = registry.get("image").create({
        "name": "sunset.jpg",
        "gallery": {"id": 3, "name": "Holidays"},
        "tags": [{"name": "sky"}, {"name": "orange"}],
    })

    print(f"gallery_id mirrored from the related gallery: {image.get('gallery_id')}")
    print(f"tags: {[tag.get('name') for tag in image.get('tags')]}")
    print(f"pivot rows: {len(image.get('images_tags'))}")
    print(f"loaded relation paths: {image.hierarchy()}")

    image.get("tags").append({"name": "beach"})
    print(f"\nmodified without embed: {image.modified()}")
    print(f"modified with tags:     {image.modified(embed='tags')}")

    # Removing while iterating neither skips nor repeats items
    tags = image.get("tags")
    for tag in tags:
        if tag.get("name") == "sky":
            tags.unset(0)
    print(f"after removal: {[tag.get('name') for tag in tags]}")


if __name__ == "__main__":
    main()
