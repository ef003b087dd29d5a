"""
Example 01: Schema Casting

This example demonstrates declaring a schema and letting it cast raw input
into typed values, nested documents and collections.
"""

from row_model import SchemaRegistry, NullPolicy


def main():
    registry = SchemaRegistry()
    post = registry.define(
        "post",
        columns={
            "id": "serial",
            "title": {"type": "string", "default": "untitled"},
            "published": "boolean",
            "rating": {"type": "decimal", "precision": 1},
            "created": "datetime",
            "tags": {"type": "string", "array": True},
            "author": {"type": "object"},
            "author.name": "string",
            "counters": {"type": "object"},
            "counters.*": "integer",
            "views": {"type": "integer", "nullable": False},
        },
    )

    entity = post.create({
        "published": "no",
        "rating": "4.26",
        "created": "2014-10-26T00:25:15",
        "tags": ["news", 42],
        "author": {"name": "Ada"},
        "views": None,
    })

    print("Typed values:")
    print(f"  title     -> {entity.get('title')!r}")
    print(f"  published -> {entity.get('published')!r}")
    print(f"  rating    -> {entity.get('rating')!r}")
    print(f"  created   -> {entity.get('created')!r}")
    print(f"  views     -> {entity.get('views')!r}")

    # Wildcard children are cast with the `counters.*` definition
    entity.set("counters.likes", "12")
    print(f"  likes     -> {entity.get('counters.likes')!r}")

    print("\nPlain data export:")
    print(entity.to())

    # Keep None for non-nullable integers instead of coercing to 0
    post.null_policy("integer", NullPolicy.KEEP)
    print(f"\nviews with KEEP policy: {post.create({'views': None}).get('views')!r}")


if __name__ == "__main__":
    main()
