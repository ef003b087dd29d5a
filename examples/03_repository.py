"""
Example 03: Repository

This example demonstrates saving a relation tree in two phases, eager
loading with embed and lazy loading through the registry fetch handler.
"""

import importlib
import logging

from row_model import MemoryAdapter, Repository

relations = importlib.import_module("02_relations")


def main():
    logging.basicConfig(level=logging.INFO)

    adapter = MemoryAdapter()
    registry = relations.build_registry(adapter)
    repository = Repository(registry)

    gallery = registry.get("gallery").create({
        "name": "Holidays",
        "images": [
            {"name": "sunset.jpg", "tags": [{"name": "sky"}]},
            {"name": "dunes.jpg"},
        ],
    })
    repository.save(gallery, embed=["images.tags"])
    print(f"saved gallery id={gallery.id()} exists={gallery.exists}")
    print(f"image rows: {adapter.find('image', {})}")

    loaded = repository.load("gallery", gallery.id(), embed=["images.tags"])
    print(f"\neager: {loaded.to()}")

    registry.fetcher = repository.fetch
    image = repository.load("image", 1)
    print(f"lazy gallery name: {image.get('gallery.name')}")

    image.set("name", "sunrise.jpg")
    repository.save(image)
    print(f"after update: {adapter.find('image', {'id': 1})}")

    repository.delete(image)
    print(f"remaining images: {len(adapter.find('image', {}))}")


if __name__ == "__main__":
    main()
