#!/usr/bin/env python3
"""
Walk through the artwork registry locally.

Adds artwork, updates it by token, and replaces the whole collection
with one artwork, using in-memory stores for the example manifest.
"""

import sys
from pathlib import Path

from artprovider import Artwork, ArtworkRegistry, ManifestLookup, ProviderManifest


def show(registry, provider):
    for artwork in registry.list_artwork(provider):
        print(f"  {artwork.id}: {artwork.token} - {artwork.title}")


def main():
    manifest_path = Path(__file__).parent / "providers.yaml"
    manifest = ProviderManifest.from_file(manifest_path)
    # Keep everything in memory for the example
    for entry in manifest.providers.values():
        entry.database = ":memory:"

    registry = ArtworkRegistry(manifest.local_transport(), ManifestLookup(manifest))
    print(f"Providers: {[entry.name for entry in manifest.enabled()]}")
    print()

    registry.add_artwork("featured", Artwork(token="starry-night", title="The Starry Night"))
    registry.add_artwork("featured", Artwork(token="sunflowers", title="Sunflowers"))
    # Same token: updates the first row instead of adding one
    registry.add_artwork("featured", Artwork(token="starry-night", byline="Vincent van Gogh, 1889"))
    print("After adds:")
    show(registry, "featured")

    latest = registry.get_last_added("featured")
    print(f"Last added: {latest.title}")
    print()

    row_uri = registry.set_artwork("featured", Artwork(token="irises", title="Irises"))
    print(f"Set {row_uri}; remaining:")
    show(registry, "featured")

    return 0


if __name__ == "__main__":
    sys.exit(main())
