# artprovider/registry/__init__.py
"""
Artwork registry.

The registry client reads and writes a provider's artwork table. Artwork
is unique by token, and a provider's collection can be replaced by a
single artwork in one atomic step.

Example:
    registry = ArtworkRegistry(transport, lookup)
    registry.add_artwork("featured", Artwork(token="starry-night", title="The Starry Night"))

    # Show only this artwork from now on
    registry.set_artwork("featured", Artwork(token="sunflowers", title="Sunflowers"))
"""

from .registry import ArtworkRegistry

__all__ = ["ArtworkRegistry"]
