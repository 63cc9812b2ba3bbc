"""Core input handling - manifest parsing."""

from .manifest import Manifest, ManifestEntry, load_manifest

__all__ = [
    "Manifest",
    "ManifestEntry",
    "load_manifest",
]
