"""
Manifest format for asset libraries.
"""
from .manifest import (
    AssetManifest,
    ManifestEntry,
    parse_manifest,
    LIBRARY_TYPES,
    MANIFEST_VERSION,
)

__all__ = [
    'AssetManifest',
    'ManifestEntry',
    'parse_manifest',
    'LIBRARY_TYPES',
    'MANIFEST_VERSION',
]
