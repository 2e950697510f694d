from __future__ import annotations

"""Library implementations and codecs plugged into the registry.

Currently provides:
- AssetLibrary: the contract every library implements
- FileSystemLibrary: a directory tree served as one namespace
- ManifestLibrary: a namespace described by a manifest file
- decode_asset: pygame based decoding of raw file contents
"""

from .library import (  # noqa: F401
    AssetLibrary,
    FileBackedLibrary,
    FileSystemLibrary,
    ManifestLibrary,
    library_from_manifest,
)
from .decoders import decode_asset  # noqa: F401
