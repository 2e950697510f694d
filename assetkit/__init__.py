"""
assetkit - namespaced asset resolution and caching.

Request images, fonts, audio, bytes or text by ``[library:]name``; the
registry finds the owning library, loads the asset synchronously or
asynchronously, and caches the decoded result.
"""
from .engine.asset_types import AssetType, AudioBuffer, Font, Image
from .engine.asset_cache import AssetCache
from .engine.async_loader import AsyncLoader
from .engine.config_io import RegistryConfig, load_config
from .engine.errors import (
    AssetError,
    AssetLoadError,
    AssetResult,
    AsyncOnlyConflictError,
    LibraryConstructionError,
    ManifestParseError,
    MissingLibraryError,
    MissingSymbolError,
    UnsupportedTypeError,
)
from .engine.event_bus import ChangeEvent
from .engine.futures import Future, Promise
from .engine.registry import AssetRegistry
from .engine.symbols import LibrarySymbol, parse_identifier
from .adapters.library import (
    AssetLibrary,
    FileSystemLibrary,
    ManifestLibrary,
    library_from_manifest,
)
from .packaging.manifest import AssetManifest, ManifestEntry, parse_manifest

__version__ = "0.1.0"

__all__ = [
    'AssetType', 'AudioBuffer', 'Font', 'Image',
    'AssetCache', 'AsyncLoader', 'RegistryConfig', 'load_config',
    'AssetError', 'AssetLoadError', 'AssetResult', 'AsyncOnlyConflictError',
    'LibraryConstructionError', 'ManifestParseError',
    'MissingLibraryError', 'MissingSymbolError', 'UnsupportedTypeError',
    'ChangeEvent', 'Future', 'Promise', 'AssetRegistry',
    'LibrarySymbol', 'parse_identifier',
    'AssetLibrary', 'FileSystemLibrary', 'ManifestLibrary', 'library_from_manifest',
    'AssetManifest', 'ManifestEntry', 'parse_manifest',
]
