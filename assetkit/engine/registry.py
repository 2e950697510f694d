"""
Asset Registry - the entry point for every asset request.

Coordinates:
- Symbol resolution (``[library:]name`` -> owning library)
- The typed asset cache
- Synchronous and asynchronous retrieval from libraries
- Library registration, unloading and manifest loading
- Change notification from libraries to listeners

The registry is an ordinary object: create one at startup, pass it to the
code that needs assets, shut it down at exit. Tests build a fresh one each.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .asset_cache import AssetCache, CacheStats
from .asset_types import AssetType, AudioBuffer, Font, Image
from .async_loader import AsyncLoader, LoadProgress
from .config_io import RegistryConfig
from .errors import (
    AssetLoadError,
    AssetResult,
    AsyncOnlyConflictError,
    LibraryConstructionError,
    ManifestParseError,
    MissingLibraryError,
    MissingSymbolError,
    UnsupportedTypeError,
)
from .event_bus import ChangeEvent
from .futures import Future, Promise
from .symbols import LibrarySymbol, library_key, parse_identifier

if TYPE_CHECKING:  # pragma: no cover
    from ..adapters.library import AssetLibrary
    from ..packaging.manifest import AssetManifest

logger = logging.getLogger(__name__)


@dataclass
class RegistryStats:
    """Combined registry statistics."""
    libraries: int = 0
    in_flight: int = 0
    cache: Optional[CacheStats] = None
    loader: Optional[LoadProgress] = None


class AssetRegistry:
    """
    Namespaced asset registry.

    Usage:
        registry = AssetRegistry(RegistryConfig.load("assetkit.json"))
        registry.register_library("default", FileSystemLibrary(Path("assets")))

        # Synchronous, cached
        logo = registry.get_image("ui/logo.png")

        # Asynchronous
        registry.load_library("music").on_complete(start_menu)
        registry.load_audio_buffer("music:theme.ogg").on_complete(play)

        # once per frame
        registry.update()
    """

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        *,
        cache: Optional[AssetCache] = None,
        loader: Optional[AsyncLoader] = None,
    ) -> None:
        self.config = config or RegistryConfig()
        self.cache = cache if cache is not None else AssetCache(enabled=self.config.cache_enabled)
        self.loader = loader if loader is not None else AsyncLoader(self.config.loader_workers)
        self.on_change = ChangeEvent()

        # guards the library map together with the cache mutations tied to it
        self._lock = threading.RLock()
        self._libraries: Dict[str, "AssetLibrary"] = {}
        self._library_paths: Dict[str, str] = {}
        # (id, type) -> (library, cache version, shared fetch)
        self._in_flight: Dict[Tuple[str, AssetType], Tuple["AssetLibrary", int, Future[Any]]] = {}

    @property
    def default_library(self) -> str:
        return self.config.default_library

    # ========================================================================
    # Libraries
    # ========================================================================

    def get_library(self, name: Optional[str]) -> Optional["AssetLibrary"]:
        return self._libraries.get(library_key(name or "", self.default_library))

    def has_library(self, name: Optional[str]) -> bool:
        return self.get_library(name) is not None

    def library_names(self) -> List[str]:
        return list(self._libraries)

    def register_library(self, name: Optional[str], library: Optional["AssetLibrary"]) -> None:
        """Bind ``library`` to ``name``, unloading whatever was bound before."""
        key = library_key(name or "", self.default_library)
        with self._lock:
            current = self._libraries.get(key)
            if current is not None:
                if current is library:
                    return
                self.unload_library(key)
            if library is not None:
                library.on_change.add(self._library_on_change)
                self._libraries[key] = library
                logger.debug(f"Registered asset library {key!r}")

    def unload_library(self, name: Optional[str]) -> None:
        """Drop a library, its cache entries and its change subscription."""
        key = library_key(name or "", self.default_library)
        with self._lock:
            library = self._libraries.get(key)
            if library is None:
                return
            self.cache.clear(key + ":")
            if key == self.default_library:
                # unprefixed identifiers belong to the default library too
                for asset_id in self.cache.ids():
                    if not parse_identifier(asset_id)[0]:
                        self.cache.remove(asset_id)
            for in_flight_key in [k for k, v in self._in_flight.items() if v[0] is library]:
                del self._in_flight[in_flight_key]
            library.on_change.remove(self._library_on_change)
            library.unload()
            if self._libraries.get(key) is library:
                del self._libraries[key]
            logger.debug(f"Unloaded asset library {key!r}")

    def register_library_path(self, name: str, manifest_id: str) -> None:
        """Use ``manifest_id`` instead of the default manifest location for ``name``."""
        self._library_paths[library_key(name, self.default_library)] = manifest_id

    def load_library(self, name: str) -> Future["AssetLibrary"]:
        """
        Load a library from its manifest and register it.

        The manifest is read through the TEXT path, so it lives in whatever
        library owns ``<manifest_dir>/<name>.json`` (the default library
        unless a path was registered).
        """
        from ..adapters.library import library_from_manifest
        from ..packaging.manifest import parse_manifest

        key = library_key(name, self.default_library)
        existing = self._libraries.get(key)
        if existing is not None:
            return existing.load()

        manifest_id = self._library_paths.get(key) or f"{self.config.manifest_dir}/{key}.json"
        promise: Promise[AssetLibrary] = Promise()

        def _on_text(text: str) -> None:
            manifest = parse_manifest(text)
            if manifest is None:
                promise.error(ManifestParseError(f'Cannot parse asset manifest for library "{key}"', manifest_id))
                return
            self._apply_root_path(manifest, manifest_id)
            library = library_from_manifest(manifest, self.loader)
            if library is None:
                promise.error(LibraryConstructionError(f'Cannot open library "{key}"', manifest_id))
                return
            self.register_library(key, library)
            promise.complete_with(library.load())

        def _on_text_error(error: Any) -> None:
            logger.debug(f"Manifest {manifest_id!r} unavailable: {error}")
            promise.error(MissingLibraryError(f'There is no asset library with an ID of "{key}"', manifest_id))

        self.load_text(manifest_id).on_complete(_on_text).on_error(_on_text_error)
        return promise.future

    def _apply_root_path(self, manifest: "AssetManifest", manifest_id: str) -> None:
        # manifest paths are relative to the directory holding the manifest
        located = self.get_path(manifest_id)
        if located:
            base = str(Path(located).parent)
        else:
            base = str(PurePosixPath(parse_identifier(manifest_id)[1]).parent)
        if not manifest.root_path:
            manifest.root_path = base
        elif not Path(manifest.root_path).is_absolute():
            manifest.root_path = str(Path(base) / manifest.root_path)

    def _library_on_change(self) -> None:
        with self._lock:
            self.cache.clear()
            self._in_flight.clear()
        self.on_change.dispatch()

    # ========================================================================
    # Queries
    # ========================================================================

    def exists(self, asset_id: str, asset_type: Optional[AssetType] = None) -> bool:
        try:
            return LibrarySymbol(self, asset_id).exists(asset_type)
        except Exception as e:
            logger.error(f"exists({asset_id!r}) failed: {e}", exc_info=True)
            return False

    def is_local(self, asset_id: str, asset_type: Optional[AssetType] = None, use_cache: bool = True) -> bool:
        if use_cache and self.cache.enabled and self.cache.exists(asset_id, asset_type):
            return True
        return LibrarySymbol(self, asset_id).is_local(asset_type)

    def get_path(self, asset_id: str) -> Optional[str]:
        symbol = LibrarySymbol(self, asset_id)
        if symbol.library is None:
            logger.error(self._missing_library(symbol).message)
            return None
        return symbol.library.get_path(symbol.symbol_name)

    def list_symbols(self, asset_type: Optional[AssetType] = None) -> List[str]:
        """Every symbol of ``asset_type`` across libraries, in registration order."""
        items: List[str] = []
        for library in list(self._libraries.values()):
            items.extend(library.list_ids(asset_type) or ())
        return items

    def _missing_library(self, symbol: LibrarySymbol) -> MissingLibraryError:
        return MissingLibraryError.for_name(
            library_key(symbol.library_name, self.default_library), symbol.id
        )

    # ========================================================================
    # Synchronous access
    # ========================================================================

    def fetch_asset(self, asset_id: str, asset_type: AssetType, use_cache: bool = True) -> AssetResult[Any]:
        """
        Synchronously resolve an asset.

        Missing libraries, missing symbols and async-only symbols come back
        as ``AssetResult.error``. TEMPLATE raises UnsupportedTypeError.
        """
        if asset_type == AssetType.TEMPLATE:
            raise UnsupportedTypeError.for_id(asset_id, asset_type)

        if use_cache and self.cache.enabled:
            cached = self.cache.get(asset_id, asset_type)
            if cached is not None:
                return AssetResult(value=cached)

        symbol = LibrarySymbol(self, asset_id)
        if symbol.library is None:
            return AssetResult(error=self._missing_library(symbol))
        if not symbol.exists(asset_type):
            return AssetResult(error=MissingSymbolError.for_id(asset_id, asset_type))
        if not symbol.is_local(asset_type):
            return AssetResult(error=AsyncOnlyConflictError.for_id(asset_id, asset_type))

        try:
            asset = symbol.library.get_asset(symbol.symbol_name, asset_type)
        except UnsupportedTypeError:
            raise
        except Exception as e:
            logger.debug(f"Library failed to produce {asset_id!r}", exc_info=True)
            return AssetResult(error=AssetLoadError.for_id(asset_id, asset_type, e))
        if use_cache and self.cache.enabled:
            self.cache.set(asset_id, asset_type, asset)
        return AssetResult(value=asset)

    def get_asset(self, asset_id: str, asset_type: AssetType, use_cache: bool = True) -> Any:
        """Synchronous get; logs and returns None when the asset is unavailable."""
        result = self.fetch_asset(asset_id, asset_type, use_cache)
        if result.error is not None:
            logger.error(result.error.message)
            return None
        return result.value

    def get_image(self, asset_id: str, use_cache: bool = True) -> Optional[Image]:
        return self.get_asset(asset_id, AssetType.IMAGE, use_cache)

    def get_font(self, asset_id: str, use_cache: bool = True) -> Optional[Font]:
        return self.get_asset(asset_id, AssetType.FONT, use_cache)

    def get_audio_buffer(self, asset_id: str, use_cache: bool = True) -> Optional[AudioBuffer]:
        return self.get_asset(asset_id, AssetType.SOUND, use_cache)

    def get_bytes(self, asset_id: str) -> Optional[bytes]:
        return self.get_asset(asset_id, AssetType.BINARY, False)

    def get_text(self, asset_id: str) -> Optional[str]:
        return self.get_asset(asset_id, AssetType.TEXT, False)

    # ========================================================================
    # Asynchronous access
    # ========================================================================

    def load_asset(self, asset_id: str, asset_type: AssetType, use_cache: bool = True) -> Future[Any]:
        """
        Asynchronously resolve an asset.

        Every failure is carried by the returned Future. Concurrent loads of
        the same (id, type) share a single library fetch.
        """
        if asset_type == AssetType.TEMPLATE:
            raise UnsupportedTypeError.for_id(asset_id, asset_type)

        if use_cache and self.cache.enabled:
            cached = self.cache.get(asset_id, asset_type)
            if cached is not None:
                return Future.with_value(cached)

        symbol = LibrarySymbol(self, asset_id)
        if symbol.library is None:
            return Future.with_error(self._missing_library(symbol))
        if not symbol.exists(asset_type):
            return Future.with_error(MissingSymbolError.for_id(asset_id, asset_type))

        shared = self._fetch_shared(symbol, asset_type)

        if use_cache:
            library = symbol.library
            version = self.cache.version

            def _store(asset: Any) -> None:
                # stale once the cache was cleared or the library replaced
                if self.cache.version == version and self.get_library(symbol.library_name) is library:
                    self.cache.set(asset_id, asset_type, asset)

            shared.on_complete(_store)

        promise: Promise[Any] = Promise()
        promise.complete_with(shared)
        return promise.future

    def _fetch_shared(self, symbol: LibrarySymbol, asset_type: AssetType) -> Future[Any]:
        key = (symbol.id, asset_type)
        entry = self._in_flight.get(key)
        if entry is not None and entry[0] is symbol.library and entry[1] == self.cache.version:
            return entry[2]
        try:
            shared = symbol.library.load_asset(symbol.symbol_name, asset_type)
        except Exception as e:
            return Future.with_error(e)
        if shared.is_pending:
            self._in_flight[key] = (symbol.library, self.cache.version, shared)

            def _done(_result: Any) -> None:
                current = self._in_flight.get(key)
                if current is not None and current[2] is shared:
                    del self._in_flight[key]

            shared.on_complete(_done).on_error(_done)
        return shared

    def load_image(self, asset_id: str, use_cache: bool = True) -> Future[Image]:
        return self.load_asset(asset_id, AssetType.IMAGE, use_cache)

    def load_font(self, asset_id: str, use_cache: bool = True) -> Future[Font]:
        return self.load_asset(asset_id, AssetType.FONT, use_cache)

    def load_audio_buffer(self, asset_id: str, use_cache: bool = True) -> Future[AudioBuffer]:
        return self.load_asset(asset_id, AssetType.SOUND, use_cache)

    def load_bytes(self, asset_id: str) -> Future[bytes]:
        return self.load_asset(asset_id, AssetType.BINARY, False)

    def load_text(self, asset_id: str) -> Future[str]:
        return self.load_asset(asset_id, AssetType.TEXT, False)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def update(self, max_items: Optional[int] = None) -> int:
        """Deliver finished async loads. Call once per frame."""
        return self.loader.dispatch(max_items)

    def get_stats(self) -> RegistryStats:
        return RegistryStats(
            libraries=len(self._libraries),
            in_flight=len(self._in_flight),
            cache=self.cache.get_stats(),
            loader=self.loader.get_progress(),
        )

    def shutdown(self) -> None:
        """Unload every library and stop the loader."""
        for name in list(self._libraries):
            self.unload_library(name)
        self.loader.shutdown()
