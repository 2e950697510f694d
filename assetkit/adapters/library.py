from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..engine.asset_types import AssetType, infer_type, type_matches
from ..engine.async_loader import AsyncLoader
from ..engine.errors import MissingSymbolError
from ..engine.event_bus import ChangeEvent
from ..engine.futures import Future, Promise
from ..packaging.manifest import LIBRARY_TYPES, AssetManifest, ManifestEntry
from .decoders import decode_asset

logger = logging.getLogger(__name__)


class AssetLibrary(ABC):
    """A namespace of named assets.

    The registry only talks to libraries through this interface. ``get_asset``
    may fail for symbols that are not local; the registry checks
    ``is_local`` before calling it.
    """

    def __init__(self) -> None:
        self.on_change = ChangeEvent()

    @abstractmethod
    def exists(self, name: str, asset_type: Optional[AssetType] = None) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def is_local(self, name: str, asset_type: Optional[AssetType] = None) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def get_asset(self, name: str, asset_type: AssetType) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def load_asset(self, name: str, asset_type: AssetType) -> Future[Any]:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def get_path(self, name: str) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    @abstractmethod
    def list_ids(self, asset_type: Optional[AssetType] = None) -> List[str]:  # pragma: no cover - interface
        raise NotImplementedError

    def load(self) -> Future["AssetLibrary"]:
        return Future.with_value(self)

    def unload(self) -> None:
        pass


class FileBackedLibrary(AssetLibrary):
    """Shared plumbing for libraries whose symbols are files on disk.

    Reads and decodes go through an AsyncLoader when one is given; without a
    loader ``load_asset`` reads synchronously and returns a settled Future.
    """

    # keep decoded values after an async load (makes them local)
    retain_loaded = False

    def __init__(self, loader: Optional[AsyncLoader] = None) -> None:
        super().__init__()
        self._loader = loader
        self._decoded: Dict[Tuple[str, AssetType], Any] = {}

    @abstractmethod
    def _lookup(self, name: str) -> Optional[Tuple[Path, AssetType]]:  # pragma: no cover - interface
        """Return (file path, stored type) for a symbol, or None."""
        raise NotImplementedError

    def exists(self, name: str, asset_type: Optional[AssetType] = None) -> bool:
        found = self._lookup(name)
        return found is not None and type_matches(found[1], asset_type)

    def get_path(self, name: str) -> Optional[str]:
        found = self._lookup(name)
        return str(found[0]) if found is not None else None

    def _effective_type(self, name: str, asset_type: Optional[AssetType]) -> AssetType:
        if asset_type is not None:
            return asset_type
        found = self._lookup(name)
        return found[1] if found is not None else AssetType.BINARY

    def _read(self, name: str, asset_type: AssetType) -> Any:
        found = self._lookup(name)
        if found is None:
            raise MissingSymbolError.for_id(name, asset_type)
        path = found[0]
        return decode_asset(asset_type, path.read_bytes(), str(path))

    def get_asset(self, name: str, asset_type: AssetType) -> Any:
        asset_type = self._effective_type(name, asset_type)
        if not self.exists(name, asset_type):
            raise MissingSymbolError.for_id(name, asset_type)
        held = self._decoded.get((name, asset_type))
        if held is not None:
            return held
        return self._read(name, asset_type)

    def load_asset(self, name: str, asset_type: AssetType) -> Future[Any]:
        asset_type = self._effective_type(name, asset_type)
        if not self.exists(name, asset_type):
            return Future.with_error(MissingSymbolError.for_id(name, asset_type))
        held = self._decoded.get((name, asset_type))
        if held is not None:
            return Future.with_value(held)

        if self._loader is None:
            try:
                future = Future.with_value(self._read(name, asset_type))
            except Exception as e:
                future = Future.with_error(e)
        else:
            future = self._loader.submit(self._read, name, asset_type, label=name)

        if self.retain_loaded:
            def _retain(value: Any) -> None:
                self._decoded[(name, asset_type)] = value
            future.on_complete(_retain)
        return future

    def unload(self) -> None:
        for value in self._decoded.values():
            dispose = getattr(value, "dispose", None)
            if callable(dispose):
                dispose()
        self._decoded.clear()


class FileSystemLibrary(FileBackedLibrary):
    """Every file below ``base`` is a symbol named by its relative path.

    The type of a symbol is inferred from its extension. Files are always
    readable synchronously, so every symbol is local.
    """

    def __init__(self, base: Optional[Path] = None, loader: Optional[AsyncLoader] = None) -> None:
        super().__init__(loader)
        self._base = Path(base) if base is not None else Path.cwd()

    @property
    def base(self) -> Path:
        return self._base

    def _lookup(self, name: str) -> Optional[Tuple[Path, AssetType]]:
        if not name:
            return None
        try:
            p = (self._base / name).resolve()
            p.relative_to(self._base.resolve())
        except (ValueError, OSError):
            # absolute paths and ../ escapes are not part of this namespace
            return None
        if not p.is_file():
            return None
        return p, infer_type(name)

    def is_local(self, name: str, asset_type: Optional[AssetType] = None) -> bool:
        return self.exists(name, asset_type)

    def list_ids(self, asset_type: Optional[AssetType] = None) -> List[str]:
        if not self._base.is_dir():
            return []
        out: List[str] = []
        for p in sorted(self._base.rglob("*")):
            if not p.is_file():
                continue
            rel = p.relative_to(self._base).as_posix()
            if type_matches(infer_type(rel), asset_type):
                out.append(rel)
        return out

    def refresh(self) -> None:
        """Forget decoded files and tell listeners the contents changed."""
        self._decoded.clear()
        self.on_change.dispatch()


class ManifestLibrary(FileBackedLibrary):
    """Library whose symbols come from an AssetManifest.

    ``libraryType`` "local" makes every symbol synchronously available.
    "deferred" only treats a symbol as local once it has been loaded
    (preload entries are loaded by ``load()``).
    """

    retain_loaded = True

    def __init__(self, manifest: AssetManifest, loader: Optional[AsyncLoader] = None) -> None:
        super().__init__(loader)
        self.manifest = manifest
        self._root = Path(manifest.root_path) if manifest.root_path else Path(".")
        self._entries: Dict[str, ManifestEntry] = {e.id: e for e in manifest.assets}
        self._loaded = False
        self._load_future: Optional[Future[AssetLibrary]] = None

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def deferred(self) -> bool:
        return self.manifest.library_type == "deferred"

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _lookup(self, name: str) -> Optional[Tuple[Path, AssetType]]:
        entry = self._entries.get(name)
        if entry is None:
            return None
        return self._root / entry.path, entry.type

    def is_local(self, name: str, asset_type: Optional[AssetType] = None) -> bool:
        if not self.exists(name, asset_type):
            return False
        if not self.deferred:
            return True
        if asset_type is None:
            return any(key[0] == name for key in self._decoded)
        return (name, asset_type) in self._decoded

    def list_ids(self, asset_type: Optional[AssetType] = None) -> List[str]:
        return [e.id for e in self.manifest.assets if type_matches(e.type, asset_type)]

    def load(self) -> Future[AssetLibrary]:
        """Fetch every preload entry; completes with the library itself."""
        if self._loaded:
            return Future.with_value(self)
        if self._load_future is not None:
            return self._load_future

        preload = [e for e in self.manifest.assets if e.preload]
        if not preload:
            self._loaded = True
            return Future.with_value(self)

        promise: Promise[AssetLibrary] = Promise()
        self._load_future = promise.future
        total = len(preload)
        done = [0]

        def _one_done(_value: Any) -> None:
            done[0] += 1
            promise.progress(done[0], total)
            if done[0] == total:
                self._loaded = True
                self._load_future = None
                promise.complete(self)

        def _one_failed(error: Any) -> None:
            self._load_future = None
            promise.error(error)

        for entry in preload:
            self.load_asset(entry.id, entry.type).on_complete(_one_done).on_error(_one_failed)
        return promise.future

    def unload(self) -> None:
        super().unload()
        self._loaded = False
        self._load_future = None


def library_from_manifest(
    manifest: Optional[AssetManifest],
    loader: Optional[AsyncLoader] = None,
) -> Optional[AssetLibrary]:
    """Build the library a manifest describes, or None if it cannot."""
    if manifest is None:
        return None
    if manifest.library_type not in LIBRARY_TYPES:
        logger.error(f"Unknown library type {manifest.library_type!r} in manifest {manifest.name!r}")
        return None
    return ManifestLibrary(manifest, loader)
