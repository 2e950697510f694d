"""
Asset Manifest - library manifest format

A manifest describes one library: where its files live and which symbols it
owns.

    {
        "name": "ui",
        "version": 2,
        "rootPath": "ui",              # optional, relative to this file
        "libraryType": "local",        # "local" or "deferred"
        "libraryArgs": [],
        "assets": [
            {"id": "button.png", "path": "images/button.png",
             "type": "IMAGE", "preload": true, "size": 1832}
        ]
    }
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..engine.asset_types import AssetType, infer_type

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 2
LIBRARY_TYPES = ("local", "deferred")


@dataclass
class ManifestEntry:
    """One symbol."""
    id: str
    path: str
    type: AssetType = AssetType.BINARY
    preload: bool = False
    size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "path": self.path,
            "type": self.type.value,
        }
        if self.preload:
            d["preload"] = True
        if self.size:
            d["size"] = self.size
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ManifestEntry":
        asset_id = str(d["id"])
        path = str(d.get("path") or asset_id)
        raw_type = d.get("type")
        asset_type = AssetType.parse(raw_type) if raw_type else infer_type(path)
        return cls(
            id=asset_id,
            path=path,
            type=asset_type or AssetType.BINARY,
            preload=bool(d.get("preload", False)),
            size=int(d.get("size", 0) or 0),
        )


@dataclass
class AssetManifest:
    """Library manifest."""
    name: str = ""
    version: int = MANIFEST_VERSION
    root_path: Optional[str] = None
    library_type: str = "local"
    library_args: List[Any] = field(default_factory=list)
    assets: List[ManifestEntry] = field(default_factory=list)

    def to_json(self) -> str:
        data: Dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "libraryType": self.library_type,
            "libraryArgs": list(self.library_args),
            "assets": [a.to_dict() for a in self.assets],
        }
        if self.root_path is not None:
            data["rootPath"] = self.root_path
        return json.dumps(data, ensure_ascii=False, indent=2)

    @classmethod
    def from_json(cls, raw: str) -> "AssetManifest":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("manifest must be a JSON object")
        assets = data.get("assets")
        if not isinstance(assets, list):
            raise ValueError("manifest has no asset list")
        return cls(
            name=str(data.get("name") or ""),
            version=int(data.get("version", MANIFEST_VERSION)),
            root_path=data.get("rootPath"),
            library_type=str(data.get("libraryType") or "local"),
            library_args=list(data.get("libraryArgs") or []),
            assets=[ManifestEntry.from_dict(a) for a in assets],
        )

    @classmethod
    def from_directory(
        cls,
        directory: Union[str, Path],
        name: str,
        *,
        preload: bool = False,
    ) -> "AssetManifest":
        """Build a manifest listing every file below ``directory``."""
        base = Path(directory)
        entries: List[ManifestEntry] = []
        for p in sorted(base.rglob("*")):
            if not p.is_file() or p.name.startswith("."):
                continue
            rel = p.relative_to(base).as_posix()
            entries.append(ManifestEntry(
                id=rel,
                path=rel,
                type=infer_type(rel),
                preload=preload,
                size=p.stat().st_size,
            ))
        return cls(name=name, assets=entries)

    def find(self, asset_id: str) -> Optional[ManifestEntry]:
        for entry in self.assets:
            if entry.id == asset_id:
                return entry
        return None


def parse_manifest(raw: Optional[str]) -> Optional[AssetManifest]:
    """Parse manifest text; None if it is not a usable manifest."""
    if not raw:
        return None
    try:
        return AssetManifest.from_json(raw)
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Cannot parse asset manifest: {e}")
        return None
