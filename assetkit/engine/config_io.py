from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Dict[str, Any]] = {
    "cache": {
        "enabled": True,
    },
    "libraries": {
        "default": "default",
        "manifest_dir": "libraries",
        "root": "assets",
    },
    "loader": {
        "workers": 0,
    },
    "logging": {
        "level": "WARNING",
    },
}


def _merge(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    # shallow merge per section; unknown sections are dropped
    out: Dict[str, Dict[str, Any]] = {}
    for section, defaults in DEFAULTS.items():
        merged = dict(defaults)
        merged.update(dict(data.get(section) or {}))
        out[section] = merged
    return out


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Dict[str, Any]]:
    if path is not None:
        p = Path(path)
        try:
            if p.exists():
                return _merge(json.loads(p.read_text(encoding="utf-8")))
        except Exception as e:
            logger.warning(f"Ignoring unreadable config {p}: {e}")
    return _merge({})


def save_config(cfg: Dict[str, Any], path: Union[str, Path]) -> bool:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        # Keep only known keys (avoid bloating)
        p.write_text(json.dumps(_merge(cfg), ensure_ascii=False, indent=2), encoding="utf-8")
        return True
    except Exception as e:
        logger.error(f"Failed to save config {p}: {e}")
        return False


@dataclass
class RegistryConfig:
    """Typed view of the sections the registry consumes."""
    cache_enabled: bool = True
    default_library: str = "default"
    manifest_dir: str = "libraries"
    root: str = "assets"
    loader_workers: int = 0
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "RegistryConfig":
        merged = _merge(cfg)
        return cls(
            cache_enabled=bool(merged["cache"]["enabled"]),
            default_library=str(merged["libraries"]["default"] or "default"),
            manifest_dir=str(merged["libraries"]["manifest_dir"]).rstrip("/"),
            root=str(merged["libraries"]["root"]),
            loader_workers=int(merged["loader"]["workers"]),
            log_level=str(merged["logging"]["level"]).upper(),
        )

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "RegistryConfig":
        return cls.from_dict(load_config(path))
