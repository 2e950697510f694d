from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Optional

import pygame

from ..engine.asset_types import AssetType, AudioBuffer, Font, Image
from ..engine.errors import UnsupportedTypeError


def decode_image(data: bytes, path: Optional[str] = None, *, convert: str = "none") -> Image:
    """Decode image bytes with pygame.

    ``convert`` follows pygame: "alpha" / "opaque" need a display surface,
    "none" keeps the surface as decoded.
    """
    hint = Path(path).name if path else ""
    raw = pygame.image.load(io.BytesIO(data), hint)
    if convert == "alpha":
        surf = raw.convert_alpha()
    elif convert == "opaque":
        surf = raw.convert()
    else:
        surf = raw
    w, h = surf.get_size()
    return Image(buffer=surf, width=w, height=h, path=path)


def decode_font(data: bytes, path: Optional[str] = None) -> Font:
    name = Path(path).stem if path else ""
    return Font(data=data, name=name, path=path)


def decode_audio(data: bytes, path: Optional[str] = None) -> AudioBuffer:
    # mixer objects need an audio device; build them lazily via to_sound()
    return AudioBuffer(buffer=data, path=path)


def decode_asset(asset_type: AssetType, data: bytes, path: Optional[str] = None) -> Any:
    """Turn raw file contents into the value handed out for ``asset_type``."""
    if asset_type == AssetType.BINARY:
        return bytes(data)
    if asset_type == AssetType.TEXT:
        return data.decode("utf-8")
    if asset_type == AssetType.IMAGE:
        return decode_image(data, path)
    if asset_type == AssetType.FONT:
        return decode_font(data, path)
    if asset_type in (AssetType.MUSIC, AssetType.SOUND):
        return decode_audio(data, path)
    if asset_type == AssetType.TEMPLATE:
        raise UnsupportedTypeError.for_id(path or "", asset_type)
    raise ValueError(f"unhandled asset type: {asset_type!r}")
