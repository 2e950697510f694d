"""
Asset types and the decoded value types handed out by the registry.

AssetType is a closed set. Every place that picks a cache bucket or a
validity rule goes through the helpers below, which handle each member
explicitly and raise on anything else.
"""
from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class AssetType(Enum):
    """Asset kinds known to the registry."""
    BINARY = "BINARY"
    TEXT = "TEXT"
    FONT = "FONT"
    IMAGE = "IMAGE"
    MUSIC = "MUSIC"
    SOUND = "SOUND"
    TEMPLATE = "TEMPLATE"

    @classmethod
    def parse(cls, value: Union[str, "AssetType", None]) -> Optional["AssetType"]:
        """Accept an AssetType, its name (any case) or None."""
        if value is None or isinstance(value, AssetType):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"unknown asset type: {value!r}") from None


# Supported file extensions, used to infer a type for plain files
IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.webp', '.bmp', '.gif', '.tga'}
AUDIO_EXTENSIONS = {'.ogg', '.mp3', '.wav', '.flac'}
FONT_EXTENSIONS = {'.ttf', '.otf'}
TEXT_EXTENSIONS = {'.txt', '.json', '.xml', '.csv', '.md', '.ini', '.cfg'}


def infer_type(path: str) -> AssetType:
    """Guess an asset type from a file name."""
    dot = path.rfind(".")
    ext = path[dot:].lower() if dot >= 0 else ""
    if ext in IMAGE_EXTENSIONS:
        return AssetType.IMAGE
    if ext in AUDIO_EXTENSIONS:
        # short clips and streams share a decoder; manifests can say MUSIC
        return AssetType.SOUND
    if ext in FONT_EXTENSIONS:
        return AssetType.FONT
    if ext in TEXT_EXTENSIONS:
        return AssetType.TEXT
    return AssetType.BINARY


def type_matches(stored: AssetType, requested: Optional[AssetType]) -> bool:
    """Whether a symbol stored as ``stored`` can serve a ``requested`` type."""
    if requested is None or requested == stored:
        return True
    if requested == AssetType.BINARY:
        return True
    if stored == AssetType.BINARY and requested == AssetType.TEXT:
        return True
    audio = (AssetType.MUSIC, AssetType.SOUND)
    return requested in audio and stored in audio


# ============================================================================
# Decoded values
# ============================================================================

@dataclass(eq=False)
class Image:
    """Decoded image. ``buffer`` is the pixel buffer handle (pygame.Surface)."""
    buffer: Any
    width: int = 0
    height: int = 0
    path: Optional[str] = None

    def dispose(self) -> None:
        self.buffer = None


@dataclass(eq=False)
class AudioBuffer:
    """Encoded audio held in memory; the mixer object is built on demand."""
    buffer: Optional[bytes]
    path: Optional[str] = None
    _sound: Any = field(default=None, init=False, repr=False)

    def to_sound(self) -> Any:
        if self.buffer is None:
            raise RuntimeError(f"audio buffer disposed: {self.path}")
        if self._sound is None:
            import pygame
            self._sound = pygame.mixer.Sound(file=io.BytesIO(self.buffer))
        return self._sound

    def dispose(self) -> None:
        self.buffer = None
        self._sound = None


@dataclass(eq=False)
class Font:
    """Font file contents. pygame fonts are bound to a size, so they are
    created per size and memoised."""
    data: bytes
    name: str = ""
    path: Optional[str] = None
    _sized: Dict[int, Any] = field(default_factory=dict, init=False, repr=False)

    def at_size(self, size: int) -> Any:
        font = self._sized.get(size)
        if font is None:
            import pygame
            if not pygame.font.get_init():
                pygame.font.init()
            font = pygame.font.Font(io.BytesIO(self.data), size)
            self._sized[size] = font
        return font


Asset = Union[Image, AudioBuffer, Font, bytes, str, Any]


# ============================================================================
# Cache rules
# ============================================================================

BUCKET_FONT = "font"
BUCKET_IMAGE = "image"
BUCKET_AUDIO = "audio"
BUCKET_GENERIC = "generic"


def cache_bucket(asset_type: AssetType) -> Optional[str]:
    """Return the cache bucket for a type, or None if it is never cached."""
    if asset_type in (AssetType.BINARY, AssetType.TEXT):
        return None
    if asset_type == AssetType.FONT:
        return BUCKET_FONT
    if asset_type == AssetType.IMAGE:
        return BUCKET_IMAGE
    if asset_type in (AssetType.MUSIC, AssetType.SOUND):
        return BUCKET_AUDIO
    if asset_type == AssetType.TEMPLATE:
        return BUCKET_GENERIC
    raise ValueError(f"unhandled asset type: {asset_type!r}")


def is_valid(asset_type: AssetType, value: Any) -> bool:
    """Cached entries are usable only while their buffer has not been disposed."""
    if value is None:
        return False
    if asset_type == AssetType.IMAGE:
        return getattr(value, "buffer", None) is not None
    if asset_type in (AssetType.MUSIC, AssetType.SOUND):
        return getattr(value, "buffer", None) is not None
    if asset_type in (AssetType.FONT, AssetType.TEMPLATE, AssetType.BINARY, AssetType.TEXT):
        return True
    raise ValueError(f"unhandled asset type: {asset_type!r}")
