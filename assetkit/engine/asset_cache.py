"""
Asset Cache, partitioned by asset type.

Features:
- Four buckets: font, image, audio, and a generic bucket
- BINARY and TEXT are never cached
- Validity checks so disposed images/audio are never handed out
- Bulk invalidation by identifier prefix
- Hit/miss statistics
- Thread-safe operations
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .asset_types import (
    AssetType,
    BUCKET_AUDIO,
    BUCKET_FONT,
    BUCKET_GENERIC,
    BUCKET_IMAGE,
    cache_bucket,
    is_valid,
)


# type whose validity rule applies to each bucket
_BUCKET_TYPES = {
    BUCKET_FONT: AssetType.FONT,
    BUCKET_IMAGE: AssetType.IMAGE,
    BUCKET_AUDIO: AssetType.SOUND,
    BUCKET_GENERIC: AssetType.TEMPLATE,
}

@dataclass
class CacheStats:
    """Cache statistics."""
    fonts: int = 0
    images: int = 0
    audio: int = 0
    generic: int = 0
    hits: int = 0
    misses: int = 0
    enabled: bool = True

    @property
    def entries(self) -> int:
        return self.fonts + self.images + self.audio + self.generic

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class AssetCache:
    """
    Identifier -> last successfully produced asset, per type bucket.

    Usage:
        cache = AssetCache()
        cache.set("ui:button.png", AssetType.IMAGE, image)
        cache.get("ui:button.png", AssetType.IMAGE)   # -> image

        # Drop everything owned by one library
        cache.clear("ui:")

    Turning ``enabled`` off makes every get miss and every set a no-op, but
    keeps what is already stored so caching can be switched back on warm.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._buckets: Dict[str, Dict[str, Any]] = {
            BUCKET_FONT: {},
            BUCKET_IMAGE: {},
            BUCKET_AUDIO: {},
            BUCKET_GENERIC: {},
        }
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        # bumped on every clear
        self.version = 0

    def get(self, asset_id: str, asset_type: AssetType) -> Optional[Any]:
        """Return a valid cached value or None."""
        bucket = cache_bucket(asset_type)
        if bucket is None or not self.enabled:
            return None
        with self._lock:
            value = self._buckets[bucket].get(asset_id)
            if value is not None and is_valid(asset_type, value):
                self._hits += 1
                return value
            self._misses += 1
            return None

    def set(self, asset_id: str, asset_type: AssetType, value: Any) -> None:
        bucket = cache_bucket(asset_type)
        if bucket is None or not self.enabled or value is None:
            return
        with self._lock:
            self._buckets[bucket][asset_id] = value

    def exists(self, asset_id: str, asset_type: Optional[AssetType] = None) -> bool:
        """Check for a valid entry; without a type every bucket is searched."""
        with self._lock:
            if asset_type is not None:
                bucket = cache_bucket(asset_type)
                if bucket is None:
                    return False
                value = self._buckets[bucket].get(asset_id)
                return value is not None and is_valid(asset_type, value)
            for bucket, entries in self._buckets.items():
                value = entries.get(asset_id)
                if value is not None and is_valid(_BUCKET_TYPES[bucket], value):
                    return True
            return False

    def remove(self, asset_id: str, asset_type: Optional[AssetType] = None) -> bool:
        """Drop one identifier (from one bucket, or from all of them)."""
        removed = False
        with self._lock:
            if asset_type is not None:
                bucket = cache_bucket(asset_type)
                if bucket is not None:
                    removed = self._buckets[bucket].pop(asset_id, None) is not None
                return removed
            for entries in self._buckets.values():
                if entries.pop(asset_id, None) is not None:
                    removed = True
        return removed

    def clear(self, prefix: Optional[str] = None) -> int:
        """Remove entries whose identifier starts with ``prefix`` (all if None).

        Returns the number of entries removed.
        """
        removed = 0
        with self._lock:
            for entries in self._buckets.values():
                if prefix is None:
                    removed += len(entries)
                    entries.clear()
                    continue
                for key in [k for k in entries if k.startswith(prefix)]:
                    del entries[key]
                    removed += 1
            self.version += 1
        return removed

    def ids(self) -> List[str]:
        """Every cached identifier, once, across buckets."""
        with self._lock:
            seen: Dict[str, None] = {}
            for entries in self._buckets.values():
                for key in entries:
                    seen.setdefault(key, None)
            return list(seen)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                fonts=len(self._buckets[BUCKET_FONT]),
                images=len(self._buckets[BUCKET_IMAGE]),
                audio=len(self._buckets[BUCKET_AUDIO]),
                generic=len(self._buckets[BUCKET_GENERIC]),
                hits=self._hits,
                misses=self._misses,
                enabled=self.enabled,
            )
