from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Tuple

from .asset_types import AssetType

if TYPE_CHECKING:  # pragma: no cover
    from ..adapters.library import AssetLibrary

SEPARATOR = ":"
DEFAULT_LIBRARY = "default"


class LibraryLookup(Protocol):
    def get_library(self, name: str) -> Optional["AssetLibrary"]:  # pragma: no cover - interface
        ...


def parse_identifier(asset_id: str) -> Tuple[str, str]:
    """Split ``[library:]name`` at the first separator.

    Without a separator the library part is empty. ``":name"`` also yields an
    empty library part, so both forms end up in the default library.
    """
    index = asset_id.find(SEPARATOR)
    if index < 0:
        return "", asset_id
    return asset_id[:index], asset_id[index + 1:]


def library_key(library_name: str, default: str = DEFAULT_LIBRARY) -> str:
    return library_name or default


class LibrarySymbol:
    """An identifier split into its library and local name, plus the owning
    library if one is registered. Built fresh for every request."""

    __slots__ = ("id", "library_name", "symbol_name", "library")

    def __init__(self, lookup: LibraryLookup, asset_id: str) -> None:
        self.id = asset_id
        self.library_name, self.symbol_name = parse_identifier(asset_id)
        self.library = lookup.get_library(self.library_name)

    def exists(self, asset_type: Optional[AssetType] = None) -> bool:
        return self.library is not None and self.library.exists(self.symbol_name, asset_type)

    def is_local(self, asset_type: Optional[AssetType] = None) -> bool:
        return self.library is not None and self.library.is_local(self.symbol_name, asset_type)

    def __repr__(self) -> str:
        return f"LibrarySymbol({self.library_name!r}, {self.symbol_name!r})"
