from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(eq=False)
class AssetError(Exception):
    message: str
    asset_id: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - formatting
        return self.message


class MissingLibraryError(AssetError):
    """No library is registered under the parsed namespace."""

    @classmethod
    def for_name(cls, name: str, asset_id: Optional[str] = None) -> "MissingLibraryError":
        return cls(f'There is no asset library named "{name}"', asset_id)


class MissingSymbolError(AssetError):
    """The library exists but does not hold the symbol for that type."""

    @classmethod
    def for_id(cls, asset_id: str, asset_type: Any) -> "MissingSymbolError":
        return cls(f'There is no {_type_name(asset_type)} asset with an ID of "{asset_id}"', asset_id)


class AsyncOnlyConflictError(AssetError):
    """The symbol exists but can only be retrieved asynchronously."""

    @classmethod
    def for_id(cls, asset_id: str, asset_type: Any) -> "AsyncOnlyConflictError":
        return cls(f'{_type_name(asset_type)} asset "{asset_id}" exists, but only asynchronously', asset_id)


class AssetLoadError(AssetError):
    """The library holds the symbol but failed to read or decode it."""

    @classmethod
    def for_id(cls, asset_id: str, asset_type: Any, cause: BaseException) -> "AssetLoadError":
        error = cls(f'Cannot load {_type_name(asset_type)} asset "{asset_id}": {cause}', asset_id)
        error.__cause__ = cause
        return error


class ManifestParseError(AssetError):
    pass


class LibraryConstructionError(AssetError):
    pass


class UnsupportedTypeError(AssetError):
    """Raised, never returned: there is no sensible empty result."""

    @classmethod
    def for_id(cls, asset_id: str, asset_type: Any) -> "UnsupportedTypeError":
        return cls(f"Not sure how to get {_type_name(asset_type).lower()}: {asset_id}", asset_id)


def _type_name(asset_type: Any) -> str:
    return getattr(asset_type, "value", None) or str(asset_type)


@dataclass
class AssetResult(Generic[T]):
    """Outcome of a synchronous fetch: a value, or the error that prevented it."""
    value: Optional[T] = None
    error: Optional[AssetError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
