"""Shared fixtures: an in-memory library that records how it is used."""
import os

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

import pytest

from assetkit.adapters.library import AssetLibrary
from assetkit.engine.asset_types import type_matches
from assetkit.engine.config_io import RegistryConfig
from assetkit.engine.futures import Future, Promise
from assetkit.engine.registry import AssetRegistry


class FakeLibrary(AssetLibrary):
    """
    symbols: {name: (AssetType, value)}
    async_only: names that exist but are not local
    deferred: load_asset returns pending futures, settled via self.promises
    """

    def __init__(self, symbols=None, async_only=(), deferred=False):
        super().__init__()
        self.symbols = dict(symbols or {})
        self.async_only = set(async_only)
        self.deferred = deferred
        self.calls = []
        self.promises = []

    def exists(self, name, asset_type=None):
        self.calls.append(("exists", name))
        entry = self.symbols.get(name)
        return entry is not None and type_matches(entry[0], asset_type)

    def is_local(self, name, asset_type=None):
        self.calls.append(("is_local", name))
        return self.exists(name, asset_type) and name not in self.async_only

    def get_asset(self, name, asset_type):
        self.calls.append(("get_asset", name))
        return self.symbols[name][1]

    def load_asset(self, name, asset_type):
        self.calls.append(("load_asset", name))
        if self.deferred:
            promise = Promise()
            self.promises.append((name, promise))
            return promise.future
        return Future.with_value(self.symbols[name][1])

    def get_path(self, name):
        return f"/fake/{name}" if name in self.symbols else None

    def list_ids(self, asset_type=None):
        return [n for n, (t, _) in self.symbols.items() if type_matches(t, asset_type)]

    def unload(self):
        self.calls.append(("unload", None))

    def called(self, method):
        return [name for m, name in self.calls if m == method]


@pytest.fixture
def registry():
    reg = AssetRegistry(RegistryConfig())
    yield reg
    reg.shutdown()


@pytest.fixture
def make_library():
    return FakeLibrary
