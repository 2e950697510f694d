"""Tests for the file-backed asset libraries."""
import pygame
import pytest

from assetkit.adapters.library import FileSystemLibrary, ManifestLibrary, library_from_manifest
from assetkit.engine.asset_types import AssetType, AudioBuffer, Font, Image
from assetkit.engine.async_loader import AsyncLoader
from assetkit.engine.errors import MissingSymbolError
from assetkit.packaging.manifest import AssetManifest, ManifestEntry


def _write_bmp(path, size=(3, 2)):
    path.parent.mkdir(parents=True, exist_ok=True)
    pygame.image.save(pygame.Surface(size), str(path))


@pytest.fixture
def asset_dir(tmp_path):
    (tmp_path / "text").mkdir()
    (tmp_path / "text" / "hello.txt").write_text("hello", encoding="utf-8")
    (tmp_path / "data.bin").write_bytes(b"\x00\x01\x02")
    (tmp_path / "fonts").mkdir()
    (tmp_path / "fonts" / "body.ttf").write_bytes(b"not really a font")
    (tmp_path / "sfx.ogg").write_bytes(b"OggS")
    _write_bmp(tmp_path / "img" / "pic.bmp")
    return tmp_path


class TestFileSystemLibrary:
    """Symbols are files below the base directory."""

    def test_exists_uses_inferred_type(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        assert lib.exists("text/hello.txt", AssetType.TEXT)
        assert lib.exists("text/hello.txt", AssetType.BINARY)
        assert not lib.exists("text/hello.txt", AssetType.IMAGE)
        assert lib.exists("sfx.ogg", AssetType.MUSIC)
        assert not lib.exists("missing.txt")
        assert not lib.exists("text")

    def test_escapes_are_not_symbols(self, asset_dir, tmp_path_factory):
        outside = tmp_path_factory.mktemp("outside") / "secret.txt"
        outside.write_text("x", encoding="utf-8")
        lib = FileSystemLibrary(asset_dir)
        assert not lib.exists("../" + outside.parent.name + "/secret.txt")
        assert not lib.exists(str(outside))
        assert not lib.exists("")

    def test_every_symbol_is_local(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        assert lib.is_local("data.bin")
        assert not lib.is_local("nope.bin")

    def test_get_text_and_bytes(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        assert lib.get_asset("text/hello.txt", AssetType.TEXT) == "hello"
        assert lib.get_asset("text/hello.txt", AssetType.BINARY) == b"hello"
        assert lib.get_asset("data.bin", AssetType.BINARY) == b"\x00\x01\x02"

    def test_get_missing_raises(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        with pytest.raises(MissingSymbolError):
            lib.get_asset("nope.png", AssetType.IMAGE)

    def test_decoded_values(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        image = lib.get_asset("img/pic.bmp", AssetType.IMAGE)
        assert isinstance(image, Image)
        assert (image.width, image.height) == (3, 2)
        assert image.path.endswith("pic.bmp")

        font = lib.get_asset("fonts/body.ttf", AssetType.FONT)
        assert isinstance(font, Font)
        assert font.name == "body"

        audio = lib.get_asset("sfx.ogg", AssetType.SOUND)
        assert isinstance(audio, AudioBuffer)
        assert audio.buffer == b"OggS"

    def test_get_path(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        assert lib.get_path("data.bin") == str((asset_dir / "data.bin").resolve())
        assert lib.get_path("nope") is None

    def test_list_ids_sorted_and_filtered(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        assert lib.list_ids(AssetType.IMAGE) == ["img/pic.bmp"]
        # stored BINARY can serve TEXT
        assert lib.list_ids(AssetType.TEXT) == ["data.bin", "text/hello.txt"]
        assert lib.list_ids() == sorted(lib.list_ids())
        assert len(lib.list_ids()) == 5
        assert FileSystemLibrary(asset_dir / "nowhere").list_ids() == []

    def test_load_without_loader_is_settled(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        future = lib.load_asset("text/hello.txt", AssetType.TEXT)
        assert future.value == "hello"

    def test_load_through_loader(self, asset_dir):
        loader = AsyncLoader()
        lib = FileSystemLibrary(asset_dir, loader)
        future = lib.load_asset("data.bin", AssetType.BINARY)
        assert future.is_pending
        loader.dispatch()
        assert future.value == b"\x00\x01\x02"

    def test_load_missing_fails(self, asset_dir):
        future = FileSystemLibrary(asset_dir).load_asset("nope.txt", AssetType.TEXT)
        assert isinstance(future.error, MissingSymbolError)

    def test_refresh_notifies(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        calls = []
        lib.on_change.add(lambda: calls.append(1))
        lib.refresh()
        assert calls == [1]

    def test_load_completes_with_self(self, asset_dir):
        lib = FileSystemLibrary(asset_dir)
        assert lib.load().value is lib


def _manifest(root, library_type="local", preload=()):
    entries = [
        ManifestEntry(id="hello", path="text/hello.txt", type=AssetType.TEXT, preload="hello" in preload),
        ManifestEntry(id="pic", path="img/pic.bmp", type=AssetType.IMAGE, preload="pic" in preload),
        ManifestEntry(id="theme", path="sfx.ogg", type=AssetType.MUSIC),
    ]
    return AssetManifest(name="ui", root_path=str(root), library_type=library_type, assets=entries)


class TestManifestLibrary:
    """Symbols come from the manifest, paths from its root."""

    def test_symbols_use_manifest_ids(self, asset_dir):
        lib = ManifestLibrary(_manifest(asset_dir))
        assert lib.name == "ui"
        assert lib.exists("hello", AssetType.TEXT)
        assert not lib.exists("text/hello.txt")
        assert lib.exists("theme", AssetType.SOUND)
        assert lib.get_path("pic") == str(asset_dir / "img" / "pic.bmp")
        assert lib.list_ids(AssetType.IMAGE) == ["pic"]
        assert lib.list_ids() == ["hello", "pic", "theme"]

    def test_local_library(self, asset_dir):
        lib = ManifestLibrary(_manifest(asset_dir))
        assert not lib.deferred
        assert lib.is_local("hello", AssetType.TEXT)
        assert lib.get_asset("hello", AssetType.TEXT) == "hello"

    def test_deferred_symbols_become_local_once_loaded(self, asset_dir):
        loader = AsyncLoader()
        lib = ManifestLibrary(_manifest(asset_dir, "deferred"), loader)
        assert lib.deferred
        assert lib.exists("pic", AssetType.IMAGE)
        assert not lib.is_local("pic", AssetType.IMAGE)

        future = lib.load_asset("pic", AssetType.IMAGE)
        loader.dispatch()
        assert lib.is_local("pic", AssetType.IMAGE)
        assert lib.is_local("pic")
        assert lib.get_asset("pic", AssetType.IMAGE) is future.value

    def test_load_preloads_with_progress(self, asset_dir):
        loader = AsyncLoader()
        lib = ManifestLibrary(_manifest(asset_dir, "deferred", preload=("hello", "pic")), loader)
        progress = []
        future = lib.load().on_progress(lambda done, total: progress.append((done, total)))
        assert future.is_pending
        assert lib.load() is future

        loader.dispatch()
        assert future.value is lib
        assert progress == [(1, 2), (2, 2)]
        assert lib.loaded
        assert lib.is_local("hello", AssetType.TEXT)
        assert lib.load().is_complete

    def test_load_without_preload_entries(self, asset_dir):
        lib = ManifestLibrary(_manifest(asset_dir))
        assert lib.load().value is lib
        assert lib.loaded

    def test_failed_preload_errors_load(self, asset_dir):
        manifest = _manifest(asset_dir, preload=("hello",))
        manifest.assets[0].path = "text/gone.txt"
        lib = ManifestLibrary(manifest)
        # the file is listed but missing on disk
        future = lib.load()
        assert future.is_error
        assert not lib.loaded

    def test_unload_disposes_retained_values(self, asset_dir):
        lib = ManifestLibrary(_manifest(asset_dir))
        image = lib.load_asset("pic", AssetType.IMAGE).value
        assert image.buffer is not None
        lib.unload()
        assert image.buffer is None
        assert not lib.loaded


class TestLibraryFromManifest:

    def test_none_manifest(self):
        assert library_from_manifest(None) is None

    def test_unknown_library_type(self, tmp_path):
        assert library_from_manifest(AssetManifest(name="x", library_type="zip")) is None

    @pytest.mark.parametrize("library_type", ["local", "deferred"])
    def test_known_types(self, tmp_path, library_type):
        lib = library_from_manifest(AssetManifest(name="x", root_path=str(tmp_path), library_type=library_type))
        assert isinstance(lib, ManifestLibrary)
        assert lib.deferred == (library_type == "deferred")
