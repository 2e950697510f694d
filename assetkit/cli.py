from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List
import sys

from .adapters.library import FileSystemLibrary
from .engine.asset_types import AssetType
from .engine.config_io import RegistryConfig
from .engine.errors import UnsupportedTypeError
from .engine.registry import AssetRegistry
from .engine.symbols import parse_identifier
from .packaging.manifest import AssetManifest

logger = logging.getLogger(__name__)

TYPE_CHOICES = [t.value.lower() for t in AssetType]


def _build_registry(args: argparse.Namespace) -> AssetRegistry:
    config = RegistryConfig.load(args.config)
    if args.root:
        config.root = args.root
    level = (args.log_level or config.log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")

    registry = AssetRegistry(config)
    registry.register_library(config.default_library, FileSystemLibrary(Path(config.root), registry.loader))
    return registry


def _load_libraries(registry: AssetRegistry, names: List[str]) -> bool:
    ok = True
    for name in names:
        future = registry.load_library(name)
        registry.loader.run_until_idle()
        if future.is_error:
            print(f"error: {future.error}")
            ok = False
    return ok


def _library_of(asset_id: str) -> List[str]:
    # make sure a prefixed id's library is loaded before asking about it
    name = parse_identifier(asset_id)[0]
    return [name] if name else []


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="assetkit", description="Inspect asset libraries")
    parser.add_argument("--config", type=str, default=None, help="Path to a JSON config file")
    parser.add_argument("--root", type=str, default=None, help="Asset root directory (default library)")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
    sub = parser.add_subparsers(dest="cmd")

    p_list = sub.add_parser("list", help="List symbols across libraries")
    p_list.add_argument("--type", type=str, choices=TYPE_CHOICES, default=None, help="Only list this asset type")
    p_list.add_argument("--library", action="append", default=[], help="Manifest library to load first (repeatable)")

    p_info = sub.add_parser("info", help="Show where an asset resolves")
    p_info.add_argument("id", type=str, help="Asset identifier, [library:]name")
    p_info.add_argument("--type", type=str, choices=TYPE_CHOICES, default=None)

    p_check = sub.add_parser("check", help="Load an asset and report the outcome")
    p_check.add_argument("id", type=str, help="Asset identifier, [library:]name")
    p_check.add_argument("--type", type=str, choices=TYPE_CHOICES, default="binary")

    p_scan = sub.add_parser("scan", help="Write a manifest for a directory")
    p_scan.add_argument("directory", type=str, help="Directory to scan")
    p_scan.add_argument("--name", type=str, required=True, help="Library name")
    p_scan.add_argument("--preload", action="store_true", help="Mark every entry for preloading")
    p_scan.add_argument("--deferred", action="store_true", help="Only preloaded entries are available synchronously")
    p_scan.add_argument("--output", type=str, default=None, help="Output file (default: stdout)")

    args = parser.parse_args(list(argv) if argv is not None else sys.argv[1:])
    if not args.cmd:
        parser.print_help()
        return 2

    if args.cmd == "scan":
        directory = Path(args.directory)
        if not directory.is_dir():
            print(f"Directory not found: {directory}")
            return 2
        manifest = AssetManifest.from_directory(directory, args.name, preload=args.preload)
        if args.deferred:
            manifest.library_type = "deferred"
        text = manifest.to_json()
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
        else:
            print(text)
        return 0

    registry = _build_registry(args)
    try:
        if args.cmd == "list":
            if not _load_libraries(registry, args.library):
                return 1
            for name in registry.list_symbols(AssetType.parse(args.type)):
                print(name)
            return 0

        asset_type = AssetType.parse(args.type)
        _load_libraries(registry, _library_of(args.id))

        if args.cmd == "info":
            print(f"id:     {args.id}")
            print(f"exists: {registry.exists(args.id, asset_type)}")
            print(f"local:  {registry.is_local(args.id, asset_type)}")
            print(f"path:   {registry.get_path(args.id)}")
            return 0

        if args.cmd == "check":
            try:
                future = registry.load_asset(args.id, asset_type)
            except UnsupportedTypeError as e:
                print(f"error: {e}")
                return 1
            registry.loader.run_until_idle()
            if future.is_error:
                print(f"error: {future.error}")
                return 1
            value = future.value
            size = len(value) if isinstance(value, (bytes, str)) else None
            detail = f" ({size} bytes)" if size is not None else ""
            print(f"ok: {type(value).__name__}{detail}")
            return 0
    finally:
        registry.shutdown()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
