#!/usr/bin/env python3

"""
TSX Tileset Explorer - inspect and check Tiled tileset descriptors

Usage:
    python -m tsx_explorer <tileset.tsx> [options]

Examples:
    python -m tsx_explorer assets/tilesets/kenny-racing/kenny-racing-tileset-objects.tsx
    python -m tsx_explorer objects.tsx --tile 6
    python -m tsx_explorer objects.tsx --check-images --json report.json

Exit status:
    0  descriptor is valid (and images agree, with --check-images)
    1  descriptor is malformed, missing, or image issues were found
    2  bad command line
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from tsx_manager import LoaderConfig, TilesetCatalog, TilesetError, TileNotFoundError

from .assets.image_check import TilesetImages
from .config import DEFAULT_LOG_LEVEL, LOG_FORMAT, ExplorerConfig
from .report import format_table, format_tile, summarize, write_json

logger = logging.getLogger("tsx_explorer")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsx_explorer",
        description="Inspect and check a Tiled TSX tileset descriptor",
    )
    parser.add_argument("tileset", type=Path, help="path to the .tsx file")
    parser.add_argument("--tile", type=int, help="show the details of one tile id")
    parser.add_argument("--check-images", action="store_true",
                        help="compare declared image sizes with the files on disk")
    parser.add_argument("--image-root", type=Path,
                        help="resolve image sources against this directory instead of the TSX directory")
    parser.add_argument("--json", type=Path, help="write a JSON summary to this path")
    parser.add_argument("--lenient", action="store_true",
                        help="log validation problems as warnings instead of failing")
    parser.add_argument("--allow-absolute-paths", action="store_true",
                        help="accept absolute image sources")
    parser.add_argument(
        "--log-level",
        default=DEFAULT_LOG_LEVEL,
        help=f"logging level (DEBUG, INFO, WARNING, ERROR). Default: {DEFAULT_LOG_LEVEL}",
    )
    return parser


def parse_config(argv: Optional[Sequence[str]] = None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    log_level = getattr(logging, args.log_level.upper(), None)
    if not isinstance(log_level, int):
        parser.error(f"invalid log level {args.log_level!r}")

    config = ExplorerConfig(
        loader=LoaderConfig(strict=not args.lenient,
                            allow_absolute_paths=args.allow_absolute_paths),
        check_images=args.check_images,
        image_root=args.image_root,
        json_path=args.json,
        tile_id=args.tile,
        log_level=args.log_level.upper(),
    )
    return args.tileset, config


def run(tileset_path: Path, config: ExplorerConfig) -> int:
    """Load, print and optionally check one tileset. Returns the exit status."""
    try:
        catalog = TilesetCatalog.load(tileset_path, config.loader)
    except FileNotFoundError:
        print(f"Error: File '{tileset_path}' not found")
        return 1
    except OSError as e:
        # Directories, permissions, ...
        print(f"Error: Cannot read '{tileset_path}': {e.strerror or e}")
        return 1
    except TilesetError as e:
        print(f"Error: {e}")
        return 1

    if config.tile_id is not None:
        try:
            lines = format_tile(catalog, config.tile_id)
        except TileNotFoundError as e:
            print(f"Error: {e}")
            return 1
    else:
        lines = format_table(catalog)
    print("\n".join(lines))

    issues = None
    if config.check_images:
        images = TilesetImages(catalog, config.image_root)
        issues = images.cross_validate()
        if issues:
            print(f"\n{len(issues)} image issue(s):")
            for issue in issues:
                print(f"  {issue.describe()}")
        else:
            print("\nAll images match their declared sizes")

    if config.json_path:
        write_json(config.json_path, summarize(catalog, issues))
        logger.info("JSON summary saved to %s", config.json_path)

    return 1 if issues else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    tileset_path, config = parse_config(argv)
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
    return run(tileset_path, config)


if __name__ == "__main__":
    sys.exit(main())
