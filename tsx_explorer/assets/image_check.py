"""
Tile image resolution and dimension cross-checking (uses PIL)

=============================================================================
WHY CROSS-CHECK?
=============================================================================

A TSX file stores the width and height of every image next to its path:

    <tile id="6">
        <image width="210" height="62" source="Objects/barrier_red_race.png"/>
    </tile>

Those numbers are copied by the editor when the tileset is saved. Nothing
keeps them in sync with the PNG on disk: replace the PNG with a larger one
and the descriptor silently lies. Renderers that lay tiles out from the
declared size then draw them clipped or misplaced.

This module opens every referenced image with PIL, reads its real size and
reports every tile whose image is missing, unreadable or has a different
size than declared. The descriptor is never modified.

=============================================================================
PATH HANDLING
=============================================================================

Image sources are relative to the TSX file, NOT to the current directory:

    tsx path      = "assets/tilesets/kenny-racing/objects.tsx"
    image.source  = "Objects/tree_large.png"
    actual path   = "assets/tilesets/kenny-racing/Objects/tree_large.png"

An 'image_root' can replace the TSX directory, e.g. when the art lives in
a separate checkout.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from tsx_manager import TilesetCatalog, TilesetError

logger = logging.getLogger(__name__)

# Issue kinds
MISSING = "missing"
UNREADABLE = "unreadable"
SIZE_MISMATCH = "size-mismatch"


@dataclass(frozen=True)
class ImageIssue:
    """
    One problem found with a tile image.

    tile_id is None for the shared image of a spritesheet tileset.
    """
    tile_id: Optional[int]
    path: Path
    kind: str
    declared: Tuple[int, int] = (0, 0)
    actual: Optional[Tuple[int, int]] = None

    def describe(self) -> str:
        owner = "tileset image" if self.tile_id is None else f"tile {self.tile_id}"
        if self.kind == SIZE_MISMATCH:
            dw, dh = self.declared
            aw, ah = self.actual
            return f"{owner}: {self.path} is {aw}x{ah}, declared {dw}x{dh}"
        return f"{owner}: {self.path} is {self.kind}"

    def to_dict(self) -> dict:
        return {
            "tile_id": self.tile_id,
            "path": str(self.path),
            "kind": self.kind,
            "declared": list(self.declared),
            "actual": list(self.actual) if self.actual else None,
        }


class TilesetImages:
    """
    Resolves the images of a catalog and measures them with PIL.

    ==========================================================================
    ARCHITECTURE ROLE
    ==========================================================================

    TSX File → [TilesetCatalog] → [TilesetImages] → cross_validate()
                                          ↓
                                   size_cache
                                   (image path → actual (w, h))

    Sizes are read lazily and cached per resolved image path; only the image
    header is decoded, pixel data is never loaded.

    ==========================================================================
    """

    def __init__(self, catalog: TilesetCatalog,
                 image_root: Optional[Union[str, Path]] = None):
        """
        Parameters:
        -----------
        catalog : TilesetCatalog
            Loaded tileset
        image_root : str or Path, optional
            Directory to resolve image sources against.
            Defaults to the directory of the TSX file (catalog.base_dir).
        """
        self.catalog = catalog
        self.image_root = Path(image_root) if image_root is not None else Path(catalog.base_dir)

        # resolved image path → (width, height) read from disk
        self.size_cache: Dict[Path, Tuple[int, int]] = {}

    # =========================================================================
    # PATH RESOLUTION
    # =========================================================================

    def resolve(self, tile_id: int) -> Path:
        """Full path of the image drawn for 'tile_id'."""
        if self.catalog.image is not None:
            return self.image_root / self.catalog.image.source
        tile = self.catalog.get_tile(tile_id)
        if tile.image is None:
            raise TilesetError(f"tile {tile_id} of '{self.catalog.name}' has no image")
        return self.image_root / tile.image.source

    # =========================================================================
    # MEASURING
    # =========================================================================

    @staticmethod
    def _read_size(path: Path) -> Tuple[int, int]:
        # Image.open() only parses the header until pixels are requested
        with Image.open(path) as img:
            return img.size

    def size(self, tile_id: int) -> Tuple[int, int]:
        """
        Actual (width, height) of the image of 'tile_id'.

        Raises:
        -------
        FileNotFoundError : If the image file does not exist
        PIL.UnidentifiedImageError : If PIL can't read the file
        """
        path = self.resolve(tile_id)
        if path not in self.size_cache:
            self.size_cache[path] = self._read_size(path)
        return self.size_cache[path]

    # =========================================================================
    # CROSS-VALIDATION
    # =========================================================================

    def _check(self, tile_id: Optional[int], path: Path,
               declared: Tuple[int, int]) -> Optional[ImageIssue]:
        try:
            if path not in self.size_cache:
                self.size_cache[path] = self._read_size(path)
        except FileNotFoundError:
            return ImageIssue(tile_id, path, MISSING, declared)
        except (UnidentifiedImageError, OSError) as e:
            logger.debug("cannot read %s: %s", path, e)
            return ImageIssue(tile_id, path, UNREADABLE, declared)

        actual = self.size_cache[path]
        # Undeclared dimensions (0) can't disagree with the file
        dw, dh = declared
        if (dw and dw != actual[0]) or (dh and dh != actual[1]):
            return ImageIssue(tile_id, path, SIZE_MISMATCH, declared, actual)
        return None

    def cross_validate(self) -> List[ImageIssue]:
        """
        Compare declared image sizes with the files on disk.

        Returns:
        --------
        List[ImageIssue] : One entry per missing, unreadable or mismatching
                           image; empty when everything agrees.

        Missing files are reported, never raised: a tileset with a missing
        asset is still a valid descriptor.
        """
        issues: List[ImageIssue] = []

        if self.catalog.image is not None:
            image = self.catalog.image
            issue = self._check(None, self.image_root / image.source, image.size)
            if issue:
                issues.append(issue)
        else:
            for tile in self.catalog:
                if tile.image is None:
                    continue
                path = self.image_root / tile.image.source
                issue = self._check(tile.id, path, tile.image.size)
                if issue:
                    issues.append(issue)

        for issue in issues:
            logger.warning("%s", issue.describe())
        logger.info("checked images of %s: %d issue(s)", self.catalog.name, len(issues))
        return issues
