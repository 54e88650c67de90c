from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from PIL import Image

from tsx_manager import TilesetCatalog, create_image_collection

KENNY_TSX = ROOT / "assets" / "tilesets" / "kenny-racing" / "kenny-racing-tileset-objects.tsx"


@pytest.fixture(scope="module")
def kenny() -> TilesetCatalog:
    return TilesetCatalog.load(KENNY_TSX)


@pytest.fixture
def kenny_path() -> Path:
    return KENNY_TSX


def write_png(path: Path, size: Tuple[int, int]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, (255, 0, 0, 255)).save(path)
    return path


def make_collection(
    root: Path,
    images: List[Tuple[str, int, int]],
    actual: Optional[List[Optional[Tuple[int, int]]]] = None,
) -> Path:
    """
    Write an image collection TSX under 'root' plus its PNGs.

    'actual' overrides the size written to disk per image; None skips the file.
    """
    root.mkdir(parents=True, exist_ok=True)
    if actual is None:
        actual = [(w, h) for _, w, h in images]
    for (source, _, _), size in zip(images, actual):
        if size is not None:
            write_png(root / source, size)
    tsx_path = root / "objects.tsx"
    create_image_collection("objects", images).save(tsx_path)
    return tsx_path
