"""
TSX Tileset Explorer - inspection and image checks for Tiled tilesets

Requisitos:
    pip install pillow
"""

from .assets import TilesetImages, ImageIssue
from .config import ExplorerConfig
from .report import summarize, format_table, format_tile

__version__ = "1.0.0"
__all__ = [
    "TilesetImages",
    "ImageIssue",
    "ExplorerConfig",
    "summarize",
    "format_table",
    "format_tile",
]
