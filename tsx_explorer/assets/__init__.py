"""Tile image resolution and checks"""

from .image_check import TilesetImages, ImageIssue, MISSING, UNREADABLE, SIZE_MISMATCH

__all__ = ["TilesetImages", "ImageIssue", "MISSING", "UNREADABLE", "SIZE_MISMATCH"]
