"""
Text and JSON summaries of a tileset catalog.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tsx_manager import Property, TilesetCatalog, TileRecord

from .assets.image_check import ImageIssue
from .config import DEFAULT_JSON_INDENT, MAX_PATH_COLUMN


def properties_to_dict(properties: Sequence[Property]) -> Dict:
    """
    JSON-ready view of a property tuple.

    Class values become nested dicts. A name that appears more than once
    maps to the list of all its values.
    """
    info: Dict = {}
    repeated = set()
    for prop in properties:
        value = properties_to_dict(prop.value) if prop.type == "class" else prop.value
        if prop.name not in info:
            info[prop.name] = value
        elif prop.name in repeated:
            info[prop.name].append(value)
        else:
            info[prop.name] = [info[prop.name], value]
            repeated.add(prop.name)
    return info


def tile_to_dict(tile: TileRecord) -> Dict:
    info = {
        "id": tile.id,
        "image": tile.image_path,
        "width": tile.width,
        "height": tile.height,
    }
    if tile.type:
        info["type"] = tile.type
    if tile.terrain:
        info["terrain"] = tile.terrain
    if tile.properties:
        info["properties"] = properties_to_dict(tile.properties)
    if tile.animation:
        info["animation"] = [[f.tileid, f.duration] for f in tile.animation]
    groups = tile.extra("objectgroup")
    if groups:
        info["collision_objects"] = sum(len(g.findall("object")) for g in groups)
    return info


def summarize(catalog: TilesetCatalog,
              issues: Optional[Sequence[ImageIssue]] = None) -> Dict:
    """Plain-dict summary of the catalog, ready for json.dump()."""
    summary = {
        "name": catalog.name,
        "version": catalog.version,
        "tiledversion": catalog.tiledversion,
        "kind": "image-collection" if catalog.is_image_collection else "spritesheet",
        "tilewidth": catalog.tilewidth,
        "tileheight": catalog.tileheight,
        "tilecount": catalog.tilecount,
        "columns": catalog.columns,
        "base_dir": str(catalog.base_dir),
        "tiles": [tile_to_dict(t) for t in catalog],
    }
    if catalog.image is not None:
        summary["image"] = {
            "source": catalog.image.source,
            "width": catalog.image.width,
            "height": catalog.image.height,
        }
    if catalog.properties:
        summary["properties"] = properties_to_dict(catalog.properties)
    if issues is not None:
        summary["image_issues"] = [issue.to_dict() for issue in issues]
    return summary


def _clip(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    return "..." + text[-(width - 3):]


def format_table(catalog: TilesetCatalog) -> List[str]:
    """
    One header line plus one line per tile:

        kenny-racing-tileset-objects - image collection, 39 tiles (448x256 nominal)
          id  size      image
           0  165x99    Objects/arrow_white.png
    """
    kind = "image collection" if catalog.is_image_collection else "spritesheet"
    lines = [
        f"{catalog.name} - {kind}, {len(catalog)} tiles "
        f"({catalog.tilewidth}x{catalog.tileheight} nominal)",
    ]
    if catalog.image is not None:
        lines.append(f"  image: {catalog.image.source} "
                     f"({catalog.image.width}x{catalog.image.height})")
    lines.append(f"  {'id':>4}  {'size':<9} image")
    for tile in catalog:
        size = f"{tile.width}x{tile.height}" if tile.image else "-"
        lines.append(f"  {tile.id:>4}  {size:<9} {_clip(tile.image_path, MAX_PATH_COLUMN)}")
    return lines


def format_tile(catalog: TilesetCatalog, tile_id: int) -> List[str]:
    """Details of one tile; raises TileNotFoundError for unknown ids."""
    tile = catalog.get_tile(tile_id)
    lines = [f"tile {tile.id} of {catalog.name}"]
    if tile.image:
        lines.append(f"  image:  {tile.image.source}")
        lines.append(f"  size:   {tile.width}x{tile.height}")
        lines.append(f"  path:   {catalog.image_path(tile.id)}")
    else:
        left, top, right, bottom = catalog.get_tile_rect(tile.id)
        lines.append(f"  rect:   ({left}, {top}, {right}, {bottom})")
    if tile.type:
        lines.append(f"  type:   {tile.type}")
    if tile.probability is not None:
        lines.append(f"  probability: {tile.probability}")
    if tile.terrain:
        lines.append(f"  terrain: {tile.terrain}")
    for prop in tile.properties:
        value = properties_to_dict(prop.value) if prop.type == "class" else prop.value
        lines.append(f"  property {prop.name} ({prop.type}) = {value!r}")
    if tile.animation:
        frames = ", ".join(f"{f.tileid}:{f.duration}ms" for f in tile.animation)
        lines.append(f"  animation: {frames}")
    return lines


def write_json(path: Path, summary: Dict):
    path = Path(path)
    path.write_text(json.dumps(summary, indent=DEFAULT_JSON_INDENT), encoding="utf-8")
