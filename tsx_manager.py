#!/usr/bin/env python3

"""
Module for reading, validating and writing TSX files (Tiled Tileset XML)
Supports tilesets written by Tiled 1.2 up to 1.11

=============================================================================
WHAT IS TSX?
=============================================================================

TSX is the external tileset format of the Tiled Map Editor. A TSX file holds
exactly one <tileset> element, the same element a TMX map can embed, minus
the map-specific 'firstgid' attribute. Keeping tilesets in TSX files lets
several maps share one catalog of tile graphics.

A TSX file describes:

- The tileset name and its nominal tile size
- Either ONE spritesheet image sliced into a grid,
  or a COLLECTION of independent images, one per tile
- Optional per-tile metadata: type, probability, terrain, animation,
  properties and collision shapes

This module parses a descriptor into an immutable TilesetCatalog, checks the
structural invariants of the format and writes the catalog back to TSX.

=============================================================================
TSX FILE STRUCTURE
=============================================================================

Image collection tileset (no tileset <image>; columns is display-only):

    <tileset version="1.2" tiledversion="1.2.4" name="objects"
             tilewidth="448" tileheight="256" tilecount="2" columns="0">
        <grid orientation="orthogonal" width="1" height="1"/>
        <tile id="0">
            <image width="165" height="99" source="Objects/arrow_white.png"/>
        </tile>
        <tile id="1">
            <image width="56" height="56" source="Objects/barrel_red.png"/>
        </tile>
    </tileset>

Spritesheet tileset:

    <tileset name="terrain" tilewidth="32" tileheight="32"
             tilecount="64" columns="8">
        <image source="terrain.png" width="256" height="256"/>
        <tile id="5">
            <properties>
                <property name="solid" type="bool" value="true"/>
            </properties>
        </tile>
    </tileset>

=============================================================================
DECLARED vs ACTUAL DIMENSIONS
=============================================================================

The width/height of every <image> is written by the editor when the tileset
is saved. They are NOT read back from the image file, so they drift when an
asset is replaced. This module treats them as authoring-time hints: it checks
that they are positive, nothing more. Comparing them with the real files is
left to the consumer (see tsx_explorer.assets.image_check).

=============================================================================
"""

import copy
import logging
import xml.etree.ElementTree as ET
from typing import Optional, List, Dict, Any, Union, Tuple, Iterator, IO
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath


logger = logging.getLogger(__name__)

# Tiled writes columns="0" for new image collections; any value is legal there
IMAGE_COLLECTION_COLUMNS = 0

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


# =============================================================================
# ERRORS
# =============================================================================

class TilesetError(Exception):
    """Base class for every error raised by this module."""


class TilesetFormatError(TilesetError, ValueError):
    """
    The descriptor is malformed.

    Raised for XML syntax errors, bad numeric attributes and every broken
    structural invariant (tile count mismatch, duplicate ids, missing image
    fields, ...). All problems found in one pass are kept in 'problems' so a
    single load reports everything wrong with the file.
    """

    def __init__(self, problems: Union[str, List[str]], source: str = "<tileset>"):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        self.source = source
        summary = "; ".join(self.problems)
        super().__init__(f"{source}: {summary}")


class TileNotFoundError(TilesetError, KeyError):
    """No tile with the requested id exists in the catalog."""

    def __init__(self, tile_id: int, tileset: str = ""):
        self.tile_id = tile_id
        self.tileset = tileset
        super().__init__(tile_id)

    def __str__(self):
        where = f" in tileset '{self.tileset}'" if self.tileset else ""
        return f"no tile with id {self.tile_id}{where}"


# =============================================================================
# LOADER CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class LoaderConfig:
    """
    Knobs for TilesetCatalog loading.

    strict:
        True  -> any validation problem raises TilesetFormatError
        False -> problems are logged as warnings and the catalog is returned
    allow_absolute_paths:
        Accept image sources such as "/srv/art/tree.png" or "C:\\art\\tree.png".
        Tiled itself writes relative paths, so these are rejected by default.
    """
    strict: bool = True
    allow_absolute_paths: bool = False


DEFAULT_CONFIG = LoaderConfig()


# =============================================================================
# ATTRIBUTE HELPERS
# =============================================================================

def _int_attr(elem: ET.Element, name: str, default: Optional[int] = 0) -> Optional[int]:
    """Read an integer attribute, turning garbage into a TilesetFormatError."""
    raw = elem.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise TilesetFormatError(
            f"<{elem.tag}> attribute '{name}' is not an integer: {raw!r}"
        ) from exc


def _float_attr(elem: ET.Element, name: str, default: Optional[float] = None) -> Optional[float]:
    raw = elem.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise TilesetFormatError(
            f"<{elem.tag}> attribute '{name}' is not a number: {raw!r}"
        ) from exc


def _format_number(value: float) -> str:
    # 0.5 -> "0.5", 1.0 -> "1"
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def is_relative_path(source: str) -> bool:
    """
    True if 'source' is a relative path on every platform Tiled runs on.

    Both POSIX ("/art/a.png") and Windows ("C:\\art\\a.png", "\\\\host\\a.png")
    absolute forms are rejected, since a descriptor may travel between systems.
    """
    if not source:
        return False
    if PurePosixPath(source).is_absolute():
        return False
    win = PureWindowsPath(source)
    return not (win.is_absolute() or win.drive or win.root)


# =============================================================================
# PROPERTY CLASS
# =============================================================================

@dataclass(frozen=True)
class Property:
    """
    Custom property attached to the tileset, to a tile, or to a class value.

    ==========================================================================
    SUPPORTED TYPES
    ==========================================================================

    - string: Text value (default)
    - int:    Integer number
    - float:  Decimal number
    - bool:   True/False
    - color:  Color in #AARRGGBB format (kept as string)
    - file:   File path reference, relative to the TSX file (kept as string)
    - object: Reference to a map object by ID
    - class:  Custom class value; 'value' is the tuple of member Properties

    'propertytype' names the custom type of class and enum properties
    (e.g. propertytype="Spawn"). Long string values are written by Tiled as
    element text instead of the 'value' attribute; both forms are read.

    ==========================================================================
    CLASS VALUES
    ==========================================================================

        <property name="spawn" type="class" propertytype="Spawn">
         <properties>
          <property name="x" type="int" value="3"/>
         </properties>
        </property>

    Only the members that differ from the class defaults are written, so a
    class value may have no members at all.

    ==========================================================================
    """
    name: str                    # Property name (key, may repeat)
    type: str = "string"         # Value type
    value: Any = None            # The converted value
    propertytype: str = ""       # Custom type name (class/enum)

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Property':
        """
        Parse property from XML element.

        XML format:
            <property name="solid" type="bool" value="true"/>
            <property name="speed" type="float" value="1.5"/>
            <property name="note">multi-line text</property>
        """
        name = elem.get('name')
        if not name:
            raise TilesetFormatError("<property> without a name")

        prop_type = elem.get('type', 'string')
        propertytype = elem.get('propertytype', '')

        if prop_type == 'class':
            return cls(name=name, type=prop_type, value=_parse_properties(elem),
                       propertytype=propertytype)

        value = elem.get('value')
        if value is None:
            value = elem.text or ''

        try:
            if prop_type in ('int', 'object'):
                value = int(value) if value else 0
            elif prop_type == 'float':
                value = float(value) if value else 0.0
            elif prop_type == 'bool':
                value = value.lower() == 'true'
        except ValueError as exc:
            raise TilesetFormatError(
                f"property '{name}' has a bad {prop_type} value: {value!r}"
            ) from exc

        return cls(name=name, type=prop_type, value=value, propertytype=propertytype)

    def to_xml(self) -> ET.Element:
        """Convert property back to XML element."""
        elem = ET.Element('property')
        elem.set('name', self.name)

        # string is the default type
        if self.type != 'string':
            elem.set('type', self.type)
        if self.propertytype:
            elem.set('propertytype', self.propertytype)

        if self.type == 'class':
            _append_properties(elem, self.value or ())
        elif isinstance(self.value, bool):
            elem.set('value', 'true' if self.value else 'false')
        elif isinstance(self.value, str) and '\n' in self.value:
            elem.text = self.value
        else:
            elem.set('value', str(self.value))
        return elem

    def get(self, name: str, default: Any = None) -> Any:
        """Value of the class member 'name'."""
        if self.type != 'class':
            return default
        return _find_property(self.value or (), name, default)


def _parse_properties(elem: ET.Element) -> Tuple[Property, ...]:
    # Tiled allows the same name twice; keep every entry in document order
    props_elem = elem.find('properties')
    if props_elem is None:
        return ()
    return tuple(Property.from_xml(p) for p in props_elem.findall('property'))


def _append_properties(elem: ET.Element, properties: Tuple[Property, ...]):
    if properties:
        props_elem = ET.SubElement(elem, 'properties')
        for prop in properties:
            props_elem.append(prop.to_xml())


def _find_property(properties: Tuple[Property, ...], name: str, default: Any = None) -> Any:
    for prop in properties:
        if prop.name == name:
            return prop.value
    return default


def _property_values(properties: Tuple[Property, ...], name: str) -> List[Any]:
    return [prop.value for prop in properties if prop.name == name]


# =============================================================================
# ELEMENTS KEPT AS-IS
# =============================================================================

def _freeze_element(elem: ET.Element) -> str:
    """
    Serialize an element this module does not model (wang sets, terrain
    types, tile collision shapes, ...) so it can be written back unchanged.

    Layout whitespace is dropped; the text is compared when catalogs are
    compared, so re-indented output must freeze to the same string.
    """
    clone = copy.deepcopy(elem)
    for node in clone.iter():
        if node.text is not None and not node.text.strip():
            node.text = None
        if node.tail is not None and not node.tail.strip():
            node.tail = None
    clone.tail = None
    return ET.tostring(clone, encoding='unicode')


def _split_children(elem: ET.Element, known: Tuple[str, ...]) -> Tuple[str, ...]:
    extras = []
    for child in elem:
        if child.tag not in known:
            logger.debug("keeping <%s> of <%s> as-is", child.tag, elem.tag)
            extras.append(_freeze_element(child))
    return tuple(extras)


def _extra_attributes(elem: ET.Element, known: Tuple[str, ...]) -> Tuple[Tuple[str, str], ...]:
    return tuple((k, v) for k, v in elem.attrib.items() if k not in known)


def _find_extras(extras: Tuple[str, ...], tag: str) -> List[ET.Element]:
    elems = [ET.fromstring(text) for text in extras]
    return [e for e in elems if e.tag == tag]


# =============================================================================
# IMAGE CLASS
# =============================================================================

@dataclass(frozen=True)
class Image:
    """
    Image reference used by the tileset (spritesheet) or by a single tile
    (image collection).

    source: Path to the image file, relative to the TSX file
    width:  Declared image width in pixels
    height: Declared image height in pixels
    trans:  Transparent color in hex (e.g. "ff00ff")
    format: File extension for embedded images (png, gif, ...)
    """
    source: str
    width: Optional[int] = None
    height: Optional[int] = None
    trans: Optional[str] = None
    format: Optional[str] = None

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Image':
        """Parse image from XML element."""
        return cls(
            source=elem.get('source', ''),
            # Width/height are optional - use None if not present
            width=_int_attr(elem, 'width', None),
            height=_int_attr(elem, 'height', None),
            trans=elem.get('trans'),
            format=elem.get('format'),
        )

    def to_xml(self) -> ET.Element:
        """Convert image back to XML element (Tiled attribute order)."""
        elem = ET.Element('image')
        if self.format:
            elem.set('format', self.format)
        if self.width is not None:
            elem.set('width', str(self.width))
        if self.height is not None:
            elem.set('height', str(self.height))
        elem.set('source', self.source)
        if self.trans:
            elem.set('trans', self.trans)
        return elem

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width or 0, self.height or 0)


# =============================================================================
# SMALL TILESET ELEMENTS
# =============================================================================

@dataclass(frozen=True)
class AnimationFrame:
    """One frame of a tile animation: show tile 'tileid' for 'duration' ms."""
    tileid: int
    duration: int

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'AnimationFrame':
        return cls(tileid=_int_attr(elem, 'tileid'), duration=_int_attr(elem, 'duration'))

    def to_xml(self) -> ET.Element:
        elem = ET.Element('frame')
        elem.set('tileid', str(self.tileid))
        elem.set('duration', str(self.duration))
        return elem


@dataclass(frozen=True)
class TileOffset:
    """Drawing offset in pixels applied to every tile (positive y is down)."""
    x: int = 0
    y: int = 0

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'TileOffset':
        return cls(x=_int_attr(elem, 'x'), y=_int_attr(elem, 'y'))

    def to_xml(self) -> ET.Element:
        elem = ET.Element('tileoffset')
        elem.set('x', str(self.x))
        elem.set('y', str(self.y))
        return elem


@dataclass(frozen=True)
class Grid:
    """
    Grid used by the editor when showing tile overlays.

    Only meaningful for image collections; Tiled writes a 1x1 orthogonal grid
    by default.
    """
    orientation: str = "orthogonal"
    width: int = 1
    height: int = 1

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Grid':
        return cls(
            orientation=elem.get('orientation', 'orthogonal'),
            width=_int_attr(elem, 'width', 1),
            height=_int_attr(elem, 'height', 1),
        )

    def to_xml(self) -> ET.Element:
        elem = ET.Element('grid')
        elem.set('orientation', self.orientation)
        elem.set('width', str(self.width))
        elem.set('height', str(self.height))
        return elem


# =============================================================================
# TILE RECORD CLASS
# =============================================================================

@dataclass(frozen=True)
class TileRecord:
    """
    One <tile> entry of the tileset.

    ==========================================================================
    TILE IDs
    ==========================================================================

    The 'id' is LOCAL to the tileset. Ids are usually 0..tilecount-1, but an
    image collection keeps the ids of removed tiles unused, so gaps are legal.
    A map references the tile as firstgid + id.

    ==========================================================================
    IMAGE COLLECTION vs SPRITESHEET
    ==========================================================================

    In an image collection every tile carries its own Image. In a spritesheet
    tileset only tiles with metadata (properties, animation, type) appear,
    and they have no Image of their own.

    ==========================================================================
    TERRAIN AND COLLISION SHAPES
    ==========================================================================

    'terrain' is the pre-1.5 corner terrain attribute, e.g. "0,0,,1": the
    terrain index of the top-left, top-right, bottom-left and bottom-right
    corners (empty = none).

    Child elements not modelled here, mainly the <objectgroup> holding the
    tile's collision shapes, are kept in 'extra_elements' and written back
    unchanged. Use extra('objectgroup') to inspect them.

    ==========================================================================
    """
    id: int
    image: Optional[Image] = None
    type: str = ""
    probability: Optional[float] = None
    terrain: str = ""
    properties: Tuple[Property, ...] = ()
    animation: Tuple[AnimationFrame, ...] = ()
    extra_elements: Tuple[str, ...] = ()
    extra_attributes: Tuple[Tuple[str, str], ...] = ()

    KNOWN_ATTRIBUTES = ('id', 'type', 'class', 'probability', 'terrain')
    KNOWN_CHILDREN = ('properties', 'image', 'animation')

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'TileRecord':
        """Parse tile from XML element."""
        tile_id = _int_attr(elem, 'id', None)
        if tile_id is None:
            raise TilesetFormatError("<tile> without an id")

        img_elem = elem.find('image')
        anim_elem = elem.find('animation')
        animation = ()
        if anim_elem is not None:
            animation = tuple(AnimationFrame.from_xml(f) for f in anim_elem.findall('frame'))

        return cls(
            id=tile_id,
            image=Image.from_xml(img_elem) if img_elem is not None else None,
            # 'class' replaced 'type' in Tiled 1.9
            type=elem.get('class', elem.get('type', '')),
            probability=_float_attr(elem, 'probability'),
            terrain=elem.get('terrain', ''),
            properties=_parse_properties(elem),
            animation=animation,
            extra_elements=_split_children(elem, cls.KNOWN_CHILDREN),
            extra_attributes=_extra_attributes(elem, cls.KNOWN_ATTRIBUTES),
        )

    def to_xml(self) -> ET.Element:
        """Convert tile back to XML element."""
        elem = ET.Element('tile')
        elem.set('id', str(self.id))

        if self.type:
            elem.set('type', self.type)
        if self.terrain:
            elem.set('terrain', self.terrain)
        if self.probability is not None:
            elem.set('probability', _format_number(self.probability))
        for key, value in self.extra_attributes:
            elem.set(key, value)

        _append_properties(elem, self.properties)

        if self.image:
            elem.append(self.image.to_xml())

        # <objectgroup> goes between the image and the animation
        for text in self.extra_elements:
            elem.append(ET.fromstring(text))

        if self.animation:
            anim_elem = ET.SubElement(elem, 'animation')
            for frame in self.animation:
                anim_elem.append(frame.to_xml())

        return elem

    # -------------------------------------------------------------------------
    # Shortcuts for the (id -> image path, width, height) view of a tile
    # -------------------------------------------------------------------------

    @property
    def image_path(self) -> str:
        return self.image.source if self.image else ""

    @property
    def width(self) -> int:
        return (self.image.width or 0) if self.image else 0

    @property
    def height(self) -> int:
        return (self.image.height or 0) if self.image else 0

    def get_property(self, name: str, default: Any = None) -> Any:
        """Value of the first property called 'name'."""
        return _find_property(self.properties, name, default)

    def get_properties(self, name: str) -> List[Any]:
        """Values of every property called 'name', in document order."""
        return _property_values(self.properties, name)

    def extra(self, tag: str) -> List[ET.Element]:
        """Fresh copies of the kept child elements with the given tag."""
        return _find_extras(self.extra_elements, tag)


# =============================================================================
# TILESET CATALOG CLASS (Main Entry Point)
# =============================================================================

@dataclass(frozen=True)
class TilesetCatalog:
    """
    A complete TSX tileset, loaded once and then read-only.

    ==========================================================================
    USAGE
    ==========================================================================

    Loading:
        catalog = TilesetCatalog.load("kenny-racing-tileset-objects.tsx")
        print(catalog.name, len(catalog))

    Lookup:
        tile = catalog.get_tile(6)
        print(tile.image_path, tile.width, tile.height)
        path = catalog.image_path(6)     # resolved against the TSX directory

    Writing:
        catalog.save("copy.tsx")

    ==========================================================================
    SHARING
    ==========================================================================

    All classes of this module are frozen dataclasses. A loaded catalog can be
    handed to any number of threads without locking.

    ==========================================================================
    SPACING AND MARGIN (spritesheets)
    ==========================================================================

    margin = pixels around the EDGE of the entire image
    spacing = pixels BETWEEN tiles

    +--+===+===+===+--+
    |  | 0 | 1 | 2 |  |  <- margin
    +--+===+===+===+--+
    |  | 3 | 4 | 5 |  |
    +--+===+===+===+--+
         ^
         spacing between tiles

    ==========================================================================
    IMAGE COLLECTION vs SPRITESHEET
    ==========================================================================

    A tileset without a tileset-level <image> is an image collection. Its
    'columns' only says how many tiles the editor shows per row; Tiled
    writes 0 for new collections but any value is legal.

    ==========================================================================
    ELEMENTS KEPT AS-IS
    ==========================================================================

    <wangsets>, <terraintypes>, <transformations> and any other child this
    module does not model are kept in 'extra_elements' and written back
    unchanged, as are unknown <tileset> attributes (objectalignment,
    fillmode, ...) in 'extra_attributes'.

    ==========================================================================
    """
    name: str
    tilewidth: int = 0                               # Nominal tile width
    tileheight: int = 0                              # Nominal tile height
    tilecount: int = 0                               # Declared number of tiles
    columns: int = 0                                 # Tiles per row
    version: Optional[str] = None                    # TSX format version
    tiledversion: Optional[str] = None               # Tiled editor version
    class_name: str = ""                             # Tileset class (1.9+)
    spacing: int = 0                                 # Pixels between tiles
    margin: int = 0                                  # Pixels around edge
    tileoffset: Optional[TileOffset] = None
    grid: Optional[Grid] = None
    image: Optional[Image] = None                    # Spritesheet image
    properties: Tuple[Property, ...] = ()
    tiles: Tuple[TileRecord, ...] = ()               # Document order
    base_dir: str = "."                              # Directory of the TSX file
    extra_elements: Tuple[str, ...] = ()
    extra_attributes: Tuple[Tuple[str, str], ...] = ()
    _index: Dict[int, TileRecord] = field(default_factory=dict, init=False,
                                          repr=False, compare=False)

    KNOWN_ATTRIBUTES = ('version', 'tiledversion', 'name', 'class', 'tilewidth',
                        'tileheight', 'spacing', 'margin', 'tilecount', 'columns')
    KNOWN_CHILDREN = ('tileoffset', 'grid', 'properties', 'image', 'tile')
    # Tiled writes these before the <tile> entries, everything else after
    LEADING_EXTRAS = ('transformations', 'terraintypes')

    def __post_init__(self):
        # Frozen: bypass __setattr__ once to normalise and index
        object.__setattr__(self, 'tiles', tuple(self.tiles))
        index = {}
        for tile in self.tiles:
            # The first occurrence wins; duplicates are reported by validate()
            index.setdefault(tile.id, tile)
        object.__setattr__(self, '_index', index)

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def from_xml(cls, root: ET.Element, base_dir: Union[str, Path] = ".",
                 config: Optional[LoaderConfig] = None,
                 source: str = "<tileset>") -> 'TilesetCatalog':
        """
        Build a catalog from a parsed <tileset> element and validate it.

        Parameters:
        -----------
        root : ET.Element
            The <tileset> element
        base_dir : str or Path
            Directory that relative image sources are resolved against
        config : LoaderConfig, optional
            Validation behaviour (strict by default)
        source : str
            Name used in error messages (usually the file path)
        """
        config = config or DEFAULT_CONFIG

        if root.tag != 'tileset':
            raise TilesetFormatError(
                f"root element is <{root.tag}>, expected <tileset>", source
            )

        try:
            catalog = cls._from_element(root, str(base_dir))
        except TilesetFormatError as exc:
            raise TilesetFormatError(exc.problems, source) from exc

        problems = catalog.validate(config)
        if problems:
            if config.strict:
                raise TilesetFormatError(problems, source)
            for problem in problems:
                logger.warning("%s: %s", source, problem)

        logger.info("loaded tileset %s: %d tiles", catalog.name, len(catalog))
        return catalog

    @classmethod
    def _from_element(cls, root: ET.Element, base_dir: str) -> 'TilesetCatalog':
        tiles = tuple(TileRecord.from_xml(t) for t in root.findall('tile'))

        img_elem = root.find('image')
        offset_elem = root.find('tileoffset')
        grid_elem = root.find('grid')
        image = Image.from_xml(img_elem) if img_elem is not None else None

        tilewidth = _int_attr(root, 'tilewidth')
        tileheight = _int_attr(root, 'tileheight')
        spacing = _int_attr(root, 'spacing')
        columns = _int_attr(root, 'columns')
        tilecount = _int_attr(root, 'tilecount', None)

        if tilecount is None:
            # Files older than Tiled 0.13 have no tilecount
            row_step = tileheight + spacing
            if image is None:
                tilecount = len(tiles)
            elif columns > 0 and image.height and tileheight > 0 and row_step > 0:
                tilecount = (image.height // row_step) * columns
            else:
                tilecount = 0
            logger.debug("tilecount not declared, using %d", tilecount)

        return cls(
            name=root.get('name', ''),
            tilewidth=tilewidth,
            tileheight=tileheight,
            tilecount=tilecount,
            columns=columns,
            version=root.get('version'),
            tiledversion=root.get('tiledversion'),
            class_name=root.get('class', ''),
            spacing=spacing,
            margin=_int_attr(root, 'margin'),
            tileoffset=TileOffset.from_xml(offset_elem) if offset_elem is not None else None,
            grid=Grid.from_xml(grid_elem) if grid_elem is not None else None,
            image=image,
            properties=_parse_properties(root),
            tiles=tiles,
            base_dir=base_dir,
            extra_elements=_split_children(root, cls.KNOWN_CHILDREN),
            extra_attributes=_extra_attributes(root, cls.KNOWN_ATTRIBUTES),
        )

    @classmethod
    def from_stream(cls, stream: IO[bytes], base_dir: Union[str, Path] = ".",
                    config: Optional[LoaderConfig] = None) -> 'TilesetCatalog':
        """
        Load a catalog from a binary stream.

        The stream carries no location, so 'base_dir' says where relative
        image sources live.

        Raises:
        -------
        TilesetFormatError : If the XML or the tileset structure is invalid
        """
        source = getattr(stream, 'name', '<stream>')
        try:
            root = ET.parse(stream).getroot()
        except ET.ParseError as exc:
            raise TilesetFormatError(f"invalid XML: {exc}", str(source)) from exc
        return cls.from_xml(root, base_dir, config, str(source))

    @classmethod
    def loads(cls, data: Union[str, bytes], base_dir: Union[str, Path] = ".",
              config: Optional[LoaderConfig] = None) -> 'TilesetCatalog':
        """Load a catalog from TSX text or bytes."""
        try:
            root = ET.fromstring(data)
        except ET.ParseError as exc:
            raise TilesetFormatError(f"invalid XML: {exc}", "<string>") from exc
        return cls.from_xml(root, base_dir, config, "<string>")

    @classmethod
    def load(cls, filepath: Union[str, Path],
             config: Optional[LoaderConfig] = None) -> 'TilesetCatalog':
        """
        Load a TSX file from disk.

        Image sources are resolved against the directory of the file.

        Raises:
        -------
        FileNotFoundError : If the TSX file doesn't exist
        TilesetFormatError : If the file is not a valid tileset
        """
        filepath = Path(filepath)
        with open(filepath, 'rb') as f:
            try:
                root = ET.parse(f).getroot()
            except ET.ParseError as exc:
                raise TilesetFormatError(f"invalid XML: {exc}", str(filepath)) from exc
        return cls.from_xml(root, filepath.parent, config, str(filepath))

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @property
    def is_image_collection(self) -> bool:
        # 'columns' is display data for collections, only the image decides
        return self.image is None

    def validate(self, config: Optional[LoaderConfig] = None) -> List[str]:
        """
        Check the structural invariants of the tileset.

        Returns:
        --------
        List[str] : One message per problem, empty when the tileset is sound

        =======================================================================
        RULES
        =======================================================================

        All tilesets:
            - tile ids are non-negative and unique
            - image sources are relative paths (unless allowed by config)

        Image collection (no tileset image, any columns value):
            - every tile has an <image> with a non-empty source
            - every image declares a positive width and height
            - tilecount equals the number of <tile> entries

        Spritesheet:
            - the tileset image has a non-empty source
            - tilewidth and tileheight are positive
            - tile ids are below tilecount

        =======================================================================
        """
        config = config or DEFAULT_CONFIG
        problems: List[str] = []

        if self.tilewidth < 0 or self.tileheight < 0:
            problems.append(
                f"negative tile size {self.tilewidth}x{self.tileheight}"
            )
        elif not self.is_image_collection and (self.tilewidth == 0 or self.tileheight == 0):
            problems.append(
                f"spritesheet tile size must be positive, got {self.tilewidth}x{self.tileheight}"
            )

        seen = set()
        for tile in self.tiles:
            if tile.id < 0:
                problems.append(f"tile id {tile.id} is negative")
            if tile.id in seen:
                problems.append(f"duplicate tile id {tile.id}")
            seen.add(tile.id)

        images: List[Tuple[str, Image]] = []

        if self.is_image_collection:
            if self.tilecount != len(self.tiles):
                problems.append(
                    f"tilecount is {self.tilecount} but {len(self.tiles)} tiles are defined"
                )
            for tile in self.tiles:
                if tile.image is None:
                    problems.append(f"tile {tile.id} has no image")
                    continue
                images.append((f"tile {tile.id}", tile.image))
                if not tile.image.width or tile.image.width <= 0:
                    problems.append(f"tile {tile.id} image width must be positive")
                if not tile.image.height or tile.image.height <= 0:
                    problems.append(f"tile {tile.id} image height must be positive")
        else:
            images.append(("tileset", self.image))
            for tile in self.tiles:
                if self.tilecount and tile.id >= self.tilecount:
                    problems.append(
                        f"tile id {tile.id} is out of range for tilecount {self.tilecount}"
                    )
                if tile.image is not None:
                    images.append((f"tile {tile.id}", tile.image))

        for owner, image in images:
            if not image.source:
                problems.append(f"{owner} image has an empty source")
            elif not config.allow_absolute_paths and not is_relative_path(image.source):
                problems.append(f"{owner} image source is not relative: {image.source}")

        return problems

    def check(self, config: Optional[LoaderConfig] = None):
        """Raise TilesetFormatError if validate() finds any problem."""
        problems = self.validate(config)
        if problems:
            raise TilesetFormatError(problems, self.name or "<tileset>")

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self) -> Iterator[TileRecord]:
        return iter(self.tiles)

    def __contains__(self, tile_id: object) -> bool:
        return tile_id in self._index

    @property
    def ids(self) -> List[int]:
        return [tile.id for tile in self.tiles]

    def has_tile(self, tile_id: int) -> bool:
        return tile_id in self._index

    def get_tile(self, tile_id: int) -> TileRecord:
        """
        Get the tile record with the given local id.

        Raises:
        -------
        TileNotFoundError : If no <tile> entry has this id
        """
        try:
            return self._index[tile_id]
        except KeyError:
            raise TileNotFoundError(tile_id, self.name) from None

    def get_property(self, name: str, default: Any = None) -> Any:
        """Value of the first tileset property called 'name'."""
        return _find_property(self.properties, name, default)

    def get_properties(self, name: str) -> List[Any]:
        """Values of every tileset property called 'name', in document order."""
        return _property_values(self.properties, name)

    def extra(self, tag: str) -> List[ET.Element]:
        """Fresh copies of the kept <tileset> children with the given tag."""
        return _find_extras(self.extra_elements, tag)

    def full_path(self, file_name: str) -> Path:
        """Resolve a path written in the TSX file against the TSX directory."""
        return Path(self.base_dir) / file_name

    def image_path(self, tile_id: int) -> Path:
        """
        Resolved path of the image drawn for 'tile_id'.

        For spritesheets every tile shares the tileset image.
        """
        if self.image is not None:
            return self.full_path(self.image.source)
        tile = self.get_tile(tile_id)
        if tile.image is None:
            raise TilesetError(f"tile {tile_id} of '{self.name}' has no image")
        return self.full_path(tile.image.source)

    def get_tile_rect(self, tile_id: int) -> Tuple[int, int, int, int]:
        """
        Pixel rectangle (left, top, right, bottom) of a tile in its image.

        For spritesheets this is the tile's cell, taking margin and spacing
        into account. For image collections the whole image of the tile is
        used, so the rectangle is (0, 0, width, height).

        The tuple has the same layout as a PIL crop box.
        """
        if self.is_image_collection:
            tile = self.get_tile(tile_id)
            return (0, 0, tile.width, tile.height)

        if self.tilewidth <= 0 or self.tileheight <= 0:
            raise TilesetError(
                f"tileset '{self.name}' has no usable tile size "
                f"{self.tilewidth}x{self.tileheight}"
            )

        columns = self.columns
        col_step = self.tilewidth + self.spacing
        if columns == 0 and self.image.width and col_step > 0:
            # Derive the column count from the image
            columns = self.image.width // col_step
        if columns <= 0:
            raise TilesetError(f"cannot compute columns of tileset '{self.name}'")
        if tile_id < 0 or (self.tilecount and tile_id >= self.tilecount):
            raise TileNotFoundError(tile_id, self.name)

        col = tile_id % columns
        row = tile_id // columns
        left = col * self.tilewidth + self.margin + col * self.spacing
        top = row * self.tileheight + self.margin + row * self.spacing
        return (left, top, left + self.tilewidth, top + self.tileheight)

    # =========================================================================
    # WRITING
    # =========================================================================

    def to_xml(self) -> ET.Element:
        """Convert the catalog back to a <tileset> element."""
        elem = ET.Element('tileset')
        if self.version:
            elem.set('version', self.version)
        if self.tiledversion:
            elem.set('tiledversion', self.tiledversion)
        elem.set('name', self.name)
        if self.class_name:
            elem.set('class', self.class_name)
        elem.set('tilewidth', str(self.tilewidth))
        elem.set('tileheight', str(self.tileheight))

        # Only include spacing/margin if non-zero
        if self.spacing:
            elem.set('spacing', str(self.spacing))
        if self.margin:
            elem.set('margin', str(self.margin))

        elem.set('tilecount', str(self.tilecount))
        elem.set('columns', str(self.columns))
        for key, value in self.extra_attributes:
            elem.set(key, value)

        if self.tileoffset:
            elem.append(self.tileoffset.to_xml())
        if self.grid:
            elem.append(self.grid.to_xml())

        _append_properties(elem, self.properties)

        if self.image:
            elem.append(self.image.to_xml())

        extras = [ET.fromstring(text) for text in self.extra_elements]
        for extra in extras:
            if extra.tag in self.LEADING_EXTRAS:
                elem.append(extra)

        for tile in self.tiles:
            elem.append(tile.to_xml())

        # <wangsets> and anything unknown
        for extra in extras:
            if extra.tag not in self.LEADING_EXTRAS:
                elem.append(extra)

        return elem

    def to_string(self) -> str:
        """Serialize to TSX text, with XML declaration and indentation."""
        root = self.to_xml()
        _indent(root)
        return XML_DECLARATION + ET.tostring(root, encoding='unicode') + '\n'

    def save(self, filepath: Union[str, Path]):
        """
        Save the catalog to a TSX file.

        Image sources are written unchanged, so saving to another directory
        breaks them unless the images move too.
        """
        filepath = Path(filepath)
        filepath.write_text(self.to_string(), encoding='utf-8')
        logger.info("saved tileset %s to %s", self.name, filepath)


def _indent(elem: ET.Element, level: int = 0):
    """
    Add indentation to XML for readable output.

    One space per level, as Tiled writes its files.
    """
    indent = "\n" + " " * level

    if len(elem):  # Has children
        if not elem.text or not elem.text.strip():
            elem.text = indent + " "
        if not elem.tail or not elem.tail.strip():
            elem.tail = indent

        for child in elem:
            _indent(child, level + 1)

        # Last child's tail
        if not child.tail or not child.tail.strip():
            child.tail = indent
    else:
        if level and (not elem.tail or not elem.tail.strip()):
            elem.tail = indent


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def load_tileset(filepath: Union[str, Path], strict: bool = True) -> TilesetCatalog:
    """Shortcut for TilesetCatalog.load() with a default configuration."""
    return TilesetCatalog.load(filepath, LoaderConfig(strict=strict))


def create_image_collection(name: str, images: List[Tuple[str, int, int]],
                            version: str = "1.2") -> TilesetCatalog:
    """
    Build an image collection tileset in code.

    Parameters:
    -----------
    name : str
        Tileset name
    images : list of (source, width, height)
        One entry per tile; ids are assigned 0, 1, 2, ...

    The nominal tile size is the largest image size, as Tiled does it.
    """
    tiles = tuple(
        TileRecord(id=i, image=Image(source=src, width=w, height=h))
        for i, (src, w, h) in enumerate(images)
    )
    return TilesetCatalog(
        name=name,
        tilewidth=max((w for _, w, _ in images), default=0),
        tileheight=max((h for _, _, h in images), default=0),
        tilecount=len(tiles),
        columns=IMAGE_COLLECTION_COLUMNS,
        version=version,
        grid=Grid(),
        tiles=tiles,
    )


# =============================================================================
# EXAMPLE USAGE (when run directly)
# =============================================================================

if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if len(sys.argv) < 2:
        print("Usage: tsx_manager.py <tileset.tsx>")
        sys.exit(1)

    catalog = TilesetCatalog.load(sys.argv[1])
    for tile in catalog:
        print(f"{tile.id:4d}  {tile.width:5d}x{tile.height:<5d}  {tile.image_path}")
