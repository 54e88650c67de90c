"""Test: loading the shipped kenny racing tileset and catalog lookups."""

import dataclasses
import io
from pathlib import Path

import pytest

from tsx_manager import (
    Grid,
    TileNotFoundError,
    TilesetCatalog,
    TilesetFormatError,
    is_relative_path,
)


def test_kenny_header(kenny):
    assert kenny.name == "kenny-racing-tileset-objects"
    assert kenny.version == "1.2"
    assert kenny.tiledversion == "1.2.4"
    assert (kenny.tilewidth, kenny.tileheight) == (448, 256)
    assert kenny.columns == 0
    assert kenny.is_image_collection
    assert kenny.grid == Grid(orientation="orthogonal", width=1, height=1)


def test_kenny_tile_count(kenny):
    assert kenny.tilecount == 39
    assert len(kenny) == 39
    assert kenny.ids == list(range(39))


def test_kenny_known_entries(kenny):
    barrier = kenny.get_tile(6)
    assert barrier.image_path == "Objects/barrier_red_race.png"
    assert (barrier.width, barrier.height) == (210, 62)

    tribune = kenny.get_tile(35)
    assert tribune.image_path == "Objects/tribune_empty.png"
    assert (tribune.width, tribune.height) == (448, 223)


def test_kenny_invariants(kenny):
    ids = [tile.id for tile in kenny]
    assert len(ids) == len(set(ids))
    for tile in kenny:
        assert tile.width > 0 and tile.height > 0
        assert tile.image_path
        assert is_relative_path(tile.image_path)
    assert kenny.validate() == []


def test_image_path_resolves_against_tsx_directory(kenny, kenny_path):
    assert kenny.image_path(0) == kenny_path.parent / "Objects" / "arrow_white.png"
    assert kenny.full_path("Objects/oil.png") == kenny_path.parent / "Objects" / "oil.png"


def test_unknown_tile(kenny):
    assert 99 not in kenny
    assert not kenny.has_tile(99)
    with pytest.raises(TileNotFoundError) as excinfo:
        kenny.get_tile(99)
    # Still usable as a KeyError
    assert isinstance(excinfo.value, KeyError)
    assert "99" in str(excinfo.value)


def test_catalog_is_immutable(kenny):
    with pytest.raises(dataclasses.FrozenInstanceError):
        kenny.name = "renamed"
    with pytest.raises(dataclasses.FrozenInstanceError):
        kenny.get_tile(0).id = 5


def test_from_stream_uses_given_base_dir(kenny_path):
    data = kenny_path.read_bytes()
    catalog = TilesetCatalog.from_stream(io.BytesIO(data), base_dir="art")
    assert len(catalog) == 39
    assert catalog.image_path(35) == Path("art") / "Objects" / "tribune_empty.png"


def test_loads_accepts_text_and_bytes(kenny_path):
    text = kenny_path.read_text(encoding="utf-8")
    from_bytes = TilesetCatalog.loads(text.encode("utf-8"))
    from_text = TilesetCatalog.loads(text.replace('<?xml version="1.0" encoding="UTF-8"?>', ""))
    assert from_bytes.tiles == from_text.tiles


def test_missing_file_is_not_wrapped(tmp_path):
    with pytest.raises(FileNotFoundError):
        TilesetCatalog.load(tmp_path / "nope.tsx")


def test_invalid_xml_in_stream():
    with pytest.raises(TilesetFormatError) as excinfo:
        TilesetCatalog.from_stream(io.BytesIO(b"<tileset name='x'"))
    assert "invalid XML" in str(excinfo.value)


def test_tile_metadata():
    catalog = TilesetCatalog.loads("""
    <tileset name="props" tilewidth="16" tileheight="16" tilecount="2" columns="0">
     <tileoffset x="2" y="-4"/>
     <properties>
      <property name="author" value="kenney"/>
     </properties>
     <tile id="0" type="door" probability="0.5">
      <properties>
       <property name="solid" type="bool" value="true"/>
       <property name="damage" type="int" value="10"/>
       <property name="speed" type="float" value="1.5"/>
       <property name="note">first line
second line</property>
      </properties>
      <image width="16" height="16" source="door.png" trans="ff00ff"/>
      <animation>
       <frame tileid="0" duration="100"/>
       <frame tileid="1" duration="200"/>
      </animation>
     </tile>
     <tile id="1">
      <image width="16" height="16" source="door_open.png"/>
     </tile>
    </tileset>
    """)

    assert catalog.get_property("author") == "kenney"
    assert catalog.get_property("missing", "default") == "default"
    assert (catalog.tileoffset.x, catalog.tileoffset.y) == (2, -4)

    door = catalog.get_tile(0)
    assert door.type == "door"
    assert door.probability == 0.5
    assert door.get_property("solid") is True
    assert door.get_property("damage") == 10
    assert door.get_property("speed") == 1.5
    assert door.get_property("note") == "first line\nsecond line"
    assert door.image.trans == "ff00ff"
    assert [(f.tileid, f.duration) for f in door.animation] == [(0, 100), (1, 200)]


def test_class_attribute_replaces_type():
    catalog = TilesetCatalog.loads("""
    <tileset version="1.10" name="c" class="props" tilewidth="8" tileheight="8" tilecount="1" columns="0">
     <tile id="0" class="crate"><image width="8" height="8" source="crate.png"/></tile>
    </tileset>
    """)
    assert catalog.class_name == "props"
    assert catalog.get_tile(0).type == "crate"


def test_sparse_ids_are_allowed():
    catalog = TilesetCatalog.loads("""
    <tileset name="gaps" tilewidth="8" tileheight="8" tilecount="2" columns="0">
     <tile id="3"><image width="8" height="8" source="a.png"/></tile>
     <tile id="10"><image width="8" height="8" source="b.png"/></tile>
    </tileset>
    """)
    assert catalog.ids == [3, 10]
    assert catalog.get_tile(10).image_path == "b.png"


def test_spritesheet_image_path_is_shared():
    catalog = TilesetCatalog.loads("""
    <tileset name="terrain" tilewidth="32" tileheight="32" tilecount="64" columns="8">
     <image source="terrain.png" width="256" height="256"/>
     <tile id="5">
      <properties><property name="solid" type="bool" value="true"/></properties>
     </tile>
    </tileset>
    """, base_dir="maps")
    assert not catalog.is_image_collection
    assert catalog.image_path(5) == Path("maps") / "terrain.png"
    assert catalog.get_tile(5).get_property("solid") is True


@pytest.mark.parametrize(
    "source, expected",
    [
        ("Objects/oil.png", True),
        ("../shared/oil.png", True),
        ("oil.png", True),
        ("", False),
        ("/srv/art/oil.png", False),
        ("C:\\art\\oil.png", False),
        ("C:/art/oil.png", False),
        ("\\\\host\\share\\oil.png", False),
    ],
)
def test_is_relative_path(source, expected):
    assert is_relative_path(source) is expected
