"""Test: malformed descriptors are rejected with every problem reported."""

import logging

import pytest

from tsx_manager import LoaderConfig, TilesetCatalog, TilesetFormatError


def _collection(tiles, tilecount=None, extra=""):
    count = len(tiles) if tilecount is None else tilecount
    body = "\n".join(tiles)
    return (
        f'<tileset name="t" tilewidth="16" tileheight="16" '
        f'tilecount="{count}" columns="0" {extra}>\n{body}\n</tileset>'
    )


def _tile(tile_id, source="a.png", width="16", height="16"):
    attrs = []
    if width is not None:
        attrs.append(f'width="{width}"')
    if height is not None:
        attrs.append(f'height="{height}"')
    attrs.append(f'source="{source}"')
    return f'<tile id="{tile_id}"><image {" ".join(attrs)}/></tile>'


def _problems(xml, config=None):
    with pytest.raises(TilesetFormatError) as excinfo:
        TilesetCatalog.loads(xml, config=config)
    return excinfo.value.problems


def test_valid_collection_loads():
    catalog = TilesetCatalog.loads(_collection([_tile(0), _tile(1, "b.png")]))
    assert len(catalog) == 2


def test_tilecount_mismatch():
    problems = _problems(_collection([_tile(0), _tile(1, "b.png")], tilecount=39))
    assert problems == ["tilecount is 39 but 2 tiles are defined"]


def test_duplicate_ids():
    problems = _problems(_collection([_tile(4), _tile(4, "b.png")]))
    assert problems == ["duplicate tile id 4"]


def test_negative_id():
    problems = _problems(_collection([_tile(-1)]))
    assert "tile id -1 is negative" in problems


def test_non_positive_dimensions():
    problems = _problems(_collection([_tile(0, width="0"), _tile(1, height=None)]))
    assert "tile 0 image width must be positive" in problems
    assert "tile 1 image height must be positive" in problems


def test_tile_without_image():
    problems = _problems(_collection(['<tile id="0"/>']))
    assert problems == ["tile 0 has no image"]


def test_empty_source():
    problems = _problems(_collection([_tile(0, source="")]))
    assert problems == ["tile 0 image has an empty source"]


def test_absolute_source_rejected_by_default():
    xml = _collection([_tile(0, source="/srv/art/a.png")])
    problems = _problems(xml)
    assert problems == ["tile 0 image source is not relative: /srv/art/a.png"]

    catalog = TilesetCatalog.loads(xml, config=LoaderConfig(allow_absolute_paths=True))
    assert catalog.get_tile(0).image_path == "/srv/art/a.png"


def test_all_problems_are_collected():
    xml = _collection(
        [_tile(0, width="0"), _tile(0, source=""), '<tile id="2"/>'],
        tilecount=5,
    )
    problems = _problems(xml)
    assert len(problems) == 5
    assert problems[0] == "duplicate tile id 0"


def test_error_is_a_value_error_and_names_source(tmp_path):
    path = tmp_path / "broken.tsx"
    path.write_text(_collection([_tile(0)], tilecount=3), encoding="utf-8")
    with pytest.raises(ValueError) as excinfo:
        TilesetCatalog.load(path)
    assert isinstance(excinfo.value, TilesetFormatError)
    assert excinfo.value.source == str(path)
    assert str(path) in str(excinfo.value)


def test_invalid_xml():
    problems = _problems("<tileset name='x'><tile id='0'></tileset>")
    assert problems[0].startswith("invalid XML")


def test_wrong_root_element():
    problems = _problems('<map version="1.10" width="10" height="10"/>')
    assert problems == ["root element is <map>, expected <tileset>"]


def test_bad_integer_attribute():
    problems = _problems(_collection([_tile(0)], tilecount="many"))
    assert problems == ["<tileset> attribute 'tilecount' is not an integer: 'many'"]


def test_bad_property_value():
    xml = _collection([
        '<tile id="0"><properties><property name="hp" type="int" value="lots"/>'
        '</properties><image width="8" height="8" source="a.png"/></tile>'
    ])
    problems = _problems(xml)
    assert problems == ["property 'hp' has a bad int value: 'lots'"]


def test_missing_tilecount_is_derived():
    xml = (
        '<tileset name="old" tilewidth="16" tileheight="16">'
        + _tile(0) + _tile(1, "b.png") + "</tileset>"
    )
    catalog = TilesetCatalog.loads(xml)
    assert catalog.tilecount == 2


def test_missing_tilecount_derived_from_spritesheet():
    catalog = TilesetCatalog.loads(
        '<tileset name="old" tilewidth="16" tileheight="16" columns="4">'
        '<image source="sheet.png" width="64" height="32"/></tileset>'
    )
    assert catalog.tilecount == 8


def test_spritesheet_rules():
    problems = _problems(
        '<tileset name="s" tilewidth="16" tileheight="16" tilecount="4" columns="2">'
        '<image source="" width="32" height="32"/><tile id="7"/></tileset>'
    )
    assert problems == [
        "tile id 7 is out of range for tilecount 4",
        "tileset image has an empty source",
    ]


def test_collection_columns_are_display_only():
    # Tiled keeps the editor's column count on image collections
    catalog = TilesetCatalog.loads(
        _collection([_tile(0), _tile(1, "b.png")]).replace('columns="0"', 'columns="4"')
    )
    assert catalog.is_image_collection
    assert catalog.columns == 4
    assert catalog.validate() == []


def test_collection_columns_without_tile_image():
    problems = _problems(
        '<tileset name="s" tilewidth="16" tileheight="16" tilecount="1" columns="2">'
        '<tile id="0"/></tileset>'
    )
    assert problems == ["tile 0 has no image"]


def test_spritesheet_needs_a_tile_size():
    xml = (
        '<tileset name="z" tilewidth="0" tileheight="16" columns="0">'
        '<image source="sheet.png" width="64" height="32"/></tileset>'
    )
    assert _problems(xml) == ["spritesheet tile size must be positive, got 0x16"]


@pytest.mark.parametrize("tileheight, spacing", [("0", "0"), ("4", "-4")])
def test_missing_tilecount_with_empty_rows(tileheight, spacing):
    xml = (
        f'<tileset name="z" tilewidth="16" tileheight="{tileheight}" spacing="{spacing}" columns="4">'
        '<image source="sheet.png" width="64" height="32"/></tileset>'
    )
    catalog = TilesetCatalog.loads(xml, config=LoaderConfig(strict=False))
    assert catalog.tilecount == 0


def test_lenient_mode_logs_and_returns(caplog):
    xml = _collection([_tile(0), _tile(0, "b.png")], tilecount=3)
    with caplog.at_level(logging.WARNING, logger="tsx_manager"):
        catalog = TilesetCatalog.loads(xml, config=LoaderConfig(strict=False))
    assert len(catalog) == 2
    # First entry wins on duplicate ids
    assert catalog.get_tile(0).image_path == "a.png"
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert any("duplicate tile id 0" in m for m in messages)
    assert any("tilecount is 3" in m for m in messages)


def test_check_on_built_catalog():
    catalog = TilesetCatalog(name="manual", tilecount=1)
    with pytest.raises(TilesetFormatError) as excinfo:
        catalog.check()
    assert excinfo.value.problems == ["tilecount is 1 but 0 tiles are defined"]
