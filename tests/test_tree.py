import base64
import struct
import zlib

import numpy as np
import pytest

from conftest import make_map, tile_layer
from tmx_decoder.attributes import parse_color
from tmx_decoder.errors import (DecompressionError, MalformedInputError, TmxParseError,
                                UnsupportedEncodingError)
from tmx_decoder.gid import TileIdentifier
from tmx_decoder.models import Color, LayerKind, ObjectShape, Orientation
from tmx_decoder.tree import parse_map


def b64_cells(values, compress=False):
    raw = struct.pack(f"<{len(values)}I", *values)
    if compress:
        raw = zlib.compress(raw)
    return base64.b64encode(raw).decode("ascii")


# =============================================================================
# MAP ATTRIBUTES
# =============================================================================

def test_map_attributes(simple_map_xml):
    tiled_map = parse_map(simple_map_xml)

    assert tiled_map.version == "1.10"
    assert tiled_map.tiled_version == "1.10.2"
    assert tiled_map.orientation is Orientation.ORTHOGONAL
    assert tiled_map.render_order == "right-down"
    assert (tiled_map.width, tiled_map.height) == (4, 2)
    assert (tiled_map.tile_width, tiled_map.tile_height) == (16, 16)
    assert tiled_map.infinite is False
    assert tiled_map.background_color is None
    assert tiled_map.parallax_origin == (0.0, 0.0)


def test_optional_map_attributes():
    xml = make_map("", extra='backgroundcolor="203040" parallaxoriginx="1.5" parallaxoriginy="-2"')
    tiled_map = parse_map(xml)

    assert tiled_map.background_color == Color(0x20, 0x30, 0x40)
    assert tiled_map.parallax_origin == (1.5, -2.0)


def test_isometric_orientation():
    xml = make_map("").replace('orientation="orthogonal"', 'orientation="isometric"')
    assert parse_map(xml).orientation is Orientation.ISOMETRIC


def test_unknown_orientation_is_malformed():
    xml = make_map("").replace('orientation="orthogonal"', 'orientation="spherical"')
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert isinstance(info.value.cause, MalformedInputError)
    assert info.value.cause.attribute == "orientation"


def test_missing_required_map_attribute():
    xml = make_map("").replace('tilewidth="16" ', "")
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert info.value.cause.attribute == "tilewidth"


@pytest.mark.parametrize("color", ["#zz0000", "-1-1-1", "#+f+f+f", " 1 2 3"])
def test_bad_background_color(color):
    with pytest.raises(TmxParseError) as info:
        parse_map(make_map("", extra=f'backgroundcolor="{color}"'))
    assert isinstance(info.value.cause, MalformedInputError)
    assert info.value.cause.attribute == "backgroundcolor"


def test_parse_color_forms():
    assert parse_color("#ff8000") == Color(255, 128, 0)
    assert parse_color("ff8000") == Color(255, 128, 0)
    assert parse_color("#A0b0C0") == Color(160, 176, 192)


@pytest.mark.parametrize("value", ["#80ff8000", "-1-1-1", "+f+f+f", " 1 2 3", "0x1234", "ff 80 0"])
def test_parse_color_rejects_non_hex(value):
    with pytest.raises(MalformedInputError):
        parse_color(value)


@pytest.mark.parametrize("width", [" 4 ", "1_0", "\u0664", "+4", "4.0", ""])
def test_map_size_must_be_plain_integer(width):
    xml = make_map("").replace('width="4"', f'width="{width}"', 1)
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert info.value.cause.attribute == "width"


def test_negative_integers_are_accepted():
    xml = make_map(infinite_layer('<chunk x="-16" y="-32" width="1" height="1">7</chunk>'),
                   infinite=True)
    chunk = parse_map(xml).layers[0].content.chunks[0]
    assert (chunk.x, chunk.y) == (-16, -32)


def test_tileset_refs_sorted_and_embedded():
    xml = make_map(
        '<tileset firstgid="50" source="b.tsx"/>'
        '<tileset firstgid="1" name="inline" tilewidth="16" tileheight="16" '
        'tilecount="4" columns="2"><image source="inline.png" width="32" height="32"/></tileset>'
    )
    refs = parse_map(xml).tileset_refs

    assert [ref.first_gid for ref in refs] == [1, 50]
    assert refs[0].is_embedded
    assert refs[0].tileset.name == "inline"
    assert refs[0].tileset.image.width == 32
    assert refs[1].source == "b.tsx"
    assert refs[1].tileset is None


def test_map_properties():
    xml = make_map(
        '<properties>'
        '<property name="music" value="theme.ogg"/>'
        '<property name="gravity" type="float" value="9.8"/>'
        '<property name="lives" type="int" value="3"/>'
        '<property name="dark" type="bool" value="true"/>'
        '<property name="intro">Once upon a time</property>'
        '</properties>'
    )
    props = parse_map(xml).properties

    assert props["music"].value == "theme.ogg"
    assert props["gravity"].value == 9.8
    assert props["lives"].value == 3
    assert props["dark"].value is True
    assert props["intro"].value == "Once upon a time"


# =============================================================================
# TILE LAYERS
# =============================================================================

def test_tile_layer_cells(simple_map_xml):
    layer = parse_map(simple_map_xml).layers[0]

    assert layer.kind is LayerKind.TILE
    assert layer.name == "Ground"
    assert len(layer.content.cells) == 4 * 2
    assert layer.content.cells[6] == TileIdentifier(5, True, False, False)
    assert layer.content.encoding == "csv"
    assert layer.content.compression is None


def test_layer_defaults(simple_map_xml):
    layer = parse_map(simple_map_xml).layers[0]

    assert layer.offset == (0.0, 0.0)
    assert layer.parallax == (0.0, 0.0)
    assert layer.opacity == 1.0
    assert layer.tint is None
    assert layer.visible is True
    assert layer.locked is False
    assert layer.properties == {}


def test_layer_common_attributes():
    attrs = ('offsetx="8" offsety="-4.5" parallaxx="0.5" parallaxy="1" opacity="0.25" '
             'visible="0" locked="1" tintcolor="#ff8000"')
    layer = parse_map(make_map(tile_layer(3, "Tinted", "0,0,0,0,0,0,0,0", attrs=attrs))).layers[0]

    assert layer.id == 3
    assert layer.offset == (8.0, -4.5)
    assert layer.parallax == (0.5, 1.0)
    assert layer.opacity == 0.25
    assert layer.visible is False
    assert layer.locked is True
    assert layer.tint == Color(255, 128, 0)


def test_base64_zlib_layer():
    values = [1, 2, 3, 4, 0x80000001, 0, 0, 7]
    xml = make_map(tile_layer(1, "Packed", b64_cells(values, compress=True),
                              encoding="base64", compression="zlib"))
    tiles = parse_map(xml).layers[0].content

    assert [cell.to_raw() for cell in tiles.cells] == values
    assert tiles.compression == "zlib"


def test_flip_predicates_by_index_and_position(simple_map_xml):
    tiled_map = parse_map(simple_map_xml)
    layer = tiled_map.layers[0]

    # index = col + row * width -> (2, 1) is 6
    assert tiled_map.is_flipped_horizontal(layer, 6)
    assert tiled_map.is_flipped_horizontal(layer, 2, 1)
    assert not tiled_map.is_flipped_vertical(layer, 2, 1)
    assert not tiled_map.is_flipped_diagonal(layer, 6)
    assert not tiled_map.is_flipped_horizontal(layer, 0, 0)


def test_cell_out_of_bounds_is_empty(simple_map_xml):
    tiles = parse_map(simple_map_xml).layers[0].content
    assert tiles.cell(4, 0).is_empty
    assert tiles.cell(100).is_empty


def test_flip_predicate_rejects_object_layer():
    tiled_map = parse_map(make_map('<objectgroup id="1" name="o"/>'))
    with pytest.raises(TypeError):
        tiled_map.is_flipped_horizontal(tiled_map.layers[0], 0)


def test_to_array(simple_map_xml):
    grid = parse_map(simple_map_xml).layers[0].content.to_array()

    assert grid.shape == (2, 4)
    assert grid.dtype == np.uint32
    assert grid[1].tolist() == [5, 0, 5, 1]


def test_cell_count_must_match_dimensions():
    with pytest.raises(TmxParseError) as info:
        parse_map(make_map(tile_layer(1, "Short", "1,2,3")))
    assert isinstance(info.value.cause, MalformedInputError)


def test_missing_layer_id():
    xml = make_map('<layer name="x" width="1" height="1"><data encoding="csv">1</data></layer>')
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert info.value.cause.attribute == "id"
    assert info.value.cause.node == "layer"


def test_missing_layer_width():
    xml = make_map('<layer id="1" name="x" height="1"><data encoding="csv">1</data></layer>')
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert info.value.cause.attribute == "width"


def test_missing_data_element():
    with pytest.raises(TmxParseError):
        parse_map(make_map('<layer id="1" name="x" width="1" height="1"/>'))


def test_unsupported_encoding_surfaces_by_name():
    xml = make_map('<layer id="1" name="x" width="1" height="1">'
                   '<data><tile gid="1"/></data></layer>')
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert isinstance(info.value.cause, MalformedInputError)

    xml = make_map(tile_layer(1, "x", "AAAA", width=1, height=1,
                              encoding="base64", compression="zstd"))
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert isinstance(info.value.cause, UnsupportedEncodingError)
    assert info.value.cause.name == "zstd"


def test_corrupt_stream_surfaces_as_decompression_error():
    bad = base64.b64encode(b"\x78\x9c" + b"\xff" * 8).decode("ascii")
    xml = make_map(tile_layer(1, "x", bad, encoding="base64", compression="zlib"))
    with pytest.raises(TmxParseError) as info:
        parse_map(xml)
    assert isinstance(info.value.cause, DecompressionError)


def test_xml_syntax_error():
    with pytest.raises(TmxParseError):
        parse_map("<map version='1.10'><layer></map>")


def test_wrong_root_element():
    with pytest.raises(TmxParseError):
        parse_map('<tileset version="1.10"/>')


# =============================================================================
# INFINITE MAPS
# =============================================================================

def infinite_layer(chunks: str, encoding: str = "csv") -> str:
    return (f'<layer id="1" name="World" width="32" height="32">'
            f'<data encoding="{encoding}">{chunks}</data></layer>')


def test_infinite_map_chunks():
    xml = make_map(infinite_layer(
        '<chunk x="0" y="0" width="2" height="2">1,2,3,4</chunk>'
        '<chunk x="-16" y="16" width="2" height="1">0,2147483653</chunk>'
    ), infinite=True)
    tiles = parse_map(xml).layers[0].content

    assert tiles.is_chunked
    assert tiles.cells == ()
    first, second = tiles.chunks
    assert (first.x, first.y, first.width, first.height) == (0, 0, 2, 2)
    assert first.cell(1, 1).index == 4
    assert (second.x, second.y) == (-16, 16)
    assert second.cells[1] == TileIdentifier(5, True, False, False)
    assert first.to_array().tolist() == [[1, 2], [3, 4]]


def test_infinite_map_base64_chunks():
    xml = make_map(infinite_layer(
        f'<chunk x="0" y="0" width="2" height="1">{b64_cells([9, 10])}</chunk>',
        encoding="base64"), infinite=True)
    chunk = parse_map(xml).layers[0].content.chunks[0]
    assert [cell.index for cell in chunk.cells] == [9, 10]


def test_chunk_size_mismatch():
    xml = make_map(infinite_layer('<chunk x="0" y="0" width="2" height="2">1,2,3</chunk>'),
                   infinite=True)
    with pytest.raises(TmxParseError):
        parse_map(xml)


def test_chunked_layer_has_no_single_grid():
    xml = make_map(infinite_layer('<chunk x="0" y="0" width="1" height="1">1</chunk>'),
                   infinite=True)
    with pytest.raises(ValueError):
        parse_map(xml).layers[0].content.to_array()


# =============================================================================
# DOCUMENT TREE
# =============================================================================

def test_layers_keep_document_order_across_kinds():
    xml = make_map(
        tile_layer(1, "ground", "0,0,0,0,0,0,0,0")
        + '<objectgroup id="2" name="spawns"/>'
        + '<imagelayer id="3" name="sky"><image source="sky.png"/></imagelayer>'
        + tile_layer(4, "roof", "0,0,0,0,0,0,0,0")
    )
    layers = parse_map(xml).layers

    assert [layer.name for layer in layers] == ["ground", "spawns", "sky", "roof"]
    assert [layer.kind for layer in layers] == [
        LayerKind.TILE, LayerKind.OBJECT, LayerKind.IMAGE, LayerKind.TILE]
    assert layers[2].content.image.source == "sky.png"
    assert layers[2].content.image.width is None


def test_nested_groups():
    xml = make_map(
        '<group id="10" name="outer" locked="1">'
        + tile_layer(1, "a", "0,0,0,0,0,0,0,0")
        + '<group id="11" name="middle" visible="0">'
        + '<group id="12" name="inner">'
        + '<objectgroup id="2" name="deep"/>'
        + '</group>'
        + '</group>'
        + '</group>'
        + tile_layer(3, "top", "0,0,0,0,0,0,0,0")
    )
    tiled_map = parse_map(xml)

    assert [layer.name for layer in tiled_map.layers] == ["top"]
    outer = tiled_map.groups[0]
    assert outer.locked is True
    assert [layer.name for layer in outer.layers] == ["a"]
    middle = outer.groups[0]
    assert middle.visible is False
    inner = middle.groups[0]
    assert inner.name == "inner"
    assert inner.layers[0].name == "deep"

    assert [layer.name for layer in tiled_map.iter_layers()] == ["top", "a", "deep"]
    assert tiled_map.get_layer_by_name("deep").kind is LayerKind.OBJECT
    assert tiled_map.get_layer_by_name("missing") is None
    assert [layer.name for layer in tiled_map.tile_layers()] == ["top", "a"]


def test_group_without_id_is_malformed():
    with pytest.raises(TmxParseError):
        parse_map(make_map('<group name="g"/>'))


def test_tile_layer_inside_group_of_infinite_map():
    xml = make_map('<group id="5" name="g">'
                   + infinite_layer('<chunk x="0" y="0" width="1" height="1">3</chunk>')
                   + '</group>', infinite=True)
    tiles = parse_map(xml).groups[0].layers[0].content
    assert tiles.chunks[0].cells == (TileIdentifier(3),)


def test_group_shared_attributes():
    xml = make_map('<group id="7" name="fx" offsetx="4" offsety="-2" parallaxx="0.5" parallaxy="2" '
                   'opacity="0.5" tintcolor="#102030"/>')
    group = parse_map(xml).groups[0]

    assert group.offset == (4.0, -2.0)
    assert group.parallax == (0.5, 2.0)
    assert group.opacity == 0.5
    assert group.tint == Color(16, 32, 48)


def test_group_attribute_defaults():
    group = parse_map(make_map('<group id="7"/>')).groups[0]
    assert group.parallax == (0.0, 0.0)
    assert group.tint is None


def test_chunked_layer_cell_lookup_in_map_coordinates():
    xml = make_map(infinite_layer(
        '<chunk x="0" y="0" width="2" height="2">1,2,3,4</chunk>'
        '<chunk x="-16" y="16" width="2" height="1">0,2147483653</chunk>'
    ), infinite=True)
    tiled_map = parse_map(xml)
    layer = tiled_map.layers[0]
    tiles = layer.content

    assert tiles.cell(1, 1).index == 4
    assert tiles.cell(-15, 16).index == 5
    assert tiles.cell(-16, 16).is_empty
    assert tiles.cell(5, 5).is_empty
    # no flat order across chunks
    assert tiles.cell(0).is_empty
    assert tiled_map.is_flipped_horizontal(layer, -15, 16)
    assert not tiled_map.is_flipped_horizontal(layer, 0, 0)


def test_objects():
    xml = make_map(
        '<objectgroup id="1" name="things">'
        '<object id="1" name="door" type="portal" x="16" y="32" width="16" height="8" rotation="90"/>'
        '<object id="2" x="4" y="4"><ellipse/></object>'
        '<object id="3" x="1" y="2"><point/></object>'
        '<object id="4" x="0" y="0"><polygon points="0,0 32,0 16,16"/></object>'
        '<object id="5" x="0" y="0"><polyline points="0,0 8,8"/></object>'
        '<object id="6" class="chest" gid="1073741830" x="0" y="16" visible="0">'
        '<properties><property name="gold" type="int" value="50"/></properties>'
        '</object>'
        '</objectgroup>'
    )
    objects = parse_map(xml).layers[0].content.objects

    door = objects[0]
    assert (door.name, door.type) == ("door", "portal")
    assert (door.x, door.y, door.width, door.height, door.rotation) == (16, 32, 16, 8, 90)
    assert door.shape is ObjectShape.RECTANGLE
    assert door.tile is None

    assert objects[1].shape is ObjectShape.ELLIPSE
    assert objects[2].shape is ObjectShape.POINT
    assert objects[3].shape is ObjectShape.POLYGON
    assert objects[3].points == ((0.0, 0.0), (32.0, 0.0), (16.0, 16.0))
    assert objects[4].shape is ObjectShape.POLYLINE

    chest = objects[5]
    assert chest.type == "chest"
    assert chest.tile == TileIdentifier(6, False, True, False)
    assert chest.visible is False
    assert chest.properties["gold"].value == 50


def test_parsing_is_idempotent(simple_map_xml):
    assert parse_map(simple_map_xml) == parse_map(simple_map_xml)
