"""
Map document parser: builds the TiledMap tree from a .tmx document

=============================================================================
CONTAINERS
=============================================================================

The <map> element and every <group> element are containers. A container
holds, in any order:

    <properties>     custom properties of the container
    <layer>          tile layer     ─┐
    <objectgroup>    object layer    ├─ collected into `layers`
    <imagelayer>     image layer    ─┘
    <group>          nested container, collected into `groups`

One function, parse_container(), handles a container at any depth: the
map root calls it, and every group it finds calls it again on itself.
Groups can nest as deep as the document goes.

=============================================================================
LAYER ORDER
=============================================================================

`layers` keeps TRUE DOCUMENT ORDER across the three layer kinds. A map
with

    <layer name="ground"/>
    <objectgroup name="spawns"/>
    <layer name="roof"/>

yields [ground, spawns, roof], not the tile layers first. Groups are kept
apart in `groups`, also in document order.

=============================================================================
TILE DATA
=============================================================================

Finite maps: the <data> element text is decoded once and must contain
exactly width*height cells.

Infinite maps: <data> contains <chunk x=".." y=".." width=".." height="..">
children. Each chunk is decoded on its own, with the encoding and
compression of the parent <data>, and must contain width*height cells of
its own size.

=============================================================================
"""

import logging
import xml.etree.ElementTree as ET
from typing import Callable, Dict, List, Tuple, Union

from .attributes import (optional_color, optional_flag, optional_float, parse_properties,
                         require, required_int)
from .errors import MalformedInputError, TmxError, TmxParseError
from .layer_data import Compression, decode_layer_data, parse_compression, parse_encoding
from .models import (Chunk, Group, ImageLayer, Layer, LayerContent, ObjectLayer, Orientation,
                     TiledMap, TileLayer, TilesetRef)
from .objects import parse_image, parse_objects
from .tileset import parse_tileset_element

logger = logging.getLogger(__name__)

# Children of a container that are not layers and are handled elsewhere
_NON_LAYER_TAGS = {"properties", "tileset", "editorsettings"}


# =============================================================================
# LAYER CONTENT
# =============================================================================

def _decode_cells(elem: ET.Element, payload: str, encoding, compression,
                  width: int, height: int, what: str):
    cells = decode_layer_data(payload, encoding, compression)
    if len(cells) != width * height:
        raise MalformedInputError(
            f"{what} has {len(cells)} cells, expected {width}x{height}={width * height}",
            elem.tag)
    return tuple(cells)


def _parse_chunk(elem: ET.Element, encoding, compression) -> Chunk:
    width = required_int(elem, "width")
    height = required_int(elem, "height")
    x = required_int(elem, "x")
    y = required_int(elem, "y")
    cells = _decode_cells(elem, elem.text or "", encoding, compression,
                          width, height, f"chunk at ({x}, {y})")
    return Chunk(x, y, width, height, cells)


def _parse_tile_layer(elem: ET.Element, infinite: bool) -> TileLayer:
    """
    Parse the content of a <layer> element.

    XML format:
        <layer id="1" name="Ground" width="4" height="2">
            <data encoding="csv">
                1,2,3,4,
                5,6,7,8
            </data>
        </layer>
    """
    width = required_int(elem, "width")
    height = required_int(elem, "height")

    data_elem = elem.find("data")
    if data_elem is None:
        raise MalformedInputError("tile layer has no <data>", elem.tag)

    encoding = parse_encoding(data_elem.get("encoding"))
    compression = parse_compression(data_elem.get("compression"))
    name = elem.get("name", "")

    if infinite:
        chunks = tuple(_parse_chunk(chunk_elem, encoding, compression)
                       for chunk_elem in data_elem.findall("chunk"))
        cells = ()
        logger.debug("layer %r: %d chunks", name, len(chunks))
    else:
        chunks = ()
        cells = _decode_cells(data_elem, data_elem.text or "", encoding, compression,
                              width, height, f"layer {name!r}")

    return TileLayer(
        width=width,
        height=height,
        cells=cells,
        chunks=chunks,
        encoding=encoding.value,
        compression=None if compression is Compression.NONE else compression.value,
    )


def _parse_object_layer(elem: ET.Element, infinite: bool) -> ObjectLayer:
    return ObjectLayer(objects=parse_objects(elem))


def _parse_image_layer(elem: ET.Element, infinite: bool) -> ImageLayer:
    img_elem = elem.find("image")
    return ImageLayer(image=parse_image(img_elem) if img_elem is not None else None)


_CONTENT_PARSERS: Dict[str, Callable[[ET.Element, bool], LayerContent]] = {
    "layer": _parse_tile_layer,
    "objectgroup": _parse_object_layer,
    "imagelayer": _parse_image_layer,
}


# =============================================================================
# LAYERS AND GROUPS
# =============================================================================

def _offset(elem: ET.Element) -> Tuple[float, float]:
    return (optional_float(elem, "offsetx", 0.0), optional_float(elem, "offsety", 0.0))


def _parallax(elem: ET.Element) -> Tuple[float, float]:
    # Absent parallax is stored as-is (0, 0); renderers treat it as 1
    return (optional_float(elem, "parallaxx", 0.0), optional_float(elem, "parallaxy", 0.0))


def parse_layer(elem: ET.Element, infinite: bool = False) -> Layer:
    """
    Parse a <layer>, <objectgroup> or <imagelayer> element.

    The content is decoded first, then the Layer is built in one go.
    """
    content = _CONTENT_PARSERS[elem.tag](elem, infinite)

    return Layer(
        id=required_int(elem, "id"),
        name=elem.get("name", ""),
        content=content,
        offset=_offset(elem),
        parallax=_parallax(elem),
        opacity=optional_float(elem, "opacity", 1.0),
        visible=optional_flag(elem, "visible", True),
        locked=optional_flag(elem, "locked", False),
        tint=optional_color(elem, "tintcolor"),
        properties=parse_properties(elem),
    )


def parse_container(elem: ET.Element, infinite: bool = False) -> Tuple[Tuple[Layer, ...], Tuple[Group, ...]]:
    """
    Parse the children of a container (<map> or <group>).

    Parameters:
    -----------
    elem : ET.Element
        The container element
    infinite : bool
        Whether the map is infinite (tile data comes in chunks)

    Returns:
    --------
    (layers, groups) : both in document order
    """
    layers: List[Layer] = []
    groups: List[Group] = []

    for child in elem:
        if child.tag in _CONTENT_PARSERS:
            layers.append(parse_layer(child, infinite))
        elif child.tag == "group":
            # Recursive: group within group
            groups.append(parse_group(child, infinite))
        elif child.tag not in _NON_LAYER_TAGS:
            logger.warning("skipping unknown <%s> inside <%s>", child.tag, elem.tag)

    return tuple(layers), tuple(groups)


def parse_group(elem: ET.Element, infinite: bool = False) -> Group:
    layers, groups = parse_container(elem, infinite)

    return Group(
        id=required_int(elem, "id"),
        name=elem.get("name", ""),
        layers=layers,
        groups=groups,
        offset=_offset(elem),
        parallax=_parallax(elem),
        opacity=optional_float(elem, "opacity", 1.0),
        visible=optional_flag(elem, "visible", True),
        locked=optional_flag(elem, "locked", False),
        tint=optional_color(elem, "tintcolor"),
        properties=parse_properties(elem),
    )


# =============================================================================
# MAP
# =============================================================================

def _parse_tileset_ref(elem: ET.Element) -> TilesetRef:
    """
    External:  <tileset firstgid="1" source="terrain.tsx"/>
    Embedded:  <tileset firstgid="1" name=".." tilewidth="..">...</tileset>
    """
    first_gid = required_int(elem, "firstgid")
    source = elem.get("source")
    if source is not None:
        return TilesetRef(first_gid, source)
    return TilesetRef(first_gid, None, parse_tileset_element(elem, standalone=False))


def _parse_orientation(elem: ET.Element) -> Orientation:
    value = require(elem, "orientation")
    try:
        return Orientation(value)
    except ValueError:
        raise MalformedInputError(f"unknown orientation {value!r}", elem.tag, "orientation") from None


def parse_map_element(root: ET.Element) -> TiledMap:
    """
    Build a TiledMap from a <map> element.

    Raises the specific TmxError subclasses; parse_map() wraps them.
    """
    if root.tag != "map":
        raise MalformedInputError("expected a <map> root element", root.tag)

    infinite = require(root, "infinite") == "1"

    refs = [_parse_tileset_ref(ts_elem) for ts_elem in root.findall("tileset")]
    layers, groups = parse_container(root, infinite)

    tiled_map = TiledMap(
        version=require(root, "version"),
        orientation=_parse_orientation(root),
        render_order=require(root, "renderorder"),
        width=required_int(root, "width"),
        height=required_int(root, "height"),
        tile_width=required_int(root, "tilewidth"),
        tile_height=required_int(root, "tileheight"),
        infinite=infinite,
        tiled_version=root.get("tiledversion"),
        background_color=optional_color(root, "backgroundcolor"),
        parallax_origin=(optional_float(root, "parallaxoriginx", 0.0),
                         optional_float(root, "parallaxoriginy", 0.0)),
        properties=parse_properties(root),
        tileset_refs=tuple(sorted(refs, key=lambda ref: ref.first_gid)),
        layers=layers,
        groups=groups,
    )

    logger.debug("parsed %dx%d map: %d tilesets, %d layers, %d groups",
                 tiled_map.width, tiled_map.height, len(refs), len(layers), len(groups))
    return tiled_map


def parse_map(text: Union[str, bytes]) -> TiledMap:
    """
    Parse a .tmx document from its text, or from raw bytes in the
    encoding its XML declaration names.

    All-or-nothing: any problem anywhere in the document raises
    TmxParseError with the original error as `cause`.
    """
    try:
        return parse_map_element(ET.fromstring(text))
    # LookupError/ValueError: unknown or unsupported encoding in the XML declaration
    except (TmxError, ET.ParseError, LookupError, ValueError) as exc:
        raise TmxParseError("could not parse map document", exc) from exc
