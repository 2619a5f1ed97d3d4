"""
Tileset parser (.tsx documents and tilesets embedded in a map)

=============================================================================
TSX STRUCTURE
=============================================================================

    <tileset version="1.10" name="terrain" tilewidth="16" tileheight="16"
             tilecount="64" columns="8" margin="0" spacing="0">
        <image source="terrain.png" width="128" height="128"/>
        <tile id="3" type="water">
            <properties>
                <property name="solid" type="bool" value="true"/>
            </properties>
            <animation>
                <frame tileid="3" duration="200"/>
                <frame tileid="4" duration="200"/>
            </animation>
            <objectgroup>
                <object id="1" x="0" y="8" width="16" height="8"/>
            </objectgroup>
        </tile>
    </tileset>

Required: tilewidth, tileheight, tilecount, columns (and version for a
standalone document). Optional: name, margin, spacing, image, tiles.

=============================================================================
"""

import xml.etree.ElementTree as ET
from typing import Dict, Optional, Tuple, Union

from .attributes import optional_int, parse_properties, require, required_int, to_int
from .errors import MalformedInputError, TmxError, TmxParseError
from .models import AnimationFrame, TileDef, Tileset
from .objects import parse_image, parse_objects


def _parse_terrain(elem: ET.Element) -> Optional[Tuple[Optional[int], ...]]:
    # terrain="0,0,,1": one entry per corner, empty means no terrain
    value = elem.get("terrain")
    if value is None:
        return None
    return tuple(to_int(elem, "terrain", part) if part.strip() else None
                 for part in value.split(","))


def _parse_animation(elem: ET.Element) -> Tuple[AnimationFrame, ...]:
    anim_elem = elem.find("animation")
    if anim_elem is None:
        return ()
    return tuple(
        AnimationFrame(required_int(frame, "tileid"), required_int(frame, "duration"))
        for frame in anim_elem.findall("frame")
    )


def parse_tile_def(elem: ET.Element) -> TileDef:
    img_elem = elem.find("image")
    group_elem = elem.find("objectgroup")

    return TileDef(
        id=required_int(elem, "id"),
        type=elem.get("type") or elem.get("class") or "",
        properties=parse_properties(elem),
        image=parse_image(img_elem) if img_elem is not None else None,
        animation=_parse_animation(elem),
        objects=parse_objects(group_elem) if group_elem is not None else (),
        terrain=_parse_terrain(elem),
    )


def parse_tileset_element(elem: ET.Element, standalone: bool = True) -> Tileset:
    """
    Parse a <tileset> element.

    Parameters:
    -----------
    elem : ET.Element
        The <tileset> element (root of a .tsx, or a child of <map>)
    standalone : bool
        True for .tsx documents, which must declare a version.
        Embedded tilesets inherit the map's version.
    """
    version = require(elem, "version") if standalone else elem.get("version")

    img_elem = elem.find("image")
    tiles: Dict[int, TileDef] = {}
    for tile_elem in elem.findall("tile"):
        tile = parse_tile_def(tile_elem)
        tiles[tile.id] = tile

    return Tileset(
        name=elem.get("name", ""),
        tile_width=required_int(elem, "tilewidth"),
        tile_height=required_int(elem, "tileheight"),
        tile_count=required_int(elem, "tilecount"),
        columns=required_int(elem, "columns"),
        margin=optional_int(elem, "margin", 0),
        spacing=optional_int(elem, "spacing", 0),
        image=parse_image(img_elem) if img_elem is not None else None,
        tiles=tiles,
        properties=parse_properties(elem),
        version=version,
        tiled_version=elem.get("tiledversion"),
    )


def parse_tileset(text: Union[str, bytes]) -> Tileset:
    """
    Parse a .tsx document from its text or raw bytes.

    Raises:
    -------
    TmxParseError : wrapping whatever made the document unusable
    """
    try:
        root = ET.fromstring(text)
        if root.tag != "tileset":
            raise MalformedInputError("expected a <tileset> root element", root.tag)
        return parse_tileset_element(root)
    # LookupError/ValueError: unknown or unsupported encoding in the XML declaration
    except (TmxError, ET.ParseError, LookupError, ValueError) as exc:
        raise TmxParseError("could not parse tileset document", exc) from exc
