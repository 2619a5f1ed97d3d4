"""
Parsing of <object> and <image> elements

Both appear in maps (object layers, image layers) and in tilesets
(per-tile collision shapes, per-tile images), so they live apart from
either parser.
"""

import xml.etree.ElementTree as ET
from typing import Tuple

from .attributes import (optional_flag, optional_float, optional_int, parse_properties,
                         require, required_float, required_int, to_float)
from .errors import MalformedInputError
from .gid import decode_gid
from .models import Image, MapObject, ObjectShape


def parse_image(elem: ET.Element) -> Image:
    """
    XML format:
        <image source="terrain.png" width="256" height="256" trans="ff00ff"/>
    """
    return Image(
        source=require(elem, "source"),
        width=optional_int(elem, "width"),
        height=optional_int(elem, "height"),
        trans=elem.get("trans"),
    )


def _parse_points(elem: ET.Element) -> Tuple[Tuple[float, float], ...]:
    # points="0,0 32,0 32,16"
    points = []
    for pair in require(elem, "points").split():
        coords = pair.split(",")
        if len(coords) != 2:
            raise MalformedInputError(f"invalid point {pair!r}", elem.tag, "points")
        points.append((to_float(elem, "points", coords[0]), to_float(elem, "points", coords[1])))
    return tuple(points)


def parse_object(elem: ET.Element) -> MapObject:
    """
    Parse one <object>.

    The shape is given by an optional child element:

        <object id="1" x="0" y="0" width="32" height="32"/>      rectangle
        <object id="2" x="8" y="8"><ellipse/></object>           ellipse
        <object id="3" x="8" y="8"><point/></object>             point
        <object id="4" x="0" y="0">
            <polygon points="0,0 32,0 16,16"/>                   polygon
        </object>
    """
    shape = ObjectShape.RECTANGLE
    points: Tuple[Tuple[float, float], ...] = ()

    if elem.find("ellipse") is not None:
        shape = ObjectShape.ELLIPSE
    elif elem.find("point") is not None:
        shape = ObjectShape.POINT
    elif elem.find("polygon") is not None:
        shape = ObjectShape.POLYGON
        points = _parse_points(elem.find("polygon"))
    elif elem.find("polyline") is not None:
        shape = ObjectShape.POLYLINE
        points = _parse_points(elem.find("polyline"))

    # GID only present for tile objects; it carries flip flags like layer cells
    gid = optional_int(elem, "gid")

    return MapObject(
        id=required_int(elem, "id"),
        x=required_float(elem, "x"),
        y=required_float(elem, "y"),
        name=elem.get("name", ""),
        # Tiled 1.9 renamed "type" to "class"
        type=elem.get("type") or elem.get("class") or "",
        width=optional_float(elem, "width", 0.0),
        height=optional_float(elem, "height", 0.0),
        rotation=optional_float(elem, "rotation", 0.0),
        visible=optional_flag(elem, "visible", True),
        tile=decode_gid(gid) if gid is not None else None,
        shape=shape,
        points=points,
        properties=parse_properties(elem),
    )


def parse_objects(parent: ET.Element) -> Tuple[MapObject, ...]:
    return tuple(parse_object(obj_elem) for obj_elem in parent.findall("object"))
