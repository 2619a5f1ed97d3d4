"""
Attribute helpers shared by the map and tileset parsers

TMX stores everything as XML attribute strings. These helpers convert
them to Python values and turn any failure into a MalformedInputError
that names the element and attribute involved.
"""

import string
import xml.etree.ElementTree as ET
from typing import Dict, Optional

from .errors import MalformedInputError
from .models import Color, Property


def parse_color(value: str, node: Optional[str] = None,
                attribute: Optional[str] = None) -> Color:
    """
    Parse "#RRGGBB" or "RRGGBB".

    Exactly 6 hex digits; alpha channels (#AARRGGBB) are rejected.
    """
    digits = value[1:] if value.startswith("#") else value
    # int(x, 16) alone would also take signs and whitespace
    if len(digits) != 6 or not all(c in string.hexdigits for c in digits):
        raise MalformedInputError(f"invalid color {value!r}", node, attribute)
    return Color(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def require(elem: ET.Element, name: str) -> str:
    value = elem.get(name)
    if value is None:
        raise MalformedInputError("missing required attribute", elem.tag, name)
    return value


def to_int(elem: ET.Element, name: str, value: str) -> int:
    """Plain ASCII decimal with an optional leading minus."""
    digits = value[1:] if value.startswith("-") else value
    if not (digits.isascii() and digits.isdigit()):
        raise MalformedInputError(f"expected an integer, got {value!r}", elem.tag, name)
    return int(value)


def to_float(elem: ET.Element, name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise MalformedInputError(f"expected a number, got {value!r}", elem.tag, name) from None


def required_int(elem: ET.Element, name: str) -> int:
    return to_int(elem, name, require(elem, name))


def optional_int(elem: ET.Element, name: str, default: Optional[int] = None) -> Optional[int]:
    value = elem.get(name)
    if value is None:
        return default
    return to_int(elem, name, value)


def required_float(elem: ET.Element, name: str) -> float:
    return to_float(elem, name, require(elem, name))


def optional_float(elem: ET.Element, name: str, default: Optional[float] = None) -> Optional[float]:
    value = elem.get(name)
    if value is None:
        return default
    return to_float(elem, name, value)


def optional_flag(elem: ET.Element, name: str, default: bool) -> bool:
    """TMX booleans are "1"/"0"; absent means `default`."""
    value = elem.get(name)
    if value is None:
        return default
    return value == "1"


def optional_color(elem: ET.Element, name: str) -> Optional[Color]:
    value = elem.get(name)
    if value is None:
        return None
    return parse_color(value, elem.tag, name)


# =============================================================================
# PROPERTIES
# =============================================================================

def _convert_property(elem: ET.Element, prop_type: str, value: str):
    if prop_type == "int":
        return to_int(elem, "value", value)
    if prop_type == "float":
        return to_float(elem, "value", value)
    if prop_type == "bool":
        # XML stores as "true"/"false" strings
        return value.lower() == "true"
    # string, color, file, object: kept as text
    return value


def parse_properties(elem: ET.Element) -> Dict[str, Property]:
    """
    Parse the <properties> child of `elem` into a name -> Property dict.

    XML format:
        <properties>
            <property name="solid" type="bool" value="true"/>
            <property name="health" type="int" value="100"/>
            <property name="notes">multi-line
            text goes in the body</property>
        </properties>
    """
    properties: Dict[str, Property] = {}
    props_elem = elem.find("properties")
    if props_elem is None:
        return properties

    for prop_elem in props_elem.findall("property"):
        name = require(prop_elem, "name")
        prop_type = prop_elem.get("type", "string")
        value = prop_elem.get("value")
        if value is None:
            value = prop_elem.text or ""
        properties[name] = Property(name, prop_type, _convert_property(prop_elem, prop_type, value))

    return properties
