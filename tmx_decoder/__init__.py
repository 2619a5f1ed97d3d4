"""
TMX Decoder - tile layer codec and map tree for Tiled maps

Requirements:
    pip install numpy pillow
"""

from .errors import (DecompressionError, MalformedInputError, TilesetNotFoundError, TmxError,
                     TmxParseError, UnsupportedEncodingError)
from .gid import TileIdentifier, decode_gid, encode_gid, split_gids
from .layer_data import Compression, Encoding, decode_layer_data, encode_layer_data
from .attributes import parse_color
from .models import (AnimationFrame, Chunk, Color, Group, Image, ImageLayer, Layer, LayerKind,
                     MapObject, ObjectLayer, ObjectShape, Orientation, Property, TileDef,
                     TiledMap, TileLayer, Tileset, TilesetRef)
from .resolver import Rect, find_tileset, get_tile_def, source_rect
from .tileset import parse_tileset
from .tree import parse_container, parse_map
from .loader import load_map, load_tileset, load_tilesets

__version__ = "1.0.0"
__all__ = [
    "TmxError",
    "TmxParseError",
    "MalformedInputError",
    "UnsupportedEncodingError",
    "DecompressionError",
    "TilesetNotFoundError",
    "TileIdentifier",
    "decode_gid",
    "encode_gid",
    "split_gids",
    "Encoding",
    "Compression",
    "decode_layer_data",
    "encode_layer_data",
    "parse_color",
    "AnimationFrame",
    "Chunk",
    "Color",
    "Group",
    "Image",
    "ImageLayer",
    "Layer",
    "LayerKind",
    "MapObject",
    "ObjectLayer",
    "ObjectShape",
    "Orientation",
    "Property",
    "TileDef",
    "TiledMap",
    "TileLayer",
    "Tileset",
    "TilesetRef",
    "Rect",
    "find_tileset",
    "get_tile_def",
    "source_rect",
    "parse_tileset",
    "parse_container",
    "parse_map",
    "load_map",
    "load_tileset",
    "load_tilesets",
]
