"""
In-memory model of a decoded Tiled map

=============================================================================
STRUCTURE
=============================================================================

    TiledMap
    ├── tileset_refs: (TilesetRef, ...)    sorted by first_gid
    ├── layers:       (Layer, ...)         document order
    │     └── content: TileLayer | ObjectLayer | ImageLayer
    └── groups:       (Group, ...)         document order
          ├── layers
          └── groups                       (nested to any depth)

Every class here is a frozen dataclass or a NamedTuple. Parsers decode
all children first and construct each value once, so there is never a
half-filled map lying around.

=============================================================================
LAYER VARIANTS
=============================================================================

A Layer carries the fields every kind of layer shares (id, name, offset,
visibility, lock, tint...) and wraps exactly one content value:

    TileLayer    grid of TileIdentifiers, or chunks for infinite maps
    ObjectLayer  list of MapObjects
    ImageLayer   a single Image

`layer.kind` tells which one it is without isinstance checks.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional, Tuple, Union

import numpy as np

from .gid import EMPTY_TILE, TileIdentifier
from .resolver import Rect, find_tileset, get_tile_def, source_rect


class Color(NamedTuple):
    red: int
    green: int
    blue: int


class Orientation(str, Enum):
    ORTHOGONAL = "orthogonal"
    ISOMETRIC = "isometric"
    STAGGERED = "staggered"
    HEXAGONAL = "hexagonal"


class LayerKind(str, Enum):
    TILE = "tile"
    OBJECT = "object"
    IMAGE = "image"


class ObjectShape(str, Enum):
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    POINT = "point"
    POLYGON = "polygon"
    POLYLINE = "polyline"


# =============================================================================
# SHARED PIECES
# =============================================================================

@dataclass(frozen=True)
class Property:
    """
    Custom property attached to a map, layer, tile, object...

    `value` is already converted for int/float/bool types; every other
    type (string, color, file, object) is kept as text.
    """
    name: str
    type: str = "string"
    value: Any = None


@dataclass(frozen=True)
class Image:
    """Image reference. Width/height are optional in the document."""
    source: str
    width: Optional[int] = None
    height: Optional[int] = None
    trans: Optional[str] = None


# =============================================================================
# OBJECTS
# =============================================================================

@dataclass(frozen=True)
class MapObject:
    """
    Object placed in an object layer (or inside a tile's collision group).

    Tile objects carry a gid in the document; it goes through the same
    flag decoding as layer cells and ends up in `tile`.
    """
    id: int
    x: float
    y: float
    name: str = ""
    type: str = ""
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0
    visible: bool = True
    tile: Optional[TileIdentifier] = None
    shape: ObjectShape = ObjectShape.RECTANGLE
    points: Tuple[Tuple[float, float], ...] = ()
    properties: Dict[str, Property] = field(default_factory=dict)


# =============================================================================
# TILESETS
# =============================================================================

@dataclass(frozen=True)
class AnimationFrame:
    tile_id: int
    duration: int


@dataclass(frozen=True)
class TileDef:
    """
    Extra metadata for one tile of a tileset.

    Only tiles that have something to say (properties, animation,
    collision objects, their own image) are listed in the document, so a
    tileset's `tiles` dict is sparse. `id` is LOCAL to the tileset.
    """
    id: int
    type: str = ""
    properties: Dict[str, Property] = field(default_factory=dict)
    image: Optional[Image] = None
    animation: Tuple[AnimationFrame, ...] = ()
    objects: Tuple[MapObject, ...] = ()
    terrain: Optional[Tuple[Optional[int], ...]] = None


@dataclass(frozen=True)
class Tileset:
    """
    A tileset document (.tsx) or a tileset embedded in a map.

    For spritesheet tilesets the image is cut into a grid of
    tile_width x tile_height cells, numbered row-major from 0.
    """
    name: str
    tile_width: int
    tile_height: int
    tile_count: int
    columns: int
    margin: int = 0
    spacing: int = 0
    image: Optional[Image] = None
    tiles: Dict[int, TileDef] = field(default_factory=dict)
    properties: Dict[str, Property] = field(default_factory=dict)
    version: Optional[str] = None
    tiled_version: Optional[str] = None

    def get_tile(self, local_id: int) -> Optional[TileDef]:
        return self.tiles.get(local_id)

    def source_rect(self, local_id: int) -> Optional[Rect]:
        return source_rect(self, local_id)


@dataclass(frozen=True)
class TilesetRef:
    """
    Binds the gid range starting at `first_gid` to a tileset.

    External tilesets only carry `source` (path of the .tsx, relative to
    the map). Embedded tilesets have no source and carry the parsed
    `tileset` directly.
    """
    first_gid: int
    source: Optional[str] = None
    tileset: Optional[Tileset] = None

    @property
    def is_embedded(self) -> bool:
        return self.source is None


# =============================================================================
# LAYERS
# =============================================================================

def _cells_to_array(cells: Tuple[TileIdentifier, ...], width: int, height: int) -> np.ndarray:
    indices = np.fromiter((cell.index for cell in cells), dtype=np.uint32, count=len(cells))
    return indices.reshape((height, width))


@dataclass(frozen=True)
class Chunk:
    """Rectangular piece of an infinite layer, positioned in tile space."""
    x: int
    y: int
    width: int
    height: int
    cells: Tuple[TileIdentifier, ...] = ()

    def cell(self, col: int, row: int) -> TileIdentifier:
        """Cell at chunk-local (col, row); empty outside the chunk."""
        if 0 <= col < self.width and 0 <= row < self.height:
            return self.cells[col + row * self.width]
        return EMPTY_TILE

    def to_array(self) -> np.ndarray:
        return _cells_to_array(self.cells, self.width, self.height)


@dataclass(frozen=True)
class TileLayer:
    """
    Grid of decoded cells.

    Finite maps: `cells` holds width*height identifiers in row-major
    order and `chunks` is empty.
    Infinite maps: `cells` is empty and the data lives in `chunks`.

    Flat index and (col, row) are interchangeable:

        index = col + row * width
    """
    width: int
    height: int
    cells: Tuple[TileIdentifier, ...] = ()
    chunks: Tuple[Chunk, ...] = ()
    encoding: str = "csv"
    compression: Optional[str] = None

    @property
    def is_chunked(self) -> bool:
        return bool(self.chunks)

    def cell(self, col: int, row: Optional[int] = None) -> TileIdentifier:
        """
        Get the cell at a flat index, or at (col, row) when `row` is given.

        Out of bounds returns the empty tile rather than raising.

        Chunked layers have no flat order, so they only answer (col, row)
        queries, in map tile coordinates (which may be negative). A flat
        index on a chunked layer is always empty.
        """
        if self.chunks:
            if row is None:
                return EMPTY_TILE
            for chunk in self.chunks:
                if chunk.x <= col < chunk.x + chunk.width and chunk.y <= row < chunk.y + chunk.height:
                    return chunk.cell(col - chunk.x, row - chunk.y)
            return EMPTY_TILE

        if row is None:
            index = col
        elif 0 <= col < self.width and 0 <= row < self.height:
            index = col + row * self.width
        else:
            return EMPTY_TILE

        if 0 <= index < len(self.cells):
            return self.cells[index]
        return EMPTY_TILE

    def is_flipped_horizontal(self, col: int, row: Optional[int] = None) -> bool:
        return self.cell(col, row).flipped_horizontal

    def is_flipped_vertical(self, col: int, row: Optional[int] = None) -> bool:
        return self.cell(col, row).flipped_vertical

    def is_flipped_diagonal(self, col: int, row: Optional[int] = None) -> bool:
        return self.cell(col, row).flipped_diagonal

    def to_array(self) -> np.ndarray:
        """
        Clean tile indices as a (height, width) uint32 array.

        Only for finite layers; chunked layers expose Chunk.to_array().
        """
        if self.is_chunked:
            raise ValueError("infinite layers have no single grid, use chunks")
        return _cells_to_array(self.cells, self.width, self.height)


@dataclass(frozen=True)
class ObjectLayer:
    objects: Tuple[MapObject, ...] = ()


@dataclass(frozen=True)
class ImageLayer:
    image: Optional[Image] = None


LayerContent = Union[TileLayer, ObjectLayer, ImageLayer]

_KIND_BY_CONTENT = {
    TileLayer: LayerKind.TILE,
    ObjectLayer: LayerKind.OBJECT,
    ImageLayer: LayerKind.IMAGE,
}


@dataclass(frozen=True)
class Layer:
    """
    Common layer fields plus one content variant.

    Defaults mirror attribute absence in the document: offset (0, 0),
    parallax stored raw as (0, 0), no tint, visible, unlocked.
    """
    id: int
    name: str
    content: LayerContent
    offset: Tuple[float, float] = (0.0, 0.0)
    parallax: Tuple[float, float] = (0.0, 0.0)
    opacity: float = 1.0
    visible: bool = True
    locked: bool = False
    tint: Optional[Color] = None
    properties: Dict[str, Property] = field(default_factory=dict)

    @property
    def kind(self) -> LayerKind:
        return _KIND_BY_CONTENT[type(self.content)]


@dataclass(frozen=True)
class Group:
    """
    Folder of layers. Groups nest to any depth:

        Background (group)
        ├── Sky
        └── Hills (group)
            ├── Far
            └── Near
    """
    id: int
    name: str
    layers: Tuple[Layer, ...] = ()
    groups: Tuple["Group", ...] = ()
    offset: Tuple[float, float] = (0.0, 0.0)
    parallax: Tuple[float, float] = (0.0, 0.0)
    opacity: float = 1.0
    visible: bool = True
    locked: bool = False
    tint: Optional[Color] = None
    properties: Dict[str, Property] = field(default_factory=dict)


# =============================================================================
# MAP
# =============================================================================

def _tile_layer(layer: Union[Layer, TileLayer]) -> TileLayer:
    content = layer.content if isinstance(layer, Layer) else layer
    if not isinstance(content, TileLayer):
        raise TypeError(f"not a tile layer: {getattr(layer, 'name', layer)!r}")
    return content


@dataclass(frozen=True)
class TiledMap:
    """
    Root of a decoded .tmx document.

    ==========================================================================
    USAGE
    ==========================================================================

        tiled_map = load_map("level1.tmx")
        tilesets = load_tilesets(tiled_map, "level1.tmx")

        ground = tiled_map.get_layer_by_name("Ground")
        tile = ground.content.cell(5, 10)
        if not tile.is_empty:
            rect = tiled_map.source_rect(tile.index, tilesets)

    Tilesets are NOT loaded by the parser: the map only knows the
    TilesetRefs. Queries that need tileset geometry take a mapping
    first_gid -> Tileset (see loader.load_tilesets).

    ==========================================================================
    """
    version: str
    orientation: Orientation
    render_order: str
    width: int
    height: int
    tile_width: int
    tile_height: int
    infinite: bool = False
    tiled_version: Optional[str] = None
    background_color: Optional[Color] = None
    parallax_origin: Tuple[float, float] = (0.0, 0.0)
    properties: Dict[str, Property] = field(default_factory=dict)
    tileset_refs: Tuple[TilesetRef, ...] = ()
    layers: Tuple[Layer, ...] = ()
    groups: Tuple[Group, ...] = ()

    # -------------------------------------------------------------------------
    # Tileset queries
    # -------------------------------------------------------------------------

    def find_tileset(self, gid: int) -> Optional[TilesetRef]:
        return find_tileset(gid, self.tileset_refs)

    def source_rect(self, gid: int, tilesets: Mapping[int, Tileset]) -> Optional[Rect]:
        """
        Pixel rectangle of `gid` inside its tileset image.

        None when no ref covers the gid, the tileset was not supplied, or
        the local id is outside the tileset.
        """
        ref = self.find_tileset(gid)
        if ref is None:
            return None
        tileset = tilesets.get(ref.first_gid)
        if tileset is None:
            return None
        return source_rect(tileset, gid - ref.first_gid)

    def get_tile_def(self, gid: int, tilesets: Mapping[int, Tileset]) -> Optional[TileDef]:
        ref = self.find_tileset(gid)
        if ref is None or ref.first_gid not in tilesets:
            return None
        return get_tile_def(ref, tilesets[ref.first_gid], gid)

    # -------------------------------------------------------------------------
    # Flip flags
    # -------------------------------------------------------------------------

    def is_flipped_horizontal(self, layer: Union[Layer, TileLayer], col: int,
                              row: Optional[int] = None) -> bool:
        return _tile_layer(layer).is_flipped_horizontal(col, row)

    def is_flipped_vertical(self, layer: Union[Layer, TileLayer], col: int,
                            row: Optional[int] = None) -> bool:
        return _tile_layer(layer).is_flipped_vertical(col, row)

    def is_flipped_diagonal(self, layer: Union[Layer, TileLayer], col: int,
                            row: Optional[int] = None) -> bool:
        return _tile_layer(layer).is_flipped_diagonal(col, row)

    # -------------------------------------------------------------------------
    # Layer lookup
    # -------------------------------------------------------------------------

    def iter_layers(self) -> Iterator[Layer]:
        """All layers, depth-first: a container's own layers, then its groups."""
        def walk(layers: Tuple[Layer, ...], groups: Tuple[Group, ...]) -> Iterator[Layer]:
            yield from layers
            for group in groups:
                yield from walk(group.layers, group.groups)

        return walk(self.layers, self.groups)

    def get_layer_by_name(self, name: str) -> Optional[Layer]:
        for layer in self.iter_layers():
            if layer.name == name:
                return layer
        return None

    def tile_layers(self) -> List[Layer]:
        return [layer for layer in self.iter_layers() if layer.kind is LayerKind.TILE]
