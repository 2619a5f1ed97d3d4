"""
GID -> tileset -> source rectangle resolution

=============================================================================
ALGORITHM
=============================================================================

Tileset refs are sorted by first_gid (ascending). Each ref owns the range
from its first_gid up to the next ref's first_gid; the last ref's range
is open-ended:

    refs:  {1, "a"}  {50, "b"}  {200, "c"}

    gid 1..49    -> a
    gid 50..199  -> b
    gid 200..    -> c

Local tile id = gid - first_gid. For spritesheet tilesets the image is
a grid of `image.width // tile_width` columns walked row-major:

    local 5, 4 columns, 16x16 tiles  ->  col 1, row 1  ->  (16, 16, 16, 16)

Margin and spacing are NOT applied to the rectangle.

A gid that resolves to nothing is a normal outcome, not an error: every
function here returns None for it. Callers should skip gid 0 (empty
cell) before resolving.

=============================================================================
"""

from typing import TYPE_CHECKING, NamedTuple, Optional, Sequence

# Models import this module, so their types are only needed for hints
if TYPE_CHECKING:
    from .models import TileDef, Tileset, TilesetRef


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int


def find_tileset(gid: int, refs: Sequence["TilesetRef"]) -> Optional["TilesetRef"]:
    """
    Find the ref whose gid range contains `gid`.

    Parameters:
    -----------
    gid : int
        Global tile ID (flags already stripped)
    refs : sequence of TilesetRef
        The map's refs, ascending by first_gid

    Returns:
    --------
    TilesetRef or None : None for an empty list or a gid below every range
    """
    for position, ref in enumerate(refs):
        if gid < ref.first_gid:
            return None
        is_last = position == len(refs) - 1
        if is_last or gid < refs[position + 1].first_gid:
            return ref
    return None


def tileset_columns(tileset: "Tileset") -> int:
    """Columns of the tileset grid, from the image width when known."""
    image = tileset.image
    if image is not None and image.width and tileset.tile_width > 0:
        return image.width // tileset.tile_width
    return tileset.columns


def source_rect(tileset: "Tileset", local_id: int) -> Optional[Rect]:
    """
    Pixel rectangle of tile `local_id` within the tileset image.

    Returns None when local_id is outside [0, tile_count) or the grid has
    no columns.
    """
    if not 0 <= local_id < tileset.tile_count:
        return None

    columns = tileset_columns(tileset)
    if columns <= 0:
        return None

    row, col = divmod(local_id, columns)
    return Rect(col * tileset.tile_width, row * tileset.tile_height,
                tileset.tile_width, tileset.tile_height)


def get_tile_def(ref: "TilesetRef", tileset: "Tileset", gid: int) -> Optional["TileDef"]:
    """Sparse tile metadata for `gid`, or None if the tile has none."""
    return tileset.tiles.get(gid - ref.first_gid)
