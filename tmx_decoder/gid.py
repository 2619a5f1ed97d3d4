"""
Global tile ID (GID) codec

=============================================================================
FLIP FLAGS
=============================================================================

Every cell of a tile layer is stored as an unsigned 32-bit integer. The
three highest bits are NOT part of the tile ID, they are flags telling
the renderer how to mirror the tile:

    bit 31  0x80000000  flipped horizontally
    bit 30  0x40000000  flipped vertically
    bit 29  0x20000000  flipped diagonally (anti-diagonal)

    raw = 0x80000005
          ^         ^
          |         +-- tile index 5
          +------------ horizontal flip

Rotations are expressed by combining the diagonal flag with the other
two (e.g. 90 degrees clockwise = diagonal + horizontal). We do not
interpret rotations here: the three booleans are exposed as-is and the
renderer composes them.

Index 0 means "no tile".

=============================================================================
"""

from typing import NamedTuple, Tuple

import numpy as np


FLIPPED_HORIZONTALLY = 1 << 31
FLIPPED_VERTICALLY = 1 << 30
FLIPPED_DIAGONALLY = 1 << 29
FLAG_MASK = FLIPPED_HORIZONTALLY | FLIPPED_VERTICALLY | FLIPPED_DIAGONALLY
INDEX_MASK = 0xFFFFFFFF & ~FLAG_MASK

EMPTY = 0


class TileIdentifier(NamedTuple):
    """One decoded cell: clean tile index plus its three flip flags."""
    index: int
    flipped_horizontal: bool = False
    flipped_vertical: bool = False
    flipped_diagonal: bool = False

    @property
    def is_empty(self) -> bool:
        return self.index == EMPTY

    def to_raw(self) -> int:
        """Pack the flags back into the high bits."""
        raw = self.index & INDEX_MASK
        if self.flipped_horizontal:
            raw |= FLIPPED_HORIZONTALLY
        if self.flipped_vertical:
            raw |= FLIPPED_VERTICALLY
        if self.flipped_diagonal:
            raw |= FLIPPED_DIAGONALLY
        return raw


EMPTY_TILE = TileIdentifier(EMPTY)


def decode_gid(raw: int) -> TileIdentifier:
    """
    Split a stored 32-bit value into index and flip flags.

    Total function: every value in [0, 2**32) is valid. Values below the
    lowest flag bit have no flags set, which is by far the common case.
    """
    if raw < FLIPPED_DIAGONALLY:
        return TileIdentifier(raw)

    return TileIdentifier(
        raw & INDEX_MASK,
        bool(raw & FLIPPED_HORIZONTALLY),
        bool(raw & FLIPPED_VERTICALLY),
        bool(raw & FLIPPED_DIAGONALLY),
    )


def encode_gid(tile: TileIdentifier) -> int:
    return tile.to_raw()


def split_gids(raw: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized decode for whole layers.

    Parameters:
    -----------
    raw : np.ndarray
        Array of stored values (any shape), interpreted as uint32

    Returns:
    --------
    (indices, horizontal, vertical, diagonal) : arrays of the same shape
        indices is uint32 with the flag bits cleared, the flags are bool
    """
    raw = np.asarray(raw, dtype=np.uint32)
    indices = raw & np.uint32(INDEX_MASK)
    horizontal = (raw & np.uint32(FLIPPED_HORIZONTALLY)) != 0
    vertical = (raw & np.uint32(FLIPPED_VERTICALLY)) != 0
    diagonal = (raw & np.uint32(FLIPPED_DIAGONALLY)) != 0
    return indices, horizontal, vertical, diagonal
