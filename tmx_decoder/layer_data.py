"""
Tile layer data codec

=============================================================================
DATA ENCODINGS
=============================================================================

The <data> element of a tile layer (or each <chunk> of an infinite
layer) holds the cell values in one of these forms:

1. CSV:
   <data encoding="csv">
       1,2,3,4,
       5,6,7,2147483656
   </data>
   Plain decimal numbers. Never compressed.

2. Base64, uncompressed:
   <data encoding="base64">
       AQAAAAIAAAADAAAABAAAAA==
   </data>
   The decoded bytes are consecutive little-endian uint32 values.

3. Base64 + zlib / gzip:
   <data encoding="base64" compression="zlib">
       eJxjZGBgYGQAAAAQAAM=
   </data>
   The decoded bytes are a compressed stream; once inflated they are
   the same little-endian uint32 values as (2).

   zlib streams start with a 2-byte container header (CMF/FLG). We strip
   exactly those 2 bytes and inflate the remainder as raw deflate, so the
   trailing Adler-32 checksum is left unread.

Any other encoding or compression name (zstd, the deprecated XML
<tile gid=".."/> form, ...) is rejected with UnsupportedEncodingError.

The decoder knows nothing about layer dimensions. Checking the cell
count against width*height is the caller's job (see tree.py).

=============================================================================
"""

import base64
import binascii
import gzip
import io
import logging
import zlib
from enum import Enum
from typing import Iterable, List, Optional, Union

import numpy as np

from .errors import DecompressionError, MalformedInputError, UnsupportedEncodingError
from .gid import TileIdentifier, decode_gid, encode_gid

logger = logging.getLogger(__name__)

UINT32_MAX = 0xFFFFFFFF
ZLIB_HEADER_SIZE = 2


class Encoding(str, Enum):
    CSV = "csv"
    BASE64 = "base64"


class Compression(str, Enum):
    NONE = "none"
    ZLIB = "zlib"
    GZIP = "gzip"


def parse_encoding(name: Optional[str]) -> Encoding:
    if isinstance(name, Encoding):
        return name
    if not name:
        raise MalformedInputError("missing tile data encoding", "data", "encoding")
    try:
        return Encoding(name)
    except ValueError:
        raise UnsupportedEncodingError("encoding", name) from None


def parse_compression(name: Optional[str]) -> Compression:
    """None or an empty attribute means uncompressed."""
    if isinstance(name, Compression):
        return name
    if not name:
        return Compression.NONE
    try:
        return Compression(name)
    except ValueError:
        raise UnsupportedEncodingError("compression", name) from None


# =============================================================================
# DECODING
# =============================================================================

def decode_layer_data(payload: str,
                      encoding: Union[str, Encoding],
                      compression: Union[str, Compression, None] = None) -> List[TileIdentifier]:
    """
    Decode a tile data payload into TileIdentifiers.

    Parameters:
    -----------
    payload : str
        Text content of the <data> or <chunk> element
    encoding : str
        "csv" or "base64"
    compression : str, optional
        None, "zlib" or "gzip" (base64 only, ignored for csv)

    Returns:
    --------
    List[TileIdentifier] : cells in row-major order

    Raises:
    -------
    MalformedInputError : bad csv token, bad base64, byte count not a multiple of 4
    UnsupportedEncodingError : encoding or compression we do not support
    DecompressionError : corrupt or truncated compressed stream
    """
    encoding = parse_encoding(encoding)
    compression = parse_compression(compression)

    if encoding is Encoding.CSV:
        if compression is not Compression.NONE:
            logger.warning("ignoring compression %r on csv tile data", compression.value)
        values = _parse_csv(payload)
    else:
        raw = _decode_base64(payload)
        if compression is Compression.ZLIB:
            raw = _inflate_zlib(raw)
        elif compression is Compression.GZIP:
            raw = _inflate_gzip(raw)
        values = _unpack_uint32(raw)

    logger.debug("decoded %d cells (%s, %s)", len(values), encoding.value, compression.value)
    return [decode_gid(value) for value in values]


def _parse_csv(payload: str) -> List[int]:
    if not payload.strip():
        return []

    tokens = payload.split(",")

    # Tiled ends every row but the last with a comma; tolerate one trailing
    # separator on the whole payload as well
    if not tokens[-1].strip():
        tokens.pop()

    values = []
    for position, token in enumerate(tokens):
        token = token.strip()
        if not (token.isascii() and token.isdigit()):
            raise MalformedInputError(
                f"invalid csv tile value {token!r} at position {position}", "data")
        value = int(token)
        if value > UINT32_MAX:
            raise MalformedInputError(
                f"csv tile value {value} at position {position} exceeds 32 bits", "data")
        values.append(value)

    return values


def _decode_base64(payload: str) -> bytes:
    # Tiled indents the payload; whitespace is not part of the alphabet
    compact = "".join(payload.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedInputError(f"invalid base64 tile data: {exc}", "data") from exc


def _inflate_zlib(raw: bytes) -> bytes:
    if len(raw) < ZLIB_HEADER_SIZE:
        raise DecompressionError("zlib stream shorter than its header")

    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        data = inflater.decompress(raw[ZLIB_HEADER_SIZE:])
        data += inflater.flush()
    except zlib.error as exc:
        raise DecompressionError(f"corrupt zlib stream: {exc}") from exc

    if not inflater.eof:
        raise DecompressionError("zlib stream ended prematurely")
    return data


def _inflate_gzip(raw: bytes) -> bytes:
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(raw), mode="rb") as stream:
            return stream.read()
    except (OSError, EOFError, zlib.error) as exc:
        raise DecompressionError(f"corrupt gzip stream: {exc}") from exc


def _unpack_uint32(raw: bytes) -> List[int]:
    if len(raw) % 4:
        raise MalformedInputError(
            f"tile data has {len(raw)} bytes, not a multiple of 4", "data")
    return np.frombuffer(raw, dtype="<u4").tolist()


# =============================================================================
# ENCODING
# =============================================================================

def encode_layer_data(cells: Iterable[Union[int, TileIdentifier]],
                      encoding: Union[str, Encoding] = Encoding.CSV,
                      compression: Union[str, Compression, None] = None,
                      width: Optional[int] = None) -> str:
    """
    Inverse of decode_layer_data.

    Parameters:
    -----------
    cells : iterable of int or TileIdentifier
        Raw stored values or decoded identifiers (flags are re-packed)
    encoding : str
        "csv" or "base64"
    compression : str, optional
        None, "zlib" or "gzip" (base64 only)
    width : int, optional
        For csv, break lines every `width` values like Tiled does
    """
    encoding = parse_encoding(encoding)
    compression = parse_compression(compression)

    values = [encode_gid(cell) if isinstance(cell, TileIdentifier) else int(cell)
              for cell in cells]

    if encoding is Encoding.CSV:
        if compression is not Compression.NONE:
            raise UnsupportedEncodingError("compression for csv", compression.value)
        if not width:
            return ",".join(str(value) for value in values)
        rows = [",".join(str(value) for value in values[start:start + width])
                for start in range(0, len(values), width)]
        return "\n" + ",\n".join(rows) + "\n"

    raw = np.asarray(values, dtype="<u4").tobytes()
    if compression is Compression.ZLIB:
        raw = zlib.compress(raw)
    elif compression is Compression.GZIP:
        raw = gzip.compress(raw)

    return base64.b64encode(raw).decode("ascii")
