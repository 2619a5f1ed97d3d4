"""
Exceptions raised while decoding TMX/TSX documents

=============================================================================
ERROR TAXONOMY
=============================================================================

    TmxError
    ├── MalformedInputError       missing attribute, bad number, bad color
    ├── UnsupportedEncodingError  encoding/compression we do not decode
    ├── DecompressionError        corrupt or truncated zlib/gzip stream
    ├── TilesetNotFoundError      external .tsx file missing on disk
    └── TmxParseError             raised at the document boundary, wraps
                                  whichever of the above caused it

Inner helpers raise the specific classes. The public entry points
(parse_map, parse_tileset, load_map, load_tileset) catch them and raise a
single TmxParseError, so callers only need one except clause but can
still inspect `.cause` to tell "not supported" apart from "corrupt".

A tile that cannot be resolved to a tileset is NOT an error: the resolver
returns None for that.

=============================================================================
"""

from typing import Optional


class TmxError(Exception):
    """Base class for every error raised by tmx_decoder."""


class MalformedInputError(TmxError):
    """
    A required attribute is missing or a value could not be parsed.

    Parameters:
    -----------
    message : str
        What went wrong
    node : str, optional
        Tag of the element being parsed (e.g. "layer")
    attribute : str, optional
        Attribute name involved (e.g. "width")
    """

    def __init__(self, message: str, node: Optional[str] = None,
                 attribute: Optional[str] = None):
        self.node = node
        self.attribute = attribute

        context = []
        if node:
            context.append(f"<{node}>")
        if attribute:
            context.append(f"attribute '{attribute}'")
        if context:
            message = f"{message} ({', '.join(context)})"

        super().__init__(message)


class UnsupportedEncodingError(TmxError):
    """Layer data uses an encoding or compression we cannot decode."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"unsupported {kind}: {name!r}")


class DecompressionError(TmxError):
    """Compressed layer data could not be inflated."""


class TilesetNotFoundError(TmxError):
    """An external tileset referenced by a map does not exist."""


class TmxParseError(TmxError):
    """
    Whole-document parse failure.

    No partial map is ever returned: if anything inside the document is
    broken, this is raised and the original error is kept in `cause`.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
