"""
Loading maps and tilesets from disk

=============================================================================
PATH HANDLING
=============================================================================

TMX files reference tilesets with RELATIVE paths:

    assets/maps/level1.tmx
        <tileset firstgid="1" source="../tilesets/terrain.tsx"/>

    -> assets/tilesets/terrain.tsx

Image paths inside a .tsx are relative to the .tsx itself, not the map.

=============================================================================
IMAGE SIZE PROBING
=============================================================================

source_rect() needs the tileset image width to know how many columns the
grid has. Tiled always writes width/height on <image>, but hand-written
or exported tilesets sometimes do not. When `probe_images` is on we open
the image with Pillow and read its size (only the header is read).

=============================================================================
"""

import dataclasses
import logging
from pathlib import Path
from typing import Dict, Union

from PIL import Image as PILImage

from .errors import TilesetNotFoundError, TmxParseError
from .models import TiledMap, Tileset
from .tileset import parse_tileset
from .tree import parse_map

logger = logging.getLogger(__name__)


def _read_document(path: Path) -> bytes:
    # Raw bytes so the parser honours the encoding the XML declaration names
    with open(path, "rb") as stream:
        return stream.read()


def load_map(path: Union[str, Path]) -> TiledMap:
    """
    Load a .tmx file.

    Raises:
    -------
    FileNotFoundError : if the file does not exist
    TmxParseError : if the document is malformed
    """
    path = Path(path)
    tiled_map = parse_map(_read_document(path))
    logger.info("loaded map %s (%dx%d)", path, tiled_map.width, tiled_map.height)
    return tiled_map


def _probe_image_size(tileset: Tileset, base_dir: Path) -> Tileset:
    image = tileset.image
    if image is None or (image.width and image.height):
        return tileset

    image_path = base_dir / image.source
    try:
        with PILImage.open(image_path) as img:
            width, height = img.size
    except (OSError, ValueError) as exc:
        logger.warning("could not read size of %s: %s", image_path, exc)
        return tileset

    logger.debug("probed %s: %dx%d", image_path, width, height)
    return dataclasses.replace(tileset, image=dataclasses.replace(image, width=width, height=height))


def load_tileset(path: Union[str, Path], probe_images: bool = True) -> Tileset:
    """
    Load a .tsx file.

    Parameters:
    -----------
    path : str or Path
        Path to the .tsx file
    probe_images : bool
        Fill in missing image width/height by reading the image file
    """
    path = Path(path)
    tileset = parse_tileset(_read_document(path))
    if probe_images:
        tileset = _probe_image_size(tileset, path.parent)
    return tileset


def load_tilesets(tiled_map: TiledMap, map_path: Union[str, Path],
                  probe_images: bool = True) -> Dict[int, Tileset]:
    """
    Resolve every TilesetRef of a map into a Tileset.

    Parameters:
    -----------
    tiled_map : TiledMap
        A parsed map
    map_path : str or Path
        Path of the .tmx the map came from (sources are relative to it)
    probe_images : bool
        See load_tileset

    Returns:
    --------
    Dict[int, Tileset] : first_gid -> Tileset, embedded tilesets included

    Raises:
    -------
    TilesetNotFoundError : an external .tsx is missing
    TmxParseError : a .tsx is malformed
    """
    base_dir = Path(map_path).parent
    tilesets: Dict[int, Tileset] = {}

    for ref in tiled_map.tileset_refs:
        if ref.is_embedded:
            tileset = ref.tileset
            if probe_images:
                tileset = _probe_image_size(tileset, base_dir)
        else:
            tsx_path = base_dir / ref.source
            if not tsx_path.is_file():
                raise TilesetNotFoundError(f"cannot locate tileset '{tsx_path}'")
            try:
                tileset = load_tileset(tsx_path, probe_images)
            except TmxParseError as exc:
                raise TmxParseError(f"in tileset '{tsx_path}'", exc.cause) from exc

        tilesets[ref.first_gid] = tileset

    return tilesets
