#!/usr/bin/env python3

"""
TMX Decoder - print the structure of a Tiled map

Usage:
    python -m tmx_decoder <map.tmx>

Prints the map size, its tileset references and the layer/group tree.
"""

import sys
from pathlib import Path

from .errors import TmxError
from .loader import load_map
from .models import Group, Layer, LayerKind, TiledMap


def _describe_layer(layer: Layer) -> str:
    flags = "" if layer.visible else " (hidden)"
    if layer.kind is LayerKind.TILE:
        tiles = layer.content
        if tiles.is_chunked:
            detail = f"{len(tiles.chunks)} chunks"
        else:
            used = sum(1 for cell in tiles.cells if not cell.is_empty)
            detail = f"{tiles.width}x{tiles.height}, {used} tiles"
        detail += f", {tiles.encoding}" + (f"+{tiles.compression}" if tiles.compression else "")
    elif layer.kind is LayerKind.OBJECT:
        detail = f"{len(layer.content.objects)} objects"
    else:
        image = layer.content.image
        detail = image.source if image else "no image"
    return f"[{layer.kind.value}] {layer.name} #{layer.id}: {detail}{flags}"


def _print_container(layers, groups, indent: int = 1):
    pad = "  " * indent
    for layer in layers:
        print(f"{pad}{_describe_layer(layer)}")
    for group in groups:
        print(f"{pad}[group] {group.name} #{group.id}")
        _print_container(group.layers, group.groups, indent + 1)


def print_summary(tiled_map: TiledMap):
    print(f"Map: {tiled_map.width}x{tiled_map.height} tiles of "
          f"{tiled_map.tile_width}x{tiled_map.tile_height} px, "
          f"{tiled_map.orientation.value}, render order {tiled_map.render_order}"
          + (", infinite" if tiled_map.infinite else ""))

    print("Tilesets:")
    for ref in tiled_map.tileset_refs:
        where = "embedded" if ref.is_embedded else ref.source
        print(f"  firstgid={ref.first_gid} {where}")

    print("Layers:")
    _print_container(tiled_map.layers, tiled_map.groups)


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    source_path = sys.argv[1]

    if not Path(source_path).exists():
        print(f"Error: File '{source_path}' not found")
        sys.exit(1)

    try:
        tiled_map = load_map(source_path)
    except TmxError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print_summary(tiled_map)


if __name__ == "__main__":
    main()
