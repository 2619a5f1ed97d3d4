import pytest


MAP_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<map version="1.10" tiledversion="1.10.2" orientation="orthogonal" renderorder="right-down"
     width="{width}" height="{height}" tilewidth="16" tileheight="16" infinite="{infinite}"{extra}>
{body}
</map>
"""


def make_map(body: str, width: int = 4, height: int = 2, infinite: bool = False,
             extra: str = "") -> str:
    """Wrap `body` in a <map> element with the required attributes."""
    return MAP_TEMPLATE.format(width=width, height=height, infinite=int(infinite),
                               extra=(" " + extra) if extra else "", body=body)


def tile_layer(layer_id: int, name: str, payload: str, width: int = 4, height: int = 2,
               encoding: str = "csv", compression: str = None, attrs: str = "") -> str:
    compression_attr = f' compression="{compression}"' if compression else ""
    return (f'<layer id="{layer_id}" name="{name}" width="{width}" height="{height}" {attrs}>'
            f'<data encoding="{encoding}"{compression_attr}>{payload}</data>'
            f'</layer>')


@pytest.fixture
def simple_map_xml():
    return make_map(
        '<tileset firstgid="1" source="terrain.tsx"/>\n'
        '<tileset firstgid="50" source="props.tsx"/>\n'
        + tile_layer(1, "Ground", "\n1,2,3,4,\n5,0,2147483653,1\n")
    )
