# tiles.py — polyomino catalog + tile-selection codec
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple

# Layouts live on a MAX_SIZE x MAX_SIZE grid; several bit tricks assume 4.
MAX_SIZE = 4
_LAYOUT_BITS = MAX_SIZE * MAX_SIZE


@dataclass(frozen=True)
class TileLayout:
    """One rotation/reflection of a tile as a 16-bit presence mask.

    Bit order (0 is the LSB)::

        0 1 2 3
        4 5 6 7
        8 9 A B
        C D E F
    """

    bit_data: int

    def __post_init__(self):
        if not 0 <= self.bit_data < (1 << _LAYOUT_BITS):
            raise ValueError(f"Bad layout mask: {self.bit_data:#x}")

    def is_present_at(self, x: int, y: int) -> bool:
        if not (0 <= x < MAX_SIZE and 0 <= y < MAX_SIZE):
            raise ValueError(f"Layout cell outside {MAX_SIZE}x{MAX_SIZE}: {(x, y)}")
        return bool(self.bit_data & (1 << (x + y * MAX_SIZE)))

    def cells(self) -> Iterator[Tuple[int, int]]:
        for y in range(MAX_SIZE):
            for x in range(MAX_SIZE):
                if self.bit_data & (1 << (x + y * MAX_SIZE)):
                    yield x, y

    @property
    def size(self) -> int:
        return bin(self.bit_data).count("1")


@dataclass(frozen=True)
class Tile:
    name: str
    layouts: Tuple[TileLayout, ...]

    def __post_init__(self):
        if not self.layouts:
            raise ValueError(f"Tile {self.name!r} has no layouts")
        size = self.layouts[0].size
        if any(layout.size != size for layout in self.layouts):
            raise ValueError(f"Tile {self.name!r} mixes layouts of different sizes")

    @classmethod
    def from_masks(cls, name: str, masks: Iterable[int]) -> "Tile":
        return cls(name, tuple(TileLayout(int(m)) for m in masks))

    def get_layouts(self) -> Tuple[TileLayout, ...]:
        return self.layouts

    def get_size(self) -> int:
        return self.layouts[0].size


# The letter "I" is skipped on purpose.
ALL_TILES: Tuple[Tile, ...] = (
    # XX··
    # XX··
    Tile.from_masks("A", [0x0033]),
    # XX·· | X···
    #      | X···
    Tile.from_masks("B", [0x0003, 0x0011]),
    Tile.from_masks("C", [0x0007, 0x0111]),
    Tile.from_masks("D", [0x000F, 0x1111]),
    # XX·· XX·· ·X·· X···
    # X··· ·X·· XX·· XX··
    Tile.from_masks("E", [0x0013, 0x0023, 0x0032, 0x0031]),
    # three-way pipe
    # ·X·· X··· XXX· ·X··
    # XXX· XX·· ·X·· XX··
    # ···· X··· ···· ·X··
    Tile.from_masks("F", [0x0072, 0x0131, 0x0027, 0x0232]),
    # S shape
    # XX·· ·XX· X··· ·X··
    # ·XX· XX·· XX·· XX··
    # ···· ···· ·X·· X···
    Tile.from_masks("G", [0x0063, 0x0036, 0x0231, 0x0132]),
    # XX·· ·XX· X··· ··X·
    # ·X·· ·X·· XXX· XXX·
    # ·XX· XX·· ··X· X···
    Tile.from_masks("H", [0x0623, 0x0326, 0x0471, 0x0174]),
    Tile.from_masks("J", [0x0113, 0x0047, 0x0322, 0x0071, 0x0223, 0x0017, 0x0311, 0x0074]),
    Tile.from_masks("K", [0x1113, 0x008F, 0x3222, 0x00F1, 0x2223, 0x001F, 0x3111, 0x00F8]),
    # elongated three-way pipe
    # X··· XXXX ·X·· ·X·· ·X·· XXXX X··· ··X·
    # XX·· ··X· ·X·· XXXX XX·· ·X·· X··· XXXX
    # X··· ···· XX·· ···· ·X·· ···· XX·· ····
    # X··· ···· ·X·· ···· ·X·· ···· X··· ····
    Tile.from_masks("L", [0x1131, 0x004F, 0x2322, 0x00F2, 0x2232, 0x002F, 0x1311, 0x00F4]),
    Tile.from_masks("M", [0x0133, 0x0073, 0x0332, 0x0067, 0x0233, 0x0037, 0x0331, 0x0076]),
)

NAME_TO_INDEX = {tile.name: idx for idx, tile in enumerate(ALL_TILES)}


def decode_tile_indices(tiles_encoded: int, catalog_size: int = len(ALL_TILES)) -> List[int]:
    """Decode an MSB-first selection mask into ascending catalog indices.

    Bit ``catalog_size - 1 - k`` selects catalog tile ``k``.
    """
    tiles_encoded = int(tiles_encoded)
    if tiles_encoded < 0 or tiles_encoded >> catalog_size:
        raise ValueError(f"Bad tile selection: {tiles_encoded:#x}")
    return [
        k for k in range(catalog_size)
        if tiles_encoded & (1 << (catalog_size - 1 - k))
    ]


def encode_tile_indices(indices: Iterable[int], catalog_size: int = len(ALL_TILES)) -> int:
    encoded = 0
    for k in indices:
        k = int(k)
        if not 0 <= k < catalog_size:
            raise ValueError(f"Tile index outside catalog: {k}")
        encoded |= 1 << (catalog_size - 1 - k)
    return encoded


def tiles_by_name(names: Sequence[str]) -> List[int]:
    """Map catalog letters (e.g. ``"FGL"``) to their indices, in the order given."""
    out: List[int] = []
    for name in names:
        key = str(name).strip().upper()
        if key not in NAME_TO_INDEX:
            raise ValueError(f"Unknown tile name: {name!r}")
        out.append(NAME_TO_INDEX[key])
    return out


__all__ = [
    "MAX_SIZE",
    "TileLayout",
    "Tile",
    "ALL_TILES",
    "NAME_TO_INDEX",
    "decode_tile_indices",
    "encode_tile_indices",
    "tiles_by_name",
]
