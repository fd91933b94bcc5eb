from dataclasses import dataclass
from typing import Dict, Tuple

# Marker for cells no tile of a solution occupies.
UNPAINTED = 255

@dataclass(frozen=True)
class IndexedTileLayout:
    tile_index: int
    layout_index: int

@dataclass(frozen=True)
class Operation:
    indexed_tile_layout: IndexedTileLayout
    dx: int
    dy: int

    @classmethod
    def of(cls, tile_index: int, layout_index: int, dx: int, dy: int) -> "Operation":
        return cls(IndexedTileLayout(tile_index, layout_index), dx, dy)

    @property
    def tile_index(self) -> int:
        return self.indexed_tile_layout.tile_index

    @property
    def layout_index(self) -> int:
        return self.indexed_tile_layout.layout_index

    def to_dict(self) -> Dict[str, int]:
        return {
            "tile_index": self.tile_index,
            "layout_index": self.layout_index,
            "dx": self.dx,
            "dy": self.dy,
        }

@dataclass(frozen=True)
class ComputeResult:
    steps_taken: int
    has_solution: bool
    has_finished: bool
    cell_to_tile: Tuple[int, ...]

    def to_dict(self):
        return dict(
            steps_taken=self.steps_taken,
            has_solution=self.has_solution,
            has_finished=self.has_finished,
            cell_to_tile=list(self.cell_to_tile),
        )
