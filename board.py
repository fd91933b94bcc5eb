"""Fixed-capacity bitboard over the puzzle cells."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from tiles import MAX_SIZE, TileLayout

# Can be changed freely as long as MAX_WIDTH * MAX_HEIGHT <= BIT_CAPACITY.
MAX_WIDTH = 5
MAX_HEIGHT = 6
CELL_COUNT = MAX_WIDTH * MAX_HEIGHT
BIT_CAPACITY = 64

if CELL_COUNT > BIT_CAPACITY:
    raise ImportError(f"Board of {CELL_COUNT} cells exceeds the {BIT_CAPACITY}-cell capacity")

_ACTIVE_MASK = (1 << CELL_COUNT) - 1


def _index_mask(x: int, y: int) -> int:
    if not (0 <= x < MAX_WIDTH and 0 <= y < MAX_HEIGHT):
        raise ValueError(f"Cell outside {MAX_WIDTH}x{MAX_HEIGHT} board: {(x, y)}")
    return 1 << (x + MAX_WIDTH * y)


@dataclass
class Board:
    """Bit ``x + MAX_WIDTH * y`` is set iff cell ``(x, y)`` is unblocked."""

    bit_data: int = 0

    @classmethod
    def all_blocked(cls) -> "Board":
        return cls(0)

    @classmethod
    def from_encoded(cls, board_encoded: int) -> "Board":
        board_encoded = int(board_encoded)
        if board_encoded < 0 or board_encoded & ~_ACTIVE_MASK:
            raise ValueError(
                f"Bad board encoding {board_encoded:#x}: bits beyond the {CELL_COUNT} cells"
            )
        return cls(board_encoded)

    @property
    def encoded(self) -> int:
        return self.bit_data

    def is_all_blocked(self) -> bool:
        return self.bit_data == 0

    def is_blocked_at(self, x: int, y: int) -> bool:
        return not self.bit_data & _index_mask(x, y)

    def set_blocked(self, x: int, y: int) -> None:
        self.bit_data &= ~_index_mask(x, y)

    def set_unblocked(self, x: int, y: int) -> None:
        self.bit_data |= _index_mask(x, y)

    def count_unblocked(self) -> int:
        return bin(self.bit_data).count("1")

    def unblocked_cells(self) -> Iterator[Tuple[int, int]]:
        for y in range(MAX_HEIGHT):
            for x in range(MAX_WIDTH):
                if self.bit_data & (1 << (x + MAX_WIDTH * y)):
                    yield x, y

    def with_blocked_tile(self, layout: TileLayout, dx: int, dy: int) -> Optional["Board"]:
        """Return a copy with ``layout`` placed at ``(dx, dy)``, or ``None``.

        Every covered cell must be on the board and unblocked; otherwise the
        placement is rejected as a whole and ``self`` is left untouched.
        Only covered cells are checked, so an empty layout fits at any anchor.
        """
        mask = 0
        for y in range(MAX_SIZE):
            for x in range(MAX_SIZE):
                if not layout.bit_data & (1 << (x + y * MAX_SIZE)):
                    continue
                bx, by = x + dx, y + dy
                if not (0 <= bx < MAX_WIDTH and 0 <= by < MAX_HEIGHT):
                    return None
                cell = 1 << (bx + MAX_WIDTH * by)
                if not self.bit_data & cell:
                    return None
                mask |= cell
        return Board(self.bit_data & ~mask)


__all__ = ["Board", "MAX_WIDTH", "MAX_HEIGHT", "CELL_COUNT", "BIT_CAPACITY"]
