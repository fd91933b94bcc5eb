# solver/search.py — resumable depth-first exact-cover search
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from board import Board, MAX_HEIGHT, MAX_WIDTH
from models import Operation
from tiles import Tile

Solution = List[Operation]


class SearchStatus(str, Enum):
    READY = "READY"
    SOLVED = "SOLVED"
    EXHAUSTED = "EXHAUSTED"


@dataclass(frozen=True)
class _Node:
    board: Board
    # (operation that produced this node, index of the parent in ``closed``)
    link: Optional[Tuple[Operation, int]] = None


class SearchState:
    """Depth-first search over tile placements, advanced one node at a time.

    The tree is kept in two lists instead of the call stack so that a caller
    can stop after any number of steps and resume later:

    - ``closed`` holds every expanded node; children refer to their parent by
      index into it.  It is append-only and never contains a solution.
    - ``open`` is the DFS stack of generated but unexpanded nodes.

    Identical silhouettes reached via different placements are not merged:
    the remaining tile subsets may differ, so the subtrees can differ too.
    """

    def __init__(self, initial_board: Board, tiles: Sequence[Tile]) -> None:
        self.tiles: Tuple[Tile, ...] = tuple(tiles)
        self.closed: List[_Node] = []
        self.open: List[_Node] = [_Node(initial_board)]
        self.status = SearchStatus.READY
        self.stats: Dict[str, int] = {
            "expanded": 0,
            "dead_ends": 0,
            "solutions": 0,
            "max_depth": 0,
        }

    def can_step(self) -> bool:
        return bool(self.open)

    # ---------- tree walks ----------

    def _ancestry(self, node: _Node):
        walk = node
        while walk.link is not None:
            operation, parent_index = walk.link
            yield operation
            walk = self.closed[parent_index]

    def _remaining_tile_indices(self, node: _Node) -> List[int]:
        available = [True] * len(self.tiles)
        for operation in self._ancestry(node):
            assert available[operation.tile_index], "tile placed twice on one branch"
            available[operation.tile_index] = False
        return [idx for idx, free in enumerate(available) if free]

    def _as_solution(self, node: _Node) -> Solution:
        operations = list(self._ancestry(node))
        operations.reverse()
        assert len(operations) == len(self.tiles)
        return operations

    # ---------- expansion ----------

    def _find_all_fits(self, node: _Node, own_index: int, tile_index: int) -> List[_Node]:
        fits: List[_Node] = []
        for layout_index, layout in enumerate(self.tiles[tile_index].get_layouts()):
            for dy in range(MAX_HEIGHT):
                for dx in range(MAX_WIDTH):
                    child_board = node.board.with_blocked_tile(layout, dx, dy)
                    if child_board is None:
                        continue
                    operation = Operation.of(tile_index, layout_index, dx, dy)
                    fits.append(_Node(child_board, (operation, own_index)))
        return fits

    def step_single(self) -> Optional[Solution]:
        """Process exactly one node from ``open``.

        Returns the placement list (root first) if the popped node has no
        tiles left, otherwise ``None`` after either expanding the node or
        discarding it as a dead end.
        """
        if not self.open:
            raise RuntimeError("step_single() on an exhausted search; check can_step() first")
        node = self.open.pop()
        # TODO: once a parent's subtree is exhausted, the tail of `closed` past it could be dropped.
        remaining = self._remaining_tile_indices(node)
        if not remaining:
            self.stats["solutions"] += 1
            self.status = SearchStatus.SOLVED
            return self._as_solution(node)

        next_parent_index = len(self.closed)
        best_fits: Optional[List[_Node]] = None
        for tile_index in remaining:
            fits = self._find_all_fits(node, next_parent_index, tile_index)
            # strict "<" keeps the lowest tile index on ties
            if best_fits is None or len(fits) < len(best_fits):
                best_fits = fits

        if not best_fits:
            # Some tile has nowhere to go; nothing below this node can succeed.
            self.stats["dead_ends"] += 1
            self._refresh_status()
            return None

        # Only now does next_parent_index refer to a real entry.
        self.closed.append(node)
        self.open.extend(best_fits)
        self.stats["expanded"] += 1
        depth = len(self.tiles) - len(remaining) + 1
        if depth > self.stats["max_depth"]:
            self.stats["max_depth"] = depth
        # A child that completes the cover is reported when it is popped.
        self._refresh_status()
        return None

    def step_at_most(self, max_steps: int) -> Tuple[int, Optional[Solution]]:
        """Run up to ``max_steps`` steps; stop early on a solution or exhaustion.

        The returned count excludes the step that yields a solution, so
        ``step_at_most(a)`` followed by ``step_at_most(b)`` accounts for the
        same total as a single ``step_at_most(a + b)``.
        """
        for steps_done in range(max_steps):
            if not self.can_step():
                return steps_done, None
            solution = self.step_single()
            if solution is not None:
                return steps_done, solution
        return max_steps, None

    def _refresh_status(self) -> None:
        self.status = SearchStatus.READY if self.open else SearchStatus.EXHAUSTED


def replay_operations(board: Board, tiles: Sequence[Tile], operations: Sequence[Operation]) -> Optional[Board]:
    """Apply ``operations`` to a copy of ``board``; ``None`` if any does not fit."""
    current: Optional[Board] = Board(board.bit_data)
    for op in operations:
        layout = tiles[op.tile_index].get_layouts()[op.layout_index]
        current = current.with_blocked_tile(layout, op.dx, op.dy)
        if current is None:
            return None
    return current


__all__ = ["SearchState", "SearchStatus", "Solution", "replay_operations"]
