import time
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from ortools.sat.python import cp_model as _cp

from board import Board, MAX_HEIGHT, MAX_WIDTH
from config import CFG
from models import Operation
from tiles import Tile

INFEASIBLE_REASON = "Proven infeasible: no exact cover exists"

# ---------------- helpers ----------------

def _placement_options(board: Board, tiles: Sequence[Tile]) -> List[List[Tuple[Operation, Tuple[Tuple[int, int], ...]]]]:
    """Every legal (operation, covered cells) per tile on the initial board."""
    options = []
    for tile_index, tile in enumerate(tiles):
        per_tile = []
        for layout_index, layout in enumerate(tile.get_layouts()):
            for dy in range(MAX_HEIGHT):
                for dx in range(MAX_WIDTH):
                    if board.with_blocked_tile(layout, dx, dy) is None:
                        continue
                    covered = tuple((x + dx, y + dy) for x, y in layout.cells())
                    per_tile.append((Operation.of(tile_index, layout_index, dx, dy), covered))
        options.append(per_tile)
    return options


def try_exact_cover(
    board: Board,
    tiles: Sequence[Tile],
    max_seconds: Optional[float] = None,
) -> Tuple[bool, List[Operation], Optional[str]]:
    """One-shot exact-cover model of the same puzzle the search engine solves.

    Used as an independent check: the answer must agree with whether
    :class:`solver.search.SearchState` finds a solution.  Returns
    ``(ok, operations_in_tile_order, reason)``.
    """
    t0 = time.time()
    tiles = list(tiles)
    meta: Dict[str, object] = {"tiles": len(tiles), "free_cells": board.count_unblocked()}
    setattr(try_exact_cover, "last_meta", meta)

    free_cells = set(board.unblocked_cells())
    if not tiles:
        if free_cells:
            meta["error"] = "cells_left_over"
            return False, [], INFEASIBLE_REASON
        return True, [], None

    tile_area = sum(t.get_size() for t in tiles)
    if tile_area != len(free_cells):
        meta["error"] = "area_mismatch"
        meta["tile_area"] = tile_area
        return False, [], INFEASIBLE_REASON

    options = _placement_options(board, tiles)
    meta["placements"] = sum(len(o) for o in options)
    for tile_index, per_tile in enumerate(options):
        if not per_tile:
            meta["error"] = "tile_without_placements"
            return False, [], f"No placements remain for tile {tiles[tile_index].name}"

    m = _cp.CpModel()
    p = [
        [m.new_bool_var(f"p_{i}_{k}") for k in range(len(options[i]))]
        for i in range(len(tiles))
    ]
    for i in range(len(tiles)):
        m.add_exactly_one(p[i])

    cell_to_vars: Dict[Tuple[int, int], List[_cp.IntVar]] = defaultdict(list)
    for i, per_tile in enumerate(options):
        for k, (_op, covered) in enumerate(per_tile):
            for cell in covered:
                cell_to_vars[cell].append(p[i][k])

    for cell in free_cells:
        vars_here = cell_to_vars.get(cell)
        if not vars_here:
            meta["error"] = "uncoverable_cell"
            meta["cell"] = cell
            return False, [], f"Un-coverable cell {cell}"
        m.add_exactly_one(vars_here)

    seconds = CFG.CP_SAT_SECONDS if max_seconds is None else float(max_seconds)
    solver = _cp.CpSolver()
    solver.parameters.max_time_in_seconds = max(0.01, seconds)
    solver.parameters.num_workers = max(1, int(CFG.CP_SAT_WORKERS))

    status = solver.solve(m)
    meta["status"] = solver.status_name(status)
    meta["elapsed"] = round(time.time() - t0, 4)

    if status == _cp.INFEASIBLE:
        return False, [], INFEASIBLE_REASON
    if status not in (_cp.OPTIMAL, _cp.FEASIBLE):
        return False, [], f"CP-SAT gave up (status={solver.status_name(status)}, limit={seconds:g}s)"

    chosen: List[Operation] = []
    for i, per_tile in enumerate(options):
        for k, (op, _covered) in enumerate(per_tile):
            if solver.boolean_value(p[i][k]):
                chosen.append(op)
                break
    return True, chosen, None


__all__ = ["try_exact_cover", "INFEASIBLE_REASON"]
