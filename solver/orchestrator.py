# Orchestrator: host-facing boundary around the step-bounded search
from __future__ import annotations

import threading
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from board import Board, CELL_COUNT, MAX_HEIGHT, MAX_WIDTH
from config import clamp_steps
from models import ComputeResult, Operation, UNPAINTED
from progress import (
    log_attempt_detail, reset as progress_reset, set_done, set_search_counters,
    set_status, start_timer,
)
from solver.search import SearchState
from tiles import ALL_TILES, MAX_SIZE, decode_tile_indices

VERSION = 42

# Unlikely to be produced by accident; returned when both sides agree.
CONFIG_MAGIC = 134250805

CONFIG_MISMATCH_VERSION = 1
CONFIG_MISMATCH_WIDTH = 2
CONFIG_MISMATCH_HEIGHT = 3
CONFIG_MISMATCH_TILE_SIZE = 4
CONFIG_MISMATCH_TOTAL_TILES = 5


# ---------- helpers ----------

def check_config(
    version: int,
    max_board_w: int,
    max_board_h: int,
    max_tile_size: int,
    total_tiles: int,
) -> int:
    """Compare a caller's compiled-in constants with ours.

    Returns the code of the first mismatching field, or :data:`CONFIG_MAGIC`.
    """
    if version != VERSION:
        return CONFIG_MISMATCH_VERSION
    if max_board_w != MAX_WIDTH:
        return CONFIG_MISMATCH_WIDTH
    if max_board_h != MAX_HEIGHT:
        return CONFIG_MISMATCH_HEIGHT
    if max_tile_size != MAX_SIZE:
        return CONFIG_MISMATCH_TILE_SIZE
    if total_tiles != len(ALL_TILES):
        return CONFIG_MISMATCH_TOTAL_TILES
    return CONFIG_MAGIC


def engine_config() -> Dict[str, int]:
    return {
        "version": VERSION,
        "max_board_w": MAX_WIDTH,
        "max_board_h": MAX_HEIGHT,
        "max_tile_size": MAX_SIZE,
        "total_tiles": len(ALL_TILES),
    }


def _tile_letters(tile_indices: Sequence[int]) -> str:
    return "".join(ALL_TILES[i].name for i in tile_indices)


def _decode_inputs(tiles_encoded: int, board_encoded: int) -> Tuple[List[int], Board]:
    tile_indices = decode_tile_indices(tiles_encoded)
    board = Board.from_encoded(board_encoded)
    return tile_indices, board


def paint_cells(operations: Sequence[Operation], tile_lookup: Sequence[int]) -> Tuple[int, ...]:
    """Per-cell catalog index of the covering tile, ``UNPAINTED`` elsewhere.

    ``operation.tile_index`` refers to the tile list the engine was built
    with; ``tile_lookup`` maps it back to the catalog.
    """
    cells = [UNPAINTED] * CELL_COUNT
    for op in operations:
        global_index = tile_lookup[op.tile_index]
        layout = ALL_TILES[global_index].get_layouts()[op.layout_index]
        for x, y in layout.cells():
            cells[(x + op.dx) + MAX_WIDTH * (y + op.dy)] = global_index
    return tuple(cells)


def _unpainted() -> Tuple[int, ...]:
    return (UNPAINTED,) * CELL_COUNT


# ---------- resumable runs ----------

class SearchSession:
    """A search kept alive between step-bounded calls.

    Each :meth:`advance` continues exactly where the previous call stopped.
    After a solution has been reported the next call keeps searching for
    another one.

    A solution places every selected tile once; free cells the selection
    does not reach stay ``UNPAINTED``.  Each session carries its own lock so
    a long slice never holds up other sessions.
    """

    def __init__(self, tiles_encoded: int, board_encoded: int) -> None:
        self.tile_indices, self.board = _decode_inputs(tiles_encoded, board_encoded)
        self.tiles_encoded = int(tiles_encoded)
        self.board_encoded = int(board_encoded)
        self.session_id = uuid.uuid4().hex
        self.state = SearchState(self.board, [ALL_TILES[i] for i in self.tile_indices])
        self.total_steps = 0
        self.solutions_found = 0
        self.last_solution: Optional[List[Operation]] = None
        self.created_at = time.time()
        self.lock = threading.Lock()

    @property
    def finished(self) -> bool:
        return not self.state.can_step()

    def advance(self, max_steps: Optional[int] = None) -> ComputeResult:
        budget = clamp_steps(max_steps)
        with self.lock:
            steps_taken, solution = self.state.step_at_most(budget)
            self.total_steps += steps_taken
            if solution is not None:
                self.solutions_found += 1
                self.last_solution = solution
                cells = paint_cells(solution, self.tile_indices)
            else:
                cells = _unpainted()
            return ComputeResult(
                steps_taken=steps_taken,
                has_solution=solution is not None,
                has_finished=self.finished,
                cell_to_tile=cells,
            )

    def describe(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "tiles": _tile_letters(self.tile_indices),
            "tiles_encoded": self.tiles_encoded,
            "board_encoded": self.board_encoded,
            "total_steps": self.total_steps,
            "solutions_found": self.solutions_found,
            "finished": self.finished,
            "status": self.state.status.value,
            "open": len(self.state.open),
            "closed": len(self.state.closed),
            "stats": dict(self.state.stats),
        }


# ---------- public entrypoints ----------

def compute_result(tiles_encoded: int, board_encoded: int, max_steps: int) -> ComputeResult:
    """Run a fresh search for at most ``max_steps`` steps."""
    session = SearchSession(tiles_encoded, board_encoded)
    letters = _tile_letters(session.tile_indices)

    progress_reset(tiles=letters)
    start_timer()
    set_status("Searching")
    log_attempt_detail(
        "Run setup",
        tiles=letters or "-",
        free_cells=session.board.count_unblocked(),
        tile_cells=sum(ALL_TILES[i].get_size() for i in session.tile_indices),
        max_steps=max_steps,
    )

    result = session.advance(max_steps)

    set_search_counters(session.total_steps, len(session.state.open), len(session.state.closed))
    if result.has_solution:
        set_done(True, message=f"solution after {result.steps_taken} steps")
    elif result.has_finished:
        set_done(False, message=f"exhausted after {result.steps_taken} steps")
    else:
        set_status("Paused")
        log_attempt_detail("Step budget used up", steps=result.steps_taken, open=len(session.state.open))
    log_attempt_detail("Search stats", **session.state.stats)
    return result


def verify_selection(
    tiles_encoded: int,
    board_encoded: int,
    max_seconds: Optional[float] = None,
) -> Dict[str, Any]:
    """Answer the same question with CP-SAT instead of the step-bounded search."""
    from solver.cp_sat import try_exact_cover  # ortools only needed here

    tile_indices, board = _decode_inputs(tiles_encoded, board_encoded)
    tiles = [ALL_TILES[i] for i in tile_indices]
    ok, operations, reason = try_exact_cover(board, tiles, max_seconds=max_seconds)
    meta = dict(getattr(try_exact_cover, "last_meta", None) or {})
    log_attempt_detail(
        "CP-SAT check",
        tiles=_tile_letters(tile_indices) or "-",
        ok=ok,
        status=meta.get("status"),
        reason=reason,
    )
    return {
        "ok": ok,
        "reason": reason,
        "operations": [op.to_dict() for op in operations],
        "cell_to_tile": list(paint_cells(operations, tile_indices) if ok else _unpainted()),
        "meta": meta,
    }


__all__ = [
    "VERSION",
    "CONFIG_MAGIC",
    "SearchSession",
    "check_config",
    "compute_result",
    "engine_config",
    "paint_cells",
    "verify_selection",
]
