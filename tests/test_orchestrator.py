import pytest

from models import ComputeResult, Operation, UNPAINTED
from solver.orchestrator import (
    CONFIG_MAGIC,
    VERSION,
    SearchSession,
    check_config,
    compute_result,
    engine_config,
    paint_cells,
    verify_selection,
)
import progress

SAMPLE_TILES = 0x062       # F, G, L
SAMPLE_BOARD = 0x000779E6
NEGATIVE_BOARD = 0x000779E5

SAMPLE_PAINTED = (
    255, 10, 5, 255, 255,
    10, 10, 5, 5, 255,
    255, 10, 5, 6, 6,
    255, 10, 6, 6, 255,
    255, 255, 255, 255, 255,
    255, 255, 255, 255, 255,
)
NOTHING_PAINTED = (UNPAINTED,) * 30


def test_check_config_magic_on_agreement():
    assert check_config(VERSION, 5, 6, 4, 12) == CONFIG_MAGIC
    assert check_config(**engine_config()) == CONFIG_MAGIC


@pytest.mark.parametrize(
    "args,code",
    [
        ((41, 5, 6, 4, 12), 1),
        ((42, 6, 6, 4, 12), 2),
        ((42, 5, 5, 4, 12), 3),
        ((42, 5, 6, 5, 12), 4),
        ((42, 5, 6, 4, 11), 5),
        # first mismatch wins
        ((0, 0, 0, 0, 0), 1),
        ((42, 5, 0, 0, 0), 3),
    ],
)
def test_check_config_reports_first_mismatch(args, code):
    assert check_config(*args) == code


def test_compute_result_sample_positive():
    result = compute_result(SAMPLE_TILES, SAMPLE_BOARD, 100)
    assert result == ComputeResult(
        steps_taken=22,
        has_solution=True,
        has_finished=False,
        cell_to_tile=SAMPLE_PAINTED,
    )


def test_compute_result_sample_negative():
    result = compute_result(SAMPLE_TILES, NEGATIVE_BOARD, 100)
    assert result == ComputeResult(
        steps_taken=17,
        has_solution=False,
        has_finished=True,
        cell_to_tile=NOTHING_PAINTED,
    )


def test_compute_result_step_budget_runs_out():
    result = compute_result(SAMPLE_TILES, SAMPLE_BOARD, 10)
    assert result == ComputeResult(
        steps_taken=10,
        has_solution=False,
        has_finished=False,
        cell_to_tile=NOTHING_PAINTED,
    )


def test_compute_result_payload_is_json_ready():
    payload = compute_result(SAMPLE_TILES, SAMPLE_BOARD, 100).to_dict()
    assert payload["steps_taken"] == 22
    assert payload["cell_to_tile"] == list(SAMPLE_PAINTED)


def test_compute_result_rejects_bad_input():
    with pytest.raises(ValueError):
        compute_result(0x1000, SAMPLE_BOARD, 100)
    with pytest.raises(ValueError):
        compute_result(SAMPLE_TILES, 1 << 30, 100)
    with pytest.raises(ValueError):
        compute_result(SAMPLE_TILES, SAMPLE_BOARD, -1)


def test_compute_result_updates_progress():
    compute_result(SAMPLE_TILES, SAMPLE_BOARD, 100)
    snap = progress.snapshot()
    assert snap["tiles"] == "FGL"
    assert snap["status"] == "Solved"
    assert snap["done"] is True
    assert snap["ok"] is True
    assert snap["steps"] == 22

    compute_result(SAMPLE_TILES, SAMPLE_BOARD, 10)
    snap = progress.snapshot()
    assert snap["status"] == "Paused"
    assert snap["done"] is False


def test_paint_cells_maps_back_to_catalog():
    # local index 0 is catalog tile 5 (F)
    cells = paint_cells([Operation.of(0, 0, 0, 0)], [5])
    assert cells[1] == 5
    assert cells[5] == cells[6] == cells[7] == 5
    assert cells.count(5) == 4
    assert cells.count(UNPAINTED) == 26


def test_session_slices_add_up_to_one_run():
    session = SearchSession(SAMPLE_TILES, SAMPLE_BOARD)
    slices = []
    while True:
        result = session.advance(5)
        slices.append(result.steps_taken)
        if result.has_solution:
            break
        assert result.cell_to_tile == NOTHING_PAINTED
    assert slices == [5, 5, 5, 5, 2]
    assert session.total_steps == 22
    assert result.cell_to_tile == SAMPLE_PAINTED
    assert not result.has_finished


def test_session_keeps_searching_after_a_solution():
    session = SearchSession(SAMPLE_TILES, SAMPLE_BOARD)
    first = session.advance(100)
    assert first.has_solution

    seen = {first.cell_to_tile}
    while not session.finished:
        result = session.advance(1000)
        if result.has_solution:
            assert result.cell_to_tile not in seen
            seen.add(result.cell_to_tile)
    assert session.solutions_found == len(seen)

    done = session.advance(1000)
    assert done == ComputeResult(0, False, True, NOTHING_PAINTED)


def test_session_describe():
    session = SearchSession(SAMPLE_TILES, NEGATIVE_BOARD)
    info = session.describe()
    assert info["tiles"] == "FGL"
    assert info["total_steps"] == 0
    assert info["finished"] is False
    assert info["status"] == "READY"

    session.advance(1000)
    info = session.describe()
    assert info["total_steps"] == 17
    assert info["finished"] is True
    assert info["status"] == "EXHAUSTED"
    assert info["open"] == 0


def test_verify_selection_agrees_with_search():
    pytest.importorskip("ortools")

    out = verify_selection(SAMPLE_TILES, SAMPLE_BOARD)
    assert out["ok"] is True
    assert out["reason"] is None
    assert sorted(out["cell_to_tile"]) == sorted(SAMPLE_PAINTED)

    out = verify_selection(SAMPLE_TILES, NEGATIVE_BOARD)
    assert out["ok"] is False
    assert out["operations"] == []
    assert out["cell_to_tile"] == list(NOTHING_PAINTED)


# Square A over cells 0, 1, 5, 6; cell 29 stays free.
PARTIAL_TILES = 0x800
PARTIAL_BOARD = 0b1100011 | (1 << 29)
PARTIAL_PAINTED = tuple(0 if i in (0, 1, 5, 6) else UNPAINTED for i in range(30))


def test_compute_result_selection_smaller_than_free_area():
    result = compute_result(PARTIAL_TILES, PARTIAL_BOARD, 100)
    assert result == ComputeResult(
        steps_taken=1,
        has_solution=True,
        has_finished=True,
        cell_to_tile=PARTIAL_PAINTED,
    )
    snap = progress.snapshot()
    assert snap["status"] == "Solved"
    assert snap["done"] is True


def test_session_selection_smaller_than_free_area():
    session = SearchSession(PARTIAL_TILES, PARTIAL_BOARD)
    first = session.advance(100)
    assert first.has_solution
    assert first.cell_to_tile == PARTIAL_PAINTED
    assert session.solutions_found == 1
    assert session.total_steps == 1
    assert session.advance(100) == ComputeResult(0, False, True, NOTHING_PAINTED)


def test_session_advance_holds_its_own_lock(monkeypatch):
    session = SearchSession(SAMPLE_TILES, SAMPLE_BOARD)
    seen = []

    def fake_step_at_most(n):
        seen.append(session.lock.locked())
        return 0, None

    monkeypatch.setattr(session.state, "step_at_most", fake_step_at_most)
    session.advance(5)
    assert seen == [True]
    assert not session.lock.locked()
