import importlib
import json
import os
import time

from progress import (
    reset, set_done, set_message, set_search_counters, set_status, snapshot, start_timer,
)


def test_set_done_marks_solved():
    reset(tiles="FGL")
    start_timer()
    set_done(True, message="solution after 22 steps")
    snap = snapshot()
    assert snap["status"] == "Solved"
    assert snap["done"] is True
    assert snap["ok"] is True
    assert snap["message"] == "solution after 22 steps"
    assert snap["tiles"] == "FGL"


def test_set_done_without_solution_marks_exhausted():
    reset()
    set_status("Searching")
    set_done(False)
    snap = snapshot()
    assert snap["status"] == "Exhausted"
    assert snap["done"] is True
    assert snap["ok"] is False
    assert snap["message"] == ""


def test_search_counters_are_clamped_and_reported():
    reset()
    set_search_counters(12, 7, -3)
    set_message(None)
    snap = snapshot()
    assert (snap["steps"], snap["open"], snap["closed"]) == (12, 7, 0)
    assert snap["message"] == ""
    assert snap["done"] is False
    assert snap["ok"] is None


def test_reset_increments_run_identifier():
    first = reset()
    assert snapshot()["run_id"] == first
    second = reset()
    assert isinstance(first, int)
    assert second == first + 1
    assert snapshot()["run_id"] == second


def test_elapsed_str_is_human_readable():
    reset()
    start_timer()
    snap = snapshot()
    assert snap["elapsed"] >= 0.0
    assert snap["elapsed_str"].endswith("s")


def test_snapshot_reads_state_written_by_other_process(tmp_path, monkeypatch):
    import progress as progress_module

    state_path = tmp_path / "state.json"
    monkeypatch.setenv("PROGRESS_STATE_FILE", str(state_path))
    progress = importlib.reload(progress_module)

    progress.reset(tiles="AB")
    progress.set_status("Searching")
    first = progress.snapshot()
    assert first["status"] == "Searching"

    data = dict(first)
    data["status"] = "Paused"
    data["steps"] = 99
    state_path.write_text(json.dumps(data))
    os.utime(state_path, None)

    with progress.PROGRESS_LOCK:
        progress.PROGRESS["status"] = ""
        progress.PROGRESS["steps"] = 0
        progress._LAST_STATE_MTIME = 0.0

    time.sleep(0.01)
    updated = progress.snapshot()
    assert updated["status"] == "Paused"
    assert updated["steps"] == 99

    monkeypatch.delenv("PROGRESS_STATE_FILE", raising=False)
    importlib.reload(progress_module)
