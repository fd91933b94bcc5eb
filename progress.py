from __future__ import annotations

import json
import logging
import os
import time
import threading
from pathlib import Path
from typing import Any, Dict, Optional

# ------------------------------
# Thread-safe global progress state
# ------------------------------

PROGRESS_LOCK = threading.Lock()


def _state_file_path() -> Path:
    configured = os.environ.get("PROGRESS_STATE_FILE")
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / "logs" / "progress_state.json"


def _log_dir() -> Path:
    configured = os.environ.get("MB_LOG_DIR")
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / "logs"


STATE_FILE = _state_file_path()
STATE_FILE_TMP = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
_LAST_STATE_MTIME: float = 0.0


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("mebongo.attempt_log")
    if logger.handlers:
        return logger

    log_path = _log_dir() / "solver_attempts.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except OSError:
        # No writable log directory; searches run without an attempt log.
        logger.handlers.clear()
    return logger


ATTEMPT_LOGGER = _init_logger()


def _log_enabled() -> bool:
    return bool(ATTEMPT_LOGGER.handlers)


def _fmt_seconds(seconds: Optional[float]) -> Optional[str]:
    if seconds is None:
        return None
    return f"{float(seconds):.2f}s"


def _emit_log(event: str, **fields: Any) -> None:
    if not _log_enabled():
        return
    extras = [
        f"{key}={value}"
        for key, value in fields.items()
        if value is not None and value != ""
    ]
    if extras:
        ATTEMPT_LOGGER.info("%s | %s", event, " ".join(extras))
    else:
        ATTEMPT_LOGGER.info("%s", event)


def log_attempt_detail(event: str, **fields: Any) -> None:
    """Append one ``event | key=value ...`` line to the attempt log."""
    _emit_log(event, **fields)


def _persist_locked() -> None:
    global _LAST_STATE_MTIME
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        with STATE_FILE_TMP.open("w", encoding="utf-8") as fh:
            json.dump(PROGRESS, fh, ensure_ascii=False, separators=(",", ":"))
        STATE_FILE_TMP.replace(STATE_FILE)
        try:
            _LAST_STATE_MTIME = STATE_FILE.stat().st_mtime
        except OSError:
            _LAST_STATE_MTIME = time.time()
    except OSError as exc:
        # The snapshot file is advisory; the in-memory state stays authoritative.
        _emit_log("Progress persist failed", error=f"{type(exc).__name__}: {exc}")


def _load_persisted_locked(force: bool = False) -> None:
    global _LAST_STATE_MTIME
    try:
        stat = STATE_FILE.stat()
    except OSError:
        return
    if not force and stat.st_mtime <= _LAST_STATE_MTIME:
        return
    try:
        with STATE_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return
    if not isinstance(data, dict):
        return
    for key in PROGRESS.keys():
        if key in data:
            PROGRESS[key] = data[key]
    _LAST_STATE_MTIME = stat.st_mtime


# Single source of truth for pollers
PROGRESS: Dict[str, Any] = {
    "status": "Idle",          # Idle | Searching | Paused | Solved | Exhausted | Error
    "tiles": "",               # catalog letters of the running selection, e.g. "FGL"
    "steps": 0,                # expansion steps consumed so far in this run
    "open": 0,                 # unexpanded candidates
    "closed": 0,               # expanded nodes
    "elapsed_start": None,     # t0 (float) when the run started
    "elapsed": 0.0,            # seconds snapshot
    "message": "",             # optional note
    "done": False,             # run reached a terminal state
    "ok": None,                # solution found, if known
    "run_id": 0,               # monotonically increasing identifier
}

# ------------------------------
# Helpers
# ------------------------------

def _now() -> float:
    return time.time()

def _fmt_elapsed(seconds: float) -> str:
    seconds = max(0.0, float(seconds))
    if seconds < 60:
        return f"{seconds:.1f}s"
    m, s = divmod(int(seconds), 60)
    if m < 60:
        return f"{m}m {s}s"
    h, m = divmod(m, 60)
    return f"{h}h {m}m"

def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None:
        PROGRESS["elapsed"] = _now() - float(t0)

def reset(tiles: str = "") -> int:
    """Start a fresh run record; returns its ``run_id``."""
    with PROGRESS_LOCK:
        new_run_id = int(PROGRESS.get("run_id") or 0) + 1
        PROGRESS.update({
            "status": "Idle",
            "tiles": tiles,
            "steps": 0,
            "open": 0,
            "closed": 0,
            "elapsed_start": None,
            "elapsed": 0.0,
            "message": "",
            "done": False,
            "ok": None,
            "run_id": new_run_id,
        })
        _emit_log("Progress reset", run_id=new_run_id, tiles=tiles)
        _persist_locked()
        return new_run_id

def start_timer() -> None:
    with PROGRESS_LOCK:
        PROGRESS["elapsed_start"] = _now()
        PROGRESS["elapsed"] = 0.0
        _persist_locked()

# ------------------------------
# Setters
# ------------------------------

def set_status(v: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["status"] = str(v)
        _persist_locked()

def set_search_counters(steps: int, open_count: int, closed_count: int) -> None:
    with PROGRESS_LOCK:
        PROGRESS["steps"] = max(0, int(steps))
        PROGRESS["open"] = max(0, int(open_count))
        PROGRESS["closed"] = max(0, int(closed_count))
        _touch_elapsed_locked()
        _persist_locked()

def set_message(msg: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["message"] = "" if msg is None else str(msg)
        _persist_locked()

def set_done(ok: bool, *, message: Any = None) -> None:
    """Mark the run terminal: ``ok`` is True when a solution was found."""
    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        PROGRESS["status"] = "Solved" if ok else "Exhausted"
        PROGRESS["ok"] = bool(ok)
        PROGRESS["done"] = True
        if message is not None:
            PROGRESS["message"] = str(message)
        _emit_log(
            "Run finished",
            run_id=PROGRESS.get("run_id"),
            status=PROGRESS.get("status"),
            steps=PROGRESS.get("steps"),
            closed=PROGRESS.get("closed"),
            duration=_fmt_seconds(PROGRESS.get("elapsed")),
            message=PROGRESS.get("message"),
        )
        _persist_locked()

# ------------------------------
# Snapshots for pollers
# ------------------------------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        return {
            "status": PROGRESS["status"],
            "tiles": PROGRESS["tiles"],
            "steps": PROGRESS["steps"],
            "open": PROGRESS["open"],
            "closed": PROGRESS["closed"],
            "elapsed": PROGRESS["elapsed"],
            "elapsed_str": _fmt_elapsed(PROGRESS["elapsed"]),
            "message": PROGRESS["message"],
            "done": PROGRESS["done"],
            "ok": PROGRESS["ok"],
            "run_id": PROGRESS["run_id"],
        }

def as_json() -> Dict[str, Any]:
    # Alias used by /progress
    return snapshot()


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
