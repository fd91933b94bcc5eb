# app.py — JSON endpoints over the step-bounded solver
from __future__ import annotations
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from flask import Flask, request, jsonify

from config import CFG
from progress import as_json as progress_json
from solver.orchestrator import (
    SearchSession, check_config, compute_result, engine_config, verify_selection,
)
from tiles import encode_tile_indices, tiles_by_name

app = Flask(__name__)

SESSIONS: "OrderedDict[str, SearchSession]" = OrderedDict()
SESSIONS_LOCK = threading.Lock()


@app.after_request
def _no_cache_progress(resp):
    if request.path == "/progress":
        resp.headers["Cache-Control"] = "no-store, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
    return resp


def _merge_like_mapping() -> Dict[str, Any]:
    """JSON body first, then form fields, then query args."""
    merged: Dict[str, Any] = {}
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        merged.update(payload)
    for k, v in request.form.to_dict(flat=True).items():
        merged.setdefault(k, v)
    for k, v in request.args.to_dict(flat=True).items():
        merged.setdefault(k, v)
    return merged


def _parse_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Bad {field}: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text, 0)
    except ValueError:
        raise ValueError(f"Bad {field}: {value!r}") from None


def _selection_from(like: Dict[str, Any]) -> Tuple[int, int]:
    """Pull ``(tiles_encoded, board_encoded)`` out of a request mapping.

    Tiles may be given as the encoded mask (``tiles``) or as catalog letters
    (``tile_names``, e.g. ``"FGL"``).
    """
    if like.get("tile_names") not in (None, ""):
        tiles_encoded = encode_tile_indices(tiles_by_name(str(like["tile_names"])))
    elif "tiles" in like:
        tiles_encoded = _parse_int(like["tiles"], "tiles")
    else:
        raise ValueError("Missing tiles (expected 'tiles' or 'tile_names')")
    if "board" not in like:
        raise ValueError("Missing board")
    return tiles_encoded, _parse_int(like["board"], "board")


def _max_steps_from(like: Dict[str, Any]) -> Optional[int]:
    raw = like.get("max_steps")
    if raw in (None, ""):
        return None
    return _parse_int(raw, "max_steps")


def _bad_request(exc: Exception):
    return jsonify({"ok": False, "error": str(exc)}), 400


def _store_session(session: SearchSession) -> None:
    with SESSIONS_LOCK:
        SESSIONS[session.session_id] = session
        while len(SESSIONS) > max(1, int(CFG.MAX_SESSIONS)):
            SESSIONS.popitem(last=False)


def _get_session(session_id: str) -> Optional[SearchSession]:
    with SESSIONS_LOCK:
        return SESSIONS.get(session_id)


@app.route("/api/config", methods=["GET"])
def config_view():
    return jsonify(engine_config())


@app.route("/api/config/check", methods=["POST"])
def config_check():
    like = _merge_like_mapping()
    try:
        code = check_config(
            _parse_int(like.get("version"), "version"),
            _parse_int(like.get("max_board_w"), "max_board_w"),
            _parse_int(like.get("max_board_h"), "max_board_h"),
            _parse_int(like.get("max_tile_size"), "max_tile_size"),
            _parse_int(like.get("total_tiles"), "total_tiles"),
        )
    except ValueError as exc:
        return _bad_request(exc)
    return jsonify({"ok": True, "result": code})


@app.route("/api/solve", methods=["POST"])
def solve():
    like = _merge_like_mapping()
    try:
        tiles_encoded, board_encoded = _selection_from(like)
        max_steps = _max_steps_from(like)
        result = compute_result(
            tiles_encoded,
            board_encoded,
            max_steps if max_steps is not None else CFG.DEFAULT_MAX_STEPS,
        )
    except ValueError as exc:
        return _bad_request(exc)
    return jsonify({"ok": True, **result.to_dict()})


@app.route("/api/sessions", methods=["POST"])
def session_create():
    like = _merge_like_mapping()
    try:
        session = SearchSession(*_selection_from(like))
    except ValueError as exc:
        return _bad_request(exc)
    _store_session(session)
    return jsonify({"ok": True, **session.describe()}), 201


@app.route("/api/sessions/<session_id>", methods=["GET"])
def session_view(session_id: str):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"ok": False, "error": "unknown session"}), 404
    return jsonify({"ok": True, **session.describe()})


@app.route("/api/sessions/<session_id>/step", methods=["POST"])
def session_step(session_id: str):
    session = _get_session(session_id)
    if session is None:
        return jsonify({"ok": False, "error": "unknown session"}), 404
    like = _merge_like_mapping()
    try:
        result = session.advance(_max_steps_from(like))
    except ValueError as exc:
        return _bad_request(exc)
    return jsonify({"ok": True, **result.to_dict(), "session": session.describe()})


@app.route("/api/sessions/<session_id>", methods=["DELETE"])
def session_delete(session_id: str):
    with SESSIONS_LOCK:
        removed = SESSIONS.pop(session_id, None)
    if removed is None:
        return jsonify({"ok": False, "error": "unknown session"}), 404
    return jsonify({"ok": True, "session_id": session_id})


@app.route("/api/verify", methods=["POST"])
def verify():
    like = _merge_like_mapping()
    try:
        tiles_encoded, board_encoded = _selection_from(like)
        seconds = like.get("max_seconds")
        out = verify_selection(
            tiles_encoded,
            board_encoded,
            max_seconds=float(seconds) if seconds not in (None, "") else None,
        )
    except ValueError as exc:
        return _bad_request(exc)
    return jsonify(out)


@app.route("/progress")
def progress():
    return jsonify(progress_json())


if __name__ == "__main__":
    app.run(debug=False)
