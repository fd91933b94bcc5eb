# config.py
import os

# ======= Step budgets =======
DEFAULT_MAX_STEPS = int(os.getenv("MB_DEFAULT_MAX_STEPS", "1000"))
MAX_STEPS_CAP     = int(os.getenv("MB_MAX_STEPS_CAP", "1000000"))

# ======= Resumable sessions (app) =======
MAX_SESSIONS = int(os.getenv("MB_MAX_SESSIONS", "64"))

# ======= CP-SAT cross-check =======
CP_SAT_SECONDS = float(os.getenv("MB_CP_SAT_SECONDS", "10"))
CP_SAT_WORKERS = int(os.getenv("MB_CP_SAT_WORKERS", "1"))

class CFG:
    DEFAULT_MAX_STEPS = DEFAULT_MAX_STEPS
    MAX_STEPS_CAP     = MAX_STEPS_CAP

    MAX_SESSIONS = MAX_SESSIONS

    CP_SAT_SECONDS = CP_SAT_SECONDS
    CP_SAT_WORKERS = CP_SAT_WORKERS


def clamp_steps(value) -> int:
    """Coerce a caller supplied step budget into ``0..MAX_STEPS_CAP``."""

    if value is None:
        return max(0, int(CFG.DEFAULT_MAX_STEPS))
    steps = int(value)
    if steps < 0:
        raise ValueError(f"Bad step budget: {value!r}")
    return min(steps, max(0, int(CFG.MAX_STEPS_CAP)))


__all__ = ["CFG", "clamp_steps"]
