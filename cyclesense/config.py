"""
CycleSense Game Configuration
==============================

Rules of the game that every other module reads from:

- Starting NAV for every team and the storage precision of money values
- The four market phases and the four asset classes
- Allocation bounds for the "strict" (round submission) and "setup"
  (team configuration) validation profiles
- Range of the qualitative pitch / emotion scores

Environment:
  CYCLESENSE_DB_PATH     → SQLite save file (see cyclesense.db)
  CYCLESENSE_LOG_LEVEL   → log level passed to uvicorn by main.py
  PORT                   → API port used by main.py
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Dict, Tuple


# ═══════════════════════════════════════════════════════════════
# MONEY
# ═══════════════════════════════════════════════════════════════

STARTING_NAV = Decimal("10.00")

# Stored NAVs, returns and modifiers all carry 2 fraction digits.
NAV_PLACES = Decimal("0.01")


# ═══════════════════════════════════════════════════════════════
# PHASES & ASSETS
# ═══════════════════════════════════════════════════════════════

PHASES: Tuple[str, ...] = ("green", "blue", "orange", "red")

# Card-number prefix → phase, e.g. "G3" is a green card.
PHASE_BY_PREFIX = {
    "G": "green",
    "B": "blue",
    "O": "orange",
    "R": "red",
}
DEFAULT_IMPORT_PHASE = "green"

ASSETS: Tuple[str, ...] = ("equity", "debt", "gold", "cash")


# ═══════════════════════════════════════════════════════════════
# GAME MODES
# ═══════════════════════════════════════════════════════════════

MODE_VIRTUAL = "virtual"        # draws happen on screen
MODE_IN_PERSON = "in-person"    # facilitator picks phase / card by hand
GAME_MODES = (MODE_VIRTUAL, MODE_IN_PERSON)


# ═══════════════════════════════════════════════════════════════
# ALLOCATION BOUNDS
# ═══════════════════════════════════════════════════════════════

ALLOCATION_TOTAL = 100

PROFILE_STRICT = "strict"
PROFILE_SETUP = "setup"

# profile → asset → (min, max), inclusive
ALLOCATION_BOUNDS: Dict[str, Dict[str, Tuple[int, int]]] = {
    PROFILE_STRICT: {
        "equity": (1, 100),
        "debt": (1, 100),
        "gold": (1, 25),
        "cash": (1, 25),
    },
    PROFILE_SETUP: {
        "equity": (0, 100),
        "debt": (0, 100),
        "gold": (0, 100),
        "cash": (0, 100),
    },
}

DEFAULT_ALLOCATION = {"equity": 25, "debt": 25, "gold": 25, "cash": 25}


# ═══════════════════════════════════════════════════════════════
# QUALITATIVE SCORES
# ═══════════════════════════════════════════════════════════════

SCORE_MIN = 0
SCORE_MAX = 5


# ═══════════════════════════════════════════════════════════════
# RUNTIME SETTINGS
# ═══════════════════════════════════════════════════════════════

DEFAULT_DB_PATH = Path(
    os.environ.get(
        "CYCLESENSE_DB_PATH",
        str(Path(__file__).parent.parent / "data" / "cyclesense.db"),
    )
)

LOG_LEVEL = os.environ.get("CYCLESENSE_LOG_LEVEL", "warning")
API_PORT = int(os.environ.get("PORT", "8000"))
