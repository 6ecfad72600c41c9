"""Centralised configuration constants for the Wobble research lab."""
from __future__ import annotations

from pathlib import Path

# ---------------------------------------------------------------------------
# Resource kinds (closed set; keys for balances, levels, stations, bonuses)
# ---------------------------------------------------------------------------
GRAVITY: str = "gravity"
MOMENTUM: str = "momentum"
ELASTICITY: str = "elasticity"
THERMODYNAMICS: str = "thermodynamics"

RESOURCE_KINDS: tuple[str, ...] = (GRAVITY, MOMENTUM, ELASTICITY, THERMODYNAMICS)

# Pre-physics save format used different resource names.
LEGACY_RESOURCE_KEYS: dict[str, str] = {
    GRAVITY: "mass",
    MOMENTUM: "velocity",
    ELASTICITY: "force",
    THERMODYNAMICS: "resistance",
}
LEGACY_LEVEL_KEYS: dict[str, str] = {
    GRAVITY: "massLevel",
    MOMENTUM: "velocityLevel",
    ELASTICITY: "forceLevel",
    THERMODYNAMICS: "resistanceLevel",
}

# ---------------------------------------------------------------------------
# Worker shapes (only used to look up character bonuses)
# ---------------------------------------------------------------------------
WORKER_SHAPES: tuple[str, ...] = (
    "circle",
    "square",
    "triangle",
    "star",
    "diamond",
    "pentagon",
    "shadow",
    "einstein",
)

# ---------------------------------------------------------------------------
# Worker behavioral states
# ---------------------------------------------------------------------------
IDLE: str = "idle"
WALKING: str = "walking"
WORKING: str = "working"
TAKING_BREAK: str = "taking_break"

WORKER_STATES: tuple[str, ...] = (IDLE, WALKING, WORKING, TAKING_BREAK)

# ---------------------------------------------------------------------------
# File paths
# ---------------------------------------------------------------------------
SAVE_FILE: Path = Path("lab_save.json")
STATIONS_FILE: Path = Path("data/stations.json")
BONUSES_FILE: Path = Path("data/bonuses.json")
UPGRADES_FILE: Path = Path("data/upgrades.json")
SAVE_FORMAT_VERSION: int = 2

# ---------------------------------------------------------------------------
# Scene geometry (scene units; station positions are relative 0-1 anchors)
# ---------------------------------------------------------------------------
SCENE_WIDTH: float = 400.0
SCENE_HEIGHT: float = 600.0
HOME_POSITION: tuple[float, float] = (0.5, 0.5)   # relative idle gathering point
SCENE_MARGIN_X: float = 50.0           # wander targets stay this far from left/right edges
SCENE_MARGIN_TOP: float = 100.0
SCENE_MARGIN_BOTTOM: float = 150.0

# ---------------------------------------------------------------------------
# Worker AI tuning
# ---------------------------------------------------------------------------
WORKER_SPEED: float = 100.0            # scene units per second
ARRIVAL_THRESHOLD: float = 5.0         # distance at which a walk counts as arrived
IDLE_WANDER_RADIUS: float = 0.15       # fraction of scene width around home
IDLE_WANDER_INTERVAL: tuple[float, float] = (2.0, 5.0)
IDLE_PAUSE_CHANCE: float = 0.3         # chance an idle interval is spent standing still
WORK_CYCLES_BEFORE_BREAK: tuple[int, int] = (2, 5)
BREAK_DURATION: tuple[float, float] = (1.5, 3.0)
BREAK_WANDER_RADIUS: float = 0.08      # fraction of scene width around the station

# ---------------------------------------------------------------------------
# Production
# ---------------------------------------------------------------------------
PROGRESS_EPSILON: float = 1e-9         # cycle completion tolerance for accumulated frame times
MAX_TICK_SECONDS: float = 24 * 60 * 60  # same ceiling as offline catch-up

# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------
MAX_WORKERS: int = 8
STARTING_WORKERS: tuple[str, ...] = ("circle", "square")

# ---------------------------------------------------------------------------
# Offline catch-up
# ---------------------------------------------------------------------------
OFFLINE_CAP_SECONDS: float = 24 * 60 * 60
OFFLINE_REPORT_MIN_TOTAL: float = 100.0    # welcome-back summary only above this total
OFFLINE_REPORT_MIN_SECONDS: float = 30.0

# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------
EVENT_LOG_LIMIT: int = 12
