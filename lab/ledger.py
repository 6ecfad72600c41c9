"""The persisted lab ledger: balances, upgrade levels, roster, and last sync time.

The ledger is plain data. Only production, offline catch-up and upgrade
purchases change balances and levels; the :class:`lab.ResearchLab` facade is
the single writer.
"""
from __future__ import annotations

import json
import math
import random
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config import (
    IDLE,
    LEGACY_LEVEL_KEYS,
    LEGACY_RESOURCE_KEYS,
    MAX_WORKERS,
    RESOURCE_KINDS,
    SAVE_FILE,
    SAVE_FORMAT_VERSION,
    STARTING_WORKERS,
    WALKING,
    WORKER_SHAPES,
    WORKER_STATES,
    WORKING,
)
from lab.behavior import home_position, schedule_next_wander
from lab.entities import Position, Worker
from station_catalog import StationDefinition
from upgrade_catalog import UpgradeDefinition


def new_worker_id(rng: random.Random, taken: Iterable[str] = ()) -> str:
    taken = set(taken)
    while True:
        candidate = f"worker-{rng.getrandbits(32):08x}"
        if candidate not in taken:
            return candidate


def new_worker(shape: str, rng: random.Random, taken: Iterable[str] = ()) -> Worker:
    home = home_position()
    worker = Worker(id=new_worker_id(rng, taken), shape=shape, position=Position(home.x, home.y))
    schedule_next_wander(worker, rng)
    return worker


def _finite_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    try:
        value = float(value)
    except OverflowError:
        return default
    return value if math.isfinite(value) else default


def _parse_position(raw: Any) -> Optional[Position]:
    if not isinstance(raw, dict):
        return None
    x = _finite_float(raw.get("x"), math.nan)
    y = _finite_float(raw.get("y"), math.nan)
    if math.isnan(x) or math.isnan(y):
        return None
    return Position(x, y)


@dataclass
class Ledger:
    resources: Dict[str, float] = field(default_factory=lambda: {r: 0.0 for r in RESOURCE_KINDS})
    levels: Dict[str, int] = field(default_factory=lambda: {r: 0 for r in RESOURCE_KINDS})
    workers: List[Worker] = field(default_factory=list)
    last_sync_at: float = 0.0

    @classmethod
    def create(cls, rng: random.Random, now: float) -> "Ledger":
        """First-launch ledger: nothing earned, nothing bought, starter roster."""
        ledger = cls(last_sync_at=now)
        for shape in STARTING_WORKERS:
            ledger.workers.append(new_worker(shape, rng, ledger.worker_ids()))
        return ledger

    def worker_ids(self) -> List[str]:
        return [worker.id for worker in self.workers]

    def find_worker(self, worker_id: str) -> Optional[Worker]:
        for worker in self.workers:
            if worker.id == worker_id:
                return worker
        return None

    def credit(self, resource: str, amount: float) -> None:
        if resource not in self.resources:
            return
        if not math.isfinite(amount) or amount <= 0:
            return
        self.resources[resource] += amount

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict:
        return {
            "version": SAVE_FORMAT_VERSION,
            "resources": dict(self.resources),
            "levels": dict(self.levels),
            "workers": [asdict(worker) for worker in self.workers],
            "last_sync_at": self.last_sync_at,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict,
        *,
        stations: Dict[str, StationDefinition],
        upgrades: Dict[str, UpgradeDefinition],
        now: float,
    ) -> "Ledger":
        ledger = cls()

        raw_resources = data.get("resources", {})
        if not isinstance(raw_resources, dict):
            raw_resources = {}
        for resource in RESOURCE_KINDS:
            raw_value = raw_resources.get(resource, raw_resources.get(LEGACY_RESOURCE_KEYS[resource], 0.0))
            ledger.resources[resource] = max(0.0, _finite_float(raw_value, 0.0))

        raw_levels = data.get("levels", data.get("stats", {}))
        if not isinstance(raw_levels, dict):
            raw_levels = {}
        for resource in RESOURCE_KINDS:
            raw_value = raw_levels.get(resource, raw_levels.get(LEGACY_LEVEL_KEYS[resource], 0))
            level = int(max(0.0, _finite_float(raw_value, 0.0)))
            ledger.levels[resource] = min(level, upgrades[resource].max_level)

        raw_workers = data.get("workers", [])
        if not isinstance(raw_workers, list):
            raw_workers = []
        for raw_worker in raw_workers:
            if len(ledger.workers) >= MAX_WORKERS:
                break
            if not isinstance(raw_worker, dict):
                continue
            worker = cls._normalize_worker_state(raw_worker, stations)
            if worker is None or worker.id in ledger.worker_ids():
                continue
            ledger.workers.append(worker)

        if "last_sync_at" not in data and "lastSyncAt" in data:
            # Stored in milliseconds by the pre-physics format.
            legacy_ms = _finite_float(data["lastSyncAt"], math.nan)
            ledger.last_sync_at = now if math.isnan(legacy_ms) else legacy_ms / 1000.0
        else:
            ledger.last_sync_at = _finite_float(data.get("last_sync_at"), now)
        return ledger

    @staticmethod
    def _normalize_worker_state(raw_worker: Dict, stations: Dict[str, StationDefinition]) -> Optional[Worker]:
        worker_id = raw_worker.get("id")
        shape = raw_worker.get("shape")
        if not isinstance(worker_id, str) or not worker_id:
            return None
        if not isinstance(shape, str) or shape not in WORKER_SHAPES:
            return None

        assigned = raw_worker.get("assigned_station", raw_worker.get("assignedStation"))
        if not isinstance(assigned, str) or assigned not in stations:
            assigned = None

        state = raw_worker.get("state", IDLE)
        if not isinstance(state, str) or state not in WORKER_STATES:
            state = IDLE
        if assigned is None:
            state = IDLE
        elif state == IDLE:
            state = WALKING

        progress = _finite_float(raw_worker.get("work_progress", raw_worker.get("workProgress")), 0.0)
        if state != WORKING or not 0.0 <= progress < 1.0:
            progress = 0.0

        home = home_position()
        position = _parse_position(raw_worker.get("position")) or Position(home.x, home.y)
        target = _parse_position(raw_worker.get("target"))

        return Worker(
            id=worker_id,
            shape=str(shape),
            assigned_station=assigned,
            state=state,
            work_progress=progress,
            position=position,
            target=target,
            cycles_until_break=int(max(0.0, _finite_float(raw_worker.get("cycles_until_break"), 0.0))),
            break_remaining=max(0.0, _finite_float(raw_worker.get("break_remaining"), 0.0)),
            next_wander_in=max(0.0, _finite_float(raw_worker.get("next_wander_in"), 0.0)),
        )


# ----------------------------------------------------------------------
# Save / Load helpers
# ----------------------------------------------------------------------


def save_ledger(ledger: Ledger, path: Path = SAVE_FILE) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(json.dumps(ledger.to_dict(), indent=2))
    tmp_path.replace(path)


def load_ledger(
    path: Path,
    *,
    stations: Dict[str, StationDefinition],
    upgrades: Dict[str, UpgradeDefinition],
    now: float,
) -> Optional[Ledger]:
    """Read a saved ledger, or return None when the file is missing or unusable."""
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        return None
    if not isinstance(raw, dict):
        return None
    try:
        return Ledger.from_dict(raw, stations=stations, upgrades=upgrades, now=now)
    except (TypeError, ValueError, OverflowError):
        return None
