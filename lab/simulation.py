"""ResearchLab — the idle research lab as seen by the host and by minigames.

Catalogs are loaded from ``data/`` with safe defaults. The lab has no pygame
dependency and is safe to import in headless / test contexts.
"""
from __future__ import annotations

import math
import random
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from bonus_catalog import BonusTable, load_bonus_catalog
from config import EVENT_LOG_LIMIT, MAX_TICK_SECONDS, MAX_WORKERS, SAVE_FILE, WORKER_SHAPES, WORKING
from lab.behavior import advance_worker, on_cycles_completed, reassign_worker, resolve_station
from lab.economy import AppliedStats, project_applied_stats, try_upgrade, upgrade_cost
from lab.entities import ProductionEvent, Worker
from lab.ledger import Ledger, load_ledger, new_worker, save_ledger
from lab.production import OfflineReport, accrue_work, calculate_offline_production, clamp_offline_elapsed
from station_catalog import StationDefinition, load_station_catalog
from upgrade_catalog import UpgradeDefinition, load_upgrade_catalog

STATIONS = load_station_catalog()
BONUSES = load_bonus_catalog()
UPGRADES = load_upgrade_catalog()


class ResearchLab:
    """Tick-based research lab.

    All ledger mutations go through this object: :meth:`tick` once per frame,
    :meth:`activate` when the lab screen (re)opens, and the roster / upgrade
    actions in between. When ``save_path`` is set the ledger is written back
    after every mutation.
    """

    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        *,
        seed: int = 7,
        clock: Callable[[], float] = time.time,
        save_path: Optional[Path] = None,
        stations: Optional[Dict[str, StationDefinition]] = None,
        bonuses: Optional[BonusTable] = None,
        upgrades: Optional[Dict[str, UpgradeDefinition]] = None,
    ) -> None:
        self.rng = random.Random(seed)
        self.clock = clock
        self.save_path = save_path
        self.stations: Dict[str, StationDefinition] = stations if stations is not None else STATIONS
        self.bonuses: BonusTable = bonuses if bonuses is not None else BONUSES
        self.upgrades: Dict[str, UpgradeDefinition] = upgrades if upgrades is not None else UPGRADES
        self.ledger: Ledger = ledger if ledger is not None else Ledger.create(self.rng, self.clock())
        self.event_log: List[str] = []
        self._log_event("Lab initialized")

    @classmethod
    def load(cls, path: Path = SAVE_FILE, **kwargs) -> "ResearchLab":
        """Open the lab saved at ``path``, starting fresh if the save is missing or broken."""
        lab = cls(save_path=path, **kwargs)
        ledger = load_ledger(path, stations=lab.stations, upgrades=lab.upgrades, now=lab.clock())
        if ledger is None:
            lab._log_event(f"No usable save at {path}, starting fresh")
        else:
            lab.ledger = ledger
            lab._log_event(f"Lab loaded ({len(ledger.workers)} workers)")
        return lab

    def _log_event(self, message: str) -> None:
        self.event_log.append(message)
        self.event_log = self.event_log[-EVENT_LOG_LIMIT:]

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    # ------------------------------------------------------------------
    # Save / Load helpers
    # ------------------------------------------------------------------

    def save(self, path: Optional[Path] = None) -> bool:
        target = path or self.save_path or SAVE_FILE
        try:
            save_ledger(self.ledger, target)
        except OSError as exc:
            self._log_event(f"Save failed: {exc}")
            return False
        return True

    def _flush(self) -> None:
        if self.save_path is not None:
            self.save(self.save_path)

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    @property
    def workers(self) -> List[Worker]:
        return self.ledger.workers

    def worker(self, worker_id: str) -> Optional[Worker]:
        return self.ledger.find_worker(worker_id)

    def add_worker(self, shape: str) -> Optional[str]:
        if shape not in WORKER_SHAPES:
            return None
        if len(self.ledger.workers) >= MAX_WORKERS:
            self._log_event(f"Lab full ({MAX_WORKERS} workers)")
            return None
        worker = new_worker(shape, self.rng, self.ledger.worker_ids())
        self.ledger.workers.append(worker)
        self._log_event(f"Worker {worker.id} ({shape}) joined")
        self._flush()
        return worker.id

    def remove_worker(self, worker_id: str) -> bool:
        worker = self.ledger.find_worker(worker_id)
        if worker is None:
            return False
        self.ledger.workers.remove(worker)
        self._log_event(f"Worker {worker_id} left")
        self._flush()
        return True

    def assign_worker(self, worker_id: str, station_key: Optional[str], *, teleport: bool = False) -> bool:
        """Send a worker to ``station_key``; unknown keys count as unassigning."""
        worker = self.ledger.find_worker(worker_id)
        if worker is None:
            return False
        station = self.stations.get(station_key) if station_key is not None else None
        reassign_worker(worker, station, self.rng, teleport=teleport)
        if station is None:
            self._log_event(f"Worker {worker_id} unassigned")
        else:
            self._log_event(f"Worker {worker_id} assigned to {station.key}")
        self._flush()
        return True

    def station_workers(self, station_key: str) -> List[Worker]:
        return [worker for worker in self.ledger.workers if worker.assigned_station == station_key]

    def is_station_active(self, station_key: str) -> bool:
        return any(worker.state == WORKING for worker in self.station_workers(station_key))

    # ------------------------------------------------------------------
    # Upgrades
    # ------------------------------------------------------------------

    def cost_of(self, resource: str) -> int:
        definition = self.upgrades.get(resource)
        if definition is None:
            return 0
        return upgrade_cost(definition, self.ledger.levels[resource])

    def is_max_level(self, resource: str) -> bool:
        definition = self.upgrades.get(resource)
        return definition is None or self.ledger.levels[resource] >= definition.max_level

    def can_upgrade(self, resource: str) -> bool:
        if self.is_max_level(resource):
            return False
        return self.ledger.resources[resource] >= self.cost_of(resource)

    def upgrade(self, resource: str) -> bool:
        cost = self.cost_of(resource)
        if not try_upgrade(self.ledger.resources, self.ledger.levels, resource, self.upgrades):
            return False
        self._log_event(f"{resource} research reached level {self.ledger.levels[resource]} (-{cost})")
        self._flush()
        return True

    def get_applied_stats(self) -> AppliedStats:
        return project_applied_stats(self.ledger.levels, self.upgrades)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self, now: Optional[float] = None) -> OfflineReport:
        """Grant production for the time the lab was closed; call before ticking resumes."""
        now = self._now(now)
        elapsed = clamp_offline_elapsed(now - self.ledger.last_sync_at)
        production = calculate_offline_production(self.ledger.workers, elapsed, self.stations, self.bonuses)
        for resource, amount in production.items():
            self.ledger.credit(resource, amount)
        self.ledger.last_sync_at = now

        report = OfflineReport(production=production, elapsed_seconds=elapsed)
        if report.is_significant:
            self._log_event(f"Welcome back: +{report.total:.0f} research over {elapsed:.0f}s")
        self._flush()
        return report

    def deactivate(self, now: Optional[float] = None) -> None:
        self.ledger.last_sync_at = self._now(now)
        self._flush()

    def reset(self) -> None:
        self.ledger = Ledger.create(self.rng, self.clock())
        self._log_event("Lab reset")
        self._flush()

    # ------------------------------------------------------------------
    # Main tick
    # ------------------------------------------------------------------

    def tick(self, dt: float) -> List[ProductionEvent]:
        """Advance every worker by ``dt`` seconds and credit finished cycles.

        A long frame hitch is simulated in full, every cycle it spans, up to
        the offline catch-up ceiling.
        """
        if not math.isfinite(dt) or dt <= 0:
            return []
        dt = min(dt, MAX_TICK_SECONDS)

        events: List[ProductionEvent] = []
        for worker in self.ledger.workers:
            worked = advance_worker(worker, dt, self.rng, self.stations)
            completed = accrue_work(worker, worked, self.stations, self.bonuses)
            if not completed:
                continue
            for event in completed:
                self.ledger.credit(event.resource, event.amount)
            station = resolve_station(worker, self.stations)
            if station is not None:
                on_cycles_completed(worker, len(completed), station, self.rng)
            events.extend(completed)

        self.ledger.last_sync_at = self.clock()
        if events:
            self._flush()
        return events
