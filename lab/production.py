"""Production: live per-frame work accrual and the offline catch-up grant."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from bonus_catalog import BonusTable, character_bonus
from config import (
    OFFLINE_CAP_SECONDS,
    OFFLINE_REPORT_MIN_SECONDS,
    OFFLINE_REPORT_MIN_TOTAL,
    PROGRESS_EPSILON,
    RESOURCE_KINDS,
    WORKING,
)
from lab.behavior import resolve_station
from lab.entities import ProductionEvent, Worker
from station_catalog import StationDefinition


def empty_resources() -> Dict[str, float]:
    return {resource: 0.0 for resource in RESOURCE_KINDS}


def cycle_yield(worker: Worker, station: StationDefinition, bonuses: BonusTable) -> float:
    return station.production_amount * character_bonus(bonuses, worker.shape, station.resource)


def accrue_work(
    worker: Worker,
    dt: float,
    stations: Dict[str, StationDefinition],
    bonuses: BonusTable,
) -> List[ProductionEvent]:
    """Advance a working worker's cycle and return one event per finished cycle.

    Upgrade levels play no part here; they only feed the applied stats.
    """
    if worker.state != WORKING:
        return []
    station = resolve_station(worker, stations)
    if station is None:
        return []

    worker.work_progress += dt / station.production_time
    amount = cycle_yield(worker, station, bonuses)
    events: List[ProductionEvent] = []
    while worker.work_progress >= 1.0 - PROGRESS_EPSILON:
        worker.work_progress -= 1.0
        events.append(ProductionEvent(worker.id, station.key, station.resource, amount))
    if worker.work_progress < PROGRESS_EPSILON:
        worker.work_progress = 0.0
    return events


def clamp_offline_elapsed(elapsed: float) -> float:
    if math.isnan(elapsed) or elapsed <= 0:
        return 0.0
    return min(elapsed, OFFLINE_CAP_SECONDS)


def calculate_offline_production(
    workers: Iterable[Worker],
    elapsed: float,
    stations: Dict[str, StationDefinition],
    bonuses: BonusTable,
) -> Dict[str, float]:
    """Whole cycles each assigned worker would have finished in ``elapsed`` seconds.

    Behavioural state is ignored: while the lab is closed every
    assigned worker counts as working the whole time. Leftover partial
    cycles are dropped rather than carried into ``work_progress``.
    """
    production = empty_resources()
    elapsed = clamp_offline_elapsed(elapsed)
    if elapsed == 0:
        return production

    for worker in workers:
        station = resolve_station(worker, stations)
        if station is None:
            continue
        cycles = math.floor(elapsed / station.production_time + PROGRESS_EPSILON)
        production[station.resource] += cycles * cycle_yield(worker, station, bonuses)
    return production


@dataclass(frozen=True)
class OfflineReport:
    """What an offline catch-up granted, for the welcome-back summary."""

    production: Dict[str, float] = field(default_factory=empty_resources)
    elapsed_seconds: float = 0.0

    @property
    def total(self) -> float:
        return sum(self.production.values())

    @property
    def is_significant(self) -> bool:
        return self.total >= OFFLINE_REPORT_MIN_TOTAL and self.elapsed_seconds >= OFFLINE_REPORT_MIN_SECONDS
