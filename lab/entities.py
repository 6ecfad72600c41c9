"""Core dataclasses for the research lab."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from config import IDLE


@dataclass
class Position:
    """A point in scene units."""

    x: float = 0.0
    y: float = 0.0

    def distance_to(self, other: "Position") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass
class Worker:
    """A Wobble working in the lab.

    ``work_progress`` is the completed fraction of the current production
    cycle and only means something while ``state`` is ``"working"``.
    ``cycles_until_break``, ``break_remaining`` and ``next_wander_in`` are the
    behaviour countdowns; ``target`` is the point the worker is currently
    wandering towards, if any.
    """

    id: str
    shape: str
    assigned_station: Optional[str] = None
    state: str = IDLE
    work_progress: float = 0.0
    position: Position = field(default_factory=Position)
    target: Optional[Position] = None
    cycles_until_break: int = 0
    break_remaining: float = 0.0
    next_wander_in: float = 0.0


@dataclass(frozen=True)
class ProductionEvent:
    """One completed production cycle."""

    worker_id: str
    station_key: str
    resource: str
    amount: float
