"""Worker AI: the per-tick state machine that moves Wobbles around the lab.

States:

* ``idle`` - not assigned; wanders around the home area, sometimes pausing.
* ``walking`` - heading for the assigned station; starts working on arrival.
* ``working`` - at the station, accruing production progress.
* ``taking_break`` - short rest near the station after a few completed cycles.

Every random draw goes through the ``random.Random`` passed in, so a seeded
generator replays the same behaviour.
"""
from __future__ import annotations

import math
import random
from typing import Dict, Optional

from config import (
    ARRIVAL_THRESHOLD,
    BREAK_DURATION,
    BREAK_WANDER_RADIUS,
    HOME_POSITION,
    IDLE,
    IDLE_PAUSE_CHANCE,
    IDLE_WANDER_INTERVAL,
    IDLE_WANDER_RADIUS,
    SCENE_HEIGHT,
    SCENE_MARGIN_BOTTOM,
    SCENE_MARGIN_TOP,
    SCENE_MARGIN_X,
    SCENE_WIDTH,
    TAKING_BREAK,
    WALKING,
    WORK_CYCLES_BEFORE_BREAK,
    WORKER_SPEED,
    WORKING,
)
from lab.entities import Position, Worker
from station_catalog import StationDefinition


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def to_scene(relative: tuple[float, float]) -> Position:
    return Position(relative[0] * SCENE_WIDTH, relative[1] * SCENE_HEIGHT)


def home_position() -> Position:
    return to_scene(HOME_POSITION)


def station_anchor(station: StationDefinition) -> Position:
    return to_scene(station.position)


def clamp_to_scene(x: float, y: float) -> Position:
    return Position(
        clamp(x, SCENE_MARGIN_X, SCENE_WIDTH - SCENE_MARGIN_X),
        clamp(y, SCENE_MARGIN_TOP, SCENE_HEIGHT - SCENE_MARGIN_BOTTOM),
    )


def resolve_station(worker: Worker, stations: Dict[str, StationDefinition]) -> Optional[StationDefinition]:
    if worker.assigned_station is None:
        return None
    return stations.get(worker.assigned_station)


def schedule_next_wander(worker: Worker, rng: random.Random) -> None:
    worker.next_wander_in = rng.uniform(*IDLE_WANDER_INTERVAL)


def _step_towards(position: Position, target: Position, dt: float) -> bool:
    """Move ``position`` toward ``target``; return True once it has arrived."""
    distance = position.distance_to(target)
    step = WORKER_SPEED * dt
    if distance < ARRIVAL_THRESHOLD or step >= distance:
        position.x, position.y = target.x, target.y
        return True
    dx = (target.x - position.x) / distance
    dy = (target.y - position.y) / distance
    position.x += dx * step
    position.y += dy * step
    return False


def _start_working(worker: Worker, station: StationDefinition, rng: random.Random) -> None:
    anchor = station_anchor(station)
    worker.state = WORKING
    worker.position = Position(anchor.x, anchor.y)
    worker.target = None
    worker.work_progress = 0.0
    worker.break_remaining = 0.0
    if worker.cycles_until_break <= 0:
        worker.cycles_until_break = rng.randint(*WORK_CYCLES_BEFORE_BREAK)


def _go_idle(worker: Worker, rng: random.Random) -> None:
    worker.assigned_station = None
    worker.state = IDLE
    worker.target = None
    worker.work_progress = 0.0
    worker.cycles_until_break = 0
    worker.break_remaining = 0.0
    schedule_next_wander(worker, rng)


def start_break(worker: Worker, station: StationDefinition, rng: random.Random) -> None:
    anchor = station_anchor(station)
    radius = SCENE_WIDTH * BREAK_WANDER_RADIUS
    angle = rng.random() * math.tau
    worker.state = TAKING_BREAK
    worker.target = clamp_to_scene(anchor.x + math.cos(angle) * radius, anchor.y + math.sin(angle) * radius)
    worker.break_remaining = rng.uniform(*BREAK_DURATION)
    worker.work_progress = 0.0
    # Redrawn when the worker gets back to the station.
    worker.cycles_until_break = 0


def reassign_worker(
    worker: Worker,
    station: Optional[StationDefinition],
    rng: random.Random,
    *,
    teleport: bool = False,
) -> None:
    """Point ``worker`` at ``station`` (or nowhere), dropping any partial cycle."""
    if station is None:
        _go_idle(worker, rng)
        return

    worker.assigned_station = station.key
    worker.work_progress = 0.0
    worker.cycles_until_break = 0
    worker.break_remaining = 0.0
    worker.target = None
    if teleport:
        _start_working(worker, station, rng)
    else:
        worker.state = WALKING


def on_cycles_completed(worker: Worker, completed: int, station: StationDefinition, rng: random.Random) -> bool:
    """Count finished cycles; returns True when the worker heads off on a break."""
    if worker.state != WORKING or completed <= 0:
        return False
    worker.cycles_until_break -= completed
    if worker.cycles_until_break > 0:
        return False
    start_break(worker, station, rng)
    return True


def _perform_idle_action(worker: Worker, rng: random.Random) -> None:
    schedule_next_wander(worker, rng)
    if rng.random() < IDLE_PAUSE_CHANCE:
        return
    home = home_position()
    radius = SCENE_WIDTH * IDLE_WANDER_RADIUS
    angle = rng.random() * math.tau
    distance = rng.random() * radius
    worker.target = clamp_to_scene(home.x + math.cos(angle) * distance, home.y + math.sin(angle) * distance)


def advance_worker(
    worker: Worker,
    dt: float,
    rng: random.Random,
    stations: Dict[str, StationDefinition],
) -> float:
    """Step ``worker`` through ``dt`` seconds of behaviour.

    Returns the part of ``dt`` the worker spent at its station working, which
    is what production should be credited with. A worker that arrives or
    comes back from a break mid-frame only works the remainder.
    """
    if worker.state == IDLE:
        if worker.target is not None and _step_towards(worker.position, worker.target, dt):
            worker.target = None
        worker.next_wander_in -= dt
        if worker.next_wander_in <= 0 and worker.target is None:
            _perform_idle_action(worker, rng)
        return 0.0

    station = resolve_station(worker, stations)
    if station is None:
        # Assignment points at a station that no longer exists.
        _go_idle(worker, rng)
        return 0.0

    if worker.state == WALKING:
        anchor = station_anchor(station)
        walk_time = worker.position.distance_to(anchor) / WORKER_SPEED
        if _step_towards(worker.position, anchor, dt):
            _start_working(worker, station, rng)
            return max(0.0, dt - walk_time)
        return 0.0

    if worker.state == WORKING:
        if worker.cycles_until_break <= 0:
            worker.cycles_until_break = rng.randint(*WORK_CYCLES_BEFORE_BREAK)
        return dt

    if worker.state == TAKING_BREAK:
        if worker.target is not None and _step_towards(worker.position, worker.target, dt):
            worker.target = None
        worker.break_remaining -= dt
        if worker.break_remaining <= 0:
            leftover = min(dt, -worker.break_remaining)
            _start_working(worker, station, rng)
            return leftover
    return 0.0
