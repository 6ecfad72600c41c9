"""Research stations: which resource each one produces, how fast, and where it sits in the lab."""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

from config import RESOURCE_KINDS, STATIONS_FILE

STATION_ID_RE = re.compile(r"^[a-z][a-z0-9-]*$")


class SimulationVariant(Enum):
    """Mini-simulation shown by a station. The lab core only carries it around."""

    ORBITAL = "orbital"
    PARTICLE_ACCELERATOR = "particle_accelerator"
    COLLISION = "collision"
    HEAT_TRANSFER = "heat_transfer"


@dataclass(frozen=True)
class StationDefinition:
    key: str
    display_name: str
    resource: str
    production_time: float
    production_amount: float
    simulation: SimulationVariant
    position: Tuple[float, float] = (0.5, 0.5)
    formula_symbol: str = ""
    unit: str = ""

    @property
    def production_rate(self) -> float:
        """Units per second for one unboosted worker."""
        return self.production_amount / self.production_time


DEFAULT_STATIONS: Dict[str, StationDefinition] = {
    "gravity-lab": StationDefinition(
        key="gravity-lab",
        display_name="Gravity Lab",
        resource="gravity",
        production_time=3.0,
        production_amount=150.0,
        simulation=SimulationVariant.ORBITAL,
        position=(0.2, 0.3),
        formula_symbol="G",
        unit="N·m²/kg²",
    ),
    "accelerator": StationDefinition(
        key="accelerator",
        display_name="Particle Accelerator",
        resource="momentum",
        production_time=2.5,
        production_amount=200.0,
        simulation=SimulationVariant.PARTICLE_ACCELERATOR,
        position=(0.8, 0.3),
        formula_symbol="p",
        unit="kg·m/s",
    ),
    "collision-lab": StationDefinition(
        key="collision-lab",
        display_name="Collision Lab",
        resource="elasticity",
        production_time=4.0,
        production_amount=100.0,
        simulation=SimulationVariant.COLLISION,
        position=(0.2, 0.7),
        formula_symbol="e",
    ),
    "thermodynamics-lab": StationDefinition(
        key="thermodynamics-lab",
        display_name="Thermodynamics Lab",
        resource="thermodynamics",
        production_time=3.5,
        production_amount=120.0,
        simulation=SimulationVariant.HEAT_TRANSFER,
        position=(0.8, 0.7),
        formula_symbol="Q",
        unit="J",
    ),
}


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # JSON integers too large for a float.
        return False


def _is_positive_number(value: Any) -> bool:
    return _is_finite_number(value) and value > 0


def _parse_position(value: Any) -> Tuple[float, float] | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    coords = []
    for coord in value:
        if not _is_finite_number(coord) or not 0.0 <= coord <= 1.0:
            return None
        coords.append(float(coord))
    return coords[0], coords[1]


def _parse_station_entry(key: str, entry: Dict[str, Any]) -> StationDefinition | None:
    if not isinstance(key, str) or not STATION_ID_RE.fullmatch(key):
        return None

    display_name = entry.get("display_name")
    resource = entry.get("resource")
    production_time = entry.get("production_time")
    production_amount = entry.get("production_amount")
    simulation = entry.get("simulation")
    position = _parse_position(entry.get("position", [0.5, 0.5]))
    formula_symbol = entry.get("formula_symbol", "")
    unit = entry.get("unit", "")

    if not isinstance(display_name, str) or not display_name.strip():
        return None
    if resource not in RESOURCE_KINDS:
        return None
    if not _is_positive_number(production_time) or not _is_positive_number(production_amount):
        return None
    try:
        variant = SimulationVariant(simulation)
    except (TypeError, ValueError):
        return None
    if position is None:
        return None
    if not isinstance(formula_symbol, str) or not isinstance(unit, str):
        return None

    return StationDefinition(
        key=key,
        display_name=display_name.strip(),
        resource=str(resource),
        production_time=float(production_time),
        production_amount=float(production_amount),
        simulation=variant,
        position=position,
        formula_symbol=formula_symbol,
        unit=unit,
    )


def _ordered_catalog(stations: Iterable[StationDefinition]) -> Dict[str, StationDefinition]:
    ordered = sorted(stations, key=lambda station: (RESOURCE_KINDS.index(station.resource), station.key))
    return {station.key: station for station in ordered}


def _covers_every_resource(stations: Dict[str, StationDefinition]) -> bool:
    produced = {station.resource for station in stations.values()}
    return produced == set(RESOURCE_KINDS)


def load_station_catalog(path: Path = STATIONS_FILE) -> Dict[str, StationDefinition]:
    defaults = _ordered_catalog(DEFAULT_STATIONS.values())
    if not path.exists():
        return defaults

    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return defaults

    if not isinstance(raw, dict):
        return defaults

    parsed: Dict[str, StationDefinition] = {}
    for key, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        station = _parse_station_entry(key, entry)
        if station is None:
            continue
        parsed[key] = station

    if not parsed or not _covers_every_resource(parsed):
        return defaults

    return _ordered_catalog(parsed.values())


def station_for_resource(stations: Dict[str, StationDefinition], resource: str) -> StationDefinition | None:
    for station in stations.values():
        if station.resource == resource:
            return station
    return None
