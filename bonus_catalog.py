"""Character specialisation bonuses: some Wobble shapes research faster."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

from config import BONUSES_FILE, RESOURCE_KINDS, WORKER_SHAPES

BonusTable = Dict[Tuple[str, str], float]


@dataclass(frozen=True)
class CharacterBonus:
    shape: str
    resource: str
    multiplier: float


DEFAULT_BONUSES: Tuple[CharacterBonus, ...] = (
    CharacterBonus("circle", "gravity", 2.0),
    CharacterBonus("einstein", "momentum", 2.0),
    CharacterBonus("diamond", "thermodynamics", 2.0),
    CharacterBonus("triangle", "elasticity", 2.0),
)


def _parse_bonus_entry(entry: Dict[str, Any]) -> CharacterBonus | None:
    shape = entry.get("shape")
    resource = entry.get("resource")
    multiplier = entry.get("multiplier")

    if shape not in WORKER_SHAPES or resource not in RESOURCE_KINDS:
        return None
    if isinstance(multiplier, bool) or not isinstance(multiplier, (int, float)):
        return None
    try:
        if not math.isfinite(multiplier) or multiplier <= 0:
            return None
    except OverflowError:
        return None
    return CharacterBonus(shape=str(shape), resource=str(resource), multiplier=float(multiplier))


def _bonus_table(bonuses: Iterable[CharacterBonus]) -> BonusTable:
    return {(bonus.shape, bonus.resource): bonus.multiplier for bonus in bonuses}


def load_bonus_catalog(path: Path = BONUSES_FILE) -> BonusTable:
    defaults = _bonus_table(DEFAULT_BONUSES)
    if not path.exists():
        return defaults

    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return defaults

    if not isinstance(raw, list):
        return defaults

    table: BonusTable = {}
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        bonus = _parse_bonus_entry(entry)
        if bonus is None:
            continue
        pair = (bonus.shape, bonus.resource)
        # A pair listed twice is ambiguous; refuse the whole file.
        if pair in table:
            return defaults
        table[pair] = bonus.multiplier

    return table


def character_bonus(table: BonusTable, shape: str, resource: str) -> float:
    return table.get((shape, resource), 1.0)
