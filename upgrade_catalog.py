"""Upgrade curves per resource, with optional overrides from ``data/upgrades.json``."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from config import RESOURCE_KINDS, UPGRADES_FILE


@dataclass(frozen=True)
class UpgradeDefinition:
    resource: str
    base_cost: float
    cost_multiplier: float
    effect_per_level: float
    max_level: int


DEFAULT_UPGRADES: Dict[str, UpgradeDefinition] = {
    "gravity": UpgradeDefinition("gravity", 1000.0, 1.35, 0.05, 100),
    "momentum": UpgradeDefinition("momentum", 1000.0, 1.35, 0.03, 100),
    "elasticity": UpgradeDefinition("elasticity", 1000.0, 1.35, 0.04, 100),
    "thermodynamics": UpgradeDefinition("thermodynamics", 1000.0, 1.35, 0.02, 100),
}


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _top_cost_is_finite(base_cost: float, cost_multiplier: float, max_level: int) -> bool:
    try:
        return math.isfinite(base_cost * cost_multiplier ** max_level)
    except OverflowError:
        return False


def _parse_upgrade_entry(resource: str, entry: Dict[str, Any]) -> UpgradeDefinition | None:
    base_cost = entry.get("base_cost")
    cost_multiplier = entry.get("cost_multiplier")
    effect_per_level = entry.get("effect_per_level")
    max_level = entry.get("max_level")

    if not _is_finite_number(base_cost) or base_cost <= 0:
        return None
    if not _is_finite_number(cost_multiplier) or cost_multiplier <= 1:
        return None
    # Consecutive costs must differ by at least one whole unit after flooring.
    if base_cost * (cost_multiplier - 1) < 1:
        return None
    if not _is_finite_number(effect_per_level) or effect_per_level < 0:
        return None
    if isinstance(max_level, bool) or not isinstance(max_level, int) or max_level < 0:
        return None
    if not _top_cost_is_finite(float(base_cost), float(cost_multiplier), max_level):
        return None

    return UpgradeDefinition(
        resource=resource,
        base_cost=float(base_cost),
        cost_multiplier=float(cost_multiplier),
        effect_per_level=float(effect_per_level),
        max_level=max_level,
    )


def load_upgrade_catalog(path: Path = UPGRADES_FILE) -> Dict[str, UpgradeDefinition]:
    """Load per-resource upgrade curves, keeping the default for any bad entry."""
    catalog = {resource: DEFAULT_UPGRADES[resource] for resource in RESOURCE_KINDS}
    if not path.exists():
        return catalog

    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return catalog

    if not isinstance(raw, dict):
        return catalog

    for resource, entry in raw.items():
        if resource not in catalog or not isinstance(entry, dict):
            continue
        upgrade = _parse_upgrade_entry(resource, entry)
        if upgrade is None:
            continue
        catalog[resource] = upgrade

    return catalog
