"""Upgrade purchases and the applied-stats projection consumed by minigames."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict

from config import RESOURCE_KINDS
from upgrade_catalog import UpgradeDefinition


def upgrade_cost(definition: UpgradeDefinition, level: int) -> int:
    """Price of going from ``level`` to ``level + 1``."""
    return math.floor(definition.base_cost * definition.cost_multiplier ** level)


def upgrade_effect(definition: UpgradeDefinition, level: int) -> float:
    # Linear: each level adds the same amount, no compounding.
    return level * definition.effect_per_level


def try_upgrade(
    resources: Dict[str, float],
    levels: Dict[str, int],
    resource: str,
    upgrades: Dict[str, UpgradeDefinition],
) -> bool:
    definition = upgrades.get(resource)
    if definition is None or resource not in levels:
        return False

    level = levels[resource]
    if level >= definition.max_level:
        return False

    cost = upgrade_cost(definition, level)
    if resources.get(resource, 0.0) < cost:
        return False

    resources[resource] -= cost
    levels[resource] = level + 1
    return True


@dataclass(frozen=True)
class AppliedStats:
    """Snapshot of upgrade multipliers.

    Consumers read this once when their run starts and keep it; the lab never
    pushes later changes into a snapshot that has already been handed out.
    """

    gravity_multiplier: float = 1.0
    momentum_multiplier: float = 1.0
    elasticity_multiplier: float = 1.0
    thermodynamics_multiplier: float = 1.0

    def multiplier(self, resource: str) -> float:
        if resource not in RESOURCE_KINDS:
            return 1.0
        return float(getattr(self, f"{resource}_multiplier"))

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def project_applied_stats(levels: Dict[str, int], upgrades: Dict[str, UpgradeDefinition]) -> AppliedStats:
    multipliers = {
        f"{resource}_multiplier": 1.0 + upgrade_effect(upgrades[resource], levels.get(resource, 0))
        for resource in RESOURCE_KINDS
    }
    return AppliedStats(**multipliers)
