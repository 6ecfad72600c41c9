"""Wobble research lab package.

Public API:
    from lab import ResearchLab, Ledger, Worker, AppliedStats, OfflineReport
"""
from lab.economy import AppliedStats
from lab.entities import Position, ProductionEvent, Worker
from lab.ledger import Ledger
from lab.production import OfflineReport
from lab.simulation import ResearchLab

__all__ = [
    "AppliedStats",
    "Ledger",
    "OfflineReport",
    "Position",
    "ProductionEvent",
    "ResearchLab",
    "Worker",
]
