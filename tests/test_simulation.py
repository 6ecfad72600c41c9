"""Tests for the ResearchLab facade: roster, production, upgrades, offline catch-up, and saves."""
from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from config import (
    EVENT_LOG_LIMIT,
    IDLE,
    MAX_WORKERS,
    OFFLINE_CAP_SECONDS,
    RESOURCE_KINDS,
    STARTING_WORKERS,
    WALKING,
    WORKER_SPEED,
    WORKING,
)
from lab import AppliedStats, ResearchLab
from lab.behavior import station_anchor
from station_catalog import DEFAULT_STATIONS
from upgrade_catalog import DEFAULT_UPGRADES

GRAVITY_LAB = DEFAULT_STATIONS["gravity-lab"]


class _FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _by_shape(lab: ResearchLab, shape: str):
    return next(worker for worker in lab.workers if worker.shape == shape)


class TestRoster(unittest.TestCase):
    def setUp(self):
        self.clock = _FakeClock()
        self.lab = ResearchLab(clock=self.clock)

    def test_fresh_lab_defaults(self):
        self.assertEqual([w.shape for w in self.lab.workers], list(STARTING_WORKERS))
        self.assertTrue(all(w.state == IDLE for w in self.lab.workers))
        self.assertEqual(self.lab.ledger.resources, {r: 0.0 for r in RESOURCE_KINDS})
        self.assertEqual(self.lab.ledger.last_sync_at, 1_000.0)
        self.assertIn("Lab initialized", self.lab.event_log)

    def test_add_and_remove_worker(self):
        worker_id = self.lab.add_worker("einstein")
        self.assertIsNotNone(worker_id)
        self.assertEqual(self.lab.worker(worker_id).shape, "einstein")
        self.assertTrue(self.lab.remove_worker(worker_id))
        self.assertIsNone(self.lab.worker(worker_id))
        self.assertFalse(self.lab.remove_worker(worker_id))

    def test_unknown_shape_rejected(self):
        self.assertIsNone(self.lab.add_worker("hexagon"))
        self.assertEqual(len(self.lab.workers), len(STARTING_WORKERS))

    def test_roster_is_capped(self):
        while len(self.lab.workers) < MAX_WORKERS:
            self.assertIsNotNone(self.lab.add_worker("star"))
        self.assertIsNone(self.lab.add_worker("star"))
        self.assertEqual(len(self.lab.workers), MAX_WORKERS)
        self.assertTrue(self.lab.event_log[-1].startswith("Lab full"))

    def test_worker_ids_are_unique(self):
        for _ in range(MAX_WORKERS - len(STARTING_WORKERS)):
            self.lab.add_worker("diamond")
        ids = [worker.id for worker in self.lab.workers]
        self.assertEqual(len(ids), len(set(ids)))

    def test_assign_unknown_worker_fails(self):
        self.assertFalse(self.lab.assign_worker("worker-missing", "gravity-lab"))

    def test_assign_unknown_station_unassigns(self):
        worker = _by_shape(self.lab, "circle")
        self.lab.assign_worker(worker.id, "gravity-lab", teleport=True)
        self.assertTrue(self.lab.assign_worker(worker.id, "dark-matter-lab"))
        self.assertIsNone(worker.assigned_station)
        self.assertEqual(worker.state, IDLE)

    def test_station_occupancy(self):
        circle = _by_shape(self.lab, "circle")
        square = _by_shape(self.lab, "square")
        self.lab.assign_worker(circle.id, "gravity-lab", teleport=True)
        self.lab.assign_worker(square.id, "gravity-lab")
        self.assertEqual(len(self.lab.station_workers("gravity-lab")), 2)
        self.assertTrue(self.lab.is_station_active("gravity-lab"))
        self.assertFalse(self.lab.is_station_active("accelerator"))

    def test_event_log_is_capped(self):
        for _ in range(10):
            worker_id = self.lab.add_worker("pentagon")
            self.lab.remove_worker(worker_id)
        self.assertEqual(len(self.lab.event_log), EVENT_LOG_LIMIT)


class TestTickProduction(unittest.TestCase):
    def setUp(self):
        self.clock = _FakeClock()
        self.lab = ResearchLab(clock=self.clock)
        self.circle = _by_shape(self.lab, "circle")

    def test_circle_at_gravity_lab_single_tick(self):
        self.lab.assign_worker(self.circle.id, "gravity-lab", teleport=True)
        events = self.lab.tick(3.0)
        self.assertEqual(len(events), 1)
        self.assertEqual(self.lab.ledger.resources["gravity"], 300.0)
        self.assertEqual(self.circle.work_progress, 0.0)

    def test_circle_at_gravity_lab_quarter_second_ticks(self):
        self.lab.assign_worker(self.circle.id, "gravity-lab", teleport=True)
        for _ in range(11):
            self.lab.tick(0.25)
        self.assertEqual(self.lab.ledger.resources["gravity"], 0.0)
        self.lab.tick(0.25)
        self.assertEqual(self.lab.ledger.resources["gravity"], 300.0)
        self.assertEqual(self.circle.work_progress, 0.0)

    def test_walking_worker_eventually_produces(self):
        square = _by_shape(self.lab, "square")
        self.lab.assign_worker(square.id, "accelerator")
        self.assertEqual(square.state, WALKING)
        for _ in range(200):
            self.lab.tick(0.1)
        self.assertGreater(self.lab.ledger.resources["momentum"], 0.0)
        self.assertEqual(self.lab.ledger.resources["momentum"] % 200.0, 0.0)

    def test_reassign_mid_cycle_discards_progress(self):
        self.lab.assign_worker(self.circle.id, "gravity-lab", teleport=True)
        self.lab.tick(1.5)
        self.assertGreater(self.circle.work_progress, 0.0)
        self.lab.assign_worker(self.circle.id, "accelerator")
        self.assertEqual(self.circle.state, WALKING)
        self.assertEqual(self.circle.work_progress, 0.0)
        self.assertEqual(self.lab.ledger.resources["gravity"], 0.0)

    def test_idle_workers_produce_nothing(self):
        for _ in range(100):
            self.assertEqual(self.lab.tick(0.1), [])
        self.assertEqual(sum(self.lab.ledger.resources.values()), 0.0)

    def test_long_frame_credits_every_cycle_it_spans(self):
        self.lab.assign_worker(self.circle.id, "gravity-lab", teleport=True)
        self.clock.now += 600.0
        events = self.lab.tick(600.0)
        self.assertEqual(len(events), 200)
        self.assertEqual(self.lab.ledger.resources["gravity"], 200 * 300.0)

        report = self.lab.activate(now=self.clock.now)
        self.assertEqual(report.total, 0.0)
        self.assertEqual(self.lab.ledger.resources["gravity"], 200 * 300.0)

    def test_arrival_frame_credits_only_time_at_station(self):
        self.lab.assign_worker(self.circle.id, "gravity-lab")
        walk_time = self.circle.position.distance_to(station_anchor(GRAVITY_LAB)) / WORKER_SPEED
        self.lab.tick(3.0)
        self.assertEqual(self.circle.state, WORKING)
        self.assertEqual(self.lab.ledger.resources["gravity"], 0.0)
        self.assertAlmostEqual(self.circle.work_progress, (3.0 - walk_time) / 3.0)

        self.lab.tick(walk_time)
        self.assertEqual(self.lab.ledger.resources["gravity"], 300.0)

    def test_invalid_dt_is_ignored(self):
        self.lab.assign_worker(self.circle.id, "gravity-lab", teleport=True)
        for dt in (0.0, -1.0, float("nan"), float("inf")):
            self.assertEqual(self.lab.tick(dt), [])
        self.assertEqual(self.circle.work_progress, 0.0)

    def test_tick_stamps_sync_time(self):
        self.clock.now = 2_000.0
        self.lab.tick(0.1)
        self.assertEqual(self.lab.ledger.last_sync_at, 2_000.0)


class TestUpgrades(unittest.TestCase):
    def setUp(self):
        self.lab = ResearchLab(clock=_FakeClock())

    def test_upgrade_spends_and_raises_cost(self):
        self.lab.ledger.resources["gravity"] = 2_000.0
        self.assertEqual(self.lab.cost_of("gravity"), 1_000)
        self.assertTrue(self.lab.can_upgrade("gravity"))
        self.assertTrue(self.lab.upgrade("gravity"))
        self.assertEqual(self.lab.ledger.resources["gravity"], 1_000.0)
        self.assertEqual(self.lab.ledger.levels["gravity"], 1)
        self.assertEqual(self.lab.cost_of("gravity"), 1_350)

        self.assertFalse(self.lab.can_upgrade("gravity"))
        self.assertFalse(self.lab.upgrade("gravity"))
        self.assertEqual(self.lab.ledger.resources["gravity"], 1_000.0)

    def test_max_level_cannot_upgrade(self):
        self.lab.ledger.levels["momentum"] = DEFAULT_UPGRADES["momentum"].max_level
        self.lab.ledger.resources["momentum"] = 1e30
        self.assertTrue(self.lab.is_max_level("momentum"))
        self.assertFalse(self.lab.can_upgrade("momentum"))
        self.assertFalse(self.lab.upgrade("momentum"))

    def test_unknown_resource(self):
        self.assertEqual(self.lab.cost_of("charm"), 0)
        self.assertTrue(self.lab.is_max_level("charm"))
        self.assertFalse(self.lab.upgrade("charm"))

    def test_applied_stats(self):
        self.assertEqual(self.lab.get_applied_stats(), AppliedStats())
        self.lab.ledger.resources["gravity"] = 1_000.0
        self.lab.upgrade("gravity")
        self.assertAlmostEqual(self.lab.get_applied_stats().gravity_multiplier, 1.05)
        self.assertEqual(self.lab.get_applied_stats().momentum_multiplier, 1.0)


class TestActivate(unittest.TestCase):
    def setUp(self):
        self.clock = _FakeClock(1_000.0)
        self.lab = ResearchLab(clock=self.clock)
        self.square = _by_shape(self.lab, "square")
        self.lab.assign_worker(self.square.id, "accelerator", teleport=True)

    def test_one_cycle_at_boundary(self):
        report = self.lab.activate(now=1_002.5)
        self.assertEqual(report.production["momentum"], 200.0)
        self.assertEqual(self.lab.ledger.resources["momentum"], 200.0)
        self.assertEqual(self.lab.ledger.last_sync_at, 1_002.5)

    def test_second_activation_grants_nothing(self):
        self.lab.activate(now=1_010.0)
        balance = self.lab.ledger.resources["momentum"]
        report = self.lab.activate(now=1_010.0)
        self.assertEqual(report.total, 0.0)
        self.assertEqual(self.lab.ledger.resources["momentum"], balance)

    def test_clock_skew_grants_nothing(self):
        report = self.lab.activate(now=900.0)
        self.assertEqual(report.total, 0.0)
        self.assertEqual(report.elapsed_seconds, 0.0)
        self.assertEqual(self.lab.ledger.last_sync_at, 900.0)

    def test_long_absence_is_capped(self):
        report = self.lab.activate(now=1_000.0 + 48 * 3600)
        self.assertEqual(report.elapsed_seconds, OFFLINE_CAP_SECONDS)
        self.assertEqual(report.production["momentum"], (OFFLINE_CAP_SECONDS // 2.5) * 200.0)
        self.assertTrue(report.is_significant)
        self.assertTrue(self.lab.event_log[-1].startswith("Welcome back"))

    def test_uses_clock_when_now_omitted(self):
        self.clock.now = 1_005.0
        report = self.lab.activate()
        self.assertEqual(report.production["momentum"], 400.0)

    def test_live_time_is_not_granted_again(self):
        self.clock.now = 1_003.0
        self.lab.tick(3.0)
        report = self.lab.activate(now=1_003.0)
        self.assertEqual(report.total, 0.0)

    def test_deactivate_stamps_sync_time(self):
        self.lab.deactivate(now=5_000.0)
        self.assertEqual(self.lab.ledger.last_sync_at, 5_000.0)


class TestPersistence(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "lab.json"
        self.clock = _FakeClock()

    def test_mutations_are_written_through(self):
        lab = ResearchLab(clock=self.clock, save_path=self.path)
        worker_id = lab.add_worker("star")
        saved = json.loads(self.path.read_text())
        self.assertIn(worker_id, [worker["id"] for worker in saved["workers"]])

    def test_load_restores_ledger(self):
        lab = ResearchLab(clock=self.clock, save_path=self.path)
        circle = _by_shape(lab, "circle")
        lab.assign_worker(circle.id, "gravity-lab", teleport=True)
        lab.tick(3.0)

        restored = ResearchLab.load(self.path, clock=self.clock)
        self.assertEqual(restored.ledger, lab.ledger)
        self.assertEqual(restored.event_log[-1], "Lab loaded (2 workers)")

    def test_corrupt_save_starts_fresh(self):
        self.path.write_text("{not json")
        lab = ResearchLab.load(self.path, clock=self.clock)
        self.assertEqual(len(lab.workers), len(STARTING_WORKERS))
        self.assertIn("starting fresh", lab.event_log[-1])

    def test_save_failure_is_logged(self):
        lab = ResearchLab(clock=self.clock)
        self.assertFalse(lab.save(Path(self._tmp.name) / "missing" / "lab.json"))
        self.assertTrue(lab.event_log[-1].startswith("Save failed"))

    def test_reset_restores_defaults(self):
        lab = ResearchLab(clock=self.clock, save_path=self.path)
        lab.ledger.resources["gravity"] = 5_000.0
        lab.upgrade("gravity")
        lab.add_worker("shadow")
        lab.reset()
        self.assertEqual(lab.ledger.resources, {r: 0.0 for r in RESOURCE_KINDS})
        self.assertEqual(lab.ledger.levels, {r: 0 for r in RESOURCE_KINDS})
        self.assertEqual(len(lab.workers), len(STARTING_WORKERS))
        self.assertEqual(json.loads(self.path.read_text())["resources"]["gravity"], 0.0)


if __name__ == "__main__":
    unittest.main()
