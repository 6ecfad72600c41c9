from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

try:
    import pygame  # type: ignore
except Exception:
    pygame = None

from config import RESOURCE_KINDS, SAVE_FILE, WORKER_SHAPES, WORKING
from lab import ResearchLab


class FrameClock:
    """Wall clock that advances only when the headless runner says so."""

    def __init__(self, start: float) -> None:
        self.now = start

    def advance(self, dt: float) -> None:
        self.now += dt

    def __call__(self) -> float:
        return self.now


def open_lab(load_save: bool, save_file: Path, seed: int, clock=time.time) -> ResearchLab:
    if load_save:
        return ResearchLab.load(save_file, seed=seed, clock=clock)
    return ResearchLab(seed=seed, clock=clock, save_path=save_file)


def run_headless(
    ticks: int,
    dt: float,
    load_save: bool,
    *,
    seed: int = 7,
    save_file: Path = SAVE_FILE,
    assign_all: bool = False,
) -> ResearchLab:
    clock = FrameClock(time.time())
    lab = open_lab(load_save, save_file, seed, clock)
    report = lab.activate()

    if assign_all:
        station_keys = list(lab.stations)
        for idx, worker in enumerate(lab.workers):
            lab.assign_worker(worker.id, station_keys[idx % len(station_keys)])

    produced = 0
    for _ in range(ticks):
        clock.advance(dt)
        produced += len(lab.tick(dt))

    lab.deactivate()
    lab.save()
    balances = ",".join(f"{r[:4]}={lab.ledger.resources[r]:.0f}" for r in RESOURCE_KINDS)
    levels = ",".join(f"{r[:4]}={lab.ledger.levels[r]}" for r in RESOURCE_KINDS)
    states = ",".join(f"{w.shape}:{w.state}" for w in lab.workers)
    print(
        f"headless_done t={ticks * dt:.1f} workers={len(lab.workers)} cycles={produced} "
        f"offline[+{report.total:.0f} over {report.elapsed_seconds:.0f}s] "
        f"balances[{balances}] levels[{levels}] states[{states}]"
    )
    return lab


class LabConsole:
    """Developer console: drives the lab frame loop and shows its ledger as text."""

    def __init__(self, lab: ResearchLab):
        if pygame is None:
            raise RuntimeError("pygame is required for the lab console. Relaunch with --headless.")
        try:
            pygame.init()
            pygame.display.init()
        except pygame.error as exc:
            raise RuntimeError(f"Display subsystem failed to start ({exc}). Relaunch with --headless.") from exc
        if not pygame.display.get_init():
            raise RuntimeError("Display subsystem is unavailable. Relaunch with --headless.")

        self.lab = lab
        self.screen = pygame.display.set_mode((720, 520))
        pygame.display.set_caption("Wobble Research Lab")
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("arial", 22)
        self.small = pygame.font.SysFont("arial", 17)
        self.running = True
        self.selected = 0

        self.palette = {
            "bg": (12, 15, 24),
            "text": (230, 236, 248),
            "muted": (161, 177, 205),
            "accent": (255, 140, 66),
            "ok": (106, 212, 148),
        }

    def _selected_worker_id(self) -> Optional[str]:
        workers = self.lab.workers
        if not workers:
            return None
        self.selected %= len(workers)
        return workers[self.selected].id

    def _assign_to_next_station(self) -> None:
        worker_id = self._selected_worker_id()
        if worker_id is None:
            return
        worker = self.lab.worker(worker_id)
        keys = list(self.lab.stations)
        current = keys.index(worker.assigned_station) if worker and worker.assigned_station in keys else -1
        self.lab.assign_worker(worker_id, keys[(current + 1) % len(keys)])

    def handle_input(self) -> None:
        upgrade_keys = {pygame.K_1: 0, pygame.K_2: 1, pygame.K_3: 2, pygame.K_4: 3}
        for ev in pygame.event.get():
            if ev.type == pygame.QUIT:
                self.running = False
            if ev.type != pygame.KEYDOWN:
                continue
            if ev.key in upgrade_keys:
                self.lab.upgrade(RESOURCE_KINDS[upgrade_keys[ev.key]])
            elif ev.key == pygame.K_a:
                self.lab.add_worker(WORKER_SHAPES[len(self.lab.workers) % len(WORKER_SHAPES)])
            elif ev.key == pygame.K_x:
                worker_id = self._selected_worker_id()
                if worker_id is not None:
                    self.lab.remove_worker(worker_id)
            elif ev.key == pygame.K_TAB:
                self.selected += 1
            elif ev.key == pygame.K_n:
                self._assign_to_next_station()
            elif ev.key == pygame.K_u:
                worker_id = self._selected_worker_id()
                if worker_id is not None:
                    self.lab.assign_worker(worker_id, None)
            elif ev.key == pygame.K_s:
                self.lab.save()

    def _text(self, text: str, x: int, y: int, color: str = "text", big: bool = False) -> None:
        font = self.font if big else self.small
        self.screen.blit(font.render(text, True, self.palette[color]), (x, y))

    def draw(self) -> None:
        self.screen.fill(self.palette["bg"])
        self._text("Wobble Research Lab", 16, 12, "accent", big=True)

        y = 50
        stats = self.lab.get_applied_stats()
        for idx, resource in enumerate(RESOURCE_KINDS, start=1):
            level = self.lab.ledger.levels[resource]
            cost = "MAX" if self.lab.is_max_level(resource) else str(self.lab.cost_of(resource))
            color = "ok" if self.lab.can_upgrade(resource) else "text"
            self._text(
                f"[{idx}] {resource:<15} {self.lab.ledger.resources[resource]:>12.0f}  "
                f"lvl {level:>3}  next {cost:>10}  x{stats.multiplier(resource):.2f}",
                16,
                y,
                color,
            )
            y += 24

        y += 12
        selected_id = self._selected_worker_id()
        for worker in self.lab.workers:
            marker = ">" if worker.id == selected_id else " "
            station = worker.assigned_station or "-"
            line = f"{marker} {worker.shape:<9} {worker.state:<13} {station:<19}"
            if worker.state == WORKING:
                line += f" {worker.work_progress * 100:5.1f}%"
            self._text(line, 16, y)
            y += 22

        y = 400
        for message in self.lab.event_log[-4:]:
            self._text(message, 16, y, "muted")
            y += 20
        self._text("1-4 upgrade | A add | X remove | TAB select | N next station | U unassign | S save", 16, 490, "muted")
        pygame.display.flip()

    def run(self) -> None:
        self.lab.activate()
        while self.running:
            dt = self.clock.tick(60) / 1000.0
            self.handle_input()
            self.lab.tick(dt)
            self.draw()
        self.lab.deactivate()
        self.lab.save()
        pygame.quit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Wobble research lab")
    parser.add_argument("--headless", action="store_true", help="run the lab without graphics")
    parser.add_argument("--ticks", type=int, default=600, help="headless ticks to run")
    parser.add_argument("--dt", type=float, default=0.1, help="headless timestep")
    parser.add_argument("--seed", type=int, default=7, help="seed for worker behaviour")
    parser.add_argument("--load", action="store_true", help="load the saved lab")
    parser.add_argument("--save-file", type=Path, default=SAVE_FILE, help="lab save location")
    parser.add_argument("--assign-all", action="store_true", help="headless: send every worker to a station")
    args = parser.parse_args()

    if args.headless:
        run_headless(
            args.ticks,
            args.dt,
            args.load,
            seed=args.seed,
            save_file=args.save_file,
            assign_all=args.assign_all,
        )
        return

    lab = open_lab(args.load, args.save_file, args.seed)
    try:
        console = LabConsole(lab)
    except RuntimeError as exc:
        print(f"Startup error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    console.run()


if __name__ == "__main__":
    main()
