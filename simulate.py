# simulate.py
import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pandas as pd

from connectivity_report import ConnectivityEventAggregator
from scenario import Host

Coord = Tuple[float, float]


@dataclass
class Walker:
    host: Host
    position: Optional[Coord] = None
    waypoints: List[Coord] = field(default_factory=list)  # still to visit
    speed: float = 0.0
    next_path_time: float = 0.0  # earliest time to ask for a new path
    active: bool = True


class BuildingSim:
    """
    Fixed time step driver for a building scenario.

    Every step moves the agents along their paths, asks for a new path when
    one is finished (after a random wait), and tells the reports about
    agents coming into or going out of range of an access point.
    """

    def __init__(
        self,
        hosts: Sequence[Host],
        reports: Sequence[ConnectivityEventAggregator] = (),
        transmit_range: float = 10.0,
        time_step: float = 1.0,
        wait_time: Tuple[float, float] = (0.0, 120.0),
        record_interval: Optional[float] = None,
        random_seed: Optional[int] = None,
    ):
        if time_step <= 0:
            raise ValueError("time_step must be positive")
        self.rng = random.Random(random_seed)
        self.reports = list(reports)
        self.transmit_range = float(transmit_range)
        self.dt = float(time_step)
        self.wait_time = wait_time
        self.record_interval = record_interval
        self.t = 0.0

        self.walkers: List[Walker] = [Walker(h) for h in hosts]
        self.access_points = [w for w in self.walkers if w.host.is_static]
        self.mobiles = [w for w in self.walkers if not w.host.is_static]
        self.connections: Set[Tuple[str, str]] = set()
        self.records: List[Dict] = []
        self._last_record = -math.inf

        for w in self.walkers:
            w.position = w.host.movement.initial_location()

    def clock(self) -> float:
        return self.t

    # -----------------------
    # Movement
    # -----------------------
    def _move(self, w: Walker):
        movement = w.host.movement
        w.active = movement.is_active(self.t)
        if not w.active:
            return
        if not w.waypoints:
            if self.t < w.next_path_time:
                return
            path = movement.get_path(self.t)
            w.waypoints = list(path.waypoints)
            w.speed = path.speed
            if w.waypoints and w.waypoints[0] == w.position:
                w.waypoints.pop(0)
            if not w.waypoints:
                w.next_path_time = self.t + self.rng.uniform(*self.wait_time)
                return

        budget = w.speed * self.dt
        while budget > 0 and w.waypoints:
            nx_, ny_ = w.waypoints[0]
            x, y = w.position
            d = math.hypot(nx_ - x, ny_ - y)
            if d <= budget:
                w.position = (nx_, ny_)
                w.waypoints.pop(0)
                budget -= d
            else:
                frac = budget / d
                w.position = (x + frac * (nx_ - x), y + frac * (ny_ - y))
                budget = 0
        if not w.waypoints:
            w.next_path_time = self.t + self.rng.uniform(*self.wait_time)

    # -----------------------
    # Contacts
    # -----------------------
    def _contacts(self) -> Set[Tuple[str, str]]:
        now = set()
        for ap in self.access_points:
            if not ap.active:
                continue
            ax, ay = ap.position
            for m in self.mobiles:
                if not m.active:
                    continue
                mx, my = m.position
                if math.hypot(mx - ax, my - ay) <= self.transmit_range:
                    now.add((m.host.name, ap.host.name))
        return now

    def _update_connections(self):
        current = self._contacts()
        # downs first so that a host never looks connected twice
        for mobile, ap in sorted(self.connections - current):
            for r in self.reports:
                r.hosts_disconnected(mobile, ap)
        for mobile, ap in sorted(current - self.connections):
            for r in self.reports:
                r.hosts_connected(mobile, ap)
        self.connections = current

    def step(self):
        for ap in self.access_points:
            ap.active = ap.host.movement.is_active(self.t)
        for w in self.mobiles:
            self._move(w)
        self._update_connections()
        for r in self.reports:
            r.update(self.t)
        if self.record_interval is not None and self.t - self._last_record >= self.record_interval:
            self._record_all()
            self._last_record = self.t

    def run(self, end_time: float, verbose: bool = True):
        steps = 0
        while self.t <= end_time:
            self.step()
            self.t += self.dt
            steps += 1
            if verbose and steps % max(1, int(3600 / self.dt)) == 0:
                print(f"time={self.t:.0f}s  connected={len(self.connections)}")
        for r in self.reports:
            r.done()
        if verbose:
            print(f"Simulation finished at t={self.t:.1f}s")

    # -----------------------
    # Recording / Exporting
    # -----------------------
    def _record_all(self):
        for w in self.walkers:
            x, y = w.position
            state = getattr(w.host.movement, "state", None)
            self.records.append(
                {
                    "host": w.host.name,
                    "time": float(self.t),
                    "x": float(x),
                    "y": float(y),
                    "label": getattr(state, "current_label", None),
                    "active": w.active,
                }
            )

    def export_records_to_csv(self, path="host_positions.csv") -> pd.DataFrame:
        df = pd.DataFrame(self.records)
        if df.empty:
            print("No records to export.")
            return df
        df.to_csv(path, index=False)
        print(f"Exported {len(df)} records to {path}")
        return df
