# movement.py
import logging
import math
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from agent import AgentState
from errors import StateError
from locations import LocationRegistry
from path_adapter import PathRequestAdapter
from schedule_policy import ScheduleDrivenDestinationPolicy

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]
Period = Tuple[float, float]


@dataclass
class Path:
    waypoints: List[Coord] = field(default_factory=list)
    speed: float = 0.0  # m/s


class ActivePeriods:
    """Time periods in which a movement model produces paths (None = always)."""

    def __init__(self, periods: Optional[Sequence[Period]] = None):
        self.periods = list(periods) if periods else None

    def is_active(self, now: float) -> bool:
        if self.periods is None:
            return True
        return any(start <= now <= end for start, end in self.periods)

    def next_path_available(self, now: float) -> float:
        if self.is_active(now):
            return now
        upcoming = [start for start, _ in self.periods if start > now]
        return min(upcoming) if upcoming else math.inf


class ScheduledMovement(ActivePeriods):
    """
    Movement of one agent: asks the destination policy where to go, the path
    adapter how to get there, and moves the agent state along.
    """

    def __init__(
        self,
        state: AgentState,
        policy: ScheduleDrivenDestinationPolicy,
        adapter: PathRequestAdapter,
        speed: Tuple[float, float] = (0.5, 1.5),
        active_periods: Optional[Sequence[Period]] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(active_periods)
        self.state = state
        self.policy = policy
        self.adapter = adapter
        self.speed = speed
        self.rng = rng or random.Random()

    @property
    def registry(self) -> LocationRegistry:
        return self.adapter.registry

    def initial_location(self) -> Coord:
        state = self.state
        if state.current_coordinate is not None:
            return state.current_coordinate

        label = self.policy.initial_label()
        if label is not None:
            coord = self.registry.resolve(label)
        elif state.route is not None:
            coord = state.route.next_stop()
            label = self.registry.label_at(coord)
        else:
            raise StateError(f"Agent {state.id} has neither an initial table nor a route")

        state.current_coordinate = coord
        state.current_label = label
        return coord

    def generate_speed(self) -> float:
        low, high = self.speed
        return self.rng.uniform(low, high)

    def get_path(self, now: float) -> Path:
        state = self.state
        if state.current_coordinate is None:
            raise StateError(f"Agent {state.id} asked for a path before its initial location")

        label, stays = self.policy.decide(now, state)
        if stays or (label == state.current_label and not self.registry.is_composite(label)):
            waypoints = [state.current_coordinate]
        else:
            # set labels draw a new point even when the label is unchanged
            waypoints = self.adapter.route(state.current_coordinate, label)

        state.current_coordinate = waypoints[-1]
        state.current_label = label
        return Path(waypoints, self.generate_speed())


class StaticRouterMovement(ActivePeriods):
    """A fixed access point: it sits at ``coordinate`` and never moves."""

    def __init__(self, coordinate, active_periods: Optional[Sequence[Period]] = None):
        super().__init__(active_periods)
        self.coordinate: Coord = (float(coordinate[0]), float(coordinate[1]))

    def initial_location(self) -> Coord:
        return self.coordinate

    def get_path(self, now: float) -> Path:
        return Path()
