# agent.py
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from errors import ConfigError, StateError
from routes import Route

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


@dataclass
class AgentState:
    id: int
    group_id: str
    current_coordinate: Optional[Coord] = None  # last waypoint reached
    current_label: Optional[str] = None  # label of that waypoint, if it has one
    sticky_terminal: bool = False  # left the building for good
    route: Optional[Route] = None  # own copy of the group route
    route_index: int = 0  # which of the group's routes was handed out


@dataclass
class ScenarioContext:
    """
    Scenario-wide mutable state used while replicating agents.

    Agents are replicated one after another during scenario setup, so the
    cursors need no locking.
    """

    rng: random.Random = field(default_factory=random.Random)
    route_cursors: Dict[str, int] = field(default_factory=dict)
    _next_id: int = 0

    def next_agent_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id


class GroupPrototype:
    """
    Hands out agent states for one group.

    Every replica gets its own copy of the group route at the group cursor
    (round-robin over ``routes``) and a start stop: ``first_stop`` if it is
    >= 0, otherwise a random one.
    """

    def __init__(self, group_id: str, routes: List[Route], first_stop: int = -1):
        if not routes:
            raise StateError(f"Group {group_id!r} has no routes to hand out")
        self.group_id = group_id
        self.routes = list(routes)
        self.first_stop = first_stop
        if first_stop >= 0:
            shortest = min(r.n_stops for r in self.routes)
            if first_stop >= shortest:
                raise ConfigError(
                    f"Too high first stop's index ({first_stop}) for route with only "
                    f"{shortest} stops"
                )

    def replicate(self, context: ScenarioContext) -> AgentState:
        index = context.route_cursors.get(self.group_id, 0)
        route = self.routes[index].replicate()

        if self.first_stop < 0:
            # the last stop is never a starting stop
            route.set_next_index(context.rng.randrange(max(1, route.n_stops - 1)))
        else:
            route.set_next_index(self.first_stop)

        context.route_cursors[self.group_id] = (index + 1) % len(self.routes)

        state = AgentState(
            id=context.next_agent_id(),
            group_id=self.group_id,
            route=route,
            route_index=index,
        )
        logger.debug("Replicated agent %d of %s on route %d", state.id, self.group_id, index)
        return state
