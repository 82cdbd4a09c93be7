# scenario.py
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from agent import AgentState, GroupPrototype, ScenarioContext
from errors import ConfigError, UnknownLabelError
from locations import DEFAULT_MANIFEST, LocationRegistry
from movement import ScheduledMovement, StaticRouterMovement
from network_graph import GraphPathFinder, build_graph
from path_adapter import PathRequestAdapter
from routes import FileRouteSource, read_map_lines
from schedule_policy import ScheduleDrivenDestinationPolicy
from schedules import get_schedule
from settings import (
    COORD_S,
    FIRST_STOP_S,
    ROUTE_FILE_S,
    ROUTE_TYPE_S,
    SCHEDULE_S,
    Settings,
    read_active_periods,
    read_speed,
)

logger = logging.getLogger(__name__)

SCENARIO_NS = "Scenario"
SCHEDULED = "scheduled"
STATIC = "static"


@dataclass
class Host:
    name: str
    group: str
    movement: Any

    @property
    def is_static(self) -> bool:
        return isinstance(self.movement, StaticRouterMovement)


class Scenario:
    """
    Everything a run needs, built once from the settings: the location
    registry, the building graph and the hosts of every group.
    """

    def __init__(
        self,
        settings: Settings,
        registry: LocationRegistry,
        adapter: PathRequestAdapter,
        route_source: FileRouteSource,
        context: ScenarioContext,
    ):
        self.settings = settings
        self.registry = registry
        self.adapter = adapter
        self.route_source = route_source
        self.context = context
        self._policies: Dict[str, ScheduleDrivenDestinationPolicy] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "Scenario":
        sc = settings.for_group(SCENARIO_NS)
        seed = sc.get("seed", None)
        rng = random.Random(seed)
        route_source = FileRouteSource(sc.get("routeDir", "."))

        map_files = sc.get("mapFiles")
        if isinstance(map_files, str):
            map_files = [map_files]
        G = build_graph(read_map_lines([route_source.path_for(p) for p in map_files]))

        registry = LocationRegistry.from_manifest(
            sc.get("locations", DEFAULT_MANIFEST), route_source, rng=rng
        )
        adapter = PathRequestAdapter(registry, GraphPathFinder(G))
        return cls(settings, registry, adapter, route_source, ScenarioContext(rng=rng))

    def policy_for(self, gs: Settings) -> ScheduleDrivenDestinationPolicy:
        schedule = gs.get(SCHEDULE_S)
        key = schedule if isinstance(schedule, str) else gs.namespace
        if key in self._policies:
            return self._policies[key]

        document = get_schedule(schedule) if isinstance(schedule, str) else schedule
        if not isinstance(document, dict):
            raise ConfigError(f"Schedule of {gs.namespace!r} must be a name or an object")
        policy = ScheduleDrivenDestinationPolicy.from_config(document, rng=self.context.rng)
        self._policies[key] = policy
        return policy

    def _check_labels(self, group: str, policy: ScheduleDrivenDestinationPolicy):
        missing = sorted(x for x in policy.referenced_labels() if x not in self.registry)
        if missing:
            logger.error("Group %s uses unknown labels: %s", group, ", ".join(missing))
            raise UnknownLabelError(missing[0])

    def _build_scheduled(self, name: str, gs: Settings, group_id: str, n_hosts: int) -> List[Host]:
        routes = None
        if gs.contains(ROUTE_FILE_S):
            routes = self.route_source.routes(gs.get(ROUTE_FILE_S), gs.get_int(ROUTE_TYPE_S, 1))

        if gs.contains("stopsLabel"):
            if not routes:
                raise ConfigError(f"Group {name!r} sets stopsLabel without a {ROUTE_FILE_S}")
            label = gs.get("stopsLabel")
            if label not in self.registry:
                self.registry.register_set(label, [s for r in routes for s in r.stops])

        policy = self.policy_for(gs)
        self._check_labels(name, policy)

        prototype = None
        if routes:
            prototype = GroupPrototype(group_id, routes, gs.get_int(FIRST_STOP_S, -1))
        speed = read_speed(gs)
        periods = read_active_periods(gs)

        hosts = []
        for _ in range(n_hosts):
            if prototype is not None:
                state = prototype.replicate(self.context)
            else:
                state = AgentState(id=self.context.next_agent_id(), group_id=group_id)
            movement = ScheduledMovement(
                state, policy, self.adapter, speed=speed,
                active_periods=periods, rng=self.context.rng,
            )
            hosts.append(Host(f"{group_id}{state.id}", name, movement))
        return hosts

    def _build_static(self, name: str, gs: Settings, group_id: str, n_hosts: int) -> List[Host]:
        coord = gs.get_csv_floats(COORD_S, 2)
        periods = read_active_periods(gs)
        return [
            Host(f"{group_id}{self.context.next_agent_id()}", name,
                 StaticRouterMovement(coord, periods))
            for _ in range(n_hosts)
        ]

    def build_group(self, name: str) -> List[Host]:
        gs = self.settings.for_group(name)
        model = gs.get("movementModel", SCHEDULED)
        group_id = gs.get("groupId", name)
        n_hosts = gs.get_int("nrofHosts", 1)
        if n_hosts < 0:
            raise ConfigError(f"Group {name!r} has a negative nrofHosts")

        if model == SCHEDULED:
            hosts = self._build_scheduled(name, gs, group_id, n_hosts)
        elif model == STATIC:
            hosts = self._build_static(name, gs, group_id, n_hosts)
        else:
            raise ConfigError(f"Unknown movement model {model!r} for group {name!r}")
        logger.info("Group %s: %d hosts (%s)", name, len(hosts), model)
        return hosts

    def build_hosts(self, groups: Optional[List[str]] = None) -> List[Host]:
        if groups is None:
            groups = self.settings.for_group(SCENARIO_NS).get("groups")
        hosts: List[Host] = []
        for name in groups:
            hosts.extend(self.build_group(name))
        return hosts
