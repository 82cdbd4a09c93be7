# path_adapter.py
import logging
from typing import List, Tuple

from locations import LocationRegistry

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


class PathRequestAdapter:
    """
    Turns "go from here to <label>" into a waypoint list.

    ``path_finder`` needs ``nearest_node(coord)`` and
    ``shortest_path(node_a, node_b)``; the latter raises ``UnreachableError``
    when there is no path, which is left to propagate.
    """

    def __init__(self, registry: LocationRegistry, path_finder):
        self.registry = registry
        self.path_finder = path_finder

    def route(self, from_coordinate, destination_label: str) -> List[Coord]:
        target = self.registry.resolve(destination_label)
        return self.route_to(from_coordinate, target)

    def route_to(self, from_coordinate, target) -> List[Coord]:
        start = self.path_finder.nearest_node(tuple(from_coordinate))
        end = self.path_finder.nearest_node(tuple(target))
        nodes = self.path_finder.shortest_path(start, end)
        logger.debug("Path %s -> %s: %d waypoints", start, end, len(nodes))
        return [tuple(n) for n in nodes]
