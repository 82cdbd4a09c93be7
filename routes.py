# routes.py
import logging
import os
from typing import Dict, List, Sequence, Tuple

import geopandas as gpd
from shapely.geometry import LineString, MultiLineString, Point

from errors import ConfigError, StateError

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]

CIRCULAR = 1
PING_PONG = 2
ROUTE_TYPES = (CIRCULAR, PING_PONG)


class Route:
    """
    Ordered list of stops an agent can cycle through.

    Circular routes start again from the first stop after the last one,
    ping-pong routes turn around at either end.
    """

    def __init__(self, stops: Sequence[Coord], route_type: int = CIRCULAR):
        if route_type not in ROUTE_TYPES:
            raise ConfigError(f"Unknown route type {route_type}")
        if not stops:
            raise ConfigError("A route needs at least one stop")
        self.stops: List[Coord] = [tuple(map(float, s)) for s in stops]
        self.route_type = route_type
        self.next_index = 0
        self._direction = 1

    @property
    def n_stops(self) -> int:
        return len(self.stops)

    def replicate(self) -> "Route":
        # stops are shared, the cursor is not
        r = Route.__new__(Route)
        r.stops = self.stops
        r.route_type = self.route_type
        r.next_index = 0
        r._direction = 1
        return r

    def set_next_index(self, index: int):
        if not 0 <= index < self.n_stops:
            raise StateError(f"Stop index {index} outside route with {self.n_stops} stops")
        self.next_index = index

    def next_stop(self) -> Coord:
        stop = self.stops[self.next_index]
        if self.n_stops == 1:
            return stop
        if self.route_type == CIRCULAR:
            self.next_index = (self.next_index + 1) % self.n_stops
        else:
            if not 0 <= self.next_index + self._direction < self.n_stops:
                self._direction = -self._direction
            self.next_index += self._direction
        return stop

    def __repr__(self):
        return f"Route({self.n_stops} stops, type={self.route_type})"


def _geometry_coords(geom) -> List[Coord]:
    if isinstance(geom, Point):
        return [(geom.x, geom.y)]
    if isinstance(geom, LineString):
        return list(geom.coords)
    if isinstance(geom, MultiLineString):
        coords: List[Coord] = []
        for part in geom.geoms:
            for c in part.coords:
                if not coords or coords[-1] != c:
                    coords.append(c)
        return coords
    raise ConfigError(f"Unsupported geometry in route file: {geom.geom_type}")


def read_wkt(path) -> gpd.GeoSeries:
    """Read a file holding one WKT geometry per line."""
    with open(path) as f:
        lines = [ln.strip() for ln in f if ln.strip() and not ln.lstrip().startswith("#")]
    if not lines:
        raise ConfigError(f"No geometries found in {path}")
    try:
        return gpd.GeoSeries.from_wkt(lines)
    except Exception as e:
        # shapely reports parse failures with its own exception types
        raise ConfigError(f"Malformed WKT in {path}: {e}") from e


def read_routes(path, route_type: int = CIRCULAR) -> List[Route]:
    if route_type not in ROUTE_TYPES:
        raise ConfigError(f"Unknown route type {route_type} for {path}")
    routes = [Route(_geometry_coords(g), route_type) for g in read_wkt(path)]
    logger.debug("Read %d routes from %s", len(routes), path)
    return routes


def read_map_lines(paths) -> List[LineString]:
    """Read map files into line strings (points and multi lines are flattened)."""
    lines: List[LineString] = []
    for path in paths:
        for geom in read_wkt(path):
            if isinstance(geom, MultiLineString):
                lines.extend(geom.geoms)
            elif isinstance(geom, LineString):
                lines.append(geom)
            else:
                raise ConfigError(f"Map file {path} contains a {geom.geom_type}")
    return lines


class FileRouteSource:
    """Resolves route source ids to WKT files under ``base_dir``, caching reads."""

    def __init__(self, base_dir="."):
        self.base_dir = base_dir
        self._cache: Dict[Tuple[str, int], List[Route]] = {}

    def path_for(self, source_id: str) -> str:
        if os.path.isabs(source_id):
            return source_id
        return os.path.join(self.base_dir, source_id)

    def routes(self, source_id: str, kind: int = CIRCULAR) -> List[Route]:
        key = (source_id, kind)
        if key not in self._cache:
            path = self.path_for(source_id)
            if not os.path.exists(path):
                raise ConfigError(f"Route file not found: {path}")
            self._cache[key] = read_routes(path, kind)
        return self._cache[key]
