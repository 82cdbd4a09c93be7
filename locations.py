# locations.py
"""
Semantic place labels of a building ("entranceN", "library", "office3", ...)
and the coordinates they stand for.

A label is either bound to one point, or to a *set* of equivalent points
(e.g. all the seats of the open study area). Resolving a set label draws one
of its points uniformly at random on every call, so ``resolve`` is not
idempotent for those labels.
"""
import logging
import random
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from errors import ConfigError, DuplicateLabelError, UnknownLabelError

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


# Campus building: points of interest are the end (or start) points of the
# walking routes drawn from the north entrance.
DEFAULT_MANIFEST: List[Dict[str, Any]] = [
    {"label": "cafeteria", "source": "cafeteriaN.wkt", "pick": "last"},
    {"label": "HS1", "source": "HS1_N.wkt", "pick": "last"},
    {"label": "HS2", "source": "HS2_N.wkt", "pick": "last"},
    {"label": "HS3", "source": "HS3_N.wkt", "pick": "last"},
    {"label": "tutorial1", "source": "tutorial1N.wkt", "pick": "last"},
    {"label": "tutorial2", "source": "tutorial2N.wkt", "pick": "last"},
    {"label": "tutorial3", "source": "tutorial3N.wkt", "pick": "last"},
    {"label": "tutorial4", "source": "tutorial4N.wkt", "pick": "last"},
    {"label": "computerlab", "source": "computerlabN.wkt", "pick": "last"},
    {"label": "library", "source": "libraryN.wkt", "pick": "last"},
    # entrances
    {"label": "entranceN", "source": "cafeteriaN.wkt", "pick": "first"},
    {"label": "entranceE", "source": "cafeteriaE.wkt", "pick": "first"},
    {"label": "entranceW", "source": "cafeteriaW.wkt", "pick": "first"},
    {"label": "entranceS", "source": "cafeteriaS.wkt", "pick": "first"},
    # office1 .. office6
    {"label": "office", "source": "offices_patch.wkt", "pick": "each_first", "count": 6},
    {"label": "study", "source": "openStudy.wkt", "pick": "all"},
]

PICKS = ("first", "last", "all", "each_first")


def _as_coord(c) -> Coord:
    x, y = c
    return (float(x), float(y))


class LocationRegistry:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._points: Dict[str, Coord] = {}
        self._sets: Dict[str, Tuple[Coord, ...]] = {}

    def __contains__(self, label) -> bool:
        return label in self._points or label in self._sets

    def __len__(self):
        return len(self._points) + len(self._sets)

    def labels(self) -> List[str]:
        return list(self._points) + list(self._sets)

    def is_composite(self, label: str) -> bool:
        if label not in self:
            raise UnknownLabelError(label)
        return label in self._sets

    def register(self, label: str, coordinate) -> None:
        if label in self:
            raise DuplicateLabelError(label)
        self._points[label] = _as_coord(coordinate)

    def register_set(self, label: str, coordinates: Iterable) -> None:
        if label in self:
            raise DuplicateLabelError(label)
        coords = tuple(_as_coord(c) for c in coordinates)
        if not coords:
            raise ConfigError(f"Location set {label!r} has no points")
        self._sets[label] = coords

    def resolve(self, label: str) -> Coord:
        """
        Coordinate of ``label``.

        For set labels a point is drawn at random each call.
        """
        if label in self._points:
            return self._points[label]
        if label in self._sets:
            return self.rng.choice(self._sets[label])
        raise UnknownLabelError(label)

    def members(self, label: str) -> Tuple[Coord, ...]:
        if label in self._points:
            return (self._points[label],)
        if label in self._sets:
            return self._sets[label]
        raise UnknownLabelError(label)

    def label_at(self, coordinate) -> Optional[str]:
        """Single-point label bound to ``coordinate``, if any."""
        c = _as_coord(coordinate)
        for label, p in self._points.items():
            if p == c:
                return label
        return None

    @classmethod
    def from_manifest(
        cls,
        manifest: Sequence[Mapping[str, Any]],
        route_source,
        rng: Optional[random.Random] = None,
    ) -> "LocationRegistry":
        """
        Build a registry from label entries.

        Each entry names a route source (resolved through
        ``route_source.routes(source, kind)``) and how to pick points from it:
        ``first``/``last`` stop of route ``route`` (default 0), ``all`` stops
        of all routes as one set label, or ``each_first`` to bind
        ``<label>1 .. <label>N`` to the first stop of the first N routes.
        """
        registry = cls(rng=rng)
        for entry in manifest:
            try:
                label = entry["label"]
                source = entry["source"]
            except KeyError as e:
                raise ConfigError(f"Location entry {dict(entry)} misses {e}") from None
            pick = entry.get("pick", "first")
            if pick not in PICKS:
                raise ConfigError(f"Unknown pick {pick!r} for location {label!r}")
            routes = route_source.routes(source, entry.get("kind", 1))
            if not routes:
                raise ConfigError(f"Route source {source!r} is empty")

            if pick == "all":
                registry.register_set(label, [s for r in routes for s in r.stops])
            elif pick == "each_first":
                count = entry.get("count", len(routes))
                if count > len(routes):
                    raise ConfigError(
                        f"{source!r} has {len(routes)} routes, {count} needed for {label!r}"
                    )
                for i in range(count):
                    registry.register(f"{label}{i + 1}", routes[i].stops[0])
            else:
                idx = entry.get("route", 0)
                if not 0 <= idx < len(routes):
                    raise ConfigError(f"Route {idx} missing in {source!r} for {label!r}")
                stops = routes[idx].stops
                registry.register(label, stops[0] if pick == "first" else stops[-1])

        logger.info("Location registry built with %d labels", len(registry))
        return registry
