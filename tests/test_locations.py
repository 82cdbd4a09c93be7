import random

import pytest

from errors import ConfigError, DuplicateLabelError, UnknownLabelError
from locations import DEFAULT_MANIFEST, LocationRegistry
from routes import FileRouteSource, Route


class DictRouteSource:
    def __init__(self, routes):
        self._routes = routes

    def routes(self, source_id, kind=1):
        return self._routes[source_id]


def test_register_and_resolve():
    registry = LocationRegistry()
    registry.register("library", (80, -10))
    assert registry.resolve("library") == (80.0, -10.0)
    assert "library" in registry
    assert not registry.is_composite("library")


def test_duplicate_label():
    registry = LocationRegistry()
    registry.register("library", (1, 2))
    with pytest.raises(DuplicateLabelError):
        registry.register("library", (3, 4))
    with pytest.raises(DuplicateLabelError):
        registry.register_set("library", [(3, 4)])


def test_unknown_label():
    registry = LocationRegistry()
    with pytest.raises(UnknownLabelError) as exc:
        registry.resolve("gym")
    assert exc.value.label == "gym"
    with pytest.raises(KeyError):
        registry.resolve("gym")


def test_set_label_draws_members():
    seats = [(0, 10), (5, 10), (0, -10), (5, -10)]
    registry = LocationRegistry(rng=random.Random(1))
    registry.register_set("study", seats)
    assert registry.is_composite("study")
    drawn = {registry.resolve("study") for _ in range(200)}
    assert drawn <= {(float(x), float(y)) for x, y in seats}
    # not idempotent: repeated calls land on different seats
    assert len(drawn) > 1


def test_empty_set_rejected():
    with pytest.raises(ConfigError):
        LocationRegistry().register_set("study", [])


def test_label_at():
    registry = LocationRegistry()
    registry.register("entranceN", (50, -30))
    registry.register_set("study", [(50, -30)])
    assert registry.label_at((50.0, -30.0)) == "entranceN"
    assert registry.label_at((1, 1)) is None


def test_from_manifest_picks():
    source = DictRouteSource(
        {
            "cafeteriaN.wkt": [Route([(50, -30), (50, 0), (100, -10)])],
            "offices.wkt": [Route([(i * 10, 30), (50, 30)]) for i in range(1, 4)],
            "study.wkt": [Route([(0, 10), (5, 10)]), Route([(0, -10)])],
        }
    )
    manifest = [
        {"label": "cafeteria", "source": "cafeteriaN.wkt", "pick": "last"},
        {"label": "entranceN", "source": "cafeteriaN.wkt", "pick": "first"},
        {"label": "office", "source": "offices.wkt", "pick": "each_first", "count": 2},
        {"label": "study", "source": "study.wkt", "pick": "all"},
    ]
    registry = LocationRegistry.from_manifest(manifest, source)
    assert registry.resolve("cafeteria") == (100.0, -10.0)
    assert registry.resolve("entranceN") == (50.0, -30.0)
    assert registry.resolve("office1") == (10.0, 30.0)
    assert registry.resolve("office2") == (20.0, 30.0)
    assert "office3" not in registry
    assert registry.members("study") == ((0.0, 10.0), (5.0, 10.0), (0.0, -10.0))


@pytest.mark.parametrize(
    "entry",
    [
        {"label": "x"},
        {"label": "x", "source": "a.wkt", "pick": "middle"},
        {"label": "x", "source": "a.wkt", "pick": "first", "route": 3},
        {"label": "x", "source": "a.wkt", "pick": "each_first", "count": 5},
    ],
)
def test_bad_manifest_entries(entry):
    source = DictRouteSource({"a.wkt": [Route([(0, 0), (1, 1)])]})
    with pytest.raises(ConfigError):
        LocationRegistry.from_manifest([entry], source)


def test_default_manifest_on_example_building(example_dir):
    registry = LocationRegistry.from_manifest(DEFAULT_MANIFEST, FileRouteSource(example_dir))
    for label in ("cafeteria", "HS1", "tutorial4", "computerlab", "library",
                  "entranceN", "entranceE", "entranceW", "entranceS", "office6", "study"):
        assert label in registry
    assert registry.resolve("entranceS") == (50.0, 60.0)
    assert registry.resolve("office1") == (30.0, 30.0)
