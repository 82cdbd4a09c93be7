import pytest

from errors import ConfigError, StateError
from routes import CIRCULAR, PING_PONG, FileRouteSource, Route, read_map_lines, read_routes


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_read_routes(tmp_path):
    path = write(
        tmp_path,
        "routes.wkt",
        "LINESTRING (0 0, 10 0, 10 10)\n\n# comment\nMULTILINESTRING ((0 0, 5 5), (5 5, 9 9))\nPOINT (3 4)\n",
    )
    routes = read_routes(path, CIRCULAR)
    assert [r.n_stops for r in routes] == [3, 3, 1]
    assert routes[0].stops == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]
    assert routes[1].stops == [(0.0, 0.0), (5.0, 5.0), (9.0, 9.0)]


def test_read_routes_errors(tmp_path):
    empty = write(tmp_path, "empty.wkt", "\n")
    with pytest.raises(ConfigError):
        read_routes(empty)
    bad = write(tmp_path, "bad.wkt", "LINESTRING (0 0, 1\n")
    with pytest.raises(ConfigError):
        read_routes(bad)
    good = write(tmp_path, "good.wkt", "LINESTRING (0 0, 1 1)\n")
    with pytest.raises(ConfigError):
        read_routes(good, route_type=3)


def test_map_lines_reject_points(tmp_path):
    path = write(tmp_path, "map.wkt", "LINESTRING (0 0, 1 1)\nPOINT (1 1)\n")
    with pytest.raises(ConfigError):
        read_map_lines([path])


def test_circular_route_wraps():
    route = Route([(0, 0), (1, 0), (2, 0)], CIRCULAR)
    route.set_next_index(1)
    assert [route.next_stop() for _ in range(4)] == [(1, 0), (2, 0), (0, 0), (1, 0)]


def test_ping_pong_route_turns_around():
    route = Route([(0, 0), (1, 0), (2, 0)], PING_PONG)
    assert [route.next_stop()[0] for _ in range(6)] == [0, 1, 2, 1, 0, 1]


def test_replicas_have_their_own_cursor():
    route = Route([(0, 0), (1, 0), (2, 0)])
    copy = route.replicate()
    copy.set_next_index(2)
    assert route.next_index == 0
    assert copy.stops is route.stops


def test_bad_stop_index():
    route = Route([(0, 0), (1, 0)])
    with pytest.raises(StateError):
        route.set_next_index(2)


def test_file_route_source_caches(tmp_path):
    write(tmp_path, "a.wkt", "LINESTRING (0 0, 1 1)\n")
    source = FileRouteSource(tmp_path)
    assert source.routes("a.wkt") is source.routes("a.wkt")
    with pytest.raises(ConfigError):
        source.routes("missing.wkt")
