import pytest
from shapely.geometry import LineString

from errors import ConfigError, UnknownLabelError, UnreachableError
from locations import LocationRegistry
from network_graph import GraphPathFinder, build_graph, graph_from_routes, graph_to_frames
from path_adapter import PathRequestAdapter
from routes import Route


@pytest.fixture
def building():
    # a T shaped hall plus an island that cannot be reached
    lines = [
        LineString([(0, 0), (10, 0), (20, 0)]),
        LineString([(10, 0), (10, 10)]),
        LineString([(100, 100), (110, 100)]),
    ]
    return build_graph(lines)


@pytest.fixture
def adapter(building):
    registry = LocationRegistry()
    registry.register("west", (0, 0))
    registry.register("north", (10, 10))
    registry.register("island", (110, 100))
    registry.register("nearEast", (19, 1))
    return PathRequestAdapter(registry, GraphPathFinder(building))


def test_graph_nodes_and_weights(building):
    assert building.number_of_nodes() == 6
    assert building[(0.0, 0.0)][(10.0, 0.0)]["weight"] == pytest.approx(10.0)
    assert building.nodes[(10.0, 10.0)]["x"] == 10.0


def test_route_follows_shortest_path(adapter):
    assert adapter.route((0, 0), "north") == [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)]


def test_route_snaps_to_nearest_nodes(adapter):
    assert adapter.route((1, 2), "nearEast") == [(0.0, 0.0), (10.0, 0.0), (20.0, 0.0)]


def test_route_to_same_place(adapter):
    assert adapter.route((0, 0), "west") == [(0.0, 0.0)]


def test_unreachable_destination_propagates(adapter):
    with pytest.raises(UnreachableError):
        adapter.route((0, 0), "island")


def test_unknown_destination(adapter):
    with pytest.raises(UnknownLabelError):
        adapter.route((0, 0), "roof")


def test_path_finder_unknown_node(building):
    finder = GraphPathFinder(building)
    with pytest.raises(UnreachableError):
        finder.shortest_path((0.0, 0.0), (5.0, 5.0))


def test_empty_map_rejected():
    with pytest.raises(ConfigError):
        build_graph([])


def test_graph_from_routes_and_frames():
    G = graph_from_routes([Route([(0, 0), (3, 4)]), Route([(9, 9)])])
    assert G.number_of_edges() == 1
    nodes_df, edges_df = graph_to_frames(G)
    assert len(nodes_df) == 2
    assert edges_df.loc[0, "weight"] == pytest.approx(5.0)
