# network_graph.py
import logging
from typing import Iterable, List, Tuple

import geopandas as gpd
import networkx as nx
import pandas as pd
from shapely.geometry import LineString, Point

from errors import ConfigError, UnreachableError

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


def build_graph(lines: Iterable[LineString]) -> nx.Graph:
    """
    Walkable graph of the building: every line string vertex is a node keyed
    by its (x, y) coordinate, consecutive vertices are joined by an edge
    weighted with their distance.
    """
    G = nx.Graph()
    for line in lines:
        coords = [tuple(map(float, c[:2])) for c in line.coords]
        for u, v in zip(coords[:-1], coords[1:]):
            if u == v:
                continue
            dist = Point(u).distance(Point(v))
            G.add_edge(u, v, weight=dist)
    for n, d in G.nodes(data=True):
        d["x"], d["y"] = n
    if G.number_of_nodes() == 0:
        raise ConfigError("Map has no walkable segments")
    logger.info("Building graph: %d nodes, %d edges", G.number_of_nodes(), G.number_of_edges())
    return G


def graph_from_routes(routes) -> nx.Graph:
    lines = [LineString(r.stops) for r in routes if r.n_stops > 1]
    return build_graph(lines)


def graph_to_frames(G: nx.Graph):
    """Node and edge tables of the graph, e.g. for CSV export."""
    nodes_df = pd.DataFrame([{"x": n[0], "y": n[1]} for n in G.nodes])
    edges_df = pd.DataFrame(
        [
            {"geometry": LineString([u, v]).wkt, **attr}
            for u, v, attr in G.edges(data=True)
        ]
    )
    return nodes_df, edges_df


class GraphPathFinder:
    """Shortest paths over a building graph (Dijkstra on edge ``weight``)."""

    def __init__(self, G: nx.Graph):
        if G.number_of_nodes() == 0:
            raise ConfigError("Cannot route on an empty graph")
        self.G = G
        self._nodes: List[Coord] = list(G.nodes)
        self._nodes_gdf = gpd.GeoDataFrame(geometry=[Point(n) for n in self._nodes])

    def nearest_node(self, coordinate) -> Coord:
        if coordinate in self.G:
            return coordinate
        pt = Point(coordinate)
        pos = self._nodes_gdf.geometry.distance(pt).idxmin()
        return self._nodes[pos]

    def shortest_path(self, source, target) -> List[Coord]:
        try:
            return nx.shortest_path(self.G, source, target, weight="weight")
        except nx.NetworkXNoPath:
            raise UnreachableError(source, target) from None
        except nx.NodeNotFound as e:
            raise UnreachableError(source, target, str(e)) from None
