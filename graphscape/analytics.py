"""
Graph statistics used for layout recommendation and reporting.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

import networkx as nx
import numpy as np

from .model import GraphModel


@dataclass
class GraphStats:
    n_nodes: int
    n_edges: int
    density: float
    avg_degree: float
    transitivity: float
    n_components: int = 0
    n_self_loops: int = 0
    n_parallel_groups: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_graph_stats(model: GraphModel) -> GraphStats:
    G = model.G
    if G.number_of_nodes() == 0:
        return GraphStats(0, 0, 0.0, 0.0, 0.0)

    n = G.number_of_nodes()
    e = G.number_of_edges()

    D = model.to_digraph()
    density = float(nx.density(D)) if n > 1 else 0.0
    avg_degree = float(np.mean([d for _, d in G.degree()]))
    U = nx.Graph(D)
    U.remove_edges_from(nx.selfloop_edges(U))
    transitivity = float(nx.transitivity(U)) if n > 2 else 0.0

    parallel_pairs = {
        (edge.source, edge.target)
        for edge in model.edges.values()
        if edge.curve_offset is not None
    }

    return GraphStats(
        n_nodes=n,
        n_edges=e,
        density=density,
        avg_degree=avg_degree,
        transitivity=transitivity,
        n_components=nx.number_weakly_connected_components(G),
        n_self_loops=nx.number_of_selfloops(G),
        n_parallel_groups=len(parallel_pairs),
    )
