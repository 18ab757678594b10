"""
Core graph data model: positions, nodes, edges and the GraphModel arena.

The GraphModel is an arena of nodes and edges indexed by id, backed by a
NetworkX MultiDiGraph (edge keys are edge ids) so neighbour lookups are
O(1). Layout, sizing and clustering are passes over the arena; none of them
keeps references into it after returning.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx
import pandas as pd


# =========================================================================== #
# Value types
# =========================================================================== #

@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def copy(self) -> "Position":
        return Position(self.x, self.y, self.z)

    def distance_to(self, other: "Position") -> float:
        return math.sqrt(
            (self.x - other.x) ** 2 + (self.y - other.y) ** 2 + (self.z - other.z) ** 2
        )

    @classmethod
    def coerce(cls, value: Any) -> Optional["Position"]:
        """Accept a Position, an (x, y[, z]) sequence or an {x, y, z} mapping."""
        if value is None:
            return None
        if isinstance(value, Position):
            return value.copy()
        if isinstance(value, dict):
            return cls(
                float(value.get("x", 0.0) or 0.0),
                float(value.get("y", 0.0) or 0.0),
                float(value.get("z", 0.0) or 0.0),
            )
        vals = [float(v) for v in value]
        while len(vals) < 3:
            vals.append(0.0)
        return cls(vals[0], vals[1], vals[2])


@dataclass
class GraphNode:
    id: str
    parents: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    label: Optional[str] = None

    # Computed by sizing / layout passes
    size: float = 0.0
    position: Optional[Position] = None
    fx: Optional[float] = None
    fy: Optional[float] = None
    fz: Optional[float] = None


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    weight: float = 1.0
    data: Dict[str, Any] = field(default_factory=dict)
    label: Optional[str] = None

    # Non-null only when a sibling shares the same (source, target) pair
    curve_offset: Optional[float] = None


# =========================================================================== #
# Arena
# =========================================================================== #

@dataclass
class GraphModel:
    """
    Normalised directed graph with stable identity.

    Node and edge dicts keep insertion order, which every pass relies on for
    determinism.
    """

    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    edges: Dict[str, GraphEdge] = field(default_factory=dict)
    G: nx.MultiDiGraph = field(default_factory=nx.MultiDiGraph)

    dropped_edges: List[str] = field(default_factory=list)
    dropped_parents: List[Tuple[str, str]] = field(default_factory=list)

    # Nodes whose parents came from the caller rather than inbound edges
    explicit_parents: Set[str] = field(default_factory=set)

    # ------------------------------------------------------------------ #
    # Size / membership
    # ------------------------------------------------------------------ #

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def node_ids(self) -> List[str]:
        return list(self.nodes.keys())

    def edge_ids(self) -> List[str]:
        return list(self.edges.keys())

    # ------------------------------------------------------------------ #
    # Adjacency
    # ------------------------------------------------------------------ #

    def successors(self, node_id: str) -> List[str]:
        if node_id not in self.G:
            return []
        return list(self.G.successors(node_id))

    def predecessors(self, node_id: str) -> List[str]:
        if node_id not in self.G:
            return []
        return list(self.G.predecessors(node_id))

    def out_degree(self, node_id: str) -> int:
        return int(self.G.out_degree(node_id)) if node_id in self.G else 0

    def in_degree(self, node_id: str) -> int:
        return int(self.G.in_degree(node_id)) if node_id in self.G else 0

    def degree(self, node_id: str) -> int:
        return self.in_degree(node_id) + self.out_degree(node_id)

    def inbound_edges(self, node_id: str) -> List[GraphEdge]:
        if node_id not in self.G:
            return []
        return [self.edges[k] for _, _, k in self.G.in_edges(node_id, keys=True)]

    def outbound_edges(self, node_id: str) -> List[GraphEdge]:
        if node_id not in self.G:
            return []
        return [self.edges[k] for _, _, k in self.G.out_edges(node_id, keys=True)]

    def to_digraph(self, weight: str = "weight") -> nx.DiGraph:
        """Collapse parallel edges into a weighted DiGraph (weights summed)."""
        D = nx.DiGraph()
        D.add_nodes_from(self.nodes.keys())
        for e in self.edges.values():
            if D.has_edge(e.source, e.target):
                D[e.source][e.target][weight] += e.weight
            else:
                D.add_edge(e.source, e.target, **{weight: e.weight})
        return D

    # ------------------------------------------------------------------ #
    # Positions
    # ------------------------------------------------------------------ #

    def positions(self) -> Dict[str, Position]:
        return {
            nid: n.position.copy()
            for nid, n in self.nodes.items()
            if n.position is not None
        }

    def sizes(self) -> Dict[str, float]:
        return {nid: n.size for nid, n in self.nodes.items()}

    def positions_frame(self) -> pd.DataFrame:
        """Tabular export of id / x / y / z / size for downstream tools."""
        rows = []
        for nid, n in self.nodes.items():
            p = n.position or Position()
            rows.append({"id": nid, "x": p.x, "y": p.y, "z": p.z, "size": n.size})
        return pd.DataFrame(rows, columns=["id", "x", "y", "z", "size"])

    # ------------------------------------------------------------------ #
    def subset(self, node_ids: Iterable[str]) -> "GraphModel":
        """
        Return a sub-arena restricted to ``node_ids`` (edges kept only when
        both endpoints survive). Nodes and edges are shallow copies.
        """
        keep = set(node_ids)
        H = GraphModel()
        for nid, n in self.nodes.items():
            if nid not in keep:
                continue
            H.nodes[nid] = GraphNode(
                id=n.id,
                parents=[p for p in n.parents if p in keep],
                data=dict(n.data),
                label=n.label,
                size=n.size,
                position=n.position.copy() if n.position else None,
                fx=n.fx,
                fy=n.fy,
                fz=n.fz,
            )
            H.G.add_node(nid)
            if nid in self.explicit_parents:
                H.explicit_parents.add(nid)
        for eid, e in self.edges.items():
            if e.source in keep and e.target in keep:
                H.edges[eid] = GraphEdge(
                    id=e.id,
                    source=e.source,
                    target=e.target,
                    weight=e.weight,
                    data=dict(e.data),
                    label=e.label,
                    curve_offset=e.curve_offset,
                )
                H.G.add_edge(e.source, e.target, key=eid, weight=e.weight)
        return H
