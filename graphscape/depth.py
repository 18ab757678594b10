"""
Depth analysis for hierarchical and radial layouts.

Depth is longest-path layering over source -> target adjacency:

    depth(root) = 0
    depth(n)    = 1 + max(depth(p) for p in predecessors(n))

networkx orders the nodes topologically; when that fails, the first cycle
its DFS finds (a self-loop counts) marks the result invalid. An invalid
result reports depth 0 for every node and carries the cycle path so
callers can explain the fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import networkx as nx

from .errors import CircularGraphError
from .events import Emit, log_event
from .model import GraphEdge, GraphModel, GraphNode

logger = logging.getLogger(__name__)

# Per-level spacing is proportional to nodes per level
DAG_LEVEL_NODE_RATIO = 2


@dataclass(eq=False)
class DepthNode:
    node: GraphNode
    ins: List["DepthNode"] = field(default_factory=list)
    out: List["DepthNode"] = field(default_factory=list)
    depth: int = 0

    @property
    def id(self) -> str:
        return self.node.id

    def __repr__(self) -> str:
        return f"DepthNode(id={self.node.id!r}, depth={self.depth})"


@dataclass
class DepthResult:
    invalid: bool = False
    depths: Dict[str, DepthNode] = field(default_factory=dict)
    max_depth: int = 0
    cycle: List[str] = field(default_factory=list)

    def depth_of(self, node_id: str) -> int:
        dn = self.depths.get(node_id)
        return dn.depth if dn is not None else 0

    def as_dict(self) -> Dict[str, int]:
        return {nid: dn.depth for nid, dn in self.depths.items()}

    def level_distance(self, node_count: int, radial: bool = False) -> float:
        """Spacing between consecutive depth levels."""
        dist = (node_count / max(self.max_depth, 1)) * DAG_LEVEL_NODE_RATIO
        return dist * (0.7 if radial else 1.0)


# --------------------------------------------------------------------------- #
# Traversal
# --------------------------------------------------------------------------- #

def _topological_order(depths: Dict[str, DepthNode]) -> List[DepthNode]:
    """
    Topological order over the out-lists.

    Raises CircularGraphError with the cycle path found by a DFS when the
    graph is not a DAG.
    """
    G = nx.DiGraph()
    G.add_nodes_from(depths)
    for dn in depths.values():
        G.add_edges_from((dn.id, child.id) for child in dn.out)

    try:
        return [depths[nid] for nid in nx.topological_sort(G)]
    except nx.NetworkXUnfeasible:
        cycle_edges = nx.find_cycle(G, orientation="original")
        path = [u for u, _v, _dir in cycle_edges]
        raise CircularGraphError(path + [path[0]]) from None


def get_node_depth(
    nodes: Iterable[GraphNode],
    edges: Iterable[GraphEdge],
    emit: Optional[Emit] = None,
) -> DepthResult:
    """Compute per-node depth, the maximum depth and cycle validity."""
    depths: Dict[str, DepthNode] = {}
    for node in nodes:
        if node.id not in depths:
            depths[node.id] = DepthNode(node=node)

    for edge in edges:
        src = depths.get(edge.source)
        dst = depths.get(edge.target)
        if src is None or dst is None:
            continue
        src.out.append(dst)
        dst.ins.append(src)

    result = DepthResult(depths=depths)
    if not depths:
        return result

    try:
        order = _topological_order(depths)
    except CircularGraphError as exc:
        result.invalid = True
        result.cycle = exc.cycle
        for dn in depths.values():
            dn.depth = 0
        log_event(logger, f"[depth] {exc}", emit, level=logging.WARNING, cycle=exc.cycle)
        return result

    for dn in order:
        if dn.ins:
            dn.depth = 1 + max(p.depth for p in dn.ins)
        else:
            dn.depth = 0

    result.max_depth = max(dn.depth for dn in depths.values())
    return result


def compute_depths(model: GraphModel, emit: Optional[Emit] = None) -> DepthResult:
    return get_node_depth(model.nodes.values(), model.edges.values(), emit)
