"""
Layout recommendation from graph shape.

    empty                      -> forceDirected2d
    cyclic                     -> forceDirected2d (forceDirected3d if large and dense)
    acyclic, no edges          -> circular2d
    acyclic, > 100 nodes       -> radialOut2d
    acyclic otherwise          -> treeTd2d

Advisory only; the chosen type and reason are logged.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..analytics import compute_graph_stats
from ..depth import DepthResult, compute_depths
from ..events import Emit, log_event
from ..model import GraphModel

logger = logging.getLogger(__name__)

LARGE_TREE_NODES = 100
LARGE_GRAPH_NODES = 500
DENSE_GRAPH_DENSITY = 0.02


def _recommend(model: GraphModel, depth: Optional[DepthResult]) -> Tuple[str, str]:
    n = model.node_count
    if n == 0:
        return "forceDirected2d", "empty graph"

    depth = depth if depth is not None else compute_depths(model)

    if depth.invalid:
        stats = compute_graph_stats(model)
        if n > LARGE_GRAPH_NODES and stats.density >= DENSE_GRAPH_DENSITY:
            return "forceDirected3d", f"cyclic, {n} nodes, density {stats.density:.3f}"
        return "forceDirected2d", "cyclic graph"

    if model.edge_count == 0 and n > 1:
        return "circular2d", "no edges"
    if n > LARGE_TREE_NODES:
        return "radialOut2d", f"acyclic with {n} nodes"
    return "treeTd2d", f"acyclic with {n} nodes"


def recommend_layout(
    model: GraphModel,
    depth: Optional[DepthResult] = None,
    emit: Optional[Emit] = None,
) -> str:
    layout_type, reason = _recommend(model, depth)
    log_event(
        logger,
        f"[recommender] {layout_type} ({reason})",
        emit,
        level=logging.INFO,
        layout_type=layout_type,
    )
    return layout_type
