"""
JSON export of a computed GraphState.

Writes ``graph_layout.json``:
    - positions and sizes per node
    - edge curve offsets
    - cluster geometry
    - visible ids under the collapsed set
    - depth summary, run summary, global stats
    - the configuration that produced it
"""

from __future__ import annotations

import json
import os
import time
from typing import Any, Dict

from .graph_state import GraphState

LAYOUT_META_VERSION = "graphscape.layout.meta.v1"
LAYOUT_FILENAME = "graph_layout.json"


def layout_to_dict(state: GraphState) -> Dict[str, Any]:
    model = state.model
    nodes = []
    edges = []
    if model is not None:
        for nid, n in model.nodes.items():
            p = state.positions.get(nid)
            nodes.append({
                "id": nid,
                "label": n.label,
                "parents": list(n.parents),
                "position": list(p.as_tuple()) if p is not None else None,
                "size": float(state.sizes.get(nid, n.size)),
            })
        for eid, e in model.edges.items():
            edges.append({
                "id": eid,
                "source": e.source,
                "target": e.target,
                "weight": float(e.weight),
                "curve_offset": e.curve_offset,
            })

    depth = None
    if state.depth is not None:
        depth = {
            "invalid": state.depth.invalid,
            "max_depth": state.depth.max_depth,
            "cycle": list(state.depth.cycle),
            "depths": state.depth.as_dict(),
        }

    return {
        "version": LAYOUT_META_VERSION,
        "timestamp": time.time(),
        "layout_type": state.layout_type,
        "nodes": nodes,
        "edges": edges,
        "clusters": {label: g.to_dict() for label, g in state.clusters.items()},
        "collapsed": list(state.collapsed_ids),
        "visible_nodes": list(state.visible_node_ids),
        "visible_edges": list(state.visible_edge_ids),
        "depth": depth,
        "run": state.run.to_dict() if state.run is not None else None,
        "stats": state.stats.to_dict() if state.stats is not None else None,
        "overlap_converged": state.overlap_converged,
        "config": state.config.to_dict() if state.config is not None else None,
        "dropped_edges": list(model.dropped_edges) if model is not None else [],
        "meta": state.meta,
    }


def write_layout_json(out_dir: str, state: GraphState) -> str:
    """Write ``graph_layout.json`` into ``out_dir`` and return its path."""
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, LAYOUT_FILENAME)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(layout_to_dict(state), f, indent=2, default=str)
    return path
