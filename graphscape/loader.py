"""
Graph model adapter.

Responsibilities:
  - Normalise user-supplied nodes / edges (dicts, dataclasses or pandas
    frames) into a GraphModel with stable identity
  - Drop edges whose endpoints do not resolve (reported, never fatal)
  - Derive ``parents`` from inbound edges when the caller gave none
  - Assign curve offsets to parallel edges
  - Incremental additions that keep prior positions
  - Parallel-edge aggregation
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .events import Emit, log_event
from .model import GraphEdge, GraphModel, GraphNode, Position

logger = logging.getLogger(__name__)

# Lateral spacing between sibling parallel edges
CURVE_SPACING = 0.5

NodeInput = Union[GraphNode, Mapping[str, Any]]
EdgeInput = Union[GraphEdge, Mapping[str, Any]]


# ============================================================================ #
# Normalisation helpers
# ============================================================================ #

def _safe_float(x: Any, default: float = 1.0) -> float:
    try:
        v = float(x)
        return v if np.isfinite(v) else default
    except (TypeError, ValueError):
        return default


def _as_node(raw: NodeInput) -> GraphNode:
    if isinstance(raw, GraphNode):
        return GraphNode(
            id=str(raw.id),
            parents=[str(p) for p in (raw.parents or [])],
            data=dict(raw.data or {}),
            label=raw.label,
            size=raw.size,
            position=raw.position.copy() if raw.position else None,
            fx=raw.fx,
            fy=raw.fy,
            fz=raw.fz,
        )

    parents = raw.get("parents") or []
    if isinstance(parents, str):
        parents = [parents]
    return GraphNode(
        id=str(raw["id"]),
        parents=[str(p) for p in parents],
        data=dict(raw.get("data") or {}),
        label=raw.get("label"),
        position=Position.coerce(raw.get("position")),
        fx=raw.get("fx"),
        fy=raw.get("fy"),
        fz=raw.get("fz"),
    )


def _as_edge(raw: EdgeInput) -> GraphEdge:
    if isinstance(raw, GraphEdge):
        return GraphEdge(
            id=str(raw.id) if raw.id is not None else "",
            source=str(raw.source),
            target=str(raw.target),
            weight=_safe_float(raw.weight),
            data=dict(raw.data or {}),
            label=raw.label,
        )
    eid = raw.get("id")
    return GraphEdge(
        id=str(eid) if eid is not None else "",
        source=str(raw["source"]),
        target=str(raw["target"]),
        weight=_safe_float(raw.get("weight", 1.0)),
        data=dict(raw.get("data") or {}),
        label=raw.get("label"),
    )


def _unique_edge_id(edge: GraphEdge, taken: Mapping[str, Any]) -> str:
    base = edge.id or f"{edge.source}->{edge.target}"
    if base not in taken:
        return base
    k = 1
    while f"{base}#{k}" in taken:
        k += 1
    return f"{base}#{k}"


# ============================================================================ #
# Curve offsets / aggregation
# ============================================================================ #

def assign_curve_offsets(
    edges: Iterable[GraphEdge],
    spacing: float = CURVE_SPACING,
) -> None:
    """
    Give every edge of an ordered (source, target) group of size k >= 2 the
    offset ``(i - (k - 1) / 2) * spacing``; singletons get None.
    """
    for group in group_edges_by_source_target(edges).values():
        k = len(group)
        if k == 1:
            group[0].curve_offset = None
            continue
        for i, e in enumerate(group):
            e.curve_offset = (i - (k - 1) / 2.0) * spacing


def group_edges_by_source_target(
    edges: Iterable[GraphEdge],
) -> Dict[Tuple[str, str], List[GraphEdge]]:
    """Group edges by ordered ``(source, target)`` pair, first-seen order."""
    out: Dict[Tuple[str, str], List[GraphEdge]] = {}
    for e in edges:
        if not e or not e.source or not e.target:
            continue
        out.setdefault((e.source, e.target), []).append(e)
    return out


def aggregate_edges(edges: Sequence[GraphEdge]) -> List[GraphEdge]:
    """
    Collapse edges that share a source and target into one aggregated edge.

    Single edges are passed through unchanged. Aggregates keep the first
    edge's id, sum the weights and carry the originals in ``data``.
    """
    if not edges:
        return []

    aggregated: List[GraphEdge] = []
    for group in group_edges_by_source_target(edges).values():
        first = group[0]
        if len(group) == 1:
            aggregated.append(first)
            continue
        aggregated.append(
            GraphEdge(
                id=first.id,
                source=first.source,
                target=first.target,
                weight=float(sum(e.weight for e in group)),
                label=f"{len(group)} edges",
                data={
                    **(first.data or {}),
                    "original_edges": list(group),
                    "count": len(group),
                    "is_aggregated": True,
                },
            )
        )
    return aggregated


# ============================================================================ #
# Graph construction
# ============================================================================ #

def _fill_parents(model: GraphModel, emit: Optional[Emit]) -> None:
    for nid, node in model.nodes.items():
        if nid in model.explicit_parents:
            kept: List[str] = []
            for p in node.parents:
                if p not in model.nodes:
                    model.dropped_parents.append((nid, p))
                    continue
                if p not in kept:
                    kept.append(p)
            node.parents = kept
        else:
            derived: List[str] = []
            for e in model.inbound_edges(nid):
                if e.source not in derived:
                    derived.append(e.source)
            node.parents = derived

    if model.dropped_parents:
        log_event(
            logger,
            f"[loader] Dropped {len(model.dropped_parents)} parent reference(s) to unknown nodes.",
            emit,
            level=logging.WARNING,
        )


def build_graph(
    nodes: Iterable[NodeInput],
    edges: Iterable[EdgeInput],
    emit: Optional[Emit] = None,
) -> GraphModel:
    """
    Build a GraphModel from raw nodes and edges.

    Node positions supplied with the input are kept as seeds; a full rebuild
    from a previous model's output therefore starts fresh unless the caller
    passes positions explicitly (see ``add_elements`` for the incremental
    path).
    """
    model = GraphModel()

    for raw in nodes or []:
        node = _as_node(raw)
        if node.id in model.nodes:
            log_event(
                logger,
                f"[loader] Duplicate node '{node.id}' ignored.",
                emit,
                level=logging.WARNING,
            )
            continue
        if node.parents:
            model.explicit_parents.add(node.id)
        model.nodes[node.id] = node
        model.G.add_node(node.id)

    for raw in edges or []:
        edge = _as_edge(raw)
        if edge.source not in model.nodes or edge.target not in model.nodes:
            model.dropped_edges.append(edge.id or f"{edge.source}->{edge.target}")
            continue
        edge.id = _unique_edge_id(edge, model.edges)
        model.edges[edge.id] = edge
        model.G.add_edge(edge.source, edge.target, key=edge.id, weight=edge.weight)

    if model.dropped_edges:
        log_event(
            logger,
            f"[loader] Dropped {len(model.dropped_edges)} edge(s) with missing endpoints.",
            emit,
            level=logging.WARNING,
            dropped_edges=list(model.dropped_edges),
        )

    _fill_parents(model, emit)
    assign_curve_offsets(model.edges.values())

    log_event(
        logger,
        f"[loader] Graph built: {model.node_count} nodes, {model.edge_count} edges.",
        emit,
        level=logging.DEBUG,
    )
    return model


def add_elements(
    model: GraphModel,
    nodes: Iterable[NodeInput] = (),
    edges: Iterable[EdgeInput] = (),
    emit: Optional[Emit] = None,
) -> GraphModel:
    """
    Incrementally add nodes / edges, returning a new model.

    Existing nodes keep their computed position and size so an animated
    view does not jump when the graph grows.
    """
    carried_nodes: List[GraphNode] = []
    for n in model.nodes.values():
        carried_nodes.append(
            GraphNode(
                id=n.id,
                # re-derive parents unless the caller set them explicitly
                parents=list(n.parents) if n.id in model.explicit_parents else [],
                data=dict(n.data),
                label=n.label,
                size=n.size,
                position=n.position.copy() if n.position else None,
                fx=n.fx,
                fy=n.fy,
                fz=n.fz,
            )
        )
    carried_edges: List[GraphEdge] = [
        GraphEdge(
            id=e.id,
            source=e.source,
            target=e.target,
            weight=e.weight,
            data=dict(e.data),
            label=e.label,
        )
        for e in model.edges.values()
    ]

    new_model = build_graph(
        carried_nodes + [_as_node(n) for n in nodes],
        carried_edges + [_as_edge(e) for e in edges],
        emit,
    )
    for nid, old in model.nodes.items():
        if nid in new_model.nodes:
            new_model.nodes[nid].size = old.size
    return new_model


# ============================================================================ #
# pandas ingestion
# ============================================================================ #

def graph_from_frames(
    nodes_df: pd.DataFrame,
    edges_df: Optional[pd.DataFrame] = None,
    emit: Optional[Emit] = None,
) -> GraphModel:
    """
    Build a GraphModel from tabular data.

    Enforces:
      - string node ids (column ``id``)
      - ``parents`` as a list or a comma-separated string
      - remaining node columns become node ``data``
      - edges with ``source`` / ``target`` and a numeric ``weight``
    """
    if nodes_df is None or nodes_df.empty or "id" not in nodes_df.columns:
        log_event(logger, "[loader] Node table missing or without 'id' column", emit,
                  level=logging.WARNING)
        return GraphModel()

    nodes_df = nodes_df.copy()
    nodes_df["id"] = nodes_df["id"].astype(str)
    data_cols = [c for c in nodes_df.columns if c not in ("id", "parents", "label")]

    nodes: List[Dict[str, Any]] = []
    for rec in nodes_df.to_dict(orient="records"):
        raw: Dict[str, Any] = {"id": rec["id"]}
        parents = rec.get("parents")
        if isinstance(parents, str):
            raw["parents"] = [p.strip() for p in parents.split(",") if p.strip()]
        elif isinstance(parents, (list, tuple)):
            raw["parents"] = list(parents)
        label = rec.get("label")
        if isinstance(label, str):
            raw["label"] = label
        raw["data"] = {
            c: rec[c] for c in data_cols
            if not (isinstance(rec[c], float) and math.isnan(rec[c]))
        }
        nodes.append(raw)

    edges: List[Dict[str, Any]] = []
    if edges_df is not None and not edges_df.empty:
        if "source" not in edges_df.columns or "target" not in edges_df.columns:
            log_event(logger, "[loader] Edge table missing source/target columns", emit,
                      level=logging.WARNING)
        else:
            edges_df = edges_df.dropna(subset=["source", "target"]).copy()
            edges_df["source"] = edges_df["source"].astype(str)
            edges_df["target"] = edges_df["target"].astype(str)
            if "weight" not in edges_df.columns:
                edges_df["weight"] = 1.0
            edges_df["weight"] = pd.to_numeric(edges_df["weight"], errors="coerce").fillna(1.0)
            for rec in edges_df.to_dict(orient="records"):
                raw_edge: Dict[str, Any] = {
                    "source": rec["source"],
                    "target": rec["target"],
                    "weight": rec["weight"],
                }
                eid = rec.get("id")
                if eid is not None and not (isinstance(eid, float) and math.isnan(eid)):
                    raw_edge["id"] = str(eid)
                edges.append(raw_edge)

    return build_graph(nodes, edges, emit)
