"""
Node sizing strategies.

Every non-trivial mode computes a raw per-node metric and maps it linearly
into ``[min_size, max_size]``:

    none        -> default_size everywhere
    default     -> degree (in + out)
    centrality  -> closeness (or betweenness) centrality
    pagerank    -> weighted PageRank, degree fallback on non-convergence
    attribute   -> numeric field of node data, missing -> min_size

Constant metrics collapse to ``min_size``. Sizes never drop below
SIZE_FLOOR.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Optional

import networkx as nx
import numpy as np

from .errors import UnknownSizingError
from .events import Emit, log_event
from .model import GraphModel
from .presets import SizingSettings

logger = logging.getLogger(__name__)

SIZE_FLOOR = 1.0

SIZING_TYPES = ("none", "default", "centrality", "pagerank", "attribute")
CENTRALITY_METRICS = ("closeness", "betweenness")


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #

def _scale(values: Dict[str, float], min_size: float, max_size: float) -> Dict[str, float]:
    if not values:
        return {}
    arr = np.array(list(values.values()), dtype=float)
    lo, hi = float(arr.min()), float(arr.max())
    span = hi - lo
    if span <= 1e-12:
        return {nid: max(SIZE_FLOOR, float(min_size)) for nid in values}

    out: Dict[str, float] = {}
    for nid, v in values.items():
        s = min_size + (v - lo) / span * (max_size - min_size)
        out[nid] = max(SIZE_FLOOR, float(s))
    return out


def _numeric(value) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def _degree_metric(model: GraphModel) -> Dict[str, float]:
    return {nid: float(model.degree(nid)) for nid in model.nodes}


def _centrality_metric(model: GraphModel, metric: str) -> Dict[str, float]:
    D = model.to_digraph()
    if metric == "betweenness":
        raw = nx.betweenness_centrality(D, normalized=True)
    elif metric == "closeness":
        raw = nx.closeness_centrality(D)
    else:
        raise UnknownSizingError(f"centrality:{metric}")
    return {nid: float(raw.get(nid, 0.0)) for nid in model.nodes}


def _pagerank_metric(model: GraphModel, emit: Optional[Emit]) -> Dict[str, float]:
    D = model.to_digraph()
    try:
        raw = nx.pagerank(D, alpha=0.85, max_iter=100, tol=1e-6, weight="weight")
    except nx.PowerIterationFailedConvergence:
        log_event(
            logger,
            "[sizing] PageRank did not converge; falling back to degree sizing.",
            emit,
            level=logging.WARNING,
        )
        return _degree_metric(model)
    return {nid: float(raw.get(nid, 0.0)) for nid in model.nodes}


def _attribute_metric(
    model: GraphModel,
    attribute: Optional[str],
    emit: Optional[Emit],
) -> Dict[str, Optional[float]]:
    out: Dict[str, Optional[float]] = {}
    missing = 0
    for nid, node in model.nodes.items():
        v = _numeric(node.data.get(attribute)) if attribute else None
        if v is None:
            missing += 1
        out[nid] = v
    if missing:
        log_event(
            logger,
            f"[sizing] {missing} node(s) lack a numeric '{attribute}' value; using min size.",
            emit,
            level=logging.WARNING,
        )
    return out


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #

def node_size_provider(
    model: GraphModel,
    sizing_type: Optional[str] = "default",
    *,
    attribute: Optional[str] = None,
    min_size: float = 5.0,
    max_size: float = 15.0,
    default_size: float = 7.0,
    centrality_metric: str = "closeness",
    emit: Optional[Emit] = None,
) -> Dict[str, float]:
    """
    Return ``{node_id: size}`` for every node of ``model``.

    Raises UnknownSizingError for an unsupported ``sizing_type``.
    """
    kind = (sizing_type or "none").lower()
    if kind not in SIZING_TYPES:
        raise UnknownSizingError(str(sizing_type))

    if not model.nodes:
        return {}

    if kind == "none":
        return {nid: max(SIZE_FLOOR, float(default_size)) for nid in model.nodes}

    if kind == "default":
        return _scale(_degree_metric(model), min_size, max_size)

    if kind == "centrality":
        return _scale(_centrality_metric(model, centrality_metric), min_size, max_size)

    if kind == "pagerank":
        return _scale(_pagerank_metric(model, emit), min_size, max_size)

    # attribute
    raw = _attribute_metric(model, attribute, emit)
    present = {nid: v for nid, v in raw.items() if v is not None}
    scaled = _scale(present, min_size, max_size)
    floor_min = max(SIZE_FLOOR, float(min_size))
    return {nid: scaled.get(nid, floor_min) for nid in model.nodes}


def apply_sizes(
    model: GraphModel,
    settings: Optional[SizingSettings] = None,
    emit: Optional[Emit] = None,
) -> Dict[str, float]:
    """Compute sizes from ``settings`` and write them onto the model's nodes."""
    settings = settings or SizingSettings()
    sizes = node_size_provider(
        model,
        settings.sizing_type,
        attribute=settings.attribute,
        min_size=settings.min_size,
        max_size=settings.max_size,
        default_size=settings.default_size,
        centrality_metric=settings.centrality_metric,
        emit=emit,
    )
    for nid, s in sizes.items():
        model.nodes[nid].size = s
    return sizes
