"""
Cluster grouping and cluster boundary geometry.

Nodes are grouped by a data attribute (or a callable over node data). For
each group we compute:
  - centroid of member positions
  - enclosing radius (every member circle lies inside it, plus padding)
  - per-axis bounds
  - a 2D convex hull (scipy.spatial.ConvexHull) for polygon outlines
  - a label anchor just below the enclosing circle

``calculate_cluster_centers`` places cluster seeds evenly on a circle so a
clustered force layout starts with separated groups.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from .model import GraphModel, GraphNode, Position

logger = logging.getLogger(__name__)

ClusterKey = Union[str, Callable[[Dict[str, Any]], Any]]


@dataclass
class ClusterGroup:
    label: str
    center: Position
    radius: float
    padding: float
    member_ids: List[str] = field(default_factory=list)
    bounds: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    hull: Optional[List[Tuple[float, float]]] = None
    label_position: Optional[Position] = None

    def contains(self, position: Position, tol: float = 1e-9) -> bool:
        return self.center.distance_to(position) <= self.radius + tol

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "center": list(self.center.as_tuple()),
            "radius": float(self.radius),
            "padding": float(self.padding),
            "members": list(self.member_ids),
            "bounds": {k: [float(a), float(b)] for k, (a, b) in self.bounds.items()},
            "hull": [list(p) for p in self.hull] if self.hull else None,
            "label_position": (
                list(self.label_position.as_tuple()) if self.label_position else None
            ),
        }


# =========================================================================== #
# Grouping
# =========================================================================== #

def _key_value(node: GraphNode, key: ClusterKey) -> Any:
    if callable(key):
        return key(node.data)
    return node.data.get(key)


def build_cluster_groups(
    nodes: Iterable[GraphNode],
    key: Optional[ClusterKey],
) -> Dict[str, List[GraphNode]]:
    """Group nodes by ``key``; nodes whose key is None stay unclustered."""
    groups: Dict[str, List[GraphNode]] = {}
    if key is None:
        return groups
    for node in nodes:
        value = _key_value(node, key)
        if value is None:
            continue
        groups.setdefault(str(value), []).append(node)
    return groups


def cluster_membership(nodes: Iterable[GraphNode], key: Optional[ClusterKey]) -> Dict[str, str]:
    """``{node_id: cluster_label}`` for clustered nodes."""
    return {
        n.id: label
        for label, members in build_cluster_groups(nodes, key).items()
        for n in members
    }


# =========================================================================== #
# Geometry
# =========================================================================== #

def _hull_2d(pts: np.ndarray) -> Optional[List[Tuple[float, float]]]:
    if len(pts) < 3:
        return None
    if len(np.unique(np.round(pts, 9), axis=0)) < 3:
        return None
    try:
        hull = ConvexHull(pts)
    except QhullError:
        # collinear members
        return None
    return [(float(pts[v, 0]), float(pts[v, 1])) for v in hull.vertices]


def _group_geometry(
    label: str,
    members: List[GraphNode],
    positions: Mapping[str, Position],
    sizes: Mapping[str, float],
    padding: float,
) -> ClusterGroup:
    ids = [n.id for n in members]
    pts = np.array(
        [(positions.get(nid) or Position()).as_tuple() for nid in ids], dtype=float
    )
    rad = np.array([float(sizes.get(nid, 0.0)) for nid in ids], dtype=float)

    c = pts.mean(axis=0)
    dist = np.sqrt(((pts - c) ** 2).sum(axis=1))
    radius = float((dist + rad).max()) + float(padding)

    center = Position(float(c[0]), float(c[1]), float(c[2]))
    bounds = {
        axis: (float(pts[:, k].min()), float(pts[:, k].max()))
        for k, axis in enumerate(("x", "y", "z"))
    }
    return ClusterGroup(
        label=label,
        center=center,
        radius=radius,
        padding=float(padding),
        member_ids=ids,
        bounds=bounds,
        hull=_hull_2d(pts[:, :2]),
        label_position=Position(center.x, center.y - radius, center.z),
    )


def calculate_clusters(
    nodes: Iterable[GraphNode],
    positions: Optional[Mapping[str, Position]] = None,
    key: Optional[ClusterKey] = None,
    padding: float = 40.0,
    sizes: Optional[Mapping[str, float]] = None,
) -> Dict[str, ClusterGroup]:
    """
    Compute ``{label: ClusterGroup}``.

    ``positions`` / ``sizes`` default to the values stored on the nodes.
    """
    nodes = list(nodes)
    if positions is None:
        positions = {n.id: n.position for n in nodes if n.position is not None}
    if sizes is None:
        sizes = {n.id: n.size for n in nodes}

    return {
        label: _group_geometry(label, members, positions, sizes, padding)
        for label, members in build_cluster_groups(nodes, key).items()
    }


def calculate_cluster_centers(
    nodes: Iterable[GraphNode],
    key: Optional[ClusterKey],
    strength: float = 100.0,
) -> Dict[str, Position]:
    """
    Seed centre per cluster, evenly spaced on a circle whose radius grows
    with the number of clusters and the dataset size.
    """
    nodes = list(nodes)
    groups = build_cluster_groups(nodes, key)
    if not groups:
        return {}

    k = len(groups)
    multiplier = k + len(nodes) / 100.0
    centers: Dict[str, Position] = {}
    for idx, label in enumerate(groups):
        theta = (2.0 * math.pi / k) * idx
        centers[label] = Position(
            math.cos(theta) * strength * multiplier,
            math.sin(theta) * strength * multiplier,
            0.0,
        )
    return centers


def clamp_to_cluster(position: Position, group: ClusterGroup) -> Position:
    """Clamp ``position`` inside the cluster's enclosing circle."""
    d = group.center.distance_to(position)
    if d <= group.radius or d == 0.0:
        return position.copy()
    s = group.radius / d
    c = group.center
    return Position(
        c.x + (position.x - c.x) * s,
        c.y + (position.y - c.y) * s,
        c.z + (position.z - c.z) * s,
    )


# =========================================================================== #
# Lazy resolver
# =========================================================================== #

class ClusterResolver:
    """
    Caches cluster geometry and recomputes only when member positions or
    sizes change.
    """

    def __init__(
        self,
        model: GraphModel,
        key: Optional[ClusterKey],
        padding: float = 40.0,
    ) -> None:
        self.model = model
        self.key = key
        self.padding = padding
        self.recomputations = 0
        self._signature: Optional[Tuple] = None
        self._groups: Dict[str, ClusterGroup] = {}

    def _make_signature(
        self,
        positions: Mapping[str, Position],
        sizes: Mapping[str, float],
    ) -> Tuple:
        return tuple(
            (nid, positions[nid].as_tuple() if nid in positions else None, sizes.get(nid))
            for nid in self.model.nodes
        )

    def clusters(
        self,
        positions: Optional[Mapping[str, Position]] = None,
        sizes: Optional[Mapping[str, float]] = None,
    ) -> Dict[str, ClusterGroup]:
        if self.key is None:
            return {}
        positions = positions if positions is not None else self.model.positions()
        sizes = sizes if sizes is not None else self.model.sizes()

        sig = self._make_signature(positions, sizes)
        if sig != self._signature:
            self._groups = calculate_clusters(
                self.model.nodes.values(), positions, self.key, self.padding, sizes
            )
            self._signature = sig
            self.recomputations += 1
        return self._groups

    def invalidate(self) -> None:
        self._signature = None
