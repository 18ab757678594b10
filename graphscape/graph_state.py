"""
GraphState: everything one layout computation produces.

It is intentionally permissive: callers that only need positions can ignore
the rest, and ``meta`` passes arbitrary extras through to the metadata
writer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .analytics import GraphStats
from .clusters import ClusterGroup
from .depth import DepthResult
from .layout.base import LayoutRunResult
from .model import GraphModel, Position
from .presets import LayoutConfig


@dataclass
class GraphState:
    """
    Result of the layout pipeline.

    Contains:
      - the normalised model (positions and sizes written onto its nodes)
      - depth decomposition and chosen layout type
      - cluster geometry
      - visible node / edge ids under the collapsed set
      - run summary and global stats
    """

    config: LayoutConfig
    emit: Any = None

    model: Optional[GraphModel] = None
    depth: Optional[DepthResult] = None
    layout_type: Optional[str] = None
    run: Optional[LayoutRunResult] = None
    stats: Optional[GraphStats] = None

    positions: Dict[str, Position] = field(default_factory=dict)
    sizes: Dict[str, float] = field(default_factory=dict)
    clusters: Dict[str, ClusterGroup] = field(default_factory=dict)

    collapsed_ids: List[str] = field(default_factory=list)
    visible_node_ids: List[str] = field(default_factory=list)
    visible_edge_ids: List[str] = field(default_factory=list)

    overlap_converged: Optional[bool] = None

    meta: Dict[str, Any] = field(default_factory=dict)

    # ------------------------------------------------------------------ #
    def subset(self, nodes_subset) -> "GraphState":
        """
        Return a state restricted to ``nodes_subset`` (edges kept when both
        endpoints survive). Clusters are dropped when any member is removed.
        """
        if self.model is None:
            return self

        keep = set(nodes_subset)
        H = self.model.subset(keep)

        clusters = {
            label: group
            for label, group in self.clusters.items()
            if all(m in keep for m in group.member_ids)
        }

        return GraphState(
            config=self.config,
            emit=self.emit,
            model=H,
            depth=self.depth,
            layout_type=self.layout_type,
            run=self.run,
            stats=self.stats,
            positions={n: p.copy() for n, p in self.positions.items() if n in keep},
            sizes={n: s for n, s in self.sizes.items() if n in keep},
            clusters=clusters,
            collapsed_ids=[c for c in self.collapsed_ids if c in keep],
            visible_node_ids=[n for n in self.visible_node_ids if n in keep],
            visible_edge_ids=[e for e in self.visible_edge_ids if e in H.edges],
            overlap_converged=self.overlap_converged,
            meta=dict(self.meta),
        )
