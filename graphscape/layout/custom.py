"""
Custom layout: positions come from a user callable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..events import Emit
from ..model import GraphEdge, GraphModel, GraphNode, Position
from ..presets import LayoutConfig
from .base import LayoutStrategy


@dataclass
class NodePositionArgs:
    """Context handed to a custom position callable."""

    model: GraphModel
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    drags: Dict[str, Position] = field(default_factory=dict)


PositionCallable = Callable[[str, NodePositionArgs], Any]


class CustomLayout(LayoutStrategy):
    """
    Wraps ``get_node_position(id, args)``. The callable may return a
    Position, an (x, y[, z]) sequence or an {x, y, z} mapping; None places
    the node at the origin.
    """

    name = "custom"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        get_node_position: Optional[PositionCallable] = None,
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        if get_node_position is None:
            raise ValueError("Custom layout requires a get_node_position callable")
        self.callback = get_node_position
        self._publish(self._compute())

    def _args(self) -> NodePositionArgs:
        return NodePositionArgs(
            model=self.model,
            nodes=list(self.model.nodes.values()),
            edges=list(self.model.edges.values()),
            drags={nid: p.copy() for nid, p in self._pins.items()},
        )

    def _compute(self) -> Dict[str, Position]:
        args = self._args()
        out: Dict[str, Position] = {}
        for nid in self.node_ids:
            pos = Position.coerce(self.callback(nid, args)) or Position()
            if self.dimensions == 2:
                pos.z = 0.0
            out[nid] = pos
        return out

    def step(self) -> bool:
        # re-evaluate so callables that read drags see the latest pins
        if self.node_ids:
            self._publish(self._compute())
        self.step_count += 1
        return False
