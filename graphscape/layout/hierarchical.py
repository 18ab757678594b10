"""
Closed-form tidy tree layout over a spanning forest.

Each node's parent is its first inbound neighbour (the first one that does
not close a loop in the forest). Leaves take consecutive breadth slots in
depth-first order and every parent is centred over its children, so
sibling subtrees never overlap. Roots of separate trees sit side by side.

    td: breadth on x, depth on +y
    lr: breadth on y, depth on +x
"""

from __future__ import annotations

from typing import Dict, List, Optional

from ..events import Emit
from ..model import GraphModel, Position
from ..presets import LayoutConfig
from .base import LayoutStrategy

TREE_DIRECTIONS = ("td", "lr")


def spanning_forest(model: GraphModel) -> Dict[str, Optional[str]]:
    """``{node_id: parent_id or None}`` picking the first inbound neighbour."""
    parent: Dict[str, Optional[str]] = {}

    def _creates_loop(child: str, candidate: str) -> bool:
        cur: Optional[str] = candidate
        seen = set()
        while cur is not None and cur not in seen:
            if cur == child:
                return True
            seen.add(cur)
            cur = parent.get(cur)
        return False

    for nid in model.nodes:
        parent[nid] = None
        for pred in model.predecessors(nid):
            if pred == nid or _creates_loop(nid, pred):
                continue
            parent[nid] = pred
            break
    return parent


class TreeLayout(LayoutStrategy):
    name = "hierarchical"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        direction: str = "td",
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        if direction not in TREE_DIRECTIONS:
            raise ValueError(f"Unknown tree direction {direction!r}")
        self.direction = direction
        self.name = "hierarchicalTd" if direction == "td" else "hierarchicalLr"
        self.node_size = tuple(self.config.tree_node_size or (50.0, 50.0))
        self.tree_depth: Dict[str, int] = {}
        self._publish(self._compute())

    def _compute(self) -> Dict[str, Position]:
        if not self.node_ids:
            return {}

        parent = spanning_forest(self.model)
        children: Dict[str, List[str]] = {nid: [] for nid in self.node_ids}
        roots: List[str] = []
        for nid in self.node_ids:
            p = parent[nid]
            if p is None:
                roots.append(nid)
            else:
                children[p].append(nid)

        breadth: Dict[str, float] = {}
        next_slot = 0.0

        # iterative post-order: leaves take slots, parents centre on children
        for root in roots:
            self.tree_depth[root] = 0
            stack = [(root, False)]
            while stack:
                nid, expanded = stack.pop()
                kids = children[nid]
                if not expanded:
                    stack.append((nid, True))
                    for c in reversed(kids):
                        self.tree_depth[c] = self.tree_depth[nid] + 1
                        stack.append((c, False))
                    continue
                if kids:
                    breadth[nid] = (breadth[kids[0]] + breadth[kids[-1]]) / 2.0
                else:
                    breadth[nid] = next_slot
                    next_slot += 1.0

        offset = (next_slot - 1.0) / 2.0
        sx, sy = float(self.node_size[0]), float(self.node_size[1])

        out: Dict[str, Position] = {}
        for nid in self.node_ids:
            b = (breadth[nid] - offset) * sx
            d = self.tree_depth[nid] * sy
            if self.direction == "td":
                out[nid] = Position(b, d, 0.0)
            else:
                out[nid] = Position(d, b, 0.0)
        return out

    def step(self) -> bool:
        self.step_count += 1
        return False
