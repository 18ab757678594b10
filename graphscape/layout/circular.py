"""
Static ring layouts: circular and concentric.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional

from ..events import Emit
from ..model import GraphModel, Position
from ..presets import LayoutConfig
from .base import LayoutStrategy

# Minimum arc length between neighbours on a concentric ring
MIN_NODE_SPACING = 40.0


def _ring(ids: List[str], radius: float) -> Dict[str, Position]:
    n = len(ids)
    return {
        nid: Position(
            radius * math.cos(2.0 * math.pi * i / n),
            radius * math.sin(2.0 * math.pi * i / n),
            0.0,
        )
        for i, nid in enumerate(ids)
    }


class CircularLayout(LayoutStrategy):
    """Nodes evenly spaced, in insertion order, on one circle."""

    name = "circular2d"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        radius: Optional[float] = None,
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        self.dimensions = 2
        self.radius = float(radius if radius is not None else self.config.circular_radius)
        self._publish(_ring(self.node_ids, self.radius) if self.node_ids else {})

    def step(self) -> bool:
        self.step_count += 1
        return False


class ConcentricLayout(LayoutStrategy):
    """
    Concentric rings.

    Nodes carrying a non-negative numeric ``level`` in their data go to that
    ring. The rest fill the free rings in order of descending degree, at most
    ``floor(circumference / MIN_NODE_SPACING)`` per ring.
    """

    name = "concentric2d"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        radius: float = 40.0,
        spacing: float = 100.0,
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        self.dimensions = 2
        self.radius = float(radius)
        self.spacing = float(spacing)
        self.levels: Dict[str, int] = {}
        self._publish(self._compute())

    def ring_radius(self, level: int) -> float:
        return self.radius + level * self.spacing

    def ring_capacity(self, level: int) -> int:
        return max(1, int(2.0 * math.pi * self.ring_radius(level) // MIN_NODE_SPACING))

    def _compute(self) -> Dict[str, Position]:
        fixed: Dict[int, List[str]] = {}
        dynamic: List[str] = []

        for nid, node in self.model.nodes.items():
            level = node.data.get("level")
            if isinstance(level, (int, float)) and not isinstance(level, bool) and level >= 0:
                fixed.setdefault(int(level), []).append(nid)
            else:
                dynamic.append(nid)

        # stable: ties keep insertion order
        dynamic.sort(key=lambda nid: -self.model.degree(nid))

        out: Dict[str, Position] = {}
        for level, ids in fixed.items():
            out.update(_ring(ids, self.ring_radius(level)))
            for nid in ids:
                self.levels[nid] = level

        level = 0
        i = 0
        while i < len(dynamic):
            while level in fixed:
                level += 1
            batch = dynamic[i:i + self.ring_capacity(level)]
            out.update(_ring(batch, self.ring_radius(level)))
            for nid in batch:
                self.levels[nid] = level
            i += len(batch)
            level += 1
        return out

    def step(self) -> bool:
        self.step_count += 1
        return False
