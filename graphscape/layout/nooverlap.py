"""
Overlap removal.

Sweeps a uniform grid over the current positions; each node is bucketed
into every cell its (padded) disc touches and only pairs sharing a cell are
tested. Two nodes collide when

    distance < r_i + r_j + margin,   r = size * ratio

and a colliding pair is pushed apart along the line joining their centres
by half the overlap each. Sweeps repeat until no pair collides or
``max_iterations`` is hit. Only x / y move; z is kept.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Set, Tuple

import numpy as np

from ..events import Emit, log_event
from ..model import GraphModel, Position
from ..presets import LayoutConfig, NoOverlapSettings
from .base import LayoutStrategy

logger = logging.getLogger(__name__)

_EPS = 1e-6


@dataclass
class NoOverlapResult:
    positions: Dict[str, Position] = field(default_factory=dict)
    iterations: int = 0
    converged: bool = True

    @property
    def hit_cap(self) -> bool:
        return not self.converged


def _sweep(
    P: np.ndarray,
    r: np.ndarray,
    margin: float,
    grid_size: int,
) -> Tuple[np.ndarray, int]:
    """One grid sweep; returns (displacements, colliding pair count)."""
    n = len(P)
    disp = np.zeros_like(P)
    if n < 2:
        return disp, 0

    reach = r + margin / 2.0
    lo = (P - reach[:, None]).min(axis=0)
    hi = (P + reach[:, None]).max(axis=0)
    g = max(1, int(grid_size))
    cell = np.maximum((hi - lo) / g, _EPS)

    buckets: Dict[Tuple[int, int], list] = {}
    for i in range(n):
        x0, y0 = np.floor((P[i] - reach[i] - lo) / cell).astype(int)
        x1, y1 = np.floor((P[i] + reach[i] - lo) / cell).astype(int)
        x0, y0 = min(max(0, x0), g - 1), min(max(0, y0), g - 1)
        x1, y1 = min(max(x0, x1), g - 1), min(max(y0, y1), g - 1)
        for cx in range(x0, x1 + 1):
            for cy in range(y0, y1 + 1):
                buckets.setdefault((cx, cy), []).append(i)

    seen: Set[Tuple[int, int]] = set()
    collisions = 0
    for members in buckets.values():
        for a in range(len(members)):
            i = members[a]
            for b in range(a + 1, len(members)):
                j = members[b]
                pair = (i, j) if i < j else (j, i)
                if pair in seen:
                    continue
                seen.add(pair)

                need = r[i] + r[j] + margin
                delta = P[j] - P[i]
                d = math.hypot(delta[0], delta[1])
                if d >= need:
                    continue

                collisions += 1
                if d < _EPS:
                    # coincident: separate along a deterministic angle
                    theta = 2.0 * math.pi * ((i * 0.618033988749895) % 1.0)
                    u = np.array([math.cos(theta), math.sin(theta)])
                else:
                    u = delta / d
                push = (need - d) / 2.0 + _EPS
                disp[i] -= u * push
                disp[j] += u * push
    return disp, collisions


def remove_overlaps(
    positions: Mapping[str, Position],
    sizes: Mapping[str, float],
    settings: Optional[NoOverlapSettings] = None,
    emit: Optional[Emit] = None,
) -> NoOverlapResult:
    """Run sweeps to completion and return adjusted copies of ``positions``."""
    settings = settings or NoOverlapSettings()
    ids = list(positions.keys())
    if not ids:
        return NoOverlapResult()

    P = np.array([(positions[i].x, positions[i].y) for i in ids], dtype=float)
    r = np.array([float(sizes.get(i, 0.0)) * settings.ratio for i in ids], dtype=float)

    iterations = 0
    converged = False
    while iterations < settings.max_iterations:
        disp, collisions = _sweep(P, r, settings.margin, settings.grid_size)
        if collisions == 0:
            converged = True
            break
        P += disp
        iterations += 1
    else:
        _, collisions = _sweep(P, r, settings.margin, settings.grid_size)
        converged = collisions == 0

    if not converged:
        log_event(
            logger,
            f"[nooverlap] Overlaps remain after {iterations} iteration(s).",
            emit,
            level=logging.WARNING,
        )

    out = {
        nid: Position(float(P[k, 0]), float(P[k, 1]), positions[nid].z)
        for k, nid in enumerate(ids)
    }
    return NoOverlapResult(positions=out, iterations=iterations, converged=converged)


class NoOverlapLayout(LayoutStrategy):
    """
    Step-wise overlap removal over the model's current positions (or the
    ``positions`` passed in). One sweep per step.
    """

    name = "nooverlap"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        positions: Optional[Mapping[str, Position]] = None,
        sizes: Optional[Mapping[str, float]] = None,
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        self.dimensions = 2
        self.settings = self.config.nooverlap
        self.iterations = 0
        self.converged = False

        positions = positions if positions is not None else model.positions()
        sizes = sizes if sizes is not None else model.sizes()

        self.P = np.array(
            [
                (positions[nid].x, positions[nid].y) if nid in positions else (0.0, 0.0)
                for nid in self.node_ids
            ],
            dtype=float,
        ).reshape(-1, 2)
        self.z = [positions[nid].z if nid in positions else 0.0 for nid in self.node_ids]
        self.r = np.array(
            [float(sizes.get(nid, 0.0)) * self.settings.ratio for nid in self.node_ids],
            dtype=float,
        )
        self._publish_current()

    def step(self) -> bool:
        if not self.node_ids or self.converged:
            return False
        if self.iterations >= self.settings.max_iterations:
            return False

        for nid, p in self._pins.items():
            self.P[self.index[nid]] = (p.x, p.y)

        disp, collisions = _sweep(self.P, self.r, self.settings.margin, self.settings.grid_size)
        if collisions == 0:
            self.converged = True
            return False

        for nid in self._pins:
            disp[self.index[nid]] = 0.0
        self.P += disp
        self.iterations += 1
        self.step_count += 1
        self._publish_current()
        return self.iterations < self.settings.max_iterations

    def _publish_current(self) -> None:
        self._publish({
            nid: Position(float(self.P[k, 0]), float(self.P[k, 1]), float(self.z[k]))
            for k, nid in enumerate(self.node_ids)
        })
