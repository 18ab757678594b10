"""
ForceAtlas2 (Jacomy et al.), 2D.

Per iteration:
  - repulsion    scaling_ratio * m_i * m_j / d     (exact or Barnes-Hut)
  - gravity      toward the origin, normal or strong
  - attraction   linear or LinLog along edges, weight ** influence,
                 optionally divided by source mass
  - adaptive global speed from swinging / traction, damped per node

Mass is ``1 + degree``. One iteration runs per ``step()`` until the
configured number of iterations is spent.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ..events import Emit
from ..model import GraphModel, Position
from ..presets import ForceAtlas2Settings, LayoutConfig
from .barnes_hut import BarnesHutTree
from .base import PAIR_BUDGET, LayoutStrategy


class ForceAtlas2Layout(LayoutStrategy):
    name = "forceatlas2"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        settings: Optional[ForceAtlas2Settings] = None,
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        self.dimensions = 2
        self.settings = settings or self.config.forceatlas2
        self.iterations_done = 0
        self.speed = 1.0
        self.rng = np.random.default_rng(self.config.seed)

        n = len(self.node_ids)
        self.mass = np.array([1.0 + model.degree(nid) for nid in self.node_ids], dtype=float)
        self.sizes = np.array([model.nodes[nid].size or 1.0 for nid in self.node_ids], dtype=float)

        src, tgt, w = [], [], []
        for e in model.edges.values():
            if e.source == e.target:
                continue
            src.append(self.index[e.source])
            tgt.append(self.index[e.target])
            w.append(abs(e.weight))
        self.src = np.array(src, dtype=int)
        self.tgt = np.array(tgt, dtype=int)
        self.edge_weight = np.array(w, dtype=float) ** self.settings.edge_weight_influence

        spread = 10.0 * math.sqrt(max(n, 1))
        self.pos = self.rng.uniform(-spread, spread, size=(n, 2))
        for i, nid in enumerate(self.node_ids):
            prior = self.prior_position(nid)
            if prior is not None:
                self.pos[i] = (prior.x, prior.y)
        self.old_force = np.zeros((n, 2))
        self._publish_current()

    # ------------------------------------------------------------------ #
    # Forces
    # ------------------------------------------------------------------ #

    def _repulsion_exact(self, F: np.ndarray) -> None:
        s = self.settings
        P, m = self.pos, self.mass
        n = len(P)
        chunk = max(1, PAIR_BUDGET // max(n, 1))

        for start in range(0, n, chunk):
            end = min(n, start + chunk)
            rows = np.arange(end - start)
            diff = P[start:end, None, :] - P[None, :, :]
            d2 = (diff ** 2).sum(axis=-1)
            mm = s.scaling_ratio * m[start:end, None] * m[None, :]

            if s.adjust_sizes:
                # overlapping pairs get a flat, much stronger push
                d = np.sqrt(d2) - self.sizes[start:end, None] - self.sizes[None, :]
                factor = np.where(d > 0, mm / np.where(d > 0, d * d, 1.0), 100.0 * mm)
                factor = np.where(d == 0, 0.0, factor)
            else:
                factor = np.where(d2 > 0, mm / np.where(d2 > 0, d2, 1.0), 0.0)

            factor[rows, rows + start] = 0.0
            F[start:end] += (diff * factor[..., None]).sum(axis=1)

    def _repulsion_barnes_hut(self, F: np.ndarray) -> None:
        s = self.settings
        tree = BarnesHutTree(self.pos.copy(), self.mass, theta=s.barnes_hut_theta)
        for i in range(len(self.pos)):
            coms, masses = tree.interactions(i)
            if not len(masses):
                continue
            diff = self.pos[i] - coms
            d2 = (diff ** 2).sum(axis=1)
            keep = d2 > 0
            factor = np.zeros_like(d2)
            factor[keep] = s.scaling_ratio * self.mass[i] * masses[keep] / d2[keep]
            F[i] += (diff * factor[:, None]).sum(axis=0)

    def _gravity(self, F: np.ndarray) -> None:
        s = self.settings
        d = np.sqrt((self.pos ** 2).sum(axis=1))
        if s.strong_gravity_mode:
            factor = s.scaling_ratio * self.mass * s.gravity
        else:
            factor = np.where(d > 0, s.scaling_ratio * self.mass * s.gravity / np.where(d > 0, d, 1.0), 0.0)
        F -= self.pos * factor[:, None]

    def _attraction(self, F: np.ndarray) -> None:
        if not len(self.src):
            return
        s = self.settings
        coef = float(self.mass.mean()) if s.outbound_attraction_distribution else 1.0

        diff = self.pos[self.src] - self.pos[self.tgt]
        d = np.sqrt((diff ** 2).sum(axis=1))
        if s.adjust_sizes:
            d = d - self.sizes[self.src] - self.sizes[self.tgt]

        safe_d = np.where(d > 0, d, 1.0)
        if s.lin_log_mode:
            factor = np.where(d > 0, -coef * self.edge_weight * np.log1p(safe_d) / safe_d, 0.0)
        elif s.adjust_sizes:
            factor = np.where(d > 0, -coef * self.edge_weight, 0.0)
        else:
            factor = -coef * self.edge_weight

        if s.outbound_attraction_distribution:
            factor = factor / self.mass[self.src]

        f = diff * factor[:, None]
        np.add.at(F, self.src, f)
        np.add.at(F, self.tgt, -f)

    # ------------------------------------------------------------------ #
    def iterate(self) -> None:
        s = self.settings
        n = len(self.pos)
        F = np.zeros((n, 2))

        if s.barnes_hut_optimize:
            self._repulsion_barnes_hut(F)
        else:
            self._repulsion_exact(F)
        self._gravity(F)
        self._attraction(F)

        swinging = self.mass * np.sqrt(((self.old_force - F) ** 2).sum(axis=1))
        traction = self.mass * np.sqrt(((self.old_force + F) ** 2).sum(axis=1)) / 2.0
        total_swing = float(swinging.sum())
        total_traction = float(traction.sum())

        # global speed adaptation
        estimated = 0.05 * math.sqrt(n)
        jitter = max(math.sqrt(estimated), min(10.0, estimated * total_traction / (n * n)))
        if total_swing > 0:
            target = jitter * total_traction / total_swing
            self.speed += min(target - self.speed, 0.5 * self.speed)

        node_speed = self.speed / (1.0 + np.sqrt(self.speed * swinging))
        if s.adjust_sizes:
            # bounded displacement keeps nodes from jumping over each other
            mag = np.sqrt((F ** 2).sum(axis=1))
            cap = np.full_like(mag, np.inf)
            cap[mag > 0] = 10.0 / mag[mag > 0]
            node_speed = np.minimum(node_speed, cap)

        move = F * (node_speed / max(s.slow_down, 1e-9))[:, None]
        for nid in self._pins:
            move[self.index[nid]] = 0.0
        self.pos += move
        for nid, p in self._pins.items():
            self.pos[self.index[nid]] = (p.x, p.y)

        self.old_force = F
        self.iterations_done += 1

    def step(self) -> bool:
        if not self.node_ids:
            return False
        total = int(self.settings.iterations)
        if self.iterations_done >= total:
            return False
        self.iterate()
        self.step_count += 1
        self._publish_current()
        return self.iterations_done < total

    def _publish_current(self) -> None:
        self._publish({
            nid: Position(float(self.pos[i, 0]), float(self.pos[i, 1]), 0.0)
            for i, nid in enumerate(self.node_ids)
        })
