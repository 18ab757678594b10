"""
Force-directed layout (2D / 3D), d3-force style.

Each tick:
  1. alpha decays toward 0
  2. forces accumulate into velocities:
       - link springs        (distance, strength 1/min(count), degree bias)
       - many-body charge    (exact chunked O(n^2) or Barnes-Hut)
       - centering gravity   (x / y / z toward the origin)
       - collision           (radius = size + padding)
       - cluster pull / push (optional)
  3. velocities decay and integrate into positions
  4. constraints: DAG axis pinning, radial projection, pins and drags

A step runs ``ticks_per_step`` ticks and publishes a snapshot; ``step()``
returns True while alpha is still above ``alpha_min``.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Optional

import numpy as np

from ..clusters import calculate_cluster_centers, cluster_membership
from ..depth import DepthResult, compute_depths
from ..events import Emit, log_event
from ..model import GraphModel, Position
from ..presets import DAG_MODES, LayoutConfig
from .barnes_hut import BarnesHutTree
from .base import PAIR_BUDGET, LayoutStrategy

logger = logging.getLogger(__name__)

INITIAL_RADIUS = 10.0
INITIAL_ANGLE_ROLL = math.pi * (3.0 - math.sqrt(5.0))
INITIAL_ANGLE_YAW = math.pi * 20.0 / (9.0 + math.sqrt(221.0))

# dag_mode -> (axis, sign)
_DAG_AXES = {
    "lr": (0, 1.0),
    "rl": (0, -1.0),
    "td": (1, 1.0),
    "bu": (1, -1.0),
    "zout": (2, 1.0),
    "zin": (2, -1.0),
}
RADIAL_MODES = ("radialin", "radialout")


def seed_position(i: int, dimensions: int) -> np.ndarray:
    """Deterministic phyllotaxis (2D) / spherical spiral (3D) seed."""
    roll = i * INITIAL_ANGLE_ROLL
    if dimensions == 3:
        r = INITIAL_RADIUS * math.pow(0.5 + i, 1.0 / 3.0)
        yaw = i * INITIAL_ANGLE_YAW
        return np.array(
            [r * math.sin(roll) * math.cos(yaw), r * math.cos(roll), r * math.sin(roll) * math.sin(yaw)]
        )
    r = INITIAL_RADIUS * math.sqrt(0.5 + i)
    return np.array([r * math.cos(roll), r * math.sin(roll), 0.0])


class ForceDirectedLayout(LayoutStrategy):
    name = "forceDirected"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        dimensions: Optional[int] = None,
        dag_mode: Optional[str] = None,
        depth: Optional[DepthResult] = None,
        emit: Optional[Emit] = None,
    ) -> None:
        super().__init__(model, config, emit=emit)
        if dimensions is not None:
            self.dimensions = 3 if dimensions == 3 else 2
        self.name = f"forceDirected{self.dimensions}d"

        s = self.config.force
        self.settings = s
        self.alpha = float(s.alpha)
        self.alpha_min = float(s.alpha_min)
        self.alpha_decay = s.resolved_alpha_decay()
        self.velocity_decay = float(s.velocity_decay)
        self.energy = 0.0
        self.rng = np.random.default_rng(self.config.seed)

        n = len(self.node_ids)
        self.pos = np.zeros((n, 3), dtype=float)
        self.vel = np.zeros((n, 3), dtype=float)
        self.sizes = np.array(
            [model.nodes[nid].size or 1.0 for nid in self.node_ids], dtype=float
        )

        self._init_links()
        self._init_clusters()
        self._init_dag(dag_mode, depth)
        self._init_positions()
        self._apply_constraints()
        self._publish_current()

    # ------------------------------------------------------------------ #
    # Setup
    # ------------------------------------------------------------------ #

    def _init_links(self) -> None:
        src, tgt, w = [], [], []
        for e in self.model.edges.values():
            if e.source == e.target:
                continue
            src.append(self.index[e.source])
            tgt.append(self.index[e.target])
            w.append(e.weight)

        self.src = np.array(src, dtype=int)
        self.tgt = np.array(tgt, dtype=int)

        count = np.zeros(len(self.node_ids), dtype=float)
        np.add.at(count, self.src, 1.0)
        np.add.at(count, self.tgt, 1.0)

        if len(self.src):
            cs, ct = count[self.src], count[self.tgt]
            self.link_bias = cs / (cs + ct)
            self.link_strength = 1.0 / np.minimum(cs, ct)
            if self.settings.weighted:
                weights = np.abs(np.array(w, dtype=float))
                self.link_strength *= weights ** self.settings.edge_weight_influence
        else:
            self.link_bias = np.zeros(0)
            self.link_strength = np.zeros(0)

    def _init_clusters(self) -> None:
        key = self.config.cluster_attribute
        self.membership = cluster_membership(self.model.nodes.values(), key) if key else {}
        labels = list(dict.fromkeys(self.membership.values()))
        lookup = {lab: k for k, lab in enumerate(labels)}
        self.cluster_labels = labels
        self.cluster_index = np.array(
            [lookup.get(self.membership.get(nid), -1) for nid in self.node_ids], dtype=int
        )

    def _init_dag(self, dag_mode: Optional[str], depth: Optional[DepthResult]) -> None:
        self.dag_mode: Optional[str] = None
        self.depth = depth
        self._dag_axis: Optional[int] = None
        self._dag_values: Optional[np.ndarray] = None
        self._radial_targets: Optional[np.ndarray] = None

        if not dag_mode:
            return
        if dag_mode not in DAG_MODES:
            raise ValueError(f"Unknown DAG mode {dag_mode!r}; expected one of {', '.join(DAG_MODES)}")

        if self.dimensions == 2 and dag_mode in ("zin", "zout"):
            log_event(
                logger,
                f"[layout] DAG mode '{dag_mode}' needs 3 dimensions; using plain force layout.",
                self.emit,
                level=logging.WARNING,
            )
            return

        if self.depth is None:
            self.depth = compute_depths(self.model, self.emit)
        if self.depth.invalid:
            log_event(
                logger,
                f"[layout] Graph is cyclic; DAG mode '{dag_mode}' falls back to plain force layout.",
                self.emit,
                level=logging.WARNING,
                cycle=self.depth.cycle,
            )
            return

        self.dag_mode = dag_mode
        radial = dag_mode in RADIAL_MODES
        dist = self.depth.level_distance(len(self.node_ids), radial=radial)
        levels = np.array([self.depth.depth_of(nid) for nid in self.node_ids], dtype=float)
        max_depth = float(self.depth.max_depth)

        if radial:
            if dag_mode == "radialin":
                self._radial_targets = (max_depth - levels) * dist
            else:
                self._radial_targets = levels * dist
            return

        axis, sign = _DAG_AXES[dag_mode]
        self._dag_axis = axis
        self._dag_values = sign * (levels - max_depth / 2.0) * dist

    def _init_positions(self) -> None:
        centers = calculate_cluster_centers(
            self.model.nodes.values(), self.config.cluster_attribute
        ) if self.cluster_labels else {}
        local: Dict[str, int] = {}

        for i, nid in enumerate(self.node_ids):
            prior = self.prior_position(nid)
            if prior is not None:
                self.pos[i] = prior.as_tuple()
                continue
            label = self.membership.get(nid)
            if label in centers:
                k = local.get(label, 0)
                local[label] = k + 1
                self.pos[i] = np.array(centers[label].as_tuple()) + seed_position(k, self.dimensions)
            else:
                self.pos[i] = seed_position(i, self.dimensions)

        if self.dimensions == 2:
            self.pos[:, 2] = 0.0

    # ------------------------------------------------------------------ #
    # Forces
    # ------------------------------------------------------------------ #

    def _jiggle(self, shape) -> np.ndarray:
        return (self.rng.random(shape) - 0.5) * 1e-6

    def _force_link(self, P: np.ndarray, V: np.ndarray, alpha: float) -> None:
        if not len(self.src):
            return
        s, t = self.src, self.tgt
        delta = (P[t] + V[t]) - (P[s] + V[s])
        l = np.sqrt((delta ** 2).sum(axis=1))
        zero = l == 0
        if zero.any():
            delta[zero] = self._jiggle((int(zero.sum()), delta.shape[1]))
            l = np.sqrt((delta ** 2).sum(axis=1))

        k = (l - self.settings.link_distance) / l * alpha * self.link_strength
        delta *= k[:, None]
        np.add.at(V, t, -delta * self.link_bias[:, None])
        np.add.at(V, s, delta * (1.0 - self.link_bias)[:, None])

    def _force_charge_exact(self, P: np.ndarray, V: np.ndarray, alpha: float) -> None:
        n = len(P)
        strength = float(self.settings.node_strength)
        chunk = max(1, PAIR_BUDGET // max(n, 1))

        for start in range(0, n, chunk):
            end = min(n, start + chunk)
            rows = np.arange(end - start)
            diff = P[None, :, :] - P[start:end, None, :]
            l2 = (diff ** 2).sum(axis=-1)

            zero = l2 == 0
            zero[rows, rows + start] = False
            if zero.any():
                diff[zero] = self._jiggle((int(zero.sum()), diff.shape[-1]))
                l2 = (diff ** 2).sum(axis=-1)

            l2 = np.where(l2 < 1.0, np.sqrt(l2), l2)
            l2[rows, rows + start] = np.inf
            w = strength * alpha / l2
            V[start:end] += (diff * w[..., None]).sum(axis=1)

    def _force_charge_barnes_hut(self, P: np.ndarray, V: np.ndarray, alpha: float) -> None:
        n = len(P)
        strengths = np.full(n, float(self.settings.node_strength))
        tree = BarnesHutTree(P.copy(), strengths, theta=self.settings.barnes_hut_theta)

        for i in range(n):
            coms, masses = tree.interactions(i)
            if not len(masses):
                continue
            diff = coms - P[i]
            l2 = (diff ** 2).sum(axis=1)
            keep = l2 > 0
            if not keep.all():
                diff, l2, masses = diff[keep], l2[keep], masses[keep]
            l2 = np.where(l2 < 1.0, np.sqrt(l2), l2)
            V[i] += (diff * (masses * alpha / l2)[:, None]).sum(axis=0)

    def _force_center(self, P: np.ndarray, V: np.ndarray, alpha: float) -> None:
        V -= P * (self.settings.center_strength * alpha)

    def _force_collide(self, P: np.ndarray, V: np.ndarray) -> None:
        n = len(P)
        r = self.sizes + self.settings.cluster_padding
        r2 = r ** 2
        Q = P + V
        strength = float(self.settings.collide_strength)
        chunk = max(1, PAIR_BUDGET // max(n, 1))

        for start in range(0, n, chunk):
            end = min(n, start + chunk)
            rows = np.arange(end - start)
            diff = Q[start:end, None, :] - Q[None, :, :]
            l2 = (diff ** 2).sum(axis=-1)
            rr = r[start:end, None] + r[None, :]

            overlap = l2 < rr ** 2
            overlap[rows, rows + start] = False
            if not overlap.any():
                continue

            zero = overlap & (l2 == 0)
            if zero.any():
                diff[zero] = self._jiggle((int(zero.sum()), diff.shape[-1]))
                l2 = (diff ** 2).sum(axis=-1)

            l = np.sqrt(np.where(overlap, l2, 1.0))
            push = np.where(overlap, (rr - l) / l * strength, 0.0)
            wj = r2[None, :] / (r2[start:end, None] + r2[None, :])
            V[start:end] += (diff * (push * wj)[..., None]).sum(axis=1)

    def _force_cluster(self, P: np.ndarray, V: np.ndarray, alpha: float) -> None:
        m = self.cluster_index >= 0
        if not m.any():
            return
        K = len(self.cluster_labels)
        lab = self.cluster_index[m]

        centroids = np.zeros((K, P.shape[1]))
        counts = np.zeros(K)
        np.add.at(centroids, lab, P[m])
        np.add.at(counts, lab, 1.0)
        centroids /= np.maximum(counts, 1.0)[:, None]

        V[m] += (centroids[lab] - P[m]) * (self.settings.cluster_strength * alpha)

        inter = float(self.settings.inter_cluster_strength)
        if K < 2 or inter <= 0:
            return
        diff = centroids[:, None, :] - centroids[None, :, :]
        l2 = (diff ** 2).sum(axis=-1)
        l2 = np.where(l2 < 1.0, np.sqrt(l2), l2)
        np.fill_diagonal(l2, np.inf)
        l2 = np.where(l2 == 0, np.inf, l2)
        push = (diff * (inter * alpha / l2)[..., None]).sum(axis=1)
        V[m] += push[lab]

    # ------------------------------------------------------------------ #
    # Constraints
    # ------------------------------------------------------------------ #

    def _apply_constraints(self) -> None:
        d = self.dimensions

        if self._dag_axis is not None and self._dag_axis < d:
            self.pos[:, self._dag_axis] = self._dag_values
            self.vel[:, self._dag_axis] = 0.0

        if self._radial_targets is not None:
            P = self.pos[:, :d]
            norms = np.sqrt((P ** 2).sum(axis=1))
            dirs = np.zeros_like(P)
            nz = norms > 0
            dirs[nz] = P[nz] / norms[nz, None]
            dirs[~nz, 0] = 1.0
            P[:] = dirs * self._radial_targets[:, None]

        for i, nid in enumerate(self.node_ids):
            node = self.model.nodes[nid]
            for axis, fixed in enumerate((node.fx, node.fy, node.fz)):
                if fixed is not None and axis < d:
                    self.pos[i, axis] = float(fixed)
                    self.vel[i, axis] = 0.0

        for nid, p in self._pins.items():
            i = self.index[nid]
            self.pos[i] = p.as_tuple()
            self.vel[i] = 0.0

        if d == 2:
            self.pos[:, 2] = 0.0
            self.vel[:, 2] = 0.0

    # ------------------------------------------------------------------ #
    # Simulation
    # ------------------------------------------------------------------ #

    def tick(self) -> None:
        self.alpha += (0.0 - self.alpha) * self.alpha_decay
        alpha = self.alpha

        d = self.dimensions
        P = self.pos[:, :d]
        V = self.vel[:, :d]

        self._force_link(P, V, alpha)
        if self.settings.barnes_hut:
            self._force_charge_barnes_hut(P, V, alpha)
        else:
            self._force_charge_exact(P, V, alpha)
        self._force_center(P, V, alpha)
        if self.settings.collide:
            self._force_collide(P, V)
        if len(self.cluster_labels):
            self._force_cluster(P, V, alpha)

        V *= 1.0 - self.velocity_decay
        P += V
        self._apply_constraints()

    def step(self) -> bool:
        if not self.node_ids:
            return False
        if self.alpha < self.alpha_min:
            return False

        for _ in range(max(1, int(self.settings.ticks_per_step))):
            if self.alpha < self.alpha_min:
                break
            self.tick()

        self.energy = float((self.vel ** 2).sum())
        self.step_count += 1
        self._publish_current()
        return self.alpha >= self.alpha_min

    def reheat(self, alpha: float = 1.0) -> None:
        self.alpha = float(alpha)

    def pin(self, node_id: str, position) -> None:
        super().pin(node_id, position)
        self._apply_constraints()
        self._publish_current()

    def _publish_current(self) -> None:
        self._publish({
            nid: Position(float(self.pos[i, 0]), float(self.pos[i, 1]), float(self.pos[i, 2]))
            for i, nid in enumerate(self.node_ids)
        })
