"""
Barnes-Hut space partitioning (quadtree in 2D, octree in 3D).

The tree aggregates per-cell mass and centre of mass. ``interactions(i)``
walks it for point ``i`` and returns the (position, mass) pairs the point
should interact with: far cells are replaced by their centre of mass, near
cells are opened down to individual points. Callers apply their own force
kernel to the returned arrays, so the same tree serves both the d3-style
many-body force and ForceAtlas2 repulsion.

A cell is far enough when ``width**2 / theta**2 < dist**2`` and the point
is not inside it.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

# Coincident points stop subdividing at this depth and share a bucket
MAX_DEPTH = 24


class _Cell:
    __slots__ = ("center", "half", "children", "points", "mass", "weight", "com")

    def __init__(self, center: np.ndarray, half: float) -> None:
        self.center = center
        self.half = half
        self.children: Optional[List[Optional["_Cell"]]] = None
        self.points: List[int] = []
        self.mass = 0.0
        self.weight = 0.0
        self.com = np.zeros_like(center)

    def contains(self, p: np.ndarray) -> bool:
        return bool(np.all(np.abs(p - self.center) <= self.half))


class BarnesHutTree:
    def __init__(
        self,
        points: np.ndarray,
        masses: Optional[np.ndarray] = None,
        theta: float = 0.9,
    ) -> None:
        self.points = np.asarray(points, dtype=float)
        n = len(self.points)
        self.dim = self.points.shape[1] if n else 2
        self.masses = (
            np.ones(n, dtype=float) if masses is None else np.asarray(masses, dtype=float)
        )
        self.theta2 = max(float(theta), 1e-9) ** 2
        self.root: Optional[_Cell] = None

        if n == 0:
            return

        lo = self.points.min(axis=0)
        hi = self.points.max(axis=0)
        center = (lo + hi) / 2.0
        half = float(max((hi - lo).max() / 2.0, 1e-6)) * 1.0001

        self.root = _Cell(center, half)
        for i in range(n):
            self._insert(self.root, i, 0)
        self._accumulate(self.root)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    def _child_index(self, cell: _Cell, p: np.ndarray) -> int:
        idx = 0
        for axis in range(self.dim):
            if p[axis] >= cell.center[axis]:
                idx |= 1 << axis
        return idx

    def _make_child(self, cell: _Cell, idx: int) -> _Cell:
        h = cell.half / 2.0
        offset = np.array(
            [h if (idx >> axis) & 1 else -h for axis in range(self.dim)], dtype=float
        )
        return _Cell(cell.center + offset, h)

    def _insert(self, cell: _Cell, i: int, depth: int) -> None:
        while True:
            if cell.children is None:
                if not cell.points or depth >= MAX_DEPTH:
                    cell.points.append(i)
                    return
                # split the leaf and push its points down
                existing = cell.points
                cell.points = []
                cell.children = [None] * (1 << self.dim)
                for j in existing:
                    self._insert_child(cell, j, depth)

            idx = self._child_index(cell, self.points[i])
            child = cell.children[idx]
            if child is None:
                child = self._make_child(cell, idx)
                cell.children[idx] = child
            cell = child
            depth += 1

    def _insert_child(self, cell: _Cell, j: int, depth: int) -> None:
        idx = self._child_index(cell, self.points[j])
        child = cell.children[idx]
        if child is None:
            child = self._make_child(cell, idx)
            cell.children[idx] = child
        self._insert(child, j, depth + 1)

    def _accumulate(self, root: _Cell) -> None:
        # post-order without recursion
        order: List[_Cell] = []
        stack = [root]
        while stack:
            c = stack.pop()
            order.append(c)
            if c.children is not None:
                stack.extend(ch for ch in c.children if ch is not None)

        for c in reversed(order):
            if c.children is None:
                idx = c.points
                w = np.abs(self.masses[idx])
                c.mass = float(self.masses[idx].sum())
                c.weight = float(w.sum())
                if c.weight > 0:
                    c.com = (self.points[idx] * w[:, None]).sum(axis=0) / c.weight
                else:
                    c.com = self.points[idx].mean(axis=0)
                continue

            kids = [ch for ch in c.children if ch is not None]
            c.mass = sum(ch.mass for ch in kids)
            c.weight = sum(ch.weight for ch in kids)
            if c.weight > 0:
                c.com = sum(ch.com * ch.weight for ch in kids) / c.weight
            else:
                c.com = sum(ch.com for ch in kids) / len(kids)

    # ------------------------------------------------------------------ #
    # Query
    # ------------------------------------------------------------------ #

    def interactions(self, i: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return ``(positions, masses)`` of the bodies point ``i`` interacts
        with; point ``i`` itself is never included.
        """
        if self.root is None:
            return np.zeros((0, self.dim)), np.zeros(0)

        p = self.points[i]
        coms: List[np.ndarray] = []
        masses: List[float] = []

        stack = [self.root]
        while stack:
            cell = stack.pop()
            width = 2.0 * cell.half
            d = cell.com - p
            dist2 = float(d @ d)

            if (
                cell.children is not None
                and width * width / self.theta2 < dist2
                and not cell.contains(p)
            ):
                coms.append(cell.com)
                masses.append(cell.mass)
                continue

            if cell.children is None:
                for j in cell.points:
                    if j == i:
                        continue
                    coms.append(self.points[j])
                    masses.append(float(self.masses[j]))
                continue

            stack.extend(ch for ch in cell.children if ch is not None)

        if not coms:
            return np.zeros((0, self.dim)), np.zeros(0)
        return np.array(coms), np.array(masses)
