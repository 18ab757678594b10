"""
test_barnes_hut.py

Quadtree / octree approximation of pairwise interactions.
"""

import numpy as np
import pytest

from graphscape.layout.barnes_hut import BarnesHutTree


def _exact(points, masses, i):
    d = points - points[i]
    l2 = (d ** 2).sum(axis=1)
    l2[i] = np.inf
    return (d * (masses / l2)[:, None]).sum(axis=0)


def _approx(tree, i):
    coms, ms = tree.interactions(i)
    d = coms - tree.points[i]
    l2 = (d ** 2).sum(axis=1)
    return (d * (ms / l2)[:, None]).sum(axis=0)


class TestTree:
    def test_root_mass_is_total(self):
        rng = np.random.default_rng(0)
        pts = rng.uniform(-100, 100, size=(50, 2))
        masses = rng.uniform(1, 3, size=50)
        tree = BarnesHutTree(pts, masses)
        assert tree.root.mass == pytest.approx(masses.sum())

    def test_tiny_theta_is_exact(self):
        rng = np.random.default_rng(1)
        pts = rng.uniform(-10, 10, size=(30, 2))
        tree = BarnesHutTree(pts, theta=1e-9)
        coms, masses = tree.interactions(0)
        assert len(masses) == 29
        assert masses.sum() == pytest.approx(29.0)

    def test_self_never_included(self):
        pts = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        coms, _ = BarnesHutTree(pts).interactions(0)
        assert not any(np.allclose(c, pts[0]) for c in coms)

    def test_coincident_points_terminate(self):
        pts = np.zeros((5, 2))
        coms, masses = BarnesHutTree(pts).interactions(0)
        assert len(masses) == 4

    def test_empty(self):
        tree = BarnesHutTree(np.zeros((0, 2)))
        assert tree.root is None
        coms, masses = tree.interactions(0)
        assert len(masses) == 0


@pytest.mark.parametrize("dim", [2, 3])
def test_approximates_exact_field(dim):
    rng = np.random.default_rng(7)
    pts = rng.uniform(-500, 500, size=(200, dim))
    masses = np.ones(200)
    tree = BarnesHutTree(pts, masses, theta=0.5)

    exact = np.array([_exact(pts, masses, i) for i in range(200)])
    approx = np.array([_approx(tree, i) for i in range(200)])

    rel = np.linalg.norm(approx - exact) / np.linalg.norm(exact)
    assert rel < 0.1
