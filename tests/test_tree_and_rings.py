"""
test_tree_and_rings.py

Static layouts: tidy tree, circular and concentric rings.
"""

import math

import pytest

from graphscape.layout.circular import CircularLayout, ConcentricLayout
from graphscape.layout.hierarchical import TreeLayout, spanning_forest
from graphscape.loader import build_graph
from graphscape.model import GraphModel, Position
from graphscape.presets import LayoutConfig


def _graph(ids, pairs, data=None):
    data = data or {}
    return build_graph(
        [{"id": i, "data": data.get(i, {})} for i in ids],
        [{"source": s, "target": t} for s, t in pairs],
    )


class TestTreeLayout:
    def test_children_one_level_below_parents(self):
        g = _graph("abcd", [("a", "b"), ("a", "c"), ("b", "d")])
        layout = TreeLayout(g)
        p = layout.positions()

        assert p["b"].y == p["a"].y + 50
        assert p["c"].y == p["a"].y + 50
        assert p["d"].y == p["b"].y + 50
        assert p["a"].x == pytest.approx((p["b"].x + p["c"].x) / 2)
        assert p["b"].x < p["c"].x
        assert layout.tree_depth == {"a": 0, "b": 1, "c": 1, "d": 2}

    def test_left_right_swaps_axes(self):
        g = _graph("ab", [("a", "b")])
        p = TreeLayout(g, direction="lr").positions()
        assert p["b"].x == p["a"].x + 50
        assert p["a"].y == p["b"].y

    def test_node_size_from_config(self):
        g = _graph("ab", [("a", "b")])
        cfg = LayoutConfig(tree_node_size=(20.0, 80.0))
        p = TreeLayout(g, cfg).positions()
        assert p["b"].y - p["a"].y == 80.0

    def test_forest_roots_side_by_side(self):
        g = _graph("abcd", [("a", "b"), ("c", "d")])
        p = TreeLayout(g).positions()
        assert p["a"].x == -25.0
        assert p["c"].x == 25.0
        assert len({q.as_tuple() for q in p.values()}) == 4

    def test_static_layout_settles_immediately(self):
        layout = TreeLayout(_graph("ab", [("a", "b")]))
        assert layout.step() is False

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            TreeLayout(_graph("a", []), direction="diagonal")

    def test_empty(self):
        assert TreeLayout(GraphModel()).positions() == {}

    def test_spanning_forest_breaks_cycles(self):
        g = _graph("abc", [("a", "b"), ("b", "c"), ("c", "a")])
        parent = spanning_forest(g)
        assert list(parent.values()).count(None) >= 1


class TestCircularLayout:
    def test_even_spacing_on_radius(self):
        g = _graph("abcd", [])
        p = CircularLayout(g).positions()
        assert p["a"].as_tuple() == pytest.approx((300.0, 0.0, 0.0))
        assert p["b"].as_tuple() == pytest.approx((0.0, 300.0, 0.0), abs=1e-9)
        assert p["c"].as_tuple() == pytest.approx((-300.0, 0.0, 0.0), abs=1e-9)
        for q in p.values():
            assert q.distance_to(Position()) == pytest.approx(300.0)

    def test_radius_override(self):
        p = CircularLayout(_graph("ab", []), radius=10).positions()
        assert p["a"].x == pytest.approx(10.0)

    def test_empty(self):
        layout = CircularLayout(GraphModel())
        assert layout.positions() == {}
        assert layout.step() is False


class TestConcentricLayout:
    def test_high_degree_nodes_on_inner_ring(self):
        leaves = [f"l{i}" for i in range(7)]
        g = _graph(["hub"] + leaves, [("hub", l) for l in leaves])
        layout = ConcentricLayout(g)
        p = layout.positions()

        assert layout.ring_capacity(0) == 6
        assert layout.levels["hub"] == 0
        assert p["hub"].distance_to(Position()) == pytest.approx(40.0)
        assert layout.levels["l5"] == 1
        assert layout.levels["l6"] == 1
        assert p["l6"].distance_to(Position()) == pytest.approx(140.0)

    def test_fixed_levels_are_respected(self):
        g = _graph("xy", [], data={"x": {"level": 0}, "y": {"level": True}})
        layout = ConcentricLayout(g)
        assert layout.levels == {"x": 0, "y": 1}
        assert layout.positions()["y"].distance_to(Position()) == pytest.approx(140.0)

    def test_ring_capacity_grows(self):
        layout = ConcentricLayout(GraphModel())
        assert layout.ring_capacity(1) == int(2 * math.pi * 140 // 40)
