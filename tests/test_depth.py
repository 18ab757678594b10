"""
test_depth.py

Longest-path depth layering and cycle detection.
"""

import pytest

from graphscape.depth import DAG_LEVEL_NODE_RATIO, compute_depths, get_node_depth
from graphscape.errors import CircularGraphError
from graphscape.loader import build_graph
from graphscape.model import GraphEdge, GraphNode


def _graph(ids, pairs):
    return build_graph(
        [{"id": i} for i in ids],
        [{"source": s, "target": t} for s, t in pairs],
    )


class TestDepths:
    def test_chain(self):
        res = compute_depths(_graph("abc", [("a", "b"), ("b", "c")]))
        assert not res.invalid
        assert res.as_dict() == {"a": 0, "b": 1, "c": 2}
        assert res.max_depth == 2

    def test_longest_path_wins(self):
        res = compute_depths(_graph("abc", [("a", "c"), ("a", "b"), ("b", "c")]))
        assert res.depth_of("c") == 2

    def test_multiple_roots(self):
        res = compute_depths(_graph("abcd", [("a", "c"), ("b", "c"), ("c", "d")]))
        assert res.depth_of("a") == 0
        assert res.depth_of("b") == 0
        assert res.depth_of("d") == 2

    def test_edgeless_graph(self):
        res = compute_depths(_graph("xyz", []))
        assert not res.invalid
        assert res.max_depth == 0
        assert set(res.as_dict().values()) == {0}

    def test_empty_graph(self):
        res = compute_depths(_graph("", []))
        assert not res.invalid
        assert res.depths == {}

    def test_in_and_out_lists(self):
        res = compute_depths(_graph("abc", [("a", "b"), ("a", "c")]))
        a = res.depths["a"]
        assert [n.id for n in a.out] == ["b", "c"]
        assert [n.id for n in res.depths["b"].ins] == ["a"]

    def test_unknown_endpoints_are_skipped(self):
        res = get_node_depth(
            [GraphNode(id="a"), GraphNode(id="b")],
            [GraphEdge(id="e1", source="a", target="b"),
             GraphEdge(id="e2", source="a", target="ghost")],
        )
        assert res.as_dict() == {"a": 0, "b": 1}


class TestCycles:
    def test_two_cycle_is_invalid(self):
        events = []
        res = get_node_depth(
            [GraphNode(id="a"), GraphNode(id="b")],
            [GraphEdge(id="e1", source="a", target="b"),
             GraphEdge(id="e2", source="b", target="a")],
            emit=lambda kind, payload: events.append(payload),
        )
        assert res.invalid
        assert set(res.as_dict().values()) == {0}
        assert res.max_depth == 0
        assert res.cycle[0] == res.cycle[-1]
        assert set(res.cycle) == {"a", "b"}
        assert any("Circular" in p["message"] for p in events)

    def test_self_loop_is_invalid(self):
        res = compute_depths(_graph("ab", [("a", "b"), ("b", "b")]))
        assert res.invalid
        assert res.cycle == ["b", "b"]

    def test_cycle_downstream_of_dag(self):
        res = compute_depths(
            _graph("abcd", [("a", "b"), ("b", "c"), ("c", "d"), ("d", "b")])
        )
        assert res.invalid
        assert set(res.cycle) == {"b", "c", "d"}

    def test_cycle_path_follows_edges(self):
        pairs = [("a", "b"), ("b", "c"), ("c", "d"), ("d", "b"), ("a", "e")]
        res = compute_depths(_graph("abcde", pairs))
        assert res.invalid
        assert res.cycle[0] == res.cycle[-1]
        for hop in zip(res.cycle, res.cycle[1:]):
            assert hop in pairs

    def test_depths_respect_every_edge(self):
        pairs = [("a", "c"), ("b", "c"), ("c", "e"), ("a", "d"), ("d", "e"), ("e", "f")]
        res = compute_depths(_graph("fedcba", pairs))
        assert not res.invalid
        for s, t in pairs:
            assert res.depth_of(t) > res.depth_of(s)
        assert res.as_dict() == {"f": 3, "e": 2, "d": 1, "c": 1, "b": 0, "a": 0}
        assert res.max_depth == 3

    def test_error_carries_path(self):
        err = CircularGraphError(["a", "b", "a"])
        assert err.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(err)


class TestLevelDistance:
    def test_proportional_to_nodes_per_level(self):
        res = compute_depths(_graph("abc", [("a", "b"), ("b", "c")]))
        assert res.level_distance(3) == pytest.approx(3 / 2 * DAG_LEVEL_NODE_RATIO)
        assert res.level_distance(3, radial=True) == pytest.approx(3 / 2 * DAG_LEVEL_NODE_RATIO * 0.7)

    def test_flat_graph_uses_one_level(self):
        res = compute_depths(_graph("abcd", []))
        assert res.level_distance(4) == pytest.approx(4 * DAG_LEVEL_NODE_RATIO)
