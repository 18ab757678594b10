"""
test_collapse.py

Collapsed-state queries, expand paths and visible entity resolution.
"""

from graphscape.collapse import CollapseResolver
from graphscape.loader import build_graph


def _graph(ids, pairs):
    return build_graph(
        [{"id": i} for i in ids],
        [{"source": s, "target": t} for s, t in pairs],
    )


class TestIsCollapsed:
    def test_self_and_descendants(self):
        g = _graph("abcx", [("a", "b"), ("b", "c")])
        r = CollapseResolver(g, ["a"])
        assert r.get_is_collapsed("a")
        assert r.get_is_collapsed("c")
        assert not r.get_is_collapsed("x")

    def test_unknown_and_empty(self):
        g = _graph("ab", [("a", "b")])
        assert not CollapseResolver(g).get_is_collapsed("b")
        assert not CollapseResolver(g, ["a"]).get_is_collapsed("ghost")

    def test_cyclic_parents_terminate(self):
        g = build_graph(
            [{"id": "a", "parents": ["b"]}, {"id": "b", "parents": ["a"]}, {"id": "c"}],
            [],
        )
        r = CollapseResolver(g, ["c"])
        assert not r.get_is_collapsed("a")

    def test_collapse_and_expand(self):
        g = _graph("ab", [("a", "b")])
        r = CollapseResolver(g)
        r.collapse("a")
        assert r.get_is_collapsed("b")
        r.expand("a")
        assert not r.get_is_collapsed("b")


class TestExpandPath:
    def test_collapsed_middle_of_chain(self):
        g = build_graph(
            [{"id": "A"}, {"id": "B", "parents": ["A"]}, {"id": "C", "parents": ["B"]}],
            [],
        )
        r = CollapseResolver(g, ["B"])
        assert r.get_is_collapsed("C")
        assert not r.get_is_collapsed("A")
        assert r.get_expand_path_ids("C") == ["B"]

    def test_chain_root_first_target_excluded(self):
        g = _graph("abcd", [("a", "b"), ("b", "c"), ("c", "d")])
        r = CollapseResolver(g, ["a", "c"])
        assert r.get_expand_path_ids("d") == ["a", "c"]
        assert r.get_expand_path_ids("c") == ["a"]
        assert r.get_expand_path_ids("a") == []

    def test_prefers_fewest_collapsed(self):
        g = _graph(
            ["r", "p1", "p2", "d"],
            [("r", "p1"), ("r", "p2"), ("p1", "d"), ("p2", "d")],
        )
        r = CollapseResolver(g, ["p1"])
        assert r.get_expand_path_ids("d") == []

    def test_then_fewest_hops(self):
        g = _graph(
            ["r1", "m1", "p1", "r2", "p2", "d"],
            [("r1", "m1"), ("m1", "p1"), ("p1", "d"), ("r2", "p2"), ("p2", "d")],
        )
        r = CollapseResolver(g, ["m1", "r2"])
        assert r.get_expand_path_ids("d") == ["r2"]

    def test_then_first_listed_parent(self):
        g = _graph(
            ["r1", "p1", "r2", "p2", "d"],
            [("r1", "p1"), ("p1", "d"), ("r2", "p2"), ("p2", "d")],
        )
        r = CollapseResolver(g, ["r1", "r2"])
        assert g.nodes["d"].parents == ["p1", "p2"]
        assert r.get_expand_path_ids("d") == ["r1"]

    def test_cycle_without_root(self):
        g = build_graph(
            [{"id": "a", "parents": ["b"]}, {"id": "b", "parents": ["a"]}],
            [],
        )
        r = CollapseResolver(g, ["b"])
        assert r.get_expand_path_ids("a") == ["b"]

    def test_unknown_node(self):
        g = _graph("a", [])
        assert CollapseResolver(g, ["a"]).get_expand_path_ids("ghost") == []


class TestVisibleEntities:
    def test_descendants_hidden(self):
        g = _graph("abc", [("a", "b"), ("b", "c")])
        v = CollapseResolver(g, ["a"]).get_visible_entities()
        assert v.node_ids == ["a"]
        assert v.edge_ids == []
        assert v.hidden_node_ids == {"b", "c"}

    def test_node_with_other_visible_parent_stays(self):
        g = _graph("acx", [("a", "c"), ("x", "c")])
        v = CollapseResolver(g, ["a"]).get_visible_entities()
        assert "c" in v.node_ids
        assert v.hidden_edge_ids == {"a->c"}
        assert v.edge_ids == ["x->c"]

    def test_cycle_back_to_root(self):
        g = _graph("ab", [("a", "b"), ("b", "a")])
        v = CollapseResolver(g, ["a"]).get_visible_entities()
        assert v.node_ids == ["a"]
        assert v.hidden_edge_ids == {"a->b", "b->a"}

    def test_nothing_collapsed(self):
        g = _graph("ab", [("a", "b")])
        v = CollapseResolver(g).get_visible_entities()
        assert v.node_ids == ["a", "b"]
        assert v.edge_ids == ["a->b"]
