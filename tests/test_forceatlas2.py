"""
test_forceatlas2.py

ForceAtlas2 strategy: iteration budget, variants, pins.
"""

import math

import pytest

from graphscape.layout import forceatlas2 as fa2_mod
from graphscape.layout.base import run_layout
from graphscape.layout.forceatlas2 import ForceAtlas2Layout
from graphscape.loader import build_graph
from graphscape.model import GraphModel, Position
from graphscape.presets import ForceAtlas2Settings, LayoutConfig


@pytest.fixture
def graph():
    ids = [f"n{i}" for i in range(12)]
    pairs = [(ids[i], ids[i + 1]) for i in range(11)] + [("n0", "n5"), ("n3", "n9")]
    return build_graph(
        [{"id": i} for i in ids],
        [{"source": s, "target": t} for s, t in pairs],
    )


def _finite(positions):
    return all(math.isfinite(c) for p in positions.values() for c in p.as_tuple())


class TestBudget:
    def test_runs_exactly_configured_iterations(self, graph):
        layout = ForceAtlas2Layout(graph, settings=ForceAtlas2Settings(iterations=10))
        result = run_layout(layout, max_steps=300)
        assert result.converged
        assert result.steps == 10
        assert layout.iterations_done == 10

    def test_zero_iterations(self, graph):
        layout = ForceAtlas2Layout(graph, settings=ForceAtlas2Settings(iterations=0))
        assert layout.step() is False
        assert layout.iterations_done == 0

    def test_step_cap_wins(self, graph):
        result = run_layout(ForceAtlas2Layout(graph), max_steps=5)
        assert result.steps == 5
        assert not result.converged

    def test_empty(self):
        assert ForceAtlas2Layout(GraphModel()).step() is False


class TestVariants:
    @pytest.mark.parametrize(
        "settings",
        [
            ForceAtlas2Settings(),
            ForceAtlas2Settings(barnes_hut_optimize=True),
            ForceAtlas2Settings(lin_log_mode=True),
            ForceAtlas2Settings(strong_gravity_mode=True),
            ForceAtlas2Settings(outbound_attraction_distribution=True),
            ForceAtlas2Settings(adjust_sizes=True),
        ],
    )
    def test_positions_stay_finite(self, graph, settings):
        result = run_layout(ForceAtlas2Layout(graph, settings=settings))
        assert _finite(result.positions)
        assert all(p.z == 0.0 for p in result.positions.values())

    def test_settings_default_to_config(self, graph):
        cfg = LayoutConfig()
        cfg.forceatlas2.iterations = 3
        assert run_layout(ForceAtlas2Layout(graph, cfg)).steps == 3

    def test_deterministic_for_seed(self, graph):
        a = run_layout(ForceAtlas2Layout(graph, LayoutConfig(seed=7))).positions
        b = run_layout(ForceAtlas2Layout(graph, LayoutConfig(seed=7))).positions
        for nid in a:
            assert a[nid].as_tuple() == pytest.approx(b[nid].as_tuple())


class TestPins:
    def test_pinned_node_does_not_move(self, graph):
        layout = ForceAtlas2Layout(graph)
        layout.pin("n0", (3, 4))
        run_layout(layout)
        assert layout.get_node_position("n0") == Position(3.0, 4.0, 0.0)
        assert tuple(layout.pos[layout.index["n0"]]) == (3.0, 4.0)

    def test_prior_positions_seed(self, graph):
        graph.nodes["n1"].position = Position(-50.0, 60.0, 0.0)
        layout = ForceAtlas2Layout(graph)
        assert layout.get_node_position("n1") == Position(-50.0, 60.0, 0.0)


def test_chunked_repulsion_matches(graph, monkeypatch):
    settings = ForceAtlas2Settings(iterations=15)
    whole = run_layout(ForceAtlas2Layout(graph, settings=settings)).positions
    monkeypatch.setattr(fa2_mod, "PAIR_BUDGET", 5)
    chunked = run_layout(ForceAtlas2Layout(graph, settings=settings)).positions
    for nid in whole:
        assert chunked[nid].as_tuple() == pytest.approx(whole[nid].as_tuple())
