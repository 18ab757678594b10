"""
test_force.py

Force-directed strategy: convergence, DAG / radial constraints, pins,
clusters and the step driver.
"""

import math

import numpy as np
import pytest

from graphscape.depth import compute_depths
from graphscape.layout import force as force_mod
from graphscape.layout.base import LayoutRun, run_layout
from graphscape.layout.force import ForceDirectedLayout
from graphscape.loader import build_graph
from graphscape.model import GraphModel, Position
from graphscape.presets import LayoutConfig


def _graph(ids, pairs, data=None):
    data = data or {}
    return build_graph(
        [{"id": i, "data": data.get(i, {})} for i in ids],
        [{"source": s, "target": t} for s, t in pairs],
    )


@pytest.fixture
def triangle():
    return _graph("abc", [("a", "b"), ("b", "c"), ("c", "a")])


@pytest.fixture
def chain():
    return _graph("abc", [("a", "b"), ("b", "c")])


class TestConvergence:
    def test_empty_model_is_already_settled(self):
        layout = ForceDirectedLayout(GraphModel())
        assert layout.step() is False
        assert layout.positions() == {}

    def test_small_graph_converges_before_cap(self, triangle):
        result = run_layout(ForceDirectedLayout(triangle), max_steps=300)
        assert result.converged
        assert not result.cancelled
        assert result.steps < 300
        assert all(math.isfinite(c) for p in result.positions.values() for c in p.as_tuple())

    def test_energy_non_increasing_near_equilibrium(self):
        ids = [f"n{i}" for i in range(12)]
        ring = _graph(ids, [(ids[i], ids[(i + 1) % 12]) for i in range(12)])
        layout = ForceDirectedLayout(ring, LayoutConfig(seed=7))
        energies = []
        while layout.step():
            energies.append(layout.energy)
        energies.append(layout.energy)

        tail = energies[len(energies) // 2:]
        assert len(tail) > 10
        for before, after in zip(tail, tail[1:]):
            assert after <= before * 1.05 + 1e-9

    def test_deterministic(self, triangle):
        a = run_layout(ForceDirectedLayout(triangle)).positions
        b = run_layout(ForceDirectedLayout(triangle)).positions
        for nid in a:
            assert a[nid].as_tuple() == pytest.approx(b[nid].as_tuple())

    def test_step_cap_is_not_an_error(self, triangle):
        result = run_layout(ForceDirectedLayout(triangle), max_steps=2)
        assert result.steps == 2
        assert not result.converged

    def test_time_cap_is_not_an_error(self, triangle):
        result = run_layout(ForceDirectedLayout(triangle), max_steps=None, max_seconds=0)
        assert result.steps == 0
        assert not result.converged

    def test_run_iterates_step_counts(self, triangle):
        run = LayoutRun(ForceDirectedLayout(triangle), max_steps=3)
        assert list(run) == [1, 2, 3]

    def test_stop_cancels(self, triangle):
        run = LayoutRun(ForceDirectedLayout(triangle), max_steps=300)
        for step in run:
            if step == 2:
                run.stop()
        assert run.cancelled
        assert run.steps == 2

    def test_run_writes_model_positions(self, triangle):
        run_layout(ForceDirectedLayout(triangle), model=triangle)
        assert all(n.position is not None for n in triangle.nodes.values())

    def test_barnes_hut_variant(self, triangle):
        cfg = LayoutConfig()
        cfg.force.barnes_hut = True
        result = run_layout(ForceDirectedLayout(triangle, cfg))
        assert result.converged
        assert all(math.isfinite(c) for p in result.positions.values() for c in p.as_tuple())

    def test_chunked_pair_forces_match(self, triangle, monkeypatch):
        whole = run_layout(ForceDirectedLayout(triangle), max_steps=20).positions
        monkeypatch.setattr(force_mod, "PAIR_BUDGET", 2)
        chunked = run_layout(ForceDirectedLayout(triangle), max_steps=20).positions
        for nid in whole:
            assert chunked[nid].as_tuple() == pytest.approx(whole[nid].as_tuple())


class TestDimensions:
    def test_2d_keeps_z_at_zero(self, triangle):
        result = run_layout(ForceDirectedLayout(triangle))
        assert all(p.z == 0.0 for p in result.positions.values())

    def test_3d_uses_z(self, triangle):
        result = run_layout(ForceDirectedLayout(triangle, dimensions=3))
        assert any(abs(p.z) > 1e-9 for p in result.positions.values())

    def test_name_reflects_dimensions(self, triangle):
        assert ForceDirectedLayout(triangle, dimensions=3).name == "forceDirected3d"


class TestDagModes:
    def test_top_down_orders_levels(self, chain):
        layout = ForceDirectedLayout(chain, dag_mode="td")
        run_layout(layout)
        ys = [layout.get_node_position(n).y for n in "abc"]
        assert ys[0] < ys[1] < ys[2]
        assert ys == pytest.approx([-3.0, 0.0, 3.0])

    def test_bottom_up_inverts(self, chain):
        layout = ForceDirectedLayout(chain, dag_mode="bu")
        run_layout(layout)
        assert layout.get_node_position("a").y > layout.get_node_position("c").y

    def test_left_right_orders_x(self, chain):
        layout = ForceDirectedLayout(chain, dag_mode="lr")
        run_layout(layout)
        xs = [layout.get_node_position(n).x for n in "abc"]
        assert xs[0] < xs[1] < xs[2]

    def test_radial_out_rings_by_depth(self, chain):
        layout = ForceDirectedLayout(chain, dag_mode="radialout")
        run_layout(layout)
        dist = compute_depths(chain).level_distance(3, radial=True)
        origin = Position()
        for depth, nid in enumerate("abc"):
            r = layout.get_node_position(nid).distance_to(origin)
            assert r == pytest.approx(depth * dist, abs=1e-6)

    def test_cyclic_graph_falls_back(self, triangle):
        events = []
        layout = ForceDirectedLayout(
            triangle, dag_mode="td", emit=lambda kind, payload: events.append(payload)
        )
        assert layout.dag_mode is None
        assert run_layout(layout).converged
        assert any("cyclic" in p["message"] for p in events)

    def test_z_modes_need_3d(self, chain):
        assert ForceDirectedLayout(chain, dag_mode="zout").dag_mode is None
        layout = ForceDirectedLayout(chain, dimensions=3, dag_mode="zout")
        run_layout(layout)
        zs = [layout.get_node_position(n).z for n in "abc"]
        assert zs[0] < zs[1] < zs[2]

    def test_unknown_dag_mode(self, chain):
        with pytest.raises(ValueError):
            ForceDirectedLayout(chain, dag_mode="diagonal")


class TestPinsAndPriors:
    def test_pinned_node_stays(self, triangle):
        layout = ForceDirectedLayout(triangle)
        layout.pin("a", (100, 100))
        assert layout.is_pinned("a")
        run_layout(layout)
        assert layout.get_node_position("a") == Position(100.0, 100.0, 0.0)

    def test_unpin_releases(self, triangle):
        layout = ForceDirectedLayout(triangle)
        layout.pin("a", (100, 100))
        layout.unpin("a")
        assert not layout.is_pinned("a")

    def test_pin_unknown_node(self, triangle):
        layout = ForceDirectedLayout(triangle)
        with pytest.raises(KeyError):
            layout.pin("nope", (0, 0))
        with pytest.raises(KeyError):
            layout.get_node_position("nope")

    def test_fixed_coordinates_from_model(self, triangle):
        triangle.nodes["b"].fx = 42.0
        layout = ForceDirectedLayout(triangle)
        run_layout(layout)
        assert layout.get_node_position("b").x == 42.0

    def test_prior_positions_seed_simulation(self, triangle):
        triangle.nodes["a"].position = Position(500.0, 500.0, 0.0)
        layout = ForceDirectedLayout(triangle)
        assert layout.get_node_position("a") == Position(500.0, 500.0, 0.0)


class TestClusters:
    def test_clusters_stay_grouped(self):
        ids = [f"x{i}" for i in range(4)] + [f"y{i}" for i in range(4)]
        data = {nid: {"group": nid[0]} for nid in ids}
        model = _graph(ids, [], data=data)
        cfg = LayoutConfig(cluster_attribute="group")

        result = run_layout(ForceDirectedLayout(model, cfg))
        P = {nid: np.array(p.as_tuple()) for nid, p in result.positions.items()}
        cx = np.mean([P[n] for n in ids[:4]], axis=0)
        cy = np.mean([P[n] for n in ids[4:]], axis=0)

        for n in ids[:4]:
            assert np.linalg.norm(P[n] - cx) < np.linalg.norm(P[n] - cy)
        for n in ids[4:]:
            assert np.linalg.norm(P[n] - cy) < np.linalg.norm(P[n] - cx)
