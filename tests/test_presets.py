"""
test_presets.py

LayoutConfig construction from external keys and environment variables.
"""

import pytest

from graphscape.presets import ForceSettings, LayoutConfig, load_config


class TestFromDict:
    def test_camel_case_keys_are_routed(self):
        cfg = LayoutConfig.from_dict(
            {
                "dagMode": "td",
                "dimensions": 3,
                "sizingType": "pagerank",
                "gridSize": 30,
                "barnesHutOptimize": True,
                "barnesHutTheta": 0.2,
                "edgeWeightInfluence": 2,
                "clusterAttribute": "group",
                "noOverlap": True,
            }
        )
        assert cfg.dag_mode == "td"
        assert cfg.dimensions == 3
        assert cfg.sizing.sizing_type == "pagerank"
        assert cfg.nooverlap.grid_size == 30
        assert cfg.forceatlas2.barnes_hut_optimize is True
        assert cfg.force.barnes_hut is True
        assert cfg.force.barnes_hut_theta == 0.2
        assert cfg.forceatlas2.barnes_hut_theta == 0.2
        assert cfg.force.weighted is True
        assert cfg.force.edge_weight_influence == 2.0
        assert cfg.forceatlas2.edge_weight_influence == 2.0
        assert cfg.cluster_attribute == "group"
        assert cfg.no_overlap is True

    def test_unknown_keys_are_ignored(self):
        cfg = LayoutConfig.from_dict({"colourScheme": "dark", "maxSteps": 12})
        assert cfg.max_steps == 12
        assert not hasattr(cfg, "colour_scheme")

    def test_tree_node_size_becomes_tuple(self):
        cfg = LayoutConfig.from_dict({"treeNodeSize": [20, 30]})
        assert cfg.tree_node_size == (20, 30)

    def test_invalid_dimensions_normalised(self):
        assert LayoutConfig(dimensions=5).dimensions == 2

    def test_none_settings_restored(self):
        cfg = LayoutConfig(force=None, sizing=None)
        assert isinstance(cfg.force, ForceSettings)
        assert cfg.sizing.sizing_type == "default"

    def test_to_dict_is_nested(self):
        d = LayoutConfig().to_dict()
        assert d["force"]["node_strength"] == -250.0
        assert d["nooverlap"]["grid_size"] == 20


def test_alpha_decay_follows_alpha_min():
    s = ForceSettings()
    assert s.resolved_alpha_decay() == pytest.approx(1 - 0.001 ** (1 / 300))
    assert ForceSettings(alpha_decay=0.1).resolved_alpha_decay() == 0.1


def test_load_config_from_environment(monkeypatch):
    monkeypatch.setenv("GRAPHSCAPE_MODE", "auto")
    monkeypatch.setenv("GRAPHSCAPE_DAG_MODE", "lr")
    monkeypatch.setenv("GRAPHSCAPE_DIMENSIONS", "3")
    monkeypatch.setenv("GRAPHSCAPE_MAX_STEPS", "50")
    monkeypatch.setenv("GRAPHSCAPE_MAX_SECONDS", "1.5")
    monkeypatch.setenv("GRAPHSCAPE_BARNES_HUT", "true")
    monkeypatch.setenv("GRAPHSCAPE_SIZING", "none")

    cfg = load_config()
    assert cfg.mode is None
    assert cfg.dag_mode == "lr"
    assert cfg.dimensions == 3
    assert cfg.max_steps == 50
    assert cfg.max_seconds == 1.5
    assert cfg.force.barnes_hut is True
    assert cfg.forceatlas2.barnes_hut_optimize is True
    assert cfg.sizing.sizing_type == "none"


def test_load_config_defaults(monkeypatch):
    for name in (
        "GRAPHSCAPE_MODE",
        "GRAPHSCAPE_DAG_MODE",
        "GRAPHSCAPE_DIMENSIONS",
        "GRAPHSCAPE_MAX_STEPS",
        "GRAPHSCAPE_MAX_SECONDS",
        "GRAPHSCAPE_SEED",
        "GRAPHSCAPE_BARNES_HUT",
        "GRAPHSCAPE_SIZING",
    ):
        monkeypatch.delenv(name, raising=False)
    cfg = load_config()
    assert cfg.mode == "physics"
    assert cfg.dag_mode is None
    assert cfg.max_steps == 300
    assert cfg.max_seconds is None
    assert cfg.force.barnes_hut is False


def test_edge_weighting_can_be_switched_off():
    cfg = LayoutConfig.from_dict({"edgeWeightInfluence": 0.5, "edgeWeighted": False})
    assert cfg.force.edge_weight_influence == 0.5
    assert cfg.force.weighted is False
    assert LayoutConfig.from_dict({"edgeWeighted": True}).force.weighted is True
