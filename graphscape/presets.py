"""
Preset configuration for the graphscape layout engine.

These are deliberately conservative, with a bias toward:
  - deterministic layouts (fixed seed)
  - bounded work per call (step caps, not quality targets)
  - small, explicit knobs that map onto the external configuration keys

``LayoutConfig.from_dict`` accepts both the camelCase keys used by the
rendering layer (``dagMode``, ``barnesHutOptimize``...) and snake_case.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, asdict, field, fields
from typing import Any, Dict, Optional, Tuple


# --------------------------------------------------------------------------- #
# Force simulation
# --------------------------------------------------------------------------- #

@dataclass
class ForceSettings:
    node_strength: float = -250.0
    link_distance: float = 50.0
    center_strength: float = 0.1        # x/y/z gravity toward the origin
    velocity_decay: float = 0.4
    alpha: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: Optional[float] = None  # None -> 1 - alpha_min ** (1 / 300)
    ticks_per_step: int = 10

    collide: bool = True
    collide_strength: float = 0.7
    cluster_padding: float = 10.0

    cluster_strength: float = 0.5        # intra-cluster pull toward centroid
    inter_cluster_strength: float = 30.0  # repulsion between cluster centroids

    weighted: bool = False
    edge_weight_influence: float = 1.0

    barnes_hut: bool = False
    barnes_hut_theta: float = 0.9

    def resolved_alpha_decay(self) -> float:
        if self.alpha_decay is not None:
            return float(self.alpha_decay)
        return 1.0 - self.alpha_min ** (1.0 / 300.0)


# --------------------------------------------------------------------------- #
# ForceAtlas2
# --------------------------------------------------------------------------- #

@dataclass
class ForceAtlas2Settings:
    iterations: int = 50
    adjust_sizes: bool = False
    barnes_hut_optimize: bool = False
    barnes_hut_theta: float = 0.5
    edge_weight_influence: float = 1.0
    gravity: float = 10.0
    lin_log_mode: bool = False
    outbound_attraction_distribution: bool = False
    scaling_ratio: float = 100.0
    slow_down: float = 1.0
    strong_gravity_mode: bool = False


# --------------------------------------------------------------------------- #
# Overlap removal
# --------------------------------------------------------------------------- #

@dataclass
class NoOverlapSettings:
    grid_size: int = 20
    margin: float = 5.0
    ratio: float = 1.0
    max_iterations: int = 50


# --------------------------------------------------------------------------- #
# Node sizing
# --------------------------------------------------------------------------- #

@dataclass
class SizingSettings:
    sizing_type: str = "default"
    attribute: Optional[str] = None
    min_size: float = 5.0
    max_size: float = 15.0
    default_size: float = 7.0
    centrality_metric: str = "closeness"


# --------------------------------------------------------------------------- #
# Top-level layout configuration
# --------------------------------------------------------------------------- #

LAYOUT_MODES = ("physics", "hierarchical", "radial", "circular", "custom")
DAG_MODES = ("lr", "rl", "td", "bu", "zin", "zout", "radialin", "radialout")


@dataclass
class LayoutConfig:
    """
    High-level configuration for one layout computation.

    ``mode`` picks a family and ``dag_mode`` a direction inside it;
    ``layout_type`` names a registered strategy directly and wins over both.
    ``mode=None`` with no ``layout_type`` lets the recommender choose.
    """

    mode: Optional[str] = "physics"
    dag_mode: Optional[str] = None
    dimensions: int = 2
    layout_type: Optional[str] = None

    cluster_attribute: Optional[str] = None
    cluster_padding: float = 40.0

    no_overlap: bool = False

    max_steps: int = 300
    max_seconds: Optional[float] = None
    seed: int = 42

    circular_radius: float = 300.0
    tree_node_size: Tuple[float, float] = (50.0, 50.0)

    force: ForceSettings = field(default_factory=ForceSettings)
    forceatlas2: ForceAtlas2Settings = field(default_factory=ForceAtlas2Settings)
    nooverlap: NoOverlapSettings = field(default_factory=NoOverlapSettings)
    sizing: SizingSettings = field(default_factory=SizingSettings)

    version: str = "graphscape.layout.v1"

    def __post_init__(self):
        # Nested settings might be explicitly set to None by callers
        self.ensure_defaults()

    def ensure_defaults(self) -> None:
        """Idempotent normalisation hook."""
        if self.force is None:
            self.force = ForceSettings()
        if self.forceatlas2 is None:
            self.forceatlas2 = ForceAtlas2Settings()
        if self.nooverlap is None:
            self.nooverlap = NoOverlapSettings()
        if self.sizing is None:
            self.sizing = SizingSettings()
        if self.dimensions not in (2, 3):
            self.dimensions = 2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LayoutConfig":
        """
        Build a config from the flat external configuration object.

        Unknown keys are ignored. Flat keys that belong to nested settings
        (``gridSize``, ``gravity``, ``sizingType``...) are routed to them.
        """
        cfg = cls()
        for key, value in (raw or {}).items():
            _apply_key(cfg, _snake(key), value)
        cfg.ensure_defaults()
        return cfg


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", str(key)).lower()


# flat external key -> (nested attribute, field name)
_NESTED_KEYS: Dict[str, Tuple[str, str]] = {
    "grid_size": ("nooverlap", "grid_size"),
    "margin": ("nooverlap", "margin"),
    "ratio": ("nooverlap", "ratio"),
    "iterations": ("forceatlas2", "iterations"),
    "barnes_hut_optimize": ("forceatlas2", "barnes_hut_optimize"),
    "barnes_hut_theta": ("forceatlas2", "barnes_hut_theta"),
    "gravity": ("forceatlas2", "gravity"),
    "lin_log_mode": ("forceatlas2", "lin_log_mode"),
    "scaling_ratio": ("forceatlas2", "scaling_ratio"),
    "strong_gravity_mode": ("forceatlas2", "strong_gravity_mode"),
    "slow_down": ("forceatlas2", "slow_down"),
    "adjust_sizes": ("forceatlas2", "adjust_sizes"),
    "outbound_attraction_distribution": ("forceatlas2", "outbound_attraction_distribution"),
    "sizing_type": ("sizing", "sizing_type"),
    "sizing_attribute": ("sizing", "attribute"),
    "min_node_size": ("sizing", "min_size"),
    "max_node_size": ("sizing", "max_size"),
    "default_node_size": ("sizing", "default_size"),
    "centrality_metric": ("sizing", "centrality_metric"),
    "node_strength": ("force", "node_strength"),
    "link_distance": ("force", "link_distance"),
    "cluster_strength": ("force", "cluster_strength"),
    "inter_cluster_strength": ("force", "inter_cluster_strength"),
    "ticks_per_step": ("force", "ticks_per_step"),
}


def _apply_key(cfg: LayoutConfig, key: str, value: Any) -> None:
    top_level = {f.name for f in fields(LayoutConfig)}

    if key == "edge_weight_influence":
        cfg.forceatlas2.edge_weight_influence = float(value)
        cfg.force.edge_weight_influence = float(value)
        cfg.force.weighted = True
        return

    if key == "edge_weighted":
        cfg.force.weighted = bool(value)
        return

    if key == "barnes_hut_optimize":
        cfg.force.barnes_hut = bool(value)

    if key == "barnes_hut_theta":
        cfg.force.barnes_hut_theta = float(value)

    if key in _NESTED_KEYS:
        attr, name = _NESTED_KEYS[key]
        setattr(getattr(cfg, attr), name, value)
        return

    if key in top_level and key not in ("force", "forceatlas2", "nooverlap", "sizing"):
        if key == "tree_node_size" and value is not None:
            value = tuple(value)
        setattr(cfg, key, value)


def load_config() -> LayoutConfig:
    """
    Load a LayoutConfig from environment variables, falling back to defaults.

    Recognized variables:
        GRAPHSCAPE_MODE          (physics|hierarchical|radial|circular|custom|auto)
        GRAPHSCAPE_DAG_MODE      (lr|rl|td|bu|zin|zout|radialin|radialout)
        GRAPHSCAPE_DIMENSIONS    (2|3)
        GRAPHSCAPE_MAX_STEPS     (int)
        GRAPHSCAPE_MAX_SECONDS   (float)
        GRAPHSCAPE_SEED          (int)
        GRAPHSCAPE_BARNES_HUT    ("true" / "false" / "1" / "0")
        GRAPHSCAPE_SIZING        (none|default|centrality|pagerank|attribute)
    """

    def _env_flag(name: str, default: bool) -> bool:
        val = os.getenv(name)
        if val is None:
            return default
        return val.strip().lower() in ("1", "true", "yes", "on")

    def _env_float(name: str) -> Optional[float]:
        val = os.getenv(name)
        if val is None or not val.strip():
            return None
        return float(val)

    mode = os.getenv("GRAPHSCAPE_MODE", "physics")
    cfg = LayoutConfig(
        mode=None if mode == "auto" else mode,
        dag_mode=os.getenv("GRAPHSCAPE_DAG_MODE") or None,
        dimensions=int(os.getenv("GRAPHSCAPE_DIMENSIONS", "2")),
        max_steps=int(os.getenv("GRAPHSCAPE_MAX_STEPS", "300")),
        max_seconds=_env_float("GRAPHSCAPE_MAX_SECONDS"),
        seed=int(os.getenv("GRAPHSCAPE_SEED", "42")),
    )
    barnes_hut = _env_flag("GRAPHSCAPE_BARNES_HUT", default=False)
    cfg.force.barnes_hut = barnes_hut
    cfg.forceatlas2.barnes_hut_optimize = barnes_hut
    cfg.sizing.sizing_type = os.getenv("GRAPHSCAPE_SIZING", cfg.sizing.sizing_type)
    return cfg


# Singleton default config
DEFAULT_CONFIG = LayoutConfig()
