# graphscape/layout/__init__.py

"""
Layout subpackage for graphscape.

Provides:
  - the strategy contract, step driver and registry
  - force-directed 2D / 3D (with DAG and radial modes)
  - tidy tree, circular, concentric, ForceAtlas2, overlap removal, custom
  - provider / recommender for picking a strategy
"""

from __future__ import annotations

from .base import (
    LayoutStrategy,
    LayoutRun,
    LayoutRunResult,
    LayoutRegistry,
    LayoutSpec,
    GLOBAL_LAYOUT_REGISTRY,
    run_layout,
    apply_positions,
)
from .barnes_hut import BarnesHutTree
from .force import ForceDirectedLayout
from .hierarchical import TreeLayout
from .circular import CircularLayout, ConcentricLayout
from .forceatlas2 import ForceAtlas2Layout
from .nooverlap import NoOverlapLayout, NoOverlapResult, remove_overlaps
from .custom import CustomLayout, NodePositionArgs
from .recommender import recommend_layout
from .provider import layout_provider, layout_for_config, resolve_layout_type

__all__ = [
    "LayoutStrategy",
    "LayoutRun",
    "LayoutRunResult",
    "LayoutRegistry",
    "LayoutSpec",
    "GLOBAL_LAYOUT_REGISTRY",
    "run_layout",
    "apply_positions",
    "BarnesHutTree",
    "ForceDirectedLayout",
    "TreeLayout",
    "CircularLayout",
    "ConcentricLayout",
    "ForceAtlas2Layout",
    "NoOverlapLayout",
    "NoOverlapResult",
    "remove_overlaps",
    "CustomLayout",
    "NodePositionArgs",
    "recommend_layout",
    "layout_provider",
    "layout_for_config",
    "resolve_layout_type",
]
