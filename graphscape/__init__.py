"""
graphscape: graph layout and topology analysis.

Graph normalisation, depth analysis, node sizing, layout strategies
(force-directed, DAG / radial, tree, circular, ForceAtlas2, overlap
removal, custom), cluster geometry and collapse resolution.
"""

# ---------------------------------------------------------------------------
# High-level pipeline
# ---------------------------------------------------------------------------
from .engine import (
    GraphLayoutEngine,
    build_graph_state,
    compute_layout,
)

from .graph_state import GraphState

# ---------------------------------------------------------------------------
# Configuration and presets
# ---------------------------------------------------------------------------
from .presets import (
    LayoutConfig,
    ForceSettings,
    ForceAtlas2Settings,
    NoOverlapSettings,
    SizingSettings,
    DEFAULT_CONFIG,
    load_config,
)

# ---------------------------------------------------------------------------
# Model and loader
# ---------------------------------------------------------------------------
from .model import Position, GraphNode, GraphEdge, GraphModel
from .loader import (
    build_graph,
    add_elements,
    assign_curve_offsets,
    aggregate_edges,
    graph_from_frames,
    CURVE_SPACING,
)

# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------
from .depth import (
    DepthNode,
    DepthResult,
    get_node_depth,
    compute_depths,
    DAG_LEVEL_NODE_RATIO,
)
from .sizing import node_size_provider, apply_sizes, SIZE_FLOOR
from .analytics import compute_graph_stats, GraphStats

# ---------------------------------------------------------------------------
# Layout engines
# ---------------------------------------------------------------------------
from .layout import (
    LayoutStrategy,
    LayoutRun,
    LayoutRunResult,
    GLOBAL_LAYOUT_REGISTRY,
    run_layout,
    apply_positions,
    ForceDirectedLayout,
    TreeLayout,
    CircularLayout,
    ConcentricLayout,
    ForceAtlas2Layout,
    NoOverlapLayout,
    remove_overlaps,
    CustomLayout,
    NodePositionArgs,
    layout_provider,
    layout_for_config,
    recommend_layout,
)

# ---------------------------------------------------------------------------
# Clusters and collapse
# ---------------------------------------------------------------------------
from .clusters import (
    ClusterGroup,
    ClusterResolver,
    build_cluster_groups,
    calculate_clusters,
    calculate_cluster_centers,
    clamp_to_cluster,
)
from .collapse import CollapseResolver, VisibleEntities

# ---------------------------------------------------------------------------
# Errors and metadata
# ---------------------------------------------------------------------------
from .errors import (
    GraphscapeError,
    UnknownLayoutError,
    UnknownSizingError,
    CircularGraphError,
)
from .metadata import layout_to_dict, write_layout_json

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
__all__ = [
    # Pipeline
    "GraphLayoutEngine",
    "build_graph_state",
    "compute_layout",
    "GraphState",

    # Config
    "LayoutConfig",
    "ForceSettings",
    "ForceAtlas2Settings",
    "NoOverlapSettings",
    "SizingSettings",
    "DEFAULT_CONFIG",
    "load_config",

    # Model / loader
    "Position",
    "GraphNode",
    "GraphEdge",
    "GraphModel",
    "build_graph",
    "add_elements",
    "assign_curve_offsets",
    "aggregate_edges",
    "graph_from_frames",
    "CURVE_SPACING",

    # Analysis
    "DepthNode",
    "DepthResult",
    "get_node_depth",
    "compute_depths",
    "DAG_LEVEL_NODE_RATIO",
    "node_size_provider",
    "apply_sizes",
    "SIZE_FLOOR",
    "compute_graph_stats",
    "GraphStats",

    # Layouts
    "LayoutStrategy",
    "LayoutRun",
    "LayoutRunResult",
    "GLOBAL_LAYOUT_REGISTRY",
    "run_layout",
    "apply_positions",
    "ForceDirectedLayout",
    "TreeLayout",
    "CircularLayout",
    "ConcentricLayout",
    "ForceAtlas2Layout",
    "NoOverlapLayout",
    "remove_overlaps",
    "CustomLayout",
    "NodePositionArgs",
    "layout_provider",
    "layout_for_config",
    "recommend_layout",

    # Clusters / collapse
    "ClusterGroup",
    "ClusterResolver",
    "build_cluster_groups",
    "calculate_clusters",
    "calculate_cluster_centers",
    "clamp_to_cluster",
    "CollapseResolver",
    "VisibleEntities",

    # Errors
    "GraphscapeError",
    "UnknownLayoutError",
    "UnknownSizingError",
    "CircularGraphError",

    # Metadata
    "layout_to_dict",
    "write_layout_json",
]
