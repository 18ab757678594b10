"""
Layout selection: registered strategy factories and config resolution.

Every named layout type is registered on GLOBAL_LAYOUT_REGISTRY. Types that
need an acyclic graph (DAG-pinned force layouts and tidy trees) fall back to
the plain force layout of the same dimensionality when the depth analysis
finds a cycle.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Optional

from ..depth import DepthResult, compute_depths
from ..errors import UnknownLayoutError
from ..events import Emit, log_event
from ..model import GraphModel
from ..presets import LAYOUT_MODES, LayoutConfig
from .base import GLOBAL_LAYOUT_REGISTRY, LayoutSpec, LayoutStrategy
from .circular import CircularLayout, ConcentricLayout
from .custom import CustomLayout
from .force import ForceDirectedLayout
from .forceatlas2 import ForceAtlas2Layout
from .hierarchical import TreeLayout
from .nooverlap import NoOverlapLayout
from .recommender import recommend_layout

logger = logging.getLogger(__name__)


# =========================================================================== #
# Registration
# =========================================================================== #

def _force_factory(
    model: GraphModel,
    config: LayoutConfig,
    *,
    dimensions: int,
    dag_mode: Optional[str] = None,
    depth: Optional[DepthResult] = None,
    emit: Optional[Emit] = None,
    **kw: Any,
) -> LayoutStrategy:
    return ForceDirectedLayout(
        model, config, dimensions=dimensions, dag_mode=dag_mode, depth=depth, emit=emit
    )


_FORCE_TYPES = (
    ("forceDirected2d", 2, None, "Force-directed (2D)"),
    ("forceDirected3d", 3, None, "Force-directed (3D)"),
    ("treeTd2d", 2, "td", "Tree, top-down (2D)"),
    ("treeTd3d", 3, "td", "Tree, top-down (3D)"),
    ("treeLr2d", 2, "lr", "Tree, left-right (2D)"),
    ("treeLr3d", 3, "lr", "Tree, left-right (3D)"),
    ("radialOut2d", 2, "radialout", "Radial out (2D)"),
    ("radialOut3d", 3, "radialout", "Radial out (3D)"),
)

for _key, _dims, _mode, _label in _FORCE_TYPES:
    GLOBAL_LAYOUT_REGISTRY.register(
        LayoutSpec(
            key=_key,
            factory=partial(_force_factory, dimensions=_dims, dag_mode=_mode),
            label=_label,
            dimensions=_dims,
            dag_mode=_mode,
        )
    )


@GLOBAL_LAYOUT_REGISTRY.decorator(key="hierarchicalTd", label="Tidy tree, top-down", dag_mode="td")
def _hierarchical_td(model, config, *, emit=None, **kw) -> LayoutStrategy:
    return TreeLayout(model, config, direction="td", emit=emit)


@GLOBAL_LAYOUT_REGISTRY.decorator(key="hierarchicalLr", label="Tidy tree, left-right", dag_mode="lr")
def _hierarchical_lr(model, config, *, emit=None, **kw) -> LayoutStrategy:
    return TreeLayout(model, config, direction="lr", emit=emit)


@GLOBAL_LAYOUT_REGISTRY.decorator(key="circular2d", label="Circular")
def _circular(model, config, *, emit=None, radius=None, **kw) -> LayoutStrategy:
    return CircularLayout(model, config, radius=radius, emit=emit)


@GLOBAL_LAYOUT_REGISTRY.decorator(key="concentric2d", label="Concentric rings")
def _concentric(model, config, *, emit=None, radius=40.0, spacing=100.0, **kw) -> LayoutStrategy:
    return ConcentricLayout(model, config, radius=radius, spacing=spacing, emit=emit)


@GLOBAL_LAYOUT_REGISTRY.decorator(key="forceatlas2", label="ForceAtlas2")
def _forceatlas2(model, config, *, emit=None, **kw) -> LayoutStrategy:
    return ForceAtlas2Layout(model, config, emit=emit)


@GLOBAL_LAYOUT_REGISTRY.decorator(key="nooverlap", label="Overlap removal")
def _nooverlap(model, config, *, emit=None, positions=None, sizes=None, **kw) -> LayoutStrategy:
    return NoOverlapLayout(model, config, positions=positions, sizes=sizes, emit=emit)


@GLOBAL_LAYOUT_REGISTRY.decorator(key="custom", label="Custom")
def _custom(model, config, *, emit=None, get_node_position=None, **kw) -> LayoutStrategy:
    return CustomLayout(model, config, get_node_position=get_node_position, emit=emit)


# =========================================================================== #
# Provider
# =========================================================================== #

def layout_provider(
    layout_type: str,
    model: GraphModel,
    config: Optional[LayoutConfig] = None,
    *,
    depth: Optional[DepthResult] = None,
    emit: Optional[Emit] = None,
    **kw: Any,
) -> LayoutStrategy:
    """
    Instantiate the strategy registered as ``layout_type``.

    Raises UnknownLayoutError when the type is not registered.
    """
    config = config or LayoutConfig()
    spec = GLOBAL_LAYOUT_REGISTRY.get(layout_type)

    if spec.dag_mode is not None:
        depth = depth if depth is not None else compute_depths(model, emit)
        if depth.invalid:
            fallback = "forceDirected3d" if spec.dimensions == 3 else "forceDirected2d"
            log_event(
                logger,
                f"[layout] '{layout_type}' needs an acyclic graph; using {fallback}.",
                emit,
                level=logging.WARNING,
                cycle=depth.cycle,
            )
            spec = GLOBAL_LAYOUT_REGISTRY.get(fallback)

    strategy = spec.factory(model, config, depth=depth, emit=emit, **kw)
    strategy.name = spec.key
    return strategy


def resolve_layout_type(
    model: GraphModel,
    config: LayoutConfig,
    depth: Optional[DepthResult] = None,
    emit: Optional[Emit] = None,
) -> tuple:
    """
    Map ``layout_type`` / ``mode`` + ``dag_mode`` to ``(type, dag_mode)``.

    ``dag_mode`` is only returned for DAG directions without a named type
    (``rl``, ``bu``, ``zin``, ``zout``, ``radialin``; also ``radialout`` in
    hierarchical mode).
    """
    if config.layout_type:
        return config.layout_type, None

    mode = config.mode
    dims = 3 if config.dimensions == 3 else 2
    dag = config.dag_mode

    if mode is None:
        return recommend_layout(model, depth, emit), None
    if mode not in LAYOUT_MODES:
        raise UnknownLayoutError(mode, list(LAYOUT_MODES))

    if mode == "physics":
        if not dag:
            return f"forceDirected{dims}d", None
        named = {"td": "treeTd", "lr": "treeLr", "radialout": "radialOut"}
        if dag in named:
            return f"{named[dag]}{dims}d", None
        return f"forceDirected{dims}d", dag

    if mode == "hierarchical":
        if not dag or dag == "td":
            return "hierarchicalTd", None
        if dag == "lr":
            return "hierarchicalLr", None
        # the tidy tree only grows down or right
        return f"forceDirected{dims}d", dag

    if mode == "radial":
        if dag == "radialin":
            return f"forceDirected{dims}d", "radialin"
        return f"radialOut{dims}d", None

    if mode == "circular":
        return "circular2d", None

    return "custom", None


def layout_for_config(
    model: GraphModel,
    config: Optional[LayoutConfig] = None,
    *,
    depth: Optional[DepthResult] = None,
    emit: Optional[Emit] = None,
    **kw: Any,
) -> LayoutStrategy:
    config = config or LayoutConfig()
    layout_type, dag_mode = resolve_layout_type(model, config, depth, emit)
    if dag_mode is not None:
        kw["dag_mode"] = dag_mode
    return layout_provider(layout_type, model, config, depth=depth, emit=emit, **kw)
