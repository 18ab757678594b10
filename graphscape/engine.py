"""
Layout pipeline driver.

    nodes / edges
        -> build_graph        (normalise, drop dangling edges, curve offsets)
        -> compute_depths     (levels, cycle detection)
        -> apply_sizes        (sizing mode -> node.size)
        -> layout_for_config  (recommendation / provider, cyclic fallback)
        -> LayoutRun          (bounded step loop, positions -> model)
        -> remove_overlaps    (optional)
        -> ClusterResolver    (cluster geometry)
        -> CollapseResolver   (visible node / edge ids)

``build_graph_state`` runs it end to end. ``GraphLayoutEngine`` keeps the
model and the running strategy so an interactive caller can step, drag,
collapse and grow the graph between frames.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .analytics import compute_graph_stats
from .clusters import ClusterResolver
from .collapse import CollapseResolver
from .depth import compute_depths
from .events import DEFAULT_EMIT, Emit, emit_event, log_event
from .graph_state import GraphState
from .layout.base import LayoutRun, LayoutStrategy, apply_positions
from .layout.nooverlap import remove_overlaps
from .layout.provider import layout_for_config
from .loader import EdgeInput, NodeInput, add_elements, build_graph
from .model import GraphModel, Position
from .presets import DEFAULT_CONFIG, LayoutConfig
from .sizing import apply_sizes

logger = logging.getLogger(__name__)


# ====================================================================== #
# Pipeline steps
# ====================================================================== #

def _finalise(
    state: GraphState,
    strategy: LayoutStrategy,
    collapsed_ids: Iterable[str],
    emit: Optional[Emit],
) -> GraphState:
    model = state.model
    cfg = state.config

    apply_positions(model, strategy)

    if cfg.no_overlap and model.nodes:
        result = remove_overlaps(model.positions(), model.sizes(), cfg.nooverlap, emit)
        for nid, pos in result.positions.items():
            model.nodes[nid].position = pos
        state.overlap_converged = result.converged

    state.positions = model.positions()
    state.sizes = model.sizes()

    resolver = ClusterResolver(model, cfg.cluster_attribute, cfg.cluster_padding)
    state.clusters = resolver.clusters(state.positions, state.sizes)

    collapse = CollapseResolver(model, collapsed_ids)
    visible = collapse.get_visible_entities()
    state.collapsed_ids = sorted(collapse.collapsed)
    state.visible_node_ids = visible.node_ids
    state.visible_edge_ids = visible.edge_ids

    state.stats = compute_graph_stats(model)
    return state


def compute_layout(
    model: GraphModel,
    config: Optional[LayoutConfig] = None,
    *,
    collapsed_ids: Iterable[str] = (),
    emit: Emit = DEFAULT_EMIT,
    **layout_kw: Any,
) -> GraphState:
    """
    Lay out an already-built model. Nodes that carry a position are used as
    seeds by the simulated layouts.
    """
    cfg = config or DEFAULT_CONFIG
    cfg.ensure_defaults()

    emit_event(emit, "pipeline", {"stage": "layout", "event": "start"})

    state = GraphState(config=cfg, emit=emit, model=model)
    state.depth = compute_depths(model, emit)
    apply_sizes(model, cfg.sizing, emit)

    strategy = layout_for_config(model, cfg, depth=state.depth, emit=emit, **layout_kw)
    state.layout_type = strategy.name

    state.run = LayoutRun(
        strategy, cfg.max_steps, cfg.max_seconds, model=model, emit=emit
    ).run()
    _finalise(state, strategy, collapsed_ids, emit)

    log_event(
        logger,
        f"[engine] {state.layout_type}: {model.node_count} nodes, {model.edge_count} edges, "
        f"{state.run.steps} step(s), converged={state.run.converged}.",
        emit,
    )
    emit_event(emit, "pipeline", {"stage": "layout", "event": "end"})
    return state


def build_graph_state(
    nodes: Iterable[NodeInput],
    edges: Iterable[EdgeInput],
    *,
    config: Optional[LayoutConfig] = None,
    collapsed_ids: Iterable[str] = (),
    emit: Emit = DEFAULT_EMIT,
    **layout_kw: Any,
) -> GraphState:
    """Build the model from raw input and run the full pipeline."""
    model = build_graph(nodes, edges, emit)
    return compute_layout(
        model, config, collapsed_ids=collapsed_ids, emit=emit, **layout_kw
    )


# ====================================================================== #
# Interactive engine
# ====================================================================== #

class GraphLayoutEngine:
    """
    Stateful wrapper for interactive use:
      - ``start()`` / ``step()`` advance the layout frame by frame
      - ``pin()`` / ``unpin()`` feed drags back into the strategy
      - ``add_elements()`` grows the graph keeping existing positions
      - ``set_collapsed()`` recomputes visibility without re-layout
      - ``finish()`` runs to completion and returns the GraphState
    """

    def __init__(
        self,
        nodes: Iterable[NodeInput] = (),
        edges: Iterable[EdgeInput] = (),
        *,
        config: Optional[LayoutConfig] = None,
        collapsed_ids: Iterable[str] = (),
        emit: Emit = DEFAULT_EMIT,
        **layout_kw: Any,
    ) -> None:
        self.config = config or LayoutConfig()
        self.config.ensure_defaults()
        self.emit = emit
        self.layout_kw = layout_kw
        self.collapsed_ids = list(collapsed_ids)

        self.model: GraphModel = build_graph(nodes, edges, emit)
        self.state: Optional[GraphState] = None
        self.strategy: Optional[LayoutStrategy] = None
        self.run_handle: Optional[LayoutRun] = None
        self._iter = None

    # ------------------------------------------------------------------ #
    def start(self) -> LayoutStrategy:
        state = GraphState(config=self.config, emit=self.emit, model=self.model)
        state.depth = compute_depths(self.model, self.emit)
        apply_sizes(self.model, self.config.sizing, self.emit)

        self.strategy = layout_for_config(
            self.model, self.config, depth=state.depth, emit=self.emit, **self.layout_kw
        )
        state.layout_type = self.strategy.name
        self.run_handle = LayoutRun(
            self.strategy,
            self.config.max_steps,
            self.config.max_seconds,
            model=self.model,
            emit=self.emit,
        )
        self._iter = iter(self.run_handle)
        self.state = state
        return self.strategy

    def step(self) -> bool:
        """Advance one step; True while the layout is still running."""
        if self._iter is None:
            self.start()
        try:
            next(self._iter)
        except StopIteration:
            return False
        return not (self.run_handle.converged or self.run_handle.cancelled)

    def stop(self) -> None:
        if self.run_handle is not None:
            self.run_handle.stop()

    def get_node_position(self, node_id: str) -> Position:
        if self.strategy is None:
            self.start()
        return self.strategy.get_node_position(node_id)

    def pin(self, node_id: str, position: Any) -> None:
        if self.strategy is None:
            self.start()
        self.strategy.pin(node_id, position)

    def unpin(self, node_id: str) -> None:
        if self.strategy is not None:
            self.strategy.unpin(node_id)

    # ------------------------------------------------------------------ #
    def finish(self) -> GraphState:
        if self.run_handle is None:
            self.start()
        result = self.run_handle.run()
        self.state.run = result
        _finalise(self.state, self.strategy, self.collapsed_ids, self.emit)
        return self.state

    def add_elements(
        self,
        nodes: Iterable[NodeInput] = (),
        edges: Iterable[EdgeInput] = (),
    ) -> GraphModel:
        """Grow the graph; existing nodes keep their current positions."""
        if self.strategy is not None:
            apply_positions(self.model, self.strategy)
        self.model = add_elements(self.model, nodes, edges, self.emit)
        self.strategy = None
        self.run_handle = None
        self._iter = None
        return self.model

    def set_collapsed(self, collapsed_ids: Iterable[str]) -> GraphState:
        self.collapsed_ids = list(collapsed_ids)
        if self.state is None or self.state.run is None:
            return self.finish()
        visible = CollapseResolver(self.model, self.collapsed_ids).get_visible_entities()
        self.state.collapsed_ids = sorted(set(self.collapsed_ids))
        self.state.visible_node_ids = visible.node_ids
        self.state.visible_edge_ids = visible.edge_ids
        return self.state
