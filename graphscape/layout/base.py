"""
Layout strategy contract, step driver and strategy registry.

A strategy owns its simulation state and is advanced one cooperative step at
a time. After every step it publishes a whole-step snapshot of positions;
``get_node_position`` reads from that snapshot, so a caller interleaving
frames never sees a half-updated step.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..errors import UnknownLayoutError
from ..events import Emit, emit_event, log_event
from ..model import GraphModel, Position
from ..presets import LayoutConfig

logger = logging.getLogger(__name__)

# Upper bound on pairwise elements materialised per chunk
PAIR_BUDGET = 2_000_000


# =========================================================================== #
# Strategy contract
# =========================================================================== #

class LayoutStrategy(ABC):
    """Base class of every layout strategy."""

    name: str = "base"

    def __init__(
        self,
        model: GraphModel,
        config: Optional[LayoutConfig] = None,
        *,
        emit: Optional[Emit] = None,
    ) -> None:
        self.model = model
        self.config = config or LayoutConfig()
        self.emit = emit
        self.dimensions = 3 if self.config.dimensions == 3 else 2

        self.node_ids: List[str] = model.node_ids()
        self.index: Dict[str, int] = {nid: i for i, nid in enumerate(self.node_ids)}

        self._published: Dict[str, Position] = {}
        self._pins: Dict[str, Position] = {}
        self.step_count = 0

    # ------------------------------------------------------------------ #
    @abstractmethod
    def step(self) -> bool:
        """Advance one step; True while still converging."""

    def get_node_position(self, node_id: str) -> Position:
        if node_id in self._pins:
            return self._pins[node_id].copy()
        if node_id not in self.index:
            raise KeyError(node_id)
        p = self._published.get(node_id)
        return p.copy() if p is not None else Position()

    def positions(self) -> Dict[str, Position]:
        return {nid: self.get_node_position(nid) for nid in self.node_ids}

    # ------------------------------------------------------------------ #
    # Interaction
    # ------------------------------------------------------------------ #

    def pin(self, node_id: str, position: Any) -> None:
        """Fix a node (drag). Pinned positions win over simulated ones."""
        if node_id not in self.index:
            raise KeyError(node_id)
        pos = Position.coerce(position) or Position()
        if self.dimensions == 2:
            pos.z = 0.0
        self._pins[node_id] = pos

    def unpin(self, node_id: str) -> None:
        self._pins.pop(node_id, None)

    def is_pinned(self, node_id: str) -> bool:
        return node_id in self._pins

    # ------------------------------------------------------------------ #
    def _publish(self, positions: Dict[str, Position]) -> None:
        self._published = {nid: p.copy() for nid, p in positions.items()}

    def prior_position(self, node_id: str) -> Optional[Position]:
        node = self.model.nodes.get(node_id)
        if node is None or node.position is None:
            return None
        return node.position.copy()


# =========================================================================== #
# Driver
# =========================================================================== #

@dataclass
class LayoutRunResult:
    steps: int
    converged: bool
    cancelled: bool
    elapsed: float
    positions: Dict[str, Position] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": self.steps,
            "converged": self.converged,
            "cancelled": self.cancelled,
            "elapsed": round(self.elapsed, 6),
        }


class LayoutRun:
    """
    Bounded step loop over a strategy.

    Stops when ``step()`` returns False, when ``stop()`` is called, or when a
    step / time cap is hit. Hitting a cap is not an error; the last completed
    step is kept.
    """

    def __init__(
        self,
        strategy: LayoutStrategy,
        max_steps: Optional[int] = 300,
        max_seconds: Optional[float] = None,
        model: Optional[GraphModel] = None,
        emit: Optional[Emit] = None,
    ) -> None:
        self.strategy = strategy
        self.max_steps = max_steps
        self.max_seconds = max_seconds
        self.model = model
        self.emit = emit

        self.steps = 0
        self.converged = False
        self.cancelled = False
        self.elapsed = 0.0
        self._stop_requested = False

    def stop(self) -> None:
        self._stop_requested = True

    def _capped(self, started: float) -> bool:
        if self.max_steps is not None and self.steps >= self.max_steps:
            return True
        if self.max_seconds is not None and (time.perf_counter() - started) >= self.max_seconds:
            return True
        return False

    def __iter__(self) -> Iterator[int]:
        started = time.perf_counter() - self.elapsed
        while not self.converged:
            if self._stop_requested:
                self.cancelled = True
                break
            if self._capped(started):
                break

            more = self.strategy.step()
            self.steps += 1
            self.elapsed = time.perf_counter() - started
            if not more:
                self.converged = True

            emit_event(self.emit, "layout", {"step": self.steps, "converged": self.converged})
            yield self.steps

        self.elapsed = time.perf_counter() - started

    def run(self) -> LayoutRunResult:
        for _ in self:
            pass

        if self.model is not None:
            apply_positions(self.model, self.strategy)

        log_event(
            logger,
            f"[layout] {self.strategy.name}: {self.steps} step(s), "
            f"converged={self.converged}, cancelled={self.cancelled}",
            self.emit,
            level=logging.DEBUG,
        )
        return LayoutRunResult(
            steps=self.steps,
            converged=self.converged,
            cancelled=self.cancelled,
            elapsed=self.elapsed,
            positions=self.strategy.positions(),
        )


def run_layout(
    strategy: LayoutStrategy,
    max_steps: Optional[int] = 300,
    max_seconds: Optional[float] = None,
    model: Optional[GraphModel] = None,
    emit: Optional[Emit] = None,
) -> LayoutRunResult:
    return LayoutRun(strategy, max_steps, max_seconds, model=model, emit=emit).run()


def apply_positions(model: GraphModel, strategy: LayoutStrategy) -> None:
    """Copy the strategy's published positions into the model's nodes."""
    for nid, node in model.nodes.items():
        if nid in strategy.index:
            node.position = strategy.get_node_position(nid)


# =========================================================================== #
# Registry
# =========================================================================== #

LayoutFactory = Callable[..., LayoutStrategy]


@dataclass
class LayoutSpec:
    key: str
    factory: LayoutFactory
    label: str = ""
    dimensions: int = 2
    dag_mode: Optional[str] = None


class LayoutRegistry:
    def __init__(self) -> None:
        self._layouts: Dict[str, LayoutSpec] = {}

    # ---------------- Registration ----------------

    def register(self, spec: LayoutSpec) -> None:
        if spec.key in self._layouts:
            raise ValueError(f"Duplicate layout key: {spec.key}")
        self._layouts[spec.key] = spec

    def decorator(self, **kwargs: Any) -> Callable:
        def wrapper(func: LayoutFactory) -> LayoutFactory:
            if "key" not in kwargs:
                raise ValueError("Layout registration requires a key.")
            self.register(LayoutSpec(factory=func, **kwargs))
            return func
        return wrapper

    # ---------------- Accessors -------------------

    def get(self, key: str) -> LayoutSpec:
        try:
            return self._layouts[key]
        except KeyError:
            raise UnknownLayoutError(key, list(self._layouts)) from None

    def keys(self) -> List[str]:
        return list(self._layouts.keys())

    def all(self) -> List[LayoutSpec]:
        return list(self._layouts.values())

    def __len__(self) -> int:
        return len(self._layouts)

    def __contains__(self, key: object) -> bool:
        return key in self._layouts


GLOBAL_LAYOUT_REGISTRY = LayoutRegistry()
