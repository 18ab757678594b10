"""
Error types for the graphscape layout engine.

Graph-shaped problems (dangling edges, cycles, empty input, slow
convergence) are absorbed by the components that meet them. Only
programmer errors, such as asking for a layout or sizing mode that does not
exist, surface to callers.
"""

from __future__ import annotations

from typing import List, Optional


class GraphscapeError(RuntimeError):
    """Base class for graphscape failures."""


class UnknownLayoutError(GraphscapeError, ValueError):
    """Raised when a layout type is not registered."""

    def __init__(self, layout_type: str, known: Optional[List[str]] = None) -> None:
        self.layout_type = layout_type
        self.known = sorted(known or [])
        hint = f" Known layouts: {', '.join(self.known)}." if self.known else ""
        super().__init__(f"Layout {layout_type!r} not found.{hint}")


class UnknownSizingError(GraphscapeError, ValueError):
    """Raised when a sizing mode is not supported."""

    def __init__(self, sizing_type: str) -> None:
        self.sizing_type = sizing_type
        super().__init__(f"Graph does not support {sizing_type!r} sizing")


class CircularGraphError(GraphscapeError):
    """
    Raised by the depth traversal when it walks back into a node that is
    still on the stack. Callers convert it into ``invalid=True``.
    """

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            "Invalid Graph: Circular node path detected: " + " -> ".join(self.cycle)
        )
