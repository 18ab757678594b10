"""
Collapse / expand resolution over the ``parents`` hierarchy.

A node is collapsed when it, or any of its ancestors, is in the collapsed
set. Expanding a hidden node requires expanding the collapsed ancestors on
one parent chain from a root down to it; that chain is chosen
deterministically:

    1. fewest collapsed ancestors
    2. fewest hops
    3. first-listed parent at each level

Visibility (``get_visible_entities``) works on edges: outbound edges of a
collapsed node are hidden, and a node whose inbound edges are all hidden is
hidden too, recursively.
"""

from __future__ import annotations

import heapq
import itertools
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from .model import GraphModel


@dataclass
class VisibleEntities:
    node_ids: List[str] = field(default_factory=list)
    edge_ids: List[str] = field(default_factory=list)
    hidden_node_ids: Set[str] = field(default_factory=set)
    hidden_edge_ids: Set[str] = field(default_factory=set)


class CollapseResolver:
    def __init__(self, model: GraphModel, collapsed_ids: Optional[Iterable[str]] = None) -> None:
        self.model = model
        self.collapsed: Set[str] = set(collapsed_ids or [])

    # ------------------------------------------------------------------ #
    def collapse(self, node_id: str) -> None:
        self.collapsed.add(node_id)

    def expand(self, node_id: str) -> None:
        self.collapsed.discard(node_id)

    def _parents(self, node_id: str) -> List[str]:
        node = self.model.nodes.get(node_id)
        if node is None:
            return []
        return [p for p in node.parents if p in self.model.nodes]

    # ------------------------------------------------------------------ #
    def get_is_collapsed(self, node_id: str) -> bool:
        if not self.collapsed or node_id not in self.model.nodes:
            return False

        seen: Set[str] = set()
        stack = [node_id]
        while stack:
            cur = stack.pop()
            if cur in seen:
                continue
            seen.add(cur)
            if cur in self.collapsed:
                return True
            stack.extend(self._parents(cur))
        return False

    def get_expand_path_ids(self, node_id: str) -> List[str]:
        """Collapsed ancestors to expand, root first, target excluded."""
        if node_id not in self.model.nodes:
            return []

        counter = itertools.count()
        # cost = (collapsed ancestors, hops, parent-index sequence)
        start: Tuple[int, int, Tuple[int, ...]] = (0, 0, ())
        heap = [(start, next(counter), node_id, (node_id,))]
        done: Set[str] = set()

        while heap:
            cost, _, cur, chain = heapq.heappop(heap)
            if cur in done:
                continue
            done.add(cur)

            parents = self._parents(cur)
            if not parents:
                ancestors = chain[1:]
                return [a for a in reversed(ancestors) if a in self.collapsed]

            collapsed_count, hops, seq = cost
            for idx, p in enumerate(parents):
                if p in done or p in chain:
                    continue
                step_cost = (
                    collapsed_count + (1 if p in self.collapsed else 0),
                    hops + 1,
                    seq + (idx,),
                )
                heapq.heappush(heap, (step_cost, next(counter), p, chain + (p,)))

        # no root reachable: every ancestor sits on a cycle
        found: List[str] = []
        seen = {node_id}
        queue = deque(self._parents(node_id))
        while queue:
            cur = queue.popleft()
            if cur in seen:
                continue
            seen.add(cur)
            if cur in self.collapsed:
                found.append(cur)
            queue.extend(self._parents(cur))
        return list(reversed(found))

    # ------------------------------------------------------------------ #
    def get_visible_entities(self) -> VisibleEntities:
        model = self.model
        roots = [nid for nid in model.nodes if nid in self.collapsed]
        hidden_nodes: Set[str] = set()
        hidden_edges: Set[str] = set()

        changed = True
        while changed:
            changed = False
            for root in roots:
                stack = [root]
                visited = {root}
                while stack:
                    cur = stack.pop()
                    for e in model.outbound_edges(cur):
                        if e.id not in hidden_edges:
                            hidden_edges.add(e.id)
                            changed = True
                        t = e.target
                        if t == root or t in visited:
                            continue
                        if t not in hidden_nodes and all(
                            ie.id in hidden_edges for ie in model.inbound_edges(t)
                        ):
                            hidden_nodes.add(t)
                            changed = True
                        if t in hidden_nodes:
                            visited.add(t)
                            stack.append(t)

        return VisibleEntities(
            node_ids=[nid for nid in model.nodes if nid not in hidden_nodes],
            edge_ids=[eid for eid in model.edges if eid not in hidden_edges],
            hidden_node_ids=hidden_nodes,
            hidden_edge_ids=hidden_edges,
        )
