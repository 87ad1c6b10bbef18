"""
DAG structure for ordering the futures of a deployment plan.

Nodes are future ids; an edge ``a -> b`` means ``b`` consumes ``a`` (as a
constructor argument, call target, linked library, address source, or an
explicit ``after=`` dependency). The executor realizes futures in
:meth:`DAG.topological_order`.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deployplan.core.plan import Plan


@dataclass
class Node:
    """A node in the plan DAG; ``meta`` carries the future kind and module id."""

    id: str
    label: str = ""
    meta: dict[str, object] = field(default_factory=dict)


class DAG:
    """
    A small directed acyclic graph with a deterministic topological sort.

    Nodes keep their insertion order; when several nodes are ready at once the
    one inserted first wins, so for a plan the order degrades gracefully to
    declaration order.
    """

    nodes: dict[str, Node]
    edges: dict[str, set[str]]
    rev_edges: dict[str, set[str]]

    def __init__(self) -> None:
        self.nodes = {}
        self.edges = {}
        self.rev_edges = {}

    # ----------------------------------------------------------------------
    # Construction
    # ----------------------------------------------------------------------

    def add_node(self, node_id: str, *, label: str = "", **meta: object) -> Node:
        """Add (or return the existing) node ``node_id``."""
        if node_id not in self.nodes:
            self.nodes[node_id] = Node(id=node_id, label=label or node_id, meta=dict(meta))
            self.edges.setdefault(node_id, set())
            self.rev_edges.setdefault(node_id, set())
        return self.nodes[node_id]

    def add(self, src: str, dst: str) -> None:
        """Add an edge src -> dst, creating missing nodes automatically."""
        self.add_node(src)
        self.add_node(dst)
        self.edges[src].add(dst)
        self.rev_edges[dst].add(src)

    # ----------------------------------------------------------------------
    # Topological sort (Kahn's algorithm)
    # ----------------------------------------------------------------------

    def topological_order(self) -> list[str]:
        """
        Return the nodes in topologically sorted order.

        Notes
        -----
        - Ties are broken by insertion order (a heap keyed on the node index).
        - Uses a local indegree map; the underlying DAG is never mutated.

        Raises
        ------
        ValueError
            If the DAG contains a cycle.
        """
        index = {u: i for i, u in enumerate(self.nodes)}
        indeg = {u: len(self.rev_edges.get(u, ())) for u in self.nodes}
        ready = [index[u] for u in self.nodes if indeg[u] == 0]
        heapq.heapify(ready)
        names = list(self.nodes)
        out: list[str] = []

        while ready:
            u = names[heapq.heappop(ready)]
            out.append(u)
            for v in self.edges.get(u, ()):
                indeg[v] -= 1
                if indeg[v] == 0:
                    heapq.heappush(ready, index[v])

        if len(out) != len(self.nodes):
            stuck = sorted(u for u in self.nodes if indeg[u] > 0)
            raise ValueError(f"DAG contains a cycle through: {', '.join(stuck)}")

        return out

    # ----------------------------------------------------------------------
    # Build a DAG directly from a Plan
    # ----------------------------------------------------------------------

    @classmethod
    def from_plan(cls, plan: Plan) -> DAG:
        """Construct the dependency DAG of every future registered in ``plan``."""
        dag = cls()

        for future in plan.futures.values():
            dag.add_node(future.id, label=future.name, kind=future.kind, module=future.module_id)

        for future in plan.futures.values():
            for dep in plan.dependencies(future):
                dag.add(dep.id, future.id)

        return dag


__all__ = ["DAG", "Node"]
