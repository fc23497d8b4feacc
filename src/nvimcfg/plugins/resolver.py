"""Graph resolver: cycle detection and deterministic load order."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

from nvimcfg.models import codes
from nvimcfg.models.errors import Category, Diagnostic, Severity
from nvimcfg.plugins.graph import DependencyGraph


class _Color(Enum):
    WHITE = 0
    GRAY = 1
    BLACK = 2


@dataclass(frozen=True)
class ResolveResult:
    """Load order (dependencies first) or the cycles that prevent one."""

    order: list[str] | None
    cycles: list[list[str]] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.order is not None


def detect_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Three-colour depth-first search; each back-edge closes one cycle.

    Nodes and neighbours are visited in ascending name order. A cycle is
    reported once, rotated to start at its smallest name.
    """
    color = {name: _Color.WHITE for name in graph}
    cycles: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()

    for start in graph.nodes:
        if color[start] is not _Color.WHITE:
            continue
        color[start] = _Color.GRAY
        path = [start]
        stack: list[Iterator[str]] = [iter(graph.dependencies(start))]
        while stack:
            successor = next(stack[-1], None)
            if successor is None:
                color[path.pop()] = _Color.BLACK
                stack.pop()
                continue
            if color[successor] is _Color.WHITE:
                color[successor] = _Color.GRAY
                path.append(successor)
                stack.append(iter(graph.dependencies(successor)))
            elif color[successor] is _Color.GRAY:
                cycle = path[path.index(successor) :]
                pivot = cycle.index(min(cycle))
                key = tuple(cycle[pivot:] + cycle[:pivot])
                if key not in seen:
                    seen.add(key)
                    cycles.append(list(key))
    return cycles


def load_order(graph: DependencyGraph) -> list[str]:
    """Topological order with dependencies first; ties by ascending name.

    Raises ``networkx.NetworkXUnfeasible`` on a cyclic graph.
    """
    # Kahn's algorithm over the reversed graph: a node becomes eligible once
    # all of its dependencies are placed.
    return list(nx.lexicographical_topological_sort(graph.graph.reverse(copy=True)))


def resolve(graph: DependencyGraph) -> ResolveResult:
    """Pure function of the graph: identical graphs give identical results."""
    cycles = detect_cycles(graph)
    if not cycles:
        return ResolveResult(order=load_order(graph))

    diagnostics = []
    for cycle in cycles:
        chain = " -> ".join([*cycle, cycle[0]])
        diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                category=Category.DEPENDENCY,
                code=codes.CYCLIC_DEPENDENCY,
                message=f"Cyclic dependency: {chain}",
                span=graph.node(cycle[0]).span,
            )
        )
    return ResolveResult(order=None, cycles=cycles, diagnostics=diagnostics)
