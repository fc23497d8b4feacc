"""Dependency graph: plugins as nodes, "depends on" as edges. Uses networkx."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import networkx as nx

from nvimcfg.models import codes
from nvimcfg.models.errors import Category, Diagnostic, Severity
from nvimcfg.plugins.registry import PluginNode


class DependencyGraph:
    """Immutable directed graph; an edge A→B means A depends on B.

    Built once from plugin nodes and frozen; a changed configuration gets a
    new graph.
    """

    def __init__(self, graph: nx.DiGraph[str]) -> None:
        self._graph: nx.DiGraph[str] = nx.freeze(graph)

    @property
    def graph(self) -> nx.DiGraph[str]:
        """The underlying frozen networkx graph."""
        return self._graph

    def __contains__(self, name: object) -> bool:
        return name in self._graph

    def __iter__(self) -> Iterator[str]:
        return iter(self._graph.nodes)

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def node(self, name: str) -> PluginNode:
        return self._graph.nodes[name]["plugin"]  # type: ignore[no-any-return]

    @property
    def nodes(self) -> list[str]:
        return sorted(self._graph.nodes)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return sorted(self._graph.edges)

    def dependencies(self, name: str) -> list[str]:
        return sorted(self._graph.successors(name))

    def dependents(self, name: str) -> list[str]:
        return sorted(self._graph.predecessors(name))

    def has_edge(self, source: str, target: str) -> bool:
        return bool(self._graph.has_edge(source, target))


def build_graph(nodes: Iterable[PluginNode]) -> tuple[DependencyGraph, list[Diagnostic]]:
    """Build the graph; dependencies on unknown plugins are reported, not added."""
    graph: nx.DiGraph[str] = nx.DiGraph()
    plugins = list(nodes)
    for plugin in plugins:
        if plugin.name not in graph:
            graph.add_node(plugin.name, plugin=plugin)

    diagnostics: list[Diagnostic] = []
    for plugin in plugins:
        if graph.nodes[plugin.name]["plugin"] is not plugin:
            continue
        for dependency in plugin.dependencies:
            if dependency not in graph:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.ERROR,
                        category=Category.DEPENDENCY,
                        code=codes.UNRESOLVED_DEPENDENCY,
                        message=(
                            f"Plugin '{plugin.name}' depends on '{dependency}', "
                            "which is not declared"
                        ),
                        span=plugin.span,
                    )
                )
                continue
            graph.add_edge(plugin.name, dependency)
    return DependencyGraph(graph), diagnostics
