"""Plugin registry, dependency graph and load-order resolution."""

from nvimcfg.plugins.graph import DependencyGraph, build_graph
from nvimcfg.plugins.registry import PluginNode, PluginRegistry, build_registry
from nvimcfg.plugins.resolver import ResolveResult, detect_cycles, load_order, resolve

__all__ = [
    "DependencyGraph",
    "PluginNode",
    "PluginRegistry",
    "ResolveResult",
    "build_graph",
    "build_registry",
    "detect_cycles",
    "load_order",
    "resolve",
]
