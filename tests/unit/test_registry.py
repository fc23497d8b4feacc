"""Tests for the plugin registry."""

from __future__ import annotations

from nvimcfg.models import codes
from nvimcfg.models.errors import Severity
from nvimcfg.plugins.registry import PluginNode, PluginRegistry, build_registry
from nvimcfg.semantic.extractor import extract
from tests.conftest import tree_of


def _registry(**edges: tuple[str, ...]) -> PluginRegistry:
    return PluginRegistry(PluginNode(name=name, dependencies=deps) for name, deps in edges.items())


class TestBuildRegistry:
    def test_merges_documents_in_scan_order(self) -> None:
        first = extract(tree_of('use { "a", requires = "b" }\n', "one.lua"))
        second = extract(tree_of('use "b"\n', "two.lua"))
        nodes, diagnostics = build_registry([first, second])
        assert [n.name for n in nodes] == ["a", "b"]
        assert nodes[0].dependencies == ("b",)
        assert nodes[0].file == "one.lua"
        assert nodes[1].file == "two.lua"
        assert diagnostics == []

    def test_first_declaration_wins(self) -> None:
        first = extract(tree_of('use { "a", requires = "b" }\n', "one.lua"))
        second = extract(tree_of('use "a"\n', "two.lua"))
        nodes, diagnostics = build_registry([first, second])
        assert len(nodes) == 1
        assert nodes[0].dependencies == ("b",)
        [duplicate] = diagnostics
        assert duplicate.code == codes.DUPLICATE_PLUGIN
        assert duplicate.severity == Severity.WARNING
        assert "one.lua:1:1" in duplicate.message
        assert duplicate.span is not None and duplicate.span.file == "two.lua"

    def test_node_carries_declaration_details(self) -> None:
        entities = extract(tree_of('use { "a", event = "VeryLazy", enabled = false }\n'))
        [node] = build_registry([entities])[0]
        assert node.events == ("VeryLazy",)
        assert node.enabled is False
        assert node.node_path == (0, 0, 0)


class TestQueries:
    def test_lookup(self) -> None:
        registry = _registry(a=("b",), b=())
        assert "a" in registry
        assert "z" not in registry
        assert len(registry) == 2
        assert registry.names == ["a", "b"]
        assert registry.get("a") is not None
        assert registry.get("z") is None
        assert [n.name for n in registry] == ["a", "b"]

    def test_transitive_queries(self) -> None:
        registry = _registry(a=("b",), b=("c",), c=(), d=("a",))
        assert registry.dependencies("a") == ["b"]
        assert registry.all_dependencies("a") == {"b", "c"}
        assert registry.prerequisites("d") == ["c", "b", "a"]
        assert registry.dependents("a") == ["d"]
        assert registry.dependencies("unknown") == []

    def test_missing_dependencies(self) -> None:
        registry = _registry(a=("b", "x"), b=("y",))
        assert registry.missing_dependencies("a") == ["x", "y"]

    def test_queries_terminate_on_cycles(self) -> None:
        registry = _registry(a=("b",), b=("a",))
        assert registry.all_dependencies("a") == {"b"}
        assert registry.prerequisites("a") == ["b"]
