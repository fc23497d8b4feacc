"""Plugin registry: merges plugin declarations across documents."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from nvimcfg.models import codes
from nvimcfg.models.config import ConfigEntities
from nvimcfg.models.errors import Category, Diagnostic, Severity, SourceSpan


@dataclass(frozen=True)
class PluginNode:
    """A declared plugin, identified by name within one registry.

    ``node_path`` is the structural path of the declaration in ``file``.
    """

    name: str
    dependencies: tuple[str, ...] = ()
    events: tuple[str, ...] = ()
    enabled: bool = True
    file: str = "<string>"
    span: SourceSpan | None = None
    node_path: tuple[int, ...] = ()


def build_registry(
    documents: Iterable[ConfigEntities],
) -> tuple[list[PluginNode], list[Diagnostic]]:
    """Merge declarations in scan order; the first declaration of a name wins."""
    nodes: dict[str, PluginNode] = {}
    diagnostics: list[Diagnostic] = []
    for entities in documents:
        for declaration in entities.plugins:
            existing = nodes.get(declaration.name)
            if existing is not None:
                where = str(existing.span) if existing.span else existing.file
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        category=Category.SEMANTIC,
                        code=codes.DUPLICATE_PLUGIN,
                        message=(
                            f"Plugin '{declaration.name}' is already declared at {where}; "
                            "this declaration is ignored"
                        ),
                        span=declaration.span,
                    )
                )
                continue
            nodes[declaration.name] = PluginNode(
                name=declaration.name,
                dependencies=tuple(declaration.dependencies),
                events=tuple(declaration.events),
                enabled=declaration.enabled,
                file=declaration.file,
                span=declaration.span,
                node_path=declaration.node_path,
            )
    return list(nodes.values()), diagnostics


class PluginRegistry:
    """Read-only name lookup and dependency queries over plugin nodes."""

    def __init__(self, nodes: Iterable[PluginNode]) -> None:
        self._nodes: dict[str, PluginNode] = {}
        for node in nodes:
            self._nodes.setdefault(node.name, node)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[PluginNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, name: str) -> PluginNode | None:
        return self._nodes.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._nodes)

    def dependencies(self, name: str) -> list[str]:
        """Direct dependencies as declared."""
        node = self._nodes.get(name)
        return list(node.dependencies) if node else []

    def all_dependencies(self, name: str) -> set[str]:
        """Transitive dependencies (declared names, registered or not)."""
        seen: set[str] = set()
        pending = list(self.dependencies(name))
        while pending:
            current = pending.pop()
            if current in seen or current == name:
                continue
            seen.add(current)
            pending.extend(self.dependencies(current))
        return seen

    def prerequisites(self, name: str) -> list[str]:
        """Registered transitive dependencies of ``name``, each after its own
        dependencies. Ties follow ascending name; cycles are cut."""
        order: list[str] = []
        visited: set[str] = {name}

        def _visit(current: str) -> None:
            for dependency in sorted(self.dependencies(current)):
                if dependency in visited or dependency not in self._nodes:
                    continue
                visited.add(dependency)
                _visit(dependency)
                order.append(dependency)

        _visit(name)
        return order

    def dependents(self, name: str) -> list[str]:
        """Plugins that declare ``name`` as a direct dependency."""
        return sorted(n.name for n in self._nodes.values() if name in n.dependencies)

    def missing_dependencies(self, name: str) -> list[str]:
        """Transitive dependencies that are not registered."""
        return sorted(d for d in self.all_dependencies(name) if d not in self._nodes)
