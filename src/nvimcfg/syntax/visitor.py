"""Visitor pattern for syntax tree traversal."""

from __future__ import annotations

from typing import Any

from nvimcfg.syntax.nodes import Node, NodePath


class NodeVisitor:
    """Base visitor for syntax tree traversal with structural paths.

    Override specific ``visit_*`` methods (``visit_callexpression``,
    ``visit_assignment``...) to customize behavior. The default
    implementation visits every child node; call ``generic_visit`` from an
    override to keep descending.
    """

    def visit(self, node: Node, path: NodePath = ()) -> Any:
        """Dispatch to the appropriate visit_* method."""
        method_name = f"visit_{type(node).__name__.lower()}"
        method = getattr(self, method_name, self.generic_visit)
        return method(node, path)

    def generic_visit(self, node: Node, path: NodePath) -> Any:
        for index, child in enumerate(node.children()):
            self.visit(child, path + (index,))
        return None
