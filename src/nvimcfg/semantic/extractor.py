"""Semantic view over a syntax tree: options, plugin declarations, requires.

Recognition is purely structural. Constructs that match none of the shapes
below are kept in the tree untouched and simply produce no entity.

Options
    ``vim.opt.tabstop = 4`` (any option root), ``vim.opt = { ... }`` and a
    table assigned to one of the configured option-table names
    (``options = { tabstop = 4, ui = { border = "single" } }``). Nested
    tables with only named fields yield dotted keys (``ui.border``).

Plugins
    ``use "a"``, ``use("a", { ... })``, ``use { "a", ... }`` (configurable
    callee names) and lazy.nvim table specs inside a plugin list: the value
    of a ``plugins``/``spec`` field, the table argument of
    ``require("lazy").setup(...)`` and a chunk-level ``return`` table.

Requires
    ``require("mod")`` / ``require "mod"`` with a literal module name.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import JsonValue

from nvimcfg.models.config import (
    ConfigEntities,
    DeclarationStyle,
    OptionEntity,
    PluginDeclaration,
    RequireEntity,
    ValueType,
)
from nvimcfg.syntax.nodes import (
    Assignment,
    Block,
    CallExpression,
    Expression,
    FieldAssignment,
    IndexExpression,
    Literal,
    LiteralKind,
    Node,
    NodePath,
    Statement,
    TableConstructor,
    dotted_name,
)
from nvimcfg.syntax.parser import SyntaxTree
from nvimcfg.syntax.printer import node_source
from nvimcfg.syntax.source import LineIndex
from nvimcfg.syntax.tokens import Token
from nvimcfg.syntax.visitor import NodeVisitor

OPTION_ROOTS = (
    "vim.opt",
    "vim.o",
    "vim.g",
    "vim.go",
    "vim.bo",
    "vim.wo",
    "vim.opt_local",
    "vim.opt_global",
)
PLUGIN_LIST_FIELDS = frozenset({"plugins", "spec"})
DEPENDENCY_FIELDS = ("dependencies", "requires")


# ---------------------------------------------------------------------------
# Literal values
# ---------------------------------------------------------------------------


def literal_value(node: Node | None) -> tuple[ValueType, JsonValue]:
    """Type and plain value of an expression node.

    Anything that is not a literal, a negated number or a table of such
    values is ``(ValueType.EXPRESSION, None)``.
    """
    if isinstance(node, Literal):
        kind = node.kind
        if kind == LiteralKind.STRING:
            return ValueType.STRING, node.value
        if kind == LiteralKind.NUMBER:
            return ValueType.NUMBER, node.value
        if kind == LiteralKind.BOOLEAN:
            return ValueType.BOOLEAN, node.value
        if kind == LiteralKind.NIL:
            return ValueType.NIL, None
        return ValueType.EXPRESSION, None
    if isinstance(node, Expression) and node.kind == "unary":
        op, operand = node.parts
        if isinstance(op, Token) and op.text == "-" and isinstance(operand, Node):
            value_type, value = literal_value(operand)
            if value_type == ValueType.NUMBER and isinstance(value, (int, float)):
                return ValueType.NUMBER, -value
        return ValueType.EXPRESSION, None
    if isinstance(node, TableConstructor):
        return ValueType.TABLE, table_value(node)
    return ValueType.EXPRESSION, None


def table_value(table: TableConstructor) -> JsonValue:
    """Plain value of a table: a list when all fields are positional, else a dict.

    Positional entries of a mixed table are keyed by their 1-based index.
    """
    if all(f.is_positional for f in table.fields):
        return [literal_value(f.value)[1] for f in table.fields]
    result: dict[str, JsonValue] = {}
    position = 0
    for item in table.fields:
        if item.is_positional:
            position += 1
            result[str(position)] = literal_value(item.value)[1]
        elif item.name is not None:
            result[item.name] = literal_value(item.value)[1]
    return result


def string_value(node: Node | None) -> str | None:
    if isinstance(node, Literal) and node.kind == LiteralKind.STRING:
        value = node.value
        return value if isinstance(value, str) else None
    return None


def spec_name(node: Node | None) -> str | None:
    """Plugin name of a spec: a string, or a table whose first positional field is one."""
    if isinstance(node, TableConstructor):
        positional = node.positional()
        return string_value(positional[0].value) if positional else None
    return string_value(node)


def field_value_index(item: FieldAssignment) -> int:
    """Child index of a field's value within the field node."""
    return 0 if item.key is None else 1


def call_argument_index(call: CallExpression, position: int) -> int:
    """Child index of the ``position``-th argument within a call node."""
    return 1 + (1 if call.method is not None else 0) + position


def is_lazy_setup(call: CallExpression) -> bool:
    """``require("lazy").setup(...)``."""
    callee = call.callee
    if call.method is not None and isinstance(callee, CallExpression):
        inner, name = callee, call.method.name
    elif isinstance(callee, IndexExpression) and isinstance(callee.target, CallExpression):
        inner, name = callee.target, dotted_name(callee.key) or ""
    else:
        return False
    if name != "setup" or dotted_name(inner.callee) != "require":
        return False
    return bool(inner.args) and string_value(inner.args[0]) == "lazy"


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class ConfigExtractor(NodeVisitor):
    """Derives :class:`ConfigEntities` from a syntax tree."""

    def __init__(
        self,
        option_tables: Sequence[str] = ("options",),
        plugin_functions: Sequence[str] = ("use", "Plug"),
    ) -> None:
        self._option_tables = frozenset(option_tables)
        self._plugin_functions = frozenset(plugin_functions)
        self._entities = ConfigEntities()
        self._lines = LineIndex("")
        self._statement: NodePath = ()

    def extract(self, tree: SyntaxTree) -> ConfigEntities:
        self._entities = ConfigEntities(file=tree.filename)
        self._lines = LineIndex(tree.text, tree.filename)
        self._statement = ()
        self.visit(tree.chunk, ())
        return self._entities

    # -- traversal -----------------------------------------------------------

    def visit_block(self, node: Block, path: NodePath) -> None:
        for index, statement in enumerate(node.statements):
            outer = self._statement
            self._statement = path + (index,)
            self.visit(statement, path + (index,))
            self._statement = outer

    def visit_assignment(self, node: Assignment, path: NodePath) -> None:
        values = node.value_nodes
        for position, target in enumerate(node.target_nodes):
            if position >= len(values):
                break
            name = dotted_name(target)
            if name is None:
                continue
            value = values[position]
            value_path = path + (node.value_child_index(position),)
            if name in self._option_tables or name in OPTION_ROOTS:
                if isinstance(value, TableConstructor):
                    self._option_table(value, value_path, scope=name, prefix="")
                continue
            root = _option_root(name)
            if root is not None:
                self._option(
                    key=name[len(root) + 1 :],
                    scope=root,
                    value=value,
                    value_path=value_path,
                    span_node=node,
                    table_path=None,
                )
        self.generic_visit(node, path)

    def visit_statement(self, node: Statement, path: NodePath) -> None:
        if node.kind == "return" and len(path) == 2:
            expressions = node.children()
            if expressions and isinstance(expressions[0], TableConstructor):
                self._return_table(expressions[0], path + (0,))
        self.generic_visit(node, path)

    def visit_fieldassignment(self, node: FieldAssignment, path: NodePath) -> None:
        if node.name in PLUGIN_LIST_FIELDS and isinstance(node.value, TableConstructor):
            self._plugin_list(node.value, path + (field_value_index(node),))
        self.generic_visit(node, path)

    def visit_callexpression(self, node: CallExpression, path: NodePath) -> None:
        callee = dotted_name(node.callee) if node.method is None else None
        args = node.args
        if callee == "require" and args:
            module = string_value(args[0])
            if module is not None:
                self._entities.requires.append(
                    RequireEntity(
                        module=module,
                        file=self._entities.file,
                        span=self._lines.node_span(node),
                        node_path=path,
                    )
                )
        elif callee in self._plugin_functions and args:
            self._plugin_call(node, path)
        elif is_lazy_setup(node) and args and isinstance(args[0], TableConstructor):
            table = args[0]
            if spec_name(table) is None:
                self._plugin_list(table, path + (call_argument_index(node, 0),))
        self.generic_visit(node, path)

    # -- options -------------------------------------------------------------

    def _option_table(
        self, table: TableConstructor, table_path: NodePath, *, scope: str, prefix: str
    ) -> None:
        for index, item in enumerate(table.fields):
            name = item.name
            if name is None:
                continue
            key = f"{prefix}{name}"
            value_path = table_path + (index, field_value_index(item))
            value = item.value
            if (
                isinstance(value, TableConstructor)
                and value.fields
                and not any(f.is_positional for f in value.fields)
            ):
                self._option_table(value, value_path, scope=scope, prefix=f"{key}.")
                continue
            self._option(
                key=key,
                scope=scope,
                value=value,
                value_path=value_path,
                span_node=item,
                table_path=table_path,
            )

    def _option(
        self,
        *,
        key: str,
        scope: str,
        value: Node | None,
        value_path: NodePath,
        span_node: Node,
        table_path: NodePath | None,
    ) -> None:
        value_type, resolved = literal_value(value)
        self._entities.options.append(
            OptionEntity(
                key=key,
                scope=scope,
                value_type=value_type,
                value=resolved,
                file=self._entities.file,
                span=self._lines.node_span(span_node),
                node_path=value_path,
                table_path=table_path,
                statement_path=self._statement,
            )
        )

    # -- plugins -------------------------------------------------------------

    def _return_table(self, table: TableConstructor, path: NodePath) -> None:
        if spec_name(table) is not None:
            self._plugin_spec(table, path, style=DeclarationStyle.TABLE, list_path=None)
        elif table.positional() and not table.named("plugins") and not table.named("spec"):
            self._plugin_list(table, path)

    def _plugin_list(self, table: TableConstructor, table_path: NodePath) -> None:
        for index, item in enumerate(table.fields):
            if not item.is_positional:
                continue
            item_path = table_path + (index, 0)
            if isinstance(item.value, TableConstructor):
                if spec_name(item.value) is not None:
                    self._plugin_spec(
                        item.value, item_path, style=DeclarationStyle.TABLE, list_path=table_path
                    )
            elif string_value(item.value) is not None:
                self._plugin_spec(
                    item.value, item_path, style=DeclarationStyle.STRING, list_path=table_path
                )

    def _plugin_call(self, call: CallExpression, path: NodePath) -> None:
        args = call.args
        name = string_value(args[0])
        spec_table: TableConstructor | None = None
        if name is not None:
            if len(args) > 1 and isinstance(args[1], TableConstructor):
                spec_table = args[1]
        elif isinstance(args[0], TableConstructor):
            name = spec_name(args[0])
            spec_table = args[0]
        if name is None:
            return
        self._add_plugin(name, spec_table, call, path, DeclarationStyle.CALL, None)

    def _plugin_spec(
        self,
        node: Node,
        path: NodePath,
        *,
        style: DeclarationStyle,
        list_path: NodePath | None,
    ) -> None:
        name = spec_name(node)
        if name is None:
            return
        table = node if isinstance(node, TableConstructor) else None
        self._add_plugin(name, table, node, path, style, list_path)

    def _add_plugin(
        self,
        name: str,
        table: TableConstructor | None,
        node: Node,
        path: NodePath,
        style: DeclarationStyle,
        list_path: NodePath | None,
    ) -> None:
        dependencies: list[str] = []
        events: list[str] = []
        enabled = True
        opts: dict[str, JsonValue] = {}
        if table is not None:
            for field_name in DEPENDENCY_FIELDS:
                item = table.named(field_name)
                if item is not None:
                    dependencies.extend(_dependency_names(item.value))
            event = table.named("event")
            if event is not None:
                events = _string_list(event.value)
            flag = table.named("enabled")
            if flag is not None and isinstance(flag.value, Literal):
                enabled = flag.value.kind != LiteralKind.BOOLEAN or bool(flag.value.value)
            options = table.named("opts")
            if options is not None and isinstance(options.value, TableConstructor):
                value = table_value(options.value)
                opts = value if isinstance(value, dict) else {}
        self._entities.plugins.append(
            PluginDeclaration(
                name=name,
                source=node_source(node),
                dependencies=list(dict.fromkeys(dependencies)),
                events=events,
                enabled=enabled,
                opts=opts,
                style=style,
                file=self._entities.file,
                span=self._lines.node_span(node),
                node_path=path,
                list_path=list_path,
                statement_path=self._statement,
            )
        )


def _option_root(name: str) -> str | None:
    for root in OPTION_ROOTS:
        if name.startswith(root + ".") and len(name) > len(root) + 1:
            return root
    return None


def _dependency_names(node: Node | None) -> list[str]:
    if isinstance(node, TableConstructor):
        names = [spec_name(f.value) for f in node.fields if f.is_positional]
        return [n for n in names if n is not None]
    name = string_value(node)
    return [name] if name is not None else []


def _string_list(node: Node | None) -> list[str]:
    if isinstance(node, TableConstructor):
        values = [string_value(f.value) for f in node.fields if f.is_positional]
        return [v for v in values if v is not None]
    value = string_value(node)
    return [value] if value is not None else []


def extract(
    tree: SyntaxTree,
    *,
    option_tables: Sequence[str] = ("options",),
    plugin_functions: Sequence[str] = ("use", "Plug"),
) -> ConfigEntities:
    """Convenience wrapper around :class:`ConfigExtractor`."""
    return ConfigExtractor(option_tables, plugin_functions).extract(tree)
