"""Patch engine: applies patch operations to a syntax tree, all-or-nothing.

Targets are located through the semantic view (option keys, plugin names)
or a structural path, never by line number. When a target does not exist,
a minimal insertion is synthesized after the last sibling of the same kind.
After each operation the tree is printed and reparsed; a step that adds
syntax errors rejects the whole patch. The input tree is never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import StrEnum

from pydantic import JsonValue

from nvimcfg.models import codes
from nvimcfg.models.config import (
    ConfigEntities,
    DeclarationStyle,
    OptionEntity,
    PluginDeclaration,
    ValueType,
)
from nvimcfg.models.patch import (
    AddDependency,
    AddPlugin,
    Patch,
    PatchOperation,
    PluginSpec,
    RemovePlugin,
    ReplaceNode,
    SetOption,
)
from nvimcfg.semantic.extractor import (
    OPTION_ROOTS,
    ConfigExtractor,
    call_argument_index,
    field_value_index,
    spec_name,
    string_value,
)
from nvimcfg.syntax.nodes import (
    Assignment,
    Block,
    CallExpression,
    Chunk,
    ErrorNode,
    FieldAssignment,
    Node,
    NodePath,
    Statement,
    TableConstructor,
    dotted_name,
    first_token,
    node_at,
    walk,
)
from nvimcfg.syntax.parser import SyntaxTree, parse
from nvimcfg.syntax.printer import (
    format_key,
    format_plugin_spec,
    format_string,
    format_value,
    node_source,
    print_tree,
)
from nvimcfg.transform.edits import (
    indent_of,
    insert_field,
    insert_statement,
    remove_field,
    remove_statement,
    replace_node,
    synthesize_expression,
    synthesize_field,
    synthesize_statement,
)

logger = logging.getLogger("nvimcfg.transform")


class TransformErrorKind(StrEnum):
    TARGET_NOT_FOUND = "target_not_found"
    MALFORMED = "malformed"


class TransformError(Exception):
    """Raised when a patch is rejected. The input tree is left untouched."""

    def __init__(
        self, kind: TransformErrorKind, message: str, operation: PatchOperation | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.operation = operation

    @property
    def code(self) -> str:
        if self.kind == TransformErrorKind.TARGET_NOT_FOUND:
            return codes.TRANSFORM_TARGET_NOT_FOUND
        return codes.TRANSFORM_MALFORMED


def _not_found(message: str) -> TransformError:
    return TransformError(TransformErrorKind.TARGET_NOT_FOUND, message)


def _malformed(message: str) -> TransformError:
    return TransformError(TransformErrorKind.MALFORMED, message)


def value_type_of(value: JsonValue) -> ValueType:
    if value is None:
        return ValueType.NIL
    if isinstance(value, bool):
        return ValueType.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueType.NUMBER
    if isinstance(value, str):
        return ValueType.STRING
    return ValueType.TABLE


def _error_count(chunk: Chunk) -> int:
    return sum(1 for _, node in walk(chunk) if isinstance(node, ErrorNode))


class PatchEngine:
    """Applies :class:`Patch` objects to syntax trees."""

    def __init__(
        self,
        option_tables: Sequence[str] = ("options",),
        plugin_functions: Sequence[str] = ("use", "Plug"),
    ) -> None:
        self._option_tables = tuple(option_tables)
        self._plugin_functions = tuple(plugin_functions)
        self._extractor = ConfigExtractor(option_tables, plugin_functions)

    def apply(self, tree: SyntaxTree, patch: Patch) -> SyntaxTree:
        """Return a new tree with every operation of ``patch`` applied.

        Raises :class:`TransformError` if any operation fails; nothing is
        applied in that case.
        """
        baseline = _error_count(tree.chunk)
        current = tree
        for operation in patch.operations:
            try:
                chunk = self._apply_operation(current, operation)
            except TransformError as exc:
                exc.operation = operation
                raise
            if chunk is current.chunk:
                logger.debug("%s is already satisfied", operation.describe())
                continue
            result = parse(print_tree(chunk), tree.filename)
            if _error_count(result.tree.chunk) > baseline:
                raise TransformError(
                    TransformErrorKind.MALFORMED,
                    f"{operation.describe()} produced invalid Lua: "
                    + "; ".join(d.message for d in result.diagnostics),
                    operation,
                )
            current = result.tree
        logger.debug("Applied %d operation(s) to %s", len(patch), tree.filename)
        return current

    def _apply_operation(self, tree: SyntaxTree, operation: PatchOperation) -> Node:
        try:
            if isinstance(operation, SetOption):
                return self._set_option(tree, operation)
            if isinstance(operation, AddPlugin):
                return self._add_plugin(tree, operation)
            if isinstance(operation, RemovePlugin):
                return self._remove_plugin(tree, operation)
            if isinstance(operation, AddDependency):
                return self._add_dependency(tree, operation)
            return self._replace_node(tree, operation)
        except (ValueError, TypeError) as exc:
            raise _malformed(f"{operation.describe()}: {exc}") from exc

    def _entities(self, tree: SyntaxTree) -> ConfigEntities:
        return self._extractor.extract(tree)

    # -- set_option ----------------------------------------------------------

    def _split_option_path(self, path: str) -> tuple[str | None, str]:
        for root in sorted(OPTION_ROOTS, key=len, reverse=True):
            if path.startswith(root + "."):
                return root, path[len(root) + 1 :]
        for name in self._option_tables:
            if path.startswith(name + "."):
                return name, path[len(name) + 1 :]
        return None, path

    def _set_option(self, tree: SyntaxTree, op: SetOption) -> Node:
        chunk = tree.chunk
        scope, key = self._split_option_path(op.path)
        entities = self._entities(tree)
        matches = [
            o for o in entities.options if o.key == key and (scope is None or o.scope == scope)
        ]
        if matches:
            return self._replace_option_value(chunk, matches[-1], op.value)

        table = self._find_option_table(chunk, scope)
        if table is not None:
            return self._insert_option_field(chunk, table, key.split("."), op.value)
        if "." in key or (scope is not None and scope not in OPTION_ROOTS):
            raise _not_found(f"No option table holds '{op.path}'")
        return self._insert_option_statement(chunk, entities, scope, key, op.value)

    def _replace_option_value(self, chunk: Chunk, target: OptionEntity, value: JsonValue) -> Node:
        if target.value_type == value_type_of(value) and target.value == value:
            return chunk
        holder = node_at(chunk, target.node_path[:-1])
        if not isinstance(holder, FieldAssignment):
            holder = node_at(chunk, target.statement_path)
        indent = indent_of(first_token(holder))
        new = synthesize_expression(format_value(value, indent))
        return replace_node(chunk, target.node_path, new)

    def _find_option_table(self, chunk: Chunk, scope: str | None) -> NodePath | None:
        """Path of the last table assigned to an option-table name (or ``scope``)."""
        names = {scope} if scope is not None else set(self._option_tables)
        found: NodePath | None = None
        for path, node in walk(chunk):
            if not isinstance(node, Assignment):
                continue
            values = node.value_nodes
            for position, target in enumerate(node.target_nodes):
                if position < len(values) and dotted_name(target) in names:
                    if isinstance(values[position], TableConstructor):
                        found = path + (node.value_child_index(position),)
        return found

    def _insert_option_field(
        self, chunk: Chunk, table_path: NodePath, parts: list[str], value: JsonValue
    ) -> Node:
        table = node_at(chunk, table_path)
        assert isinstance(table, TableConstructor)
        while len(parts) > 1:
            index = table.field_index(parts[0])
            if index is None:
                break
            item = table.fields[index]
            if not isinstance(item.value, TableConstructor):
                raise _malformed(f"'{parts[0]}' is not a table")
            table_path = table_path + (index, field_value_index(item))
            table = item.value
            parts = parts[1:]

        index = table.field_index(parts[0])
        if index is not None and len(parts) == 1:
            # field exists but was not recognised as an option (e.g. a nested table)
            value_path = table_path + (index, field_value_index(table.fields[index]))
            indent = indent_of(first_token(table.fields[index]))
            return replace_node(
                chunk, value_path, synthesize_expression(format_value(value, indent))
            )
        nested: JsonValue = value
        for part in reversed(parts[1:]):
            nested = {part: nested}
        if table.fields:
            indent = indent_of(first_token(table.fields[-1]))
        else:
            indent = indent_of(table.close) + "  "
        text = f"{format_key(parts[0])} = {format_value(nested, indent)}"
        return insert_field(chunk, table_path, synthesize_field(text))

    def _insert_option_statement(
        self,
        chunk: Chunk,
        entities: ConfigEntities,
        scope: str | None,
        key: str,
        value: JsonValue,
    ) -> Node:
        dotted = [o for o in entities.options if o.table_path is None]
        same_root = [o for o in dotted if o.scope == scope] if scope else []
        anchors = same_root or dotted
        root = scope if scope in OPTION_ROOTS else (anchors[-1].scope if anchors else "vim.opt")
        target = f"{root}.{key}" if key.isidentifier() else f"{root}[{format_string(key)}]"
        statement = synthesize_statement(f"{target} = {format_value(value)}")
        if anchors:
            block_path, index = anchors[-1].statement_path[:-1], anchors[-1].statement_path[-1] + 1
        else:
            block_path, index = (0,), _append_index(chunk.block)
        return insert_statement(chunk, block_path, index, statement)

    # -- plugins -------------------------------------------------------------

    def _add_plugin(self, tree: SyntaxTree, op: AddPlugin) -> Node:
        chunk = tree.chunk
        spec = op.spec
        entities = self._entities(tree)
        if entities.plugin(spec.name) is not None:
            raise _malformed(f"Plugin '{spec.name}' is already declared")

        listed = [p for p in entities.plugins if p.list_path is not None]
        calls = [p for p in entities.plugins if p.style == DeclarationStyle.CALL]
        if listed:
            anchor = listed[-1]
            assert anchor.list_path is not None
            table = node_at(chunk, anchor.list_path)
            assert isinstance(table, TableConstructor)
            after = anchor.node_path[-2]
            indent = indent_of(first_token(table.fields[after]))
            text = self._spec_text(spec, indent, bare=anchor.style == DeclarationStyle.STRING)
            return insert_field(
                chunk, anchor.list_path, synthesize_field(text), after=after
            )
        if calls:
            anchor = calls[-1]
            call = node_at(chunk, anchor.node_path)
            assert isinstance(call, CallExpression)
            callee = node_source(call.callee)
            statement = synthesize_statement(f"{callee} {self._spec_text(spec, '', bare=False)}")
            path = anchor.statement_path
            return insert_statement(chunk, path[:-1], path[-1] + 1, statement)

        plugin_list = self._find_plugin_list(chunk)
        if plugin_list is not None:
            text = self._spec_text(spec, "  ", bare=False)
            return insert_field(chunk, plugin_list, synthesize_field(text))

        callee = self._plugin_functions[0] if self._plugin_functions else "use"
        statement = synthesize_statement(f"{callee} {self._spec_text(spec, '', bare=False)}")
        return insert_statement(
            chunk, (0,), _append_index(chunk.block), statement
        )

    @staticmethod
    def _spec_text(spec: PluginSpec, indent: str, *, bare: bool) -> str:
        has_fields = bool(spec.dependencies or spec.event or spec.enabled is not None or spec.opts)
        if bare and not has_fields:
            return format_string(spec.name)
        return format_plugin_spec(
            spec.name,
            dependencies=spec.dependencies,
            event=spec.event,
            enabled=spec.enabled,
            opts=spec.opts,
            indent=indent,
        )

    @staticmethod
    def _find_plugin_list(chunk: Chunk) -> NodePath | None:
        """An empty ``plugins``/``spec`` table to insert the first declaration into."""
        for path, node in walk(chunk):
            if (
                isinstance(node, FieldAssignment)
                and node.name in ("plugins", "spec")
                and isinstance(node.value, TableConstructor)
            ):
                return path + (field_value_index(node),)
        return None

    def _remove_plugin(self, tree: SyntaxTree, op: RemovePlugin) -> Node:
        chunk = tree.chunk
        declaration = self._entities(tree).plugin(op.name)
        if declaration is None:
            raise _not_found(f"Plugin '{op.name}' is not declared")
        if declaration.list_path is not None:
            return remove_field(
                chunk, declaration.list_path, declaration.node_path[-2]
            )
        statement_path = declaration.statement_path
        statement = node_at(chunk, statement_path)
        if (
            declaration.style == DeclarationStyle.CALL
            and isinstance(statement, Statement)
            and statement.kind == "call"
            and declaration.node_path == statement_path + (0,)
        ):
            return remove_statement(
                chunk, statement_path[:-1], statement_path[-1]
            )
        raise _malformed(f"Declaration of '{op.name}' cannot be removed on its own")

    def _add_dependency(self, tree: SyntaxTree, op: AddDependency) -> Node:
        chunk = tree.chunk
        declaration = self._entities(tree).plugin(op.plugin)
        if declaration is None:
            raise _not_found(f"Plugin '{op.plugin}' is not declared")
        if op.dependency in declaration.dependencies:
            return chunk

        dependency = format_string(op.dependency)
        node = node_at(chunk, declaration.node_path)
        if declaration.style == DeclarationStyle.STRING:
            text = f"{{ {node_source(node)}, dependencies = {{ {dependency} }} }}"
            return replace_node(
                chunk, declaration.node_path, synthesize_expression(text)
            )

        table_path = self._spec_table_path(declaration, node)
        if table_path is None:
            assert isinstance(node, CallExpression)
            name = node_source(node.args[0])
            text = f"{node_source(node.callee)} {{ {name}, dependencies = {{ {dependency} }} }}"
            new = synthesize_statement(text)
            assert isinstance(new, Statement)
            return replace_node(
                chunk, declaration.node_path, new.children()[0]
            )

        table = node_at(chunk, table_path)
        assert isinstance(table, TableConstructor)
        for field_name in ("dependencies", "requires"):
            index = table.field_index(field_name)
            if index is None:
                continue
            item = table.fields[index]
            value_path = table_path + (index, field_value_index(item))
            if isinstance(item.value, TableConstructor):
                return insert_field(chunk, value_path, synthesize_field(dependency))
            if string_value(item.value) is not None:
                text = f"{{ {node_source(item.value)}, {dependency} }}"
                return replace_node(chunk, value_path, synthesize_expression(text))
            raise _malformed(f"'{field_name}' of '{op.plugin}' is not a literal list")
        field = synthesize_field(f"dependencies = {{ {dependency} }}")
        return insert_field(chunk, table_path, field)

    @staticmethod
    def _spec_table_path(declaration: PluginDeclaration, node: Node) -> NodePath | None:
        if isinstance(node, TableConstructor):
            return declaration.node_path
        if isinstance(node, CallExpression):
            for position, argument in enumerate(node.args):
                if isinstance(argument, TableConstructor) and (
                    position > 0 or spec_name(argument) == declaration.name
                ):
                    return declaration.node_path + (call_argument_index(node, position),)
        return None

    # -- replace_node --------------------------------------------------------

    def _replace_node(self, tree: SyntaxTree, op: ReplaceNode) -> Node:
        chunk = tree.chunk
        path = tuple(op.node_path)
        if not path:
            raise _not_found("The chunk itself cannot be replaced")
        try:
            old = node_at(chunk, path)
            parent = node_at(chunk, path[:-1])
        except IndexError as exc:
            raise _not_found(str(exc)) from exc
        if isinstance(parent, Block):
            new: Node = synthesize_statement(op.text)
        elif isinstance(old, FieldAssignment):
            new = synthesize_field(op.text)
        else:
            new = synthesize_expression(op.text)
        if node_source(old) == node_source(new):
            return chunk
        return replace_node(chunk, path, new)


def _append_index(block: Block) -> int:
    """Insertion index at the end of a chunk block, before a trailing ``return``."""
    statements = block.statements
    if statements and isinstance(statements[-1], Statement) and statements[-1].kind == "return":
        return len(statements) - 1
    return len(statements)


def apply_patch(
    tree: SyntaxTree,
    patch: Patch,
    *,
    option_tables: Sequence[str] = ("options",),
    plugin_functions: Sequence[str] = ("use", "Plug"),
) -> SyntaxTree:
    """Convenience wrapper around :meth:`PatchEngine.apply`."""
    return PatchEngine(option_tables, plugin_functions).apply(tree, patch)
