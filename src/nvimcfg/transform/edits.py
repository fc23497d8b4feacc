"""Trivia-aware structural edits on immutable syntax trees.

Every function takes a root node and returns a new root; the input is never
modified. Inserted nodes borrow indentation and line breaks from their
neighbours so that the printed result differs from the original only on
the lines that carry the edit.
"""

from __future__ import annotations

from dataclasses import replace

from nvimcfg.syntax.nodes import (
    Block,
    Chunk,
    FieldAssignment,
    Node,
    NodePath,
    TableConstructor,
    first_token,
    last_token,
    map_first_token,
    map_last_token,
    node_at,
    replace_at,
)
from nvimcfg.syntax.parser import parse_expression, parse_statements
from nvimcfg.syntax.tokens import Token, TokenKind, has_newline, punct, whitespace

# ---------------------------------------------------------------------------
# Trivia helpers
# ---------------------------------------------------------------------------


def indent_of(token: Token | None) -> str:
    """Indentation of the line ``token`` starts, taken from its leading trivia."""
    if token is None:
        return ""
    run: list[str] = []
    for trivia in token.leading:
        if trivia.kind == TokenKind.WHITESPACE:
            run.append(trivia.text)
        else:
            run = []
    return "".join(run)


def newline_of(node: Node) -> str:
    """Line ending used in ``node``: its first newline, or LF when it has none."""
    for token in node.tokens():
        for item in (*token.leading, *token.trailing):
            if item.kind == TokenKind.NEWLINE:
                return item.text
    return "\n"


def line_break(trivia: tuple[Token, ...]) -> tuple[Token, ...]:
    """The layout part of a trailing trivia run: its newline, or its spaces."""
    for item in trivia:
        if item.kind == TokenKind.NEWLINE:
            return (Token(TokenKind.NEWLINE, item.text),)
    return tuple(Token(t.kind, t.text) for t in trivia if t.kind == TokenKind.WHITESPACE)


def set_leading(node: Node, leading: tuple[Token, ...]) -> Node:
    return map_first_token(node, lambda t: t.with_leading(leading))


def set_trailing(node: Node, trailing: tuple[Token, ...]) -> Node:
    return map_last_token(node, lambda t: t.with_trailing(trailing))


def strip_trivia(node: Node) -> Node:
    return set_trailing(set_leading(node, ()), ())


def _final_trailing(item: FieldAssignment) -> tuple[Token, ...]:
    token = last_token(item)
    return token.trailing if token is not None else ()


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


def synthesize_expression(text: str) -> Node:
    """Parse ``text`` as an expression node without surrounding trivia.

    Raises ``ValueError`` when ``text`` is not a single valid expression.
    """
    return strip_trivia(parse_expression(text))


def synthesize_statement(text: str) -> Node:
    """Parse ``text`` as exactly one statement without surrounding trivia."""
    statements = parse_statements(text)
    if len(statements) != 1:
        raise ValueError(f"Expected one statement, got {len(statements)}")
    return strip_trivia(statements[0])


def synthesize_field(text: str) -> FieldAssignment:
    """Parse ``text`` as one table field (``name = value`` or a positional value)."""
    table = parse_expression("{" + text + "}")
    if not isinstance(table, TableConstructor) or len(table.fields) != 1:
        raise ValueError(f"Not a single table field: {text!r}")
    item = strip_trivia(table.fields[0])
    assert isinstance(item, FieldAssignment)
    return item


# ---------------------------------------------------------------------------
# Node replacement
# ---------------------------------------------------------------------------


def replace_node(root: Node, path: NodePath, new: Node) -> Node:
    """Replace the node at ``path``, keeping the old node's outer trivia."""
    old = node_at(root, path)
    head, tail = first_token(old), last_token(old)
    if head is not None:
        new = set_leading(new, head.leading)
    if tail is not None:
        new = set_trailing(new, tail.trailing)
    return replace_at(root, path, new)


# ---------------------------------------------------------------------------
# Table fields
# ---------------------------------------------------------------------------


def insert_field(
    root: Node, table_path: NodePath, new: FieldAssignment, after: int | None = None
) -> Node:
    """Insert ``new`` after field ``after`` (default: the last field)."""
    table = node_at(root, table_path)
    if not isinstance(table, TableConstructor):
        raise TypeError(f"Node at {list(table_path)} is not a table")
    fields = list(table.fields)

    if not fields:
        if has_newline(table.open.trailing):
            indent = indent_of(table.close) + "  "
            item = set_leading(new, whitespace(indent))
            separator = punct(",", trailing=newline_of(table))
            item = replace(item, separator=separator)  # type: ignore[arg-type]
        else:
            leading = () if table.open.trailing else whitespace(" ")
            item = set_trailing(set_leading(new, leading), whitespace(" "))
        updated = replace(table, fields=(item,))  # type: ignore[arg-type]
        return replace_at(root, table_path, updated)

    index = len(fields) - 1 if after is None else after
    anchor = fields[index]
    indent = whitespace(indent_of(first_token(anchor)))

    if anchor.separator is not None:
        separator = Token(
            anchor.separator.kind,
            anchor.separator.text,
            trailing=line_break(anchor.separator.trailing),
        )
        item = replace(set_leading(new, indent), separator=separator)  # type: ignore[arg-type]
    else:
        moved = _final_trailing(anchor)
        multiline = has_newline(moved)
        separator_trailing = moved
        if not multiline and not moved:
            separator_trailing = whitespace(" ")
        anchor = replace(
            set_trailing(anchor, ()),  # type: ignore[arg-type]
            separator=punct(",").with_trailing(separator_trailing),
        )
        fields[index] = anchor
        item = set_leading(new, indent if multiline else ())  # type: ignore[assignment]
        item = set_trailing(item, line_break(moved))  # type: ignore[assignment]

    fields.insert(index + 1, item)  # type: ignore[arg-type]
    updated = replace(table, fields=tuple(fields))
    return replace_at(root, table_path, updated)


def remove_field(root: Node, table_path: NodePath, index: int) -> Node:
    """Remove field ``index`` together with its trivia."""
    table = node_at(root, table_path)
    if not isinstance(table, TableConstructor):
        raise TypeError(f"Node at {list(table_path)} is not a table")
    fields = list(table.fields)
    removed = fields.pop(index)
    if removed.separator is None and index > 0 and fields[index - 1].separator is not None:
        previous = fields[index - 1]
        assert previous.separator is not None
        fields[index - 1] = set_trailing(  # type: ignore[call-overload]
            replace(previous, separator=None), previous.separator.trailing
        )
    updated = replace(table, fields=tuple(fields))
    return replace_at(root, table_path, updated)


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def insert_statement(root: Node, block_path: NodePath, index: int, new: Node) -> Node:
    """Insert statement ``new`` at position ``index`` of the block at ``block_path``."""
    block = node_at(root, block_path)
    if not isinstance(block, Block):
        raise TypeError(f"Node at {list(block_path)} is not a block")
    statements = list(block.statements)
    nl = newline_of(root)

    if index > 0:
        previous = statements[index - 1]
        indent = indent_of(first_token(previous))
        tail = last_token(previous)
        ends_line = tail is not None and has_newline(tail.trailing)
        leading = whitespace(indent if ends_line else nl + indent)
        has_next = index < len(statements)
        trailing = whitespace(nl) if ends_line or has_next else ()
    elif statements:
        indent = indent_of(first_token(statements[0]))
        leading, trailing = whitespace(indent), whitespace(nl)
    else:
        leading, trailing = (), whitespace(nl)
        if isinstance(root, Chunk) and block_path == (0,):
            # comments of an otherwise empty file stay above the new statement
            leading = root.eof.leading
            root = replace(root, eof=root.eof.with_leading(()))

    statements.insert(index, set_trailing(set_leading(new, leading), trailing))
    return replace_at(root, block_path, replace(block, statements=tuple(statements)))


def remove_statement(root: Node, block_path: NodePath, index: int) -> Node:
    block = node_at(root, block_path)
    if not isinstance(block, Block):
        raise TypeError(f"Node at {list(block_path)} is not a block")
    statements = block.statements[:index] + block.statements[index + 1 :]
    return replace_at(root, block_path, replace(block, statements=statements))
