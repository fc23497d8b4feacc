"""Lossless Lua syntax layer: lexer, concrete syntax tree, parser and printer."""

from nvimcfg.syntax.lexer import Lexer, tokenize
from nvimcfg.syntax.nodes import (
    Assignment,
    Block,
    CallExpression,
    Chunk,
    ErrorNode,
    Expression,
    FieldAssignment,
    Identifier,
    IndexExpression,
    Literal,
    LiteralKind,
    Node,
    NodePath,
    Statement,
    TableConstructor,
    node_at,
    replace_at,
    walk,
)
from nvimcfg.syntax.parser import (
    ParseResult,
    Parser,
    SyntaxTree,
    parse,
    parse_expression,
    parse_file,
    parse_statements,
)
from nvimcfg.syntax.printer import format_value, node_source, print_tree
from nvimcfg.syntax.source import LineIndex
from nvimcfg.syntax.tokens import Token, TokenKind
from nvimcfg.syntax.visitor import NodeVisitor

__all__ = [
    "Assignment",
    "Block",
    "CallExpression",
    "Chunk",
    "ErrorNode",
    "Expression",
    "FieldAssignment",
    "Identifier",
    "IndexExpression",
    "Lexer",
    "LineIndex",
    "Literal",
    "LiteralKind",
    "Node",
    "NodePath",
    "NodeVisitor",
    "ParseResult",
    "Parser",
    "Statement",
    "SyntaxTree",
    "TableConstructor",
    "Token",
    "TokenKind",
    "format_value",
    "node_at",
    "node_source",
    "parse",
    "parse_expression",
    "parse_file",
    "parse_statements",
    "print_tree",
    "replace_at",
    "tokenize",
    "walk",
]
