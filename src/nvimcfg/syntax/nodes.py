"""Immutable concrete syntax tree nodes.

Every node is a frozen dataclass. Its *element* fields, in declaration order,
hold the tokens and child nodes in source order, so printing a node is a walk
over its elements. Fields marked with ``_META`` (e.g. ``Statement.kind``) are
not elements. Nodes never share children; edits build new trees.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, fields, replace
from enum import StrEnum

from nvimcfg.syntax.tokens import Token, TokenKind

_META = {"element": False}


class Node:
    """Base of all syntax node variants."""

    def elements(self) -> Iterator[Token | Node]:
        for name in _element_fields(type(self)):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, tuple):
                yield from value
            else:
                yield value

    def children(self) -> tuple[Node, ...]:
        return tuple(e for e in self.elements() if isinstance(e, Node))

    def tokens(self) -> Iterator[Token]:
        for element in self.elements():
            if isinstance(element, Node):
                yield from element.tokens()
            else:
                yield element

    def with_child(self, index: int, child: Node) -> Node:
        """Return a copy with the ``index``-th child node replaced."""
        count = 0
        for name in _element_fields(type(self)):
            value = getattr(self, name)
            if isinstance(value, Node):
                if count == index:
                    return replace(self, **{name: child})
                count += 1
            elif isinstance(value, tuple):
                for pos, item in enumerate(value):
                    if isinstance(item, Node):
                        if count == index:
                            items = value[:pos] + (child,) + value[pos + 1 :]
                            return replace(self, **{name: items})
                        count += 1
        raise IndexError(f"{type(self).__name__} has no child {index}")


@functools.cache
def _element_fields(cls: type) -> tuple[str, ...]:
    return tuple(f.name for f in fields(cls) if f.metadata.get("element", True))


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Identifier(Node):
    token: Token

    @property
    def name(self) -> str:
        return self.token.text


class LiteralKind(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NIL = "nil"
    VARARG = "vararg"


@dataclass(frozen=True)
class Literal(Node):
    """A string, number, ``true``/``false``, ``nil`` or ``...``."""

    token: Token

    @property
    def kind(self) -> LiteralKind:
        tok = self.token
        if tok.kind == TokenKind.STRING:
            return LiteralKind.STRING
        if tok.kind == TokenKind.NUMBER:
            return LiteralKind.NUMBER
        if tok.text in ("true", "false"):
            return LiteralKind.BOOLEAN
        if tok.text == "nil":
            return LiteralKind.NIL
        return LiteralKind.VARARG

    @property
    def value(self) -> str | int | float | bool | None:
        kind = self.kind
        if kind == LiteralKind.STRING:
            return decode_string(self.token.text)
        if kind == LiteralKind.NUMBER:
            return decode_number(self.token.text)
        if kind == LiteralKind.BOOLEAN:
            return self.token.text == "true"
        return None


# ---------------------------------------------------------------------------
# Tables and expressions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldAssignment(Node):
    """One table field: ``name = v``, ``[k] = v`` or positional ``v``."""

    open: Token | None = None
    key: Node | None = None
    close: Token | None = None
    equals: Token | None = None
    value: Node | None = None
    separator: Token | None = None

    @property
    def is_positional(self) -> bool:
        return self.key is None

    @property
    def name(self) -> str | None:
        """The field key when it is a plain name or a bracketed string literal."""
        if isinstance(self.key, Identifier) and self.open is None:
            return self.key.name
        if isinstance(self.key, Literal) and self.key.kind == LiteralKind.STRING:
            value = self.key.value
            return value if isinstance(value, str) else None
        return None


@dataclass(frozen=True)
class TableConstructor(Node):
    open: Token
    fields: tuple[FieldAssignment, ...]
    close: Token

    def positional(self) -> list[FieldAssignment]:
        return [f for f in self.fields if f.is_positional]

    def named(self, name: str) -> FieldAssignment | None:
        for item in self.fields:
            if item.name == name:
                return item
        return None

    def field_index(self, name: str) -> int | None:
        """Child index of the field keyed ``name``."""
        for index, item in enumerate(self.fields):
            if item.name == name:
                return index
        return None


@dataclass(frozen=True)
class CallExpression(Node):
    """``f(a, b)``, ``f "s"``, ``f { ... }`` or ``obj:m(...)``.

    ``arguments`` interleaves argument expressions with comma tokens.
    """

    callee: Node
    colon: Token | None = None
    method: Identifier | None = None
    open: Token | None = None
    arguments: tuple[Token | Node, ...] = ()
    close: Token | None = None

    @property
    def args(self) -> tuple[Node, ...]:
        return tuple(a for a in self.arguments if isinstance(a, Node))


@dataclass(frozen=True)
class IndexExpression(Node):
    """``target.key``, ``target[key]`` or ``target:key`` (function names)."""

    target: Node
    open: Token
    key: Node
    close: Token | None = None


@dataclass(frozen=True)
class Expression(Node):
    """Any other expression: ``binary``, ``unary``, ``paren``, ``function``, ``attrib``."""

    kind: str = field(metadata=_META)
    parts: tuple[Token | Node, ...] = ()


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Assignment(Node):
    """``a, b.c = x, y`` or ``local a, b = x, y`` (values optional when local)."""

    local: Token | None = None
    targets: tuple[Token | Node, ...] = ()
    equals: Token | None = None
    values: tuple[Token | Node, ...] = ()

    @property
    def target_nodes(self) -> tuple[Node, ...]:
        return tuple(t for t in self.targets if isinstance(t, Node))

    @property
    def value_nodes(self) -> tuple[Node, ...]:
        return tuple(v for v in self.values if isinstance(v, Node))

    def value_child_index(self, position: int) -> int:
        """Child index of the ``position``-th assigned value."""
        return len(self.target_nodes) + position


@dataclass(frozen=True)
class Statement(Node):
    """Any other statement, tagged by ``kind``.

    Kinds: ``call``, ``expression``, ``return``, ``if``, ``while``, ``for``,
    ``repeat``, ``do``, ``function``, ``local_function``, ``break``,
    ``goto``, ``label``, ``empty``.
    """

    kind: str = field(metadata=_META)
    parts: tuple[Token | Node, ...] = ()


@dataclass(frozen=True)
class ErrorNode(Node):
    """Tokens that could not be parsed, kept verbatim."""

    message: str = field(metadata=_META)
    raw: tuple[Token, ...] = ()


@dataclass(frozen=True)
class Block(Node):
    statements: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Chunk(Node):
    """Root of a file. ``eof`` carries the trivia after the last statement."""

    block: Block
    eof: Token


SyntaxNode = (
    Chunk
    | Block
    | Statement
    | Assignment
    | TableConstructor
    | FieldAssignment
    | CallExpression
    | IndexExpression
    | Expression
    | Identifier
    | Literal
    | ErrorNode
)

NodePath = tuple[int, ...]


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def node_at(root: Node, path: NodePath) -> Node:
    """Follow a structural path of child indexes from ``root``."""
    node = root
    for index in path:
        children = node.children()
        if index < 0 or index >= len(children):
            raise IndexError(f"Path {list(path)} does not exist")
        node = children[index]
    return node


def replace_at(root: Node, path: NodePath, new: Node) -> Node:
    """Return a copy of ``root`` with the node at ``path`` replaced by ``new``."""
    if not path:
        return new
    child = node_at(root, path[:1])
    return root.with_child(path[0], replace_at(child, path[1:], new))


def walk(root: Node, path: NodePath = ()) -> Iterator[tuple[NodePath, Node]]:
    """Pre-order traversal yielding ``(path, node)`` pairs."""
    yield path, root
    for index, child in enumerate(root.children()):
        yield from walk(child, path + (index,))


def first_token(node: Node) -> Token | None:
    return next(node.tokens(), None)


def last_token(node: Node) -> Token | None:
    last = None
    for last in node.tokens():  # noqa: B007
        pass
    return last


def map_first_token(node: Node, fn: Callable[[Token], Token]) -> Node:
    return _map_edge(node, fn, last=False)


def map_last_token(node: Node, fn: Callable[[Token], Token]) -> Node:
    return _map_edge(node, fn, last=True)


def _map_edge(node: Node, fn: Callable[[Token], Token], *, last: bool) -> Node:
    new, _ = _map_edge_once(node, fn, last)
    return new


def _map_edge_once(
    node: Node, fn: Callable[[Token], Token], last: bool
) -> tuple[Node, bool]:
    names = _element_fields(type(node))
    for name in reversed(names) if last else names:
        value = getattr(node, name)
        if value is None:
            continue
        items = value if isinstance(value, tuple) else (value,)
        order = range(len(items) - 1, -1, -1) if last else range(len(items))
        for pos in order:
            item = items[pos]
            if isinstance(item, Token):
                new_item: Token | Node = fn(item)
            else:
                new_item, done = _map_edge_once(item, fn, last)
                if not done:
                    continue
            if isinstance(value, tuple):
                new_value: object = items[:pos] + (new_item,) + items[pos + 1 :]
            else:
                new_value = new_item
            return replace(node, **{name: new_value}), True
    return node, False


def dotted_name(node: Node) -> str | None:
    """``vim.opt.tabstop`` for an Identifier/IndexExpression chain with name keys."""
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, IndexExpression) and isinstance(node.key, Identifier):
        if node.open.text not in (".", ":"):
            return None
        base = dotted_name(node.target)
        return f"{base}{node.open.text}{node.key.name}" if base else None
    if isinstance(node, IndexExpression) and isinstance(node.key, Literal):
        value = node.key.value
        base = dotted_name(node.target)
        if base and isinstance(value, str) and value.isidentifier():
            return f"{base}.{value}"
    return None


def has_errors(node: Node) -> bool:
    return any(isinstance(n, ErrorNode) for _, n in walk(node))


# ---------------------------------------------------------------------------
# Literal decoding
# ---------------------------------------------------------------------------

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "a": "\a", "b": "\b",
    "f": "\f", "v": "\v", "\\": "\\", '"': '"', "'": "'", "\n": "\n",
}  # fmt: skip


def decode_string(text: str) -> str:
    """Decode a Lua string token (quoted or long bracket) to its value.

    Escapes produce bytes, as in Lua; bytes that do not form valid UTF-8
    (``"\\xff"``, code points past U+10FFFF) decode to surrogate escapes so
    no value is lost.
    """
    if text.startswith("["):
        level = text.index("[", 1) - 1
        body = text[level + 2 : len(text) - level - 2]
        if body.startswith("\r\n"):
            return body[2:]
        if body.startswith(("\n", "\r")):
            return body[1:]
        return body
    body = text[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out += _source_bytes(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            out += _SIMPLE_ESCAPES[nxt].encode()
            i += 2
        elif nxt == "\r":
            out += b"\n"
            i += 3 if body.startswith("\r\n", i + 1) else 2
        elif nxt == "z":
            i += 2
            while i < len(body) and body[i].isspace():
                i += 1
        elif nxt == "x":
            out.append(int(body[i + 2 : i + 4], 16))
            i += 4
        elif nxt == "u" and body.startswith("{", i + 2):
            close = body.index("}", i + 3)
            out += utf8_escape(int(body[i + 3 : close], 16))
            i = close + 1
        elif "0" <= nxt <= "9":
            j = i + 1
            while j < len(body) and j < i + 4 and "0" <= body[j] <= "9":
                j += 1
            out.append(int(body[i + 1 : j]))
            i = j
        else:
            out += _source_bytes(nxt)
            i += 2
    return out.decode("utf-8", "surrogateescape")


def _source_bytes(ch: str) -> bytes:
    if "\udc80" <= ch <= "\udcff":
        return bytes([ord(ch) - 0xDC00])
    return ch.encode("utf-8", "surrogatepass")


def utf8_escape(code: int) -> bytes:
    """Bytes of a ``\\u{...}`` escape: UTF-8, extended to 31-bit code points."""
    if code < 0x80:
        return bytes([code])
    tail: list[int] = []
    limit = 0x3F
    while code > limit:
        tail.append(0x80 | (code & 0x3F))
        code >>= 6
        limit >>= 1
    return bytes([((~limit << 1) & 0xFF) | code, *reversed(tail)])


def decode_number(text: str) -> int | float:
    lowered = text.lower()
    if lowered.startswith("0x"):
        if "." in lowered or "p" in lowered:
            return float.fromhex(lowered)
        return int(lowered, 16)
    if any(c in lowered for c in ".e"):
        return float(lowered)
    return int(lowered)
