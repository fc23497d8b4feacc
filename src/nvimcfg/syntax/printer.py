"""Lossless printing and Lua literal formatting.

``print_tree`` emits every token with its trivia, so for any parsed text
``print_tree(parse(text).tree.chunk) == text``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from nvimcfg.syntax.nodes import Node
from nvimcfg.syntax.tokens import KEYWORDS, Token

_LUA_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
    "\0": "\\000",
}


def print_tree(node: Node | Token) -> str:
    """Render a node (or token) back to source text, trivia included."""
    if isinstance(node, Token):
        return node.full_text()
    return "".join(token.full_text() for token in node.tokens())


def node_source(node: Node) -> str:
    """Source of a node without the leading trivia of its first token and
    the trailing trivia of its last token."""
    tokens = list(node.tokens())
    if not tokens:
        return ""
    parts: list[str] = []
    for index, token in enumerate(tokens):
        if index > 0:
            parts.append("".join(t.text for t in token.leading))
        parts.append(token.text)
        if index < len(tokens) - 1:
            parts.append("".join(t.text for t in token.trailing))
    return "".join(parts)


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


def format_string(value: str) -> str:
    return '"' + "".join(_escape_char(ch) for ch in value) + '"'


def _escape_char(ch: str) -> str:
    if ch in _LUA_ESCAPES:
        return _LUA_ESCAPES[ch]
    if "\udc80" <= ch <= "\udcff":
        # a raw byte that was not valid UTF-8
        return f"\\x{ord(ch) - 0xDC00:02X}"
    if "\ud800" <= ch <= "\udfff":
        return f"\\u{{{ord(ch):X}}}"
    return ch


def format_key(key: str) -> str:
    if key.isidentifier() and key.isascii() and key not in KEYWORDS:
        return key
    return f"[{format_string(key)}]"


def format_value(value: object, indent: str = "", step: str = "  ") -> str:
    """Format a JSON-like value as a Lua expression.

    Lists become positional tables and mappings keyed tables. Tables with
    nested tables are laid out one field per line, others stay inline.
    """
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"Cannot represent {value!r} as a Lua literal")
        return repr(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, str):
        return format_string(value)
    if isinstance(value, Mapping):
        items = [
            f"{format_key(str(k))} = {format_value(v, indent + step, step)}"
            for k, v in value.items()
        ]
        return _format_table(items, _is_nested(value.values()), indent, step)
    if isinstance(value, Sequence):
        items = [format_value(v, indent + step, step) for v in value]
        return _format_table(items, _is_nested(value), indent, step)
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def _is_nested(values: object) -> bool:
    return any(
        isinstance(v, Mapping) or (isinstance(v, Sequence) and not isinstance(v, str))
        for v in values  # type: ignore[attr-defined]
    )


def _format_table(items: list[str], multiline: bool, indent: str, step: str) -> str:
    if not items:
        return "{}"
    if not multiline:
        return "{ " + ", ".join(items) + " }"
    inner = indent + step
    body = "".join(f"{inner}{item},\n" for item in items)
    return "{\n" + body + indent + "}"


def format_plugin_spec(
    name: str,
    *,
    dependencies: Sequence[str] = (),
    event: Sequence[str] = (),
    enabled: bool | None = None,
    opts: Mapping[str, object] | None = None,
    indent: str = "",
    step: str = "  ",
) -> str:
    """Format a lazy.nvim-style table spec: ``{ "name", dependencies = {...} }``."""
    items = [format_string(name)]
    if dependencies:
        items.append(f"dependencies = {format_value(list(dependencies))}")
    if event:
        value = event[0] if len(event) == 1 else list(event)
        items.append(f"event = {format_value(value)}")
    if enabled is not None:
        items.append(f"enabled = {format_value(enabled)}")
    if opts is not None:
        items.append(f"opts = {format_value(dict(opts), indent + step, step)}")
    multiline = opts is not None and bool(opts) and _is_nested(opts.values())
    return _format_table(items, multiline, indent, step)
