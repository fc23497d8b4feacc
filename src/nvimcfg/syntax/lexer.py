"""Lua lexer. Never fails: unlexable input becomes ERROR tokens."""

from __future__ import annotations

import re

from nvimcfg.syntax.tokens import KEYWORDS, TRIVIA_KINDS, Token, TokenKind

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_HEX_RE = re.compile(r"0[xX](?:[0-9a-fA-F]*\.[0-9a-fA-F]+|[0-9a-fA-F]+\.?)(?:[pP][+-]?\d+)?")
_DEC_RE = re.compile(r"(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")
_NUMBER_TAIL_RE = re.compile(r"[\w.]+")
_SPACE_RE = re.compile(r"[ \t\f\v]+")
_LONG_OPEN_RE = re.compile(r"\[(=*)\[")
_HEX_ESCAPE_RE = re.compile(r"[0-9a-fA-F]{2}")
_UTF8_ESCAPE_RE = re.compile(r"\{([0-9a-fA-F]+)\}")
_DECIMAL_ESCAPE_RE = re.compile(r"[0-9]{1,3}")
# largest code point a \u{...} escape may encode
MAX_UTF8_ESCAPE = 0x7FFFFFFF

# Longest first so that ".." wins over "." and "..." over "..".
_PUNCTUATION = (
    "...", "..", "==", "~=", "<=", ">=", "<<", ">>", "//", "::",
    "+", "-", "*", "/", "%", "^", "#", "&", "~", "|", "<", ">", "=",
    "(", ")", "{", "}", "[", "]", ";", ":", ",", ".",
)  # fmt: skip


class Lexer:
    """Turns Lua source text into significant tokens with attached trivia."""

    def __init__(self, text: str) -> None:
        self._text = text

    def raw_tokens(self) -> list[Token]:
        """All tokens, trivia included, in source order (no EOF)."""
        text = self._text
        tokens: list[Token] = []
        pos = 0
        if text.startswith("#!"):
            end = _line_end(text, 0)
            tokens.append(Token(TokenKind.COMMENT, text[:end], 0))
            pos = end
        while pos < len(text):
            token = self._next(pos)
            tokens.append(token)
            pos = token.end
        return tokens

    def tokenize(self) -> list[Token]:
        """Significant tokens ending with EOF; every trivia token is attached.

        Trivia following a token on the same line (up to and including the
        newline) becomes that token's trailing trivia; everything else is
        leading trivia of the next significant token.
        """
        raw = self.raw_tokens()
        result: list[Token] = []
        pending: list[Token] = []
        i = 0
        while i < len(raw):
            token = raw[i]
            if token.kind in TRIVIA_KINDS:
                pending.append(token)
                i += 1
                continue
            i += 1
            trailing: list[Token] = []
            while i < len(raw) and raw[i].kind in TRIVIA_KINDS:
                trailing.append(raw[i])
                i += 1
                if trailing[-1].kind == TokenKind.NEWLINE:
                    break
            result.append(
                Token(token.kind, token.text, token.start, tuple(pending), tuple(trailing))
            )
            pending = []
        result.append(Token(TokenKind.EOF, "", len(self._text), tuple(pending)))
        return result

    # -- scanning ------------------------------------------------------------

    def _next(self, pos: int) -> Token:
        text = self._text
        ch = text[pos]

        if ch == "\n" or ch == "\r":
            size = 2 if text.startswith("\r\n", pos) else 1
            return Token(TokenKind.NEWLINE, text[pos : pos + size], pos)

        m = _SPACE_RE.match(text, pos)
        if m:
            return Token(TokenKind.WHITESPACE, m.group(), pos)

        if text.startswith("--", pos):
            return self._comment(pos)

        if ch == '"' or ch == "'":
            return self._quoted_string(pos)

        if ch == "[":
            m = _LONG_OPEN_RE.match(text, pos)
            if m:
                return self._long_bracket(pos, len(m.group(1)), TokenKind.STRING)

        if ch.isdigit() or (ch == "." and pos + 1 < len(text) and text[pos + 1].isdigit()):
            return self._number(pos)

        m = _NAME_RE.match(text, pos)
        if m:
            word = m.group()
            kind = TokenKind.KEYWORD if word in KEYWORDS else TokenKind.IDENTIFIER
            return Token(kind, word, pos)

        for symbol in _PUNCTUATION:
            if text.startswith(symbol, pos):
                return Token(TokenKind.PUNCTUATION, symbol, pos)

        return Token(TokenKind.ERROR, ch, pos)

    def _comment(self, pos: int) -> Token:
        m = _LONG_OPEN_RE.match(self._text, pos + 2)
        if m:
            token = self._long_bracket(pos + 2, len(m.group(1)), TokenKind.COMMENT)
            if token.kind == TokenKind.ERROR:
                return Token(TokenKind.ERROR, self._text[pos:], pos)
            return Token(TokenKind.COMMENT, self._text[pos : token.end], pos)
        return Token(TokenKind.COMMENT, self._text[pos : _line_end(self._text, pos)], pos)

    def _long_bracket(self, pos: int, level: int, kind: TokenKind) -> Token:
        closing = "]" + "=" * level + "]"
        end = self._text.find(closing, pos + level + 2)
        if end < 0:
            return Token(TokenKind.ERROR, self._text[pos:], pos)
        return Token(kind, self._text[pos : end + len(closing)], pos)

    def _quoted_string(self, pos: int) -> Token:
        text = self._text
        quote = text[pos]
        valid = True
        i = pos + 1
        while i < len(text):
            ch = text[i]
            if ch == "\\":
                size = escape_size(text, i)
                if size is None:
                    valid = False
                    size = 2
                i += size
                continue
            if ch == quote:
                kind = TokenKind.STRING if valid else TokenKind.ERROR
                return Token(kind, text[pos : i + 1], pos)
            if ch == "\n" or ch == "\r":
                break
            i += 1
        return Token(TokenKind.ERROR, text[pos : min(i, len(text))], pos)

    def _number(self, pos: int) -> Token:
        text = self._text
        m = _HEX_RE.match(text, pos) or _DEC_RE.match(text, pos)
        assert m is not None
        end = m.end()
        if end < len(text) and (text[end].isalnum() or text[end] in "_."):
            tail = _NUMBER_TAIL_RE.match(text, end)
            assert tail is not None
            return Token(TokenKind.ERROR, text[pos : tail.end()], pos)
        return Token(TokenKind.NUMBER, text[pos:end], pos)


def _line_end(text: str, pos: int) -> int:
    """Offset of the first line break at or after ``pos`` (or len(text))."""
    ends = [i for i in (text.find("\n", pos), text.find("\r", pos)) if i >= 0]
    return min(ends) if ends else len(text)


def tokenize(text: str) -> list[Token]:
    return Lexer(text).tokenize()


def escape_size(text: str, pos: int) -> int | None:
    """Length of the escape sequence starting at the backslash ``text[pos]``.

    Returns ``None`` for escapes Lua rejects: ``\\x`` without two hex digits,
    ``\\u`` without a braced code point up to ``MAX_UTF8_ESCAPE`` and decimal
    escapes above 255. An escaped ``\\r\\n`` counts as one line break.
    """
    nxt = text[pos + 1 : pos + 2]
    if nxt == "x":
        return 4 if _HEX_ESCAPE_RE.match(text, pos + 2) else None
    if nxt == "u":
        m = _UTF8_ESCAPE_RE.match(text, pos + 2)
        if m is None or int(m.group(1), 16) > MAX_UTF8_ESCAPE:
            return None
        return m.end() - pos
    m = _DECIMAL_ESCAPE_RE.match(text, pos + 1)
    if m is not None:
        return m.end() - pos if int(m.group()) <= 255 else None
    if text.startswith("\r\n", pos + 1):
        return 3
    return 2


def describe_error(token: Token) -> str:
    """Parser message for an ERROR token."""
    text = token.text
    if text[:1] in ("'", '"'):
        i = 1
        while i < len(text):
            if text[i] == "\\":
                size = escape_size(text, i)
                if size is None:
                    return f"invalid escape sequence near '{text[i : i + 2]}' in {text}"
                i += size
                continue
            i += 1
        return f"unfinished string near '{text}'"
    if text.startswith("[") or text.startswith("--["):
        return "unfinished long string or comment"
    if text[:1].isdigit() or text[:1] == ".":
        return f"malformed number near '{text}'"
    return f"unexpected symbol near '{text}'"
