"""Immutable tokens. Significant tokens own the trivia around them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


class TokenKind(StrEnum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    STRING = "string"
    NUMBER = "number"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    NEWLINE = "newline"
    ERROR = "error"
    EOF = "eof"


TRIVIA_KINDS = frozenset({TokenKind.COMMENT, TokenKind.WHITESPACE, TokenKind.NEWLINE})

KEYWORDS = frozenset(
    {
        "and", "break", "do", "else", "elseif", "end", "false", "for",
        "function", "goto", "if", "in", "local", "nil", "not", "or",
        "repeat", "return", "then", "true", "until", "while",
    }
)  # fmt: skip


@dataclass(frozen=True)
class Token:
    """A lexical token.

    ``start`` is the character offset in the source it was lexed from, or
    ``-1`` for tokens synthesized by the transform engine. ``leading`` holds
    the trivia before the token (comments, blank lines, indentation);
    ``trailing`` the trivia after it up to and including the end of its line.
    """

    kind: TokenKind
    text: str
    start: int = -1
    leading: tuple[Token, ...] = ()
    trailing: tuple[Token, ...] = ()

    @property
    def end(self) -> int:
        return self.start + len(self.text) if self.start >= 0 else -1

    @property
    def is_trivia(self) -> bool:
        return self.kind in TRIVIA_KINDS

    @property
    def synthesized(self) -> bool:
        return self.start < 0

    def is_(self, text: str) -> bool:
        """True for the punctuation or keyword spelled ``text``."""
        return self.text == text and self.kind in (TokenKind.PUNCTUATION, TokenKind.KEYWORD)

    def full_text(self) -> str:
        return (
            "".join(t.text for t in self.leading)
            + self.text
            + "".join(t.text for t in self.trailing)
        )

    def with_leading(self, leading: tuple[Token, ...]) -> Token:
        return replace(self, leading=leading)

    def with_trailing(self, trailing: tuple[Token, ...]) -> Token:
        return replace(self, trailing=trailing)

    def __repr__(self) -> str:
        return f"Token({self.kind.value}, {self.text!r}, {self.start})"


def punct(text: str, *, leading: str = "", trailing: str = "") -> Token:
    """Build a synthesized punctuation/keyword token with whitespace trivia."""
    kind = TokenKind.KEYWORD if text in KEYWORDS else TokenKind.PUNCTUATION
    return Token(kind, text, leading=whitespace(leading), trailing=whitespace(trailing))


def whitespace(text: str) -> tuple[Token, ...]:
    """Split a whitespace string into WHITESPACE/NEWLINE trivia tokens."""
    trivia: list[Token] = []
    run = ""
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in "\r\n":
            if run:
                trivia.append(Token(TokenKind.WHITESPACE, run))
                run = ""
            nl = "\r\n" if text.startswith("\r\n", i) else ch
            trivia.append(Token(TokenKind.NEWLINE, nl))
            i += len(nl)
            continue
        run += ch
        i += 1
    if run:
        trivia.append(Token(TokenKind.WHITESPACE, run))
    return tuple(trivia)


def trivia_text(trivia: tuple[Token, ...]) -> str:
    return "".join(t.text for t in trivia)


def has_newline(trivia: tuple[Token, ...]) -> bool:
    return any(t.kind == TokenKind.NEWLINE for t in trivia)
