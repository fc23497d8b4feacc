"""Offset → line/column mapping for diagnostics."""

from __future__ import annotations

import bisect

from nvimcfg.models.errors import SourceSpan
from nvimcfg.syntax.nodes import Node
from nvimcfg.syntax.tokens import Token


class LineIndex:
    """Maps character offsets of one text to 1-based line/column pairs."""

    def __init__(self, text: str, filename: str = "<string>") -> None:
        self.filename = filename
        self._starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._starts.append(i + 1)

    def position(self, offset: int) -> tuple[int, int]:
        line = bisect.bisect_right(self._starts, offset) - 1
        return line + 1, offset - self._starts[line] + 1

    def span(self, start: int, end: int) -> SourceSpan:
        line, column = self.position(start)
        end_line, end_column = self.position(end)
        return SourceSpan(
            file=self.filename,
            start=start,
            end=end,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
        )

    def token_span(self, token: Token) -> SourceSpan | None:
        if token.synthesized:
            return None
        return self.span(token.start, token.end)

    def node_span(self, node: Node) -> SourceSpan | None:
        """Span of the node's significant tokens (trivia excluded)."""
        located = [t for t in node.tokens() if not t.synthesized and t.text]
        if not located:
            return None
        return self.span(located[0].start, located[-1].end)
