"""Recursive-descent Lua parser producing a lossless concrete syntax tree.

``parse`` never raises on bad input: a statement that cannot be parsed is
kept as an ``ErrorNode`` holding its raw tokens, and parsing resumes at the
next line that starts a statement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from nvimcfg.models import codes
from nvimcfg.models.errors import Category, Diagnostic, Severity, SourceSpan
from nvimcfg.syntax.lexer import describe_error, tokenize
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
    Node,
    Statement,
    TableConstructor,
    has_errors,
)
from nvimcfg.syntax.printer import print_tree
from nvimcfg.syntax.source import LineIndex
from nvimcfg.syntax.tokens import Token, TokenKind

# (left, right) binding power; right < left means right-associative.
_BINARY_PRIORITY: dict[str, tuple[int, int]] = {
    "or": (1, 1),
    "and": (2, 2),
    "<": (3, 3), ">": (3, 3), "<=": (3, 3), ">=": (3, 3), "~=": (3, 3), "==": (3, 3),
    "|": (4, 4),
    "~": (5, 5),
    "&": (6, 6),
    "<<": (7, 7), ">>": (7, 7),
    "..": (9, 8),
    "+": (10, 10), "-": (10, 10),
    "*": (11, 11), "/": (11, 11), "//": (11, 11), "%": (11, 11),
    "^": (14, 13),
}  # fmt: skip
_UNARY_OPERATORS = frozenset({"not", "-", "#", "~"})
_UNARY_PRIORITY = 12

_BLOCK_END = frozenset({"end", "else", "elseif", "until"})
_STATEMENT_START = frozenset(
    {"local", "function", "if", "while", "for", "repeat", "do", "return", "break", "goto", "::"}
)
# nesting limit for blocks and expressions (LUAI_MAXCCALLS in Lua)
MAX_SYNTAX_LEVELS = 200


class _ParseError(Exception):
    def __init__(self, message: str, token: Token) -> None:
        super().__init__(message)
        self.message = message
        self.token = token


@dataclass(frozen=True)
class SyntaxTree:
    """A parsed file: the chunk root plus the name it was read from."""

    chunk: Chunk
    filename: str = "<string>"

    @property
    def statements(self) -> tuple[Node, ...]:
        return self.chunk.block.statements

    @property
    def has_errors(self) -> bool:
        return has_errors(self.chunk)

    @property
    def text(self) -> str:
        return print_tree(self.chunk)


@dataclass
class ParseResult:
    tree: SyntaxTree
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)


class Parser:
    """Parses one Lua source text. Use :func:`parse` for the common case."""

    def __init__(self, text: str, filename: str = "<string>") -> None:
        self._text = text
        self._filename = filename
        self._tokens = tokenize(text)
        self._pos = 0
        self._lines = LineIndex(text, filename)
        self._diagnostics: list[Diagnostic] = []
        self._depth = 0

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return list(self._diagnostics)

    # -- entry points --------------------------------------------------------

    def parse_chunk(self) -> Chunk:
        block = self._block(frozenset())
        return Chunk(block=block, eof=self._tokens[-1])

    def parse_standalone_expression(self) -> Node:
        """Parse exactly one expression; raises ``ValueError`` otherwise."""
        try:
            node = self._expression()
            if self._peek().kind != TokenKind.EOF:
                raise _ParseError(f"unexpected {self._describe(self._peek())}", self._peek())
        except _ParseError as exc:
            raise ValueError(exc.message) from None
        return node

    # -- token helpers -------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind != TokenKind.EOF:
            self._pos += 1
        return token

    def _check(self, text: str) -> bool:
        return self._peek().is_(text)

    def _accept(self, text: str) -> Token | None:
        return self._advance() if self._check(text) else None

    def _expect(self, text: str, opener: Token | None = None) -> Token:
        if self._check(text):
            return self._advance()
        token = self._peek()
        message = f"'{text}' expected near {self._describe(token)}"
        if opener is not None and opener.start >= 0:
            line, _ = self._lines.position(opener.start)
            message = (
                f"'{text}' expected (to close '{opener.text}' at line {line}) "
                f"near {self._describe(token)}"
            )
        raise _ParseError(message, token)

    def _name(self) -> Identifier:
        token = self._peek()
        if token.kind != TokenKind.IDENTIFIER:
            raise _ParseError(f"<name> expected near {self._describe(token)}", token)
        return Identifier(self._advance())

    @staticmethod
    def _describe(token: Token) -> str:
        return "<eof>" if token.kind == TokenKind.EOF else f"'{token.text}'"

    def _starts_line(self, index: int) -> bool:
        token = self._tokens[index]
        if any(t.kind == TokenKind.NEWLINE for t in token.leading):
            return True
        if index == 0:
            return True
        return any(t.kind == TokenKind.NEWLINE for t in self._tokens[index - 1].trailing)

    # -- blocks and recovery -------------------------------------------------

    def _enter(self) -> None:
        if self._depth >= MAX_SYNTAX_LEVELS:
            raise _ParseError("chunk has too many syntax levels", self._peek())
        self._depth += 1

    def _at_block_end(self, terminators: frozenset[str]) -> bool:
        token = self._peek()
        if token.kind == TokenKind.EOF:
            return True
        return token.kind == TokenKind.KEYWORD and token.text in terminators

    def _block(self, terminators: frozenset[str]) -> Block:
        self._enter()
        statements: list[Node] = []
        try:
            while not self._at_block_end(terminators):
                start = self._pos
                try:
                    statements.append(self._statement())
                except _ParseError as exc:
                    self._pos = start
                    statements.append(self._recover(exc))
        finally:
            self._depth -= 1
        return Block(tuple(statements))

    def _recover(self, exc: _ParseError) -> ErrorNode:
        """Consume tokens up to the next line that starts a statement."""
        consumed = [self._advance()]
        while True:
            token = self._peek()
            if token.kind == TokenKind.EOF:
                break
            if self._starts_line(self._pos) and self._can_start_statement(token):
                break
            consumed.append(self._advance())
        node = ErrorNode(message=exc.message, raw=tuple(consumed))
        self._diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                category=Category.SYNTAX,
                code=codes.SYNTAX_ERROR,
                message=exc.message,
                span=self._error_span(exc.token, node),
            )
        )
        return node

    def _error_span(self, token: Token, node: ErrorNode) -> SourceSpan | None:
        if token.kind == TokenKind.EOF or token.synthesized:
            return self._lines.node_span(node)
        return self._lines.span(token.start, token.end)

    @staticmethod
    def _can_start_statement(token: Token) -> bool:
        if token.kind == TokenKind.IDENTIFIER:
            return True
        if token.kind == TokenKind.KEYWORD:
            return token.text in _STATEMENT_START or token.text in _BLOCK_END
        return token.is_("::") or token.is_(";")

    # -- statements ----------------------------------------------------------

    def _statement(self) -> Node:
        token = self._peek()
        if token.kind == TokenKind.ERROR:
            raise _ParseError(describe_error(token), token)
        text = token.text if token.kind in (TokenKind.KEYWORD, TokenKind.PUNCTUATION) else None

        if text == ";":
            return Statement("empty", (self._advance(),))
        if text == "::":
            open_ = self._advance()
            name = self._name()
            return Statement("label", (open_, name, self._expect("::")))
        if text == "break":
            return Statement("break", (self._advance(),))
        if text == "goto":
            return Statement("goto", (self._advance(), self._name()))
        if text == "do":
            do = self._advance()
            body = self._block(_BLOCK_END)
            return Statement("do", (do, body, self._expect("end", do)))
        if text == "while":
            kw = self._advance()
            cond = self._expression()
            do = self._expect("do")
            body = self._block(_BLOCK_END)
            return Statement("while", (kw, cond, do, body, self._expect("end", kw)))
        if text == "repeat":
            kw = self._advance()
            body = self._block(_BLOCK_END)
            until = self._expect("until", kw)
            return Statement("repeat", (kw, body, until, self._expression()))
        if text == "if":
            return self._if_statement()
        if text == "for":
            return self._for_statement()
        if text == "function":
            kw = self._advance()
            name = self._function_name()
            return Statement("function", (kw, name, *self._function_body(kw)))
        if text == "local":
            return self._local_statement()
        if text == "return":
            return self._return_statement()
        if text == "{":
            # bare table constructors: declarative data files
            return Statement("expression", (self._table(),))
        return self._expression_statement()

    def _if_statement(self) -> Statement:
        kw = self._advance()
        parts: list[Token | Node] = [kw, self._expression(), self._expect("then")]
        parts.append(self._block(_BLOCK_END))
        while self._check("elseif"):
            parts.append(self._advance())
            parts.append(self._expression())
            parts.append(self._expect("then"))
            parts.append(self._block(_BLOCK_END))
        if self._check("else"):
            parts.append(self._advance())
            parts.append(self._block(_BLOCK_END))
        parts.append(self._expect("end", kw))
        return Statement("if", tuple(parts))

    def _for_statement(self) -> Statement:
        kw = self._advance()
        parts: list[Token | Node] = [kw, self._name()]
        if self._check("="):
            parts.append(self._advance())
            parts.append(self._expression())
            parts.append(self._expect(","))
            parts.append(self._expression())
            if self._check(","):
                parts.append(self._advance())
                parts.append(self._expression())
        else:
            while self._check(","):
                parts.append(self._advance())
                parts.append(self._name())
            parts.append(self._expect("in"))
            parts.extend(self._expression_list())
        parts.append(self._expect("do"))
        parts.append(self._block(_BLOCK_END))
        parts.append(self._expect("end", kw))
        return Statement("for", tuple(parts))

    def _local_statement(self) -> Node:
        local = self._advance()
        if self._check("function"):
            kw = self._advance()
            name = self._name()
            return Statement("local_function", (local, kw, name, *self._function_body(kw)))
        targets: list[Token | Node] = [self._attributed_name()]
        while self._check(","):
            targets.append(self._advance())
            targets.append(self._attributed_name())
        equals = self._accept("=")
        values = tuple(self._expression_list()) if equals else ()
        return Assignment(local=local, targets=tuple(targets), equals=equals, values=values)

    def _attributed_name(self) -> Node:
        name = self._name()
        if not self._check("<"):
            return name
        open_ = self._advance()
        attrib = self._name()
        return Expression("attrib", (name, open_, attrib, self._expect(">")))

    def _return_statement(self) -> Statement:
        parts: list[Token | Node] = [self._advance()]
        token = self._peek()
        if not (self._at_block_end(_BLOCK_END) or token.is_(";")):
            parts.extend(self._expression_list())
        if self._check(";"):
            parts.append(self._advance())
        return Statement("return", tuple(parts))

    def _expression_statement(self) -> Node:
        first = self._suffixed_expression()
        if self._check("=") or self._check(","):
            targets: list[Token | Node] = [self._assignable(first)]
            while self._check(","):
                targets.append(self._advance())
                targets.append(self._assignable(self._suffixed_expression()))
            equals = self._expect("=")
            values = tuple(self._expression_list())
            return Assignment(targets=tuple(targets), equals=equals, values=values)
        if not isinstance(first, CallExpression):
            raise _ParseError(f"syntax error near {self._describe(self._peek())}", self._peek())
        return Statement("call", (first,))

    def _assignable(self, node: Node) -> Node:
        if isinstance(node, (Identifier, IndexExpression)):
            return node
        raise _ParseError(f"syntax error near {self._describe(self._peek())}", self._peek())

    def _function_name(self) -> Node:
        node: Node = self._name()
        while self._check("."):
            dot = self._advance()
            node = IndexExpression(target=node, open=dot, key=self._name())
        if self._check(":"):
            colon = self._advance()
            node = IndexExpression(target=node, open=colon, key=self._name())
        return node

    def _function_body(self, opener: Token) -> tuple[Token | Node, ...]:
        parts: list[Token | Node] = [self._expect("(")]
        if not self._check(")"):
            while True:
                if self._check("..."):
                    parts.append(Literal(self._advance()))
                    break
                parts.append(self._name())
                if not self._check(","):
                    break
                parts.append(self._advance())
        parts.append(self._expect(")"))
        parts.append(self._block(_BLOCK_END))
        parts.append(self._expect("end", opener))
        return tuple(parts)

    # -- expressions ---------------------------------------------------------

    def _expression_list(self) -> list[Token | Node]:
        items: list[Token | Node] = [self._expression()]
        while self._check(","):
            items.append(self._advance())
            items.append(self._expression())
        return items

    def _binary_priority(self, token: Token) -> tuple[int, int] | None:
        if token.kind not in (TokenKind.PUNCTUATION, TokenKind.KEYWORD):
            return None
        return _BINARY_PRIORITY.get(token.text)

    def _expression(self, limit: int = 0) -> Node:
        self._enter()
        try:
            token = self._peek()
            left: Node
            unary = token.kind in (TokenKind.PUNCTUATION, TokenKind.KEYWORD)
            if unary and token.text in _UNARY_OPERATORS:
                op = self._advance()
                left = Expression("unary", (op, self._expression(_UNARY_PRIORITY)))
            else:
                left = self._simple_expression()
            while True:
                op = self._peek()
                priority = self._binary_priority(op)
                if priority is None or priority[0] <= limit:
                    return left
                self._advance()
                right = self._expression(priority[1])
                left = Expression("binary", (left, op, right))
        finally:
            self._depth -= 1

    def _simple_expression(self) -> Node:
        token = self._peek()
        if token.kind in (TokenKind.NUMBER, TokenKind.STRING):
            return Literal(self._advance())
        if token.kind == TokenKind.KEYWORD and token.text in ("nil", "true", "false"):
            return Literal(self._advance())
        if token.is_("..."):
            return Literal(self._advance())
        if token.is_("{"):
            return self._table()
        if token.is_("function"):
            kw = self._advance()
            return Expression("function", (kw, *self._function_body(kw)))
        return self._suffixed_expression()

    def _primary_expression(self) -> Node:
        token = self._peek()
        if token.kind == TokenKind.IDENTIFIER:
            return Identifier(self._advance())
        if token.is_("("):
            open_ = self._advance()
            inner = self._expression()
            return Expression("paren", (open_, inner, self._expect(")", open_)))
        if token.kind == TokenKind.ERROR:
            raise _ParseError(describe_error(token), token)
        raise _ParseError(f"unexpected symbol near {self._describe(token)}", token)

    def _suffixed_expression(self) -> Node:
        node = self._primary_expression()
        while True:
            token = self._peek()
            if token.is_("."):
                dot = self._advance()
                node = IndexExpression(target=node, open=dot, key=self._name())
            elif token.is_("["):
                open_ = self._advance()
                key = self._expression()
                node = IndexExpression(target=node, open=open_, key=key, close=self._expect("]"))
            elif token.is_(":"):
                colon = self._advance()
                method = self._name()
                node = self._call_arguments(node, colon, method)
            elif token.is_("(") or token.is_("{") or token.kind == TokenKind.STRING:
                node = self._call_arguments(node, None, None)
            else:
                return node

    def _call_arguments(
        self, callee: Node, colon: Token | None, method: Identifier | None
    ) -> CallExpression:
        token = self._peek()
        if token.kind == TokenKind.STRING:
            return CallExpression(callee, colon, method, arguments=(Literal(self._advance()),))
        if token.is_("{"):
            return CallExpression(callee, colon, method, arguments=(self._table(),))
        open_ = self._expect("(")
        arguments: tuple[Token | Node, ...] = ()
        if not self._check(")"):
            arguments = tuple(self._expression_list())
        close = self._expect(")", open_)
        return CallExpression(callee, colon, method, open_, arguments, close)

    def _table(self) -> TableConstructor:
        open_ = self._expect("{")
        fields: list[FieldAssignment] = []
        while not self._check("}"):
            item = self._field()
            separator = self._accept(",") or self._accept(";")
            if separator is not None:
                item = FieldAssignment(
                    item.open, item.key, item.close, item.equals, item.value, separator
                )
            fields.append(item)
            if separator is None:
                break
        close = self._expect("}", open_)
        return TableConstructor(open=open_, fields=tuple(fields), close=close)

    def _field(self) -> FieldAssignment:
        token = self._peek()
        if token.is_("["):
            open_ = self._advance()
            key = self._expression()
            close = self._expect("]")
            equals = self._expect("=")
            return FieldAssignment(open_, key, close, equals, self._expression())
        if token.kind == TokenKind.IDENTIFIER and self._peek(1).is_("="):
            key = Identifier(self._advance())
            equals = self._advance()
            return FieldAssignment(None, key, None, equals, self._expression())
        return FieldAssignment(value=self._expression())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse(text: str, filename: str = "<string>", *, max_size: int | None = None) -> ParseResult:
    """Parse Lua ``text``. Never raises for malformed input."""
    if max_size is not None and len(text) > max_size:
        token = Token(TokenKind.ERROR, text, 0)
        chunk = Chunk(
            block=Block((ErrorNode(message="document too large", raw=(token,)),)),
            eof=Token(TokenKind.EOF, "", len(text)),
        )
        diagnostic = Diagnostic(
            severity=Severity.ERROR,
            category=Category.SYNTAX,
            code=codes.DOCUMENT_TOO_LARGE,
            message=(
                f"Document exceeds maximum size ({len(text):,} chars > {max_size:,} limit)"
            ),
            span=LineIndex(text, filename).span(0, 0),
            fatal=True,
        )
        return ParseResult(SyntaxTree(chunk, filename), [diagnostic])
    parser = Parser(text, filename)
    chunk = parser.parse_chunk()
    return ParseResult(SyntaxTree(chunk, filename), parser.diagnostics)


def parse_file(path: Path, *, max_size: int | None = None) -> ParseResult:
    """Read and parse a Lua file (UTF-8, newlines preserved)."""
    with path.open("r", encoding="utf-8", newline="") as handle:
        content = handle.read()
    return parse(content, str(path), max_size=max_size)


def parse_expression(text: str) -> Node:
    """Parse a single expression snippet; raises ``ValueError`` when invalid."""
    return Parser(text).parse_standalone_expression()


def parse_statements(text: str) -> tuple[Node, ...]:
    """Parse a statement snippet; raises ``ValueError`` on any syntax error."""
    parser = Parser(text)
    chunk = parser.parse_chunk()
    if parser.diagnostics:
        raise ValueError(parser.diagnostics[0].message)
    return chunk.block.statements
