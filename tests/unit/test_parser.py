"""Tests for the lossless Lua parser."""

from __future__ import annotations

from pathlib import Path

import pytest

from nvimcfg.models import codes
from nvimcfg.semantic.extractor import extract
from nvimcfg.syntax.nodes import (
    Assignment,
    CallExpression,
    ErrorNode,
    Expression,
    Identifier,
    IndexExpression,
    Literal,
    Statement,
    TableConstructor,
    node_at,
    walk,
)
from nvimcfg.syntax.parser import parse, parse_expression, parse_file, parse_statements
from nvimcfg.syntax.printer import print_tree
from nvimcfg.syntax.tokens import Token

ROUND_TRIP_SOURCES = [
    "",
    "\n\n",
    "-- only a comment",
    "local x = 1\n",
    "local a <const>, b = 1, 2\n",
    "vim.opt.tabstop = 4 -- trailing comment\n",
    "options = {\n  tabstop = 2,\n\n  -- indentation\n  shiftwidth = 2;\n  [\"key\"] = { 1, 2, 3 },\n}\n",
    "local function f(a, b, ...)\n  return a + b * 2 ^ 3, ...\nend\n",
    "if x then\n  y()\nelseif z then\n  w()\nelse\n  v()\nend\n",
    "for i = 1, 10, 2 do print(i) end\nfor k, v in pairs(t) do end\n",
    "while true do break end\nrepeat x = x - 1 until x <= 0\n",
    "do goto done end\n::done::\n",
    "local t = { f = function(self) return self.x end }\nt:f()\n",
    "vim.keymap.set('n', '<leader>f', function() require('telescope.builtin').find_files() end)\n",
    "local s = [[\nlong\nstring]] .. \"esc\\\"aped\" .. 'single'\n",
    "return { \"plugin/name\", dependencies = { \"dep\" } }\n",
    "{ plugins = { {\"a\"}, \"b\" } }\n",
    "x = 1\r\ny = 2\r\n",
    "\tlocal indented = not a and #b or -c\n",
    "local r = a // b % c & d | e ~ f << 1 >> 2\n",
    "print 'no parens'; print { 1 };\n",
    "x = 1 -- no final newline",
]


class TestRoundTrip:
    @pytest.mark.parametrize("source", ROUND_TRIP_SOURCES)
    def test_valid_source_round_trips(self, source: str) -> None:
        result = parse(source)
        assert result.ok, [d.message for d in result.diagnostics]
        assert print_tree(result.tree.chunk) == source
        assert result.tree.text == source

    @pytest.mark.parametrize(
        "source",
        [
            "x = = 1\n",
            "if x then\n  y()\n",
            "local = 5\nvim.opt.number = true\n",
            "x = 'unterminated\n",
            "end\n",
            "f(\n",
            "x = { 1, 2\n",
        ],
    )
    def test_invalid_source_still_round_trips(self, source: str) -> None:
        result = parse(source)
        assert not result.ok
        assert result.tree.text == source


class TestStatements:
    def test_assignment_shape(self) -> None:
        tree = parse("vim.opt.tabstop = 4\n").tree
        statement = tree.statements[0]
        assert isinstance(statement, Assignment)
        assert isinstance(statement.target_nodes[0], IndexExpression)
        assert isinstance(statement.value_nodes[0], Literal)
        assert statement.value_nodes[0].value == 4

    def test_local_assignment_has_local_token(self) -> None:
        statement = parse("local x, y = 1\n").tree.statements[0]
        assert isinstance(statement, Assignment)
        assert statement.local is not None
        assert len(statement.target_nodes) == 2
        assert len(statement.value_nodes) == 1

    def test_statement_kinds(self) -> None:
        tree = parse(
            "local function f() end\nf()\nif a then end\nfor i = 1, 2 do end\nreturn 1\n"
        ).tree
        kinds = [s.kind for s in tree.statements if isinstance(s, Statement)]
        assert kinds == ["local_function", "call", "if", "for", "return"]

    def test_bare_table_is_expression_statement(self) -> None:
        statement = parse("{ plugins = {} }\n").tree.statements[0]
        assert isinstance(statement, Statement)
        assert statement.kind == "expression"
        assert isinstance(statement.children()[0], TableConstructor)

    def test_method_call(self) -> None:
        statement = parse("vim.opt.rtp:prepend(path)\n").tree.statements[0]
        assert isinstance(statement, Statement)
        call = statement.children()[0]
        assert isinstance(call, CallExpression)
        assert call.method is not None and call.method.name == "prepend"
        assert len(call.args) == 1

    def test_string_and_table_call_arguments(self) -> None:
        tree = parse('use "a"\nuse { "b" }\n').tree
        first = tree.statements[0].children()[0]
        second = tree.statements[1].children()[0]
        assert isinstance(first, CallExpression) and isinstance(first.args[0], Literal)
        assert isinstance(second, CallExpression)
        assert isinstance(second.args[0], TableConstructor)

    def test_table_fields(self) -> None:
        table = parse_expression('{ "a", key = 1, ["x y"] = true; 4 }')
        assert isinstance(table, TableConstructor)
        assert len(table.fields) == 4
        assert [f.name for f in table.fields] == [None, "key", "x y", None]
        assert len(table.positional()) == 2
        assert table.field_index("key") == 1


class TestExpressions:
    def test_multiplication_binds_tighter(self) -> None:
        expr = parse_expression("1 + 2 * 3")
        assert isinstance(expr, Expression) and expr.kind == "binary"
        assert isinstance(expr.parts[1], Token) and expr.parts[1].text == "+"
        assert isinstance(expr.parts[2], Expression)

    def test_concatenation_is_right_associative(self) -> None:
        expr = parse_expression("a .. b .. c")
        assert isinstance(expr, Expression)
        assert isinstance(expr.parts[0], Identifier)
        assert isinstance(expr.parts[2], Expression)

    def test_power_binds_tighter_than_unary(self) -> None:
        expr = parse_expression("-x ^ 2")
        assert isinstance(expr, Expression) and expr.kind == "unary"
        assert isinstance(expr.parts[1], Expression) and expr.parts[1].kind == "binary"

    def test_invalid_expression_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_expression("1 +")
        with pytest.raises(ValueError):
            parse_expression("1 2")

    def test_parse_statements_rejects_errors(self) -> None:
        assert len(parse_statements("a = 1 b = 2")) == 2
        with pytest.raises(ValueError):
            parse_statements("x = ")


class TestStringValues:
    @pytest.mark.parametrize(
        ("literal", "expected"),
        [
            (r'"\x41\u{48}\65"', "AHA"),
            (r'"\xe2\x9c\x93"', "\u2713"),
            (r'"tab\tend"', "tab\tend"),
            (r'"a\z   b"', "ab"),
            ("[[\nlong]]", "long"),
        ],
    )
    def test_escapes_decode(self, literal: str, expected: str) -> None:
        node = parse_expression(literal)
        assert isinstance(node, Literal)
        assert node.value == expected

    @pytest.mark.parametrize(
        ("literal", "expected"),
        [
            (r'"\255"', "\udcff"),
            (r'"\u{7FFFFFFF}"', "\udcfd" + "\udcbf" * 5),
            (r'"\u{D800}"', "\udced\udca0\udc80"),
        ],
    )
    def test_bytes_outside_utf8_are_kept(self, literal: str, expected: str) -> None:
        node = parse_expression(literal)
        assert isinstance(node, Literal)
        assert node.value == expected


class TestErrorRecovery:
    def test_error_node_keeps_rest_usable(self) -> None:
        result = parse("x = = 1\nvim.opt.tabstop = 4\n")
        assert isinstance(result.tree.statements[0], ErrorNode)
        assert isinstance(result.tree.statements[1], Assignment)
        options = extract(result.tree).options
        assert [o.key for o in options] == ["tabstop"]

    def test_diagnostic_points_at_failing_token(self) -> None:
        result = parse("x = = 1\n", "init.lua")
        diagnostic = result.diagnostics[0]
        assert diagnostic.code == codes.SYNTAX_ERROR
        assert diagnostic.message == "unexpected symbol near '='"
        assert diagnostic.span is not None
        assert diagnostic.span.file == "init.lua"
        assert (diagnostic.span.line, diagnostic.span.column) == (1, 5)

    def test_missing_end_names_the_opener(self) -> None:
        result = parse("if x then\n  y()\n")
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].message == (
            "'end' expected (to close 'if' at line 1) near <eof>"
        )
        assert result.tree.has_errors

    def test_recovery_resumes_at_next_statement_line(self) -> None:
        result = parse("local = 5\nvim.opt.number = true\nuse 'a'\n")
        kinds = [type(s).__name__ for s in result.tree.statements]
        assert kinds == ["ErrorNode", "Assignment", "Statement"]

    def test_no_diagnostics_for_valid_input(self) -> None:
        result = parse("vim.opt.number = true\n")
        assert result.ok
        assert result.diagnostics == []
        assert not result.tree.has_errors

    def test_invalid_escape_is_a_syntax_error(self) -> None:
        result = parse('vim.opt.showbreak = "\\xZZ"\nvim.opt.number = true\n')
        [diagnostic] = result.diagnostics
        assert diagnostic.code == codes.SYNTAX_ERROR
        assert diagnostic.message.startswith("invalid escape sequence")
        assert isinstance(result.tree.statements[0], ErrorNode)
        assert isinstance(result.tree.statements[1], Assignment)


class TestDocumentLimits:
    def test_oversized_document_is_fatal(self) -> None:
        text = "x = 1\n" * 10
        result = parse(text, "big.lua", max_size=20)
        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.code == codes.DOCUMENT_TOO_LARGE
        assert diagnostic.fatal
        assert result.tree.text == text

    def test_limit_not_reached(self) -> None:
        assert parse("x = 1\n", max_size=6).ok

    def test_deep_nesting_is_a_syntax_error(self) -> None:
        text = "x = " + "{" * 250 + "}" * 250 + "\nvim.opt.number = true\n"
        result = parse(text)
        [diagnostic] = result.diagnostics
        assert diagnostic.code == codes.SYNTAX_ERROR
        assert diagnostic.message == "chunk has too many syntax levels"
        assert isinstance(result.tree.statements[0], ErrorNode)
        assert isinstance(result.tree.statements[1], Assignment)
        assert result.tree.text == text

    @pytest.mark.parametrize("opener, closer", [("(", ")"), ("{", "}")])
    def test_moderate_nesting_parses(self, opener: str, closer: str) -> None:
        text = "x = " + opener * 150 + "1" + closer * 150 + "\n"
        result = parse(text)
        assert result.ok
        assert result.tree.text == text

    def test_deeply_nested_blocks(self) -> None:
        text = "do " * 250 + "end " * 250 + "\n"
        result = parse(text)
        assert not result.ok
        assert result.diagnostics[0].message == "chunk has too many syntax levels"
        assert result.tree.text == text


class TestParseFile:
    def test_preserves_crlf(self, tmp_path: Path) -> None:
        path = tmp_path / "init.lua"
        path.write_bytes(b"x = 1\r\ny = 2\r\n")
        result = parse_file(path)
        assert result.tree.text == "x = 1\r\ny = 2\r\n"
        assert result.tree.filename == str(path)


class TestPaths:
    def test_structural_paths(self) -> None:
        tree = parse("options = { tabstop = 2 }\n").tree
        assert isinstance(node_at(tree.chunk, (0, 0, 1)), TableConstructor)
        value = node_at(tree.chunk, (0, 0, 1, 0, 1))
        assert isinstance(value, Literal) and value.value == 2

    def test_walk_visits_every_node(self) -> None:
        tree = parse("x = { 1 }\n").tree
        paths = [path for path, _ in walk(tree.chunk)]
        assert paths[0] == ()
        assert (0, 0, 1, 0, 0) in paths
        with pytest.raises(IndexError):
            node_at(tree.chunk, (0, 9))
