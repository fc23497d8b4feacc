"""Tests for printing and Lua literal formatting."""

from __future__ import annotations

import math

import pytest

from nvimcfg.syntax.nodes import Literal
from nvimcfg.syntax.parser import parse, parse_expression
from nvimcfg.syntax.printer import (
    format_key,
    format_plugin_spec,
    format_string,
    format_value,
    node_source,
    print_tree,
)


class TestFormatValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "nil"),
            (True, "true"),
            (False, "false"),
            (4, "4"),
            (-2, "-2"),
            (2.5, "2.5"),
            (4.0, "4"),
            ("dark", '"dark"'),
            ([], "{}"),
            ({}, "{}"),
            (["a", "b"], '{ "a", "b" }'),
            ({"border": "single", "width": 80}, '{ border = "single", width = 80 }'),
        ],
    )
    def test_scalars_and_flat_tables(self, value: object, expected: str) -> None:
        assert format_value(value) == expected

    def test_nested_tables_are_multiline(self) -> None:
        assert format_value({"ui": {"border": "single"}}) == (
            '{\n  ui = { border = "single" },\n}'
        )

    def test_nested_indent_follows_parent(self) -> None:
        assert format_value([[1]], indent="  ") == "{\n    { 1 },\n  }"

    def test_keys_that_are_not_names_are_bracketed(self) -> None:
        assert format_value({"end": 1, "a b": 2}) == '{ ["end"] = 1, ["a b"] = 2 }'

    def test_unrepresentable_values(self) -> None:
        with pytest.raises(ValueError):
            format_value(math.nan)
        with pytest.raises(ValueError):
            format_value(math.inf)
        with pytest.raises(TypeError):
            format_value(object())

    def test_string_escapes(self) -> None:
        assert format_string('a"b\\c\n') == '"a\\"b\\\\c\\n"'

    @pytest.mark.parametrize("value", ["\x001", "nul\x00", "\udcff\udcfe", "✓"])
    def test_strings_decode_back(self, value: str) -> None:
        node = parse_expression(format_string(value))
        assert isinstance(node, Literal)
        assert node.value == value

    def test_nul_uses_three_digit_escape(self) -> None:
        assert format_string("\x001") == '"\\0001"'

    def test_format_key(self) -> None:
        assert format_key("tabstop") == "tabstop"
        assert format_key("nil") == '["nil"]'
        assert format_key("1x") == '["1x"]'

    def test_formatted_values_parse_back(self) -> None:
        text = format_value({"list": [1, 2], "flag": True, "name": "x\ty"})
        assert parse(f"x = {text}\n").ok


class TestFormatPluginSpec:
    def test_name_only(self) -> None:
        assert format_plugin_spec("folke/which-key.nvim") == '{ "folke/which-key.nvim" }'

    def test_all_fields(self) -> None:
        text = format_plugin_spec(
            "a",
            dependencies=["b"],
            event=["VeryLazy"],
            enabled=False,
        )
        assert text == '{ "a", dependencies = { "b" }, event = "VeryLazy", enabled = false }'

    def test_several_events_stay_a_list(self) -> None:
        text = format_plugin_spec("a", event=["BufRead", "BufNewFile"])
        assert text == '{ "a", event = { "BufRead", "BufNewFile" } }'

    def test_nested_opts_are_multiline(self) -> None:
        text = format_plugin_spec("a", opts={"ui": {"border": "rounded"}})
        assert text == '{\n  "a",\n  opts = {\n    ui = { border = "rounded" },\n  },\n}'


class TestPrintTree:
    def test_node_source_drops_outer_trivia(self) -> None:
        tree = parse("  -- lead\n  x = 1 -- trail\n").tree
        statement = tree.statements[0]
        assert node_source(statement) == "x = 1"
        assert print_tree(statement) == "  -- lead\n  x = 1 -- trail\n"

    def test_print_token(self) -> None:
        tree = parse("x = 1\n\n").tree
        assert print_tree(tree.chunk.eof) == "\n"
