"""Tests for Pydantic models: patches, diagnostics and reports."""

from __future__ import annotations

from nvimcfg.models.catalog import OptionMeta
from nvimcfg.models.config import ValueType
from nvimcfg.models.errors import (
    Category,
    Diagnostic,
    DiagnosticBag,
    Severity,
    SourceSpan,
    ValidationReport,
)
from nvimcfg.models.patch import (
    AddPlugin,
    Patch,
    PluginSpec,
    RemovePlugin,
    ReplaceNode,
    SetOption,
)


class TestPatch:
    def test_operations_are_discriminated_by_op(self) -> None:
        patch = Patch.model_validate(
            {
                "operations": [
                    {"op": "set_option", "path": "vim.opt.tabstop", "value": 4},
                    {"op": "add_plugin", "spec": {"name": "a", "event": ["VeryLazy"]}},
                    {"op": "replace_node", "node_path": [0, 1], "text": "x = 1"},
                ]
            }
        )
        first, second, third = patch.operations
        assert isinstance(first, SetOption)
        assert isinstance(second, AddPlugin) and second.spec.event == ["VeryLazy"]
        assert isinstance(third, ReplaceNode) and third.node_path == (0, 1)

    def test_then_returns_a_new_patch(self) -> None:
        base = Patch.of(SetOption(path="tabstop", value=4))
        extended = base.then(RemovePlugin(name="a"))
        assert len(base) == 1
        assert len(extended) == 2

    def test_anchor_and_describe(self) -> None:
        assert SetOption(path="vim.opt.tabstop", value=4).anchor == "tabstop"
        assert AddPlugin(spec=PluginSpec(name="a")).describe() == "add_plugin('a')"
        assert ReplaceNode(node_path=(0,), text="\n  x = 1\ny = 2").anchor == "x = 1"
        assert ReplaceNode(node_path=(0,), text="  ").anchor == ""


class TestDiagnostics:
    def test_format(self) -> None:
        span = SourceSpan(file="init.lua", start=4, end=5, line=1, column=5)
        diagnostic = Diagnostic(
            severity=Severity.ERROR,
            category=Category.SYNTAX,
            code="SYNTAX_ERROR",
            message="unexpected symbol near '='",
            span=span,
        )
        assert diagnostic.format() == "init.lua:1:5: error[SYNTAX_ERROR] unexpected symbol near '='"
        assert diagnostic.is_error

    def test_format_without_span(self) -> None:
        diagnostic = Diagnostic(
            severity=Severity.WARNING, category=Category.SEMANTIC, code="X", message="m"
        )
        assert diagnostic.format() == "<global>: warning[X] m"

    def test_bag_keeps_emission_order(self) -> None:
        bag = DiagnosticBag()
        bag.emit(Severity.WARNING, Category.SEMANTIC, "W", "first")
        bag.emit(Severity.ERROR, Category.DEPENDENCY, "E", "second", fatal=True)
        assert [d.message for d in bag] == ["first", "second"]
        assert len(bag) == 2
        assert bag.has_errors
        assert bag.has_fatal
        assert [d.code for d in bag.errors()] == ["E"]
        assert [d.code for d in bag.warnings()] == ["W"]


class TestValidationReport:
    def test_success_means_no_errors(self) -> None:
        warning = Diagnostic(
            severity=Severity.WARNING, category=Category.SEMANTIC, code="W", message="w"
        )
        error = warning.model_copy(update={"severity": Severity.ERROR, "code": "E"})
        assert ValidationReport(diagnostics=[warning]).success
        report = ValidationReport(diagnostics=[warning, error])
        assert not report.success
        assert report.by_code("E") == [error]
        assert report.by_category(Category.SEMANTIC) == [warning, error]

    def test_success_is_serialized(self) -> None:
        assert ValidationReport().model_dump()["success"] is True


class TestOptionMeta:
    def test_aliases(self) -> None:
        meta = OptionMeta.model_validate(
            {"name": "clipboard", "type": "string", "list": True, "validValues": ["a"]}
        )
        assert meta.is_list
        assert meta.valid_values == ["a"]
        assert meta.type == ValueType.STRING
        assert meta.help_tag == "'clipboard'"
