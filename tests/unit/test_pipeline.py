"""Tests for the four-stage validation pipeline."""

from __future__ import annotations

from nvimcfg.models import codes
from nvimcfg.models.errors import Category, StageStatus
from nvimcfg.models.patch import SetOption
from nvimcfg.settings import Settings
from nvimcfg.validation.pipeline import Document, Stage, ValidationPipeline
from tests.conftest import SCENARIO_ONE_LUA, SCENARIO_TWO_LUA

PLUGINS_LUA = 'use { "a", dependencies = { "b" } }\nuse "b"\n'


class TestStages:
    def test_clean_document(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate_text(SCENARIO_ONE_LUA, "plugins.lua")
        assert report.success
        assert report.diagnostics == []
        assert report.load_order == ["b", "a"]
        assert [(s.stage, s.status) for s in report.stages] == [
            (Stage.SYNTAX, StageStatus.COMPLETED),
            (Stage.SEMANTIC, StageStatus.COMPLETED),
            (Stage.DEPENDENCY, StageStatus.COMPLETED),
            (Stage.RUNTIME_PATH, StageStatus.SKIPPED),
        ]
        assert report.stages[-1].reason == "no path resolver supplied"

    def test_cycle_fails_without_order(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate_text(SCENARIO_TWO_LUA)
        assert not report.success
        assert report.load_order is None
        [diagnostic] = report.errors
        assert diagnostic.code == codes.CYCLIC_DEPENDENCY
        assert diagnostic.category == Category.DEPENDENCY
        assert diagnostic.message == "Cyclic dependency: a -> b -> a"
        assert report.stages[2].errors == 1

    def test_syntax_errors_do_not_stop_later_stages(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate(
            [Document(name="bad.lua", text="x = = 1\n"), Document(name="plugins.lua", text=PLUGINS_LUA)]
        )
        assert not report.success
        assert {d.code for d in report.errors} == {codes.SYNTAX_ERROR}
        assert report.errors[0].span is not None
        assert report.errors[0].span.file == "bad.lua"
        assert report.load_order == ["b", "a"]
        assert all(s.status == StageStatus.COMPLETED for s in report.stages[:3])

    def test_string_escapes_never_abort(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate_text('vim.opt.colorcolumn = "\\u{7FFFFFFF}"\n')
        assert report.errors == []
        report = pipeline.validate_text('vim.opt.colorcolumn = "\\xZZ"\n')
        assert [d.code for d in report.errors] == [codes.SYNTAX_ERROR]
        assert all(s.status == StageStatus.COMPLETED for s in report.stages[:3])

    def test_deep_nesting_never_aborts(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate_text("x = " + "(" * 300 + "1" + ")" * 300 + "\n")
        assert [d.code for d in report.errors] == [codes.SYNTAX_ERROR]

    def test_read_error_is_fatal(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate(
            [Document(name="gone.lua", error="No such file"), Document(name="ok.lua", text=PLUGINS_LUA)]
        )
        assert not report.success
        [diagnostic] = report.diagnostics
        assert diagnostic.code == codes.READ_ERROR
        assert diagnostic.fatal
        assert diagnostic.message == "Cannot read gone.lua: No such file"
        assert report.load_order is None
        skipped = report.stages[1:]
        assert all(s.status == StageStatus.SKIPPED for s in skipped)
        assert {s.reason for s in skipped} == {"an earlier stage reported a fatal diagnostic"}

    def test_oversized_document_is_fatal(self) -> None:
        pipeline = ValidationPipeline(max_document_size=10)
        report = pipeline.validate_text("x = 1\n" * 5)
        assert report.by_code(codes.DOCUMENT_TOO_LARGE)
        assert report.stages[1].status == StageStatus.SKIPPED


class TestSemanticStage:
    def test_type_mismatch_carries_fix(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate_text('vim.opt.tabstop = "4"\n')
        [error] = report.errors
        assert error.code == codes.OPTION_TYPE_MISMATCH
        assert error.fix is not None
        assert error.fix.operations == [SetOption(path="vim.opt.tabstop", value=4)]

    def test_known_dependency_declared_in_another_document(
        self, pipeline: ValidationPipeline
    ) -> None:
        alone = pipeline.validate_text('use "nvim-telescope/telescope.nvim"\n')
        assert [d.code for d in alone.warnings] == [codes.MISSING_KNOWN_DEPENDENCY]
        together = pipeline.validate(
            [
                Document(name="a.lua", text='use "nvim-telescope/telescope.nvim"\n'),
                Document(name="b.lua", text='use "nvim-lua/plenary.nvim"\n'),
            ]
        )
        assert together.diagnostics == []
        assert together.load_order == ["nvim-lua/plenary.nvim", "nvim-telescope/telescope.nvim"]

    def test_duplicate_declarations_warn(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate(
            [Document(name="one.lua", text='use "a"\n'), Document(name="two.lua", text='use "a"\n')]
        )
        assert report.success
        assert [d.code for d in report.warnings] == [codes.DUPLICATE_PLUGIN]
        assert report.load_order == ["a"]


class TestDependencyStage:
    def test_cross_document_dependencies(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate(
            [
                Document(name="one.lua", text='use { "a", requires = "b" }\n'),
                Document(name="two.lua", text='use { "b", requires = "c" }\nuse "c"\n'),
            ]
        )
        assert report.load_order == ["c", "b", "a"]

    def test_unresolved_dependency_withholds_order(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate_text('use { "a", requires = "x" }\n')
        assert [d.code for d in report.errors] == [codes.UNRESOLVED_DEPENDENCY]
        assert report.load_order is None


class TestRuntimeStage:
    def test_missing_modules_are_warnings(self) -> None:
        asked: list[str] = []

        def resolver(module: str) -> bool:
            asked.append(module)
            return module == "known"

        pipeline = ValidationPipeline(path_resolver=resolver)
        report = pipeline.validate_text(
            'require("known")\nrequire("missing")\nrequire("missing")\n', "init.lua"
        )
        assert report.success
        assert asked == ["known", "missing"]
        warnings = report.by_category(Category.RUNTIME_PATH)
        assert [d.code for d in warnings] == [codes.MISSING_RUNTIME_PATH] * 2
        assert warnings[0].message == "Module 'missing' is not found on the runtime path"
        assert warnings[0].span is not None and warnings[0].span.line == 2
        assert report.stages[3].status == StageStatus.COMPLETED
        assert report.stages[3].warnings == 2


class TestFromSettings:
    def test_settings_configure_recognition(self) -> None:
        settings = Settings(option_tables=["settings"], max_document_size=1000)
        pipeline = ValidationPipeline.from_settings(settings)
        report = pipeline.validate_text('settings = { tabstop = "wide" }\n')
        assert [d.code for d in report.errors] == [codes.OPTION_TYPE_MISMATCH]
        assert pipeline.validate_text("x = 1\n" * 200).by_code(codes.DOCUMENT_TOO_LARGE)
