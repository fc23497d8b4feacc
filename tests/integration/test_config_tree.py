"""End-to-end tests over the sample configuration tree."""

from __future__ import annotations

from pathlib import Path

from nvimcfg.models import codes
from nvimcfg.models.errors import Category, StageStatus
from nvimcfg.models.patch import AddPlugin, Patch, PluginSpec, SetOption
from nvimcfg.semantic.extractor import extract
from nvimcfg.service.apply import ApplyOrchestrator
from nvimcfg.service.workspace import load_documents
from nvimcfg.storage.writer import FileAtomicWriter
from nvimcfg.syntax.parser import parse
from nvimcfg.syntax.printer import print_tree
from nvimcfg.validation.pipeline import Document, ValidationPipeline
from nvimcfg.validation.runtime import RuntimePathResolver
from tests.conftest import NVIM_CONFIG_DIR

EXPECTED_ORDER = [
    "MunifTanjim/nui.nvim",
    "hrsh7th/nvim-cmp",
    "nvim-lua/plenary.nvim",
    "nvim-neo-tree/neo-tree.nvim",
    "nvim-telescope/telescope.nvim",
]


def _context(root: Path, target: Path) -> list[Document]:
    return [d for d in load_documents([root]) if Path(d.name) != target]


class TestWholeTree:
    def test_every_file_round_trips(self) -> None:
        for document in load_documents([NVIM_CONFIG_DIR]):
            result = parse(document.text, document.name)
            assert result.ok, document.name
            assert print_tree(result.tree.chunk) == document.text

    def test_entities(self) -> None:
        documents = {Path(d.name).name: d for d in load_documents([NVIM_CONFIG_DIR])}
        init = extract(parse(documents["init.lua"].text).tree)
        assert [r.module for r in init.requires] == ["config.options", "lazy"]
        assert init.plugins == []
        options = extract(parse(documents["options.lua"].text).tree)
        assert [o.key for o in options.options] == [
            "relativenumber",
            "tabstop",
            "shiftwidth",
            "expandtab",
            "clipboard",
            "signcolumn",
        ]

    def test_validates_cleanly(self, pipeline: ValidationPipeline) -> None:
        report = pipeline.validate(load_documents([NVIM_CONFIG_DIR]))
        assert report.success
        assert report.diagnostics == []
        assert report.load_order == EXPECTED_ORDER

    def test_runtime_path_stage(self) -> None:
        resolver = RuntimePathResolver([NVIM_CONFIG_DIR], extra_modules=["lazy"])
        report = ValidationPipeline(path_resolver=resolver).validate(
            load_documents([NVIM_CONFIG_DIR])
        )
        assert report.stages[-1].status == StageStatus.COMPLETED
        assert report.by_category(Category.RUNTIME_PATH) == []

        strict = ValidationPipeline(path_resolver=RuntimePathResolver([NVIM_CONFIG_DIR]))
        report = strict.validate(load_documents([NVIM_CONFIG_DIR]))
        assert [d.message for d in report.by_code(codes.MISSING_RUNTIME_PATH)] == [
            "Module 'lazy' is not found on the runtime path"
        ]


class TestEdits:
    def test_set_option_in_options_file(self, nvim_config: Path) -> None:
        target = nvim_config / "lua" / "config" / "options.lua"
        before = target.read_text(encoding="utf-8")
        orchestrator = ApplyOrchestrator(writer=FileAtomicWriter(nvim_config / ".backups"))
        result = orchestrator.apply(
            target,
            Patch.of(SetOption(path="vim.opt.tabstop", value=4)),
            context=_context(nvim_config, target),
        )
        assert result.applied
        after = target.read_text(encoding="utf-8")
        assert after == before.replace("vim.opt.tabstop = 2\n", "vim.opt.tabstop = 4\n")
        assert result.diff is not None
        assert (result.diff.additions, result.diff.deletions) == (1, 1)
        assert result.backup_path is not None
        assert Path(result.backup_path).read_text(encoding="utf-8") == before

    def test_add_plugin_to_ui_specs(self, nvim_config: Path) -> None:
        target = nvim_config / "lua" / "plugins" / "ui.lua"
        orchestrator = ApplyOrchestrator(writer=FileAtomicWriter(backup=False))
        spec = PluginSpec(name="folke/which-key.nvim", event=["VeryLazy"])
        result = orchestrator.apply(
            target, Patch.of(AddPlugin(spec=spec)), context=_context(nvim_config, target)
        )
        assert result.applied
        text = target.read_text(encoding="utf-8")
        assert text.endswith('  },\n  { "folke/which-key.nvim", event = "VeryLazy" },\n}\n')
        assert result.report is not None
        assert result.report.load_order == [
            "MunifTanjim/nui.nvim",
            "folke/which-key.nvim",
            "hrsh7th/nvim-cmp",
            "nvim-lua/plenary.nvim",
            "nvim-neo-tree/neo-tree.nvim",
            "nvim-telescope/telescope.nvim",
        ]

        report = ValidationPipeline().validate(load_documents([nvim_config]))
        assert report.success
        assert "folke/which-key.nvim" in (report.load_order or [])

    def test_unresolvable_dependency_is_rejected(self, nvim_config: Path) -> None:
        target = nvim_config / "lua" / "plugins" / "ui.lua"
        before = target.read_text(encoding="utf-8")
        spec = PluginSpec(name="folke/noice.nvim", dependencies=["rcarriga/nvim-notify"])
        result = ApplyOrchestrator().apply(
            target, Patch.of(AddPlugin(spec=spec)), context=_context(nvim_config, target)
        )
        assert not result.success
        assert result.error is not None
        assert result.error.code == codes.UNRESOLVED_DEPENDENCY
        assert target.read_text(encoding="utf-8") == before
