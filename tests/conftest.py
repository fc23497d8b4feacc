"""Shared test fixtures for nvimcfg."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from nvimcfg.models.catalog import Catalog
from nvimcfg.semantic.catalog import load_catalog
from nvimcfg.storage.writer import AtomicWriteError, AtomicWriter
from nvimcfg.syntax.parser import SyntaxTree, parse
from nvimcfg.transform.engine import PatchEngine
from nvimcfg.validation.pipeline import ValidationPipeline

FIXTURES_DIR = Path(__file__).parent / "fixtures"
NVIM_CONFIG_DIR = FIXTURES_DIR / "nvim"

OPTIONS_TABLE_LUA = """\
options = {
  tabstop = 2,
  shiftwidth = 2,
}
"""

DOTTED_OPTIONS_LUA = """\
-- editor options
vim.opt.tabstop = 2
vim.opt.number = true
"""

LAZY_SPEC_LUA = """\
return {
  { "a" },
  "b",
}
"""

SCENARIO_ONE_LUA = '{ plugins = { {"a", dependencies = {"b"}}, {"b"} } }\n'
SCENARIO_TWO_LUA = '{ plugins = { {"a", dependencies = {"b"}}, {"b", dependencies = {"a"}} } }\n'


def tree_of(text: str, filename: str = "<string>") -> SyntaxTree:
    """Parse ``text`` and fail the test on syntax errors."""
    result = parse(text, filename)
    assert result.ok, [d.message for d in result.diagnostics]
    return result.tree


class RecordingWriter(AtomicWriter):
    """Writes in memory and records every call."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[Path, str]] = []
        self.fail = fail

    def write_atomic(self, path: Path, content: str) -> Path | None:
        self.calls.append((path, content))
        if self.fail:
            raise AtomicWriteError(path, "disk full")
        return None


@pytest.fixture
def catalog() -> Catalog:
    return load_catalog()


@pytest.fixture
def engine() -> PatchEngine:
    return PatchEngine()


@pytest.fixture
def pipeline() -> ValidationPipeline:
    return ValidationPipeline()


@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def nvim_config(tmp_path: Path) -> Path:
    """A writable copy of the sample Neovim configuration tree."""
    target = tmp_path / "nvim"
    shutil.copytree(NVIM_CONFIG_DIR, target)
    return target
