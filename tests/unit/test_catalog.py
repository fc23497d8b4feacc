"""Tests for the option/plugin catalog."""

from __future__ import annotations

from pathlib import Path

import pytest

from nvimcfg.models.catalog import Catalog
from nvimcfg.models.config import ValueType
from nvimcfg.semantic.catalog import (
    CatalogError,
    MetadataProvider,
    catalog_from_dict,
    load_catalog,
)


class TestBundledCatalog:
    def test_is_a_metadata_provider(self, catalog: Catalog) -> None:
        assert isinstance(catalog, MetadataProvider)

    def test_option_lookup(self, catalog: Catalog) -> None:
        tabstop = catalog.option("tabstop")
        assert tabstop is not None
        assert tabstop.type == ValueType.NUMBER
        assert tabstop.scope == "buffer"
        assert catalog.option("no-such-option") is None

    def test_list_and_enumerated_options(self, catalog: Catalog) -> None:
        clipboard = catalog.option("clipboard")
        background = catalog.option("background")
        assert clipboard is not None and clipboard.is_list
        assert background is not None and background.valid_values == ["dark", "light"]

    def test_deprecated_option(self, catalog: Catalog) -> None:
        paste = catalog.option("paste")
        assert paste is not None and paste.deprecated

    def test_plugin_lookup(self, catalog: Catalog) -> None:
        telescope = catalog.plugin("nvim-telescope/telescope.nvim")
        assert telescope is not None
        assert telescope.dependencies == ["nvim-lua/plenary.nvim"]
        assert catalog.plugin("someone/unknown.nvim") is None

    def test_events(self, catalog: Catalog) -> None:
        assert "VeryLazy" in catalog.valid_events
        assert "InsertEnter" in catalog.valid_events

    def test_search(self, catalog: Catalog) -> None:
        names = [meta.name for meta in catalog.search_options("tab")]
        assert "tabstop" in names
        assert "expandtab" in names

    def test_scope_filter(self, catalog: Catalog) -> None:
        window = {meta.name for meta in catalog.options_in_scope("window")}
        assert "number" in window
        assert "tabstop" not in window

    def test_bundled_catalog_is_cached(self) -> None:
        assert load_catalog() is load_catalog()


class TestCustomCatalog:
    def test_load_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "options:\n"
            "  guifont:\n"
            "    type: string\n"
            "plugins:\n"
            "  me/thing.nvim:\n"
            "    dependencies: [me/lib.nvim]\n"
            "events: [VeryLazy]\n",
            encoding="utf-8",
        )
        catalog = load_catalog(path)
        assert catalog.option("guifont") is not None
        assert catalog.option("tabstop") is None
        assert catalog.plugin("me/thing.nvim").dependencies == ["me/lib.nvim"]  # type: ignore[union-attr]
        assert catalog.valid_events == frozenset({"VeryLazy"})

    def test_from_dict(self) -> None:
        catalog = catalog_from_dict(
            {"options": {"wrap": {"type": "boolean", "list": False}}, "plugins": {"a": None}}
        )
        assert catalog.option("wrap").type == ValueType.BOOLEAN  # type: ignore[union-attr]
        assert catalog.plugin("a") is not None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CatalogError, match="Cannot load catalog"):
            load_catalog(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("options: [unclosed\n", encoding="utf-8")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="must be a YAML mapping"):
            load_catalog(path)
        with pytest.raises(CatalogError):
            catalog_from_dict({"options": ["tabstop"]})

    def test_invalid_entry(self) -> None:
        with pytest.raises(CatalogError, match="Invalid catalog entry"):
            catalog_from_dict({"options": {"tabstop": {"type": "integer"}}})
