"""Option/plugin metadata providers.

The semantic stage only needs :class:`MetadataProvider`. The default
provider is a :class:`Catalog` loaded from the bundled ``catalog.yaml`` (or
from a user file named by ``Settings.catalog_path``).
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from nvimcfg.models.catalog import Catalog, OptionMeta, PluginMeta

BUNDLED_CATALOG = Path(__file__).with_name("catalog.yaml")


@runtime_checkable
class MetadataProvider(Protocol):
    """Read-only lookup of option and plugin metadata."""

    def option(self, key: str) -> OptionMeta | None: ...

    def plugin(self, name: str) -> PluginMeta | None: ...

    @property
    def valid_events(self) -> frozenset[str]: ...


class CatalogError(Exception):
    """Raised when a catalog file cannot be read or has the wrong shape."""


def catalog_from_dict(raw: dict[str, Any]) -> Catalog:
    """Build a :class:`Catalog` from plain data keyed by option/plugin name."""
    options = raw.get("options") or {}
    plugins = raw.get("plugins") or {}
    if not isinstance(options, dict) or not isinstance(plugins, dict):
        raise CatalogError("'options' and 'plugins' must be mappings keyed by name")
    try:
        return _build(options, plugins, raw.get("events") or [])
    except ValidationError as exc:
        raise CatalogError(f"Invalid catalog entry: {exc}") from exc


def _build(options: dict[str, Any], plugins: dict[str, Any], events: list[Any]) -> Catalog:
    return Catalog(
        options={
            name: OptionMeta.model_validate({"name": name, **dict(data or {})})
            for name, data in options.items()
        },
        plugins={
            name: PluginMeta.model_validate({"name": name, **dict(data or {})})
            for name, data in plugins.items()
        },
        events=[str(e) for e in events],
    )


def load_catalog(path: Path | None = None) -> Catalog:
    """Load a catalog YAML file; ``None`` loads the bundled catalog."""
    if path is None:
        return _bundled_catalog()
    return _read_catalog(path)


@functools.cache
def _bundled_catalog() -> Catalog:
    return _read_catalog(BUNDLED_CATALOG)


def _read_catalog(path: Path) -> Catalog:
    yaml = YAML(typ="safe")
    try:
        with path.open(encoding="utf-8") as handle:
            raw = yaml.load(handle)
    except (OSError, YAMLError) as exc:
        raise CatalogError(f"Cannot load catalog {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise CatalogError(f"Catalog {path} must be a YAML mapping")
    return catalog_from_dict(raw)
