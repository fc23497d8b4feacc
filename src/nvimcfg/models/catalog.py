"""Option and plugin metadata consumed by the semantic validation stage."""

from __future__ import annotations

from pydantic import BaseModel, Field

from nvimcfg.models.config import ValueType


class OptionMeta(BaseModel):
    """Known option: expected type, scope and allowed values."""

    name: str
    type: ValueType
    scope: str = "global"
    description: str = ""
    default: str | int | float | bool | None = None
    valid_values: list[str] | None = Field(None, alias="validValues")
    pattern: str | None = None
    deprecated: bool = False
    is_list: bool = Field(False, alias="list")  # comma-separated; vim.opt also accepts a table

    model_config = {"populate_by_name": True}

    @property
    def help_tag(self) -> str:
        return f"'{self.name}'"

    @property
    def documentation_url(self) -> str:
        return f"https://neovim.io/doc/user/options.html#'{self.name}'"


class PluginMeta(BaseModel):
    """Known plugin: dependency identifiers it needs at load time."""

    name: str
    dependencies: list[str] = []
    modules: list[str] = []
    description: str = ""


class Catalog(BaseModel):
    """Read-only option/plugin catalog injected into the validation pipeline."""

    options: dict[str, OptionMeta] = {}
    plugins: dict[str, PluginMeta] = {}
    events: list[str] = []

    model_config = {"frozen": True}

    def option(self, key: str) -> OptionMeta | None:
        return self.options.get(key)

    def plugin(self, name: str) -> PluginMeta | None:
        return self.plugins.get(name)

    @property
    def valid_events(self) -> frozenset[str]:
        return frozenset(self.events)

    def search_options(self, query: str) -> list[OptionMeta]:
        """Options whose name or description contains ``query`` (case-insensitive)."""
        needle = query.lower()
        return [
            meta
            for meta in self.options.values()
            if needle in meta.name.lower() or needle in meta.description.lower()
        ]

    def options_in_scope(self, scope: str | None = None) -> list[OptionMeta]:
        return [m for m in self.options.values() if scope is None or m.scope == scope]
