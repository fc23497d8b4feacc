"""Semantic view over a syntax tree: options, plugin declarations, requires."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, JsonValue

from nvimcfg.models.errors import SourceSpan


class ValueType(StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NIL = "nil"
    TABLE = "table"
    EXPRESSION = "expression"  # not a literal; value is opaque


class OptionEntity(BaseModel):
    """An option assignment: ``vim.opt.tabstop = 4`` or ``options = { tabstop = 4 }``.

    ``node_path`` points at the value node; ``table_path`` at the table
    constructor holding the field (``None`` for dotted assignments).
    """

    key: str
    scope: str
    value_type: ValueType
    value: JsonValue = None
    file: str = "<string>"
    span: SourceSpan | None = None
    node_path: tuple[int, ...] = ()
    table_path: tuple[int, ...] | None = None
    statement_path: tuple[int, ...] = ()


class DeclarationStyle(StrEnum):
    TABLE = "table"  # { "name", ... } inside a plugin list
    STRING = "string"  # bare "name" inside a plugin list
    CALL = "call"  # use("name", {...}) / use { "name", ... }


class PluginDeclaration(BaseModel):
    """A plugin declaration recognised from a call or a table spec."""

    name: str
    source: str
    dependencies: list[str] = []
    events: list[str] = []
    enabled: bool = True
    opts: dict[str, JsonValue] = {}
    style: DeclarationStyle = DeclarationStyle.TABLE
    file: str = "<string>"
    span: SourceSpan | None = None
    node_path: tuple[int, ...] = ()
    list_path: tuple[int, ...] | None = None  # enclosing plugin list, if any
    statement_path: tuple[int, ...] = ()


class RequireEntity(BaseModel):
    """A ``require("module")`` call with a literal module name."""

    module: str
    file: str = "<string>"
    span: SourceSpan | None = None
    node_path: tuple[int, ...] = ()


class ConfigEntities(BaseModel):
    """All entities recognised in one document."""

    file: str = "<string>"
    options: list[OptionEntity] = []
    plugins: list[PluginDeclaration] = []
    requires: list[RequireEntity] = []

    def option(self, key: str) -> OptionEntity | None:
        for entity in self.options:
            if entity.key == key:
                return entity
        return None

    def plugin(self, name: str) -> PluginDeclaration | None:
        for entity in self.plugins:
            if entity.name == name:
                return entity
        return None
