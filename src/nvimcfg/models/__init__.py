"""Pydantic domain models for nvimcfg."""

from nvimcfg.models.catalog import Catalog, OptionMeta, PluginMeta
from nvimcfg.models.config import (
    ConfigEntities,
    DeclarationStyle,
    OptionEntity,
    PluginDeclaration,
    RequireEntity,
    ValueType,
)
from nvimcfg.models.errors import (
    Category,
    Diagnostic,
    DiagnosticBag,
    Severity,
    SourceSpan,
    StageResult,
    StageStatus,
    ValidationReport,
)
from nvimcfg.models.patch import (
    AddDependency,
    AddPlugin,
    Patch,
    PluginSpec,
    RemovePlugin,
    ReplaceNode,
    SetOption,
)

__all__ = [
    "AddDependency",
    "AddPlugin",
    "Catalog",
    "Category",
    "ConfigEntities",
    "DeclarationStyle",
    "Diagnostic",
    "DiagnosticBag",
    "OptionEntity",
    "OptionMeta",
    "Patch",
    "PluginDeclaration",
    "PluginMeta",
    "PluginSpec",
    "RemovePlugin",
    "ReplaceNode",
    "RequireEntity",
    "SetOption",
    "Severity",
    "SourceSpan",
    "StageResult",
    "StageStatus",
    "ValidationReport",
    "ValueType",
]
