"""Validation pipeline: syntax → semantic → dependency → runtime_path.

Stages run in a fixed sequence. A stage is skipped only when an earlier
stage produced a *fatal* diagnostic (unreadable or oversized input);
ordinary errors never stop later stages, so the report always gives the
complete picture. ``success`` is false iff any error was reported.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from nvimcfg.models import codes
from nvimcfg.models.config import ConfigEntities
from nvimcfg.models.errors import (
    Category,
    Diagnostic,
    DiagnosticBag,
    Severity,
    StageResult,
    StageStatus,
    ValidationReport,
)
from nvimcfg.plugins.graph import build_graph
from nvimcfg.plugins.registry import PluginNode, build_registry
from nvimcfg.plugins.resolver import resolve
from nvimcfg.semantic.catalog import MetadataProvider, load_catalog
from nvimcfg.semantic.extractor import ConfigExtractor
from nvimcfg.semantic.validator import SemanticValidator
from nvimcfg.settings import Settings
from nvimcfg.syntax.parser import SyntaxTree, parse

logger = logging.getLogger("nvimcfg.validation")

PathResolver = Callable[[str], bool]


class Stage(StrEnum):
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    DEPENDENCY = "dependency"
    RUNTIME_PATH = "runtime_path"


@dataclass(frozen=True)
class Document:
    """One input file. ``error`` is set when the file could not be read."""

    name: str
    text: str = ""
    error: str | None = None


@dataclass
class _RunState:
    trees: list[SyntaxTree] = field(default_factory=list)
    entities: list[ConfigEntities] = field(default_factory=list)
    plugins: list[PluginNode] = field(default_factory=list)
    load_order: list[str] | None = None


class ValidationPipeline:
    """Runs the four validation stages over a set of documents.

    The metadata provider is injected read-only; the runtime path stage
    runs only when a path resolver is supplied.
    """

    def __init__(
        self,
        provider: MetadataProvider | None = None,
        path_resolver: PathResolver | None = None,
        *,
        option_tables: Sequence[str] = ("options",),
        plugin_functions: Sequence[str] = ("use", "Plug"),
        max_document_size: int | None = None,
    ) -> None:
        self._provider = provider if provider is not None else load_catalog()
        self._path_resolver = path_resolver
        self._extractor = ConfigExtractor(option_tables, plugin_functions)
        self._semantic = SemanticValidator(self._provider)
        self._max_size = max_document_size

    @classmethod
    def from_settings(
        cls, settings: Settings, path_resolver: PathResolver | None = None
    ) -> ValidationPipeline:
        return cls(
            load_catalog(settings.catalog_path),
            path_resolver,
            option_tables=settings.option_tables,
            plugin_functions=settings.plugin_functions,
            max_document_size=settings.max_document_size,
        )

    def validate(self, documents: Sequence[Document]) -> ValidationReport:
        logger.info("Validating %d document(s)", len(documents))
        bag = DiagnosticBag()
        state = _RunState()
        stages: list[StageResult] = []
        stage_runners: list[tuple[Stage, Callable[[], list[Diagnostic]]]] = [
            (Stage.SYNTAX, lambda: self._syntax_stage(documents, state)),
            (Stage.SEMANTIC, lambda: self._semantic_stage(state)),
            (Stage.DEPENDENCY, lambda: self._dependency_stage(state)),
            (Stage.RUNTIME_PATH, lambda: self._runtime_stage(state)),
        ]
        for stage, runner in stage_runners:
            if bag.has_fatal:
                stages.append(
                    StageResult(
                        stage=stage,
                        status=StageStatus.SKIPPED,
                        reason="an earlier stage reported a fatal diagnostic",
                    )
                )
                continue
            if stage == Stage.RUNTIME_PATH and self._path_resolver is None:
                stages.append(
                    StageResult(
                        stage=stage, status=StageStatus.SKIPPED, reason="no path resolver supplied"
                    )
                )
                continue
            found = runner()
            bag.extend(found)
            stages.append(
                StageResult(
                    stage=stage,
                    status=StageStatus.COMPLETED,
                    errors=sum(1 for d in found if d.severity == Severity.ERROR),
                    warnings=sum(1 for d in found if d.severity == Severity.WARNING),
                )
            )
            logger.debug("Stage %s: %d diagnostic(s)", stage, len(found))

        report = ValidationReport(
            diagnostics=bag.all(), stages=stages, load_order=state.load_order
        )
        logger.info(
            "Validation complete: %d error(s), %d warning(s)",
            len(report.errors),
            len(report.warnings),
        )
        return report

    def validate_text(self, text: str, name: str = "<string>") -> ValidationReport:
        return self.validate([Document(name=name, text=text)])

    # -- stages --------------------------------------------------------------

    def _syntax_stage(self, documents: Sequence[Document], state: _RunState) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        for document in documents:
            if document.error is not None:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.ERROR,
                        category=Category.SYNTAX,
                        code=codes.READ_ERROR,
                        message=f"Cannot read {document.name}: {document.error}",
                        fatal=True,
                    )
                )
                continue
            result = parse(document.text, document.name, max_size=self._max_size)
            diagnostics.extend(result.diagnostics)
            if not any(d.fatal for d in result.diagnostics):
                state.trees.append(result.tree)
        return diagnostics

    def _semantic_stage(self, state: _RunState) -> list[Diagnostic]:
        state.entities = [self._extractor.extract(tree) for tree in state.trees]
        nodes, diagnostics = build_registry(state.entities)
        state.plugins = nodes
        declared = {node.name for node in nodes}
        for entities in state.entities:
            diagnostics.extend(self._semantic.validate(entities, declared))
        return diagnostics

    def _dependency_stage(self, state: _RunState) -> list[Diagnostic]:
        graph, diagnostics = build_graph(state.plugins)
        result = resolve(graph)
        diagnostics.extend(result.diagnostics)
        # an order is only reported when every dependency resolved
        if result.order is not None and not diagnostics:
            state.load_order = result.order
        return diagnostics

    def _runtime_stage(self, state: _RunState) -> list[Diagnostic]:
        assert self._path_resolver is not None
        diagnostics: list[Diagnostic] = []
        checked: dict[str, bool] = {}
        for entities in state.entities:
            for require in entities.requires:
                if require.module not in checked:
                    checked[require.module] = self._path_resolver(require.module)
                if not checked[require.module]:
                    diagnostics.append(
                        Diagnostic(
                            severity=Severity.WARNING,
                            category=Category.RUNTIME_PATH,
                            code=codes.MISSING_RUNTIME_PATH,
                            message=f"Module '{require.module}' is not found on the runtime path",
                            span=require.span,
                        )
                    )
        return diagnostics
