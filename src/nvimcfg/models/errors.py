"""Structured diagnostics with source position tracking."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import StrEnum

from pydantic import BaseModel, computed_field

from nvimcfg.models.patch import Patch


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(StrEnum):
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    DEPENDENCY = "dependency"
    RUNTIME_PATH = "runtime-path"
    TRANSFORM = "transform"


class SourceSpan(BaseModel):
    """Points to an exact range of a Lua source file.

    ``start``/``end`` are character offsets into the text; ``line`` and
    ``column`` are 1-based and refer to ``start``.
    """

    file: str
    start: int
    end: int
    line: int = 1
    column: int = 1
    end_line: int | None = None
    end_column: int | None = None

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class Diagnostic(BaseModel):
    """A structured finding with optional source position and suggested fix."""

    severity: Severity
    category: Category
    code: str
    message: str
    span: SourceSpan | None = None
    fix: Patch | None = None
    fatal: bool = False

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def format(self) -> str:
        where = str(self.span) if self.span else "<global>"
        return f"{where}: {self.severity}[{self.code}] {self.message}"


class DiagnosticBag:
    """Collects diagnostics in emission order, independent of their producer."""

    def __init__(self, diagnostics: Iterable[Diagnostic] = ()) -> None:
        self._items: list[Diagnostic] = list(diagnostics)

    def add(self, diagnostic: Diagnostic) -> None:
        self._items.append(diagnostic)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        self._items.extend(diagnostics)

    def emit(
        self,
        severity: Severity,
        category: Category,
        code: str,
        message: str,
        span: SourceSpan | None = None,
        *,
        fix: Patch | None = None,
        fatal: bool = False,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            severity=severity,
            category=category,
            code=code,
            message=message,
            span=span,
            fix=fix,
            fatal=fatal,
        )
        self._items.append(diagnostic)
        return diagnostic

    def errors(self) -> list[Diagnostic]:
        return [d for d in self._items if d.severity == Severity.ERROR]

    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._items if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self._items)

    @property
    def has_fatal(self) -> bool:
        return any(d.fatal for d in self._items)

    def all(self) -> list[Diagnostic]:
        return list(self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


class StageStatus(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


class StageResult(BaseModel):
    """Outcome of one validation stage."""

    stage: str
    status: StageStatus
    errors: int = 0
    warnings: int = 0
    reason: str | None = None


class ValidationReport(BaseModel):
    """Aggregated result of the validation pipeline."""

    diagnostics: list[Diagnostic] = []
    stages: list[StageResult] = []
    load_order: list[str] | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    def by_code(self, code: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.code == code]

    def by_category(self, category: Category) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.category == category]
