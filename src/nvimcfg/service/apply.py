"""Apply orchestrator: read → parse → transform → diff → validate → write.

Every step before the write works on in-memory text, so a failure at any
point leaves the file on disk untouched. Applies on the same path are
serialized through a per-path lock; different paths proceed independently.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel

from nvimcfg.models import codes
from nvimcfg.models.errors import Category, Diagnostic, Severity, ValidationReport
from nvimcfg.models.patch import Patch
from nvimcfg.settings import Settings
from nvimcfg.storage.writer import AtomicWriteError, AtomicWriter, FileAtomicWriter
from nvimcfg.syntax.parser import parse
from nvimcfg.transform.diff import TextDiff, diff_trees
from nvimcfg.transform.engine import PatchEngine, TransformError
from nvimcfg.validation.pipeline import Document, ValidationPipeline

logger = logging.getLogger("nvimcfg.apply")


class ApplyResult(BaseModel):
    """Outcome of one apply or preview.

    ``applied`` is true only when the file was rewritten. ``diff`` is
    present whenever the patch transformed successfully, including dry
    runs and applies that failed validation.
    """

    path: str
    success: bool
    applied: bool = False
    dry_run: bool = False
    diff: TextDiff | None = None
    report: ValidationReport | None = None
    backup_path: str | None = None
    error: Diagnostic | None = None
    new_text: str | None = None


@dataclass
class _PathLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


def _error(code: str, category: Category, message: str) -> Diagnostic:
    return Diagnostic(severity=Severity.ERROR, category=category, code=code, message=message)


class ApplyOrchestrator:
    """Applies patches to configuration files with validation and backups."""

    def __init__(
        self,
        pipeline: ValidationPipeline | None = None,
        engine: PatchEngine | None = None,
        writer: AtomicWriter | None = None,
        *,
        default_dry_run: bool = False,
        max_document_size: int | None = None,
    ) -> None:
        self._pipeline = pipeline if pipeline is not None else ValidationPipeline()
        self._engine = engine if engine is not None else PatchEngine()
        self._writer = writer if writer is not None else FileAtomicWriter()
        self._default_dry_run = default_dry_run
        self._max_size = max_document_size
        self._lock = threading.Lock()
        # entries live only while an apply on that path is running or waiting
        self._path_locks: dict[Path, _PathLock] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, pipeline: ValidationPipeline | None = None
    ) -> ApplyOrchestrator:
        return cls(
            pipeline if pipeline is not None else ValidationPipeline.from_settings(settings),
            PatchEngine(settings.option_tables, settings.plugin_functions),
            FileAtomicWriter(settings.backup_dir),
            default_dry_run=settings.default_dry_run,
            max_document_size=settings.max_document_size,
        )

    # -- public API ----------------------------------------------------------

    def apply(
        self,
        path: Path,
        patch: Patch,
        dry_run: bool | None = None,
        force: bool = False,
        context: Sequence[Document] = (),
    ) -> ApplyResult:
        """Apply ``patch`` to the file at ``path``.

        The file is written only when the patch transforms cleanly, the
        result validates (or ``force`` is set), the text actually changed
        and this is not a dry run. ``context`` documents are validated
        together with the new text, e.g. the other files of the config.
        """
        if dry_run is None:
            dry_run = self._default_dry_run
        with self._locked(path):
            try:
                with path.open("r", encoding="utf-8", newline="") as handle:
                    text = handle.read()
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Cannot read %s: %s", path, exc)
                return ApplyResult(
                    path=str(path),
                    success=False,
                    dry_run=dry_run,
                    error=_error(codes.READ_ERROR, Category.SYNTAX, f"Cannot read {path}: {exc}"),
                )

            result = self._prepare(text, patch, str(path), force=force, context=context)
            result.dry_run = dry_run
            if not result.success or dry_run:
                return result
            assert result.diff is not None
            if result.diff.is_empty:
                logger.info("No changes for %s", path)
                return result

            assert result.new_text is not None
            try:
                backup = self._writer.write_atomic(path, result.new_text)
            except AtomicWriteError as exc:
                logger.error("Write failed for %s: %s", path, exc)
                return ApplyResult(
                    path=str(path),
                    success=False,
                    dry_run=dry_run,
                    diff=result.diff,
                    report=result.report,
                    error=_error(codes.WRITE_FAILED, Category.TRANSFORM, str(exc)),
                )
            result.applied = True
            result.backup_path = str(backup) if backup is not None else None
            logger.info("Applied %d operation(s) to %s", len(patch), path)
            return result

    def preview(
        self,
        text: str,
        patch: Patch,
        filename: str = "<string>",
        *,
        context: Sequence[Document] = (),
    ) -> ApplyResult:
        """Run every step except the write on in-memory ``text``."""
        result = self._prepare(text, patch, filename, force=False, context=context)
        result.dry_run = True
        return result

    # -- internal ------------------------------------------------------------

    @contextmanager
    def _locked(self, path: Path) -> Iterator[None]:
        key = path.expanduser().resolve()
        with self._lock:
            entry = self._path_locks.get(key)
            if entry is None:
                entry = self._path_locks[key] = _PathLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._path_locks[key]

    def _prepare(
        self,
        text: str,
        patch: Patch,
        name: str,
        *,
        force: bool,
        context: Sequence[Document],
    ) -> ApplyResult:
        parsed = parse(text, name, max_size=self._max_size)
        fatal = next((d for d in parsed.diagnostics if d.fatal), None)
        if fatal is not None:
            return ApplyResult(path=name, success=False, error=fatal)

        try:
            new_tree = self._engine.apply(parsed.tree, patch)
        except TransformError as exc:
            logger.info("Patch rejected for %s: %s", name, exc.message)
            return ApplyResult(
                path=name, success=False, error=_error(exc.code, Category.TRANSFORM, exc.message)
            )

        diff = diff_trees(parsed.tree, new_tree, patch)
        new_text = new_tree.text
        report = self._pipeline.validate([Document(name=name, text=new_text), *context])
        if not report.success and not force:
            first = report.errors[0]
            return ApplyResult(
                path=name,
                success=False,
                diff=diff,
                report=report,
                error=first,
                new_text=new_text,
            )
        return ApplyResult(path=name, success=True, diff=diff, report=report, new_text=new_text)
