"""Atomic file writers used by the apply orchestrator."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

logger = logging.getLogger("nvimcfg.storage")


class AtomicWriteError(Exception):
    """Raised when a file could not be backed up or replaced.

    The target file is unchanged when this is raised.
    """

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class AtomicWriter(ABC):
    @abstractmethod
    def write_atomic(self, path: Path, content: str) -> Path | None:
        """Replace ``path`` with ``content``; return the backup path, if any."""


class FileAtomicWriter(AtomicWriter):
    """Backs up the current file, then writes a temp file and renames it.

    The temp file is created in the target's directory so the final
    ``os.replace`` stays on one filesystem. Backups are named
    ``<name>.<timestamp>.backup`` and go to ``backup_dir`` or, when unset,
    next to the target.
    """

    def __init__(self, backup_dir: Path | None = None, *, backup: bool = True) -> None:
        self._backup_dir = backup_dir.expanduser() if backup_dir is not None else None
        self._backup = backup

    def write_atomic(self, path: Path, content: str) -> Path | None:
        backup_path = self.create_backup(path) if self._backup and path.exists() else None
        try:
            fd, temp_name = tempfile.mkstemp(
                dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
            )
        except OSError as exc:
            raise AtomicWriteError(path, f"cannot create temp file: {exc}") from exc

        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            if path.exists():
                shutil.copymode(path, temp_path)
            os.replace(temp_path, path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise AtomicWriteError(path, f"write failed: {exc}") from exc
        logger.debug("Atomic write completed: %s", path)
        return backup_path

    def create_backup(self, path: Path) -> Path:
        """Copy ``path`` to a timestamped backup and return its location."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        directory = self._backup_dir or path.parent
        backup_path = directory / f"{path.name}.{timestamp}.backup"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, backup_path)
        except OSError as exc:
            raise AtomicWriteError(path, f"backup failed: {exc}") from exc
        logger.info("Created backup: %s", backup_path)
        return backup_path


def restore_from_backup(backup_path: Path, target: Path) -> None:
    """Copy a backup over ``target``. Raises :class:`AtomicWriteError`."""
    try:
        shutil.copy2(backup_path, target)
    except OSError as exc:
        raise AtomicWriteError(target, f"restore failed: {exc}") from exc
    logger.info("Restored %s from %s", target, backup_path)
