"""Persistence: atomic writes with backups."""

from nvimcfg.storage.writer import (
    AtomicWriteError,
    AtomicWriter,
    FileAtomicWriter,
    restore_from_backup,
)

__all__ = ["AtomicWriteError", "AtomicWriter", "FileAtomicWriter", "restore_from_backup"]
