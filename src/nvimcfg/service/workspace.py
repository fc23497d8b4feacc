"""Config-tree discovery: turns config roots into validation documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from nvimcfg.validation.pipeline import Document

logger = logging.getLogger("nvimcfg.workspace")


def discover(roots: Iterable[Path]) -> list[Path]:
    """All ``*.lua`` files beneath each root, sorted per root.

    A root that is itself a file is taken as-is. Files reachable from more
    than one root are listed once, at their first position.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        root = root.expanduser()
        candidates = [root] if root.is_file() else sorted(root.rglob("*.lua"))
        for path in candidates:
            key = path.resolve()
            if key in seen or not path.is_file():
                continue
            seen.add(key)
            found.append(path)
    logger.debug("Discovered %d Lua file(s)", len(found))
    return found


def read_document(path: Path) -> Document:
    """Read one file; read failures are carried on the document, not raised."""
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            return Document(name=str(path), text=handle.read())
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return Document(name=str(path), error=str(exc))


def load_documents(roots: Iterable[Path]) -> list[Document]:
    return [read_document(path) for path in discover(roots)]
