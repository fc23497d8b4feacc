"""Patch/transform engine and text diff."""

from nvimcfg.transform.diff import DiffLine, Hunk, TextDiff, diff_text, diff_trees
from nvimcfg.transform.engine import (
    PatchEngine,
    TransformError,
    TransformErrorKind,
    apply_patch,
)

__all__ = [
    "DiffLine",
    "Hunk",
    "PatchEngine",
    "TextDiff",
    "TransformError",
    "TransformErrorKind",
    "apply_patch",
    "diff_text",
    "diff_trees",
]
