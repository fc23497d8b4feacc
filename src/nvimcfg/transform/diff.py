"""Line-based LCS diff with unified-diff rendering.

The diff is computed on printed text, so it is independent of how the new
text was produced. Hunks may carry annotations naming the patch operations
whose anchor (option key, plugin name) appears on a changed line.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, computed_field

from nvimcfg.models.patch import Patch
from nvimcfg.syntax.parser import SyntaxTree

CONTEXT_LINES = 3
NO_NEWLINE_MARKER = "\\ No newline at end of file"


class DiffLine(BaseModel):
    """One hunk line; ``text`` keeps its line ending (absent on a final line)."""

    op: Literal[" ", "-", "+"]
    text: str

    def render(self) -> str:
        if self.text.endswith("\n"):
            return self.op + self.text
        return f"{self.op}{self.text}\n{NO_NEWLINE_MARKER}\n"


class Hunk(BaseModel):
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = []
    annotations: list[str] = []

    @property
    def header(self) -> str:
        return f"@@ -{_range(self.old_start, self.old_count)} +{_range(self.new_start, self.new_count)} @@"

    @property
    def changed(self) -> list[DiffLine]:
        return [line for line in self.lines if line.op != " "]

    def render(self) -> str:
        return self.header + "\n" + "".join(line.render() for line in self.lines)


class TextDiff(BaseModel):
    """Unified diff between two texts; ``apply(old) == new`` always holds."""

    old_name: str = "a"
    new_name: str = "b"
    hunks: list[Hunk] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def additions(self) -> int:
        return sum(1 for h in self.hunks for line in h.lines if line.op == "+")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def deletions(self) -> int:
        return sum(1 for h in self.hunks for line in h.lines if line.op == "-")

    @property
    def is_empty(self) -> bool:
        return not self.hunks

    def render(self) -> str:
        if not self.hunks:
            return ""
        header = f"--- a/{self.old_name}\n+++ b/{self.new_name}\n"
        return header + "".join(h.render() for h in self.hunks)

    def __str__(self) -> str:
        return self.render()

    def apply(self, old: str) -> str:
        """Reconstruct the new text from ``old``.

        Raises ``ValueError`` if ``old`` does not match the diff's context.
        """
        lines = split_lines(old)
        out: list[str] = []
        cursor = 0
        for hunk in self.hunks:
            start = hunk.old_start - 1 if hunk.old_count else hunk.old_start
            if start < cursor:
                raise ValueError("Overlapping hunks")
            out.extend(lines[cursor:start])
            position = start
            for line in hunk.lines:
                if line.op == "+":
                    out.append(line.text)
                    continue
                if position >= len(lines) or lines[position] != line.text:
                    raise ValueError(f"Diff does not apply at line {position + 1}")
                if line.op == " ":
                    out.append(line.text)
                position += 1
            cursor = position
        out.extend(lines[cursor:])
        return "".join(out)

    def annotate(self, patch: Patch) -> TextDiff:
        """Return a copy whose hunks name the operations they carry."""
        hunks = []
        for hunk in self.hunks:
            changed = [line.text for line in hunk.changed]
            names = [
                op.describe()
                for op in patch.operations
                if op.anchor and any(op.anchor in text for text in changed)
            ]
            hunks.append(hunk.model_copy(update={"annotations": names}))
        return self.model_copy(update={"hunks": hunks})


def _range(start: int, count: int) -> str:
    return str(start) if count == 1 else f"{start},{count}"


def split_lines(text: str) -> list[str]:
    """Split on "\\n" only, keeping line endings (a "\\r" stays with its line)."""
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    return lines if lines[-1] else lines[:-1]


# ---------------------------------------------------------------------------
# LCS
# ---------------------------------------------------------------------------

_Entry = tuple[str, int, int]  # (op, old index, new index)


def _lcs_script(old: list[str], new: list[str]) -> list[_Entry]:
    """Edit script from a longest common subsequence of ``old`` and ``new``.

    Common prefix and suffix are matched directly; the dynamic programme
    only runs over the differing middle.
    """
    prefix = 0
    while prefix < len(old) and prefix < len(new) and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < len(old) - prefix
        and suffix < len(new) - prefix
        and old[len(old) - 1 - suffix] == new[len(new) - 1 - suffix]
    ):
        suffix += 1

    a = old[prefix : len(old) - suffix]
    b = new[prefix : len(new) - suffix]
    n, m = len(a), len(b)
    # lengths[i][j] = LCS length of a[i:] and b[j:]
    lengths = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = lengths[i], lengths[i + 1]
        for j in range(m - 1, -1, -1):
            if a[i] == b[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    script: list[_Entry] = [(" ", k, k) for k in range(prefix)]
    i = j = 0
    while i < n or j < m:
        if i < n and j < m and a[i] == b[j]:
            script.append((" ", prefix + i, prefix + j))
            i += 1
            j += 1
        elif i < n and (j >= m or lengths[i + 1][j] >= lengths[i][j + 1]):
            script.append(("-", prefix + i, prefix + j))
            i += 1
        else:
            script.append(("+", prefix + i, prefix + j))
            j += 1
    for k in range(suffix):
        script.append((" ", len(old) - suffix + k, len(new) - suffix + k))
    return script


def diff_text(
    old: str,
    new: str,
    *,
    old_name: str = "a",
    new_name: str | None = None,
    context: int = CONTEXT_LINES,
) -> TextDiff:
    """Compute the unified diff between two texts."""
    old_lines = split_lines(old)
    new_lines = split_lines(new)
    script = _lcs_script(old_lines, new_lines)
    changes = [k for k, entry in enumerate(script) if entry[0] != " "]

    groups: list[list[int]] = []
    for k in changes:
        # gaps of up to 2 * context unchanged lines share one hunk
        if groups and k - groups[-1][-1] <= 2 * context + 1:
            groups[-1].append(k)
        else:
            groups.append([k])

    hunks: list[Hunk] = []
    for group in groups:
        lo = max(0, group[0] - context)
        hi = min(len(script), group[-1] + context + 1)
        entries = script[lo:hi]
        lines = [
            DiffLine(op=op, text=new_lines[j] if op == "+" else old_lines[i])  # type: ignore[arg-type]
            for op, i, j in entries
        ]
        old_count = sum(1 for line in lines if line.op != "+")
        new_count = sum(1 for line in lines if line.op != "-")
        _, old_pos, new_pos = script[lo]
        hunks.append(
            Hunk(
                old_start=old_pos + 1 if old_count else old_pos,
                old_count=old_count,
                new_start=new_pos + 1 if new_count else new_pos,
                new_count=new_count,
                lines=lines,
            )
        )
    return TextDiff(old_name=old_name, new_name=new_name or old_name, hunks=hunks)


def diff_trees(
    old: SyntaxTree, new: SyntaxTree, patch: Patch | None = None, *, context: int = CONTEXT_LINES
) -> TextDiff:
    """Diff the printed text of two trees, annotated with ``patch`` if given."""
    diff = diff_text(old.text, new.text, old_name=old.filename, new_name=new.filename, context=context)
    return diff.annotate(patch) if patch is not None else diff
