"""Runtime path resolution for ``require``d Lua modules."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from pathlib import Path

SYSTEM_RUNTIMES = (
    Path("/usr/share/nvim/runtime"),
    Path("/usr/local/share/nvim/runtime"),
)

# Modules provided by Neovim itself.
BUILTIN_MODULES = frozenset({"vim", "ffi", "jit", "bit", "string", "table", "math", "os", "io"})


def default_roots(config_roots: Path | Iterable[Path]) -> list[Path]:
    """Config roots, packpath/lazy plugin checkouts and the system runtime."""
    data_home = Path(os.environ.get("XDG_DATA_HOME", "~/.local/share")).expanduser()
    if isinstance(config_roots, Path):
        config_roots = [config_roots]
    roots = [Path(r).expanduser() for r in config_roots]
    for pattern in ("nvim/lazy/*", "nvim/site/pack/*/start/*", "nvim/site/pack/*/opt/*"):
        roots.extend(sorted(p for p in data_home.glob(pattern) if p.is_dir()))
    roots.extend(SYSTEM_RUNTIMES)
    return roots


class RuntimePathResolver:
    """Decides whether ``require("a.b")`` can be satisfied from runtime roots.

    A module resolves when one of ``<root>/lua/a/b.lua`` or
    ``<root>/lua/a/b/init.lua`` exists.
    """

    def __init__(self, roots: Iterable[Path], extra_modules: Sequence[str] = ()) -> None:
        self._roots = [Path(r) for r in roots]
        self._extra = frozenset(extra_modules)

    @classmethod
    def for_config(
        cls, config_roots: Path | Iterable[Path], extra_modules: Sequence[str] = ()
    ) -> RuntimePathResolver:
        return cls(default_roots(config_roots), extra_modules)

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    def __call__(self, module: str) -> bool:
        if not module or any(not part for part in module.split(".")):
            return False
        top = module.split(".", 1)[0]
        if top in BUILTIN_MODULES or module in self._extra or top in self._extra:
            return True
        relative = Path(*module.split("."))
        for root in self._roots:
            base = root / "lua" / relative
            if base.with_suffix(".lua").is_file() or (base / "init.lua").is_file():
                return True
        return False
