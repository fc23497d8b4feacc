"""Patch operations: pure data describing edits to a configuration tree."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, JsonValue


class PluginSpec(BaseModel):
    """A plugin declaration to insert: lazy.nvim-style table spec."""

    name: str
    dependencies: list[str] = []
    event: list[str] = []
    enabled: bool | None = None
    opts: dict[str, JsonValue] | None = None


class SetOption(BaseModel):
    """Set ``path`` (dotted option key) to ``value``, inserting it if absent."""

    op: Literal["set_option"] = "set_option"
    path: str
    value: JsonValue

    @property
    def anchor(self) -> str:
        return self.path.rsplit(".", 1)[-1]

    def describe(self) -> str:
        return f"set_option({self.path!r}, {self.value!r})"


class AddPlugin(BaseModel):
    """Declare a new plugin after the last existing declaration."""

    op: Literal["add_plugin"] = "add_plugin"
    spec: PluginSpec

    @property
    def anchor(self) -> str:
        return self.spec.name

    def describe(self) -> str:
        return f"add_plugin({self.spec.name!r})"


class RemovePlugin(BaseModel):
    """Remove a plugin declaration by name."""

    op: Literal["remove_plugin"] = "remove_plugin"
    name: str

    @property
    def anchor(self) -> str:
        return self.name

    def describe(self) -> str:
        return f"remove_plugin({self.name!r})"


class AddDependency(BaseModel):
    """Add ``dependency`` to the dependency list of ``plugin``."""

    op: Literal["add_dependency"] = "add_dependency"
    plugin: str
    dependency: str

    @property
    def anchor(self) -> str:
        return self.dependency

    def describe(self) -> str:
        return f"add_dependency({self.plugin!r}, {self.dependency!r})"


class ReplaceNode(BaseModel):
    """Replace the node at ``node_path`` with the expression or statement in ``text``."""

    op: Literal["replace_node"] = "replace_node"
    node_path: tuple[int, ...]
    text: str

    @property
    def anchor(self) -> str:
        return self.text.strip().splitlines()[0] if self.text.strip() else ""

    def describe(self) -> str:
        return f"replace_node({list(self.node_path)}, {self.text!r})"


PatchOperation = Annotated[
    SetOption | AddPlugin | RemovePlugin | AddDependency | ReplaceNode,
    Field(discriminator="op"),
]


class Patch(BaseModel):
    """Ordered sequence of edits, applied all-or-nothing."""

    operations: list[PatchOperation] = []

    @classmethod
    def of(cls, *operations: PatchOperation) -> Patch:
        return cls(operations=list(operations))

    def then(self, operation: PatchOperation) -> Patch:
        """Return a new patch with ``operation`` appended."""
        return Patch(operations=[*self.operations, operation])

    def __len__(self) -> int:
        return len(self.operations)
