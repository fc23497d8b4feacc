"""Semantic checks of extracted entities against option/plugin metadata."""

from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import JsonValue

from nvimcfg.models import codes
from nvimcfg.models.config import ConfigEntities, OptionEntity, PluginDeclaration, ValueType
from nvimcfg.models.errors import Category, Diagnostic, Severity
from nvimcfg.models.patch import AddDependency, Patch, SetOption
from nvimcfg.semantic.catalog import MetadataProvider

# Assignments under vim.g are global variables, not options.
_VARIABLE_SCOPES = frozenset({"vim.g"})


class SemanticValidator:
    """Validates options and plugin specs against a metadata provider.

    Unknown names are warnings: user configuration may extend beyond the
    catalog. Wrong types and values outside the allowed set are errors.
    """

    def __init__(self, provider: MetadataProvider) -> None:
        self._provider = provider

    def validate(
        self, entities: ConfigEntities, declared: Iterable[str] | None = None
    ) -> list[Diagnostic]:
        """Check one document. ``declared`` names every plugin of the run."""
        known = set(declared) if declared is not None else {p.name for p in entities.plugins}
        diagnostics: list[Diagnostic] = []
        for option in entities.options:
            diagnostics.extend(self._check_option(option))
        for plugin in entities.plugins:
            diagnostics.extend(self._check_events(plugin))
            diagnostics.extend(self._check_known_dependencies(plugin, known))
        return diagnostics

    # -- options -------------------------------------------------------------

    def _check_option(self, option: OptionEntity) -> list[Diagnostic]:
        if option.scope in _VARIABLE_SCOPES:
            return []
        meta = self._provider.option(option.key)
        if meta is None:
            return [
                Diagnostic(
                    severity=Severity.WARNING,
                    category=Category.SEMANTIC,
                    code=codes.UNKNOWN_OPTION,
                    message=f"Unknown option '{option.key}'",
                    span=option.span,
                )
            ]

        diagnostics: list[Diagnostic] = []
        if meta.deprecated:
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    category=Category.SEMANTIC,
                    code=codes.DEPRECATED_OPTION,
                    message=f"Option '{option.key}' is deprecated",
                    span=option.span,
                )
            )

        value_type = option.value_type
        if value_type in (ValueType.EXPRESSION, ValueType.NIL):
            return diagnostics
        if value_type == ValueType.TABLE and meta.is_list and option.scope != "vim.o":
            return diagnostics
        if value_type != meta.type:
            fix = _coerce(option.value, meta.type)
            diagnostics.append(
                Diagnostic(
                    severity=Severity.ERROR,
                    category=Category.SEMANTIC,
                    code=codes.OPTION_TYPE_MISMATCH,
                    message=(
                        f"Option '{option.key}' expects a {meta.type}, "
                        f"got {value_type} {option.value!r}"
                    ),
                    span=option.span,
                    fix=(
                        Patch.of(SetOption(path=_option_path(option), value=fix))
                        if fix is not None
                        else None
                    ),
                )
            )
            return diagnostics

        if value_type == ValueType.STRING and isinstance(option.value, str):
            value = option.value
            if meta.valid_values is not None and value not in meta.valid_values:
                allowed = ", ".join(meta.valid_values)
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.ERROR,
                        category=Category.SEMANTIC,
                        code=codes.INVALID_OPTION_VALUE,
                        message=(
                            f"Value '{value}' is not valid for option '{option.key}' "
                            f"(expected one of: {allowed})"
                        ),
                        span=option.span,
                    )
                )
            elif meta.pattern is not None and re.fullmatch(meta.pattern, value) is None:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.ERROR,
                        category=Category.SEMANTIC,
                        code=codes.INVALID_OPTION_VALUE,
                        message=(
                            f"Value '{value}' does not match the format of option "
                            f"'{option.key}' ({meta.pattern})"
                        ),
                        span=option.span,
                    )
                )
        return diagnostics

    # -- plugins -------------------------------------------------------------

    def _check_events(self, plugin: PluginDeclaration) -> list[Diagnostic]:
        valid = self._provider.valid_events
        if not valid:
            return []
        diagnostics: list[Diagnostic] = []
        for event in plugin.events:
            # "BufEnter *.lua" / "User LazyDone": the event name is the first word
            name = event.split()[0] if event.strip() else event
            if name not in valid:
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        category=Category.SEMANTIC,
                        code=codes.UNKNOWN_EVENT,
                        message=f"Plugin '{plugin.name}' uses unknown load event '{event}'",
                        span=plugin.span,
                    )
                )
        return diagnostics

    def _check_known_dependencies(
        self, plugin: PluginDeclaration, declared: set[str]
    ) -> list[Diagnostic]:
        meta = self._provider.plugin(plugin.name)
        if meta is None:
            return []
        diagnostics: list[Diagnostic] = []
        for dependency in meta.dependencies:
            if dependency in plugin.dependencies or dependency in declared:
                continue
            diagnostics.append(
                Diagnostic(
                    severity=Severity.WARNING,
                    category=Category.SEMANTIC,
                    code=codes.MISSING_KNOWN_DEPENDENCY,
                    message=f"Plugin '{plugin.name}' requires '{dependency}', which is not declared",
                    span=plugin.span,
                    fix=Patch.of(AddDependency(plugin=plugin.name, dependency=dependency)),
                )
            )
        return diagnostics


def _option_path(option: OptionEntity) -> str:
    return f"{option.scope}.{option.key}"


def _coerce(value: JsonValue, target: ValueType) -> JsonValue | None:
    """Best-effort conversion of a mistyped literal, used for suggested fixes."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if target == ValueType.BOOLEAN and text in ("true", "false"):
        return text == "true"
    if target == ValueType.NUMBER:
        try:
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                return None
    return None
