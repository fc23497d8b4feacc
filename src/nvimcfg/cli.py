"""Command-line entry point: ``nvimcfg validate|order|diff|apply``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import JsonValue

from nvimcfg.models.errors import ValidationReport
from nvimcfg.models.patch import (
    AddDependency,
    AddPlugin,
    Patch,
    PatchOperation,
    PluginSpec,
    RemovePlugin,
    SetOption,
)
from nvimcfg.service.apply import ApplyOrchestrator, ApplyResult
from nvimcfg.service.workspace import load_documents, read_document
from nvimcfg.settings import Settings
from nvimcfg.validation.pipeline import ValidationPipeline
from nvimcfg.validation.runtime import RuntimePathResolver

logger = logging.getLogger("nvimcfg.cli")


def parse_value(raw: str) -> JsonValue:
    """``--set`` values: JSON literals (``4``, ``true``, ``["a"]``), ``nil``,
    anything else as a plain string."""
    if raw == "nil":
        return None
    try:
        value: JsonValue = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    return value


def _split_pair(raw: str, flag: str) -> tuple[str, str]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"{flag} expects KEY=VALUE, got '{raw}'")
    return key, value


def build_patch(args: argparse.Namespace) -> Patch:
    operations: list[PatchOperation] = []
    for raw in args.set or []:
        key, value = _split_pair(raw, "--set")
        operations.append(SetOption(path=key, value=parse_value(value)))
    for name in args.add_plugin or []:
        operations.append(AddPlugin(spec=PluginSpec(name=name)))
    for raw in args.add_dependency or []:
        plugin, dependency = _split_pair(raw, "--add-dependency")
        operations.append(AddDependency(plugin=plugin, dependency=dependency))
    for name in args.remove_plugin or []:
        operations.append(RemovePlugin(name=name))
    return Patch(operations=operations)


def _roots(args: argparse.Namespace, settings: Settings) -> list[Path]:
    return [Path(r) for r in args.roots] if args.roots else [settings.expanded_config_root]


def _print_report(report: ValidationReport, as_json: bool) -> None:
    if as_json:
        print(report.model_dump_json(indent=2))
        return
    for diagnostic in report.diagnostics:
        print(diagnostic.format())
    for stage in report.stages:
        suffix = f" ({stage.reason})" if stage.reason else ""
        print(f"{stage.stage}: {stage.status}{suffix}", file=sys.stderr)


def _print_apply(result: ApplyResult, as_json: bool) -> None:
    if as_json:
        print(result.model_dump_json(indent=2, exclude={"new_text"}))
        return
    if result.diff is not None and not result.diff.is_empty:
        print(result.diff.render(), end="")
    if result.error is not None:
        print(result.error.format(), file=sys.stderr)
    if result.backup_path:
        print(f"Backup written to {result.backup_path}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    roots = _roots(args, settings)
    resolver = RuntimePathResolver.for_config(roots) if args.runtime else None
    pipeline = ValidationPipeline.from_settings(settings, resolver)
    report = pipeline.validate(load_documents(roots))
    _print_report(report, args.json)
    return 0 if report.success else 1


def cmd_order(args: argparse.Namespace, settings: Settings) -> int:
    pipeline = ValidationPipeline.from_settings(settings)
    report = pipeline.validate(load_documents(_roots(args, settings)))
    if args.json:
        print(json.dumps({"load_order": report.load_order}))
    elif report.load_order is not None:
        for name in report.load_order:
            print(name)
    if report.load_order is None:
        for diagnostic in report.diagnostics:
            if diagnostic.is_error:
                print(diagnostic.format(), file=sys.stderr)
        return 1
    return 0


def cmd_diff(args: argparse.Namespace, settings: Settings) -> int:
    document = read_document(Path(args.file))
    if document.error is not None:
        print(f"Cannot read {args.file}: {document.error}", file=sys.stderr)
        return 1
    orchestrator = ApplyOrchestrator.from_settings(settings)
    result = orchestrator.preview(document.text, build_patch(args), document.name)
    _print_apply(result, args.json)
    return 0 if result.success else 1


def cmd_apply(args: argparse.Namespace, settings: Settings) -> int:
    target = Path(args.file)
    context = []
    if args.context:
        resolved = target.resolve()
        context = [
            d for d in load_documents([Path(r) for r in args.context])
            if Path(d.name).resolve() != resolved
        ]
    orchestrator = ApplyOrchestrator.from_settings(settings)
    result = orchestrator.apply(
        target,
        build_patch(args),
        dry_run=True if args.dry_run else None,
        force=args.force,
        context=context,
    )
    _print_apply(result, args.json)
    return 0 if result.success else 1


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_patch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", help="Lua file to edit")
    parser.add_argument("--set", action="append", metavar="KEY=VALUE",
                        help="Set an option, e.g. tabstop=4 or vim.opt.number=true")
    parser.add_argument("--add-plugin", action="append", metavar="NAME",
                        help="Declare a plugin")
    parser.add_argument("--remove-plugin", action="append", metavar="NAME",
                        help="Remove a plugin declaration")
    parser.add_argument("--add-dependency", action="append", metavar="PLUGIN=DEP",
                        help="Add a dependency to a plugin spec")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvimcfg",
        description="Validate, order and edit Neovim Lua configuration",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate every Lua file under the roots")
    validate.add_argument("roots", nargs="*", help="Config roots (default: config_root setting)")
    validate.add_argument("--runtime", action="store_true",
                          help="Also check that required modules exist on the runtime path")
    validate.add_argument("--json", action="store_true", help="Print the report as JSON")
    validate.set_defaults(handler=cmd_validate)

    order = sub.add_parser("order", help="Print the plugin load order")
    order.add_argument("roots", nargs="*", help="Config roots (default: config_root setting)")
    order.add_argument("--json", action="store_true", help="Print the order as JSON")
    order.set_defaults(handler=cmd_order)

    diff = sub.add_parser("diff", help="Show the diff a patch would produce")
    _add_patch_arguments(diff)
    diff.set_defaults(handler=cmd_diff)

    apply = sub.add_parser("apply", help="Apply a patch to a file")
    _add_patch_arguments(apply)
    apply.add_argument("--dry-run", action="store_true", help="Show the diff without writing")
    apply.add_argument("--force", action="store_true", help="Write even if validation fails")
    apply.add_argument("--context", action="append", metavar="ROOT",
                       help="Validate together with the Lua files under ROOT")
    apply.set_defaults(handler=cmd_apply)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Running %s", args.command)
    try:
        patch_ops = build_patch(args) if args.command in ("diff", "apply") else None
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
    if patch_ops is not None and not patch_ops.operations:
        parser.error("no patch operations given")
    return int(args.handler(args, settings))


if __name__ == "__main__":
    sys.exit(main())
