"""repogen pipeline orchestrator and command-line entry point.

Implements the validate → plan → apply flow:

validate -- Load the specification and check its structure.
plan     -- Select templates, build the context and compute the plan.
            Nothing is written.
apply    -- Execute the plan under a conflict policy and write the manifest.

Usage::

    repogen plan  --spec repo.json --out ./acme
    repogen apply --spec repo.json --out ./acme --yes
    python -m repogen.pipeline validate --spec repo.json --strict --format json
"""

from __future__ import annotations

import argparse
import sys
import traceback
from pathlib import Path
from typing import Any, NoReturn

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from repogen import __version__
from repogen.config import Config
from repogen.errors import ConflictError, InternalError, RepogenError, UsageError
from repogen.scaffolder.applier import ApplyResult, ConflictPolicy, PlanApplier, PromptFn
from repogen.scaffolder.planner import Plan, build_plan
from repogen.scaffolder.selector import select_templates
from repogen.spec import Specification, load_specification, validate_spec
from repogen.utils import (
    console,
    dump_json,
    err_console,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
)

COMMANDS = ("validate", "plan", "apply", "help")


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Drives one validate/plan/apply run.

    Every run starts from a freshly loaded specification and a freshly
    scanned template library; nothing is cached between runs.

    Attributes:
        config: Library location, template suffix and manifest settings.
        strict: Strict validation (unknown keys, placeholders, unused params).
        out: Console used for progress messages.
    """

    def __init__(self, config: Config | None = None, strict: bool = False, out: Console | None = None) -> None:
        self.config = config or Config()
        self.strict = strict
        self.out = out or console

    def validate(self, spec_path: str | Path) -> tuple[Specification, str]:
        """Load and validate a specification file.

        Returns:
            ``(spec, spec_hash)``.
        """
        raw, spec_hash = load_specification(spec_path)
        validate_spec(raw, strict=self.strict, spec_version=self.config.spec_version)
        return Specification.from_raw(raw), spec_hash

    def plan(
        self,
        spec: Specification,
        output_root: str | Path,
        allow_paths: list[str] | None = None,
    ) -> Plan:
        """Select templates for *spec* and build the plan against *output_root*."""
        templates = select_templates(
            spec.archetype.components,
            self.config.templates_dir,
            archetype_type=spec.archetype.type,
            variant=spec.archetype.variant,
            suffix=self.config.template_suffix,
        )
        return build_plan(
            spec,
            templates,
            output_root,
            allow_paths=allow_paths,
            strict=self.strict,
            suffix=self.config.template_suffix,
        )

    def apply(
        self,
        plan: Plan,
        spec: Specification,
        spec_hash: str,
        output_root: str | Path,
        policy: ConflictPolicy | str = ConflictPolicy.FAIL,
        force: bool = False,
        prompt: PromptFn | None = None,
    ) -> ApplyResult:
        """Execute *plan* and write the manifest."""
        applier = PlanApplier(self.config)
        return applier.apply(
            plan, output_root, spec, spec_hash, policy=policy, force=force, prompt=prompt
        )


# ---------------------------------------------------------------------------
# Report rendering
# ---------------------------------------------------------------------------


def _print_plan(plan: Plan, out: Console) -> None:
    print_header("Plan", out)
    conflicts = set(plan.conflicts)
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Path")
    table.add_column("Template", style="dim")
    table.add_column("Status")
    for op in plan.write_file:
        status = "[yellow]exists[/yellow]" if op.path in conflicts else "[green]new[/green]"
        table.add_row(escape(op.path), escape(op.template), status)
    out.print(table)
    print_summary_table(
        {
            "Directories": plan.summary.mkdir,
            "Files": plan.summary.write_file,
            "Conflicts": plan.summary.conflicts,
        },
        title="Plan summary",
        out=out,
    )


def _print_apply(result: ApplyResult, output_root: str, out: Console) -> None:
    for entry in result.written:
        out.print(f"  [green]+[/green] {escape(entry.path)}")
    for rel in result.skipped:
        out.print(f"  [yellow]~[/yellow] {escape(rel)} (skipped)")
    print_summary_table(
        {
            "Output root": output_root,
            "Written": len(result.written),
            "Skipped": len(result.skipped),
            "Manifest": str(result.manifest_path),
        },
        title="Apply summary",
        out=out,
    )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


class _ArgumentParser(argparse.ArgumentParser):
    """Reports bad arguments as ``UsageError`` so they share the error output path."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="repogen",
        description="repogen -- plan and apply repository scaffolds from a JSON specification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  repogen validate --spec repo.json --strict\n"
            "  repogen plan --spec repo.json --out ./acme --allow-path 'src/**'\n"
            "  repogen apply --spec repo.json --out ./acme --yes\n"
            "  repogen apply --spec repo.json --out ./acme --yes --allow-existing-root "
            "--conflict overwrite --force\n"
        ),
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="plan",
        choices=COMMANDS,
        help="Subcommand to run (default: plan)",
    )
    parser.add_argument("--spec", "-s", help="Path to the JSON specification")
    parser.add_argument("--out", "-o", help="Output root directory")
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--conflict",
        choices=[p.value for p in ConflictPolicy],
        default=ConflictPolicy.FAIL.value,
        help="Policy for destinations that already exist (default: fail)",
    )
    parser.add_argument(
        "--allow-path",
        action="append",
        default=[],
        metavar="GLOB",
        help="Only permit destinations matching GLOB (repeatable)",
    )
    parser.add_argument("--plan-out", metavar="PATH", help="Also write the plan JSON to PATH")
    parser.add_argument("--yes", action="store_true", help="Confirm apply")
    parser.add_argument("--force", action="store_true", help="Required with --conflict overwrite")
    parser.add_argument(
        "--allow-existing-root",
        action="store_true",
        help="Permit apply into an output root that already exists",
    )
    parser.add_argument("--strict", action="store_true", help="Enable strict validation")
    parser.add_argument("--schema", metavar="PATH", help="Schema hint (accepted and ignored)")
    parser.add_argument(
        "--templates",
        metavar="DIR",
        help="Template library root (default: $REPOGEN_TEMPLATES_DIR or the bundled library)",
    )
    parser.add_argument("--version", action="version", version=f"repogen {__version__}")
    return parser


def check_usage(args: argparse.Namespace) -> None:
    """Flag checks that must pass before the specification is read."""
    command = args.command
    if not args.spec:
        raise UsageError(f"'{command}' requires --spec")
    if command == "validate":
        return
    if not args.out:
        raise UsageError(f"'{command}' requires --out")
    if command == "apply" and not args.yes:
        raise UsageError("'apply' requires --yes to confirm filesystem changes")
    if args.conflict == ConflictPolicy.OVERWRITE.value and not args.force:
        raise UsageError("Conflict policy 'overwrite' requires --force")

    out = Path(args.out)
    if out.exists() and not out.is_dir():
        raise UsageError(f"Output root exists and is not a directory: {out}")
    if command == "apply" and out.is_dir() and not args.allow_existing_root:
        raise UsageError(
            f"Output root already exists: {out} (pass --allow-existing-root to apply into it)"
        )


def _interactive_prompt(out: Console) -> PromptFn | None:
    if not sys.stdin or not sys.stdin.isatty():
        return None

    def ask(rel: str) -> bool:
        return Confirm.ask(f"Overwrite existing [bold]{escape(rel)}[/bold]?", default=False, console=out)

    return ask


def run(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        json_requested = _json_requested(argv)
        if not json_requested:
            parser.print_usage(sys.stderr)
        return _report_error(exc, json_requested, {"command": None})

    if args.command == "help":
        parser.print_help()
        return 0

    json_mode = args.format == "json"
    out = err_console if json_mode else console
    payload: dict[str, Any] = {"ok": True, "command": args.command}
    plan: Plan | None = None

    try:
        check_usage(args)
        config = Config.from_env(templates_dir=Path(args.templates) if args.templates else None)
        pipeline = Pipeline(config, strict=args.strict, out=out)

        spec, spec_hash = pipeline.validate(args.spec)
        payload["specHash"] = spec_hash
        if args.command == "validate":
            if not json_mode:
                print_success(f"Specification is valid: {args.spec}", out)
                out.print(f"  sha256 {spec_hash}", highlight=False)
            else:
                sys.stdout.write(dump_json(payload))
            return 0

        plan = pipeline.plan(spec, args.out, allow_paths=args.allow_path or None)
        payload["plan"] = plan.to_dict()
        if args.plan_out:
            save_json(plan.to_dict(), args.plan_out)
        if not json_mode:
            _print_plan(plan, out)

        if plan.conflicts and args.conflict == ConflictPolicy.FAIL.value:
            raise ConflictError(
                f"{len(plan.conflicts)} destination(s) already exist: {', '.join(plan.conflicts)}",
                path=plan.conflicts[0],
            )
        if plan.conflicts and not json_mode:
            print_warning(
                f"{len(plan.conflicts)} existing destination(s) will be handled by "
                f"--conflict {args.conflict}",
                out,
            )

        if args.command == "plan":
            if json_mode:
                sys.stdout.write(dump_json(payload))
            return 0

        prompt = _interactive_prompt(out) if args.conflict == ConflictPolicy.PROMPT.value else None
        result = pipeline.apply(
            plan,
            spec,
            spec_hash,
            args.out,
            policy=args.conflict,
            force=args.force,
            prompt=prompt,
        )
        if json_mode:
            payload["written"] = [f.model_dump(by_alias=True) for f in result.written]
            payload["skipped"] = result.skipped
            payload["manifest"] = config.manifest_relpath()
            sys.stdout.write(dump_json(payload))
        else:
            _print_apply(result, args.out, out)
            print_success("Apply completed.", out)
        return 0

    except RepogenError as exc:
        return _report_error(exc, json_mode, payload)
    except Exception as exc:  # noqa: BLE001 -- reported as an internal error
        if not json_mode:
            err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        return _report_error(InternalError(f"Internal error: {exc}"), json_mode, payload)


def _json_requested(argv: list[str]) -> bool:
    """Whether *argv* asks for JSON output, even if it does not parse."""
    for index, arg in enumerate(argv):
        if arg == "--format=json":
            return True
        if arg == "--format" and argv[index + 1 : index + 2] == ["json"]:
            return True
    return False


def _report_error(exc: RepogenError, json_mode: bool, payload: dict[str, Any]) -> int:
    if json_mode:
        failure: dict[str, Any] = {"ok": False, "command": payload["command"], "error": exc.to_dict()}
        if "plan" in payload:
            failure["plan"] = payload["plan"]
        sys.stdout.write(dump_json(failure))
    else:
        print_error(exc.message)
    return exc.exit_code


def main() -> None:
    """CLI entry point for ``repogen`` and ``python -m repogen.pipeline``."""
    sys.exit(run())


if __name__ == "__main__":
    main()
