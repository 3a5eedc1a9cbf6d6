"""CLI commands for synthesizing transport-rule scripts."""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from ..config.runtime import get_settings
from ..domain.assignments import Assignment, GroupingStrategy, ScriptType
from ..domain.grouping_engine import select_strategy
from ..models.requests import DomainWideOptions, SynthesisRequest
from ..wiring import build_synthesis_service
from .validation import validate_synthesis_request


def load_assignments_from_file(path: Path) -> list[Assignment]:
    """Load assignments from a JSON file. Exits on missing file or invalid JSON/schema."""
    if not path.exists():
        print(f"Error: assignments file not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            print(f"Error: invalid JSON in {path}: {e}", file=sys.stderr)
            sys.exit(1)
    if not isinstance(raw, list):
        print("Error: JSON file must contain a list of assignment objects.", file=sys.stderr)
        sys.exit(1)
    assignments: list[Assignment] = []
    for i, item in enumerate(raw):
        try:
            assignments.append(Assignment.model_validate(item))
        except ValidationError as e:
            print(f"Error: invalid assignment at index {i}: {e}", file=sys.stderr)
            sys.exit(1)
    return assignments


def _write_output(text: str, out: Path | None) -> None:
    if out is None:
        sys.stdout.write(text)
        return
    out.write_text(text, encoding="utf-8")
    print(f"Wrote {out}", file=sys.stderr)


def _report(response) -> None:
    summary = response.summary
    print(
        f"Run {response.run_id}: {summary.get('rules', 0)} rule(s) in "
        f"{summary.get('groups', 0)} group(s), {summary.get('skipped', 0)} skipped",
        file=sys.stderr,
    )
    for skipped in response.skipped:
        who = ", ".join(skipped.addresses) or skipped.detail
        print(f"  skipped ({skipped.reason.value}): {who}", file=sys.stderr)
    for warning in response.warnings:
        print(f"  warning: {warning}", file=sys.stderr)


def _build_request(args: argparse.Namespace) -> SynthesisRequest:
    return SynthesisRequest(
        assignments=load_assignments_from_file(args.file),
        script_type=ScriptType(args.script_type or get_settings().default_script_type),
        strategy=GroupingStrategy(args.strategy) if args.strategy else None,
        selected_user_ids=getattr(args, "users", None),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Synthesize signature/banner transport rules")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log synthesis events to stderr")
    parser.add_argument(
        "--stable-ids",
        action="store_true",
        help="Derive rule names and markers from content hashes instead of the run timestamp",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    synth_parser = subparsers.add_parser("synthesize", help="Generate the rule creation script")
    synth_parser.add_argument("--file", type=Path, required=True, help="JSON list of assignments")
    synth_parser.add_argument(
        "--script-type",
        choices=[t.value for t in ScriptType],
        default=None,
        help="Content to emit rules for (default: SIGSTREAM_DEFAULT_SCRIPT_TYPE, else both)",
    )
    synth_parser.add_argument(
        "--strategy",
        choices=[s.value for s in GroupingStrategy],
        default=None,
        help="Grouping strategy (default: chosen from per-recipient analytics setting)",
    )
    synth_parser.add_argument("--users", nargs="+", default=None, help="Restrict to these user ids")
    synth_parser.add_argument("--redeploy", action="store_true", help="Prefix the script with a full cleanup")
    synth_parser.add_argument("--out", type=Path, default=None, help="Write the script here instead of stdout")

    domain_parser = subparsers.add_parser("domain-wide", help="Generate a single domain-wide banner rule")
    domain_parser.add_argument("--domain", required=True, help="Sender domain, e.g. example.com")
    domain_parser.add_argument("--banner-file", type=Path, required=True, help="Banner HTML file")
    domain_parser.add_argument("--banner-id", default=None, help="Banner id (enables click tracking)")
    domain_parser.add_argument("--click-url", default=None, help="Banner click-through URL")
    domain_parser.add_argument("--banner-name", default=None, help="Banner display name")
    domain_parser.add_argument("--out", type=Path, default=None, help="Write the script here instead of stdout")

    cleanup_parser = subparsers.add_parser("cleanup", help="Generate the remove-all-managed-rules script")
    cleanup_parser.add_argument("--no-confirm", action="store_true", help="Do not prompt before deleting")
    cleanup_parser.add_argument("--out", type=Path, default=None, help="Write the script here instead of stdout")

    validate_parser = subparsers.add_parser("validate", help="Check an assignments file without emitting")
    validate_parser.add_argument("--file", type=Path, required=True, help="JSON list of assignments")
    validate_parser.add_argument(
        "--script-type",
        choices=[t.value for t in ScriptType],
        default=None,
    )
    validate_parser.add_argument("--strategy", choices=[s.value for s in GroupingStrategy], default=None)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    svc = build_synthesis_service(stable_ids=args.stable_ids)

    if args.command == "synthesize":
        response = svc.synthesize(_build_request(args), redeploy=args.redeploy)
        _report(response)
        if response.status != "ok":
            return 2
        _write_output(response.rules_script, args.out)
    elif args.command == "domain-wide":
        if not args.banner_file.exists():
            print(f"Error: banner file not found: {args.banner_file}", file=sys.stderr)
            return 1
        try:
            options = DomainWideOptions(
                domain_name=args.domain,
                banner_html=args.banner_file.read_text(encoding="utf-8"),
                banner_id=args.banner_id,
                banner_click_url=args.click_url,
                banner_name=args.banner_name,
            )
        except ValidationError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        response = svc.synthesize(SynthesisRequest(domain_wide=options))
        _report(response)
        _write_output(response.rules_script, args.out)
    elif args.command == "cleanup":
        _write_output(svc.cleanup_script(confirm=not args.no_confirm), args.out)
    elif args.command == "validate":
        request = _build_request(args)
        strategy = request.strategy or select_strategy(
            request.assignments, get_settings().per_recipient_analytics
        )
        result = validate_synthesis_request(request, strategy)
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.is_valid else 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
