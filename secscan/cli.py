"""Command-line entry point for the security scanner."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .config import load_settings
from .errors import SecScanError
from .orchestrator import DEFAULT_STATIC_SCAN_TYPES, DYNAMIC_SCAN_TYPES, STATIC_SCAN_TYPES, ScanOrchestrator
from .policy import FAIL_ON_LEVELS
from .result import ScanResult, format_summary_table
from .rules import load_rule_bundle
from .utils import iter_code_files, language_for_path, load_document_file, read_text_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BLOCKED = 2

LOG_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secscan",
        description="Rule-based security scanner with policy compliance gating",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (defaults to $SECSCAN_CONFIG when set).",
    )
    parser.add_argument(
        "--out",
        "--output",
        dest="output_path",
        type=str,
        default=None,
        help="Path to write the structured JSON report (e.g., artifacts/scan.json).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    code = commands.add_parser("code", help="Static and secret scan of source files.")
    code.add_argument("paths", nargs="+", help="Files or directories to scan.")
    code.add_argument("--language", default=None, help="Language key; inferred from the extension when omitted.")
    code.add_argument(
        "--scan-type",
        dest="scan_types",
        action="append",
        choices=STATIC_SCAN_TYPES,
        default=None,
        help="Scanner to run (repeatable, defaults to sast and secrets).",
    )
    code.add_argument("--rules", type=Path, default=None, help="Custom rule bundle (YAML or JSON).")

    deps = commands.add_parser("deps", help="Check manifest dependencies for known vulnerabilities.")
    deps.add_argument("manifest", type=Path, help="package.json or requirements file.")
    deps.add_argument(
        "--ecosystem",
        choices=["npm", "PyPI"],
        default=None,
        help="Manifest ecosystem; inferred from the file name when omitted.",
    )

    dynamic = commands.add_parser("dynamic", help="Audit security headers and DOM patterns.")
    target = dynamic.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", default=None, help="Live URL to fetch headers from.")
    target.add_argument("--html", type=Path, default=None, help="Saved HTML document to inspect.")
    dynamic.add_argument(
        "--scan-type",
        dest="scan_types",
        action="append",
        choices=DYNAMIC_SCAN_TYPES,
        default=None,
        help="Scanner to run (repeatable, defaults to headers and xss).",
    )

    history = commands.add_parser("history", help="Show or clear the scan history.")
    history.add_argument("--limit", type=int, default=None, help="Show at most N entries.")
    history.add_argument("--stats", action="store_true", help="Print aggregate statistics instead.")
    history.add_argument("--clear", action="store_true", help="Discard all history entries.")

    policy = commands.add_parser("policy", help="Show, change or reset the compliance policy.")
    actions = policy.add_subparsers(dest="action", required=True)
    actions.add_parser("show", help="Print the active policy.")
    actions.add_parser("reset", help="Restore the default policy.")
    update = actions.add_parser("set", help="Update policy fields.")
    update.add_argument("--fail-on", dest="failOnSeverity", choices=FAIL_ON_LEVELS, default=None)
    update.add_argument("--max-critical", dest="maxCritical", type=int, default=None)
    update.add_argument("--max-high", dest="maxHigh", type=int, default=None)
    update.add_argument("--max-medium", dest="maxMedium", type=int, default=None)
    update.add_argument("--max-low", dest="maxLow", type=int, default=None)
    update.add_argument("--block", dest="blockOnFailure", action="store_true", default=None)
    update.add_argument("--no-block", dest="blockOnFailure", action="store_false", default=None)
    update.add_argument("--notify", dest="notifyOnFailure", action="store_true", default=None)
    update.add_argument("--no-notify", dest="notifyOnFailure", action="store_false", default=None)
    return parser


def configure_logging(verbosity: int) -> None:
    level = LOG_LEVELS[min(verbosity, len(LOG_LEVELS) - 1)]
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def report_policy_failure(result: ScanResult) -> None:
    counts = result.severity_counts
    print(
        f"Policy check failed for {result.name} ({result.id}): "
        f"critical={counts.critical} high={counts.high} medium={counts.medium} low={counts.low}",
        file=sys.stderr,
    )


def build_orchestrator(config_path: Optional[Path]) -> ScanOrchestrator:
    if config_path is None and os.environ.get("SECSCAN_CONFIG"):
        config_path = Path(os.environ["SECSCAN_CONFIG"])
    settings = load_settings(config_path)
    return ScanOrchestrator(settings=settings, notifier=report_policy_failure)


def run_code(orchestrator: ScanOrchestrator, args: argparse.Namespace) -> List[ScanResult]:
    if args.rules is not None:
        orchestrator.load_custom_rules(load_rule_bundle(args.rules))
    scan_types = args.scan_types or list(DEFAULT_STATIC_SCAN_TYPES)
    results: List[ScanResult] = []
    for path in iter_code_files(args.paths):
        language = args.language or language_for_path(path) or orchestrator.catalog.resolve_language(None)
        logger.info("Scanning %s as %s", path, language)
        results.append(
            orchestrator.run_static_scan(
                read_text_file(path),
                language=language,
                scan_types=scan_types,
                name=f"Code Scan: {path}",
                target=str(path),
            )
        )
    if not results:
        raise SecScanError("No source files found under " + ", ".join(args.paths))
    return results


def run_deps(orchestrator: ScanOrchestrator, args: argparse.Namespace) -> List[ScanResult]:
    if not args.manifest.exists():
        raise SecScanError(f"No such manifest: {args.manifest}")
    ecosystem = args.ecosystem or ("PyPI" if args.manifest.suffix.lower() == ".txt" else "npm")
    result = orchestrator.run_dependency_scan(
        read_text_file(args.manifest),
        ecosystem=ecosystem,
        name=f"Dependency Scan: {args.manifest.name}",
        target=str(args.manifest),
    )
    return [result]


def run_dynamic(orchestrator: ScanOrchestrator, args: argparse.Namespace) -> List[ScanResult]:
    scan_types = args.scan_types or list(DYNAMIC_SCAN_TYPES)
    if args.url:
        target: Any = args.url
    else:
        if not args.html.exists():
            raise SecScanError(f"No such document: {args.html}")
        target = load_document_file(args.html)
    return [orchestrator.run_dynamic_scan(target, scan_types=scan_types)]


SCAN_COMMANDS = {
    "code": run_code,
    "deps": run_deps,
    "dynamic": run_dynamic,
}


def write_output(results: Sequence[ScanResult], output_path: Optional[str]) -> None:
    for index, result in enumerate(results):
        if index:
            print()
        print(format_summary_table(result))

    if output_path:
        documents = [result.to_dict() for result in results]
        payload = json.dumps(documents[0] if len(documents) == 1 else documents, indent=2)
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(payload, encoding="utf-8")
        print(f"\nReport written to {output_path}")


def exit_code(results: Sequence[ScanResult], block_on_failure: bool) -> int:
    if all(result.policy_passed for result in results):
        return EXIT_OK
    return EXIT_BLOCKED if block_on_failure else EXIT_OK


def run_history(orchestrator: ScanOrchestrator, args: argparse.Namespace) -> int:
    if args.clear:
        orchestrator.clear_history()
        print("History cleared")
        return EXIT_OK
    if args.stats:
        print(json.dumps(orchestrator.get_statistics(), indent=2))
        return EXIT_OK
    for entry in orchestrator.get_history(args.limit):
        counts = entry.severity_counts
        status = "PASS" if entry.policy_passed else "FAIL"
        print(
            f"{entry.created_at}  {status}  {entry.kind:<12} {entry.name}  "
            f"C={counts.critical} H={counts.high} M={counts.medium} L={counts.low}  {entry.duration_ms} ms"
        )
    return EXIT_OK


def run_policy(orchestrator: ScanOrchestrator, args: argparse.Namespace) -> int:
    if args.action == "reset":
        policy = orchestrator.restore_default_policy()
    elif args.action == "set":
        fields = (
            "failOnSeverity", "maxCritical", "maxHigh", "maxMedium", "maxLow",
            "blockOnFailure", "notifyOnFailure",
        )
        changes = {name: getattr(args, name) for name in fields if getattr(args, name) is not None}
        merged = {**orchestrator.get_policy().to_dict(), **changes}
        policy = orchestrator.save_policy(merged)
    else:
        policy = orchestrator.get_policy()
    print(json.dumps(policy.to_dict(), indent=2))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        orchestrator = build_orchestrator(args.config)
        if args.command == "history":
            return run_history(orchestrator, args)
        if args.command == "policy":
            return run_policy(orchestrator, args)
        results = SCAN_COMMANDS[args.command](orchestrator, args)
    except SecScanError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    write_output(results, args.output_path)
    return exit_code(results, orchestrator.get_policy().block_on_failure)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
