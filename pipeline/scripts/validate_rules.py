"""Validate a custom rule bundle: unique ids, known severities, compilable patterns."""

from __future__ import annotations

import sys
from pathlib import Path

from secscan.errors import RuleValidationError
from secscan.rules import build_rule, load_rule_bundle

RULES_FILE = Path(".secscan-rules.yaml")


def validate_bundle(path: Path) -> list[str]:
    try:
        bundle = load_rule_bundle(path)
    except (RuleValidationError, ValueError) as exc:
        return [str(exc)]

    errors: list[str] = []
    for language, entries in bundle.items():
        seen: set[str] = set()
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                errors.append(f"{language}[{index}]: expected a mapping")
                continue
            try:
                rule = build_rule(entry)
            except RuleValidationError as exc:
                errors.append(f"{language}[{index}]: {exc}")
                continue
            if rule.id in seen:
                errors.append(f"{language}[{index}]: duplicate id {rule.id}")
            seen.add(rule.id)
    return errors


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else RULES_FILE
    if not path.exists():
        return 0

    errors = validate_bundle(path)
    if errors:
        sys.stderr.write("Rule bundle validation failed:\n" + "\n".join(errors) + "\n")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
