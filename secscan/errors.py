"""Exception hierarchy for the scanning engine."""

from __future__ import annotations

from typing import Iterable, List


class SecScanError(Exception):
    """Base class for errors raised by secscan."""


class PolicyValidationError(SecScanError, ValueError):
    """Raised when a policy is rejected at the save boundary."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("Invalid policy: " + "; ".join(self.errors))


class RuleValidationError(SecScanError, ValueError):
    """Raised when a rule definition cannot be used."""

    def __init__(self, rule_id: str, reason: str) -> None:
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"Rule {rule_id or '<unnamed>'}: {reason}")
