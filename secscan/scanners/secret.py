"""Language-independent detection of hardcoded credentials."""

from __future__ import annotations

import logging
import re
from typing import List

from secscan.result import Finding
from secscan.rules import RuleCatalog
from secscan.utils import line_and_column, mask_secret

from . import ScanContext

logger = logging.getLogger(__name__)


class SecretScanner:
    """Match every secret pattern and report masked evidence only."""

    name = "secrets"

    def __init__(self, catalog: RuleCatalog) -> None:
        self._catalog = catalog

    def scan(self, context: ScanContext) -> List[Finding]:
        text = context.source or ""
        if not text:
            return []
        findings: List[Finding] = []
        for rule in self._catalog.secret_patterns():
            try:
                pattern = rule.compiled()
            except re.error as exc:
                logger.warning("Skipping secret pattern %s with invalid pattern: %s", rule.id, exc)
                continue
            for match in pattern.finditer(text):
                secret = _secret_value(match)
                if not secret:
                    continue
                line, column = line_and_column(text, match.start())
                findings.append(
                    Finding(
                        scanner=self.name,
                        rule_id=rule.id,
                        title=rule.name,
                        severity=rule.severity,
                        description=rule.description,
                        recommendation=rule.recommendation,
                        location=f"{line}:{column}",
                        line=line,
                        column=column,
                        evidence=mask_secret(secret),
                    )
                )
        return findings


def _secret_value(match: "re.Match[str]") -> str:
    if match.re.groups and match.group(1) is not None:
        return match.group(1)
    return match.group(0)
