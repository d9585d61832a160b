"""Pattern-based static analysis of source text."""

from __future__ import annotations

import logging
import re
from typing import List

from secscan.result import Finding
from secscan.rules import RuleCatalog
from secscan.utils import line_and_column, mask_secret, truncate

from . import ScanContext

logger = logging.getLogger(__name__)

EVIDENCE_LIMIT = 100


class StaticScanner:
    """Run the language's static rule set over source text."""

    name = "sast"

    def __init__(self, catalog: RuleCatalog) -> None:
        self._catalog = catalog

    def scan(self, context: ScanContext) -> List[Finding]:
        text = context.source or ""
        if not text:
            return []
        language = self._catalog.resolve_language(context.language)
        findings: List[Finding] = []
        for rule in self._catalog.rules_for(language):
            try:
                pattern = rule.compiled()
            except re.error as exc:
                logger.warning("Skipping rule %s with invalid pattern: %s", rule.id, exc)
                continue
            for match in pattern.finditer(text):
                if match.end() == match.start():
                    continue
                line, column = line_and_column(text, match.start())
                evidence = mask_secret(match.group(0)) if rule.sensitive else match.group(0)
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
                        evidence=truncate(evidence, EVIDENCE_LIMIT),
                    )
                )
        return findings
