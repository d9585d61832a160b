"""Cross-site scripting heuristics over documents and source text.

These are pattern matches, not data-flow analysis: they flag safe code that
looks suspicious and miss injections that do not match the shapes below.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, List, Tuple

from secscan.result import Finding
from secscan.severity import Severity
from secscan.utils import line_and_column, truncate

from . import ScanContext

if TYPE_CHECKING:  # pragma: no cover
    from bs4 import BeautifulSoup

EVIDENCE_LIMIT = 80

DOCUMENT_WRITE = re.compile(r"document\.write\s*\(")
INNER_HTML_FROM_URL = re.compile(
    r"\.innerHTML\s*=.*(?:location|document\.URL|document\.referrer)", re.IGNORECASE
)
JAVASCRIPT_SCHEME = re.compile(r"^\s*javascript:", re.IGNORECASE)
INLINE_HANDLERS = ("onclick", "onerror", "onload", "onmouseover", "onfocus", "onblur")

USER_INPUT = r"(?:req|request|params|query|input|data)"
REFLECTED_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\.innerHTML\s*=\s*" + USER_INPUT, re.IGNORECASE), "innerHTML with user input"),
    (re.compile(r"document\.write\s*\([^)]*" + USER_INPUT, re.IGNORECASE), "document.write with user input"),
    (re.compile(r"\$\([^)]+\)\.html\s*\([^)]*" + USER_INPUT, re.IGNORECASE), "jQuery .html() with user input"),
)


class ScriptingScanner:
    """DOM-shape checks for documents and sink-assignment checks for code."""

    name = "xss"

    def scan(self, context: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        if context.document is not None:
            findings.extend(self.scan_document(context.document))
        if context.source:
            findings.extend(self.scan_code(context.source))
        return findings

    def scan_document(self, document: "BeautifulSoup") -> List[Finding]:
        findings: List[Finding] = []

        for index, script in enumerate(document.find_all("script", src=False)):
            content = script.get_text()
            element = f"script[{index}]"
            if DOCUMENT_WRITE.search(content):
                findings.append(
                    self._finding(
                        "dom-xss", "DOM XSS: document.write", Severity.MEDIUM,
                        "document.write() usage detected - potential DOM XSS",
                        "Use safe DOM manipulation methods",
                        location=element,
                    )
                )
            if INNER_HTML_FROM_URL.search(content):
                findings.append(
                    self._finding(
                        "dom-xss", "DOM XSS: innerHTML from URL data", Severity.HIGH,
                        "innerHTML assignment with URL/referrer data - DOM XSS vulnerability",
                        "Sanitize user input before DOM insertion",
                        location=element,
                    )
                )

        for attribute in INLINE_HANDLERS:
            count = len(document.find_all(attrs={attribute: True}))
            if count:
                findings.append(
                    self._finding(
                        "inline-handler", f"Inline {attribute} handlers", Severity.LOW,
                        f"{count} inline {attribute} handler(s) found",
                        "Use addEventListener instead of inline handlers",
                        location=f"[{attribute}]",
                        evidence=str(count),
                    )
                )

        links = document.find_all("a", href=JAVASCRIPT_SCHEME)
        if links:
            findings.append(
                self._finding(
                    "javascript-url", "javascript: URLs", Severity.MEDIUM,
                    f"{len(links)} javascript: URL(s) found",
                    "Avoid javascript: URLs, use event handlers instead",
                    location='a[href^="javascript:"]',
                    evidence=str(len(links)),
                )
            )
        return findings

    def scan_code(self, code: str) -> List[Finding]:
        findings: List[Finding] = []
        for pattern, description in REFLECTED_PATTERNS:
            for match in pattern.finditer(code):
                line, column = line_and_column(code, match.start())
                findings.append(
                    self._finding(
                        "reflected-xss", "Reflected XSS", Severity.HIGH,
                        description,
                        "Sanitize all user input before DOM insertion",
                        location=f"{line}:{column}",
                        line=line,
                        column=column,
                        evidence=truncate(match.group(0), EVIDENCE_LIMIT),
                    )
                )
        return findings

    def _finding(self, rule_id: str, title: str, severity: Severity, description: str, recommendation: str, **extra) -> Finding:
        return Finding(
            scanner=self.name,
            rule_id=rule_id,
            title=title,
            severity=severity,
            description=description,
            recommendation=recommendation,
            **extra,
        )
