"""HTTP security header audit, live or against a fetched document."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Mapping, Optional, Sequence

import httpx

from secscan.result import Finding
from secscan.rules.headers import SECURITY_HEADERS, WEAKNESS_CHECKS, HeaderRequirement, csp_weakness
from secscan.severity import Severity
from secscan.utils import truncate

from . import ScanContext

if TYPE_CHECKING:  # pragma: no cover
    from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
EVIDENCE_LIMIT = 100
CSP_META = re.compile(r"^\s*content-security-policy\s*$", re.IGNORECASE)
CSP_HEADER = "Content-Security-Policy"


class HeaderScanner:
    """Check required/optional security headers and flag known-weak values."""

    name = "headers"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        requirements: Sequence[HeaderRequirement] = SECURITY_HEADERS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self._requirements = tuple(requirements)
        self._transport = transport

    def scan(self, context: ScanContext) -> List[Finding]:
        if context.url:
            return self.scan_url(context.url)
        if context.document is not None:
            return self.scan_document(context.document)
        return []

    def scan_url(self, url: str) -> List[Finding]:
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True, transport=self._transport) as client:
                response = client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Unable to fetch headers from %s: %s", url, exc)
            return [
                Finding(
                    scanner=self.name,
                    rule_id="fetch_error",
                    title="Header fetch failed",
                    severity=Severity.INFO,
                    description=f"Unable to fetch headers: {exc}",
                    recommendation="Ensure the URL is accessible from the scanner",
                    location=url,
                )
            ]
        return self.evaluate_headers(response.headers)

    def evaluate_headers(self, headers: Mapping[str, str]) -> List[Finding]:
        """Audit a response header mapping (matched case-insensitively)."""

        normalized = httpx.Headers(headers)
        findings: List[Finding] = []
        for requirement in self._requirements:
            value = requirement.value_from(normalized)
            if not value:
                if requirement.required:
                    findings.append(self._missing(requirement))
                continue
            check = WEAKNESS_CHECKS.get(requirement.header)
            weakness = check(value) if check else None
            if weakness:
                findings.append(self._weak(requirement, value, weakness))
        return findings

    def scan_document(self, document: "BeautifulSoup") -> List[Finding]:
        """Look for an in-document CSP declaration."""

        meta = document.find("meta", attrs={"http-equiv": CSP_META})
        if meta is None:
            return [
                Finding(
                    scanner=self.name,
                    rule_id="MISSING",
                    title=f"Missing security header: {CSP_HEADER}",
                    severity=Severity.HIGH,
                    description="No Content-Security-Policy meta tag found",
                    recommendation="Add CSP header or meta tag to prevent XSS attacks",
                    location=CSP_HEADER,
                )
            ]
        content = str(meta.get("content") or "")
        weakness = csp_weakness(content)
        if not weakness:
            return []
        requirement = next(req for req in self._requirements if req.header == CSP_HEADER)
        return [self._weak(requirement, content, weakness)]

    def _missing(self, requirement: HeaderRequirement) -> Finding:
        header = requirement.header
        return Finding(
            scanner=self.name,
            rule_id="MISSING",
            title=f"Missing security header: {header}",
            severity=requirement.severity,
            description=f"Missing security header: {header} ({requirement.description})",
            recommendation=requirement.recommendation,
            location=header,
        )

    def _weak(self, requirement: HeaderRequirement, value: str, weakness: str) -> Finding:
        return Finding(
            scanner=self.name,
            rule_id="WEAK",
            title=f"Weak security header: {requirement.header}",
            severity=Severity.LOW,
            description=weakness,
            recommendation=requirement.recommendation,
            location=requirement.header,
            evidence=truncate(value, EVIDENCE_LIMIT),
        )
