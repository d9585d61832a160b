"""Required and optional HTTP security headers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from secscan.severity import Severity

HSTS_MIN_MAX_AGE = 31536000
MAX_AGE_PATTERN = re.compile(r"max-age\s*=\s*\"?(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class HeaderRequirement:
    header: str
    severity: Severity
    required: bool
    description: str
    recommendation: str
    aliases: Tuple[str, ...] = ()

    def value_from(self, headers: Mapping[str, str]) -> Optional[str]:
        """Return the header value from a case-insensitive mapping, checking aliases."""

        for name in (self.header, *self.aliases):
            value = headers.get(name)
            if value:
                return value
        return None


SECURITY_HEADERS: Tuple[HeaderRequirement, ...] = (
    HeaderRequirement(
        "Content-Security-Policy", Severity.HIGH, True,
        "Prevents XSS and data injection attacks",
        "Add a strict CSP header",
    ),
    HeaderRequirement(
        "X-Frame-Options", Severity.MEDIUM, True,
        "Prevents clickjacking attacks",
        "Add X-Frame-Options: DENY or SAMEORIGIN",
    ),
    HeaderRequirement(
        "X-Content-Type-Options", Severity.LOW, True,
        "Prevents MIME type sniffing",
        "Add X-Content-Type-Options: nosniff",
    ),
    HeaderRequirement(
        "Strict-Transport-Security", Severity.HIGH, False,
        "Enforces HTTPS connections",
        "Add HSTS header with max-age >= 31536000",
    ),
    HeaderRequirement(
        "X-XSS-Protection", Severity.LOW, False,
        "Legacy XSS protection",
        "Add X-XSS-Protection: 1; mode=block",
    ),
    HeaderRequirement(
        "Referrer-Policy", Severity.LOW, False,
        "Controls referrer information",
        "Add Referrer-Policy: strict-origin-when-cross-origin",
    ),
    HeaderRequirement(
        "Permissions-Policy", Severity.MEDIUM, False,
        "Controls browser features",
        "Add Permissions-Policy to restrict features",
        aliases=("Feature-Policy",),
    ),
)


def csp_weakness(value: str) -> Optional[str]:
    """Describe a known-weak Content-Security-Policy, or return ``None``."""

    lowered = value.lower()
    if "'unsafe-inline'" in lowered and "'unsafe-eval'" in lowered:
        return "CSP allows unsafe-inline and unsafe-eval which weakens protection"
    for directive in lowered.split(";"):
        sources = directive.split()[1:]
        if "*" in sources:
            return "CSP uses wildcard which allows any source"
    return None


def hsts_weakness(value: str) -> Optional[str]:
    match = MAX_AGE_PATTERN.search(value)
    max_age = int(match.group(1)) if match else 0
    if max_age < HSTS_MIN_MAX_AGE:
        return f"HSTS max-age should be at least 1 year ({HSTS_MIN_MAX_AGE} seconds)"
    return None


WEAKNESS_CHECKS = {
    "Content-Security-Policy": csp_weakness,
    "Strict-Transport-Security": hsts_weakness,
}
