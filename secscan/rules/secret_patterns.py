"""Language-independent secret patterns.

Capture group 1 holds the secret value; when a pattern has no group the whole
match is treated as the secret.
"""

from __future__ import annotations

from typing import Tuple

from secscan.severity import Severity

from . import PatternRule

SECRET_RECOMMENDATION = "Remove hardcoded secret and use environment variables or a secrets manager"


def _secret(rule_id: str, name: str, severity: Severity, pattern: str, description: str, flags: str = "") -> PatternRule:
    return PatternRule(rule_id, name, severity, pattern, description, SECRET_RECOMMENDATION, flags, sensitive=True)


SECRET_PATTERNS: Tuple[PatternRule, ...] = (
    _secret("SEC001", "AWS Access Key ID", Severity.CRITICAL, r"\b(AKIA[0-9A-Z]{16})\b", "AWS Access Key detected"),
    _secret(
        "SEC002", "AWS Secret Access Key", Severity.CRITICAL,
        r"(?:aws_secret_access_key|aws_secret_key)\s*[:=]\s*['\"]?([A-Za-z0-9/+=]{40})['\"]?",
        "AWS Secret Key detected", flags="i",
    ),
    _secret("SEC003", "GitHub Token", Severity.CRITICAL, r"\b(gh[ps]_[A-Za-z0-9_]{36,})\b", "GitHub Personal Access Token detected"),
    _secret("SEC004", "GitHub OAuth", Severity.CRITICAL, r"\b(gho_[A-Za-z0-9_]{36,})\b", "GitHub OAuth Token detected"),
    _secret("SEC005", "Slack Token", Severity.HIGH, r"\b(xox[baprs]-[0-9A-Za-z-]{10,})\b", "Slack API Token detected"),
    _secret(
        "SEC006", "Slack Webhook", Severity.HIGH, r"(https://hooks\.slack\.com/services/[A-Za-z0-9/]+)",
        "Slack Webhook URL detected",
    ),
    _secret(
        "SEC007", "Private Key", Severity.CRITICAL,
        r"(-----BEGIN\s+(?:RSA\s+|EC\s+|DSA\s+|OPENSSH\s+)?PRIVATE\s+KEY-----)",
        "Private key detected",
    ),
    _secret(
        "SEC008", "Generic API Key", Severity.HIGH,
        r"(?:api[_-]?key|apikey)\s*[:=]\s*['\"]?([A-Za-z0-9_-]{20,})['\"]?",
        "Generic API key pattern detected", flags="i",
    ),
    _secret(
        "SEC009", "Generic Secret", Severity.HIGH,
        r"(?:secret|password|passwd|pwd|token)\s*[:=]\s*['\"]([^'\"]{8,})['\"](?!\s*\))",
        "Generic secret pattern detected", flags="i",
    ),
    _secret(
        "SEC010", "JWT Token", Severity.HIGH,
        r"\b(eyJ[A-Za-z0-9_-]{10,}\.eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,})\b",
        "JWT token detected",
    ),
    _secret(
        "SEC011", "Database Connection String", Severity.CRITICAL,
        r"((?:mongodb|postgres|mysql|redis)://[^:]+:[^@]+@[^\s'\"]+)",
        "Database connection string with credentials", flags="i",
    ),
    _secret("SEC012", "Google API Key", Severity.HIGH, r"\b(AIza[0-9A-Za-z_-]{35})\b", "Google API key detected"),
    _secret("SEC013", "Stripe API Key", Severity.CRITICAL, r"\b(sk_live_[0-9a-zA-Z]{24,})\b", "Stripe live API key detected"),
    _secret("SEC014", "Stripe Test Key", Severity.MEDIUM, r"\b(sk_test_[0-9a-zA-Z]{24,})\b", "Stripe test API key detected"),
    _secret(
        "SEC015", "SendGrid API Key", Severity.HIGH, r"\b(SG\.[A-Za-z0-9_-]{22}\.[A-Za-z0-9_-]{43})\b",
        "SendGrid API key detected",
    ),
    _secret("SEC016", "Twilio API Key", Severity.HIGH, r"\b(SK[a-f0-9]{32})\b", "Twilio API key detected"),
    _secret("SEC017", "npm Token", Severity.HIGH, r"\b(npm_[A-Za-z0-9]{36})\b", "npm access token detected"),
    _secret(
        "SEC018", "Discord Webhook", Severity.HIGH,
        r"(https://discord(?:app)?\.com/api/webhooks/[0-9]+/[A-Za-z0-9_-]+)",
        "Discord webhook URL detected",
    ),
    _secret(
        "SEC019", "Basic Auth Header", Severity.HIGH, r"Authorization:\s*Basic\s+([A-Za-z0-9+/=]{10,})",
        "Basic authentication header detected", flags="i",
    ),
)
