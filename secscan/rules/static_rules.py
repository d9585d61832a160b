"""Baseline static analysis rules per source language."""

from __future__ import annotations

from typing import Dict, Tuple

from secscan.severity import Severity

from . import PatternRule

CRITICAL = Severity.CRITICAL
HIGH = Severity.HIGH
MEDIUM = Severity.MEDIUM
LOW = Severity.LOW

JAVASCRIPT_RULES = (
    PatternRule(
        "JS001", "eval() Usage", HIGH, r"\beval\s*\(",
        "eval() can execute arbitrary code and is a security risk",
        "Use JSON.parse() for data or Function constructor with caution",
    ),
    PatternRule(
        "JS002", "innerHTML Assignment", MEDIUM, r"\.innerHTML\s*=",
        "Direct innerHTML assignment can lead to XSS",
        "Use textContent or sanitize HTML before insertion",
    ),
    PatternRule(
        "JS003", "document.write", MEDIUM, r"document\.write\s*\(",
        "document.write can overwrite page content and enable XSS",
        "Use DOM manipulation methods instead",
    ),
    PatternRule(
        "JS004", "Unsafe Regex", LOW, r"new\s+RegExp\s*\([^)]*\+",
        "Dynamic regex construction can lead to ReDoS attacks",
        "Use static regex patterns or validate input",
    ),
    PatternRule(
        "JS005", "Hardcoded Password", CRITICAL, r"(?:password|passwd|pwd)\s*[:=]\s*['\"][^'\"]{3,}['\"]",
        "Hardcoded passwords expose credentials",
        "Use environment variables or secure secrets management",
        flags="i",
        sensitive=True,
    ),
    PatternRule(
        "JS006", "SQL Injection Risk", HIGH,
        r"`[^`]*\$\{[^}]+\}[^`]*(?:SELECT|INSERT|UPDATE|DELETE|FROM|WHERE)",
        "String interpolation in SQL queries can lead to injection",
        "Use parameterized queries or prepared statements",
        flags="i",
    ),
    PatternRule(
        "JS007", "Command Injection", CRITICAL, r"(?:exec|spawn|execSync)\s*\(\s*(?:`[^`]*\$|[^)]*\+)",
        "Dynamic command construction can lead to command injection",
        "Validate and sanitize all inputs, use allowlists",
    ),
    PatternRule(
        "JS008", "Prototype Pollution", HIGH,
        r"__proto__|constructor\s*\[|Object\.assign\s*\([^,]+,\s*(?:req|user|input)",
        "Prototype pollution can modify object behavior",
        "Use Object.create(null) or validate property names",
    ),
    PatternRule(
        "JS009", "Insecure Randomness", MEDIUM, r"Math\.random\s*\(\)",
        "Math.random() is not cryptographically secure",
        "Use crypto.getRandomValues() for security-sensitive operations",
    ),
    PatternRule(
        "JS010", "Dangerous Function Constructor", HIGH, r"new\s+Function\s*\(",
        "Function constructor can execute arbitrary code like eval()",
        "Avoid dynamic code generation",
    ),
    PatternRule(
        "JS011", "Unvalidated Redirect", MEDIUM, r"(?:location|window\.location)\s*=\s*(?:req|params|query|input)",
        "Unvalidated redirects can lead to phishing attacks",
        "Validate redirect URLs against an allowlist",
    ),
    PatternRule(
        "JS012", "Sensitive Data in localStorage", MEDIUM,
        r"localStorage\.setItem\s*\([^)]*(?:password|token|secret|key|credential)",
        "Storing sensitive data in localStorage is insecure",
        "Use secure httpOnly cookies or session storage with encryption",
        flags="i",
    ),
)

PYTHON_RULES = (
    PatternRule(
        "PY001", "exec() Usage", HIGH, r"\bexec\s*\(",
        "exec() can execute arbitrary Python code",
        "Avoid exec() or use ast.literal_eval() for data",
    ),
    PatternRule(
        "PY002", "eval() Usage", HIGH, r"\beval\s*\(",
        "eval() can execute arbitrary expressions",
        "Use ast.literal_eval() for safe evaluation",
    ),
    PatternRule(
        "PY003", "pickle Deserialization", HIGH, r"pickle\.(?:load|loads)\s*\(",
        "Pickle can execute arbitrary code during deserialization",
        "Use JSON or other safe serialization formats",
    ),
    PatternRule(
        "PY004", "SQL String Formatting", HIGH, r"(?:execute|executemany)\s*\(\s*(?:f['\"]|['\"].*%)",
        "String formatting in SQL queries can lead to injection",
        "Use parameterized queries with placeholders",
    ),
    PatternRule(
        "PY005", "Shell Injection", CRITICAL, r"subprocess\.(?:call|run|Popen)[^)]*shell\s*=\s*True",
        "shell=True with user input enables command injection",
        "Use shell=False and pass arguments as a list",
    ),
    PatternRule(
        "PY006", "Hardcoded Secret", CRITICAL, r"(?:api_key|secret|password|token)\s*=\s*['\"][^'\"]{8,}['\"]",
        "Hardcoded secrets expose credentials",
        "Use environment variables or secrets management",
        flags="i",
        sensitive=True,
    ),
    PatternRule(
        "PY007", "Insecure Deserialization", HIGH, r"yaml\.(?:load|unsafe_load)\s*\(",
        "Unsafe YAML loading can execute arbitrary code",
        "Use yaml.safe_load() instead",
    ),
    PatternRule(
        "PY008", "Weak Cryptography", MEDIUM, r"(?:MD5|SHA1)\s*\(|hashlib\.(?:md5|sha1)",
        "MD5 and SHA1 are cryptographically weak",
        "Use SHA-256 or stronger hash functions",
    ),
    PatternRule(
        "PY009", "Debug Mode in Production", MEDIUM, r"DEBUG\s*=\s*True|app\.run\s*\([^)]*debug\s*=\s*True",
        "Debug mode exposes sensitive information",
        "Disable debug mode in production",
    ),
    PatternRule(
        "PY010", "Insecure SSL", HIGH, r"verify\s*=\s*False|ssl\._create_unverified_context",
        "Disabling SSL verification enables MITM attacks",
        "Always verify SSL certificates",
    ),
)

ROBOT_RULES = (
    PatternRule(
        "RF001", "Hardcoded Credentials", CRITICAL, r"(?:password|secret|token)\s+[^${][^\s]+",
        "Hardcoded credentials in test files",
        "Use variables from secure sources",
        flags="i",
        sensitive=True,
    ),
    PatternRule(
        "RF002", "Insecure HTTP", MEDIUM, r"http://(?!localhost|127\.0\.0\.1)",
        "Using insecure HTTP instead of HTTPS",
        "Use HTTPS for all external connections",
    ),
)

STATIC_RULES: Dict[str, Tuple[PatternRule, ...]] = {
    "javascript": JAVASCRIPT_RULES,
    "python": PYTHON_RULES,
    "robot": ROBOT_RULES,
}
