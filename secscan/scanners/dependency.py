"""Dependency vulnerability lookup against the OSV database.

Each declared package is normalized to a concrete version and checked with
one OSV query. Lookups run concurrently, bounded by a semaphore and a
per-package timeout; a failed or timed-out lookup is logged and contributes
no findings, so the scan always returns partial results.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from secscan.cache import VulnerabilityCache, cache_key
from secscan.result import Finding
from secscan.severity import Severity

from . import ScanContext

logger = logging.getLogger(__name__)

OSV_QUERY_URL = "https://api.osv.dev/v1/query"
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_CONCURRENCY = 10
DESCRIPTION_LIMIT = 200
MAX_REFERENCES = 3

RANGE_PREFIX = re.compile(r"^[\^~<>=v\s]+")
REQUIREMENT_LINE = re.compile(
    r"^([A-Za-z0-9][A-Za-z0-9._-]*)(?:\[[^\]]*\])?\s*(===|==|~=|>=|<=|!=|>|<)\s*([^\s;,#]+)"
)
BARE_REQUIREMENT = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*(?:\[[^\]]*\])?$")
WILDCARD_PARTS = frozenset({"x", "X", "*"})


@dataclass(frozen=True)
class Dependency:
    name: str
    declared: str
    ecosystem: str

    @property
    def version(self) -> str:
        return normalize_version(self.declared)


def normalize_version(spec: str) -> str:
    """Strip range qualifiers such as ``^``, ``~`` or ``>=`` and keep the first token."""

    tokens = RANGE_PREFIX.sub("", spec.strip()).split()
    return tokens[0] if tokens else ""


def is_concrete_version(version: str) -> bool:
    """True for a pinned version. Empty or wildcard versions match every release."""

    if not version or not version[0].isdigit():
        return False
    return not any(part in WILDCARD_PARTS for part in version.split("."))


def parse_npm_manifest(text: str) -> List[Dependency]:
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("package.json must contain a JSON object")
    merged: Dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        block = data.get(section) or {}
        if not isinstance(block, dict):
            raise ValueError(f"'{section}' must be an object")
        merged.update(block)
    return [Dependency(name, str(declared), "npm") for name, declared in merged.items()]


def parse_requirements(text: str) -> List[Dependency]:
    dependencies: List[Dependency] = []
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = REQUIREMENT_LINE.match(line)
        if match:
            dependencies.append(Dependency(match.group(1), match.group(3), "PyPI"))
        elif BARE_REQUIREMENT.match(line):
            logger.debug("Skipping unpinned requirement %s", line)
        else:
            raise ValueError(f"cannot parse requirement {line!r}")
    return dependencies


MANIFEST_PARSERS: Dict[str, Callable[[str], List[Dependency]]] = {
    "npm": parse_npm_manifest,
    "pypi": parse_requirements,
}

MANIFEST_LABELS = {
    "npm": "package.json",
    "pypi": "requirements file",
}


def parse_manifest(text: str, ecosystem: str) -> List[Dependency]:
    parser = MANIFEST_PARSERS.get(ecosystem.lower())
    if parser is None:
        raise ValueError(f"unsupported ecosystem {ecosystem!r}")
    return parser(text)


def map_severity(raw: Optional[str], default: Severity = Severity.MEDIUM) -> Severity:
    """Map a free-text feed severity onto the internal scale."""

    if not raw:
        return default
    value = raw.upper()
    if "CRITICAL" in value:
        return Severity.CRITICAL
    if "HIGH" in value:
        return Severity.HIGH
    if "MODERATE" in value or "MEDIUM" in value:
        return Severity.MEDIUM
    if "LOW" in value:
        return Severity.LOW
    return default


def _feed_severity(vuln: Dict[str, Any]) -> Optional[str]:
    # OSV's top-level "severity" is usually a list of CVSS vectors; only text is usable.
    severity = vuln.get("severity")
    if isinstance(severity, str):
        return severity
    specific = vuln.get("database_specific")
    if isinstance(specific, dict) and isinstance(specific.get("severity"), str):
        return specific["severity"]
    return None


class DependencyScanner:
    """Check manifest dependencies against an OSV-compatible query endpoint."""

    name = "dependencies"

    def __init__(
        self,
        cache: Optional[VulnerabilityCache] = None,
        query_url: str = OSV_QUERY_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        unknown_severity: Severity = Severity.MEDIUM,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cache = cache if cache is not None else VulnerabilityCache()
        self.query_url = query_url
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)
        self.unknown_severity = unknown_severity
        self._transport = transport

    def scan(self, context: ScanContext) -> List[Finding]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.scan_async(context.manifest, context.ecosystem))
        # Called from inside an event loop: run the lookups on a private loop in a worker thread.
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(asyncio.run, self.scan_async(context.manifest, context.ecosystem))
            return future.result()

    async def scan_async(self, manifest: str, ecosystem: str = "npm") -> List[Finding]:
        try:
            dependencies = parse_manifest(manifest or "", ecosystem)
        except ValueError as exc:
            return [self._parse_error(exc, ecosystem)]
        dependencies = [dependency for dependency in dependencies if self._is_queryable(dependency)]
        if not dependencies:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            slices = await asyncio.gather(
                *(self._check(client, semaphore, dependency) for dependency in dependencies)
            )

        findings: List[Finding] = []
        for chunk in slices:
            findings.extend(chunk)
        return findings

    async def _check(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        dependency: Dependency,
    ) -> List[Finding]:
        version = dependency.version
        key = cache_key(dependency.ecosystem, dependency.name, version)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            async with semaphore:
                findings = await asyncio.wait_for(
                    self._query(client, dependency, version),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError:
            logger.warning("Vulnerability lookup timed out for %s", key)
            return []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to check %s: %s", key, exc)
            return []

        self.cache.put(key, findings)
        return findings

    async def _query(self, client: httpx.AsyncClient, dependency: Dependency, version: str) -> List[Finding]:
        response = await client.post(
            self.query_url,
            json={
                "package": {"name": dependency.name, "ecosystem": dependency.ecosystem},
                "version": version,
            },
        )
        response.raise_for_status()
        payload = response.json()
        vulns = payload.get("vulns") if isinstance(payload, dict) else None
        return [
            self._to_finding(dependency, version, vuln)
            for vuln in vulns or []
            if isinstance(vuln, dict)
        ]

    def _to_finding(self, dependency: Dependency, version: str, vuln: Dict[str, Any]) -> Finding:
        vuln_id = str(vuln.get("id") or "UNKNOWN")
        description = vuln.get("summary") or str(vuln.get("details") or "")[:DESCRIPTION_LIMIT]
        references = tuple(
            str(ref["url"])
            for ref in (vuln.get("references") or [])
            if isinstance(ref, dict) and ref.get("url")
        )[:MAX_REFERENCES]
        return Finding(
            scanner=self.name,
            rule_id=vuln_id,
            title=f"{vuln_id} in {dependency.name}",
            severity=map_severity(_feed_severity(vuln), self.unknown_severity),
            description=description,
            recommendation=f"Update {dependency.name} to a patched version",
            location=f"{dependency.name}@{version}",
            evidence=f"{dependency.name} {dependency.declared}",
            references=references,
        )

    def _is_queryable(self, dependency: Dependency) -> bool:
        if is_concrete_version(dependency.version):
            return True
        logger.debug("Skipping %s with non-concrete version %r", dependency.name, dependency.declared)
        return False

    def _parse_error(self, exc: Exception, ecosystem: str) -> Finding:
        label = MANIFEST_LABELS.get(ecosystem.lower(), "manifest")
        return Finding(
            scanner=self.name,
            rule_id="parse_error",
            title="Manifest parse error",
            severity=Severity.INFO,
            description=f"Failed to parse {label}: {exc}",
            recommendation=f"Ensure the {label} is valid",
        )
