"""Core result data structures for the scanner."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .severity import SEVERITY_ORDER, Severity

COUNTED_SEVERITIES = tuple(severity for severity in SEVERITY_ORDER if severity.counted)


def now_iso() -> str:
    """Timezone-aware UTC timestamp in ISO-8601 form."""
    return datetime.now(timezone.utc).isoformat()


def new_scan_id() -> str:
    return f"scan_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Finding:
    """Capture a single issue reported by one scanner."""

    scanner: str
    rule_id: str
    title: str
    severity: Severity
    description: str
    recommendation: str
    location: str = ""
    line: Optional[int] = None
    column: Optional[int] = None
    evidence: str = ""
    references: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scanner": self.scanner,
            "ruleId": self.rule_id,
            "title": self.title,
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
            "location": self.location,
            "line": self.line,
            "column": self.column,
            "evidence": self.evidence,
            "references": list(self.references),
        }


@dataclass
class SeverityCounts:
    """Aggregate finding counts by severity."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def increment(self, severity: Severity) -> None:
        if not severity.counted:
            return
        attr = severity.value.lower()
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    def to_dict(self) -> Dict[str, int]:
        data = asdict(self)
        data["total"] = self.total
        return data

    def as_rows(self) -> List[Tuple[str, int]]:
        """Return severity/count pairs ordered for reporting."""

        return [(severity.value, getattr(self, severity.value.lower())) for severity in COUNTED_SEVERITIES]

    @classmethod
    def from_findings(cls, findings: Iterable[Finding]) -> "SeverityCounts":
        counts = cls()
        for finding in findings:
            counts.increment(finding.severity)
        return counts

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeverityCounts":
        return cls(
            critical=int(data.get("critical", 0)),
            high=int(data.get("high", 0)),
            medium=int(data.get("medium", 0)),
            low=int(data.get("low", 0)),
        )


@dataclass
class ScanResult:
    """Bundle the output of one orchestrated scan run."""

    name: str
    kind: str
    target: str
    findings: List[Finding] = field(default_factory=list)
    id: str = field(default_factory=new_scan_id)
    created_at: str = field(default_factory=now_iso)
    severity_counts: SeverityCounts = field(default_factory=SeverityCounts)
    duration_ms: int = 0
    policy_passed: bool = True

    def add_findings(self, findings: Iterable[Finding]) -> None:
        for finding in findings:
            self.severity_counts.increment(finding.severity)
            self.findings.append(finding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "createdAt": self.created_at,
            "target": self.target,
            "findings": [finding.to_dict() for finding in self.findings],
            "severityCounts": self.severity_counts.to_dict(),
            "durationMs": self.duration_ms,
            "policyPassed": self.policy_passed,
        }

    def top_findings(self, limit: int = 5) -> List[Finding]:
        """Return findings ordered by severity ranking."""

        ordered = sorted(
            self.findings,
            key=lambda finding: (finding.severity.rank, finding.rule_id, finding.location),
        )
        return ordered[:limit]


@dataclass(frozen=True)
class HistoryEntry:
    """Summary of a past result, without its findings."""

    id: str
    name: str
    kind: str
    created_at: str
    severity_counts: SeverityCounts
    policy_passed: bool
    duration_ms: int

    @classmethod
    def from_result(cls, result: ScanResult) -> "HistoryEntry":
        return cls(
            id=result.id,
            name=result.name,
            kind=result.kind,
            created_at=result.created_at,
            severity_counts=SeverityCounts(**asdict(result.severity_counts)),
            policy_passed=result.policy_passed,
            duration_ms=result.duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "createdAt": self.created_at,
            "severityCounts": self.severity_counts.to_dict(),
            "policyPassed": self.policy_passed,
            "durationMs": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            kind=str(data.get("kind", "")),
            created_at=str(data.get("createdAt", "")),
            severity_counts=SeverityCounts.from_dict(data.get("severityCounts") or {}),
            policy_passed=bool(data.get("policyPassed", False)),
            duration_ms=int(data.get("durationMs", 0)),
        )


def format_summary_table(result: ScanResult, max_findings: int = 5) -> str:
    """Create a human-readable summary table for console output."""

    lines: List[str] = []
    lines.append(f"Scan Summary: {result.name}")
    lines.append("=" * 40)
    header = f"{'Severity':<10} | {'Count':>5}"
    lines.append(header)
    lines.append("-" * len(header))
    for severity, count in result.severity_counts.as_rows():
        lines.append(f"{severity:<10} | {count:>5}")
    lines.append("-" * len(header))
    status = "PASS" if result.policy_passed else "FAIL"
    lines.append(f"Policy    : {status}")
    lines.append(f"Findings  : {result.severity_counts.total}")
    lines.append(f"Duration  : {result.duration_ms} ms")

    findings = result.top_findings(max_findings)
    if findings:
        lines.append("")
        lines.append("Top Findings")
        lines.append("-" * 40)
        for finding in findings:
            lines.append(
                f"[{finding.severity.value}] {finding.rule_id} {finding.title} ({finding.scanner})"
            )
            if finding.location:
                lines.append(f"  Location: {finding.location}")
    return "\n".join(lines)
