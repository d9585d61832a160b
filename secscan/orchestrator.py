"""Scan orchestrator: runs the requested scanners and records the outcome.

Every run follows the same pipeline:

    1. Build a ScanContext for the target
    2. Run the selected scanners in registry order
    3. Aggregate severity counts
    4. Evaluate the active policy
    5. Append a HistoryEntry
    6. Notify on policy failure (when configured) and return the ScanResult
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .cache import VulnerabilityCache
from .config import Settings
from .history import HistoryStore
from .policy import Policy, PolicyStore, evaluate_policy
from .result import Finding, HistoryEntry, ScanResult
from .rules import RuleCatalog
from .scanners import ScanContext, Scanner
from .scanners.dependency import DependencyScanner
from .scanners.headers import HeaderScanner
from .scanners.secret import SecretScanner
from .scanners.static import StaticScanner
from .scanners.xss import ScriptingScanner

logger = logging.getLogger(__name__)

STATIC_SCAN_TYPES = ("sast", "secrets", "xss")
DEFAULT_STATIC_SCAN_TYPES = ("sast", "secrets")
DYNAMIC_SCAN_TYPES = ("headers", "xss")

Notifier = Callable[[ScanResult], None]


@dataclass(frozen=True)
class ScanEntity:
    """A named piece of embedded source, e.g. a stored test suite."""

    id: str
    name: str
    code: str = ""
    language: str = "javascript"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanEntity":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            code=str(data.get("code") or ""),
            language=str(data.get("language") or "javascript"),
        )


class ScanOrchestrator:
    """Own the rule catalog, cache, policy and history, and expose the scan operations."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[RuleCatalog] = None,
        policy_store: Optional[PolicyStore] = None,
        history: Optional[HistoryStore] = None,
        cache: Optional[VulnerabilityCache] = None,
        notifier: Optional[Notifier] = None,
        dependency_transport: Optional[httpx.AsyncBaseTransport] = None,
        header_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.catalog = catalog or RuleCatalog()
        self.policy_store = policy_store or PolicyStore(self.settings.policy_path)
        if history is None:
            history = HistoryStore(self.settings.history_path, self.settings.max_history)
        self.history = history
        self.cache = cache if cache is not None else VulnerabilityCache(self.settings.cache_duration)
        self.notifier = notifier
        self.dependency_scanner = DependencyScanner(
            cache=self.cache,
            query_url=self.settings.osv_url,
            timeout=self.settings.dependency_timeout,
            max_concurrency=self.settings.max_concurrency,
            unknown_severity=self.settings.unknown_severity,
            transport=dependency_transport,
        )
        self.scanners: Dict[str, Scanner] = {
            "sast": StaticScanner(self.catalog),
            "secrets": SecretScanner(self.catalog),
            "dependencies": self.dependency_scanner,
            "headers": HeaderScanner(timeout=self.settings.header_timeout, transport=header_transport),
            "xss": ScriptingScanner(),
        }

    # ------------------------------------------------------------------
    # Rules and policy
    # ------------------------------------------------------------------
    def load_custom_rules(self, bundle: Mapping[str, Iterable[Any]]) -> int:
        return self.catalog.load_custom_rules(bundle)

    def load_secret_patterns(self, entries: Iterable[Any]) -> int:
        return self.catalog.load_secret_patterns(entries)

    def get_policy(self) -> Policy:
        return self.policy_store.policy

    def save_policy(self, policy: Union[Policy, Mapping[str, Any]]) -> Policy:
        return self.policy_store.save(policy)

    def restore_default_policy(self) -> Policy:
        return self.policy_store.restore_defaults()

    # ------------------------------------------------------------------
    # Scan operations
    # ------------------------------------------------------------------
    def run_static_scan(
        self,
        source: str,
        language: str = "javascript",
        scan_types: Sequence[str] = DEFAULT_STATIC_SCAN_TYPES,
        name: str = "Code Scan",
        target: Optional[str] = None,
    ) -> ScanResult:
        """Run pattern scanners over ``source``; ``target`` labels where it came from."""

        selected = self._select(scan_types, STATIC_SCAN_TYPES)
        context = ScanContext(source=source, language=language)
        return self._execute("code", name, target or name, context, selected)

    def run_dependency_scan(
        self,
        manifest: str,
        ecosystem: str = "npm",
        name: str = "Dependency Scan",
        target: Optional[str] = None,
    ) -> ScanResult:
        context = ScanContext(manifest=manifest, ecosystem=ecosystem)
        return self._execute("dependencies", name, target or name, context, ("dependencies",))

    async def run_dependency_scan_async(
        self,
        manifest: str,
        ecosystem: str = "npm",
        name: str = "Dependency Scan",
        target: Optional[str] = None,
    ) -> ScanResult:
        """Awaitable form of :meth:`run_dependency_scan` for callers already inside an event loop."""

        start = time.perf_counter()
        result = ScanResult(name=name, kind="dependencies", target=target or name)
        result.add_findings(await self.dependency_scanner.scan_async(manifest, ecosystem))
        return self._finish(result, start)

    def run_dynamic_scan(
        self,
        target: Any,
        scan_types: Sequence[str] = DYNAMIC_SCAN_TYPES,
        name: str = "Dynamic Scan",
    ) -> ScanResult:
        """Audit a URL (live headers) or a parsed document (meta policy and DOM checks)."""

        selected = self._select(scan_types, DYNAMIC_SCAN_TYPES)
        if isinstance(target, str):
            context = ScanContext(url=target)
            label = target
        else:
            context = ScanContext(document=target)
            label = "document"
        return self._execute("dynamic", name, label, context, selected)

    def run_full_scan(self, entity: Union[ScanEntity, Mapping[str, Any]]) -> ScanResult:
        """Static-scan an entity's embedded code and fold it into one result."""

        if not isinstance(entity, ScanEntity):
            entity = ScanEntity.from_dict(entity)
        start = time.perf_counter()
        findings: List[Finding] = []
        if entity.code:
            sub_result = self.run_static_scan(
                entity.code,
                language=entity.language,
                name="Code Analysis",
                target=entity.id or entity.name,
            )
            findings.extend(sub_result.findings)
        result = ScanResult(name=f"Full Scan: {entity.name}", kind="full", target=entity.id or entity.name)
        result.add_findings(findings)
        return self._finish(result, start)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def get_history(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        return self.history.list(limit)

    def get_statistics(self) -> Dict[str, Any]:
        return self.history.statistics()

    def clear_history(self) -> None:
        self.history.clear()

    # ------------------------------------------------------------------
    # Pipeline helpers
    # ------------------------------------------------------------------
    def _select(self, requested: Sequence[str], allowed: Tuple[str, ...]) -> Tuple[str, ...]:
        names = [name.strip().lower() for name in requested]
        unknown = [name for name in names if name not in allowed]
        if unknown:
            raise ValueError(f"Unsupported scan type(s) {unknown}; expected any of {list(allowed)}")
        # Registry order, not request order, so identical selections run identically.
        return tuple(name for name in self.scanners if name in names)

    def _execute(
        self,
        kind: str,
        name: str,
        target: str,
        context: ScanContext,
        scan_types: Tuple[str, ...],
    ) -> ScanResult:
        start = time.perf_counter()
        result = ScanResult(name=name, kind=kind, target=target)
        for scan_type in scan_types:
            findings = self.scanners[scan_type].scan(context)
            logger.debug("Scanner %s produced %d finding(s)", scan_type, len(findings))
            result.add_findings(findings)
        return self._finish(result, start)

    def _finish(self, result: ScanResult, start: float) -> ScanResult:
        result.duration_ms = int((time.perf_counter() - start) * 1000)
        policy = self.policy_store.policy
        result.policy_passed = evaluate_policy(result.severity_counts, policy)
        self.history.append(HistoryEntry.from_result(result))
        logger.info(
            "%s scan %s finished: %d finding(s), policy %s",
            result.kind,
            result.id,
            len(result.findings),
            "passed" if result.policy_passed else "failed",
        )
        if not result.policy_passed and policy.notify_on_failure and self.notifier is not None:
            self._notify(result)
        return result

    def _notify(self, result: ScanResult) -> None:
        try:
            self.notifier(result)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Policy failure notification failed for scan %s", result.id)
