"""Time-bounded memoization of vulnerability lookups."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .result import Finding

DEFAULT_CACHE_DURATION = 3600.0


@dataclass(frozen=True)
class CacheEntry:
    key: str
    findings: Tuple[Finding, ...]
    fetched_at: float


def cache_key(ecosystem: str, package: str, version: str) -> str:
    return f"{ecosystem.lower()}:{package}@{version}"


class VulnerabilityCache:
    """Keyed by ``ecosystem:package@version``; entries older than ``duration`` seconds are absent."""

    def __init__(
        self,
        duration: float = DEFAULT_CACHE_DURATION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration = duration
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[Finding]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at >= self.duration:
                del self._entries[key]
                return None
            return list(entry.findings)

    def put(self, key: str, findings: List[Finding]) -> None:
        entry = CacheEntry(key=key, findings=tuple(findings), fetched_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
