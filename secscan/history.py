"""Bounded scan history backed by a local JSON-lines append log."""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional

from .result import COUNTED_SEVERITIES, HistoryEntry
from .utils import read_text_file

logger = logging.getLogger(__name__)

MAX_HISTORY = 100


class HistoryStore:
    """Most-recent-first summaries of past results.

    The log file holds one JSON entry per line, oldest first. New entries are
    appended; once the file holds more than ``max_entries`` lines it is
    rewritten with the retained entries only.
    """

    def __init__(self, path: Optional[Path] = None, max_entries: int = MAX_HISTORY) -> None:
        self.path = path
        self.max_entries = max_entries
        self._entries: Deque[HistoryEntry] = deque(maxlen=max_entries)
        self._logged_lines = 0
        self._lock = threading.Lock()
        self._load()

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries.appendleft(entry)
            if self.path is None:
                return
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(entry.to_dict()) + "\n")
                self._logged_lines += 1
                if self._logged_lines > self.max_entries:
                    self._rewrite()
            except OSError as exc:
                # The entry stays in memory; only the on-disk copy is lost.
                logger.warning("Failed to write history entry %s to %s: %s", entry.id, self.path, exc)

    def list(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        with self._lock:
            entries = list(self._entries)
        return entries if limit is None else entries[: max(limit, 0)]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            if self.path is not None and self.path.exists():
                try:
                    self.path.write_text("", encoding="utf-8")
                except OSError as exc:
                    logger.warning("Failed to truncate history log %s: %s", self.path, exc)
            self._logged_lines = 0

    def statistics(self, limit: int = MAX_HISTORY) -> Dict[str, Any]:
        """Aggregate pass/fail counts, findings per level and durations."""

        history = self.list(limit)
        totals = {severity.value.lower(): 0 for severity in COUNTED_SEVERITIES}
        by_kind: Dict[str, int] = {}
        total_duration = 0
        for entry in history:
            counts = entry.severity_counts
            for level in totals:
                totals[level] += getattr(counts, level)
            total_duration += entry.duration_ms
            by_kind[entry.kind] = by_kind.get(entry.kind, 0) + 1

        passed = sum(1 for entry in history if entry.policy_passed)
        return {
            "totalScans": len(history),
            "passedScans": passed,
            "failedScans": len(history) - passed,
            "totalFindings": totals,
            "averageDurationMs": round(total_duration / len(history)) if history else 0,
            "scansByKind": by_kind,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _load(self) -> None:
        if self.path is None:
            return
        try:
            text = read_text_file(self.path)
        except OSError as exc:
            logger.warning("Cannot read history log %s: %s", self.path, exc)
            return
        lines = [line for line in text.splitlines() if line.strip()]
        self._logged_lines = len(lines)
        for number, line in enumerate(lines, start=1):
            try:
                entry = HistoryEntry.from_dict(json.loads(line))
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Skipping unreadable history line %d in %s: %s", number, self.path, exc)
                continue
            self._entries.appendleft(entry)

    def _rewrite(self) -> None:
        ordered = reversed(self._entries)
        payload = "".join(json.dumps(entry.to_dict()) + "\n" for entry in ordered)
        self.path.write_text(payload, encoding="utf-8")
        self._logged_lines = len(self._entries)
