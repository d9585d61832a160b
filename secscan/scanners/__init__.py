"""Scanner protocol and the context shared across scanners."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Protocol

from secscan.result import Finding

if TYPE_CHECKING:  # pragma: no cover
    from bs4 import BeautifulSoup


class Scanner(Protocol):
    """Protocol implemented by all scanners."""

    name: str

    def scan(self, context: "ScanContext") -> List[Finding]:
        """Analyze the provided context and return the findings."""


@dataclass
class ScanContext:
    """Bundle the scan target handed to every scanner.

    Each scanner reads the fields it understands and ignores the rest:
    source text for the pattern scanners, ``manifest`` for dependency lookups,
    ``url`` or ``document`` for header and DOM checks.
    """

    source: str = ""
    language: str = "javascript"
    manifest: str = ""
    ecosystem: str = "npm"
    url: Optional[str] = None
    document: Optional["BeautifulSoup"] = None
