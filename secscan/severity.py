"""Severity definitions for scanner findings."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Enumerate the supported severity levels for findings.

    ``INFO`` marks informational placeholders (parse errors, fetch failures)
    that sit outside the four counted levels.
    """

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def counted(self) -> bool:
        """Return True for the four levels that feed severity counts."""

        return self is not Severity.INFO

    @property
    def rank(self) -> int:
        """Return an integer ranking, 0 being the most severe."""

        return SEVERITY_ORDER.index(self)

    @classmethod
    def parse(cls, value: object) -> Optional["Severity"]:
        """Return the matching severity for ``value`` (case-insensitive) or ``None``."""

        if isinstance(value, Severity):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


SEVERITY_ORDER = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
)
