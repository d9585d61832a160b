"""Text helpers shared by the pattern scanners."""

from __future__ import annotations

from typing import Tuple

MASK = "***"
MASK_SEPARATOR = "..."


def line_and_column(text: str, offset: int) -> Tuple[int, int]:
    """Return the 1-indexed line and column of ``offset`` within ``text``."""

    line = text.count("\n", 0, offset) + 1
    column = offset - text.rfind("\n", 0, offset)
    return line, column


def mask_secret(secret: str) -> str:
    """Keep the first and last four characters of a secret, drop the rest."""

    if len(secret) <= 8:
        return MASK
    return secret[:4] + MASK_SEPARATOR + secret[-4:]


def truncate(value: str, limit: int) -> str:
    return value[:limit]
