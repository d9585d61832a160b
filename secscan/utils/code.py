"""Source code helper utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Generator, Iterable, Optional

LANGUAGE_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "javascript",
    ".tsx": "javascript",
    ".py": "python",
    ".robot": "robot",
}


def iter_code_files(
    root_paths: Iterable[str],
    extensions: tuple[str, ...] = tuple(LANGUAGE_BY_EXTENSION),
) -> Generator[Path, None, None]:
    """Yield code files beneath the provided paths; plain files are yielded as-is."""

    for root in root_paths:
        path = Path(root)
        if path.is_file():
            yield path
            continue
        for candidate in sorted(path.rglob("*")):
            if candidate.suffix in extensions and candidate.is_file():
                yield candidate


def language_for_path(path: Path) -> Optional[str]:
    return LANGUAGE_BY_EXTENSION.get(path.suffix.lower())
