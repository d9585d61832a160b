"""HTML document loading for the document-mode scanners."""

from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup

from .fileio import read_text_file


def load_document(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def load_document_file(path: Path) -> BeautifulSoup:
    return load_document(read_text_file(path))
