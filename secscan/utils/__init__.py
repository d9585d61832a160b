"""Utility helpers for the scanner."""

from .fileio import read_structured_file, read_text_file, read_yaml_file, write_yaml_file
from .code import iter_code_files, language_for_path
from .document import load_document, load_document_file
from .text import line_and_column, mask_secret, truncate

__all__ = [
    "read_structured_file",
    "read_text_file",
    "read_yaml_file",
    "write_yaml_file",
    "iter_code_files",
    "language_for_path",
    "load_document",
    "load_document_file",
    "line_and_column",
    "mask_secret",
    "truncate",
]
