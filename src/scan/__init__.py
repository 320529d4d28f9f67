"""Message reference scanning and source file discovery."""

from scan.files import SOURCE_SUFFIXES, find_source_files, is_source_file
from scan.references import (
    DEFAULT_RECEIVER,
    ReferenceMatch,
    find_references,
    key_at,
    scan_line,
    scan_text,
)

__all__ = [
    "DEFAULT_RECEIVER",
    "SOURCE_SUFFIXES",
    "ReferenceMatch",
    "find_references",
    "find_source_files",
    "is_source_file",
    "key_at",
    "scan_line",
    "scan_text",
]
