"""Shared display-text utilities."""

from __future__ import annotations

import re

ELLIPSIS = "..."

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_display(text: str | None) -> str:
    """Collapse a message onto one trimmed line.

    Examples:
        >>> normalize_display("Hello\\n   world\\r\\n")
        'Hello world'
    """
    if not text:
        return ""
    text = text.replace("\n", " ").replace("\r", "")
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate(text: str | None, max_length: int) -> str:
    """Normalize ``text`` and cut it to ``max_length`` characters.

    Over-long text keeps ``max_length - 3`` characters followed by ``...``.

    Examples:
        >>> truncate("abcdefghijklmnop", 10)
        'abcdefg...'
        >>> truncate("short", 10)
        'short'
    """
    text = normalize_display(text)
    if len(text) > max_length:
        return text[: max(max_length - len(ELLIPSIS), 0)] + ELLIPSIS
    return text
