"""Tolerant scanner for ``m.key(...)`` and ``m["key"](...)`` message references.

This is deliberately not a parser: each physical line is scanned on its own,
and the only structure tracked is parenthesis depth and quoted strings inside
the call arguments, so that ``m.greet("a) b(c")`` closes on the real paren.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from collections.abc import Iterator

DEFAULT_RECEIVER = "m"

_BOUNDARY_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"
)
_KEY_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_OPEN_PAREN_RE = re.compile(r"\s*\(")
_BRACKET_KEY_RE = re.compile(r"""\s*(["'])(.*?)\1\s*\]""")
_STRING_QUOTES = frozenset("\"'`")


class ReferenceMatch(BaseModel):
    """A located message reference.

    ``line`` and both columns are zero-based; ``col_end`` points at the
    closing parenthesis of the call.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    line: int
    col_start: int
    col_end: int

    def contains(self, line: int, column: int) -> bool:
        return line == self.line and self.col_start <= column <= self.col_end


def find_closing_paren(line: str, open_pos: int) -> int | None:
    """Return the index of the paren closing the one at ``open_pos``.

    Quoted strings are skipped as a unit; a quote preceded by a backslash
    does not terminate the string. Returns None when the call does not close
    on this line.
    """
    depth = 1
    pos = open_pos + 1
    length = len(line)

    while pos < length:
        char = line[pos]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return pos
        elif char in _STRING_QUOTES:
            pos += 1
            while pos < length:
                if line[pos] == char and line[pos - 1] != "\\":
                    break
                pos += 1
        pos += 1

    return None


def _iter_receiver_positions(line: str, token: str) -> Iterator[int]:
    """Yield every start index of ``token`` not glued to a preceding identifier."""
    pos = line.find(token)
    while pos != -1:
        if pos == 0 or line[pos - 1] not in _BOUNDARY_CHARS:
            yield pos
        pos = line.find(token, pos + 1)


def _open_paren_after(line: str, pos: int) -> int | None:
    match = _OPEN_PAREN_RE.match(line, pos)
    if match is None:
        return None
    return match.end() - 1


def _scan_dot_access(line: str, line_index: int, receiver: str) -> Iterator[ReferenceMatch]:
    token = f"{receiver}."
    resume = 0
    for start in _iter_receiver_positions(line, token):
        if start < resume:
            continue
        after_dot = start + len(token)
        resume = after_dot

        key_match = _KEY_RE.match(line, after_dot)
        if key_match is None:
            continue

        open_pos = _open_paren_after(line, key_match.end())
        if open_pos is None:
            continue

        close_pos = find_closing_paren(line, open_pos)
        if close_pos is None:
            resume = open_pos + 1
            continue

        yield ReferenceMatch(
            key=key_match.group(0),
            line=line_index,
            col_start=start,
            col_end=close_pos,
        )


def _scan_bracket_access(
    line: str, line_index: int, receiver: str
) -> Iterator[ReferenceMatch]:
    token = f"{receiver}["
    resume = 0
    for start in _iter_receiver_positions(line, token):
        if start < resume:
            continue
        after_bracket = start + len(token)
        resume = after_bracket

        key_match = _BRACKET_KEY_RE.match(line, after_bracket)
        if key_match is None:
            continue

        open_pos = _open_paren_after(line, key_match.end())
        if open_pos is None:
            continue

        close_pos = find_closing_paren(line, open_pos)
        if close_pos is None:
            resume = open_pos + 1
            continue

        yield ReferenceMatch(
            key=key_match.group(2),
            line=line_index,
            col_start=start,
            col_end=close_pos,
        )


def scan_line(
    line: str, line_index: int = 0, receiver: str = DEFAULT_RECEIVER
) -> Iterator[ReferenceMatch]:
    """Scan one physical line: dot-access matches first, then bracket-access."""
    yield from _scan_dot_access(line, line_index, receiver)
    yield from _scan_bracket_access(line, line_index, receiver)


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, so line indexes agree with editor line numbers."""
    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def scan_text(text: str, receiver: str = DEFAULT_RECEIVER) -> Iterator[ReferenceMatch]:
    """Lazily yield every message reference in ``text``."""
    for line_index, line in enumerate(split_lines(text)):
        yield from scan_line(line, line_index, receiver)


def find_references(text: str, receiver: str = DEFAULT_RECEIVER) -> list[ReferenceMatch]:
    return list(scan_text(text, receiver))


def key_at(
    text: str, line: int, column: int, receiver: str = DEFAULT_RECEIVER
) -> str | None:
    """Return the key of the reference covering ``(line, column)``, if any."""
    lines = split_lines(text)
    if line < 0 or line >= len(lines):
        return None

    for match in scan_line(lines[line], line, receiver):
        if match.contains(line, column):
            return match.key
    return None


__all__ = [
    "DEFAULT_RECEIVER",
    "ReferenceMatch",
    "find_closing_paren",
    "find_references",
    "key_at",
    "scan_line",
    "scan_text",
    "split_lines",
]
