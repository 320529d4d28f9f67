"""Multi-locale hover preview for a single message key."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from utils import truncate

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

HOVER_MAX_LENGTH = 60
MAX_UNDERLINE = 40
MAX_PANEL_WIDTH = 80
INDENT = "  "
UNDERLINE_CHAR = "─"
MISSING_MARKER = "⚠ [missing]"

STYLE_TITLE = "Title"
STYLE_LOCALE = "Identifier"
STYLE_VALUE = "Comment"
STYLE_MISSING = "DiagnosticWarn"


class HighlightSpan(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int
    col_start: int
    col_end: int
    style: str


class HoverPanel(BaseModel):
    """Lines, highlights and size of a hover preview window."""

    model_config = ConfigDict(frozen=True)

    key: str
    lines: tuple[str, ...]
    highlights: tuple[HighlightSpan, ...]
    width: int
    height: int


def build_hover_panel(
    key: str,
    all_messages: Mapping[str, Mapping[str, str]],
    locales: Sequence[str],
    max_length: int = HOVER_MAX_LENGTH,
) -> HoverPanel:
    """Build the preview of ``key`` across ``locales``.

    Layout::

          greeting
          ────────────
          en: "Hello"
          de: ⚠ [missing]

    followed by a blank padding line.
    """
    lines = [
        INDENT + key,
        INDENT + UNDERLINE_CHAR * min(len(key) + 4, MAX_UNDERLINE),
    ]
    highlights = [
        HighlightSpan(
            line=0,
            col_start=len(INDENT),
            col_end=len(INDENT) + len(key),
            style=STYLE_TITLE,
        )
    ]

    for locale in locales:
        translation = all_messages.get(locale, {}).get(key)
        if translation is not None:
            line = f'{INDENT}{locale}: "{truncate(translation, max_length)}"'
            style = STYLE_VALUE
        else:
            line = f"{INDENT}{locale}: {MISSING_MARKER}"
            style = STYLE_MISSING

        lines.append(line)
        line_index = len(lines) - 1
        locale_end = len(INDENT) + len(locale)
        highlights.append(
            HighlightSpan(
                line=line_index,
                col_start=len(INDENT),
                col_end=locale_end,
                style=STYLE_LOCALE,
            )
        )
        highlights.append(
            HighlightSpan(
                line=line_index,
                col_start=locale_end + 2,
                col_end=len(line),
                style=style,
            )
        )

    lines.append("")

    width = min(max(len(line) for line in lines) + 2, MAX_PANEL_WIDTH)
    return HoverPanel(
        key=key,
        lines=tuple(lines),
        highlights=tuple(highlights),
        width=width,
        height=len(lines),
    )


__all__ = ["HighlightSpan", "HoverPanel", "build_hover_panel"]
