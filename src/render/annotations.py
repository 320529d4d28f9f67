"""Resolution of scanned references into renderable annotations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal, Protocol

from pydantic import BaseModel, ConfigDict

from utils import truncate

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, Mapping, Sequence

    from options.config import VirtualTextOptions
    from scan.references import ReferenceMatch

logger = logging.getLogger(__name__)

AnnotationStatus = Literal["resolved", "missing_key", "missing_locale"]
Placement = Literal["inline", "eol"]

MISSING_KEY_MARKER = "[missing key]"
LOCALE_NOT_LOADED_MARKER = "[locale not loaded]"


class Segment(BaseModel):
    """A run of annotation text with its style tag."""

    model_config = ConfigDict(frozen=True)

    text: str
    style: str


class Annotation(BaseModel):
    """Decoration to draw after one message reference."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    placement: Placement = "inline"
    segments: tuple[Segment, ...]
    key: str
    status: AnnotationStatus
    missing_locales: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return "".join(segment.text for segment in self.segments)

    def at_end_of_line(self) -> Annotation:
        return self.model_copy(update={"column": 0, "placement": "eol"})


class PlacementRejected(Exception):
    """Raised by a surface that cannot draw an annotation where requested."""


class AnnotationSurface(Protocol):
    def clear_annotations(self, buffer_id: Hashable, namespace: str) -> None: ...

    def place_annotation(
        self, buffer_id: Hashable, namespace: str, annotation: Annotation
    ) -> None: ...


def missing_locales_for(
    key: str,
    all_messages: Mapping[str, Mapping[str, str]],
    locales: Iterable[str],
) -> list[str]:
    """Locales whose map is absent or lacks ``key``, in ``locales`` order."""
    return [
        locale for locale in locales if key not in all_messages.get(locale, {})
    ]


def _primary_segment(
    key: str,
    current_messages: Mapping[str, str],
    options: VirtualTextOptions,
) -> tuple[Segment, AnnotationStatus]:
    if key in current_messages:
        value = truncate(current_messages[key], options.max_length)
        text = f'{options.prefix}"{value}"'
        return Segment(text=text, style=options.highlight_resolved), "resolved"

    if not current_messages:
        text = options.prefix + LOCALE_NOT_LOADED_MARKER
        return Segment(text=text, style=options.highlight_missing_locale), "missing_locale"

    text = options.prefix + MISSING_KEY_MARKER
    return Segment(text=text, style=options.highlight_missing_key), "missing_key"


def resolve_annotation(
    match: ReferenceMatch,
    current_messages: Mapping[str, str],
    all_messages: Mapping[str, Mapping[str, str]],
    locales: Sequence[str],
    options: VirtualTextOptions,
) -> Annotation:
    primary, status = _primary_segment(match.key, current_messages, options)
    segments = [primary]

    missing: list[str] = []
    if options.show_missing and locales:
        missing = missing_locales_for(match.key, all_messages, locales)
        if missing:
            segments.append(
                Segment(
                    text=options.missing_prefix + ", ".join(missing),
                    style=options.highlight_missing_locales,
                )
            )

    return Annotation(
        line=match.line,
        column=match.col_end + 1,
        segments=tuple(segments),
        key=match.key,
        status=status,
        missing_locales=tuple(missing),
    )


def resolve_annotations(
    matches: Iterable[ReferenceMatch],
    current_messages: Mapping[str, str],
    all_messages: Mapping[str, Mapping[str, str]],
    locales: Sequence[str],
    options: VirtualTextOptions,
) -> list[Annotation]:
    """Resolve every match against the current locale, preserving match order.

    An empty ``current_messages`` means the locale file was not loaded; a
    non-empty map without the key means the key itself is missing.
    """
    return [
        resolve_annotation(match, current_messages, all_messages, locales, options)
        for match in matches
    ]


def render_annotations(
    surface: AnnotationSurface,
    buffer_id: Hashable,
    namespace: str,
    annotations: Iterable[Annotation],
) -> int:
    """Replace the namespace's decorations with ``annotations``.

    Inline placement is tried first; when the surface rejects it the
    annotation moves to the end of its line. Returns the number placed.
    """
    surface.clear_annotations(buffer_id, namespace)

    placed = 0
    for annotation in annotations:
        try:
            surface.place_annotation(buffer_id, namespace, annotation)
        except PlacementRejected:
            fallback = annotation.at_end_of_line()
            try:
                surface.place_annotation(buffer_id, namespace, fallback)
            except PlacementRejected as exc:
                logger.debug(
                    "Dropped annotation for %r at line %d: %s",
                    annotation.key,
                    annotation.line,
                    exc,
                )
                continue
        placed += 1
    return placed


__all__ = [
    "LOCALE_NOT_LOADED_MARKER",
    "MISSING_KEY_MARKER",
    "Annotation",
    "AnnotationSurface",
    "PlacementRejected",
    "Segment",
    "missing_locales_for",
    "render_annotations",
    "resolve_annotation",
    "resolve_annotations",
]
