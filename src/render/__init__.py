"""Annotation and hover rendering for resolved message references."""

from render.annotations import (
    Annotation,
    AnnotationSurface,
    PlacementRejected,
    Segment,
    missing_locales_for,
    render_annotations,
    resolve_annotations,
)
from render.hover import HighlightSpan, HoverPanel, build_hover_panel

__all__ = [
    "Annotation",
    "AnnotationSurface",
    "HighlightSpan",
    "HoverPanel",
    "PlacementRejected",
    "Segment",
    "build_hover_panel",
    "missing_locales_for",
    "render_annotations",
    "resolve_annotations",
]
