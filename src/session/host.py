"""Editor surface used by a preview session, plus an in-memory implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from render.annotations import Annotation, PlacementRejected
from scan.references import split_lines

if TYPE_CHECKING:
    from collections.abc import Hashable

    from render.hover import HoverPanel


class EditorHost(Protocol):
    """Buffers, decorations and the floating preview of a host editor."""

    def buffer_path(self, buffer_id: Hashable) -> str: ...

    def buffer_text(self, buffer_id: Hashable) -> str: ...

    def is_valid(self, buffer_id: Hashable) -> bool: ...

    def cursor(self, buffer_id: Hashable) -> tuple[int, int]: ...

    def clear_annotations(self, buffer_id: Hashable, namespace: str) -> None: ...

    def place_annotation(
        self, buffer_id: Hashable, namespace: str, annotation: Annotation
    ) -> None: ...

    def open_panel(self, buffer_id: Hashable, panel: HoverPanel) -> None: ...

    def close_panel(self) -> None: ...


@dataclass
class Buffer:
    path: str
    text: str = ""
    cursor: tuple[int, int] = (0, 0)
    annotations: dict[str, list[Annotation]] = field(default_factory=dict)


class InMemoryHost:
    """Buffers held in memory; decorations are recorded instead of drawn.

    Like a real editor, an inline decoration past the end of its line is
    rejected with ``PlacementRejected``.
    """

    def __init__(self) -> None:
        self.buffers: dict[Hashable, Buffer] = {}
        self.panel: HoverPanel | None = None
        self.panel_buffer: Hashable | None = None
        self._next_id = 1

    def open_buffer(self, path: str | Path, text: str | None = None) -> int:
        if text is None:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        buffer_id = self._next_id
        self._next_id += 1
        self.buffers[buffer_id] = Buffer(path=str(path), text=text)
        return buffer_id

    def close_buffer(self, buffer_id: Hashable) -> None:
        self.buffers.pop(buffer_id, None)

    def set_text(self, buffer_id: Hashable, text: str) -> None:
        self.buffers[buffer_id].text = text

    def set_cursor(self, buffer_id: Hashable, line: int, column: int) -> None:
        self.buffers[buffer_id].cursor = (line, column)

    def annotations(self, buffer_id: Hashable, namespace: str) -> list[Annotation]:
        return list(self.buffers[buffer_id].annotations.get(namespace, []))

    def buffer_path(self, buffer_id: Hashable) -> str:
        return self.buffers[buffer_id].path

    def buffer_text(self, buffer_id: Hashable) -> str:
        return self.buffers[buffer_id].text

    def is_valid(self, buffer_id: Hashable) -> bool:
        return buffer_id in self.buffers

    def cursor(self, buffer_id: Hashable) -> tuple[int, int]:
        return self.buffers[buffer_id].cursor

    def clear_annotations(self, buffer_id: Hashable, namespace: str) -> None:
        buffer = self.buffers.get(buffer_id)
        if buffer is not None:
            buffer.annotations.pop(namespace, None)

    def place_annotation(
        self, buffer_id: Hashable, namespace: str, annotation: Annotation
    ) -> None:
        buffer = self.buffers.get(buffer_id)
        if buffer is None:
            msg = f"Unknown buffer {buffer_id!r}"
            raise PlacementRejected(msg)

        lines = split_lines(buffer.text)
        if annotation.line >= len(lines):
            msg = f"Line {annotation.line} is outside the buffer"
            raise PlacementRejected(msg)
        if annotation.placement == "inline" and annotation.column > len(
            lines[annotation.line]
        ):
            msg = f"Column {annotation.column} is past the end of line {annotation.line}"
            raise PlacementRejected(msg)

        buffer.annotations.setdefault(namespace, []).append(annotation)

    def open_panel(self, buffer_id: Hashable, panel: HoverPanel) -> None:
        self.panel = panel
        self.panel_buffer = buffer_id

    def close_panel(self) -> None:
        self.panel = None
        self.panel_buffer = None


__all__ = ["Buffer", "EditorHost", "InMemoryHost"]
