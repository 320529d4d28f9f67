"""Preview session: project state, caches and the render pipeline.

A session owns everything that lives longer than one render: the detected
project, the per-locale message maps, attached buffers and pending timers.
Message maps are only ever replaced wholesale, never edited in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from messages.loader import load_messages
from messages.project import find_project_root, load_settings, message_path
from options.config import PreviewOptions
from render.annotations import render_annotations, resolve_annotations
from render.hover import build_hover_panel
from scan.files import is_source_file
from scan.references import key_at, scan_text
from session.timers import Debouncer, LoopScheduler
from session.watch import PollingWatcher

if TYPE_CHECKING:
    from collections.abc import Hashable

    from messages.loader import FlatMessageMap
    from messages.project import ProjectSettings
    from render.annotations import Annotation
    from session.host import EditorHost
    from session.timers import Scheduler
    from session.watch import FileWatcher

logger = logging.getLogger(__name__)

NAMESPACE = "lazy_watson"
_HOVER_CONTEXT = "hover"


@dataclass
class ProjectState:
    project_root: Path | None = None
    settings: ProjectSettings | None = None
    current_locale: str | None = None
    messages: dict[str, FlatMessageMap] = field(default_factory=dict)

    @property
    def locales(self) -> tuple[str, ...]:
        return self.settings.locales if self.settings else ()


class PreviewSession:
    """Keeps translation previews of attached buffers up to date."""

    def __init__(
        self,
        host: EditorHost,
        options: PreviewOptions | None = None,
        scheduler: Scheduler | None = None,
        watcher: FileWatcher | None = None,
        namespace: str = NAMESPACE,
    ) -> None:
        self.host = host
        self.options = options or PreviewOptions()
        self.scheduler = scheduler or LoopScheduler()
        self.watcher = watcher if watcher is not None else PollingWatcher()
        self.namespace = namespace
        self.enabled = self.options.enabled
        self.state = ProjectState()
        self.attached: set[Hashable] = set()
        self._debouncer = Debouncer(self.scheduler)

    # -- project -----------------------------------------------------------

    @property
    def project_detected(self) -> bool:
        return self.state.project_root is not None and self.state.settings is not None

    def _discover_project(self, file_path: str) -> None:
        marker = self.options.project_marker_path
        root = find_project_root(file_path, marker)
        if root is None:
            return

        self.state.project_root = root
        settings = load_settings(root, marker)
        if settings is None:
            self._watch_settings_file()
            return

        self._apply_settings(settings)
        logger.info(
            "Inlang project at %s (base locale %s, locales %s)",
            root,
            settings.base_locale,
            ", ".join(settings.locales),
        )

    def _apply_settings(self, settings: ProjectSettings) -> None:
        self.state.settings = settings
        if self.state.current_locale not in settings.locales:
            self.state.current_locale = settings.base_locale
        self.state.messages = {}
        self.load_all_locales()
        self._setup_watches()

    def _load_locale(self, locale: str) -> FlatMessageMap:
        assert self.state.project_root is not None
        assert self.state.settings is not None
        messages = load_messages(
            self.state.project_root, self.state.settings.path_pattern, locale
        )
        self.state.messages[locale] = messages
        return messages

    def load_all_locales(self) -> None:
        if not self.project_detected:
            return
        for locale in self.state.locales:
            self._load_locale(locale)

    def _watch_settings_file(self) -> None:
        self.watcher.clear()
        if self.state.project_root is None:
            return
        settings_file = self.state.project_root / self.options.project_marker_path
        self.watcher.watch(settings_file, lambda _path: self.on_settings_changed())

    def _setup_watches(self) -> None:
        self._watch_settings_file()
        if not self.project_detected:
            return
        assert self.state.project_root is not None
        assert self.state.settings is not None

        for locale in self.state.locales:
            path = message_path(
                self.state.project_root, self.state.settings.path_pattern, locale
            )
            if path.is_file():
                self.watcher.watch(
                    path,
                    lambda _path, locale=locale: self.on_message_file_changed(locale),
                )

    # -- buffers -----------------------------------------------------------

    def attach(self, buffer_id: Hashable) -> bool:
        """Start previewing a buffer; returns False for unsupported buffers."""
        if buffer_id in self.attached:
            return True

        file_path = self.host.buffer_path(buffer_id)
        if not file_path or not is_source_file(Path(file_path)):
            return False

        if self.state.project_root is None:
            self._discover_project(file_path)

        self.attached.add(buffer_id)
        if self.enabled:
            self.update_buffer(buffer_id)
        return True

    def detach(self, buffer_id: Hashable) -> None:
        self.attached.discard(buffer_id)
        self._debouncer.cancel(buffer_id)

    def on_text_changed(self, buffer_id: Hashable) -> None:
        if buffer_id not in self.attached:
            return
        self._debouncer.trigger(
            buffer_id,
            self.options.debounce_ms,
            lambda: self._debounced_update(buffer_id),
        )

    def _debounced_update(self, buffer_id: Hashable) -> None:
        if self.enabled and self.host.is_valid(buffer_id):
            self.update_buffer(buffer_id)

    def annotations_for(self, buffer_id: Hashable) -> list[Annotation]:
        """Resolve the annotations of a buffer without drawing them."""
        locale = self.state.current_locale
        current = self.state.messages.get(locale, {}) if locale else {}
        matches = scan_text(self.host.buffer_text(buffer_id), self.options.receiver)
        return resolve_annotations(
            matches,
            current,
            self.state.messages,
            self.state.locales,
            self.options.virtual_text,
        )

    def update_buffer(self, buffer_id: Hashable) -> None:
        if not self.enabled or not self.host.is_valid(buffer_id):
            return
        if not self.project_detected:
            self.host.clear_annotations(buffer_id, self.namespace)
            return
        render_annotations(
            self.host, buffer_id, self.namespace, self.annotations_for(buffer_id)
        )

    def update_all(self) -> None:
        for buffer_id in list(self.attached):
            if self.host.is_valid(buffer_id):
                self.update_buffer(buffer_id)

    # -- commands ----------------------------------------------------------

    def enable(self) -> None:
        self.enabled = True
        self.update_all()

    def disable(self) -> None:
        self.enabled = False
        self._debouncer.cancel_all()
        for buffer_id in self.attached:
            if self.host.is_valid(buffer_id):
                self.host.clear_annotations(buffer_id, self.namespace)

    def toggle(self) -> bool:
        if self.enabled:
            self.disable()
            logger.info("Lazy Watson disabled")
        else:
            self.enable()
            logger.info("Lazy Watson enabled")
        return self.enabled

    def refresh(self) -> None:
        """Drop every cached map, reload all locales and re-render."""
        root = self.state.project_root
        if root is not None and self.state.settings is None:
            settings = load_settings(root, self.options.project_marker_path)
            if settings is not None:
                self._apply_settings(settings)
        else:
            self.state.messages = {}
            self.load_all_locales()
        self.update_all()
        logger.info("Lazy Watson translations refreshed")

    def locale_choices(self) -> list[tuple[str, str]]:
        """``(locale, label)`` pairs, marking the current and base locales."""
        settings = self.state.settings
        if settings is None:
            return []
        choices = []
        for locale in settings.locales:
            label = locale
            if locale == self.state.current_locale:
                label += " (current)"
            elif locale == settings.base_locale:
                label += " (base)"
            choices.append((locale, label))
        return choices

    def select_locale(self, locale: str) -> bool:
        """Switch the displayed locale, loading its messages if uncached."""
        if self.state.settings is None:
            logger.warning("No inlang project found")
            return False
        if locale not in self.state.locales:
            logger.warning(
                "Unknown locale %r (project locales: %s)",
                locale,
                ", ".join(self.state.locales),
            )
            return False

        self.state.current_locale = locale
        if locale not in self.state.messages:
            self._load_locale(locale)
        self.update_all()
        logger.info("Locale set to: %s", locale)
        return True

    def key_at(self, buffer_id: Hashable, line: int, column: int) -> str | None:
        return key_at(self.host.buffer_text(buffer_id), line, column, self.options.receiver)

    def key_at_cursor(self, buffer_id: Hashable) -> str | None:
        line, column = self.host.cursor(buffer_id)
        return self.key_at(buffer_id, line, column)

    def show_hover(self, buffer_id: Hashable) -> bool:
        """Open the multi-locale preview for the key under the cursor."""
        key = self.key_at_cursor(buffer_id)
        if key is None or self.state.settings is None:
            return False

        panel = build_hover_panel(
            key,
            self.state.messages,
            self.state.locales,
            max_length=self.options.virtual_text.max_length,
        )
        self.host.close_panel()
        self.host.open_panel(buffer_id, panel)
        return True

    def close_hover(self) -> None:
        self._debouncer.cancel(_HOVER_CONTEXT)
        self.host.close_panel()

    def on_cursor_hold(self, buffer_id: Hashable) -> None:
        if not (self.options.hover.enabled and self.enabled):
            return
        if buffer_id not in self.attached:
            return
        self._debouncer.trigger(
            _HOVER_CONTEXT,
            self.options.hover.delay_ms,
            lambda: self._delayed_hover(buffer_id),
        )

    def _delayed_hover(self, buffer_id: Hashable) -> None:
        if self.enabled and self.host.is_valid(buffer_id):
            self.show_hover(buffer_id)

    def on_cursor_moved(self, buffer_id: Hashable) -> None:
        self.close_hover()

    # -- file notifications ------------------------------------------------

    def on_message_file_changed(self, locale: str) -> None:
        """Reload exactly one locale, then re-render every attached buffer."""
        if not self.project_detected:
            return
        logger.debug("Reloading messages for %s", locale)
        self._load_locale(locale)
        self.update_all()

    def on_settings_changed(self) -> None:
        root = self.state.project_root
        if root is None:
            return
        settings = load_settings(root, self.options.project_marker_path)
        if settings is None:
            self.state.settings = None
            self.state.messages = {}
            # Keep watching the settings file so a fix is picked up.
            self._watch_settings_file()
        else:
            self._apply_settings(settings)
        self.update_all()

    def close(self) -> None:
        self._debouncer.cancel_all()
        self.watcher.clear()
        self.host.close_panel()
        self.attached.clear()


__all__ = ["NAMESPACE", "PreviewSession", "ProjectState"]
