"""Polling watcher for message and settings files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

FileSnapshot = tuple[int, int] | None


class FileWatcher(Protocol):
    def watch(self, path: Path, callback: Callable[[Path], None]) -> None: ...

    def clear(self) -> None: ...


def _snapshot(path: Path) -> FileSnapshot:
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_mtime_ns, stat.st_size)


class PollingWatcher:
    """Detects changes by comparing ``(mtime_ns, size)`` on every ``poll``."""

    def __init__(self) -> None:
        self._watches: dict[Path, tuple[FileSnapshot, list[Callable[[Path], None]]]] = {}

    def watch(self, path: Path, callback: Callable[[Path], None]) -> None:
        path = Path(path)
        if path in self._watches:
            self._watches[path][1].append(callback)
            return
        self._watches[path] = (_snapshot(path), [callback])

    def clear(self) -> None:
        self._watches = {}

    @property
    def paths(self) -> list[Path]:
        return sorted(self._watches)

    def poll(self) -> list[Path]:
        """Fire callbacks for files that changed since the last poll."""
        changed: list[Path] = []
        for path, (previous, callbacks) in list(self._watches.items()):
            current = _snapshot(path)
            if current == previous:
                continue
            # A callback may call clear() and re-register; skip stale entries.
            if self._watches.get(path, (None, None))[1] is not callbacks:
                continue
            self._watches[path] = (current, callbacks)
            changed.append(path)
            logger.debug("File changed: %s", path)
            for callback in list(callbacks):
                callback(path)
        return changed


__all__ = ["FileWatcher", "PollingWatcher"]
