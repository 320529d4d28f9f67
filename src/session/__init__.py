"""Preview sessions: orchestration, timers, file watching and editor hosts."""

from session.host import EditorHost, InMemoryHost
from session.preview import NAMESPACE, PreviewSession, ProjectState
from session.timers import Debouncer, LoopScheduler, Scheduler, TimerHandle
from session.watch import FileWatcher, PollingWatcher

__all__ = [
    "NAMESPACE",
    "Debouncer",
    "EditorHost",
    "FileWatcher",
    "InMemoryHost",
    "LoopScheduler",
    "PollingWatcher",
    "PreviewSession",
    "ProjectState",
    "Scheduler",
    "TimerHandle",
]
