"""Cancellable timers for debounced renders and delayed hovers.

Timers never fire on their own thread: the owner of a ``LoopScheduler``
calls ``run_due()`` from its event loop, so every callback runs on the same
thread that scans and renders.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable


@dataclass(eq=False)
class TimerHandle:
    due: float
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class Scheduler(Protocol):
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...

    def cancel(self, handle: TimerHandle) -> None: ...


class LoopScheduler:
    """Single-threaded scheduler driven by explicit ``run_due`` calls."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._pending: list[TimerHandle] = []

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(due=self._clock() + max(delay_ms, 0) / 1000, callback=callback)
        self._pending.append(handle)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancelled = True
        if handle in self._pending:
            self._pending.remove(handle)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def next_delay(self) -> float | None:
        """Seconds until the earliest pending timer, or None when idle."""
        if not self._pending:
            return None
        earliest = min(handle.due for handle in self._pending)
        return max(earliest - self._clock(), 0.0)

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed; return how many fired."""
        now = self._clock()
        due = sorted(
            (handle for handle in self._pending if handle.due <= now),
            key=lambda handle: handle.due,
        )
        for handle in due:
            self._pending.remove(handle)

        fired = 0
        for handle in due:
            # An earlier callback in this batch may have cancelled it.
            if not handle.active:
                continue
            handle.fired = True
            handle.callback()
            fired += 1
        return fired


class Debouncer:
    """Keeps at most one outstanding timer per context key."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handles: dict[Hashable, TimerHandle] = {}

    def trigger(
        self, context: Hashable, delay_ms: int, callback: Callable[[], None]
    ) -> TimerHandle:
        self.cancel(context)

        def fire() -> None:
            if self._handles.get(context) is handle:
                del self._handles[context]
            callback()

        handle = self._scheduler.schedule(delay_ms, fire)
        self._handles[context] = handle
        return handle

    def cancel(self, context: Hashable) -> None:
        handle = self._handles.pop(context, None)
        if handle is not None:
            self._scheduler.cancel(handle)

    def cancel_all(self) -> None:
        for context in list(self._handles):
            self.cancel(context)

    def is_pending(self, context: Hashable) -> bool:
        return context in self._handles


__all__ = ["Debouncer", "LoopScheduler", "Scheduler", "TimerHandle"]
