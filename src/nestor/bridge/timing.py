"""Deferred-callback scheduling for batched bridges.

The bridge manager never touches a clock directly.  It asks a
``Scheduler`` to run a callback after a delay and keeps the returned
``CancelToken`` so the flush can be cancelled synchronously.

Two implementations:
- ``AsyncioScheduler``: ``loop.call_later`` on the running (or given) loop.
- ``VirtualClock``: deterministic, advanced by hand.  Used in tests to
  assert exact coalescing behaviour.

"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable


class CancelToken(Protocol):
    """Handle for a scheduled callback."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after ``after_ms`` milliseconds."""

    def schedule(self, after_ms: float, callback: Callable[[], None]) -> CancelToken: ...


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later``.

    Args:
        loop: Event loop to schedule on.  When omitted, the running loop is
            looked up at each ``schedule()`` call, so a manager can be
            created before the loop starts.

    """

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, after_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        return loop.call_later(after_ms / 1000, callback)


@dataclass(slots=True)
class _VirtualTimer:
    """A callback waiting on a ``VirtualClock``."""

    due_ms: float
    callback: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """Deterministic scheduler driven by ``advance()``.

    Timers due at the same instant fire in scheduling order.  Callbacks
    may schedule further timers; those fire in the same ``advance()`` if
    they fall due within it.

    """

    __slots__ = ("_heap", "_now_ms", "_seq")

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = start_ms
        self._heap: list[tuple[float, int, _VirtualTimer]] = []
        self._seq = itertools.count()

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def pending(self) -> int:
        """Number of scheduled, not-yet-cancelled timers."""
        return sum(1 for _, _, timer in self._heap if not timer.cancelled)

    def schedule(self, after_ms: float, callback: Callable[[], None]) -> _VirtualTimer:
        timer = _VirtualTimer(due_ms=self._now_ms + max(after_ms, 0.0), callback=callback)
        heapq.heappush(self._heap, (timer.due_ms, next(self._seq), timer))
        return timer

    def advance(self, ms: float) -> int:
        """Move time forward by ``ms`` and fire due timers.

        Returns:
            Number of callbacks fired.

        """
        target = self._now_ms + ms
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            due, _, timer = heapq.heappop(self._heap)
            self._now_ms = due
            if timer.cancelled:
                continue
            timer.callback()
            fired += 1
        self._now_ms = target
        return fired

    def run_all(self) -> int:
        """Fire every pending timer regardless of due time."""
        fired = 0
        while self._heap:
            due, _, timer = heapq.heappop(self._heap)
            self._now_ms = max(self._now_ms, due)
            if timer.cancelled:
                continue
            timer.callback()
            fired += 1
        return fired
