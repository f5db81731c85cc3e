"""Timer scheduling for debounced editor work.

The editor never sleeps itself; it asks a ``Scheduler`` to run callbacks
later. ``AsyncioScheduler`` uses the running event loop, ``ManualScheduler``
keeps a virtual clock that tests advance explicitly.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Callable, Optional


class TimerHandle(ABC):
    """Handle of a scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback if it has not run yet."""

    @abstractmethod
    def cancelled(self) -> bool:
        """Check if the callback was cancelled."""


class Scheduler(ABC):
    """Runs callbacks after a delay (seconds)."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule ``callback`` to run after ``delay`` seconds."""

    @abstractmethod
    def time(self) -> float:
        """Current scheduler time in seconds."""


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioTimerHandle(self.loop.call_later(delay, callback))

    def time(self) -> float:
        return self.loop.time()


class _ManualTimerHandle(TimerHandle):
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Virtual-time scheduler. Nothing runs until ``advance`` is called."""

    def __init__(self):
        self._now = 0.0
        self._queue: list[tuple[float, int, _ManualTimerHandle]] = []
        self._sequence = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualTimerHandle(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.when, next(self._sequence), handle))
        return handle

    def time(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not run or been cancelled."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled())

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that becomes due.

        Callbacks scheduled by callbacks run too if they fall inside the
        window.

        Returns:
            Number of callbacks run
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, when)
            if handle.cancelled():
                continue
            handle.callback()
            ran += 1
        self._now = target
        return ran

    def advance_ms(self, milliseconds: float) -> int:
        """``advance`` in milliseconds."""
        return self.advance(milliseconds / 1000)

    def run_all(self) -> int:
        """Run every pending callback, advancing the clock as needed."""
        ran = 0
        while self._queue:
            when = self._queue[0][0]
            ran += self.advance(max(0.0, when - self._now))
        return ran


class Debouncer:
    """Trailing-edge debounce of a single callback on a Scheduler."""

    def __init__(self, scheduler: Scheduler, delay_ms: float, callback: Callable[[], None]):
        self._scheduler = scheduler
        self._delay = delay_ms / 1000
        self._callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        """(Re)start the quiet window."""
        self.cancel()
        self._handle = self._scheduler.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def flush(self) -> None:
        """Run the callback now if a call is pending."""
        if self._handle is not None:
            self.cancel()
            self._callback()

    def _fire(self) -> None:
        self._handle = None
        self._callback()
