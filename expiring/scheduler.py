from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, Protocol

log = logging.getLogger("expiring.scheduler")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Anything with asyncio's ``call_later`` shape; event loops qualify."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


def running_loop() -> Scheduler:
    # RuntimeError from asyncio when called outside a running loop
    return asyncio.get_running_loop()


class ManualTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self._when = when
        self._callback = callback
        self._args = args
        self._cancelled = False
        self._fired = False

    def when(self) -> float:
        return self._when

    def cancel(self) -> None:
        if not self._fired:
            self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def live(self) -> bool:
        return not (self._cancelled or self._fired)

    def _run(self) -> None:
        self._fired = True
        self._callback(*self._args)


class ManualScheduler:
    """
    Virtual clock with the ``call_later`` interface.

    Nothing fires until ``advance`` is called; timers then run in deadline
    order (ties in scheduling order) with ``time()`` pinned to each deadline.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, ManualTimer]] = []
        self._seq = itertools.count()
        self._fired = 0

    def time(self) -> float:
        return self._now

    @property
    def fired(self) -> int:
        return self._fired

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualTimer:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay!r}")
        timer = ManualTimer(self._now + delay, callback, args)
        heapq.heappush(self._queue, (timer.when(), next(self._seq), timer))
        return timer

    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if timer.live)

    def advance(self, delta: float) -> None:
        if delta < 0:
            raise ValueError(f"cannot move the clock backwards ({delta!r})")
        target = self._now + delta
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if not timer.live:
                continue
            self._now = when
            self._fired += 1
            timer._run()
        self._now = target
        log.debug("clock advanced to %s (%d pending)", self._now, self.pending())
