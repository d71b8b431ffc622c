"""
Periodic task scheduling for the regenerator and the hash roller.

``AsyncioScheduler`` runs ticks on an event loop; ``ManualScheduler`` runs them
on a virtual clock so timer behaviour can be tested deterministically.
"""
import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from .async_loop import get_event_loop

TickCallback = Callable[[], Awaitable[None]]


class ScheduledTask(ABC):
    """Handle for a periodic task"""

    @abstractmethod
    def cancel(self) -> None:
        """Stop future ticks. Idempotent; an in-flight tick is not aborted."""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass

    @property
    def done(self) -> bool:
        """True once no further ticks can happen (cancelled, or the loop is gone)"""
        return self.cancelled


class Scheduler(ABC):
    """Interface for periodic schedulers"""

    @abstractmethod
    def call_every(self, interval: float, callback: TickCallback) -> ScheduledTask:
        """
        Run ``callback`` every ``interval`` seconds, first tick after one interval

        Args:
            interval: Period in seconds
            callback: Async callable invoked on each tick

        Returns:
            Handle used to cancel the task
        """
        pass


class _AsyncioTask(ScheduledTask):
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: TickCallback):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._in_tick = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        if self._cancelled or self._loop.is_closed():
            return True
        return self._task is not None and self._task.done()

    def start(self) -> None:
        if _running_loop() is self._loop:
            self._task = self._loop.create_task(self._run())
        else:
            asyncio.run_coroutine_threadsafe(self._adopt(), self._loop)

    async def _adopt(self) -> None:
        self._task = asyncio.current_task()
        await self._run()

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self._interval)
            if self._cancelled:
                break
            self._in_tick = True
            try:
                await self._callback()
            finally:
                self._in_tick = False

    def _stop_sleeping(self) -> None:
        if self._task is not None and not self._in_tick:
            self._task.cancel()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if _running_loop() is self._loop:
            self._stop_sleeping()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._stop_sleeping)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AsyncioScheduler(Scheduler):
    """
    Runs periodic tasks on an asyncio loop.

    Loop resolution: the explicit loop, else the running loop, else the shared
    background loop. Ticks of one task never overlap.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop

    def call_every(self, interval: float, callback: TickCallback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("interval must be positive")
        loop = self.loop or _running_loop() or get_event_loop()
        task = _AsyncioTask(loop, interval, callback)
        task.start()
        return task


class _ManualTask(ScheduledTask):
    def __init__(self, interval: float, callback: TickCallback, due: float):
        self.interval = interval
        self.callback = callback
        self.due = due
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler; nothing runs until the test advances time"""

    def __init__(self):
        self.now = 0.0
        self._queue: list[tuple[float, int, _ManualTask]] = []
        self._order = itertools.count()

    def call_every(self, interval: float, callback: TickCallback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("interval must be positive")
        task = _ManualTask(interval, callback, self.now + interval)
        heapq.heappush(self._queue, (task.due, next(self._order), task))
        return task

    @property
    def active(self) -> list[ScheduledTask]:
        return [task for _, _, task in self._queue if not task.cancelled]

    async def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every tick that falls due

        Returns:
            Number of ticks fired
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now = due
            await task.callback()
            fired += 1
            if not task.cancelled:
                task.due = due + task.interval
                heapq.heappush(self._queue, (task.due, next(self._order), task))
        self.now = target
        return fired

    async def tick_all(self) -> int:
        """Fire every active task once, in scheduling order"""
        tasks = sorted(
            ((order, task) for _, order, task in self._queue if not task.cancelled),
            key=lambda item: item[0],
        )
        fired = 0
        for _, task in tasks:
            if not task.cancelled:
                await task.callback()
                fired += 1
        return fired
