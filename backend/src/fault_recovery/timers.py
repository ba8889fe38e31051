"""
Timer sources and the timer pair owned by a recovery controller.
"""
import asyncio
import heapq
import itertools
import math
from typing import Callable, List, Optional, Tuple

from .types import Scheduler, TimerHandle


COUNTDOWN_INTERVAL = 1.0  # seconds


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop.

    The loop is resolved when a timer is armed, so the scheduler can be
    created before the loop is running.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def time(self) -> float:
        return (self._loop or asyncio.get_running_loop()).time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ManualTimer:
    """Timer handle for ManualScheduler."""

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual clock scheduler.

    Nothing runs until ``advance`` is called; callbacks then fire in order of
    due time, ties broken by the order they were armed.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
        return timer

    @property
    def pending(self) -> List[ManualTimer]:
        """Timers that are armed and not cancelled."""
        return [timer for _, _, timer in sorted(self._queue) if not timer.cancelled]

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live timer."""
        pending = self.pending
        return pending[0].due if pending else None

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every callback that comes due.

        Returns:
            Number of callbacks fired
        """
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now = due
            timer.callback()
            fired += 1
        self.now = target
        return fired

    def run_until_idle(self, limit: float = 3600.0) -> int:
        """Advance until no live timer remains or ``limit`` seconds pass."""
        fired = 0
        deadline = self.now + limit
        while True:
            due = self.next_due()
            if due is None or due > deadline:
                return fired
            fired += self.advance(due - self.now)


class RecoveryTimers:
    """
    The delay timer and countdown timer of one controller.

    Each handle is checked and cancelled before it is replaced, so at most
    one of each is live at any time. Countdown ticks are due at whole
    seconds after the arm time, so a late tick does not push back the
    ones that follow it.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._delay_handle: Optional[TimerHandle] = None
        self._countdown_handle: Optional[TimerHandle] = None
        self._on_tick: Optional[Callable[[int], None]] = None
        self._armed_at = 0.0
        self._ticks = 0
        self.seconds_remaining = 0

    @property
    def live(self) -> int:
        """Number of live handles (0, 1 or 2)."""
        return int(self._delay_handle is not None) + int(self._countdown_handle is not None)

    @property
    def active(self) -> bool:
        return self.live > 0

    def arm(
        self,
        delay_ms: int,
        on_tick: Callable[[int], None],
        on_expire: Callable[[], None]
    ) -> int:
        """Start the countdown and the one-shot delay timer.

        Args:
            delay_ms: Delay before ``on_expire`` runs
            on_tick: Called with the remaining seconds after each tick
            on_expire: Called once when the delay elapses

        Returns:
            Initial number of seconds on the countdown
        """
        self.cancel()
        self.seconds_remaining = math.ceil(delay_ms / 1000)
        self._on_tick = on_tick
        self._armed_at = self.scheduler.time()
        self._ticks = 0

        def expire():
            self._delay_handle = None
            on_expire()

        # Armed before the countdown so it fires first when both fall due together
        self._delay_handle = self.scheduler.call_later(delay_ms / 1000, expire)
        self._schedule_tick()
        return self.seconds_remaining

    def _schedule_tick(self) -> None:
        due = self._armed_at + (self._ticks + 1) * COUNTDOWN_INTERVAL
        delay = max(0.0, due - self.scheduler.time())
        self._countdown_handle = self.scheduler.call_later(delay, self._tick)

    def _tick(self) -> None:
        self._countdown_handle = None
        self._ticks += 1
        self.seconds_remaining = max(0, self.seconds_remaining - 1)
        if self.seconds_remaining > 0:
            self._schedule_tick()
        if self._on_tick is not None:
            self._on_tick(self.seconds_remaining)

    def cancel(self) -> None:
        """Cancel both timers. Safe to call when nothing is armed."""
        if self._delay_handle is not None:
            self._delay_handle.cancel()
            self._delay_handle = None
        if self._countdown_handle is not None:
            self._countdown_handle.cancel()
            self._countdown_handle = None
        self._on_tick = None
        self.seconds_remaining = 0
