"""Clock and cancellable timer primitives.

Every delayed piece of work in the console (search debounce, poll
interval, fetch cooldown, notification expiry, the post-activation open
delay) goes through a Clock so that tests can substitute a virtual clock
and advance time deterministically.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[Any] | Any]


class Clock:
    """Wall clock backed by the running event loop."""

    def now(self) -> float:
        """Return the current monotonic time in seconds."""
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        await asyncio.sleep(seconds)


class Timer:
    """One-shot timer that runs a callback after a delay.

    The callback may be a plain function or a coroutine function. A
    cancelled timer never runs its callback.
    """

    def __init__(self, clock: Clock, delay: float, callback: Callback) -> None:
        self._clock = clock
        self._delay = delay
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self.fired = False

    def start(self) -> Timer:
        """Schedule the timer on the running loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    async def _run(self) -> None:
        await self._clock.sleep(self._delay)
        self.fired = True
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except Exception:
            # Nothing awaits a timer task; report instead of losing it
            logger.exception("Timer callback %r failed", self._callback)

    def on_done(self, callback: Callable[[], Any]) -> None:
        """Call ``callback`` once the timer fires or is cancelled."""
        if self._task is None:
            raise RuntimeError("timer has not been started")
        self._task.add_done_callback(lambda _: callback())

    def cancel(self) -> None:
        """Cancel the timer if it has not fired yet."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def pending(self) -> bool:
        """Whether the timer is scheduled and has not completed."""
        return self._task is not None and not self._task.done()

    async def wait(self) -> None:
        """Wait for the timer to fire or be cancelled."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


class TimerGroup:
    """Set of timers owned by one component.

    Keeps references to running timers so they are not garbage collected
    and so the owner can cancel all of them on shutdown.
    """

    def __init__(self, clock: Clock) -> None:
        self.clock = clock
        self._timers: set[Timer] = set()

    def call_later(self, delay: float, callback: Callback) -> Timer:
        """Run ``callback`` after ``delay`` seconds."""
        timer = Timer(self.clock, delay, callback)
        self._timers.add(timer)
        timer.start().on_done(lambda: self._timers.discard(timer))
        return timer

    def __len__(self) -> int:
        return len(self._timers)

    async def join(self) -> None:
        """Wait for every timer currently scheduled to fire or be cancelled."""
        for timer in list(self._timers):
            await timer.wait()

    def cancel_all(self) -> None:
        """Cancel every pending timer."""
        for timer in list(self._timers):
            timer.cancel()
        self._timers.clear()


class Debouncer:
    """Delay a callback until input has been quiet for ``delay`` seconds.

    Each trigger resets the pending timer; only the most recent call
    fires.
    """

    def __init__(
        self, clock: Clock, delay: float, callback: Callable[..., Any]
    ) -> None:
        self._clock = clock
        self._delay = delay
        self._callback = callback
        self._timer: Timer | None = None

    def trigger(self, *args: Any) -> None:
        """Restart the debounce window with new arguments."""
        self.cancel()
        self._timer = Timer(
            self._clock, self._delay, lambda: self._callback(*args)
        ).start()

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def pending(self) -> bool:
        """Whether a call is waiting to fire."""
        return self._timer is not None and self._timer.pending


__all__ = ["Callback", "Clock", "Debouncer", "Timer", "TimerGroup"]
