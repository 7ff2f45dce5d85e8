"""Fixed-window admission gate for outbound calls.

One ``RateGate`` instance per caller class. Concurrent callers share the
instance; its window counters are only read and reserved under an
``asyncio.Lock``.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from loguru import logger


class RateGate:
    """Limit calls to ``max_calls`` per ``window_seconds`` with ``min_delay`` spacing.

    Args:
        name: Caller class this gate budgets (used in log lines).
        max_calls: Calls admitted per window.
        window_seconds: Window length.
        min_delay: Minimum spacing between consecutive admitted calls.
        clock: Monotonic time source in seconds.
        sleep: Coroutine used to suspend callers.
    """

    def __init__(
        self,
        name: str,
        max_calls: int,
        window_seconds: float = 60.0,
        min_delay: float = 0.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_calls <= 0:
            msg = f"max_calls must be positive, got {max_calls}"
            raise ValueError(msg)
        if window_seconds <= 0:
            msg = f"window_seconds must be positive, got {window_seconds}"
            raise ValueError(msg)
        if min_delay < 0:
            msg = f"min_delay must not be negative, got {min_delay}"
            raise ValueError(msg)

        self.name = name
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.min_delay = min_delay
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._window_start = clock()
        self._call_count = 0
        self._last_call: float | None = None

    def _roll_window(self, now: float) -> None:
        if now - self._window_start >= self.window_seconds:
            self._window_start = now
            self._call_count = 0

    async def wait_for_next_call(self) -> None:
        """Suspend until the caller may make its call.

        When the window is exhausted the caller sleeps until the window
        resets and then re-checks, so it may wait more than once if other
        callers claim the fresh window first.
        """
        while True:
            async with self._lock:
                now = self._clock()
                self._roll_window(now)

                if self._call_count >= self.max_calls:
                    wait = self.window_seconds - (now - self._window_start)
                else:
                    # Reserve the slot before releasing the lock
                    self._call_count += 1
                    scheduled = now
                    if self._last_call is not None:
                        scheduled = max(now, self._last_call + self.min_delay)
                    self._last_call = scheduled
                    delay = scheduled - now
                    break

            logger.info(f"Rate gate '{self.name}' exhausted, waiting {wait:.2f}s for window reset")
            await self._sleep(max(wait, 0.0))

        if delay > 0:
            logger.debug(f"Rate gate '{self.name}' spacing calls, waiting {delay:.2f}s")
            await self._sleep(delay)

    def remaining_calls(self) -> int:
        """Calls still admissible in the current window without waiting for a reset."""
        if self._clock() - self._window_start >= self.window_seconds:
            return self.max_calls
        return max(0, self.max_calls - self._call_count)

    def time_until_reset(self) -> float:
        """Seconds until the current window rolls over."""
        elapsed = self._clock() - self._window_start
        return max(0.0, self.window_seconds - elapsed)
