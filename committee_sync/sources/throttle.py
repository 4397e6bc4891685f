"""
Single-concurrency work queue with a minimum pause between tasks.

Adapters push every detail-page fetch through one of these so that a source
server never sees two requests from us closer together than min_interval_s.
The pause is a politeness contract, not a tuning knob: it is never skipped
and tasks are never batched.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class RateLimitedQueue:
    def __init__(
        self,
        min_interval_s: float = 0.5,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.min_interval_s = min_interval_s
        self._sleep = sleep
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_finished: Optional[float] = None

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run one task, waiting first if the previous one finished too recently."""
        async with self._lock:
            if self._last_finished is not None:
                wait = self._last_finished + self.min_interval_s - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            try:
                return await task()
            finally:
                self._last_finished = self._clock()

    async def map(self, func: Callable[[T], Awaitable[R]], items: Iterable[T]) -> List[R]:
        """Apply func to each item in order, one at a time."""
        out: List[R] = []
        for item in items:
            out.append(await self.run(lambda item=item: func(item)))
        return out
