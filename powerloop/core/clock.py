"""
Time source used for every timed suspension in a machine cycle.

The boot delay, the pause between wake packets and the boot timeout all go through a Clock so tests can substitute a
virtual clock and assert timing without waiting in real time.
"""

import asyncio
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Monotonic time source with an awaitable sleep."""

    def now(self) -> float:
        """Current monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds`` without blocking other tasks."""
        ...


class MonotonicClock:
    """Clock backed by ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))
