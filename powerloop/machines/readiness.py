"""
Readiness sources for the await-ready step of a machine cycle.

After the wake packets are out the controller waits at most ``boot_timeout_ms`` for the machine to report that it is
ready. Collecting the actual test results is outside of powerloop; a result collector only has to call
``ReadinessBoard.signal`` for the wait to resolve early.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import Dict, Optional

from powerloop.core import Clock, MonotonicClock, PowerloopABC
from powerloop.machines.models import TestMachine


class ReadinessSource(PowerloopABC):
    """Decides when a woken machine counts as ready."""

    @abstractmethod
    async def wait(self, machine: TestMachine, timeout_s: float) -> bool:
        """
        Wait for the machine to become ready.

        Args:
            machine: Machine being waited for.
            timeout_s: Upper bound for the wait in seconds.

        Returns:
            True if the machine signalled readiness, False if the timeout elapsed.
        """


class TimeoutReadiness(ReadinessSource):
    """Bounded wait without an early exit: always elapses the full timeout and reports not ready."""

    def __init__(self, clock: Optional[Clock] = None, **kwargs):
        super().__init__(**kwargs)
        self.clock = clock or MonotonicClock()

    async def wait(self, machine: TestMachine, timeout_s: float) -> bool:
        await self.clock.sleep(timeout_s)
        return False


class ReadinessBoard(ReadinessSource):
    """
    Cancellable wait that resolves as soon as a machine is signalled ready.

    The timeout elapses on the injected clock. A signal that arrives before the wait starts still counts. The signal
    is consumed when a wait returns, so the next cycle of the same machine needs a new one. ``signal`` must be called
    from the event loop thread.

    Usage:
        >>> board = ReadinessBoard()
        >>> runner = FleetRunner(readiness=board)
        >>> # in the result collector, once results for "rig-1" arrived:
        >>> board.signal("rig-1")
    """

    def __init__(self, clock: Optional[Clock] = None, **kwargs):
        super().__init__(**kwargs)
        self.clock = clock or MonotonicClock()
        self._events: Dict[str, asyncio.Event] = {}

    def _event(self, name: str) -> asyncio.Event:
        if name not in self._events:
            self._events[name] = asyncio.Event()
        return self._events[name]

    def signal(self, name: str) -> None:
        """Mark the named machine as ready."""
        self.logger.debug(f"machine_ready_signal machine={name}")
        self._event(name).set()

    def is_signalled(self, name: str) -> bool:
        return name in self._events and self._events[name].is_set()

    async def wait(self, machine: TestMachine, timeout_s: float) -> bool:
        event = self._event(machine.name)
        signalled = asyncio.ensure_future(event.wait())
        deadline = asyncio.ensure_future(self.clock.sleep(max(timeout_s, 0.0)))
        try:
            await asyncio.wait({signalled, deadline}, return_when=asyncio.FIRST_COMPLETED)
            return event.is_set()
        finally:
            for waiter in (signalled, deadline):
                waiter.cancel()
            await asyncio.gather(signalled, deadline, return_exceptions=True)
            event.clear()
