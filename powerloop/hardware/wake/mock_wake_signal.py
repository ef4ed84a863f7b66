"""Recording wake signal for testing without a network."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from powerloop.core.exceptions import NetworkError
from powerloop.hardware.wake.address import HardwareAddress
from powerloop.hardware.wake.packet import build_packet
from powerloop.hardware.wake.wake_signal import WakeSignal


@dataclass(frozen=True)
class SentPacket:
    """A magic packet the mock would have broadcast."""

    address: HardwareAddress
    broadcast_address: str
    payload: bytes
    sent_at: Optional[float] = None


class MockWakeSignal(WakeSignal):
    """
    Wake signal that records packets instead of sending them.

    Usage:
        >>> wake = MockWakeSignal(fail_on_attempt=2)
        >>> wake.send(addr, "10.0.0.255")      # recorded
        >>> wake.send(addr, "10.0.0.255")      # raises NetworkError
    """

    def __init__(
        self,
        fail_on_attempt: Optional[int] = None,
        time_source: Optional[Callable[[], float]] = None,
        **kwargs,
    ):
        """
        Args:
            fail_on_attempt: 1-based send attempt (counted across all addresses) that raises NetworkError. Later
                attempts fail as well.
            time_source: Callable stamping each recorded packet, e.g. a test clock's ``now``.
            **kwargs: Additional WakeSignal initialization parameters
        """
        super().__init__(**kwargs)
        self.fail_on_attempt = fail_on_attempt
        self._time_source = time_source
        self._lock = threading.Lock()
        self.attempts = 0
        self.sent: List[SentPacket] = []

    def send(self, address: HardwareAddress, broadcast_address: str) -> None:
        with self._lock:
            self.attempts += 1
            if self.fail_on_attempt is not None and self.attempts >= self.fail_on_attempt:
                raise NetworkError(
                    f"Simulated send failure on attempt {self.attempts}", stage="send", destination=broadcast_address
                )
            sent_at = self._time_source() if self._time_source is not None else None
            self.sent.append(SentPacket(address, broadcast_address, build_packet(address), sent_at))
