"""Wake-on-LAN: hardware addresses, the magic packet format and its UDP broadcast."""

from powerloop.hardware.wake.address import HardwareAddress
from powerloop.hardware.wake.mock_wake_signal import MockWakeSignal, SentPacket
from powerloop.hardware.wake.packet import PACKET_SIZE, build_packet
from powerloop.hardware.wake.wake_signal import WakeSignal

__all__ = ["build_packet", "HardwareAddress", "MockWakeSignal", "PACKET_SIZE", "SentPacket", "WakeSignal"]
