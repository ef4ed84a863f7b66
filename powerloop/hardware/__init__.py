"""
Hardware access for powerloop.

Two leaf components drive a test machine: ``PowerSwitch`` switches the relay on the machine's power line through the
GPIO control files, and ``WakeSignal`` broadcasts the magic packet that powers the machine on. Both ship mock
counterparts (``MockControlFiles``, ``MockWakeSignal``) for tests and dry runs.
"""

from powerloop.hardware.gpio import ControlFiles, MockControlFiles, PowerLine, PowerSwitch, SysfsControlFiles
from powerloop.hardware.wake import HardwareAddress, MockWakeSignal, WakeSignal, build_packet

__all__ = [
    "build_packet",
    "ControlFiles",
    "HardwareAddress",
    "MockControlFiles",
    "MockWakeSignal",
    "PowerLine",
    "PowerSwitch",
    "SysfsControlFiles",
    "WakeSignal",
]
