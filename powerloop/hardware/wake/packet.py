"""Magic packet wire format.

A magic packet is a 6-byte synchronization header of ``0xFF`` followed by the target's hardware address repeated 16
times, 102 bytes in total. Wake-on-LAN listeners match this payload byte for byte.
"""

from powerloop.hardware.wake.address import HardwareAddress

SYNC_HEADER = b"\xff" * 6
ADDRESS_REPEAT = 16
PACKET_SIZE = len(SYNC_HEADER) + ADDRESS_REPEAT * 6


def build_packet(address: HardwareAddress) -> bytes:
    """
    Build the magic packet waking the interface with the given address.

    Args:
        address: Hardware address of the machine to wake.

    Returns:
        The 102-byte payload.
    """
    return SYNC_HEADER + address.packed * ADDRESS_REPEAT
