"""
Wake-on-LAN broadcast.

Each ``send`` opens its own UDP socket bound to the fixed local source port, enables broadcast, sends one magic packet
to the destination port of the broadcast address and closes the socket again. No socket is shared between sends or
between machines. ``SO_REUSEADDR`` lets concurrent machine runs bind the same source port.
"""

from __future__ import annotations

import socket
from typing import Callable, Optional

from powerloop.core import Powerloop
from powerloop.core.exceptions import NetworkError
from powerloop.hardware.wake.address import HardwareAddress
from powerloop.hardware.wake.packet import build_packet

SocketFactory = Callable[[int, int], socket.socket]


class WakeSignal(Powerloop):
    """
    Sends magic packets over UDP broadcast.

    Attributes:
        source_port: Local port every socket is bound to.
        destination_port: Port the packet is sent to on the broadcast address.

    Usage:
        >>> wake = WakeSignal()
        >>> wake.send(HardwareAddress.parse("aa:bb:cc:dd:ee:ff"), "192.168.1.255")
    """

    def __init__(
        self,
        source_port: Optional[int] = None,
        destination_port: Optional[int] = None,
        socket_factory: Optional[SocketFactory] = None,
        **kwargs,
    ):
        """
        Args:
            source_port: Local port, defaults to the ``POWERLOOP_WAKE.SOURCE_PORT`` setting (3000).
            destination_port: Remote port, defaults to the ``POWERLOOP_WAKE.DESTINATION_PORT`` setting (9).
            socket_factory: Callable creating the socket from (family, type), ``socket.socket`` by default.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        wake_settings = self.settings.POWERLOOP_WAKE
        self.source_port = source_port if source_port is not None else wake_settings.SOURCE_PORT
        self.destination_port = destination_port if destination_port is not None else wake_settings.DESTINATION_PORT
        self._socket_factory = socket_factory or socket.socket

    @Powerloop.autolog()
    def send(self, address: HardwareAddress, broadcast_address: str) -> None:
        """
        Broadcast one magic packet.

        Args:
            address: Hardware address of the machine to wake.
            broadcast_address: Address of the machine's local broadcast domain.

        Raises:
            NetworkError: If the socket cannot be created, configured or bound, or the send fails.
        """
        packet = build_packet(address)
        destination = (broadcast_address, self.destination_port)

        try:
            sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            raise NetworkError(f"Failed to open wake socket: {e}", stage="socket", destination=broadcast_address) from e

        with sock:
            stage = "broadcast"
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                stage = "bind"
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind(("", self.source_port))
                stage = "send"
                sent = sock.sendto(packet, destination)
            except OSError as e:
                raise NetworkError(
                    f"Wake packet for {address} to {broadcast_address}:{self.destination_port} failed at {stage}: {e}",
                    stage=stage,
                    destination=broadcast_address,
                ) from e

        if sent != len(packet):
            raise NetworkError(
                f"Wake packet for {address} truncated: sent {sent} of {len(packet)} bytes",
                stage="send",
                destination=broadcast_address,
            )
