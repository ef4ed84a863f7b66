import socket
from unittest.mock import MagicMock

import pytest

from powerloop.core.exceptions import NetworkError
from powerloop.hardware.wake import MockWakeSignal, WakeSignal, build_packet


def socket_factory_for(sock):
    factory = MagicMock(return_value=sock)
    return factory


@pytest.fixture
def fake_socket():
    sock = MagicMock()
    sock.__enter__.return_value = sock
    sock.sendto.return_value = 102
    return sock


class TestWakeSignal:
    """Test cases for the UDP wake signal."""

    def test_defaults_from_settings(self):
        wake = WakeSignal()
        assert wake.source_port == 3000
        assert wake.destination_port == 9

    def test_send(self, fake_socket, sample_address):
        factory = socket_factory_for(fake_socket)
        wake = WakeSignal(socket_factory=factory)

        wake.send(sample_address, "192.168.1.255")

        factory.assert_called_once_with(socket.AF_INET, socket.SOCK_DGRAM)
        fake_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        fake_socket.setsockopt.assert_any_call(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        fake_socket.bind.assert_called_once_with(("", 3000))
        fake_socket.sendto.assert_called_once_with(build_packet(sample_address), ("192.168.1.255", 9))
        fake_socket.__exit__.assert_called_once()

    def test_send_is_logged(self, fake_socket, sample_address, caplog):
        WakeSignal(socket_factory=socket_factory_for(fake_socket)).send(sample_address, "192.168.1.255")
        assert "Operation send started" in caplog.text
        assert "Operation send completed" in caplog.text

    def test_socket_creation_failure(self, sample_address):
        factory = MagicMock(side_effect=OSError(24, "Too many open files"))
        wake = WakeSignal(socket_factory=factory)

        with pytest.raises(NetworkError) as exc_info:
            wake.send(sample_address, "192.168.1.255")
        assert exc_info.value.stage == "socket"
        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.mark.parametrize(
        "method,stage",
        [("setsockopt", "broadcast"), ("bind", "bind"), ("sendto", "send")],
    )
    def test_failures_close_socket(self, fake_socket, sample_address, method, stage):
        getattr(fake_socket, method).side_effect = OSError(98, "failure")
        wake = WakeSignal(socket_factory=socket_factory_for(fake_socket))

        with pytest.raises(NetworkError) as exc_info:
            wake.send(sample_address, "10.0.0.255")

        assert exc_info.value.stage == stage
        assert exc_info.value.destination == "10.0.0.255"
        fake_socket.__exit__.assert_called_once()

    def test_truncated_send(self, fake_socket, sample_address):
        fake_socket.sendto.return_value = 50
        wake = WakeSignal(socket_factory=socket_factory_for(fake_socket))
        with pytest.raises(NetworkError, match="truncated"):
            wake.send(sample_address, "10.0.0.255")

    def test_custom_ports(self, fake_socket, sample_address):
        wake = WakeSignal(source_port=4000, destination_port=7, socket_factory=socket_factory_for(fake_socket))
        wake.send(sample_address, "10.0.0.255")
        fake_socket.bind.assert_called_once_with(("", 4000))
        assert fake_socket.sendto.call_args.args[1] == ("10.0.0.255", 7)

    @pytest.mark.slow
    def test_real_socket_on_loopback(self, sample_address):
        receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        with receiver:
            receiver.bind(("127.0.0.1", 0))
            receiver.settimeout(2)
            port = receiver.getsockname()[1]

            WakeSignal(source_port=0, destination_port=port).send(sample_address, "127.0.0.1")

            payload, _ = receiver.recvfrom(1024)
        assert payload == build_packet(sample_address)


class TestMockWakeSignal:
    """Test cases for the recording wake signal."""

    def test_records_packets(self, sample_address):
        wake = MockWakeSignal(time_source=lambda: 1.5)
        wake.send(sample_address, "10.0.0.255")

        assert wake.attempts == 1
        assert len(wake.sent) == 1
        packet = wake.sent[0]
        assert packet.address == sample_address
        assert packet.broadcast_address == "10.0.0.255"
        assert packet.payload == build_packet(sample_address)
        assert packet.sent_at == 1.5

    def test_fails_from_given_attempt(self, sample_address):
        wake = MockWakeSignal(fail_on_attempt=2)
        wake.send(sample_address, "10.0.0.255")
        with pytest.raises(NetworkError):
            wake.send(sample_address, "10.0.0.255")
        with pytest.raises(NetworkError):
            wake.send(sample_address, "10.0.0.255")
        assert wake.attempts == 3
        assert len(wake.sent) == 1
