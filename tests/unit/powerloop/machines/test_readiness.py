import asyncio
import time

import pytest

from powerloop.machines import ReadinessBoard, TimeoutReadiness


class TestTimeoutReadiness:
    @pytest.mark.asyncio
    async def test_elapses_full_timeout(self, fake_clock, machine):
        readiness = TimeoutReadiness(clock=fake_clock)
        assert await readiness.wait(machine, 1.5) is False
        assert fake_clock.now() == pytest.approx(1.5)


class TestReadinessBoard:
    """Test cases for the signal-driven readiness wait."""

    @pytest.mark.asyncio
    async def test_signal_resolves_wait_early(self, machine):
        board = ReadinessBoard()
        waiter = asyncio.create_task(board.wait(machine, 5.0))
        await asyncio.sleep(0)

        started = time.monotonic()
        board.signal(machine.name)
        assert await waiter is True
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_signal_before_wait_counts(self, machine):
        board = ReadinessBoard()
        board.signal(machine.name)
        assert board.is_signalled(machine.name)
        assert await board.wait(machine, 1.0) is True

    @pytest.mark.asyncio
    async def test_signal_is_consumed(self, machine):
        board = ReadinessBoard()
        board.signal(machine.name)
        await board.wait(machine, 1.0)
        assert not board.is_signalled(machine.name)

    @pytest.mark.asyncio
    async def test_times_out_at_deadline(self, machine):
        board = ReadinessBoard()
        started = time.monotonic()
        assert await board.wait(machine, 0.1) is False
        elapsed = time.monotonic() - started
        assert 0.09 <= elapsed < 1.0

    @pytest.mark.asyncio
    async def test_signals_are_per_machine(self, machine_factory):
        board = ReadinessBoard()
        rig_1, rig_2 = machine_factory("rig-1", 1), machine_factory("rig-2", 2)
        board.signal("rig-2")
        assert await board.wait(rig_1, 0.05) is False
        assert await board.wait(rig_2, 0.05) is True

    @pytest.mark.asyncio
    async def test_wait_is_cancellable(self, machine):
        board = ReadinessBoard()
        waiter = asyncio.create_task(board.wait(machine, 10.0))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

    @pytest.mark.asyncio
    async def test_timeout_elapses_on_injected_clock(self, fake_clock, machine):
        board = ReadinessBoard(clock=fake_clock)
        started = time.monotonic()
        assert await board.wait(machine, 30.0) is False
        assert fake_clock.sleeps == [30.0]
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_signal_wins_over_injected_clock(self, fake_clock, machine):
        board = ReadinessBoard(clock=fake_clock)
        board.signal(machine.name)
        assert await board.wait(machine, 30.0) is True
        assert not board.is_signalled(machine.name)
