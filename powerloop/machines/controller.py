"""
Boot/wait/shutdown controller for one test machine.

The cycle runs strictly in order::

    IDLE -> POWERED_ON -> WAKE_SENT -> AWAITING_READY -> READY | TIMED_OUT -> POWERED_OFF -> DONE

and ``FAILED`` can be entered from any state. The relay is wired with inverted logic: driving the power line low
applies power to the machine and driving it high releases it.

Once the power line has been prepared, power is released exactly once per run, whatever happened in between: a
failed power-on write, a failed wake sequence, a wait that timed out, an unexpected error or a cancelled task. Errors
never escape ``run``; they are recorded in the returned ``RunOutcome``.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from powerloop.core import Clock, MonotonicClock, Powerloop, ms_to_seconds
from powerloop.core.exceptions import BootError, BootStage, HardwareError, NetworkError, WriteFailedError
from powerloop.hardware.gpio.power_switch import PowerSwitch
from powerloop.hardware.wake.wake_signal import WakeSignal
from powerloop.machines.models import MachineState, RunOutcome, RunPhase, TestMachine, final_phase
from powerloop.machines.readiness import ReadinessSource, TimeoutReadiness

# Level that applies power through the inverted relay
POWER_ON_LEVEL = False
POWER_OFF_LEVEL = True

_STAGE_BY_STATE = {
    MachineState.IDLE: BootStage.POWER_ON,
    MachineState.POWERED_ON: BootStage.WAKE,
    MachineState.WAKE_SENT: BootStage.WAIT,
    MachineState.AWAITING_READY: BootStage.WAIT,
}


class MachineController(Powerloop):
    """
    Drives one test machine through a power cycle.

    Attributes:
        machine: Machine this controller drives.
        power_switch: Switch for the machine's relay.
        wake_signal: Sender of the machine's magic packets.
        readiness: Source deciding when the woken machine is ready.
        clock: Time source for all timed suspensions.
        wake_count: Number of magic packets sent per boot.
        wake_interval_s: Pause between two magic packets.

    Usage:
        >>> controller = MachineController(machine)
        >>> outcome = await controller.run()
        >>> outcome.phase
        <RunPhase.WAIT_TIMED_OUT: 'wait_timed_out'>
    """

    def __init__(
        self,
        machine: TestMachine,
        power_switch: Optional[PowerSwitch] = None,
        wake_signal: Optional[WakeSignal] = None,
        readiness: Optional[ReadinessSource] = None,
        clock: Optional[Clock] = None,
        wake_count: Optional[int] = None,
        wake_interval_ms: Optional[int] = None,
        **kwargs,
    ):
        """
        Args:
            machine: Machine to drive.
            power_switch: Relay switch, a sysfs-backed PowerSwitch by default.
            wake_signal: Magic packet sender, a UDP WakeSignal by default.
            readiness: Readiness source, a bounded TimeoutReadiness on ``clock`` by default.
            clock: Time source, the monotonic clock by default.
            wake_count: Packets per boot, defaults to the ``POWERLOOP_WAKE.COUNT`` setting.
            wake_interval_ms: Pause between packets, defaults to the ``POWERLOOP_WAKE.INTERVAL_MS`` setting.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        wake_settings = self.settings.POWERLOOP_WAKE

        self.machine = machine
        self.clock = clock or MonotonicClock()
        self.power_switch = power_switch or PowerSwitch()
        self.wake_signal = wake_signal or WakeSignal()
        self.readiness = readiness or TimeoutReadiness(clock=self.clock)
        self.wake_count = wake_count if wake_count is not None else wake_settings.COUNT
        self.wake_interval_s = ms_to_seconds(
            wake_interval_ms if wake_interval_ms is not None else wake_settings.INTERVAL_MS
        )
        if self.wake_count < 1:
            raise ValueError(f"wake_count must be at least 1, got {self.wake_count}")

        self._states: List[MachineState] = []
        self._release_pending = False

    @property
    def state(self) -> MachineState:
        return self._states[-1] if self._states else MachineState.IDLE

    def _enter(self, state: MachineState) -> None:
        self._states.append(state)
        self.logger.info(f"machine_state machine={self.machine.name} state={state.value}")

    async def run(self) -> RunOutcome:
        """
        Run the full cycle once.

        Returns:
            The outcome of the cycle. Power-on, wake and shutdown failures are recorded in it, never raised.

        Raises:
            asyncio.CancelledError: If the run is cancelled. Power is still released before it propagates.
        """
        self._states = []
        self._release_pending = False
        started_at = self.clock.now()
        self._enter(MachineState.IDLE)

        try:
            boot_phase, boot_error = await self._boot()
        except asyncio.CancelledError:
            self.logger.warning(f"machine_run_cancelled machine={self.machine.name} state={self.state.value}")
            if self._release_pending:
                await asyncio.shield(self._shutdown())
            raise

        shutdown_attempted = self._release_pending
        shutdown_error = await self._shutdown() if shutdown_attempted else None
        self._enter(MachineState.DONE)

        outcome = RunOutcome(
            machine_name=self.machine.name,
            phase=final_phase(boot_phase, shutdown_error),
            boot_phase=boot_phase,
            error=boot_error,
            shutdown_error=shutdown_error,
            shutdown_attempted=shutdown_attempted,
            states=tuple(self._states),
            duration=self.clock.now() - started_at,
        )
        log = self.logger.error if outcome.failed else self.logger.info
        log(f"machine_run_finished {outcome.describe()} duration={outcome.duration:.3f}s")
        return outcome

    async def _boot(self) -> Tuple[RunPhase, Optional[BootError]]:
        """Power on, wake and wait. Returns the furthest boot phase and the boot error, if any."""
        try:
            await self._power_on()
            await self.clock.sleep(self.machine.boot_delay_s)
            await self.send_wake_sequence()
            self._enter(MachineState.AWAITING_READY)
            ready = await self.readiness.wait(self.machine, self.machine.boot_timeout_s)
        except BootError as e:
            self._enter(MachineState.FAILED)
            return RunPhase.BOOT_FAILED, e
        except Exception as e:
            stage = _STAGE_BY_STATE.get(self.state, BootStage.WAIT)
            self.logger.exception(f"machine_unexpected_error machine={self.machine.name} stage={stage.value}")
            self._enter(MachineState.FAILED)
            return RunPhase.BOOT_FAILED, BootError(self.machine.name, stage, e)

        if ready:
            self._enter(MachineState.READY)
            return RunPhase.BOOTED, None
        self.logger.warning(
            f"machine_ready_timeout machine={self.machine.name} timeout_ms={self.machine.boot_timeout_ms}"
        )
        self._enter(MachineState.TIMED_OUT)
        return RunPhase.WAIT_TIMED_OUT, None

    async def _power_on(self) -> None:
        line = self.machine.power_line
        write = asyncio.ensure_future(asyncio.to_thread(self.power_switch.set_output, line, POWER_ON_LEVEL))
        try:
            try:
                await asyncio.shield(write)
            except asyncio.CancelledError:
                # The worker thread keeps writing; settle the release flag before the run unwinds
                try:
                    await write
                except HardwareError as e:
                    self._release_pending = isinstance(e, WriteFailedError)
                else:
                    self._release_pending = True
                raise
        except HardwareError as e:
            # A failed value write means the line was prepared and may be driving the relay
            self._release_pending = isinstance(e, WriteFailedError)
            self.logger.error(f"machine_power_on_failed machine={self.machine.name} line={line.id} error={e}")
            raise BootError(self.machine.name, BootStage.POWER_ON, e) from e
        self._release_pending = True
        self._enter(MachineState.POWERED_ON)

    async def send_wake_sequence(self) -> None:
        """Send the magic packet ``wake_count`` times; the first failure aborts the remaining sends."""
        machine = self.machine
        for attempt in range(1, self.wake_count + 1):
            try:
                await asyncio.to_thread(self.wake_signal.send, machine.hardware_address, machine.broadcast_address)
            except NetworkError as e:
                self.logger.error(
                    f"machine_wake_failed machine={machine.name} attempt={attempt}/{self.wake_count} error={e}"
                )
                raise BootError(machine.name, BootStage.WAKE, e) from e
            self.logger.debug(f"machine_wake_sent machine={machine.name} attempt={attempt}/{self.wake_count}")
            if attempt < self.wake_count:
                await self.clock.sleep(self.wake_interval_s)
        self._enter(MachineState.WAKE_SENT)

    async def _shutdown(self) -> Optional[BootError]:
        """Release power. Runs at most once per cycle."""
        if not self._release_pending:
            return None
        self._release_pending = False

        line = self.machine.power_line
        try:
            await asyncio.to_thread(self.power_switch.set_output, line, POWER_OFF_LEVEL)
        except HardwareError as e:
            self.logger.error(f"machine_power_off_failed machine={self.machine.name} line={line.id} error={e}")
            self._enter(MachineState.FAILED)
            return BootError(self.machine.name, BootStage.SHUTDOWN, e)
        self._enter(MachineState.POWERED_OFF)
        return None
