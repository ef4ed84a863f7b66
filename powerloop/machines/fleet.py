"""Concurrent fan-out of machine cycles over the whole test fleet."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from powerloop.core import Clock, MonotonicClock, Powerloop
from powerloop.core.exceptions import BootError, BootStage
from powerloop.hardware.gpio.power_switch import PowerSwitch
from powerloop.hardware.wake.wake_signal import WakeSignal
from powerloop.machines.controller import MachineController
from powerloop.machines.models import MachineState, RunOutcome, RunPhase, TestMachine, check_fleet
from powerloop.machines.readiness import ReadinessSource

ControllerFactory = Callable[[TestMachine], MachineController]

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BUILD_FAILED = 2


@dataclass(frozen=True)
class FleetReport:
    """
    Aggregate result of one fleet run.

    Attributes:
        outcomes: One outcome per configured machine, in configuration order.
        build_failed: Whether the fleet was aborted because the artifact could not be built.
        abort_reason: Reason given to ``FleetRunner.abort``, if the fleet was aborted.
    """

    outcomes: List[RunOutcome] = field(default_factory=list)
    build_failed: bool = False
    abort_reason: Optional[str] = None

    @property
    def counts(self) -> Dict[RunPhase, int]:
        counter = Counter(outcome.phase for outcome in self.outcomes)
        return {phase: counter.get(phase, 0) for phase in RunPhase}

    @property
    def failures(self) -> List[RunOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    @property
    def ok(self) -> bool:
        return not self.build_failed and not self.failures

    @property
    def all_completed(self) -> bool:
        return bool(self.outcomes) and all(outcome.phase == RunPhase.COMPLETED for outcome in self.outcomes)

    @property
    def exit_code(self) -> int:
        if self.build_failed:
            return EXIT_BUILD_FAILED
        return EXIT_OK if self.ok else EXIT_FAILED

    def describe(self) -> str:
        summary = ", ".join(f"{phase.value}={count}" for phase, count in self.counts.items() if count)
        return f"machines={len(self.outcomes)} {summary or 'none'} exit_code={self.exit_code}"


class FleetRunner(Powerloop):
    """
    Runs every machine's cycle as an independent asyncio task and collects the outcomes.

    A failing machine, or a controller that raises something unexpected, only affects its own outcome. Hardware
    collaborators are shared by all controllers the runner creates; each machine uses its own power line.

    Usage:
        >>> runner = FleetRunner(power_switch=PowerSwitch(MockControlFiles()), wake_signal=MockWakeSignal())
        >>> report = await runner.run(machines)
        >>> report.exit_code
        0
    """

    def __init__(
        self,
        controller_factory: Optional[ControllerFactory] = None,
        power_switch: Optional[PowerSwitch] = None,
        wake_signal: Optional[WakeSignal] = None,
        readiness: Optional[ReadinessSource] = None,
        clock: Optional[Clock] = None,
        max_concurrency: Optional[int] = None,
        **kwargs,
    ):
        """
        Args:
            controller_factory: Builds the controller for one machine. Overrides the hardware arguments below.
            power_switch: Switch shared by the default controllers.
            wake_signal: Wake sender shared by the default controllers.
            readiness: Readiness source shared by the default controllers.
            clock: Time source shared by the default controllers.
            max_concurrency: Upper bound on machines cycling at once, 0 for no bound. Defaults to the
                ``POWERLOOP_FLEET.MAX_CONCURRENCY`` setting.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        self.clock = clock or MonotonicClock()
        self.power_switch = power_switch
        self.wake_signal = wake_signal
        self.readiness = readiness
        self.controller_factory = controller_factory or self._default_controller
        self.max_concurrency = (
            max_concurrency if max_concurrency is not None else self.settings.POWERLOOP_FLEET.MAX_CONCURRENCY
        )
        if self.max_concurrency < 0:
            raise ValueError(f"max_concurrency must not be negative, got {self.max_concurrency}")
        self._abort_reason: Optional[str] = None

    def _default_controller(self, machine: TestMachine) -> MachineController:
        return MachineController(
            machine,
            power_switch=self.power_switch,
            wake_signal=self.wake_signal,
            readiness=self.readiness,
            clock=self.clock,
            settings=self.settings,
        )

    @property
    def aborted(self) -> bool:
        return self._abort_reason is not None

    @property
    def abort_reason(self) -> Optional[str]:
        return self._abort_reason

    def abort(self, reason: str = "fleet aborted") -> None:
        """Stop starting new machines. Machines already cycling finish their own cycle."""
        if self._abort_reason is None:
            self._abort_reason = reason
            self.logger.warning(f"fleet_abort reason={reason}")

    async def run_all(self, machines: Sequence[TestMachine]) -> List[RunOutcome]:
        """
        Cycle all machines concurrently.

        Args:
            machines: The validated fleet.

        Returns:
            One outcome per machine, in the order given.

        Raises:
            ConfigurationError: If two machines share a name or a power line.
        """
        machines = list(machines)
        check_fleet(machines)
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency > 0 else None
        self.logger.info(f"fleet_start machines={len(machines)} max_concurrency={self.max_concurrency or 'unbounded'}")

        async def cycle(machine: TestMachine) -> RunOutcome:
            if semaphore is None:
                return await self._run_one(machine)
            async with semaphore:
                return await self._run_one(machine)

        outcomes = await asyncio.gather(*(cycle(machine) for machine in machines))
        return list(outcomes)

    async def run(self, machines: Sequence[TestMachine]) -> FleetReport:
        """Cycle all machines and aggregate the outcomes into a report."""
        outcomes = await self.run_all(machines)
        report = FleetReport(outcomes=outcomes, abort_reason=self._abort_reason)
        log = self.logger.info if report.ok else self.logger.error
        log(f"fleet_finished {report.describe()}")
        return report

    def _skipped(self, machine: TestMachine) -> RunOutcome:
        self.logger.warning(f"machine_skipped machine={machine.name} reason={self._abort_reason}")
        return RunOutcome.skipped(machine.name, BootError(machine.name, BootStage.ABORTED))

    async def _run_one(self, machine: TestMachine) -> RunOutcome:
        if self.aborted:
            return self._skipped(machine)
        started_at = self.clock.now()
        try:
            controller = self.controller_factory(machine)
            return await controller.run()
        except Exception as e:
            self.logger.exception(f"machine_crashed machine={machine.name} error={e}")
            return RunOutcome(
                machine_name=machine.name,
                phase=RunPhase.BOOT_FAILED,
                boot_phase=RunPhase.BOOT_FAILED,
                error=BootError(machine.name, BootStage.POWER_ON, e),
                states=(MachineState.IDLE, MachineState.FAILED),
                duration=self.clock.now() - started_at,
            )
