import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from powerloop.core.exceptions import BootStage, ConfigurationError
from powerloop.hardware.wake import MockWakeSignal
from powerloop.machines import FleetReport, FleetRunner, MachineController, RunOutcome, RunPhase


@pytest.fixture
def runner(power_switch, wake_signal, fake_clock):
    return FleetRunner(power_switch=power_switch, wake_signal=wake_signal, clock=fake_clock)


class TestFleetRunner:
    """Test cases for the concurrent fleet fan-out."""

    @pytest.mark.asyncio
    async def test_one_outcome_per_machine_in_order(self, runner, fleet, wake_signal):
        outcomes = await runner.run_all(fleet)

        assert [outcome.machine_name for outcome in outcomes] == ["rig-1", "rig-2", "rig-3"]
        assert all(outcome.phase is RunPhase.WAIT_TIMED_OUT for outcome in outcomes)
        assert len(wake_signal.sent) == 9

    @pytest.mark.asyncio
    async def test_one_failing_machine_of_three(self, runner, fleet, control_files):
        control_files.fail("gpio18/direction")

        outcomes = await runner.run_all(fleet)

        assert len(outcomes) == 3
        assert [outcome.failed for outcome in outcomes] == [False, True, False]
        assert outcomes[1].error.stage is BootStage.POWER_ON
        assert control_files.writes_to("gpio17/value") == ["0", "1"]
        assert control_files.writes_to("gpio19/value") == ["0", "1"]

    @pytest.mark.asyncio
    async def test_machines_run_concurrently(self, fleet, power_switch):
        runner = FleetRunner(power_switch=power_switch, wake_signal=MockWakeSignal())
        started = asyncio.get_running_loop().time()
        machines = [machine.model_copy(update={"boot_delay_ms": 0, "boot_timeout_ms": 300}) for machine in fleet]

        outcomes = await runner.run_all(machines)

        elapsed = asyncio.get_running_loop().time() - started
        assert all(outcome.phase is RunPhase.WAIT_TIMED_OUT for outcome in outcomes)
        # sequential would take three times (0.2 s of wake spacing + 0.3 s timeout)
        assert elapsed < 1.2

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, fleet, power_switch, wake_signal, fake_clock):
        def factory(machine):
            if machine.name == "rig-2":
                raise RuntimeError("controller construction failed")
            return MachineController(machine, power_switch=power_switch, wake_signal=wake_signal, clock=fake_clock)

        runner = FleetRunner(controller_factory=factory, clock=fake_clock)
        outcomes = await runner.run_all(fleet)

        assert [outcome.phase for outcome in outcomes] == [
            RunPhase.WAIT_TIMED_OUT,
            RunPhase.BOOT_FAILED,
            RunPhase.WAIT_TIMED_OUT,
        ]
        assert isinstance(outcomes[1].error.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_controller_run_raising_is_contained(self, fleet):
        controller = MagicMock()
        controller.run = AsyncMock(side_effect=ValueError("bad state"))
        runner = FleetRunner(controller_factory=lambda machine: controller)

        outcomes = await runner.run_all(fleet)

        assert all(outcome.phase is RunPhase.BOOT_FAILED for outcome in outcomes)

    @pytest.mark.asyncio
    async def test_rejects_shared_power_lines(self, runner, machine_factory):
        with pytest.raises(ConfigurationError):
            await runner.run_all([machine_factory("rig-1", 4), machine_factory("rig-2", 4)])

    @pytest.mark.asyncio
    async def test_empty_fleet(self, runner):
        assert await runner.run_all([]) == []

    def test_negative_concurrency_rejected(self):
        with pytest.raises(ValueError):
            FleetRunner(max_concurrency=-1)

    def test_concurrency_default_from_settings(self):
        assert FleetRunner().max_concurrency == 0


class TestFleetConcurrencyBound:
    @pytest.mark.asyncio
    async def test_max_concurrency_bounds_active_machines(self, fleet):
        active = 0
        peak = 0

        async def run():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return RunOutcome("x", RunPhase.COMPLETED)

        def factory(machine):
            controller = MagicMock()
            controller.run = run
            return controller

        runner = FleetRunner(controller_factory=factory, max_concurrency=1)
        outcomes = await runner.run_all(fleet)

        assert len(outcomes) == 3
        assert peak == 1


class TestFleetAbort:
    """Test cases for fleet-level abort."""

    @pytest.mark.asyncio
    async def test_abort_before_start_skips_everything(self, runner, fleet, control_files, wake_signal):
        runner.abort("build failed")

        outcomes = await runner.run_all(fleet)

        assert runner.aborted
        assert all(outcome.phase is RunPhase.SKIPPED for outcome in outcomes)
        assert all(outcome.error.stage is BootStage.ABORTED for outcome in outcomes)
        assert control_files.writes == []
        assert wake_signal.sent == []

    @pytest.mark.asyncio
    async def test_abort_lets_running_machines_finish(
        self, fleet, power_switch, wake_signal, fake_clock, control_files
    ):
        runner = FleetRunner(power_switch=power_switch, wake_signal=wake_signal, clock=fake_clock, max_concurrency=1)
        original_factory = runner.controller_factory

        def factory(machine):
            controller = original_factory(machine)
            if machine.name == "rig-1":
                runner.abort("operator stop")
            return controller

        runner.controller_factory = factory
        outcomes = await runner.run_all(fleet)

        assert [outcome.phase for outcome in outcomes] == [
            RunPhase.WAIT_TIMED_OUT,
            RunPhase.SKIPPED,
            RunPhase.SKIPPED,
        ]
        assert control_files.writes_to("gpio17/value") == ["0", "1"]
        assert not control_files.exists("gpio18")

    def test_first_reason_wins(self):
        runner = FleetRunner()
        runner.abort("first")
        runner.abort("second")
        assert runner.abort_reason == "first"


class TestFleetReport:
    """Test cases for the aggregate report."""

    def test_all_completed(self):
        report = FleetReport([RunOutcome("a", RunPhase.COMPLETED), RunOutcome("b", RunPhase.COMPLETED)])
        assert report.ok
        assert report.all_completed
        assert report.exit_code == 0
        assert report.counts[RunPhase.COMPLETED] == 2
        assert report.counts[RunPhase.BOOT_FAILED] == 0

    def test_timeouts_are_ok(self):
        report = FleetReport([RunOutcome("a", RunPhase.COMPLETED), RunOutcome("b", RunPhase.WAIT_TIMED_OUT)])
        assert report.ok
        assert not report.all_completed
        assert report.exit_code == 0

    @pytest.mark.parametrize("phase", [RunPhase.BOOT_FAILED, RunPhase.SHUTDOWN_FAILED, RunPhase.SKIPPED])
    def test_failures(self, phase):
        report = FleetReport([RunOutcome("a", RunPhase.COMPLETED), RunOutcome("b", phase)])
        assert not report.ok
        assert [outcome.machine_name for outcome in report.failures] == ["b"]
        assert report.exit_code == 1

    def test_build_failure(self):
        report = FleetReport([RunOutcome.skipped("a")], build_failed=True, abort_reason="build failed")
        assert report.exit_code == 2
        assert "exit_code=2" in report.describe()

    def test_empty_report(self):
        report = FleetReport()
        assert report.ok
        assert not report.all_completed
        assert report.describe() == "machines=0 none exit_code=0"

    @pytest.mark.asyncio
    async def test_run_builds_report(self, runner, fleet, caplog):
        report = await runner.run(fleet)
        assert report.exit_code == 0
        assert report.counts[RunPhase.WAIT_TIMED_OUT] == 3
        assert "fleet_finished machines=3" in caplog.text
