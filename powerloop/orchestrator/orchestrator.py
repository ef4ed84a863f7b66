"""
End-to-end job: fetch the sources, compile the artifact, then cycle the fleet.

The build gates the fleet. When fetching or compiling fails the fleet is aborted before any machine is powered,
every machine is reported as skipped and the report carries ``build_failed`` (exit status 2).
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Optional, Union

from powerloop.build import BuildResult, compile_artifact, fetch_repository, resolve_output_binary
from powerloop.core import Clock, Powerloop
from powerloop.core.exceptions import BuildError
from powerloop.hardware.gpio import MockControlFiles, PowerSwitch
from powerloop.hardware.wake import MockWakeSignal, WakeSignal
from powerloop.machines import FleetReport, FleetRunner, ReadinessSource
from powerloop.orchestrator.config import OrchestratorConfig

SOURCES_DIR = "sources"


class Orchestrator(Powerloop):
    """
    Runs one job described by an ``OrchestratorConfig``.

    Usage:
        >>> orchestrator = Orchestrator(load_config("config.json"), mock=True)
        >>> report = await orchestrator.run(commit="v1.2")
        >>> report.exit_code
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        workdir: Optional[Union[str, Path]] = None,
        mock: Optional[bool] = None,
        power_switch: Optional[PowerSwitch] = None,
        wake_signal: Optional[WakeSignal] = None,
        readiness: Optional[ReadinessSource] = None,
        clock: Optional[Clock] = None,
        **kwargs,
    ):
        """
        Args:
            config: The validated job configuration.
            workdir: Directory the sources are cloned into (as ``<workdir>/sources``). Defaults to a fresh,
                timestamped directory under ``POWERLOOP_DIR_PATHS.WORK_DIR``.
            mock: Use in-memory control files and a recording wake sender instead of real hardware. Defaults to
                the ``POWERLOOP_GPIO.MOCK_ENABLED`` setting.
            power_switch: Switch to use instead of the default one.
            wake_signal: Wake sender to use instead of the default one.
            readiness: Readiness source handed to the fleet runner.
            clock: Time source handed to the fleet runner.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        self.config = config
        self.mock = mock if mock is not None else self.settings.POWERLOOP_GPIO.MOCK_ENABLED
        if workdir is None:
            workdir = Path(self.settings.POWERLOOP_DIR_PATHS.WORK_DIR) / time.strftime("run-%Y%m%d-%H%M%S")
        self.workdir = Path(workdir).expanduser()

        if self.mock:
            power_switch = power_switch or PowerSwitch(MockControlFiles())
            wake_signal = wake_signal or MockWakeSignal()
        self.runner = FleetRunner(
            power_switch=power_switch,
            wake_signal=wake_signal,
            readiness=readiness,
            clock=clock,
            settings=self.settings,
        )

    @property
    def source_dir(self) -> Path:
        return self.workdir / SOURCES_DIR

    async def build(self, commit: Optional[str] = None) -> BuildResult:
        """
        Clone the repository and compile the artifact.

        Returns:
            The build result. Repository and compilation errors are turned into a failed result.
        """
        output_binary = resolve_output_binary(self.config.output_binary, self.source_dir)
        try:
            await fetch_repository(self.config.repository, self.source_dir, commit=commit)
            result = await compile_artifact(self.config.compilation, self.source_dir, self.config.output_binary)
        except BuildError as e:
            self.logger.error(f"build_failed error={e}")
            return BuildResult.failed(output_binary, str(e))
        self.logger.info(result.describe())
        return result

    def existing_build(self, source_dir: Optional[Union[str, Path]] = None) -> BuildResult:
        """Build result for an artifact that was built earlier, resolved against ``source_dir`` if relative."""
        binary = resolve_output_binary(self.config.output_binary, source_dir or self.source_dir)
        if not binary.exists():
            return BuildResult.failed(binary, f"output binary {binary} does not exist")
        return BuildResult(success=True, output_binary=binary)

    async def run_fleet(self, build: BuildResult) -> FleetReport:
        """Cycle the fleet against ``build``; a failed build aborts the fleet so every machine is skipped."""
        machines = self.config.test_machines
        if not build.success:
            self.runner.abort(f"build failed: {build.reason}")
            outcomes = await self.runner.run_all(machines)
            return FleetReport(outcomes=outcomes, build_failed=True, abort_reason=self.runner.abort_reason)

        self.logger.info(f"fleet_artifact_ready output_binary={build.output_binary} mock={self.mock}")
        return await self.runner.run(machines)

    async def run(self, commit: Optional[str] = None, skip_build: bool = False) -> FleetReport:
        """Build (unless ``skip_build``) and cycle the fleet."""
        build = self.existing_build() if skip_build else await self.build(commit)
        return await self.run_fleet(build)
