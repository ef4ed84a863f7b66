from unittest.mock import AsyncMock, patch

import pytest

from powerloop.build import BuildResult
from powerloop.core.exceptions import RepositoryError
from powerloop.hardware.gpio import MockControlFiles, PowerSwitch
from powerloop.hardware.wake import MockWakeSignal
from powerloop.machines import RunPhase
from powerloop.orchestrator import Orchestrator, load_config


@pytest.fixture
def job(config_file):
    return load_config(config_file)


@pytest.fixture
def orchestrator(job, tmp_path, fake_clock):
    return Orchestrator(job, workdir=tmp_path / "work", mock=True, clock=fake_clock)


class TestOrchestratorSetup:
    def test_mock_hardware(self, orchestrator):
        assert isinstance(orchestrator.runner.power_switch.control_files, MockControlFiles)
        assert isinstance(orchestrator.runner.wake_signal, MockWakeSignal)

    def test_real_hardware_by_default(self, job, tmp_path):
        orchestrator = Orchestrator(job, workdir=tmp_path)
        assert not orchestrator.mock
        assert orchestrator.runner.power_switch is None

    def test_default_workdir_under_settings(self, job):
        orchestrator = Orchestrator(job, mock=True)
        assert orchestrator.workdir.name.startswith("run-")
        assert orchestrator.source_dir == orchestrator.workdir / "sources"


class TestOrchestratorBuild:
    """Test cases for the build step."""

    @pytest.mark.asyncio
    async def test_build_success(self, orchestrator):
        built = BuildResult(success=True, output_binary=orchestrator.source_dir / "build/kernel.elf")
        with (
            patch("powerloop.orchestrator.orchestrator.fetch_repository", new=AsyncMock()) as fetch,
            patch("powerloop.orchestrator.orchestrator.compile_artifact", new=AsyncMock(return_value=built)) as build,
        ):
            result = await orchestrator.build(commit="v1.2")

        assert result is built
        fetch.assert_awaited_once_with("https://example.org/kernel.git", orchestrator.source_dir, commit="v1.2")
        build.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repository_error_becomes_failed_build(self, orchestrator):
        fetch = AsyncMock(side_effect=RepositoryError("git clone exited with status 128"))
        with patch("powerloop.orchestrator.orchestrator.fetch_repository", new=fetch):
            result = await orchestrator.build()

        assert not result.success
        assert "status 128" in result.reason

    def test_existing_build(self, orchestrator):
        binary = orchestrator.source_dir / "build" / "kernel.elf"
        assert not orchestrator.existing_build().success

        binary.parent.mkdir(parents=True)
        binary.write_text("elf")
        result = orchestrator.existing_build()
        assert result.success
        assert result.output_binary == binary


class TestOrchestratorRun:
    """Test cases for the build-gated fleet run."""

    @pytest.mark.asyncio
    async def test_failed_build_skips_fleet(self, orchestrator):
        report = await orchestrator.run_fleet(BuildResult.failed(orchestrator.source_dir / "kernel.elf", "boom"))

        assert report.build_failed
        assert report.exit_code == 2
        assert [outcome.phase for outcome in report.outcomes] == [RunPhase.SKIPPED, RunPhase.SKIPPED]
        assert orchestrator.runner.power_switch.control_files.writes == []
        assert "boom" in report.abort_reason

    @pytest.mark.asyncio
    async def test_successful_build_runs_fleet(self, orchestrator):
        built = BuildResult(success=True, output_binary=orchestrator.source_dir / "build/kernel.elf")
        report = await orchestrator.run_fleet(built)

        assert not report.build_failed
        assert report.exit_code == 0
        assert [outcome.phase for outcome in report.outcomes] == [RunPhase.WAIT_TIMED_OUT, RunPhase.WAIT_TIMED_OUT]
        files = orchestrator.runner.power_switch.control_files
        assert files.writes_to("gpio17/value") == ["0", "1"]
        assert files.writes_to("gpio18/value") == ["0", "1"]

    @pytest.mark.asyncio
    async def test_run_skip_build_uses_existing_binary(self, orchestrator):
        binary = orchestrator.source_dir / "build" / "kernel.elf"
        binary.parent.mkdir(parents=True)
        binary.write_text("elf")

        with patch("powerloop.orchestrator.orchestrator.fetch_repository", new=AsyncMock()) as fetch:
            report = await orchestrator.run(skip_build=True)

        fetch.assert_not_awaited()
        assert report.exit_code == 0

    @pytest.mark.asyncio
    async def test_custom_hardware(self, job, tmp_path, fake_clock):
        files = MockControlFiles()
        orchestrator = Orchestrator(
            job, workdir=tmp_path, power_switch=PowerSwitch(files), wake_signal=MockWakeSignal(), clock=fake_clock
        )
        built = BuildResult(success=True, output_binary=tmp_path / "kernel.elf")
        report = await orchestrator.run_fleet(built)

        assert report.ok
        assert files.exists("gpio17")
