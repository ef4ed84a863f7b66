"""Send the wake sequence to a single test machine."""

import asyncio
from pathlib import Path

import click

from powerloop.cli.core.logger import ClickLogger
from powerloop.core.exceptions import PowerloopError
from powerloop.core.config import get_settings
from powerloop.hardware.wake import MockWakeSignal, WakeSignal
from powerloop.machines.controller import MachineController
from powerloop.machines.fleet import EXIT_FAILED
from powerloop.orchestrator import load_config


@click.command()
@click.argument("config", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("machine")
@click.option("--mock", is_flag=True, help="Record the packets instead of sending them")
@click.pass_context
def wake(ctx, config: Path, machine: str, mock: bool):
    """Send the magic packet sequence to MACHINE without touching its relay."""
    logger = ClickLogger()
    try:
        target = load_config(config).machine(machine)
    except PowerloopError as e:
        logger.error(str(e))
        ctx.exit(EXIT_FAILED)

    mock = mock or get_settings().POWERLOOP_GPIO.MOCK_ENABLED
    controller = MachineController(target, wake_signal=MockWakeSignal() if mock else WakeSignal())
    try:
        asyncio.run(controller.send_wake_sequence())
    except PowerloopError as e:
        logger.error(str(e))
        ctx.exit(EXIT_FAILED)
    logger.success(
        f"Sent {controller.wake_count} magic packet(s) to {target.hardware_address} via {target.broadcast_address}"
    )
