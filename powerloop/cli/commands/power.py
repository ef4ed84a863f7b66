"""Manual relay control for a single test machine."""

import asyncio
from pathlib import Path

import click

from powerloop.cli.core.logger import ClickLogger
from powerloop.core.exceptions import PowerloopError
from powerloop.core.config import get_settings
from powerloop.hardware.gpio import MockControlFiles, PowerSwitch
from powerloop.machines.controller import POWER_OFF_LEVEL, POWER_ON_LEVEL
from powerloop.machines.fleet import EXIT_FAILED
from powerloop.orchestrator import load_config


def _switch_power(ctx, config: Path, machine_name: str, mock: bool, level: bool, action: str):
    logger = ClickLogger()
    try:
        machine = load_config(config).machine(machine_name)
    except PowerloopError as e:
        logger.error(str(e))
        ctx.exit(EXIT_FAILED)

    mock = mock or get_settings().POWERLOOP_GPIO.MOCK_ENABLED
    switch = PowerSwitch(MockControlFiles()) if mock else PowerSwitch()
    try:
        asyncio.run(asyncio.to_thread(switch.set_output, machine.power_line, level))
    except PowerloopError as e:
        logger.error(f"Failed to power {action} {machine.name}: {e}")
        ctx.exit(EXIT_FAILED)
    logger.success(f"Powered {action} {machine.name} ({machine.power_line})" + (" [mock]" if mock else ""))


@click.group()
def power():
    """Switch a test machine's relay."""
    pass


@power.command()
@click.argument("config", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("machine")
@click.option("--mock", is_flag=True, help="Use in-memory control files")
@click.pass_context
def on(ctx, config: Path, machine: str, mock: bool):
    """Apply power to MACHINE."""
    _switch_power(ctx, config, machine, mock, POWER_ON_LEVEL, "on")


@power.command()
@click.argument("config", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("machine")
@click.option("--mock", is_flag=True, help="Use in-memory control files")
@click.pass_context
def off(ctx, config: Path, machine: str, mock: bool):
    """Release power from MACHINE."""
    _switch_power(ctx, config, machine, mock, POWER_OFF_LEVEL, "off")
