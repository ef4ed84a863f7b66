"""CLI command modules."""

from powerloop.cli.commands.power import power
from powerloop.cli.commands.run import run, validate
from powerloop.cli.commands.wake import wake

__all__ = ["power", "run", "validate", "wake"]
