"""Main entry point for the powerloop CLI."""

import sys
from pathlib import Path

import click

from powerloop.cli.commands import power, run, validate, wake
from powerloop.cli.core.logger import ClickLogger, setup_logger
from powerloop.core.config import get_settings


@click.group(invoke_without_command=True)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--version", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx, verbose: bool, version: bool):
    """powerloop - Power-cycle a fleet of test machines around a fresh build."""
    if version:
        from powerloop import __version__

        click.echo(f"powerloop version {__version__}")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())

    log_file = Path(get_settings().POWERLOOP_DIR_PATHS.LOGGER_DIR) / "cli.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    ctx.obj = setup_logger(verbose=verbose, log_file=log_file)


cli.add_command(run)
cli.add_command(validate)
cli.add_command(power)
cli.add_command(wake)


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        ClickLogger.warning("Interrupted")
        sys.exit(130)
    except Exception as e:
        ClickLogger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
