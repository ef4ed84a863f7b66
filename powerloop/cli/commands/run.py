"""Job commands: run the full build-then-fleet job, or validate its configuration."""

import asyncio
from pathlib import Path

import click

from powerloop.cli.core.logger import ClickLogger, setup_logger
from powerloop.cli.utils.display import console, print_build, print_fleet, print_report
from powerloop.core.exceptions import PowerloopError
from powerloop.machines.fleet import EXIT_FAILED
from powerloop.orchestrator import Orchestrator, load_config


@click.command()
@click.argument("config", type=click.Path(dir_okay=False, path_type=Path), default="config.json")
@click.option("--commit", default=None, help="Commit, tag or branch to check out before building")
@click.option(
    "--workdir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to clone and build in (default: a new directory under the work dir setting)",
)
@click.option("--skip-build", is_flag=True, help="Use an already built output binary from --workdir")
@click.option("--mock", is_flag=True, help="Use in-memory relays and a recording wake sender")
@click.option("-v", "--verbose", is_flag=True, help="Print the per-machine state transitions")
@click.pass_context
def run(ctx, config: Path, commit: str, workdir: Path, skip_build: bool, mock: bool, verbose: bool):
    """Build the artifact and power-cycle every test machine.

    CONFIG: Job configuration file (default: config.json)
    """
    logger = ClickLogger()
    if verbose:
        setup_logger(verbose=True)

    try:
        job = load_config(config)
    except PowerloopError as e:
        logger.error(str(e))
        ctx.exit(EXIT_FAILED)

    if skip_build and workdir is None:
        logger.error("--skip-build needs --workdir pointing at an existing build")
        ctx.exit(EXIT_FAILED)

    orchestrator = Orchestrator(job, workdir=workdir, mock=mock or None)
    if orchestrator.mock:
        logger.warning("Running against mock hardware")

    async def _run():
        if skip_build:
            build = orchestrator.existing_build()
        else:
            logger.progress(f"Building {job.repository}" + (f" at {commit}" if commit else ""))
            with console.status("[cyan]Fetching and compiling...", spinner="dots"):
                build = await orchestrator.build(commit)
        print_build(build)
        if build.success:
            logger.progress(f"Cycling {len(job.test_machines)} machine(s)")
        return await orchestrator.run_fleet(build)

    report = asyncio.run(_run())
    print_report(report)
    ctx.exit(report.exit_code)


@click.command()
@click.argument("config", type=click.Path(dir_okay=False, path_type=Path), default="config.json")
@click.pass_context
def validate(ctx, config: Path):
    """Check a job configuration and list its machines.

    CONFIG: Job configuration file (default: config.json)
    """
    logger = ClickLogger()
    try:
        job = load_config(config)
    except PowerloopError as e:
        logger.error(str(e))
        ctx.exit(EXIT_FAILED)

    logger.info(f"Repository:    {job.repository}")
    logger.info(f"Compilation:   {' '.join(job.compilation.argv())}")
    logger.info(f"Output binary: {job.output_binary}")
    print_fleet(job.test_machines)
    logger.success(f"{config} is valid ({len(job.test_machines)} machine(s))")
