"""Display utilities for CLI output using Rich."""

from typing import Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from powerloop.build import BuildResult
from powerloop.machines import FleetReport, RunOutcome, RunPhase, TestMachine

console = Console()

PHASE_STYLES = {
    RunPhase.COMPLETED: "green",
    RunPhase.BOOTED: "green",
    RunPhase.WAIT_TIMED_OUT: "yellow",
    RunPhase.BOOT_FAILED: "red",
    RunPhase.SHUTDOWN_FAILED: "red",
    RunPhase.SKIPPED: "dim",
}


def print_fleet(machines: Sequence[TestMachine], title: str = "Test Machines"):
    """Print the configured fleet.

    Args:
        machines: Machines to list
        title: Table title
    """
    if not machines:
        console.print("No machines configured.", style="yellow")
        return

    table = Table(title=title, box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Machine", style="cyan", no_wrap=True)
    table.add_column("Hardware Address")
    table.add_column("Broadcast", style="blue")
    table.add_column("Power Line", justify="right")
    table.add_column("Boot Delay", justify="right", style="dim")
    table.add_column("Boot Timeout", justify="right", style="dim")

    for machine in machines:
        table.add_row(
            machine.name,
            str(machine.hardware_address),
            machine.broadcast_address,
            str(machine.power_line.id),
            f"{machine.boot_delay_ms} ms",
            f"{machine.boot_timeout_ms} ms",
        )

    console.print(table)


def format_outcome_error(outcome: RunOutcome) -> str:
    return escape("; ".join(str(error) for error in outcome.errors))


def print_report(report: FleetReport):
    """Print one row per machine and a summary panel.

    Args:
        report: Result of the fleet run
    """
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Machine", style="cyan", no_wrap=True)
    table.add_column("Phase", justify="center")
    table.add_column("Power Released", justify="center")
    table.add_column("Duration", justify="right", style="dim")
    table.add_column("Error", style="red")

    for outcome in report.outcomes:
        style = PHASE_STYLES.get(outcome.phase, "white")
        released = "[✓]" if outcome.shutdown_attempted and outcome.shutdown_error is None else ""
        table.add_row(
            outcome.machine_name,
            f"[{style}]{outcome.phase.value}[/]",
            released,
            f"{outcome.duration:.2f}s",
            format_outcome_error(outcome),
        )

    console.print(table)

    if report.build_failed:
        summary, style = f"Build failed, fleet not started: {escape(report.abort_reason or '')}", "red"
    elif report.ok:
        summary, style = f"Fleet finished: {report.describe()}", "green"
    else:
        summary, style = f"Fleet finished with failures: {report.describe()}", "red"
    console.print(Panel(f"[{style}]{summary}[/]", box=box.ROUNDED, border_style=style))


def print_build(build: BuildResult):
    """Print the build result, with the tail of the compiler output on failure."""
    if build.success:
        console.print(f"[green]{build.describe()}[/]")
        return

    content = f"[red]{escape(build.describe())}[/]"
    if build.output:
        tail = "\n".join(build.output.splitlines()[-15:])
        content += f"\n\n[dim]{escape(tail)}[/dim]"
    console.print(Panel(content, title="[bold red]Build[/]", box=box.ROUNDED, border_style="red"))
