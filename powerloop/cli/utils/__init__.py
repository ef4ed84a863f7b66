"""CLI utility functions."""

from powerloop.cli.utils.display import console, print_build, print_fleet, print_report

__all__ = ["console", "print_build", "print_fleet", "print_report"]
