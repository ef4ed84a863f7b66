"""Logging configuration for the CLI."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from powerloop.core.logging import setup_logger as setup_library_logger


def setup_logger(
    name: str = "powerloop-cli", log_file: Optional[Path] = None, verbose: bool = False
) -> logging.Logger:
    """Set up logger for the CLI.

    With ``verbose`` the library's own ``event key=value`` records are printed to the console as well.

    Args:
        name: Logger name
        log_file: Optional log file path
        verbose: Enable verbose logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(file_handler)

    if verbose:
        setup_library_logger("powerloop", stream_level=logging.DEBUG)

    return logger


class ClickLogger:
    """Logger that uses click.echo for output."""

    @staticmethod
    def info(message: str):
        click.echo(message)

    @staticmethod
    def success(message: str):
        click.echo(click.style(f"✅ {message}", fg="green"))

    @staticmethod
    def warning(message: str):
        click.echo(click.style(f"⚠️  {message}", fg="yellow"))

    @staticmethod
    def error(message: str):
        click.echo(click.style(f"❌ {message}", fg="red"), err=True)

    @staticmethod
    def progress(message: str):
        click.echo(click.style(f"🚀 {message}", fg="cyan"))
