"""Core CLI functionality."""

from powerloop.cli.core.logger import ClickLogger, setup_logger

__all__ = ["ClickLogger", "setup_logger"]
