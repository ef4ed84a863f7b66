"""
Exception hierarchy for powerloop.

All errors raised by powerloop derive from ``PowerloopError`` so callers can catch a single type. Hardware and network
errors keep the underlying OS error as ``__cause__``; the machine controller never raises them past a run, it records
them in the run outcome instead.

Hierarchy::

    PowerloopError
    ├── HardwareError
    │   ├── ExportFailedError
    │   ├── DirectionFailedError
    │   └── WriteFailedError
    ├── NetworkError
    ├── AddressParseError (also ValueError)
    ├── BootError
    ├── ConfigurationError
    └── BuildError
        ├── RepositoryError
        └── CompilationError
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class PowerloopError(Exception):
    """Base class for all powerloop errors."""


class HardwareError(PowerloopError):
    """Raised when a control-file operation on a power line fails.

    Attributes:
        line_id: Channel number of the power line involved.
        path: Control file that could not be written, if any.
    """

    def __init__(self, message: str, line_id: Optional[int] = None, path: Optional[str] = None):
        super().__init__(message)
        self.line_id = line_id
        self.path = path


class ExportFailedError(HardwareError):
    """Writing the line id to the export control file failed."""


class DirectionFailedError(HardwareError):
    """Setting the exported line's direction to output failed."""


class WriteFailedError(HardwareError):
    """Writing the output value of a prepared line failed."""


class NetworkError(PowerloopError):
    """Raised when the wake packet cannot be broadcast.

    Attributes:
        stage: Which socket step failed ("socket", "broadcast", "bind" or "send").
        destination: Broadcast address the packet was meant for.
    """

    def __init__(self, message: str, stage: str, destination: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.destination = destination


class AddressParseError(PowerloopError, ValueError):
    """Raised when a hardware (MAC) address string is malformed."""

    def __init__(self, text: object, reason: str):
        super().__init__(f"Invalid hardware address {text!r}: {reason}")
        self.text = text
        self.reason = reason


class BootStage(str, Enum):
    """Step of the machine cycle an error belongs to."""

    POWER_ON = "power_on"
    WAKE = "wake"
    WAIT = "wait"
    SHUTDOWN = "shutdown"
    ABORTED = "aborted"


class BootError(PowerloopError):
    """Aggregate error recorded in a run outcome: which stage failed for which machine."""

    def __init__(self, machine_name: str, stage: BootStage, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Machine '{machine_name}' failed during {stage.value}{detail}")
        self.machine_name = machine_name
        self.stage = stage
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(PowerloopError):
    """Raised when a fleet configuration file cannot be read or fails validation."""


class BuildError(PowerloopError):
    """Base class for build collaborator failures."""


class RepositoryError(BuildError):
    """Raised when the source repository cannot be cloned or checked out."""


class CompilationError(BuildError):
    """Raised when the compilation command cannot be started."""
