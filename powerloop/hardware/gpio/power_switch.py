"""
Relay power switch driven through the GPIO control files.

A power line has to be exported and set to output before its value can be driven. ``prepare`` does both and is a
no-op for a line that is already exported; ``set_output`` prepares on demand. Failures are raised as
``HardwareError`` subclasses and never retried here, the caller decides what to do.

The switch keeps no state of its own. It is safe to call repeatedly on the same line but not concurrently on the same
line; the fleet assigns exactly one line per machine.
"""

from __future__ import annotations

from typing import Optional

from powerloop.core import Powerloop
from powerloop.core.exceptions import DirectionFailedError, ExportFailedError, WriteFailedError
from powerloop.hardware.gpio.control_files import ControlFiles, SysfsControlFiles
from powerloop.hardware.gpio.models import EXPORT_FILE, PowerLine

OUTPUT_HIGH = "1"
OUTPUT_LOW = "0"
DIRECTION_OUT = "out"


class PowerSwitch(Powerloop):
    """
    Drives relay power lines through a control-file namespace.

    Attributes:
        control_files: Namespace the switch reads and writes.

    Usage:
        >>> switch = PowerSwitch()
        >>> switch.set_output(PowerLine(17), False)
    """

    def __init__(self, control_files: Optional[ControlFiles] = None, **kwargs):
        """
        Args:
            control_files: Control-file namespace, defaults to the host's sysfs GPIO directory.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        self.control_files = control_files if control_files is not None else SysfsControlFiles()

    def is_ready(self, line: PowerLine) -> bool:
        """Tell whether the line is already exported to user space."""
        return self.control_files.exists(line.directory)

    @Powerloop.autolog()
    def prepare(self, line: PowerLine) -> None:
        """
        Export the line and set its direction to output.

        Args:
            line: Power line to prepare.

        Raises:
            ExportFailedError: If writing the export control file fails.
            DirectionFailedError: If setting the direction fails.
        """
        if self.is_ready(line):
            return

        self.logger.debug(f"power_line_export line={line.id}")
        try:
            self.control_files.write_text(EXPORT_FILE, str(line.id))
        except OSError as e:
            raise ExportFailedError(
                f"Failed to export power line {line.id}: {e}", line_id=line.id, path=EXPORT_FILE
            ) from e

        try:
            self.control_files.write_text(line.direction_file, DIRECTION_OUT)
        except OSError as e:
            raise DirectionFailedError(
                f"Failed to set direction of power line {line.id}: {e}", line_id=line.id, path=line.direction_file
            ) from e

        self.logger.info(f"power_line_prepared line={line.id}")

    def set_output(self, line: PowerLine, state: bool) -> None:
        """
        Drive the line high (True, relay energized) or low (False, relay de-energized).

        Args:
            line: Power line to drive.
            state: Output level.

        Raises:
            ExportFailedError: If the line had to be prepared and export failed.
            DirectionFailedError: If the line had to be prepared and setting the direction failed.
            WriteFailedError: If writing the value fails.
        """
        if not self.is_ready(line):
            self.prepare(line)

        value = OUTPUT_HIGH if state else OUTPUT_LOW
        try:
            self.control_files.write_text(line.value_file, value)
        except OSError as e:
            raise WriteFailedError(
                f"Failed to drive power line {line.id} to {value}: {e}", line_id=line.id, path=line.value_file
            ) from e

        self.logger.debug(f"power_line_set line={line.id} value={value}")
