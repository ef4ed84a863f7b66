"""GPIO relay control: power line identity, control-file access and the power switch."""

from powerloop.hardware.gpio.control_files import ControlFiles, SysfsControlFiles
from powerloop.hardware.gpio.mock_control_files import MockControlFiles
from powerloop.hardware.gpio.models import PowerLine
from powerloop.hardware.gpio.power_switch import PowerSwitch

__all__ = ["ControlFiles", "MockControlFiles", "PowerLine", "PowerSwitch", "SysfsControlFiles"]
