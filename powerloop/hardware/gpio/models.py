"""Power line identity and the control-file names derived from it."""

from dataclasses import dataclass

EXPORT_FILE = "export"


@dataclass(frozen=True)
class PowerLine:
    """
    One relay-controlled digital output.

    Attributes:
        id: Platform-specific channel number of the output line.
    """

    id: int

    def __post_init__(self):
        if isinstance(self.id, bool) or not isinstance(self.id, int):
            raise TypeError(f"Power line id must be an integer, got {type(self.id).__name__}")
        if self.id < 0:
            raise ValueError(f"Power line id must be non-negative, got {self.id}")

    @property
    def directory(self) -> str:
        return f"gpio{self.id}"

    @property
    def direction_file(self) -> str:
        return f"{self.directory}/direction"

    @property
    def value_file(self) -> str:
        return f"{self.directory}/value"

    def __str__(self) -> str:
        return self.directory
