"""
Test machine description and run outcome models.

``TestMachine`` is the validated, immutable record the fleet configuration produces for every machine. It accepts
both its own field names and the keys of the original ``config.json`` format (``ip``, ``mac``, ``gpio``,
``boot_delay``, ``boot_timeout``).

``RunOutcome`` is produced once per machine per fleet run and never changes afterwards.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from powerloop.core.exceptions import BootError, ConfigurationError
from powerloop.core.utils import ms_to_seconds
from powerloop.hardware.gpio.models import PowerLine
from powerloop.hardware.wake.address import HardwareAddress


class TestMachine(BaseModel):
    """
    One member of the test fleet.

    Attributes:
        name: Display identifier used in logs and reports.
        broadcast_address: Address of the machine's local broadcast domain, target of the wake packet.
        hardware_address: Hardware address of the machine's wake-capable interface.
        power_line: Relay line switching the machine's power.
        boot_delay_ms: Time between applying power and sending the wake packet.
        boot_timeout_ms: Maximum time the machine gets to become ready after being woken.
    """

    __test__: ClassVar[bool] = False  # not a pytest test class

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    name: str = Field(min_length=1)
    broadcast_address: str = Field(min_length=1, validation_alias=AliasChoices("broadcast_address", "ip"))
    hardware_address: HardwareAddress = Field(validation_alias=AliasChoices("hardware_address", "mac"))
    power_line: PowerLine = Field(validation_alias=AliasChoices("power_line", "gpio"))
    boot_delay_ms: int = Field(ge=0, validation_alias=AliasChoices("boot_delay_ms", "boot_delay"))
    boot_timeout_ms: int = Field(ge=0, validation_alias=AliasChoices("boot_timeout_ms", "boot_timeout"))

    @field_validator("hardware_address", mode="before")
    @classmethod
    def _parse_hardware_address(cls, value):
        if isinstance(value, HardwareAddress):
            return value
        return HardwareAddress.parse(value)

    @field_validator("power_line", mode="before")
    @classmethod
    def _parse_power_line(cls, value):
        if isinstance(value, PowerLine):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"power line must be a non-negative integer, got {value!r}")
        return PowerLine(value)

    @field_serializer("hardware_address")
    def _serialize_hardware_address(self, value: HardwareAddress) -> str:
        return str(value)

    @field_serializer("power_line")
    def _serialize_power_line(self, value: PowerLine) -> int:
        return value.id

    @property
    def boot_delay_s(self) -> float:
        return ms_to_seconds(self.boot_delay_ms)

    @property
    def boot_timeout_s(self) -> float:
        return ms_to_seconds(self.boot_timeout_ms)

    def __str__(self) -> str:
        return f"{self.name} ({self.hardware_address} via {self.broadcast_address}, {self.power_line})"


def check_fleet(machines: Iterable[TestMachine]) -> None:
    """
    Check that machine names are unique and that no two machines share a power line.

    Raises:
        ConfigurationError: On a duplicate name or power line id.
    """
    machines = list(machines)
    names = Counter(machine.name for machine in machines)
    duplicates = sorted(name for name, count in names.items() if count > 1)
    if duplicates:
        raise ConfigurationError(f"Duplicate machine names: {', '.join(duplicates)}")

    owners: dict[int, str] = {}
    for machine in machines:
        line_id = machine.power_line.id
        if line_id in owners:
            raise ConfigurationError(
                f"Machines '{owners[line_id]}' and '{machine.name}' share power line {line_id}; "
                "each machine needs its own relay"
            )
        owners[line_id] = machine.name


class MachineState(str, Enum):
    """States of the per-machine boot/wait/shutdown cycle."""

    IDLE = "idle"
    POWERED_ON = "powered_on"
    WAKE_SENT = "wake_sent"
    AWAITING_READY = "awaiting_ready"
    READY = "ready"
    TIMED_OUT = "timed_out"
    POWERED_OFF = "powered_off"
    DONE = "done"
    FAILED = "failed"


class RunPhase(str, Enum):
    """Phase a machine run ended in."""

    BOOTED = "booted"
    BOOT_FAILED = "boot_failed"
    WAIT_TIMED_OUT = "wait_timed_out"
    SHUTDOWN_FAILED = "shutdown_failed"
    COMPLETED = "completed"
    SKIPPED = "skipped"


FAILED_PHASES = frozenset({RunPhase.BOOT_FAILED, RunPhase.SHUTDOWN_FAILED, RunPhase.SKIPPED})


def final_phase(boot_phase: Optional[RunPhase], shutdown_error: Optional[BootError]) -> RunPhase:
    """Combine the furthest boot phase and the shutdown result into the phase reported for the run."""
    if shutdown_error is not None:
        return RunPhase.SHUTDOWN_FAILED
    if boot_phase is None or boot_phase == RunPhase.BOOT_FAILED:
        return RunPhase.BOOT_FAILED
    if boot_phase == RunPhase.WAIT_TIMED_OUT:
        return RunPhase.WAIT_TIMED_OUT
    return RunPhase.COMPLETED


@dataclass(frozen=True)
class RunOutcome:
    """
    Result of driving one machine through its cycle.

    Attributes:
        machine_name: Machine the outcome belongs to.
        phase: Phase the run ended in.
        boot_phase: Furthest phase reached before shutdown (BOOTED, BOOT_FAILED or WAIT_TIMED_OUT); kept when the
            shutdown itself fails so both results are visible.
        error: Power-on or wake failure, if any.
        shutdown_error: Power release failure, if any.
        shutdown_attempted: Whether the power release step ran.
        states: Ordered state trail of the cycle.
        duration: Run time in seconds as measured by the controller's clock.
    """

    machine_name: str
    phase: RunPhase
    boot_phase: Optional[RunPhase] = None
    error: Optional[BootError] = None
    shutdown_error: Optional[BootError] = None
    shutdown_attempted: bool = False
    states: Tuple[MachineState, ...] = field(default_factory=tuple)
    duration: float = 0.0

    @classmethod
    def skipped(cls, machine_name: str, error: Optional[BootError] = None) -> "RunOutcome":
        return cls(machine_name=machine_name, phase=RunPhase.SKIPPED, error=error, states=(MachineState.IDLE,))

    @property
    def failed(self) -> bool:
        return self.phase in FAILED_PHASES

    @property
    def ready(self) -> bool:
        return self.boot_phase == RunPhase.BOOTED

    @property
    def errors(self) -> List[BootError]:
        return [e for e in (self.error, self.shutdown_error) if e is not None]

    def describe(self) -> str:
        """One-line, machine-attributed summary for reports."""
        text = f"{self.machine_name}: {self.phase.value}"
        if self.boot_phase is not None and self.phase == RunPhase.SHUTDOWN_FAILED:
            text += f" (after {self.boot_phase.value})"
        for error in self.errors:
            text += f"; {error}"
        return text
