"""Per-machine boot/wait/shutdown cycle and its concurrent fan-out over the fleet."""

from powerloop.machines.controller import MachineController
from powerloop.machines.fleet import FleetReport, FleetRunner
from powerloop.machines.models import (
    FAILED_PHASES,
    MachineState,
    RunOutcome,
    RunPhase,
    TestMachine,
    check_fleet,
    final_phase,
)
from powerloop.machines.readiness import ReadinessBoard, ReadinessSource, TimeoutReadiness

__all__ = [
    "check_fleet",
    "FAILED_PHASES",
    "final_phase",
    "FleetReport",
    "FleetRunner",
    "MachineController",
    "MachineState",
    "ReadinessBoard",
    "ReadinessSource",
    "RunOutcome",
    "RunPhase",
    "TestMachine",
    "TimeoutReadiness",
]
