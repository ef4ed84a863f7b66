"""
powerloop

Hardware-in-the-loop test orchestration: build an artifact, then power-cycle a fleet of test machines through GPIO
relays and wake-on-LAN, and report one outcome per machine.

Usage:
    from powerloop import FleetRunner, PowerSwitch, MockControlFiles, MockWakeSignal

    runner = FleetRunner(power_switch=PowerSwitch(MockControlFiles()), wake_signal=MockWakeSignal())
    report = await runner.run(machines)

Components are imported lazily so that ``powerloop --help`` and the hardware modules do not pull in the whole
package.
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import implementation."""
    if name in ("FleetRunner", "FleetReport", "MachineController", "TestMachine", "ReadinessBoard", "RunOutcome"):
        from powerloop import machines

        return getattr(machines, name)
    elif name in ("PowerSwitch", "MockControlFiles", "WakeSignal", "MockWakeSignal", "HardwareAddress", "PowerLine"):
        from powerloop import hardware

        return getattr(hardware, name)
    elif name in ("Orchestrator", "load_config"):
        from powerloop import orchestrator

        return getattr(orchestrator, name)
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "FleetReport",
    "FleetRunner",
    "HardwareAddress",
    "load_config",
    "MachineController",
    "MockControlFiles",
    "MockWakeSignal",
    "Orchestrator",
    "PowerLine",
    "PowerSwitch",
    "ReadinessBoard",
    "RunOutcome",
    "TestMachine",
    "WakeSignal",
]
