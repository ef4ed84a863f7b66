import asyncio
import json
import logging
from typing import List

import pytest

from powerloop.core.config import reset_settings
from powerloop.hardware.gpio import MockControlFiles, PowerSwitch
from powerloop.hardware.wake import HardwareAddress, MockWakeSignal
from powerloop.machines import TestMachine


def by_slow_marker(item):
    is_slow = 0 if item.get_closest_marker("slow") is None else 1
    is_integration = 1 if "integration" in str(item.fspath) else 0

    # Unit tests first, then slow unit tests, then integration tests, then slow integration tests
    return (is_integration, is_slow)


def pytest_addoption(parser):
    parser.addoption("--slow-last", action="store_true", default=False)


def pytest_collection_modifyitems(items, config):
    if config.getoption("--slow-last"):
        items.sort(key=by_slow_marker)


@pytest.fixture(autouse=True)
def configure_logging_for_tests(caplog):
    """Configure logging to work properly with caplog fixture.

    Ensures that all powerloop loggers propagate their messages to the root logger so that caplog can capture them.
    """
    caplog.set_level(logging.DEBUG)

    root_logger = logging.getLogger()
    original_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)

    powerloop_logger = logging.getLogger("powerloop")
    original_propagate = powerloop_logger.propagate
    powerloop_logger.propagate = True

    yield

    root_logger.setLevel(original_level)
    powerloop_logger.propagate = original_propagate


@pytest.fixture
def clean_settings():
    """Drop cached settings before and after a test that changes the environment."""
    reset_settings()
    yield
    reset_settings()


class FakeClock:
    """Virtual clock: ``sleep`` advances time instantly and yields to the event loop once."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += max(seconds, 0.0)
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def control_files():
    return MockControlFiles()


@pytest.fixture
def power_switch(control_files):
    return PowerSwitch(control_files)


@pytest.fixture
def wake_signal(fake_clock):
    return MockWakeSignal(time_source=fake_clock.now)


def make_machine(name: str = "rig-1", line: int = 17, mac: str = "aa:bb:cc:dd:ee:01", **overrides) -> TestMachine:
    data = {
        "name": name,
        "broadcast_address": "192.168.1.255",
        "hardware_address": mac,
        "power_line": line,
        "boot_delay_ms": 50,
        "boot_timeout_ms": 1000,
    }
    data.update(overrides)
    return TestMachine(**data)


@pytest.fixture
def machine():
    return make_machine()


@pytest.fixture
def fleet():
    return [
        make_machine("rig-1", 17, "aa:bb:cc:dd:ee:01"),
        make_machine("rig-2", 18, "aa:bb:cc:dd:ee:02"),
        make_machine("rig-3", 19, "aa:bb:cc:dd:ee:03"),
    ]


@pytest.fixture
def sample_address():
    return HardwareAddress.parse("AA:BB:CC:DD:EE:FF")


@pytest.fixture
def machine_factory():
    return make_machine


@pytest.fixture
def config_data():
    return {
        "repository": "https://example.org/kernel.git",
        "compilation": {
            "environment": [{"name": "ARCH", "value": "x86"}],
            "command": "make",
            "arguments": ["-j4"],
        },
        "output_binary": "build/kernel.elf",
        "test_machines": [
            {
                "name": "rig-1",
                "ip": "192.168.1.255",
                "mac": "aa:bb:cc:dd:ee:01",
                "gpio": 17,
                "boot_delay": 0,
                "boot_timeout": 0,
            },
            {
                "name": "rig-2",
                "ip": "192.168.1.255",
                "mac": "aa:bb:cc:dd:ee:02",
                "gpio": 18,
                "boot_delay": 0,
                "boot_timeout": 0,
            },
        ],
    }


@pytest.fixture
def config_file(tmp_path, config_data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data))
    return path
