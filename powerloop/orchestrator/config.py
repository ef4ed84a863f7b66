"""
Fleet/job configuration file.

The file is JSON in the original tool's format::

    {
        "repository": "https://example.org/kernel.git",
        "compilation": {
            "environment": [{"name": "ARCH", "value": "x86"}],
            "command": "make",
            "arguments": ["-j4"]
        },
        "output_binary": "build/kernel.elf",
        "test_machines": [
            {"name": "rig-1", "ip": "192.168.1.255", "mac": "aa:bb:cc:dd:ee:01", "gpio": 17,
             "boot_delay": 2000, "boot_timeout": 60000}
        ]
    }

Machines without a ``name`` are named ``machine-<n>`` after their position.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from powerloop.build.models import CompilationCommand
from powerloop.core.exceptions import ConfigurationError
from powerloop.machines.models import TestMachine, check_fleet

DEFAULT_CONFIG_FILE = "config.json"


class OrchestratorConfig(BaseModel):
    """
    Validated job configuration.

    Attributes:
        repository: URL of the repository holding the artifact sources.
        compilation: Command building the artifact.
        output_binary: Path of the built artifact, relative to the clone directory unless absolute.
        test_machines: The fleet. Names and power lines are unique.
    """

    model_config = ConfigDict(frozen=True)

    repository: str = Field(min_length=1)
    compilation: CompilationCommand
    output_binary: str = Field(min_length=1)
    test_machines: List[TestMachine] = Field(min_length=1)

    @field_validator("test_machines", mode="before")
    @classmethod
    def _name_machines(cls, value):
        if not isinstance(value, list):
            return value
        named = []
        for index, entry in enumerate(value, start=1):
            if isinstance(entry, dict) and not entry.get("name"):
                entry = {**entry, "name": f"machine-{index}"}
            named.append(entry)
        return named

    @model_validator(mode="after")
    def _check_fleet(self) -> "OrchestratorConfig":
        try:
            check_fleet(self.test_machines)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return self

    def machine(self, name: str) -> TestMachine:
        """Look up a machine by name."""
        for machine in self.test_machines:
            if machine.name == name:
                return machine
        known = ", ".join(m.name for m in self.test_machines)
        raise ConfigurationError(f"Unknown machine '{name}'; configured machines: {known}")


def load_config(path: Optional[Union[str, Path]] = None) -> OrchestratorConfig:
    """
    Read and validate a job configuration file.

    Args:
        path: File to read, ``config.json`` in the working directory by default.

    Raises:
        ConfigurationError: If the file cannot be read, is not JSON, or fails validation.
    """
    path = Path(path or DEFAULT_CONFIG_FILE)
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Configuration {path} is not valid JSON: {e}") from e

    try:
        return OrchestratorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration {path}:\n{e}") from e
