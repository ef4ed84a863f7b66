"""Build collaborator models: the compilation command from the fleet configuration and the build result."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EnvVar(BaseModel):
    """One environment variable set for the compilation command."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    value: str


class CompilationCommand(BaseModel):
    """
    Command producing the artifact under test.

    Attributes:
        environment: Variables overlaid on the process environment while the command runs.
        command: Executable to run, looked up on ``PATH`` unless it is a path.
        arguments: Arguments passed to the command, in order.
    """

    model_config = ConfigDict(frozen=True)

    environment: List[EnvVar] = Field(default_factory=list)
    command: str = Field(min_length=1)
    arguments: List[str] = Field(default_factory=list)

    def env_overrides(self) -> Dict[str, str]:
        return {var.name: var.value for var in self.environment}

    def argv(self) -> List[str]:
        return [self.command, *self.arguments]


@dataclass(frozen=True)
class BuildResult:
    """
    Outcome of fetching and compiling the artifact.

    Attributes:
        success: True when the command exited with status 0 and the output binary exists.
        output_binary: Expected location of the compiled artifact.
        return_code: Exit status of the compilation command, None if it never ran.
        output: Combined stdout and stderr of the command.
        duration: Wall time of the compilation in seconds.
        reason: Why the build is not usable, if it is not.
    """

    success: bool
    output_binary: Path
    return_code: Optional[int] = None
    output: str = ""
    duration: float = 0.0
    reason: Optional[str] = None

    @classmethod
    def failed(cls, output_binary: Path, reason: str) -> "BuildResult":
        return cls(success=False, output_binary=output_binary, reason=reason)

    def describe(self) -> str:
        if self.success:
            return f"build ok: {self.output_binary} ({self.duration:.1f}s)"
        return f"build failed: {self.reason or 'unknown error'}"
