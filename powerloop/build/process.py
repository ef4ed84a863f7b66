"""Asynchronous child process execution shared by the build steps."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

from powerloop.core import get_logger

logger = get_logger("build.process")


@dataclass(frozen=True)
class ProcessResult:
    return_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.return_code == 0

    def tail(self, lines: int = 20) -> str:
        return "\n".join(self.output.splitlines()[-lines:])


async def run_process(
    argv: Sequence[str],
    cwd: Optional[Union[str, Path]] = None,
    env_overrides: Optional[Dict[str, str]] = None,
) -> ProcessResult:
    """
    Run a command to completion without blocking the event loop.

    Args:
        argv: Executable followed by its arguments.
        cwd: Working directory of the child.
        env_overrides: Variables set on top of the current process environment.

    Returns:
        Exit status and the combined stdout/stderr of the child.

    Raises:
        FileNotFoundError: If the executable or the working directory does not exist.
        PermissionError: If the executable cannot be run.
    """
    env = None
    if env_overrides:
        env = {**os.environ, **env_overrides}

    logger.debug(f"process_start argv={list(argv)} cwd={cwd}")
    process = await asyncio.create_subprocess_exec(
        *argv,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await process.communicate()
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    output = stdout.decode(errors="replace") if stdout else ""
    logger.debug(f"process_exit argv0={argv[0]} return_code={process.returncode}")
    return ProcessResult(return_code=process.returncode, output=output)
