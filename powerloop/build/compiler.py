"""Compiling the artifact under test with the configured command."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Union

from powerloop.build.models import BuildResult, CompilationCommand
from powerloop.build.process import run_process
from powerloop.core import get_logger
from powerloop.core.exceptions import CompilationError

logger = get_logger("build.compiler")


def resolve_output_binary(output_binary: Union[str, Path], source_dir: Union[str, Path]) -> Path:
    """Relative output paths are taken relative to the source directory."""
    path = Path(output_binary).expanduser()
    return path if path.is_absolute() else Path(source_dir) / path


async def compile_artifact(
    compilation: CompilationCommand,
    source_dir: Union[str, Path],
    output_binary: Union[str, Path],
) -> BuildResult:
    """
    Run the compilation command in ``source_dir``.

    The configured environment is overlaid on the current process environment.

    Args:
        compilation: Command, arguments and environment to run.
        source_dir: Working directory of the command.
        output_binary: Artifact the command is expected to produce.

    Returns:
        BuildResult, successful when the command exits with status 0 and the output binary exists.

    Raises:
        CompilationError: If the command cannot be started.
    """
    binary = resolve_output_binary(output_binary, source_dir)
    argv = compilation.argv()
    logger.info(f"compile_start command={compilation.command} arguments={compilation.arguments} cwd={source_dir}")

    started_at = time.perf_counter()
    try:
        result = await run_process(argv, cwd=source_dir, env_overrides=compilation.env_overrides())
    except OSError as e:
        raise CompilationError(f"Could not start compilation command {compilation.command!r}: {e}") from e
    duration = time.perf_counter() - started_at

    if not result.ok:
        logger.error(f"compile_failed return_code={result.return_code}\n{result.tail()}")
        return BuildResult(
            success=False,
            output_binary=binary,
            return_code=result.return_code,
            output=result.output,
            duration=duration,
            reason=f"compilation command exited with status {result.return_code}",
        )
    if not binary.exists():
        logger.error(f"compile_missing_output output_binary={binary}")
        return BuildResult(
            success=False,
            output_binary=binary,
            return_code=result.return_code,
            output=result.output,
            duration=duration,
            reason=f"output binary {binary} was not produced",
        )

    logger.info(f"compile_finished output_binary={binary} duration={duration:.2f}s")
    return BuildResult(
        success=True, output_binary=binary, return_code=result.return_code, output=result.output, duration=duration
    )
