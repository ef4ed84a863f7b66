"""Fetching the source repository of the artifact under test."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from powerloop.build.process import run_process
from powerloop.core import get_logger
from powerloop.core.exceptions import RepositoryError

logger = get_logger("build.repository")

GIT = "git"


async def _git(*args: str, cwd: Optional[Path] = None) -> None:
    try:
        result = await run_process([GIT, *args], cwd=cwd)
    except OSError as e:
        raise RepositoryError(f"Could not run {GIT} {args[0]}: {e}") from e
    if not result.ok:
        raise RepositoryError(f"{GIT} {args[0]} exited with status {result.return_code}: {result.tail(5)}")


async def fetch_repository(url: str, directory: Union[str, Path], commit: Optional[str] = None) -> Path:
    """
    Clone ``url`` into ``directory`` and optionally check out ``commit``.

    Args:
        url: Repository URL or local path understood by git.
        directory: Clone destination. Must not exist or be empty.
        commit: Commit, tag or branch to check out after cloning.

    Returns:
        The clone directory.

    Raises:
        RepositoryError: If git is missing, the destination is not empty, or a git command fails.
    """
    directory = Path(directory)
    if directory.exists() and any(directory.iterdir()):
        raise RepositoryError(f"Clone destination {directory} already exists and is not empty")
    directory.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"repository_clone url={url} directory={directory}")
    await _git("clone", url, str(directory))

    if commit:
        logger.info(f"repository_checkout commit={commit}")
        await _git("checkout", commit, cwd=directory)
    return directory
