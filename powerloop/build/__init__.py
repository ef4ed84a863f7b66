"""Build collaborator: fetch the source repository and compile the artifact the fleet runs."""

from powerloop.build.compiler import compile_artifact, resolve_output_binary
from powerloop.build.models import BuildResult, CompilationCommand, EnvVar
from powerloop.build.repository import fetch_repository

__all__ = [
    "BuildResult",
    "compile_artifact",
    "CompilationCommand",
    "EnvVar",
    "fetch_repository",
    "resolve_output_binary",
]
