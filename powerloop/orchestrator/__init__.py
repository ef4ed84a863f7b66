"""Job orchestration: configuration file loading and the build-then-fleet run."""

from powerloop.orchestrator.config import DEFAULT_CONFIG_FILE, OrchestratorConfig, load_config
from powerloop.orchestrator.orchestrator import Orchestrator

__all__ = ["DEFAULT_CONFIG_FILE", "load_config", "Orchestrator", "OrchestratorConfig"]
