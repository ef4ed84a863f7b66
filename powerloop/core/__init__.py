from powerloop.core.utils import ifnone, ms_to_seconds
from powerloop.core.config import PowerloopSettings, get_settings
from powerloop.core.base import Powerloop, PowerloopABC, PowerloopMeta
from powerloop.core.clock import Clock, MonotonicClock
from powerloop.core.logging.logger import get_logger, setup_logger

setup_logger()  # Initialize the default logger

__all__ = [
    "Clock",
    "get_logger",
    "get_settings",
    "ifnone",
    "MonotonicClock",
    "ms_to_seconds",
    "Powerloop",
    "PowerloopABC",
    "PowerloopMeta",
    "PowerloopSettings",
]
