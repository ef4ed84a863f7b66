"""
Core configuration module for powerloop.

Provides the runtime settings (directory paths, control-file root, wake packet policy, fleet limits) loaded from
constructor overrides, environment variables and the packaged INI defaults.
"""

from powerloop.core.config.config import (
    POWERLOOP_DIR_PATHS,
    POWERLOOP_FLEET,
    POWERLOOP_GPIO,
    POWERLOOP_LOGGER,
    POWERLOOP_WAKE,
    PowerloopSettings,
    get_settings,
    load_ini_as_dict,
    load_ini_settings,
    reset_settings,
)

__all__ = [
    "POWERLOOP_DIR_PATHS",
    "POWERLOOP_FLEET",
    "POWERLOOP_GPIO",
    "POWERLOOP_LOGGER",
    "POWERLOOP_WAKE",
    "PowerloopSettings",
    "get_settings",
    "load_ini_as_dict",
    "load_ini_settings",
    "reset_settings",
]
