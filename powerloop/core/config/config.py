import configparser
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class POWERLOOP_DIR_PATHS(BaseModel):
    ROOT: str
    LOGGER_DIR: str
    STRUCT_LOGGER_DIR: str
    WORK_DIR: str


class POWERLOOP_LOGGER(BaseModel):
    USE_STRUCTLOG: bool = False


class POWERLOOP_GPIO(BaseModel):
    CONTROL_ROOT: str = "/sys/class/gpio"
    MOCK_ENABLED: bool = False


class POWERLOOP_WAKE(BaseModel):
    COUNT: int = Field(default=3, ge=1)
    INTERVAL_MS: int = Field(default=100, ge=0)
    SOURCE_PORT: int = Field(default=3000, ge=0, le=65535)
    DESTINATION_PORT: int = Field(default=9, ge=1, le=65535)


class POWERLOOP_FLEET(BaseModel):
    # 0 runs every machine at once
    MAX_CONCURRENCY: int = Field(default=0, ge=0)


def load_ini_as_dict(ini_path: Path) -> Dict[str, Any]:
    """
    Load and parse an INI file into a nested dictionary with normalized keys.

    Sections and keys are converted to uppercase for uniform access. Tilde (`~`)
    in values is expanded to the user home directory.

    Args:
        ini_path (Path): Path to the `.ini` configuration file.

    Returns:
        Dict[str, Any]: A dictionary where each section is a key mapped to another
        dictionary of key-value pairs from that section.

    Example:
        .. code-block:: ini

            [POWERLOOP_WAKE]
            count = 3

        .. code-block:: python

            config = load_ini_as_dict(Path("config.ini"))
            print(config["POWERLOOP_WAKE"]["COUNT"])
    """
    if not ini_path.exists():
        return {}

    config = configparser.ConfigParser(interpolation=configparser.ExtendedInterpolation())
    config.optionxform = str
    config.read(ini_path)

    result = {}
    for section in config.sections():
        result[section.upper()] = {
            key.upper(): os.path.expanduser(value) if value.startswith("~") else value
            for key, value in config[section].items()
        }
    return result


def load_ini_settings() -> Dict[str, Any]:
    ini_path = Path(__file__).parent / "config.ini"
    return load_ini_as_dict(ini_path)


class PowerloopSettings(BaseSettings):
    """Runtime settings for powerloop.

    Environment variables override the packaged INI defaults using ``__`` as the nesting delimiter, e.g.
    ``POWERLOOP_WAKE__INTERVAL_MS=250`` or ``POWERLOOP_GPIO__MOCK_ENABLED=true``.
    """

    POWERLOOP_DIR_PATHS: POWERLOOP_DIR_PATHS
    POWERLOOP_LOGGER: POWERLOOP_LOGGER
    POWERLOOP_GPIO: POWERLOOP_GPIO
    POWERLOOP_WAKE: POWERLOOP_WAKE
    POWERLOOP_FLEET: POWERLOOP_FLEET

    model_config = {
        "env_nested_delimiter": "__",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def _expand_tilde(obj):
            if isinstance(obj, str):
                return os.path.expanduser(obj) if obj.startswith("~") else obj
            if isinstance(obj, dict):
                return {k: _expand_tilde(v) for k, v in obj.items()}
            return obj

        def env_settings_expanded():
            return _expand_tilde(env_settings())

        return (
            init_settings,  # constructor kwargs
            env_settings_expanded,  # env vars (with '~' expanded) take precedence
            dotenv_settings,  # then .env
            load_ini_settings,  # then INI file (lowest precedence)
            file_secret_settings,
        )


_settings_instance: Optional[PowerloopSettings] = None


def get_settings() -> PowerloopSettings:
    """
    Get the global settings instance.

    Returns:
        Process-wide PowerloopSettings, created on first use.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = PowerloopSettings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None
