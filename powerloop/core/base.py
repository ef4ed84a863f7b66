"""Powerloop base class. Provides unified settings, logging and context management."""

import inspect
import logging
import time
import traceback
from abc import ABC, ABCMeta
from functools import wraps
from typing import Callable, Optional

from powerloop.core.config import PowerloopSettings, get_settings
from powerloop.core.logging.logger import get_logger
from powerloop.core.utils import ifnone

LOGGER_PARAM_NAMES = {
    "log_dir",
    "logger_level",
    "stream_level",
    "file_level",
    "file_mode",
    "propagate",
    "max_bytes",
    "backup_count",
    "use_structlog",
    "structlog_json",
    "structlog_bind",
}


class PowerloopMeta(type):
    """Metaclass for Powerloop class.

    The PowerloopMeta metaclass lets classes deriving from Powerloop use the same default logger within class methods
    as they do within instance methods::

        from powerloop.core import Powerloop

        class MyClass(Powerloop):
            def instance_method(self):
                self.logger.info(f"Using logger: {self.logger.name}")  # powerloop.my_module.MyClass

            @classmethod
            def class_method(cls):
                cls.logger.info(f"Using logger: {cls.logger.name}")  # powerloop.my_module.MyClass
    """

    def __init__(cls, name, bases, attr_dict):
        super().__init__(name, bases, attr_dict)
        cls._logger = None
        cls._settings = None

    @property
    def logger(cls):
        if cls._logger is None:
            cls._logger = get_logger(cls.unique_name)
        return cls._logger

    @logger.setter
    def logger(cls, new_logger):
        cls._logger = new_logger

    @property
    def unique_name(self) -> str:
        return self.__module__ + "." + self.__name__

    @property
    def settings(cls) -> PowerloopSettings:
        if cls._settings is None:
            cls._settings = get_settings()
        return cls._settings

    @settings.setter
    def settings(cls, new_settings):
        cls._settings = new_settings


class Powerloop(metaclass=PowerloopMeta):
    """Base class for all powerloop core classes.

    Adds settings and logging. All classes that derive from Powerloop log through a logger named after their module
    and class.
    """

    def __init__(self, *, settings: Optional[PowerloopSettings] = None, **kwargs):
        """
        Initialize the Powerloop object.

        Args:
            settings: Settings to use instead of the process-wide ones.
            **kwargs: Additional keyword arguments. Logger-related kwargs are passed to `get_logger`.
                Valid logger kwargs: log_dir, logger_level, stream_level, file_level, file_mode, propagate,
                max_bytes, backup_count, use_structlog, structlog_json, structlog_bind
        """
        remaining_kwargs = {k: v for k, v in kwargs.items() if k not in LOGGER_PARAM_NAMES}
        super().__init__(**remaining_kwargs)

        self.settings = ifnone(settings, get_settings())

        logger_kwargs = {k: v for k, v in kwargs.items() if k in LOGGER_PARAM_NAMES}
        self.logger = get_logger(self.unique_name, **logger_kwargs)

    @property
    def unique_name(self) -> str:
        return self.__module__ + "." + type(self).__name__

    @classmethod
    def autolog(
        cls,
        log_level=logging.DEBUG,
        prefix_formatter: Optional[Callable] = None,
        suffix_formatter: Optional[Callable] = None,
        exception_formatter: Optional[Callable] = None,
        include_duration: bool = True,
    ):
        """Decorator that adds logger.log calls to the decorated method before and after the method is called.

        By default the method name, arguments and keyword arguments are logged before the call, and the method name
        and result after it completes. Exceptions are logged and re-raised. Works on both sync and async methods and
        expects a logger at ``self.logger``.

        Args:
            log_level: The log_level passed to logger.log().
            prefix_formatter: Called with (function, args, kwargs) to build the message logged before the call.
            suffix_formatter: Called with (function, result) to build the message logged after the call.
            exception_formatter: Called with (function, error, stack trace) to build the error message.
            include_duration: If True, append the duration of the wrapped method to the completion record.

        Example::

            class Relay(Powerloop):
                @Powerloop.autolog()
                def toggle(self, line_id):
                    ...
        """
        prefix_formatter = ifnone(
            prefix_formatter,
            default=lambda function,
            args,
            kwargs: f"Operation {function.__name__} started with args: {args} and kwargs: {kwargs}",
        )
        suffix_formatter = ifnone(
            suffix_formatter,
            default=lambda function, result: f"Operation {function.__name__} completed with result: {result}",
        )
        exception_formatter = ifnone(
            exception_formatter,
            default=lambda function,
            e,
            stack_trace: f"Operation {function.__name__} failed with the following error: {e}\n{stack_trace}",
        )

        def _finished(logger, function, started_at, result):
            msg = suffix_formatter(function, result)
            if include_duration:
                msg = f"{msg} | duration_ms={(time.perf_counter() - started_at) * 1000.0:.2f}"
            logger.log(log_level, msg)

        def decorator(function):
            if inspect.iscoroutinefunction(function):

                @wraps(function)
                async def wrapper(self, *args, **kwargs):
                    started_at = time.perf_counter()
                    self.logger.log(log_level, prefix_formatter(function, args, kwargs))
                    try:
                        result = await function(self, *args, **kwargs)
                    except Exception as e:
                        self.logger.error(exception_formatter(function, e, traceback.format_exc()))
                        raise
                    _finished(self.logger, function, started_at, result)
                    return result

            else:

                @wraps(function)
                def wrapper(self, *args, **kwargs):
                    started_at = time.perf_counter()
                    self.logger.log(log_level, prefix_formatter(function, args, kwargs))
                    try:
                        result = function(self, *args, **kwargs)
                    except Exception as e:
                        self.logger.error(exception_formatter(function, e, traceback.format_exc()))
                        raise
                    _finished(self.logger, function, started_at, result)
                    return result

            return wrapper

        return decorator


class PowerloopABCMeta(PowerloopMeta, ABCMeta):
    """Metaclass that combines PowerloopMeta and ABCMeta so abstract classes can also derive from Powerloop."""

    pass


class PowerloopABC(Powerloop, ABC, metaclass=PowerloopABCMeta):
    """Abstract base class combining Powerloop functionality with ABC support.

    Example:
        from abc import abstractmethod
        from powerloop.core import PowerloopABC

        class ControlFiles(PowerloopABC):
            @abstractmethod
            def exists(self, path: str) -> bool:
                ...
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
