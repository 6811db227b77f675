"""Logging setup for the sharing services and the notification worker.

Everything is driven by environment variables:

- ``LOG_VERBOSITY``: QUIET, NORMAL (default), VERBOSE or DEBUG
- ``LOG_LEVEL``: explicit root level, overrides the verbosity mode
- ``LOG_FORMAT``: simple (default), detailed or json
- ``LOG_MODULE_LEVELS``: per-logger overrides such as
  ``neo_sharing.notifications=DEBUG,redis=WARNING``
- ``ENABLE_SQL_LOGGING``: let asyncpg log below WARNING
"""

import logging
import logging.config
import os
from enum import Enum
from typing import Dict


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogVerbosity(str, Enum):
    QUIET = "QUIET"      # errors only
    NORMAL = "NORMAL"    # warnings and above
    VERBOSE = "VERBOSE"  # every publish and delivery
    DEBUG = "DEBUG"


class LogFormat(str, Enum):
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


_VERBOSITY_LEVELS = {
    LogVerbosity.QUIET: LogLevel.ERROR,
    LogVerbosity.NORMAL: LogLevel.WARNING,
    LogVerbosity.VERBOSE: LogLevel.INFO,
    LogVerbosity.DEBUG: LogLevel.DEBUG,
}


def get_log_level_from_verbosity(verbosity: str) -> str:
    """Map a verbosity mode to a level name; unknown modes count as NORMAL."""
    try:
        return _VERBOSITY_LEVELS[LogVerbosity(verbosity.upper())].value
    except ValueError:
        return LogLevel.WARNING.value


def parse_module_levels(spec: str) -> Dict[str, str]:
    """Parse ``name=LEVEL`` pairs, skipping malformed entries."""
    levels = {}
    for item in spec.split(","):
        name, sep, level = item.partition("=")
        name, level = name.strip(), level.strip().upper()
        if sep and name and level in LogLevel.__members__:
            levels[name] = level
    return levels


class LoggingConfig:
    """Builds and applies the ``dictConfig`` mapping."""

    # Chatty third-party loggers
    ERROR_ONLY_MODULES = ["asyncio", "redis"]

    FORMATS = {
        LogFormat.SIMPLE: "%(asctime)s - %(levelname)s - %(message)s",
        LogFormat.DETAILED: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        LogFormat.JSON: '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
    }

    @classmethod
    def build(cls) -> dict:
        explicit_level = os.getenv("LOG_LEVEL", "").upper()
        if explicit_level in LogLevel.__members__:
            root_level = explicit_level
        else:
            root_level = get_log_level_from_verbosity(os.getenv("LOG_VERBOSITY", "NORMAL"))

        try:
            format_string = cls.FORMATS[LogFormat(os.getenv("LOG_FORMAT", "simple").lower())]
        except ValueError:
            format_string = cls.FORMATS[LogFormat.SIMPLE]

        def dedicated(level: str) -> dict:
            return {"level": level, "handlers": ["console"], "propagate": False}

        loggers = {module: dedicated("ERROR") for module in cls.ERROR_ONLY_MODULES}
        if os.getenv("ENABLE_SQL_LOGGING", "false").lower() != "true":
            loggers["asyncpg"] = dedicated("WARNING")
        for module, level in parse_module_levels(os.getenv("LOG_MODULE_LEVELS", "")).items():
            loggers[module] = dedicated(level)

        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": format_string, "datefmt": "%Y-%m-%d %H:%M:%S"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": root_level, "handlers": ["console"]},
            "loggers": loggers,
        }

    @classmethod
    def configure(cls) -> None:
        config = cls.build()
        logging.config.dictConfig(config)
        logging.getLogger(__name__).debug(f"Logging configured at {config['root']['level']}")


def setup_logging() -> None:
    """Apply logging configuration from the environment.

    Runs when the package is imported and again from the worker entry point.
    """
    LoggingConfig.configure()
