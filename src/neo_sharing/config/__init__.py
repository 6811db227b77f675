"""Configuration module for neo-sharing."""

from .constants import (
    EMAIL_TOPIC,
    DEFAULT_CONSUMER_GROUP,
    SHARE_VALIDITY_DAYS,
    ACCESS_REQUEST_MESSAGE_MAX_LENGTH,
    SHARE_TOKEN_BYTES,
)
from .logging_config import (
    setup_logging,
    LoggingConfig,
    LogFormat,
    LogLevel,
    LogVerbosity,
)
from .settings import SharingSettings, get_settings

__all__ = [
    "EMAIL_TOPIC",
    "DEFAULT_CONSUMER_GROUP",
    "SHARE_VALIDITY_DAYS",
    "ACCESS_REQUEST_MESSAGE_MAX_LENGTH",
    "SHARE_TOKEN_BYTES",
    "setup_logging",
    "LoggingConfig",
    "LogFormat",
    "LogLevel",
    "LogVerbosity",
    "SharingSettings",
    "get_settings",
]
