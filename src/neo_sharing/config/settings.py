"""
Settings for the neo-sharing services and the notification worker.

Values come from environment variables prefixed with ``NEO_SHARING_`` or from
a local ``.env`` file.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CONSUMER_DEDUPE_WINDOW,
    DEFAULT_CONSUMER_GROUP,
    EMAIL_TOPIC,
    SHARE_VALIDITY_DAYS,
)


class SharingSettings(BaseSettings):
    """Runtime configuration for sharing services."""

    model_config = SettingsConfigDict(
        env_prefix="NEO_SHARING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="neo-sharing")
    environment: str = Field(default="development")

    # Database
    database_url: str = Field(default="postgresql://localhost:5432/neo_sharing")
    db_pool_min_size: int = Field(default=2, ge=1)
    db_pool_max_size: int = Field(default=10, ge=1)
    db_command_timeout: int = Field(default=60, ge=1)

    # Message bus
    redis_url: str = Field(default="redis://localhost:6379/0")
    event_topic: str = Field(default=EMAIL_TOPIC)
    consumer_group: str = Field(default=DEFAULT_CONSUMER_GROUP)
    consumer_name: Optional[str] = Field(default=None)
    consumer_dedupe_window: int = Field(default=CONSUMER_DEDUPE_WINDOW, ge=0)
    poll_block_ms: int = Field(default=1000, ge=1)
    poll_batch_size: int = Field(default=10, ge=1)
    stream_max_len: int = Field(default=100000, ge=1)

    # Publishing
    publish_max_retries: int = Field(default=3, ge=0)
    publish_initial_delay_ms: int = Field(default=1000, ge=0)
    publish_max_delay_ms: int = Field(default=10000, ge=0)
    publish_min_replica_acks: int = Field(default=0, ge=0)
    publish_replica_timeout_ms: int = Field(default=1000, ge=0)

    # Public shares
    share_validity_days: int = Field(default=SHARE_VALIDITY_DAYS, ge=1)

    # SMTP
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_username: str = Field(default="")
    smtp_password: SecretStr = Field(default=SecretStr(""))
    smtp_from_address: Optional[str] = Field(default=None)
    smtp_use_tls: bool = Field(default=True)
    smtp_use_ssl: bool = Field(default=False)
    smtp_timeout_seconds: int = Field(default=30, ge=1)

    # Links rendered into notification bodies
    app_base_url: str = Field(default="https://localhost:7197")
    share_base_url: str = Field(default="https://localhost:7197/share")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def from_address(self) -> str:
        """Sender address, falling back to the SMTP login."""
        return self.smtp_from_address or self.smtp_username


@lru_cache()
def get_settings() -> SharingSettings:
    """Get cached settings instance."""
    return SharingSettings()
