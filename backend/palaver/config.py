"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache): single instance per process
    - effective_log_capacity is the only place the broadcast default bound is applied

Design Decisions:
    - Defaults provided for every setting: a bare checkout serves from ./data
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from palaver.core.domain_types import DEFAULT_BROADCAST_CAPACITY, MessageMode


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Storage
    data_dir: Path = Path("data")
    persistence_timeout_seconds: float = Field(5.0, gt=0)
    persistence_max_retries: int = Field(3, ge=0)
    persistence_base_delay_ms: int = Field(50, ge=0)
    persistence_max_delay_ms: int = Field(1_000, ge=0)

    # Messaging
    message_mode: MessageMode = MessageMode.DIRECTED
    message_log_capacity: int | None = Field(None, ge=1)
    require_registered_recipient: bool = False
    allow_guest_broadcast: bool = True
    poll_interval_ms: int = Field(2_000, ge=100)

    # Credentials & sessions
    bcrypt_rounds: int = Field(12, ge=4, le=31)
    session_cookie_name: str = "session"
    session_max_age_seconds: int = 60 * 60 * 24 * 7

    # API
    environment: str = "development"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("message_log_capacity", mode="before")
    @classmethod
    def empty_capacity_is_unbounded(cls, v):
        """MESSAGE_LOG_CAPACITY= in .env means unbounded."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def effective_log_capacity(self) -> int | None:
        if self.message_log_capacity is not None:
            return self.message_log_capacity
        if self.message_mode is MessageMode.BROADCAST:
            return DEFAULT_BROADCAST_CAPACITY
        return None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
