"""Configuration settings for the quiesce service."""

from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class ShutdownConfig(BaseSettings):
    """Signal handling and drain settings."""

    signals: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["SIGINT", "SIGTERM"])
    listener_poll_interval: float = Field(default=0.5, gt=0)
    drain_log_interval: float = Field(default=5.0, gt=0)

    @field_validator("signals", mode="before")
    @classmethod
    def split_signals(cls, v):
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("signals")
    @classmethod
    def require_signals(cls, v):
        if not v:
            raise ValueError("at least one shutdown signal is required")
        return v

    model_config = SettingsConfigDict(env_prefix="QUIESCE_SHUTDOWN_")


class WorkerConfig(BaseSettings):
    """Settings for the built-in heartbeat workers."""

    count: int = Field(default=3, ge=0)
    poll_interval: float = Field(default=0.5, gt=0)
    step_duration: float = Field(default=0.1, ge=0)
    cleanup_duration: float = Field(default=1.0, ge=0)

    model_config = SettingsConfigDict(env_prefix="QUIESCE_WORKERS_")


class APIConfig(BaseSettings):
    """Status API settings."""

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=0, le=65535)

    model_config = SettingsConfigDict(env_prefix="QUIESCE_API_")


class HistoryConfig(BaseSettings):
    """Lifecycle history settings."""

    max_size: int = Field(default=200, ge=1)

    model_config = SettingsConfigDict(env_prefix="QUIESCE_HISTORY_")


class Settings(BaseSettings):
    """Main application settings."""

    app_name: str = "Quiesce"
    environment: str = "production"
    log_level: str = "INFO"
    log_format: str = "json"

    shutdown: ShutdownConfig = Field(default_factory=ShutdownConfig)
    workers: WorkerConfig = Field(default_factory=WorkerConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got {v!r}")
        return v

    model_config = SettingsConfigDict(
        env_prefix="QUIESCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
