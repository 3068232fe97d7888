"""
Centralized configuration management for the credential lease engine.

This module provides a unified configuration system with support for:
- Environment variables
- Feature flags
- Remote API retry policy
- Validation using Pydantic
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .constants import EnvironmentVariable, LogLevel


class StorageSettings(BaseModel):
    """Connection settings for the SQL-backed storage."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.STORAGE_URL.value, "sqlite:///./credential_lease.db"
        ),
        description="SQLAlchemy connection string",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")


class QueueConfig(BaseModel):
    """Azure Storage Queue settings for the optional log sink."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default="logs-queue", description="Logs queue name")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class RemoteAPISettings(BaseModel):
    """Timeout and retry policy for calls to the remote API-key service."""

    timeout_seconds: float = Field(default=10.0, gt=0, description="Per-attempt request timeout")
    retry_wait_seconds: float = Field(
        default=10.0, ge=0, description="Fixed wait between retry attempts"
    )
    max_attempts: int = Field(default=6, ge=1, description="Attempts including the first")
    user_agent: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.USER_AGENT.value) or None,
        description="User-Agent header sent to the remote API",
    )
    http_debug: bool = Field(
        default_factory=lambda: len(os.getenv(EnvironmentVariable.HTTP_DEBUG.value, "")) != 0,
        description="Log every request and response at debug level",
    )


class RoleDefaults(BaseModel):
    """Defaults applied when a role is created without TTL bounds."""

    default_ttl: int = Field(default=0, ge=0, description="Default lease TTL in seconds")
    default_max_ttl: int = Field(default=0, ge=0, description="Default lease max TTL in seconds")


class FeatureFlags(BaseModel):
    """Feature flags for controlling engine behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ENABLE_LOGS_QUEUE.value, "false").lower()
        == "true",
        description="Ship structured logs to an Azure Storage Queue",
    )
    treat_missing_key_as_revoked: bool = Field(
        default=False,
        description="Treat a 404 from the remote API on revoke as an already-revoked key",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    storage: StorageSettings = Field(
        default_factory=StorageSettings, description="Storage configuration"
    )
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    remote_api: RemoteAPISettings = Field(
        default_factory=RemoteAPISettings, description="Remote API client settings"
    )
    roles: RoleDefaults = Field(default_factory=RoleDefaults, description="Role defaults")
    features: FeatureFlags = Field(default_factory=FeatureFlags, description="Feature flags")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
