"""
Centralized settings configuration using Pydantic BaseSettings.

All environment variables are defined here with types, defaults, and validation.
Use get_settings() for dependency injection compatibility in FastAPI.

Usage:
    from recorder.settings import get_settings, Settings

    # In FastAPI endpoints (dependency injection)
    @app.get("/")
    def read_root(settings: Settings = Depends(get_settings)):
        return {"environment": settings.environment}

    # Direct access (module-level)
    settings = get_settings()
    print(settings.kafka_topic)
"""

from functools import lru_cache
from typing import List, Optional, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Core Environment
    # -------------------------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production, test",
    )
    host: str = Field(default="localhost", description="Interface to bind")
    port: int = Field(default=3000, ge=1, le=65535, description="Port to bind")
    log_level: str = Field(default="INFO", description="Root log level")

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------
    recording_enabled: bool = Field(
        default=True,
        description="Publish captured exchanges to Kafka",
    )
    recording_required: bool = Field(
        default=True,
        description="Refuse to start when a transport cannot connect; "
        "when false the app serves without the failed transport",
    )
    exchange_log_path: Optional[str] = Field(
        default=None,
        description="Also append exchanges to this JSON Lines file",
    )
    capture_exclude_paths: str = Field(
        default="",
        description="Comma-separated request paths that are never recorded",
    )
    capture_redact_headers: str = Field(
        default="",
        description="Comma-separated header names whose values are replaced with ***",
    )
    shutdown_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for pending deliveries on shutdown",
    )

    # -------------------------------------------------------------------------
    # Kafka
    # -------------------------------------------------------------------------
    kafka_bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Comma-separated list of host:port brokers",
    )
    kafka_topic: str = Field(
        default="express_recordings",
        min_length=1,
        description="Topic that exchanges are published to",
    )
    kafka_client_id: str = Field(default="http-exchange-recorder")
    kafka_acks: str = Field(default="all", description="0, 1 or all")
    kafka_enable_idempotence: bool = Field(default=True)
    kafka_linger_ms: int = Field(default=0, ge=0)
    kafka_request_timeout_ms: int = Field(default=40000, gt=0)
    kafka_connect_attempts: int = Field(default=3, ge=1)

    # -------------------------------------------------------------------------
    # Observability - Sentry
    # -------------------------------------------------------------------------
    sentry_dsn: Optional[str] = Field(
        default=None,
        description="Sentry DSN for error tracking",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {valid_environments}"
            )
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("kafka_acks")
    @classmethod
    def validate_kafka_acks(cls, v: str) -> str:
        if v.lower() not in {"0", "1", "all"}:
            raise ValueError(f"Invalid kafka_acks '{v}'. Must be 0, 1 or all")
        return v.lower()

    @model_validator(mode="after")
    def validate_idempotence_acks(self) -> "Settings":
        # The idempotent producer only works with acks=all.
        if self.kafka_enable_idempotence and self.kafka_acks != "all":
            raise ValueError("kafka_enable_idempotence requires kafka_acks=all")
        return self

    # -------------------------------------------------------------------------
    # Helper Properties
    # -------------------------------------------------------------------------
    @property
    def kafka_bootstrap_servers_list(self) -> List[str]:
        return _split_csv(self.kafka_bootstrap_servers)

    @property
    def kafka_acks_value(self) -> Union[int, str]:
        """acks in the form aiokafka expects."""
        return "all" if self.kafka_acks == "all" else int(self.kafka_acks)

    @property
    def capture_exclude_paths_list(self) -> List[str]:
        return _split_csv(self.capture_exclude_paths)

    @property
    def capture_redact_headers_list(self) -> List[str]:
        return [h.lower() for h in _split_csv(self.capture_redact_headers)]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    For testing, you can clear the cache with get_settings.cache_clear().

    Returns:
        Settings: Application settings instance
    """
    return Settings()
