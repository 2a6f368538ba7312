"""
Core configuration module for redis-user-sessions.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the
REDIS_USER_SESSIONS_ prefix.

Key names (`session:<id>`, `user:<id>:sessions`) are deliberately absent:
they must stay identical across deployments sharing a Redis instance.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the REDIS_USER_SESSIONS_ prefix for environment variables.
    Example: REDIS_USER_SESSIONS_REDIS_URL=redis://cache:6379/0
    """

    # =========================================================================
    # Redis Configuration
    # =========================================================================
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for session records and user indexes",
    )
    redis_pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum connections in the Redis connection pool",
    )

    # =========================================================================
    # Session Configuration
    # =========================================================================
    session_id_bytes: int = Field(
        default=24,
        ge=16,
        le=128,
        description="Random bytes used for generated session ids",
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (console renderer when false)",
    )

    model_config = {
        "env_prefix": "REDIS_USER_SESSIONS_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Field Validators
    # =========================================================================
    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("Redis URL must start with redis:// or rediss://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return normalized


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
