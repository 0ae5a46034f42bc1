# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for Escolar.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from escolar.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.lifecycle.promotion_min_average)
    4.0
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PASSWORD = "escolar_password"


class DatabaseSettings(BaseSettings):
    """Relational store configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="ESCOLAR_DB_",
        extra="ignore",
    )

    user: str = "escolar"
    password: SecretStr = SecretStr(DEFAULT_DB_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    database: str = "escolar"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def sync_url(self) -> str:
        """Build the sync database URL for migrations."""
        pwd = self.password.get_secret_value()
        return f"postgresql://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class LifecycleSettings(BaseSettings):
    """Tunables for the year and enrollment lifecycle rules.

    Attributes:
        anticipated_promotion_threshold: Year-progress fraction under which a
            promotion is treated as anticipated (stricter requirements).
        promotion_min_average: Minimum subject average required for a
            mid-year promotion when the student already has grades.
        year_progress_without_dates: Progress assumed for years that have no
            start/end date configured.
        default_modality: Modality stored on enrollments that do not set one.
        default_passing_grade: Passing grade reported when the institution
            has no BASICO performance level configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIFECYCLE_",
        extra="ignore",
    )

    anticipated_promotion_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    promotion_min_average: float = 4.0
    year_progress_without_dates: float = Field(default=0.5, ge=0.0, le=1.0)
    default_modality: str = "PRESENTIAL"
    default_passing_grade: float = 3.0


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Relational store settings.
        lifecycle: Lifecycle rule settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == DEFAULT_DB_PASSWORD:
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set ESCOLAR_DB_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
