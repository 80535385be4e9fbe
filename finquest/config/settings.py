"""
Configuration Management for finquest

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The tuning knobs of the scoring and suggestion heuristics live next to
the storage backend selection, so one place shows everything that can
change the engine's behaviour without a code change.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Tuning of the derived analytics and the profile lock."""

    model_config = SettingsConfigDict(
        env_prefix="FINQUEST_ENGINE_",
        extra="ignore"
    )

    suggestion_min_length: int = Field(
        default=3,
        ge=1,
        description="Shortest description that triggers a smart suggestion"
    )
    savings_rate_target: float = Field(
        default=0.20,
        gt=0.0,
        le=1.0,
        description="Savings rate that earns the full savings score"
    )
    forecast_warning_ratio: float = Field(
        default=0.9,
        gt=0.0,
        le=1.0,
        description="Share of monthly income above which the forecast warns"
    )
    daily_flow_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="Trailing days covered by the daily cash-flow series"
    )
    pin_length: int = Field(
        default=4,
        ge=4,
        le=8,
        description="Number of digits in the security PIN"
    )


class StorageSettings(BaseSettings):
    """Persistence backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINQUEST_STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "json"] = Field(
        default="memory",
        description="Which persistence backend to use"
    )
    json_path: str = Field(
        default="finquest-data.json",
        description="File used by the JSON backend"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Write attempts before a storage error is raised"
    )

    @field_validator('json_path')
    @classmethod
    def validate_json_path(cls, v: str) -> str:
        """Warn if the data file's directory is missing (it is not created for you)."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Directory for the data file does not exist: {parent}. "
                "Create it before using the JSON storage backend."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured log"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
