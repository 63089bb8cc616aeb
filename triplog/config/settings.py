"""
Configuration Management for Trip Log

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Process configuration (where data lives, default rates,
logging) is centralized here. Per-user preferences that the user edits in
the app (theme, unit, mileage rate) are NOT settings; they are the `Preferences`
model, persisted in the key-value store by `PreferencesStore`.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key-value store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPLOG_STORAGE_",
        extra="ignore"
    )

    path: Path = Field(
        default=Path("~/.triplog/store.json"),
        description="JSON file backing the key-value store"
    )

    # Keys within the store
    trips_key: str = Field(
        default="trips",
        description="Key holding the serialized trip collection"
    )
    trips_schema_version_key: str = Field(
        default="tripsSchemaVersion",
        description="Key recording the trip schema version on disk"
    )
    vehicles_key: str = Field(
        default="vehicles",
        description="Key holding the serialized vehicle list"
    )
    mileage_rate_key: str = Field(
        default="mileageRate",
        description="Key holding the user's overridden mileage rate"
    )
    preferred_unit_key: str = Field(
        default="preferredUnit",
        description="Key holding the preferred distance unit label"
    )
    theme_key: str = Field(
        default="theme",
        description="Key holding the light/dark preference"
    )

    @field_validator('path')
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand ~ so the store path is usable as-is."""
        return v.expanduser()


class RateSettings(BaseSettings):
    """Default reimbursement rates per trip category (currency per mile)."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPLOG_RATE_",
        extra="ignore"
    )

    business: Decimal = Field(default=Decimal("0.70"), ge=0)
    medical: Decimal = Field(default=Decimal("0.21"), ge=0)
    moving: Decimal = Field(default=Decimal("0.21"), ge=0)
    charitable: Decimal = Field(default=Decimal("0.14"), ge=0)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIPLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level emitted by the structured logger"
    )

    # Display
    currency_prefix: str = Field(
        default="$",
        max_length=5,
        description="Literal prefix for rendered currency values"
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
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def rates(self) -> RateSettings:
        return RateSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries for the ones that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "rates", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
