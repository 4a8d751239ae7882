"""
Configuration Management for Money Planner

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger itself takes no configuration; only the session, storage
and export code read these values.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from money_planner.models.finance import CurrencyCode


class StorageSettings(BaseSettings):
    """Local document storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONEY_PLANNER_STORAGE_",
        extra="ignore"
    )

    data_file: Path = Field(
        default=Path("money-planner.json"),
        description="Path of the JSON file holding the saved state"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failing write is attempted"
    )
    audit_file: Optional[Path] = Field(
        default=None,
        description="JSON-lines audit log; audit events are only logged locally if unset"
    )

    @field_validator('data_file', 'audit_file')
    @classmethod
    def expand_user(cls, v: Optional[Path]) -> Optional[Path]:
        """Allow '~' in the configured paths."""
        return v.expanduser() if v is not None else v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONEY_PLANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    default_currency: CurrencyCode = Field(
        default=CurrencyCode.USD,
        description="Display currency used until the user picks one"
    )
    autosave_interval_seconds: int = Field(
        default=30,
        ge=1,
        le=3600,
        description="How often the boundary layer re-saves the state"
    )
    recent_transactions_limit: int = Field(
        default=10,
        ge=0,
        description="How many transactions the dashboard lists"
    )
    app_version: str = Field(
        default="1.0",
        description="Format/version tag written into JSON exports"
    )


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

    # Loaded lazily so a bad storage section doesn't break the whole app

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
