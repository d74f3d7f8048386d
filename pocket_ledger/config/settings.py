"""
Configuration Management for Pocket Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Engine functions take explicit arguments; the orchestrator reads these
settings once and passes the values down.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Derivation engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POCKET_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency in which totals are reported"
    )
    rate_table_max_age_days: int = Field(
        default=7,
        ge=1,
        description="Age after which a cached rate table is reported as stale"
    )
    future_date_tolerance_days: int = Field(
        default=365,
        ge=0,
        description="How far in the future a transaction may be dated before it is flagged"
    )
    duplicate_confidence_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum score for a transaction to be reported as a potential duplicate"
    )
    max_recurring_catch_up: int = Field(
        default=120,
        ge=1,
        description="Maximum occurrences materialized for a single recurring rule in one run"
    )
    legacy_account_name: str = Field(
        default="Legacy account",
        description="Display name given to synthesized placeholder accounts"
    )

    @field_validator('base_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.strip().upper()


class StorageSettings(BaseSettings):
    """File-backed storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POCKET_LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_path: Path = Field(
        default=Path("ledger.json"),
        description="Path of the JSON document holding the ledger"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a failed read or write before giving up"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()


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
        _ = settings.engine
        results["engine"] = True
    except Exception as e:
        results["engine"] = False
        results["engine_error"] = str(e)

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    return results
