"""
Configuration Management for Wealth Snapshot

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here. Each external collaborator
(remote store, backup sheet, price lookup, statement scanner) has its own
settings class with its own environment prefix, so a partially configured
installation still runs: whatever is missing is reported by
validate_all_settings() and replaced by local-only behaviour.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirebaseSettings(BaseSettings):
    """Firebase Realtime Database (remote state store) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore"
    )

    database_url: str = Field(
        ...,
        description="Realtime Database root URL, e.g. https://<db>.firebasedatabase.app"
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for a single push request"
    )
    readiness_timeout: float = Field(
        default=30.0,
        gt=0,
        description="How long push/subscribe wait for the channel to become ready"
    )

    @field_validator('database_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the URL so paths can be appended safely."""
        return v.rstrip("/")


class BackupSettings(BaseSettings):
    """Secondary best-effort backup of the flattened asset list."""

    model_config = SettingsConfigDict(
        env_prefix="BACKUP_",
        extra="ignore"
    )

    backend: Literal["webhook", "sheets", "none"] = Field(
        default="webhook",
        description="Which backup sink to use"
    )
    webhook_url: Optional[str] = Field(
        default=None,
        description="Google Apps Script web app URL receiving the asset list"
    )
    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for the webhook POST"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets backup configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    assets_sheet_name: str = Field(
        default="Assets",
        description="Name of the sheet holding the asset backup"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before enabling the sheets backup."
            )
        return v


class PriceLookupSettings(BaseSettings):
    """Symbol price lookup endpoint."""

    model_config = SettingsConfigDict(
        env_prefix="PRICE_",
        extra="ignore"
    )

    lookup_url: str = Field(
        ...,
        description="Endpoint answering GET ?symbol=SYM with {\"price\": n}"
    )
    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for a single lookup"
    )


class GeminiSettings(BaseSettings):
    """Gemini configuration for statement scanning."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug logging"
    )

    # Local durable storage
    state_file: Path = Field(
        default=Path("wealth_snapshot_v1.json"),
        description="File holding the persisted application state"
    )

    # Valuation
    default_wealth_goal: Decimal = Field(
        default=Decimal("2000000"),
        ge=0,
        description="Net worth goal used when none has been set (base currency)"
    )

    # Reminders and reports
    reminder_window_days: int = Field(
        default=30,
        ge=1,
        description="Deposits maturing within this many days are listed as upcoming"
    )
    critical_window_days: int = Field(
        default=7,
        ge=0,
        description="Deposits maturing within this many days are flagged critical"
    )
    stale_after_days: int = Field(
        default=30,
        ge=1,
        description="Balances older than this are reported as stale"
    )
    monthly_expense_base: Decimal = Field(
        default=Decimal("15000"),
        ge=0,
        description="Monthly expenses used for the passive income coverage ratio"
    )
    cash_warning_ratio: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Cash share of total assets above which the report warns"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()

    @property
    def backup(self) -> BackupSettings:
        return BackupSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def price_lookup(self) -> PriceLookupSettings:
        return PriceLookupSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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
    Validate all settings sections.

    Returns a dict of {section_name: is_valid}, plus a
    "<section>_error" entry for each section that failed to load.
    """
    results = {}
    settings = get_settings()

    for section in ("firebase", "backup", "google_sheets", "price_lookup", "gemini", "app"):
        try:
            getattr(settings, section)
            results[section] = True
        except Exception as e:
            results[section] = False
            results[f"{section}_error"] = str(e)

    return results
