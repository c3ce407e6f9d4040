"""Configuration package."""

from wealth_snapshot.config.settings import (
    AppSettings,
    BackupSettings,
    FirebaseSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    PriceLookupSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BackupSettings",
    "FirebaseSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "PriceLookupSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
