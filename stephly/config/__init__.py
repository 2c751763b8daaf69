"""Configuration package."""

from stephly.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    SearchSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "SearchSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
