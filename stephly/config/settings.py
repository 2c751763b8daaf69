"""
Configuration Management for Stephly

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, one settings class per external
dependency. Sub-settings are loaded lazily so the app can run with only
part of the stack configured (e.g. no Google Sheets in local development).
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets document store configuration."""

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

    # One worksheet per collection
    users_sheet_name: str = Field(default="Users")
    transactions_sheet_name: str = Field(default="Transactions")
    budgets_sheet_name: str = Field(default="Budgets")
    todos_sheet_name: str = Field(default="Todos")
    conversations_sheet_name: str = Field(default="Conversations")
    insights_sheet_name: str = Field(default="Insights")
    memory_sheet_name: str = Field(default="Memory")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

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
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Temperature for conversational replies"
    )
    extraction_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Temperature for structured field extraction"
    )


class SearchSettings(BaseSettings):
    """Web search configuration. Google Custom Search is optional."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SEARCH_",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Google Custom Search API key"
    )
    engine_id: Optional[str] = Field(
        default=None,
        description="Google Programmable Search Engine ID"
    )
    max_results: int = Field(default=3, ge=1, le=10)

    @property
    def google_configured(self) -> bool:
        return bool(self.api_key and self.engine_id)


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
        description="Enable debug mode"
    )

    default_currency: str = Field(
        default="GHS",
        min_length=3,
        max_length=3,
        description="Currency used for new profiles and formatting"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1000000.0,
        description="Maximum reasonable transaction amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        description="How many days in the future a transaction date can be"
    )

    # Outbound HTTP
    exchange_rate_url: str = Field(
        default="https://api.exchangerate-api.com/v4/latest/GHS",
        description="Exchange rate endpoint (rates relative to GHS)"
    )
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    recent_transaction_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="How many transactions the dashboard and chat load"
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
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def search(self) -> SearchSettings:
        return SearchSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each failing service.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "gemini", "search", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
