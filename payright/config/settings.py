"""
Configuration Management for PayRight

Settings come from environment variables and .env via pydantic-settings:
GEMINI_* for the model, PAYRIGHT_STORAGE_* for the backend choice,
GOOGLE_SHEETS_* for the Sheets backend and plain names for the app
thresholds (due-soon window, unused threshold, trend months).

Sections are loaded on first access. Running with in-memory storage
never touches the Sheets settings, and the Gemini key is needed only
once an agent is built without an injected model.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
        default="gemini-2.0-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """
    Key-value storage configuration.

    The backend holds the same three documents a browser would keep
    in localStorage: subscriptions, wallets and transactions.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAYRIGHT_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="json_file",
        pattern="^(memory|json_file|google_sheets)$",
        description="Storage backend: memory, json_file or google_sheets"
    )
    file_path: str = Field(
        default="data/payright-storage.json",
        description="Path of the JSON document used by the json_file backend"
    )

    @property
    def resolved_file_path(self) -> Path:
        return Path(self.file_path).expanduser()


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

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
    storage_sheet_name: str = Field(
        default="Storage",
        description="Name of the sheet holding key/value rows"
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

    # Single-tenant mock user
    mock_user_id: str = Field(
        default="defaultUser",
        min_length=1,
        description="User ID every wallet and transaction is filed under"
    )

    # Input checks for the AI flows
    min_bank_data_length: int = Field(
        default=10,
        ge=1,
        description="Minimum characters of bank data before calling the model"
    )

    # Notification thresholds
    due_soon_days: int = Field(
        default=7,
        ge=0,
        description="A renewal within this many days is 'due soon'"
    )
    unused_threshold_days: int = Field(
        default=30,
        ge=0,
        description="Days a subscription must be marked unused before alerting"
    )
    trend_months: int = Field(
        default=12,
        ge=1,
        le=60,
        description="How many months the status trend covers"
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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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


def validate_all_settings(include_sheets: Optional[bool] = None) -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an
    "<name>_error" entry for each failure. Google Sheets is only
    checked when it is the configured backend, unless include_sheets
    says otherwise.
    """
    results = {}

    settings = get_settings()

    sections = ["gemini", "storage", "app"]
    if include_sheets is None:
        try:
            include_sheets = settings.storage.backend == "google_sheets"
        except Exception:
            include_sheets = False
    if include_sheets:
        sections.append("google_sheets")

    for name in sections:
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
