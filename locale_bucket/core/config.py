from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_LOCALE_SERVER_BASE_URL = "https://api.locales.glitchedpolygons.com"
DEFAULT_LOCALE_SERVER_TRANSLATION_ENDPOINT = "/api/v1/translations/translate"
DEFAULT_LOCALE_SERVER_REACHABILITY_ENDPOINT = "/api/v1/keys/rsa/public"


class BucketSettings(BaseSettings):
    """Localization bucket configuration loaded from environment or .env."""

    bucket_id: Optional[str] = Field(default=None, alias="LOCALE_BUCKET_ID")
    bucket_name: str = Field(default="default", alias="LOCALE_BUCKET_NAME")

    user_id: str = Field(default="", alias="LOCALE_BUCKET_USER_ID")
    api_key: Optional[SecretStr] = Field(default=None, alias="LOCALE_BUCKET_API_KEY")
    read_access_password: Optional[SecretStr] = Field(
        default=None, alias="LOCALE_BUCKET_READ_ACCESS_PASSWORD"
    )

    base_url: str = Field(default=DEFAULT_LOCALE_SERVER_BASE_URL, alias="LOCALE_BUCKET_BASE_URL")
    translation_endpoint: str = Field(
        default=DEFAULT_LOCALE_SERVER_TRANSLATION_ENDPOINT,
        alias="LOCALE_BUCKET_TRANSLATION_ENDPOINT",
    )
    reachability_endpoint: str = Field(
        default=DEFAULT_LOCALE_SERVER_REACHABILITY_ENDPOINT,
        alias="LOCALE_BUCKET_REACHABILITY_ENDPOINT",
    )

    min_seconds_between_requests: int = Field(
        default=120, ge=1, le=1000, alias="LOCALE_BUCKET_MIN_SECONDS_BETWEEN_REQUESTS"
    )
    max_refresh_response_time_ms: int = Field(
        default=4096, ge=64, le=8192, alias="LOCALE_BUCKET_MAX_REFRESH_RESPONSE_TIME_MS"
    )
    cache_load_timeout_seconds: float = Field(
        default=2.0, gt=0, alias="LOCALE_BUCKET_CACHE_LOAD_TIMEOUT_SECONDS"
    )
    cache_directory: Path = Field(
        default=Path("LocalizationCache"), alias="LOCALE_BUCKET_CACHE_DIRECTORY"
    )

    locales: list[str] = Field(
        default_factory=lambda: ["en_US.UTF-8", "de_DE.UTF-8", "it_IT.UTF-8"],
        alias="LOCALE_BUCKET_LOCALES",
    )
    keys: list[str] = Field(default_factory=list, alias="LOCALE_BUCKET_KEYS")

    use_preferences: bool = Field(default=True, alias="LOCALE_BUCKET_USE_PREFERENCES")
    preferences_locale_index_key: str = Field(
        default="LocaleIndex", alias="LOCALE_BUCKET_PREFS_LOCALE_INDEX_KEY"
    )
    preferences_last_fetch_key: str = Field(
        default="LastFetchUTC", alias="LOCALE_BUCKET_PREFS_LAST_FETCH_KEY"
    )
    preferences_last_success_key: str = Field(
        default="LastSuccessUTC", alias="LOCALE_BUCKET_PREFS_LAST_SUCCESS_KEY"
    )
    persist_after_refresh: bool = Field(default=True, alias="LOCALE_BUCKET_PERSIST_AFTER_REFRESH")

    log_level: str = Field(default="INFO", alias="LOCALE_BUCKET_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("locales", "keys")
    @classmethod
    def _drop_blank_and_duplicate_entries(cls, values: list[str]) -> list[str]:
        unique: list[str] = []
        for value in values:
            if value and value not in unique:
                unique.append(value)
        return unique


@lru_cache
def get_settings() -> BucketSettings:
    """Return cached bucket settings."""
    return BucketSettings()  # type: ignore[call-arg]
