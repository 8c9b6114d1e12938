from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from locale_bucket.core.config import BucketSettings, get_settings


def test_defaults_match_locale_server_conventions() -> None:
    settings = BucketSettings()

    assert settings.base_url == "https://api.locales.glitchedpolygons.com"
    assert settings.translation_endpoint == "/api/v1/translations/translate"
    assert settings.min_seconds_between_requests == 120
    assert settings.max_refresh_response_time_ms == 4096
    assert settings.locales == ["en_US.UTF-8", "de_DE.UTF-8", "it_IT.UTF-8"]
    assert settings.keys == []


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOCALE_BUCKET_API_KEY", "env-key")
    monkeypatch.setenv("LOCALE_BUCKET_KEYS", '["greeting", "farewell", "greeting"]')
    monkeypatch.setenv("LOCALE_BUCKET_CACHE_DIRECTORY", str(tmp_path))

    settings = BucketSettings()

    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "env-key"
    assert settings.keys == ["greeting", "farewell"]
    assert settings.cache_directory == tmp_path


@pytest.mark.parametrize(
    "overrides",
    [
        {"LOCALE_BUCKET_MIN_SECONDS_BETWEEN_REQUESTS": 0},
        {"LOCALE_BUCKET_MIN_SECONDS_BETWEEN_REQUESTS": 1001},
        {"LOCALE_BUCKET_MAX_REFRESH_RESPONSE_TIME_MS": 63},
        {"LOCALE_BUCKET_MAX_REFRESH_RESPONSE_TIME_MS": 8193},
    ],
)
def test_out_of_range_timings_are_rejected(overrides: dict[str, int]) -> None:
    with pytest.raises(ValidationError):
        BucketSettings(**overrides)


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
