"""Client-side translation cache kept in sync with a remote locale server."""

from locale_bucket.core.config import BucketSettings, get_settings
from locale_bucket.integrations.preferences import (
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    PreferenceStore,
)
from locale_bucket.services.bucket import LocalizationBucket
from locale_bucket.services.events import BucketEvent, EventBus

__all__ = [
    "BucketEvent",
    "BucketSettings",
    "EventBus",
    "InMemoryPreferenceStore",
    "JsonFilePreferenceStore",
    "LocalizationBucket",
    "PreferenceStore",
    "get_settings",
]
