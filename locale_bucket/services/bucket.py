from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Sequence
from typing import Any, Callable

import httpx

from locale_bucket.core.config import (
    DEFAULT_LOCALE_SERVER_BASE_URL,
    DEFAULT_LOCALE_SERVER_TRANSLATION_ENDPOINT,
    BucketSettings,
)
from locale_bucket.integrations.locale_server import LocaleServerClient
from locale_bucket.integrations.preferences import PreferenceStore, read_int
from locale_bucket.integrations.storage import CacheFileStorage
from locale_bucket.services.events import BucketEvent, EventBus, Unsubscribe
from locale_bucket.services.locales import LocaleSelector
from locale_bucket.services.refresh import RefreshScheduler
from locale_bucket.services.store import StoreSnapshot, TranslationStore


logger = logging.getLogger(__name__)


def resolve_bucket_id(settings: BucketSettings, preferences: PreferenceStore | None) -> str:
    """Return the configured bucket id, or a generated one remembered in preferences."""
    if settings.bucket_id:
        return settings.bucket_id
    if preferences is None:
        generated = uuid.uuid4().hex
        logger.warning(
            "No bucket id configured and no preferences to remember one; "
            "using ephemeral id %s (the disk cache will not survive a restart)",
            generated,
        )
        return generated

    key = f"BucketId_{settings.bucket_name}"
    stored = preferences.get(key)
    if stored:
        return stored
    generated = uuid.uuid4().hex
    preferences.set(key, generated)
    preferences.save()
    logger.info("Generated bucket id %s for bucket %r", generated, settings.bucket_name)
    return generated


class LocalizationBucket:
    """Locally cached key -> locale -> string translations kept in sync with a locale server.

    Reads never touch the network. ``start()`` restores the on-disk cache and
    kicks off a refresh; ``aclose()`` flushes the cache back to disk.
    """

    def __init__(
        self,
        settings: BucketSettings | None = None,
        *,
        preferences: PreferenceStore | None = None,
        client: LocaleServerClient | None = None,
        storage: CacheFileStorage | None = None,
        http_client_factory: Callable[[str], httpx.AsyncClient] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or BucketSettings()  # type: ignore[call-arg]
        self._preferences = preferences if self._settings.use_preferences else None
        self._bucket_id = resolve_bucket_id(self._settings, self._preferences)

        self._keys: list[str] = list(self._settings.keys)
        self._events = EventBus()
        self._store = TranslationStore()
        self._client = client or LocaleServerClient.from_settings(
            self._settings, http_client_factory=http_client_factory
        )
        self._storage = storage or CacheFileStorage(
            self._settings.cache_directory,
            self._bucket_id,
            load_timeout_seconds=self._settings.cache_load_timeout_seconds,
        )
        self._locales = LocaleSelector(
            self._settings.locales,
            self._events,
            preferences=self._preferences,
            preference_key=self._namespaced(self._settings.preferences_locale_index_key),
        )
        self._scheduler = RefreshScheduler(
            self._store,
            self._client,
            self._events,
            keys=lambda: self._keys,
            locales=self._locales.list,
            min_seconds_between_requests=self._settings.min_seconds_between_requests,
            max_response_wait_ms=self._settings.max_refresh_response_time_ms,
            last_fetch_utc=self._read_stamp(self._settings.preferences_last_fetch_key),
            last_success_utc=self._read_stamp(self._settings.preferences_last_success_key),
            clock=clock,
            on_stamp=self._persist_last_fetch,
            on_cursor=self._persist_last_success,
            on_merged=self.write_cache_to_disk if self._settings.persist_after_refresh else None,
        )
        self._started = False
        self._pending_saves: set[asyncio.Task[bool]] = set()

    async def __aenter__(self) -> LocalizationBucket:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def bucket_id(self) -> str:
        return self._bucket_id

    @property
    def settings(self) -> BucketSettings:
        return self._settings

    @property
    def store(self) -> TranslationStore:
        return self._store

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def scheduler(self) -> RefreshScheduler:
        return self._scheduler

    @property
    def storage(self) -> CacheFileStorage:
        return self._storage

    @property
    def refreshing(self) -> bool:
        return self._scheduler.refreshing

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        await self.load_cache_from_disk()
        self.refresh()

    async def aclose(self) -> None:
        await self._scheduler.cancel()
        if self._pending_saves:
            await asyncio.gather(*self._pending_saves, return_exceptions=True)
        # An empty store would clobber a cache that merely failed to load in time.
        if not self._store.is_empty:
            self._storage.save_sync(self._store.snapshot())
        self._locales.persist()
        self._started = False

    def translate(self, key: str) -> str | None:
        locale = self._locales.active
        if locale is None:
            return None
        return self._store.get(key, locale)

    def __getitem__(self, key: str) -> str | None:
        return self.translate(key)

    def refresh(self, *, force: bool = False) -> asyncio.Task[bool] | None:
        return self._scheduler.request_refresh(force=force)

    async def wait_for_refresh(self) -> bool:
        return await self._scheduler.wait()

    async def is_server_reachable(self) -> bool:
        return await self._client.check_reachability()

    def change_server(
        self,
        base_url: str = DEFAULT_LOCALE_SERVER_BASE_URL,
        translation_endpoint: str = DEFAULT_LOCALE_SERVER_TRANSLATION_ENDPOINT,
    ) -> bool:
        """Point the bucket at another locale server and refresh from it.

        The delta cursor is cleared so the new server sends everything. If a
        refresh is in flight, the forced refresh starts once it finishes.
        """
        if not self._client.change_server(base_url, translation_endpoint):
            return False
        logger.info("Locale server changed to %s%s", base_url, translation_endpoint)
        self._scheduler.reset_delta_cursor()
        self._scheduler.request_follow_up()
        return True

    @property
    def locales(self) -> Sequence[str]:
        return self._locales.list()

    @property
    def active_locale(self) -> str | None:
        return self._locales.active

    def add_locale(self, locale: str) -> bool:
        return self._locales.register(locale)

    def remove_locale(self, locale: str) -> bool:
        return self._locales.unregister(locale)

    def set_locale(self, locale: str) -> bool:
        return self._locales.set_active(locale)

    @property
    def keys(self) -> Sequence[str]:
        return tuple(self._keys)

    def add_key(self, key: str) -> bool:
        if not key or key in self._keys:
            return False
        self._keys.append(key)
        return True

    def remove_key(self, key: str) -> bool:
        if key not in self._keys:
            return False
        self._keys.remove(key)
        return True

    def subscribe(self, event: BucketEvent, callback: Callable[..., Any]) -> Unsubscribe:
        return self._events.subscribe(event, callback)

    def on_refreshed(self, callback: Callable[[], Any]) -> Unsubscribe:
        return self._events.on_refreshed(callback)

    def on_locale_changed(self, callback: Callable[[str], Any]) -> Unsubscribe:
        return self._events.on_locale_changed(callback)

    def on_connection_failed(self, callback: Callable[[], Any]) -> Unsubscribe:
        return self._events.on_connection_failed(callback)

    async def write_cache_to_disk(self) -> bool:
        """Snapshot the store and write it from a worker thread."""
        task = asyncio.ensure_future(self._storage.save(self._store.snapshot()))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)
        return await asyncio.shield(task)

    async def load_cache_from_disk(self) -> bool:
        restored: StoreSnapshot | None = await self._storage.load()
        if restored is None:
            return False
        self._store.replace(restored)
        self._events.emit(BucketEvent.REFRESHED)
        return True

    def _namespaced(self, key: str) -> str:
        return f"{key}_{self._bucket_id}"

    def _read_stamp(self, key: str) -> int | None:
        if self._preferences is None:
            return None
        return read_int(self._preferences, self._namespaced(key))

    def _write_stamp(self, key: str, timestamp: int | None) -> None:
        if self._preferences is None:
            return
        self._preferences.set(self._namespaced(key), "" if timestamp is None else str(timestamp))
        self._preferences.save()

    def _persist_last_fetch(self, timestamp: int) -> None:
        self._write_stamp(self._settings.preferences_last_fetch_key, timestamp)

    def _persist_last_success(self, timestamp: int | None) -> None:
        self._write_stamp(self._settings.preferences_last_success_key, timestamp)
