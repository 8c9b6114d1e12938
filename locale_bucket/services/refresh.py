from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Awaitable, Callable, Protocol

from locale_bucket.integrations.locale_server import FetchResult
from locale_bucket.services.events import BucketEvent, EventBus
from locale_bucket.services.store import TranslationStore


logger = logging.getLogger(__name__)


class TranslationFetcher(Protocol):
    async def fetch(
        self,
        keys: Sequence[str],
        locales: Sequence[str],
        *,
        last_fetch_utc: int | None = None,
    ) -> FetchResult:
        ...


class RefreshScheduler:
    """Throttled, single-flight refresh of a translation store.

    ``last_fetch_utc`` is stamped when a refresh starts, before the server
    answers, and drives the throttle window. ``last_success_utc`` is the
    delta cursor sent to the server and only moves on a successful merge.
    ``on_stamp`` and ``on_cursor`` are told about each change so both values
    can be persisted separately.
    """

    def __init__(
        self,
        store: TranslationStore,
        fetcher: TranslationFetcher,
        events: EventBus,
        *,
        keys: Callable[[], Sequence[str]],
        locales: Callable[[], Sequence[str]],
        min_seconds_between_requests: int = 120,
        max_response_wait_ms: int = 4096,
        last_fetch_utc: int | None = None,
        last_success_utc: int | None = None,
        clock: Callable[[], float] = time.time,
        on_stamp: Callable[[int], None] | None = None,
        on_cursor: Callable[[int | None], None] | None = None,
        on_merged: Callable[[], Awaitable[object]] | None = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._events = events
        self._keys = keys
        self._locales = locales
        self._min_interval = min_seconds_between_requests
        self._max_wait = max_response_wait_ms / 1000.0
        self._clock = clock
        self._on_stamp = on_stamp
        self._on_cursor = on_cursor
        self._on_merged = on_merged

        self.last_fetch_utc: int | None = last_fetch_utc
        self.last_success_utc: int | None = last_success_utc
        self._cursor_generation = 0
        self._refreshing = False
        self._follow_up = False
        self._task: asyncio.Task[bool] | None = None

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def current_task(self) -> asyncio.Task[bool] | None:
        return self._task

    def is_throttled(self) -> bool:
        if self._store.is_empty or self.last_fetch_utc is None:
            return False
        return self._now() - self.last_fetch_utc < self._min_interval

    def reset_delta_cursor(self) -> None:
        """Forget the delta cursor so the next refresh requests everything.

        A refresh already in flight will not restore the old cursor when it
        completes.
        """
        self.last_success_utc = None
        self._cursor_generation += 1
        self._notify(self._on_cursor, None, "delta cursor")

    def request_refresh(self, *, force: bool = False) -> asyncio.Task[bool] | None:
        """Start a refresh in the background unless one is running or throttled.

        Returns the refresh task, or ``None`` when the call was a no-op. Must
        be called from a running event loop.
        """
        if self._refreshing:
            logger.debug("Refresh already in flight; skipping")
            return None
        if not self._keys():
            logger.debug("No translation keys registered; skipping refresh")
            return None
        if not force and self.is_throttled():
            logger.debug(
                "Refresh throttled: last fetch %ss ago (minimum %ss)",
                self._now() - (self.last_fetch_utc or 0),
                self._min_interval,
            )
            return None

        loop = asyncio.get_running_loop()
        self._refreshing = True
        cursor = self.last_success_utc if not self._store.is_empty else None
        self.last_fetch_utc = self._now()
        self._notify(self._on_stamp, self.last_fetch_utc, "last fetch timestamp")

        task = loop.create_task(self._run(cursor, self._cursor_generation))
        # A task cancelled before its first step never enters _run.
        task.add_done_callback(self._task_done)
        self._task = task
        return task

    def request_follow_up(self) -> asyncio.Task[bool] | None:
        """Force a refresh now, or as soon as the one in flight finishes."""
        if not self._refreshing:
            return self.request_refresh(force=True)
        logger.debug("Refresh in flight; queueing a forced follow-up")
        self._follow_up = True
        return None

    async def wait(self) -> bool:
        """Wait until no refresh is in flight; returns whether the last one merged."""
        task = self._task
        if task is None:
            return False
        while True:
            try:
                merged = await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
                merged = False
            if self._task is task or self._task is None:
                return merged
            task = self._task

    async def cancel(self) -> None:
        self._follow_up = False
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._refreshing = False

    def _task_done(self, task: asyncio.Task[bool]) -> None:
        if task is not self._task:
            return
        self._refreshing = False
        if self._follow_up and not task.cancelled():
            self._follow_up = False
            self.request_refresh(force=True)

    async def _run(self, cursor: int | None, generation: int) -> bool:
        stamped = self.last_fetch_utc
        keys = list(self._keys())
        locales = list(self._locales())
        logger.info("Refreshing %s keys for %s locales", len(keys), len(locales))

        try:
            try:
                result = await asyncio.wait_for(
                    self._fetcher.fetch(keys, locales, last_fetch_utc=cursor),
                    timeout=self._max_wait,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Locale server did not answer within %sms; giving up on this refresh",
                    int(self._max_wait * 1000),
                )
                self._refreshing = False
                self._events.emit(BucketEvent.CONNECTION_FAILED)
                return False
            except Exception:
                logger.exception("Refresh failed unexpectedly")
                return False

            if result.status == "unreachable":
                self._refreshing = False
                self._events.emit(BucketEvent.CONNECTION_FAILED)
                return False

            if not result.ok:
                logger.info("Refresh rejected by locale server (status=%s)", result.status_code)
                return False

            for item in result.items:
                self._store.merge(item.key, item.translations)
            if generation == self._cursor_generation:
                self.last_success_utc = stamped
                self._notify(self._on_cursor, stamped, "delta cursor")
            logger.info(
                "Merged %s translation items; store holds %s keys",
                len(result.items),
                len(self._store),
            )
        finally:
            self._refreshing = False

        self._events.emit(BucketEvent.REFRESHED)
        if self._on_merged is not None:
            try:
                await self._on_merged()
            except Exception:
                logger.exception("Post-refresh hook failed")
        return True

    def _notify(self, callback: Callable[..., None] | None, value: int | None, what: str) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            logger.exception("Failed to persist %s", what)

    def _now(self) -> int:
        return int(self._clock())
