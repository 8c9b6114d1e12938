from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from locale_bucket.integrations.preferences import PreferenceStore, read_int
from locale_bucket.services.events import BucketEvent, EventBus


logger = logging.getLogger(__name__)


class LocaleSelector:
    """Registered locales plus the active selection.

    The active index always points into the registered list while it is
    non-empty. Removing the active locale moves the selection to the locale
    now occupying its slot (or the new last one) and announces the change;
    removing the last remaining locale is refused.
    """

    def __init__(
        self,
        locales: Iterable[str],
        events: EventBus,
        *,
        preferences: PreferenceStore | None = None,
        preference_key: str | None = None,
    ) -> None:
        self._locales: list[str] = []
        for locale in locales:
            if locale and locale not in self._locales:
                self._locales.append(locale)
        self._events = events
        self._preferences = preferences
        self._preference_key = preference_key
        self._index = 0

        if preferences is not None and preference_key:
            stored = read_int(preferences, preference_key)
            if stored is not None and 0 <= stored < len(self._locales):
                self._index = stored
            elif stored is not None:
                logger.debug("Stored locale index %s out of range; using 0", stored)

    @property
    def index(self) -> int:
        return self._index

    @property
    def active(self) -> str | None:
        if not self._locales:
            return None
        return self._locales[self._index]

    def list(self) -> Sequence[str]:
        return tuple(self._locales)

    def register(self, locale: str) -> bool:
        if not locale or locale in self._locales:
            return False
        self._locales.append(locale)
        return True

    def unregister(self, locale: str) -> bool:
        if locale not in self._locales:
            return False
        if len(self._locales) == 1:
            logger.warning("Refusing to remove %s: it is the only registered locale", locale)
            return False

        position = self._locales.index(locale)
        was_active = position == self._index
        self._locales.pop(position)

        if position < self._index:
            self._index -= 1
        elif was_active:
            self._index = min(self._index, len(self._locales) - 1)
            new_locale = self._locales[self._index]
            logger.info("Active locale %s removed; switched to %s", locale, new_locale)
            self._persist_index()
            self._events.emit(BucketEvent.LOCALE_CHANGED, new_locale)
            return True

        self._persist_index()
        return True

    def set_active(self, locale: str) -> bool:
        if locale not in self._locales:
            return False
        self._index = self._locales.index(locale)
        self._persist_index()
        self._events.emit(BucketEvent.LOCALE_CHANGED, locale)
        return True

    def persist(self) -> None:
        self._persist_index()

    def _persist_index(self) -> None:
        if self._preferences is None or not self._preference_key:
            return
        self._preferences.set(self._preference_key, str(self._index))
        self._preferences.save()

    def __contains__(self, locale: object) -> bool:
        return locale in self._locales

    def __len__(self) -> int:
        return len(self._locales)
