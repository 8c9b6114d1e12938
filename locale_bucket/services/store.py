from __future__ import annotations

import threading
from collections.abc import Mapping

StoreSnapshot = dict[str, dict[str, str]]


class TranslationStore:
    """Key -> locale -> string mapping shared by readers and the refresh task.

    Entries are copy-on-write: a merge builds a fresh locale mapping and
    publishes it with one assignment, so readers never lock and never see a
    half-applied entry. Writers serialize on a lock.
    """

    def __init__(self, entries: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._write_lock = threading.Lock()
        self._entries: dict[str, dict[str, str]] = {}
        if entries:
            self.replace(entries)

    def get(self, key: str, locale: str) -> str | None:
        translations = self._entries.get(key)
        if translations is None:
            return None
        return translations.get(locale)

    def entry(self, key: str) -> dict[str, str] | None:
        """Copy of every cached locale for ``key``, taken from one published version."""
        translations = self._entries.get(key)
        return dict(translations) if translations is not None else None

    def merge(self, key: str, translations: Mapping[str, str]) -> None:
        """Insert ``key`` or overwrite only the supplied locales of an existing entry."""
        if not key:
            return
        incoming = {locale: text for locale, text in translations.items() if text is not None}
        with self._write_lock:
            current = self._entries.get(key)
            if current is None:
                self._entries[key] = incoming
                return
            updated = dict(current)
            updated.update(incoming)
            self._entries[key] = updated

    def merge_many(self, items: Mapping[str, Mapping[str, str]]) -> int:
        for key, translations in items.items():
            self.merge(key, translations)
        return len(items)

    def replace(self, entries: Mapping[str, Mapping[str, str]]) -> None:
        fresh = {
            key: {locale: text for locale, text in translations.items() if text is not None}
            for key, translations in entries.items()
            if key
        }
        with self._write_lock:
            self._entries = fresh

    def snapshot(self) -> StoreSnapshot:
        """Point-in-time copy suitable for serialization off the event loop."""
        with self._write_lock:
            entries = dict(self._entries)
        # Entry dicts are never mutated after publication.
        return {key: dict(translations) for key, translations in entries.items()}

    def keys(self) -> list[str]:
        return list(self._entries)

    def locales_for(self, key: str) -> list[str]:
        return list(self._entries.get(key, {}))

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
