from __future__ import annotations

from locale_bucket.integrations.preferences import InMemoryPreferenceStore
from locale_bucket.services.events import EventBus
from locale_bucket.services.locales import LocaleSelector


def build_selector(
    locales: list[str],
    preferences: InMemoryPreferenceStore | None = None,
) -> tuple[LocaleSelector, list[str]]:
    events = EventBus()
    changes: list[str] = []
    events.on_locale_changed(changes.append)
    selector = LocaleSelector(
        locales,
        events,
        preferences=preferences,
        preference_key="LocaleIndex_bucket" if preferences is not None else None,
    )
    return selector, changes


def test_duplicates_are_dropped_and_first_locale_is_active() -> None:
    selector, _ = build_selector(["en", "de", "en"])

    assert selector.list() == ("en", "de")
    assert selector.active == "en"


def test_register_rejects_duplicates() -> None:
    selector, _ = build_selector(["en"])

    assert selector.register("de") is True
    assert selector.register("de") is False
    assert selector.list() == ("en", "de")


def test_set_active_unregistered_locale_is_rejected() -> None:
    selector, changes = build_selector(["en", "de"])

    assert selector.set_active("fr") is False
    assert selector.active == "en"
    assert changes == []


def test_set_active_notifies_and_persists_index() -> None:
    preferences = InMemoryPreferenceStore()
    selector, changes = build_selector(["en", "de"], preferences)

    assert selector.set_active("de") is True

    assert selector.active == "de"
    assert changes == ["de"]
    assert preferences.get("LocaleIndex_bucket") == "1"
    assert preferences.saves == 1


def test_restores_index_from_preferences_and_ignores_out_of_range() -> None:
    selector, _ = build_selector(["en", "de"], InMemoryPreferenceStore({"LocaleIndex_bucket": "1"}))
    assert selector.active == "de"

    selector, _ = build_selector(["en", "de"], InMemoryPreferenceStore({"LocaleIndex_bucket": "7"}))
    assert selector.active == "en"

    selector, _ = build_selector(["en", "de"], InMemoryPreferenceStore({"LocaleIndex_bucket": "x"}))
    assert selector.active == "en"


def test_unregister_before_active_keeps_the_same_locale_active() -> None:
    selector, changes = build_selector(["en", "de", "it"])
    selector.set_active("it")
    changes.clear()

    assert selector.unregister("en") is True

    assert selector.active == "it"
    assert selector.index == 1
    assert changes == []


def test_unregister_active_locale_moves_selection_and_notifies() -> None:
    selector, changes = build_selector(["en", "de", "it"])
    selector.set_active("it")
    changes.clear()

    assert selector.unregister("it") is True

    assert selector.active == "de"
    assert changes == ["de"]


def test_unregister_last_remaining_locale_is_refused() -> None:
    selector, _ = build_selector(["en"])

    assert selector.unregister("en") is False
    assert selector.unregister("fr") is False
    assert selector.active == "en"


def test_empty_selector_has_no_active_locale() -> None:
    selector, _ = build_selector([])

    assert selector.active is None
    assert len(selector) == 0
