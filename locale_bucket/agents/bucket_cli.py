from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Callable, Sequence

import httpx

from locale_bucket.core.config import BucketSettings, get_settings
from locale_bucket.core.logging import configure_logging
from locale_bucket.integrations.preferences import JsonFilePreferenceStore
from locale_bucket.services.bucket import LocalizationBucket


logger = logging.getLogger("locale_bucket.cli")

PREFERENCES_FILE_NAME = "preferences.json"


def build_bucket(
    settings: BucketSettings,
    *,
    http_client_factory: Callable[[str], httpx.AsyncClient] | None = None,
) -> LocalizationBucket:
    preferences = JsonFilePreferenceStore(settings.cache_directory / PREFERENCES_FILE_NAME)
    return LocalizationBucket(
        settings,
        preferences=preferences,
        http_client_factory=http_client_factory,
    )


async def _probe(bucket: LocalizationBucket) -> int:
    reachable = await bucket.is_server_reachable()
    print(json.dumps({"base_url": bucket.settings.base_url, "reachable": reachable}))
    return 0 if reachable else 1


async def _refresh(bucket: LocalizationBucket) -> int:
    failures: list[str] = []
    bucket.on_connection_failed(lambda: failures.append("connection_failed"))

    async with bucket:
        # start() only refreshes outside the throttle window.
        if bucket.scheduler.current_task is None:
            bucket.refresh(force=True)
        merged = await bucket.wait_for_refresh()
        print(
            json.dumps(
                {
                    "bucket_id": bucket.bucket_id,
                    "merged": merged,
                    "keys": len(bucket.store),
                    "connection_failed": bool(failures),
                }
            )
        )
    return 0 if merged else 1


async def _translate(bucket: LocalizationBucket, key: str, locale: str | None) -> int:
    await bucket.load_cache_from_disk()
    if locale is None:
        locale = bucket.active_locale
    elif locale not in bucket.locales:
        logger.error("Locale %s is not registered (known: %s)", locale, ", ".join(bucket.locales))
        return 2
    value = bucket.store.get(key, locale) if locale else None
    if value is None:
        logger.warning("No cached translation for %r in %s", key, locale)
        return 1
    print(value)
    return 0


async def _dump(bucket: LocalizationBucket) -> int:
    await bucket.load_cache_from_disk()
    print(json.dumps(bucket.store.snapshot(), ensure_ascii=False, indent=2, sort_keys=True))
    return 0


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="locale-bucket",
        description="Inspect and refresh a locally cached localization bucket.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: LOCALE_BUCKET_LOG_LEVEL or INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("probe", help="Check whether the configured locale server is reachable.")
    subparsers.add_parser("refresh", help="Force a refresh from the locale server and write the cache.")

    translate_parser = subparsers.add_parser("translate", help="Print a cached translation.")
    translate_parser.add_argument("key", help="Translation key to look up.")
    translate_parser.add_argument(
        "--locale",
        default=None,
        help="Registered locale to read (default: the persisted active locale).",
    )

    subparsers.add_parser("dump", help="Print the on-disk cache as JSON.")
    return parser.parse_args(argv)


async def _async_main(
    args: argparse.Namespace,
    settings: BucketSettings,
    http_client_factory: Callable[[str], httpx.AsyncClient] | None = None,
) -> int:
    bucket = build_bucket(settings, http_client_factory=http_client_factory)
    if args.command == "probe":
        return await _probe(bucket)
    if args.command == "refresh":
        return await _refresh(bucket)
    if args.command == "translate":
        return await _translate(bucket, args.key, args.locale)
    return await _dump(bucket)


def main(
    argv: Sequence[str] | None = None,
    *,
    http_client_factory: Callable[[str], httpx.AsyncClient] | None = None,
) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)
    return asyncio.run(_async_main(args, settings, http_client_factory))


if __name__ == "__main__":
    raise SystemExit(main())
