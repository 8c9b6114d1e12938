from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Literal

import httpx
from pydantic import ValidationError

from locale_bucket.core.config import (
    DEFAULT_LOCALE_SERVER_BASE_URL,
    DEFAULT_LOCALE_SERVER_REACHABILITY_ENDPOINT,
    DEFAULT_LOCALE_SERVER_TRANSLATION_ENDPOINT,
    BucketSettings,
)
from locale_bucket.schemas.translation import (
    ResponseError,
    TranslationItem,
    TranslationRequest,
    TranslationResponse,
)


logger = logging.getLogger(__name__)


FetchStatus = Literal["success", "rejected", "unreachable"]

API_KEY_HEADER = "API-Key"


@dataclass(slots=True)
class FetchResult:
    """Outcome of a single delta-fetch round trip."""

    status: FetchStatus
    items: list[TranslationItem] = field(default_factory=list)
    errors: list[ResponseError] = field(default_factory=list)
    status_code: int | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class LocaleServerClient:
    """Talks to a locale server: delta-fetches translations and probes reachability."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_LOCALE_SERVER_BASE_URL,
        translation_endpoint: str = DEFAULT_LOCALE_SERVER_TRANSLATION_ENDPOINT,
        reachability_endpoint: str = DEFAULT_LOCALE_SERVER_REACHABILITY_ENDPOINT,
        user_id: str = "",
        api_key: str | None = None,
        read_access_password: str | None = None,
        timeout: float = 30.0,
        http_client_factory: Callable[[str], httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._translation_endpoint = translation_endpoint
        self._reachability_endpoint = reachability_endpoint
        self._user_id = user_id
        self._api_key = api_key or None
        self._read_access_password = read_access_password or None
        self._timeout = httpx.Timeout(timeout)
        self._client_factory = http_client_factory or (
            lambda base_url: httpx.AsyncClient(base_url=base_url, timeout=self._timeout)
        )

    @classmethod
    def from_settings(
        cls,
        settings: BucketSettings,
        *,
        http_client_factory: Callable[[str], httpx.AsyncClient] | None = None,
    ) -> LocaleServerClient:
        return cls(
            base_url=settings.base_url,
            translation_endpoint=settings.translation_endpoint,
            reachability_endpoint=settings.reachability_endpoint,
            user_id=settings.user_id,
            api_key=settings.api_key.get_secret_value() if settings.api_key else None,
            read_access_password=(
                settings.read_access_password.get_secret_value()
                if settings.read_access_password
                else None
            ),
            http_client_factory=http_client_factory,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def translation_endpoint(self) -> str:
        return self._translation_endpoint

    def change_server(self, base_url: str, translation_endpoint: str) -> bool:
        base_url = base_url.rstrip("/")
        if base_url == self._base_url and translation_endpoint == self._translation_endpoint:
            return False
        self._base_url = base_url
        self._translation_endpoint = translation_endpoint
        return True

    def build_request(
        self,
        keys: Sequence[str],
        locales: Sequence[str],
        *,
        last_fetch_utc: int | None = None,
    ) -> TranslationRequest:
        return TranslationRequest(
            user_id=self._user_id,
            read_access_password=self._read_access_password,
            last_fetch_utc=last_fetch_utc,
            keys=list(keys),
            locales=list(locales),
        )

    async def fetch(
        self,
        keys: Sequence[str],
        locales: Sequence[str],
        *,
        last_fetch_utc: int | None = None,
    ) -> FetchResult:
        request = self.build_request(keys, locales, last_fetch_utc=last_fetch_utc)
        headers = {API_KEY_HEADER: self._api_key} if self._api_key else None

        try:
            async with self._client_factory(self._base_url) as client:
                response = await client.post(
                    self._translation_endpoint,
                    json=request.to_payload(),
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.warning("Locale server %s unreachable: %s", self._base_url, exc)
            return FetchResult(status="unreachable", detail=str(exc))

        if not response.is_success:
            errors = self._extract_errors(response)
            logger.warning(
                "Locale server rejected translation request with status %s%s",
                response.status_code,
                f": {errors[0].message}" if errors else "",
            )
            return FetchResult(status="rejected", errors=errors, status_code=response.status_code)

        try:
            envelope = TranslationResponse.model_validate_json(response.content)
        except (ValidationError, ValueError) as exc:
            logger.warning("Locale server returned an unreadable translation payload: %s", exc)
            return FetchResult(
                status="rejected",
                status_code=response.status_code,
                detail=str(exc),
            )

        if not envelope.succeeded:
            return FetchResult(
                status="rejected",
                errors=list(envelope.errors or []),
                status_code=response.status_code,
            )

        items = list(envelope.items or [])
        logger.debug(
            "Fetched %s translation items (server count=%s)",
            len(items),
            envelope.count,
        )
        return FetchResult(status="success", items=items, status_code=response.status_code)

    async def check_reachability(self) -> bool:
        """GET the server's public key endpoint; success is decided by status alone."""
        try:
            async with self._client_factory(self._base_url) as client:
                response = await client.get(self._reachability_endpoint)
        except httpx.HTTPError as exc:
            logger.info("Locale server %s unreachable: %s", self._base_url, exc)
            return False
        return response.is_success

    def _extract_errors(self, response: httpx.Response) -> list[ResponseError]:
        try:
            envelope = TranslationResponse.model_validate_json(response.content)
        except (ValidationError, ValueError):
            return []
        return list(envelope.errors or [])
