from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TranslationRequest(BaseModel):
    """Delta-fetch request body posted to the locale server."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(default="", alias="userId")
    read_access_password: str | None = Field(default=None, alias="readAccessPassword")
    last_fetch_utc: int | None = Field(
        default=None,
        alias="lastFetchUTC",
        description="Unix time of the last successful fetch; lets the server return only changes.",
    )
    keys: list[str] = Field(default_factory=list)
    locales: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TranslationItem(BaseModel):
    key: str = Field(..., min_length=1, description="Translation key.")
    translations: dict[str, str] = Field(
        default_factory=dict,
        description="Locale identifier to localized string.",
    )

    @field_validator("translations", mode="before")
    @classmethod
    def _drop_null_translations(cls, value: object) -> object:
        if isinstance(value, dict):
            return {locale: text for locale, text in value.items() if text is not None}
        return value


class ResponseError(BaseModel):
    code: int = 0
    message: str = ""


class TranslationResponse(BaseModel):
    """Response envelope; ``items`` and ``errors`` are mutually exclusive."""

    type: str | None = None
    count: int = 0
    items: list[TranslationItem] | None = None
    errors: list[ResponseError] | None = None

    @property
    def succeeded(self) -> bool:
        return not self.errors
