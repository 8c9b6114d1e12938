from locale_bucket.schemas.translation import (
    ResponseError,
    TranslationItem,
    TranslationRequest,
    TranslationResponse,
)

__all__ = [
    "ResponseError",
    "TranslationItem",
    "TranslationRequest",
    "TranslationResponse",
]
