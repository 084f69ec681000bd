import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from listing_tracker.core.validation import coerce_status, is_valid_facebook_url

_INVALID_LINK = "Link must be a valid Facebook URL"


def _check_link(value: Any) -> str:
    if not isinstance(value, str) or not is_valid_facebook_url(value):
        raise ValueError(_INVALID_LINK)
    return value.strip()


def _check_product(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class _ListingInput(BaseModel):
    # Validators run only for fields present in the body, so an explicit
    # null is rejected for link and status while product may be cleared.
    @field_validator("link", mode="before", check_fields=False)
    @classmethod
    def validate_link(cls, v: Any) -> str:
        return _check_link(v)

    @field_validator("product", mode="before", check_fields=False)
    @classmethod
    def validate_product(cls, v: Any) -> Any:
        return _check_product(v)

    @field_validator("status", mode="before", check_fields=False)
    @classmethod
    def validate_status(cls, v: Any) -> int:
        return coerce_status(v)


class ListingCreate(_ListingInput):
    link: str
    product: str | None = Field(default=None, max_length=255)
    status: int = 0


class ListingUpdate(_ListingInput):
    """Partial update; fields left out of the body are not touched."""

    link: str | None = None
    product: str | None = Field(default=None, max_length=255)
    status: int | None = None


class ListingResponse(BaseModel):
    id: uuid.UUID
    link: str
    product: str | None
    status: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ListingEnvelope(BaseModel):
    success: bool = True
    data: ListingResponse


class ListingCollectionEnvelope(BaseModel):
    success: bool = True
    data: list[ListingResponse]
    count: int


class ListingStatusEnvelope(ListingCollectionEnvelope):
    status: int


class DeleteEnvelope(BaseModel):
    success: bool = True
    message: str


class DailyStats(BaseModel):
    date: date
    count: int


class DailyStatsEnvelope(BaseModel):
    success: bool = True
    data: DailyStats


class ErrorResponse(BaseModel):
    error: str
    details: Any = None
